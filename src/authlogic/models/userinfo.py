"""Profile returned by the issuer's ``/userinfo`` endpoint."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class UserInfo(BaseModel):
    """Subject identifier plus opaque claims, kept as extra fields."""

    model_config = ConfigDict(extra="allow", frozen=True)

    sub: str

    @property
    def claims(self) -> dict:
        return dict(self.model_extra or {})
