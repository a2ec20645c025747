"""Persistence of flow and session records.

``FlowStateStore`` maps the three records of the flow onto a key-value store
as JSON documents:

- ``<namespace>.flow``: the single-use FlowState between redirect and callback
- ``<namespace>.auth``: the current AuthenticationResult
- ``<namespace>.userinfo``: the cached UserInfo

Records that no longer match their schema are dropped rather than trusted.
"""

from __future__ import annotations

import logging
from typing import TypeVar

from pydantic import BaseModel, ValidationError

from authlogic.config import DEFAULT_STORAGE_NAMESPACE
from authlogic.models.flow import FlowState
from authlogic.models.tokens import AuthenticationResult
from authlogic.models.userinfo import UserInfo
from authlogic.primitives.storage import KeyValueStore

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class FlowStateStore:
    """Typed get/save/clear access to the persisted flow records."""

    def __init__(
        self, storage: KeyValueStore, namespace: str = DEFAULT_STORAGE_NAMESPACE
    ):
        self.storage = storage
        self.namespace = namespace

    @property
    def flow_key(self) -> str:
        return f"{self.namespace}.flow"

    @property
    def auth_key(self) -> str:
        return f"{self.namespace}.auth"

    @property
    def userinfo_key(self) -> str:
        return f"{self.namespace}.userinfo"

    # Flow state

    def get_flow(self) -> FlowState | None:
        return self._read(self.flow_key, FlowState)

    def save_flow(self, flow: FlowState) -> None:
        self._write(self.flow_key, flow)

    def clear_flow(self) -> None:
        self.storage.remove_item(self.flow_key)

    # Authentication

    def get_authentication(self) -> AuthenticationResult | None:
        return self._read(self.auth_key, AuthenticationResult)

    def save_authentication(self, authentication: AuthenticationResult) -> None:
        self._write(self.auth_key, authentication)

    def clear_authentication(self) -> None:
        self.storage.remove_item(self.auth_key)

    # Profile

    def get_user_info(self) -> UserInfo | None:
        return self._read(self.userinfo_key, UserInfo)

    def save_user_info(self, user_info: UserInfo) -> None:
        self._write(self.userinfo_key, user_info)

    def complete(
        self,
        authentication: AuthenticationResult,
        user_info: UserInfo | None = None,
    ) -> None:
        """Consume the flow and persist the session in one step.

        The flow record is removed first, so the store never holds both a
        flow and the authentication it produced.
        """
        self.clear_flow()
        self.save_authentication(authentication)
        if user_info is not None:
            self.save_user_info(user_info)

    def _read(self, key: str, model: type[ModelT]) -> ModelT | None:
        raw = self.storage.get_item(key)
        if raw is None:
            return None
        try:
            return model.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(f"Discarding invalid {key} record: {e.error_count()} errors")
            self.storage.remove_item(key)
            return None

    def _write(self, key: str, record: BaseModel) -> None:
        self.storage.set_item(key, record.model_dump_json(by_alias=True))
