"""Persistence of authentication, authorization and signature records."""
from __future__ import annotations

import json
from typing import Any, Callable, List, Optional, Protocol, runtime_checkable

from pydantic import ValidationError

from routeguard.access.aaa import (
    Authentication,
    AuthenticationDatasheet,
    Authorization,
    AuthorizationDatasheet,
    SimpleAuthentication,
    SimpleAuthorization,
    SimpleUser,
    UserDatasheet,
    is_user,
    sheet_to_dict,
)
from routeguard.access.common import AccessPath
from routeguard.access.recorder import AccessRecorder
from routeguard.access.storage import Storage
from routeguard.utils.logging import get_logger

logger = get_logger(__name__)

AccessValidator = Callable[[AccessRecorder, Authentication], bool]


@runtime_checkable
class AccessStorer(Protocol):
    def load_authentication(self, recorder: AccessRecorder) -> Optional[Authentication]: ...

    def verify_authentication(self, recorder: AccessRecorder, authentication: Authentication) -> bool: ...

    def delete_authentication(self, recorder: AccessRecorder) -> None: ...

    def save_authentication(self, recorder: AccessRecorder, datasheet: Any) -> None: ...

    def load_authorization(
        self, recorder: AccessRecorder, authentication: Optional[Authentication]
    ) -> Optional[Authorization]: ...

    def delete_authorization(self, recorder: AccessRecorder) -> None: ...

    def save_authorization(self, recorder: AccessRecorder, datasheet: Any) -> None: ...

    def load_signature(
        self,
        recorder: AccessRecorder,
        path: AccessPath,
        authentication: Authentication,
        authorization: Authorization,
    ) -> bool: ...

    def save_signature(self, recorder: AccessRecorder, path: AccessPath) -> None: ...

    def remove_signature(self, recorder: AccessRecorder, path: AccessPath) -> None: ...

    def delete_signature(self, recorder: AccessRecorder) -> None: ...


class SimpleStorer:
    """Stores identity as JSON documents in two :class:`Storage` backends.

    ``aaa_storage`` holds authentication and authorization, ``sign_storage``
    the list of signed pathnames, so signatures can live in a shorter-lived
    backend than credentials. When the stored authentication also carries
    ``permissions`` it is loaded as a :class:`SimpleUser`, which then answers
    authorization lookups itself; separate authorization writes and deletes
    are skipped for such a user.
    """

    KEY_AUTHENTICATION = "__authentication__"
    KEY_AUTHORIZATION = "__authorization__"
    KEY_SIGNATURE = "__signature__"

    def __init__(
        self,
        aaa_storage: Storage,
        sign_storage: Storage,
        *,
        authentication_key: str = KEY_AUTHENTICATION,
        authorization_key: str = KEY_AUTHORIZATION,
        signature_key: str = KEY_SIGNATURE,
        authentication_validator: Optional[AccessValidator] = None,
    ) -> None:
        self.aaa_storage = aaa_storage
        self.sign_storage = sign_storage
        self.authentication_key = authentication_key
        self.authorization_key = authorization_key
        self.signature_key = signature_key
        self.authentication_validator = authentication_validator

    # -- authentication ----------------------------------------------------------
    def load_authentication(self, recorder: AccessRecorder) -> Optional[Authentication]:
        data = self._load_json(self.aaa_storage, self.authentication_key)
        if not isinstance(data, dict) or not isinstance(data.get("authenticated"), bool):
            return None
        try:
            if isinstance(data.get("permissions"), list):
                return SimpleUser(UserDatasheet.model_validate(data).model_dump())
            return SimpleAuthentication(AuthenticationDatasheet.model_validate(data).model_dump())
        except ValidationError as exc:
            logger.warning("discarding malformed authentication record: %s", exc)
            return None

    def verify_authentication(self, recorder: AccessRecorder, authentication: Authentication) -> bool:
        if self.authentication_validator is not None:
            return self.authentication_validator(recorder, authentication)
        is_invalid = getattr(authentication, "is_invalid", None)
        return not (callable(is_invalid) and is_invalid())

    def delete_authentication(self, recorder: AccessRecorder) -> None:
        self.aaa_storage.remove_item(self.authentication_key)

    def save_authentication(self, recorder: AccessRecorder, datasheet: Any) -> None:
        self._save_json(self.aaa_storage, self.authentication_key, sheet_to_dict(datasheet))

    # -- authorization -----------------------------------------------------------
    def load_authorization(
        self, recorder: AccessRecorder, authentication: Optional[Authentication]
    ) -> Optional[Authorization]:
        if is_user(authentication):
            return authentication  # type: ignore[return-value]
        data = self._load_json(self.aaa_storage, self.authorization_key)
        if not isinstance(data, dict) or not isinstance(data.get("permissions"), list):
            return None
        try:
            return SimpleAuthorization(AuthorizationDatasheet.model_validate(data).model_dump())
        except ValidationError as exc:
            logger.warning("discarding malformed authorization record: %s", exc)
            return None

    def delete_authorization(self, recorder: AccessRecorder) -> None:
        if is_user(recorder.authentication):
            return
        self.aaa_storage.remove_item(self.authorization_key)

    def save_authorization(self, recorder: AccessRecorder, datasheet: Any) -> None:
        if is_user(recorder.authentication):
            return
        self._save_json(self.aaa_storage, self.authorization_key, sheet_to_dict(datasheet))

    # -- signatures --------------------------------------------------------------
    def signed_pathnames(self) -> List[str]:
        data = self._load_json(self.sign_storage, self.signature_key)
        if not isinstance(data, list):
            return []
        return [item for item in data if isinstance(item, str)]

    def load_signature(
        self,
        recorder: AccessRecorder,
        path: AccessPath,
        authentication: Authentication,
        authorization: Authorization,
    ) -> bool:
        return path.pathname in self.signed_pathnames()

    def save_signature(self, recorder: AccessRecorder, path: AccessPath) -> None:
        signatures = self.signed_pathnames()
        if path.pathname not in signatures:
            signatures.append(path.pathname)
        self._save_json(self.sign_storage, self.signature_key, signatures)

    def remove_signature(self, recorder: AccessRecorder, path: AccessPath) -> None:
        if self.sign_storage.get_item(self.signature_key) is None:
            return
        signatures = [item for item in self.signed_pathnames() if item != path.pathname]
        self._save_json(self.sign_storage, self.signature_key, signatures)

    def delete_signature(self, recorder: AccessRecorder) -> None:
        self.sign_storage.remove_item(self.signature_key)

    # -- helpers -----------------------------------------------------------------
    @staticmethod
    def _load_json(storage: Storage, key: str) -> Any:
        raw = storage.get_item(key)
        if not raw:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("stored value for %s is not valid JSON", key)
            return None

    @staticmethod
    def _save_json(storage: Storage, key: str, value: Any) -> None:
        storage.set_item(key, json.dumps(value, ensure_ascii=False))


__all__ = ["AccessStorer", "AccessValidator", "SimpleStorer"]
