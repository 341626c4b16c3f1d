"""
Session store - the signed-in staff member
===========================================

States:
    UNAUTHENTICATED -> AUTHENTICATING -> AUTHENTICATED
          ^                  |                |
          +------ failure ---+---- logout / expiry

Role and user id are only ever taken from a freshly decoded token. A session
is either fully populated or fully cleared. The persisted mirror (token, role,
school name) is written on login and wiped on logout or detected expiry.
"""

import time
from enum import Enum
from typing import Callable, Dict, Optional

from schooladmin.api import ApiClient
from schooladmin.exceptions import (
    AuthenticationFailedError,
    DecodeFailure,
    InvalidTokenError,
    NetworkOrServerError,
    UnauthenticatedError,
    ValidationError,
)
from schooladmin.logging_config import logger, set_role, set_user_id
from schooladmin.observable import Observable
from schooladmin.storage import MemoryStorage
from schooladmin.token_codec import Claims, decode, is_expired, try_decode


ROLE_OVERSIGHT = "roo"
ROLE_SCHOOL = "school"

TOKEN_KEY = "token"
ROLE_KEY = "role"
SCHOOL_NAME_KEY = "school_name"

LOGIN_PATH = "/auth/login"


class SessionState(str, Enum):
    """Authentication lifecycle states"""
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"


class SessionStore(Observable):
    """
    Owns the current authentication state and its persisted mirror.

    The store restores itself from storage on construction. `clock` returns
    epoch seconds and exists so tests can move time forward.
    """

    def __init__(
        self,
        api: ApiClient,
        storage: Optional[MemoryStorage] = None,
        clock: Callable[[], float] = time.time
    ):
        super().__init__()
        self.api = api
        self.storage = storage if storage is not None else MemoryStorage()
        self.clock = clock

        self.state: SessionState = SessionState.UNAUTHENTICATED
        self.token: Optional[str] = None
        self.role: Optional[str] = None
        self.user_id: Optional[int] = None
        self.school_name: Optional[str] = None
        self.error: Optional[str] = None
        self._in_flight = 0

        self._restore()

    # ==================== Persistence ====================

    def _restore(self) -> None:
        token = self.storage.get(TOKEN_KEY)
        claims = None
        if token and not is_expired(token, self.clock()):
            claims = try_decode(token)

        if claims is None:
            if token:
                logger.info("Stored session is expired or unreadable; clearing it")
            self._clear_persisted()
            return

        # role always comes from the token, never from the stored mirror
        self._apply_authenticated(token, claims, notify=False)
        logger.log_auth_event("restore", True)

    def _persist(self, token: str, claims: Claims) -> None:
        self.storage.set(TOKEN_KEY, token)
        self.storage.set(ROLE_KEY, claims.role)
        if claims.school_name:
            self.storage.set(SCHOOL_NAME_KEY, claims.school_name)
        else:
            self.storage.remove(SCHOOL_NAME_KEY)

    def _clear_persisted(self) -> None:
        self.storage.remove(TOKEN_KEY, ROLE_KEY, SCHOOL_NAME_KEY)

    # ==================== State transitions ====================

    def _apply_authenticated(self, token: str, claims: Claims, notify: bool = True) -> None:
        changes = dict(
            state=SessionState.AUTHENTICATED,
            token=token,
            role=claims.role,
            user_id=claims.user_id,
            school_name=claims.school_name or self.storage.get(SCHOOL_NAME_KEY),
            error=None,
        )
        set_user_id(claims.user_id)
        set_role(changes["role"])
        if notify:
            self._commit(**changes)
        else:
            for name, value in changes.items():
                setattr(self, name, value)

    def _cleared_fields(self) -> Dict[str, object]:
        return dict(
            state=SessionState.UNAUTHENTICATED,
            token=None,
            role=None,
            user_id=None,
            school_name=None,
        )

    @property
    def is_loading(self) -> bool:
        return self._in_flight > 0

    async def login(self, email: str, password: str) -> Claims:
        """
        Exchange credentials for a token and enter AUTHENTICATED.

        Raises:
            ValidationError: email or password is blank
            AuthenticationFailedError: non-2xx or unreachable login endpoint
            InvalidTokenError: the returned token cannot be decoded
        """
        missing = {
            name: "required"
            for name, value in (("email", email), ("password", password))
            if not value or not str(value).strip()
        }
        if missing:
            raise ValidationError("Enter login and password", fields=missing)

        # a new login replaces whatever session was there
        self._clear_persisted()
        self._in_flight += 1
        self._commit(**{**self._cleared_fields(), "state": SessionState.AUTHENTICATING, "error": None})

        try:
            try:
                data = await self.api.post_json(
                    LOGIN_PATH, {"email": email, "password": password}
                )
            except NetworkOrServerError as e:
                message = e.message
                if e.status_code is not None:
                    message = f"HTTP error! status: {e.status_code}"
                    if e.status_code in (400, 401, 403):
                        message = "Invalid login or password"
                logger.log_auth_event("login", False, user_email=email, reason=message)
                self._in_flight -= 1
                self._commit(**self._cleared_fields(), error=message)
                raise AuthenticationFailedError(message, status_code=e.status_code)

            token = data.get("token") if isinstance(data, dict) else None
            try:
                claims = decode(token)
            except DecodeFailure as e:
                logger.log_auth_event("login", False, user_email=email, reason=e.reason)
                self._in_flight -= 1
                self._commit(**self._cleared_fields(), error="Invalid token received")
                raise InvalidTokenError()

            self._persist(token, claims)
            self._in_flight -= 1
            self._apply_authenticated(token, claims)
            logger.log_auth_event("login", True, user_email=email, claimed_role=claims.role)
            return claims
        except BaseException:
            # cancellation or an unexpected fault: leave no half state behind
            if self.state == SessionState.AUTHENTICATING:
                self._in_flight = max(0, self._in_flight - 1)
                self._commit(**self._cleared_fields())
            raise

    def logout(self) -> None:
        """Forget the session locally; the server is not contacted"""
        was_authenticated = self.token is not None
        self._clear_persisted()
        set_user_id(None)
        set_role(None)
        self._commit(**self._cleared_fields(), error=None)
        if was_authenticated:
            logger.log_auth_event("logout", True)

    def clear_error(self) -> None:
        self._commit(error=None)

    # ==================== Queries ====================

    @property
    def is_authenticated(self) -> bool:
        """Token present and unexpired right now"""
        return self.token is not None and not is_expired(self.token, self.clock())

    @property
    def claims(self) -> Optional[Claims]:
        return try_decode(self.token)

    def has_role(self, role: str) -> bool:
        return self.role is not None and self.role == role

    @property
    def is_oversight(self) -> bool:
        return self.has_role(ROLE_OVERSIGHT)

    def require_token(self) -> str:
        """
        Token for an outbound call.

        An expired token ends the session here, before any request is made.
        """
        if self.token is None:
            raise UnauthenticatedError()
        if is_expired(self.token, self.clock()):
            logger.log_auth_event("expiry", False, reason="token expired")
            self.logout()
            raise UnauthenticatedError("Session expired. Please login again.")
        return self.token

    def auth_headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.require_token()}"}
