"""
Identity provider interface and a GoTrue-compatible HTTP client.

Key patterns:
1. Every remote-backed store reads the signed-in user through `get_user()`
2. Session changes are pushed to subscribers registered with `on_session_change`
3. No global "current user" state - the client instance is passed explicitly

Events delivered to subscribers: INITIAL_SESSION (on subscribe), SIGNED_IN,
SIGNED_OUT, USER_UPDATED.
"""

import logging
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any, Protocol

import httpx
from jose import JWTError, jwt

from certtrack.config import Settings, get_settings
from certtrack.errors import AuthError, RemoteError
from certtrack.schemas.auth import AuthSession, SessionUser, UserAttributes

logger = logging.getLogger(__name__)

SessionListener = Callable[[str, AuthSession | None], None]


class IdentityProvider(Protocol):
    """Authentication/session collaborator consumed by the stores."""

    async def get_session(self) -> AuthSession | None: ...

    async def get_user(self) -> SessionUser | None: ...

    def on_session_change(self, callback: SessionListener) -> Callable[[], None]: ...

    async def sign_in(self, email: str, password: str) -> AuthSession: ...

    async def sign_up(self, email: str, password: str, data: dict[str, Any] | None = None) -> SessionUser: ...

    async def sign_out(self) -> None: ...

    async def update_user(self, attributes: UserAttributes) -> SessionUser: ...


def token_expiry(access_token: str) -> datetime | None:
    """
    Read the exp claim of an access token.

    The signature is not checked here; the identity provider verifies its
    own tokens on every request.
    """
    try:
        claims = jwt.get_unverified_claims(access_token)
    except JWTError:
        return None
    exp = claims.get("exp")
    if exp is None:
        return None
    return datetime.fromtimestamp(int(exp), tz=timezone.utc)


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict):
        for key in ("error_description", "msg", "message", "error"):
            if body.get(key):
                return str(body[key])
    return response.reason_phrase


class GoTrueIdentityClient:
    """IdentityProvider speaking the GoTrue REST API over httpx."""

    def __init__(self, settings: Settings | None = None, client: httpx.AsyncClient | None = None):
        settings = settings or get_settings()
        self._client = client or httpx.AsyncClient(
            base_url=settings.auth_url,
            headers={"apikey": settings.auth_api_key},
            timeout=settings.remote_timeout_seconds,
        )
        self._session: AuthSession | None = None
        self._listeners: list[SessionListener] = []

    # =========================================================================
    # SESSION STATE
    # =========================================================================

    async def get_session(self) -> AuthSession | None:
        session = self._session
        if session is None:
            return None
        if session.expires_at is not None and session.expires_at <= datetime.now(timezone.utc):
            logger.info("Session for %s expired", session.user.id)
            self._set_session("SIGNED_OUT", None)
            return None
        return session

    async def get_user(self) -> SessionUser | None:
        session = await self.get_session()
        return session.user if session else None

    def on_session_change(self, callback: SessionListener) -> Callable[[], None]:
        self._listeners.append(callback)
        callback("INITIAL_SESSION", self._session)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _set_session(self, event: str, session: AuthSession | None) -> None:
        self._session = session
        for listener in list(self._listeners):
            try:
                listener(event, session)
            except Exception:
                logger.exception("Session listener failed on %s", event)

    # =========================================================================
    # REQUESTS
    # =========================================================================

    async def _request(self, method: str, url: str, *, token: str | None = None, **kwargs) -> Any:
        headers = {"Authorization": f"Bearer {token}"} if token else None
        try:
            response = await self._client.request(method, url, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            logger.error("Identity request %s %s failed: %s", method, url, e)
            raise RemoteError(f"Identity service unreachable: {e}") from e

        if response.status_code >= 400:
            message = _error_message(response)
            logger.warning("Identity request %s %s rejected (%d): %s", method, url, response.status_code, message)
            raise AuthError(message)
        if not response.content:
            return None
        return response.json()

    def _session_from(self, body: dict[str, Any]) -> AuthSession:
        access_token = body["access_token"]
        expires_at = token_expiry(access_token)
        if expires_at is None and body.get("expires_in"):
            expires_at = datetime.now(timezone.utc) + timedelta(seconds=int(body["expires_in"]))
        return AuthSession(
            access_token=access_token,
            refresh_token=body.get("refresh_token"),
            expires_at=expires_at,
            user=SessionUser.model_validate(body["user"]),
        )

    async def _require_token(self) -> str:
        session = await self.get_session()
        if session is None:
            raise AuthError("No authenticated user found")
        return session.access_token

    # =========================================================================
    # OPERATIONS
    # =========================================================================

    async def sign_in(self, email: str, password: str) -> AuthSession:
        body = await self._request(
            "POST",
            "/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )
        session = self._session_from(body)
        self._set_session("SIGNED_IN", session)
        return session

    async def sign_up(self, email: str, password: str, data: dict[str, Any] | None = None) -> SessionUser:
        payload: dict[str, Any] = {"email": email, "password": password}
        if data:
            payload["data"] = data
        body = await self._request("POST", "/signup", json=payload)

        # With auto-confirm on, sign-up answers with a full session
        if "access_token" in body:
            session = self._session_from(body)
            self._set_session("SIGNED_IN", session)
            return session.user
        return SessionUser.model_validate(body)

    async def sign_out(self) -> None:
        session = self._session
        if session is not None:
            await self._request("POST", "/logout", token=session.access_token)
        self._set_session("SIGNED_OUT", None)

    async def update_user(self, attributes: UserAttributes) -> SessionUser:
        token = await self._require_token()
        body = await self._request(
            "PUT",
            "/user",
            token=token,
            json=attributes.model_dump(exclude_none=True),
        )
        user = SessionUser.model_validate(body)
        if self._session is not None:
            self._set_session("USER_UPDATED", self._session.model_copy(update={"user": user}))
        return user

    async def aclose(self) -> None:
        await self._client.aclose()
