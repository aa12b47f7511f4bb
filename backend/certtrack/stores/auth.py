"""
Session projection and sign-in/sign-out lifecycle.

The auth store mirrors the identity provider's session and owns the rule that
no user's data outlives their session: signing out, or a different user
signing in, resets every remote-backed store. The local document collection
belongs to the device, not the account, and is never reset here.
"""

import logging
from collections.abc import Callable, Sequence
from uuid import UUID

from pydantic import BaseModel
from pydantic import ValidationError as SchemaError

from certtrack.errors import ValidationError
from certtrack.schemas.auth import MIN_PASSWORD_LENGTH, AuthSession, SessionUser, SignUpRequest, UserAttributes
from certtrack.services.identity import IdentityProvider
from certtrack.services.remote import RemoteStore
from certtrack.stores.base import RemoteBackedStore, Store

logger = logging.getLogger(__name__)


class AuthState(BaseModel):
    user: SessionUser | None = None
    # True until the identity provider has reported the first session
    loading: bool = True


class AuthStore(RemoteBackedStore[AuthState]):
    """Signed-in user projection. Auth operations raise instead of recording errors."""

    def __init__(
        self,
        identity: IdentityProvider,
        remote: RemoteStore,
        user_stores: Sequence[Store] = (),
        *,
        timeout: float | None = None,
    ):
        super().__init__(identity, remote, timeout=timeout)
        self._user_stores = list(user_stores)
        self._last_user_id: UUID | None = None
        self._unsubscribe: Callable[[], None] | None = identity.on_session_change(self._on_session_change)

    def baseline(self) -> AuthState:
        return AuthState()

    def close(self) -> None:
        """Stop following session changes."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def reset_user_stores(self) -> None:
        for store in self._user_stores:
            store.reset()

    def _on_session_change(self, event: str, session: AuthSession | None) -> None:
        user = session.user if session else None
        if user is not None:
            if self._last_user_id is not None and user.id != self._last_user_id:
                logger.info("User changed from %s to %s, clearing stores", self._last_user_id, user.id)
                self.reset_user_stores()
            self._last_user_id = user.id
        logger.debug("Session event %s (user %s)", event, user.id if user else None)
        self._publish(AuthState(user=user, loading=False))

    async def sign_in(self, email: str, password: str) -> None:
        """
        Raises:
            AuthError: If the credentials are rejected
        """
        await self._call(self._identity.sign_in(email, password))

    async def sign_up(self, email: str, password: str, full_name: str) -> None:
        """
        Create an account and its profile row.

        Raises:
            ValidationError: If a field is empty or the password is too short
            AuthError: If the identity provider refuses the account
            RemoteError: If the profile row cannot be written
        """
        try:
            request = SignUpRequest(email=email, password=password, full_name=full_name)
        except SchemaError as e:
            error = e.errors()[0]
            raise ValidationError(f"Invalid {error['loc'][0]}: {error['msg']}") from e

        await self._call(
            self._identity.sign_up(request.email, request.password, data={"full_name": request.full_name})
        )
        await self._call(
            self._remote.insert("users", [{"email": request.email, "full_name": request.full_name}])
        )
        logger.info("Signed up %s", request.email)

    async def sign_out(self) -> None:
        """Clear every user-scoped store, then end the session."""
        self.reset_user_stores()
        await self._call(self._identity.sign_out())
        self.set_state(user=None)

    async def update_profile(self, *, full_name: str | None = None, email: str | None = None) -> SessionUser:
        """
        Change the display name and/or email of the signed-in account.

        Raises:
            ValidationError: If neither field is given
            AuthError: If no user is signed in or the change is refused
        """
        attributes = UserAttributes(
            email=email or None,
            data={"full_name": full_name} if full_name is not None else None,
        )
        if attributes.email is None and attributes.data is None:
            raise ValidationError("Nothing to update")
        user = await self._call(self._identity.update_user(attributes))
        self.set_state(user=user)
        return user

    async def change_password(self, new_password: str, confirm_password: str) -> None:
        """
        Raises:
            ValidationError: If the passwords differ or are too short
            AuthError: If no user is signed in or the change is refused
        """
        if new_password != confirm_password:
            raise ValidationError("New passwords do not match")
        if len(new_password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
        await self._call(self._identity.update_user(UserAttributes(password=new_password)))
        logger.info("Password changed")
