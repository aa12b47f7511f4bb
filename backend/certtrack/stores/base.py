"""
Observable in-memory stores.

A store holds one immutable pydantic state object. Every transition builds a
new state with `set_state(**changes)` and hands it to subscribers, so a
reader never sees half of an update. Remote-backed stores add the session
user lookup, a per-call timeout and the loading/error bookkeeping shared by
all their operations.

reset() starts a new epoch. An operation is bound to the epoch it started
in, and whatever it tries to publish after a reset is dropped, so results
of a signed-out session never land in the cleared state.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable, Iterator, Mapping
from contextlib import asynccontextmanager, contextmanager
from contextvars import ContextVar
from enum import Enum
from typing import Any, Generic, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as SchemaError

from certtrack.config import get_settings
from certtrack.errors import AuthError, RemoteError, describe_error
from certtrack.schemas.auth import SessionUser
from certtrack.services.identity import IdentityProvider
from certtrack.services.remote import RemoteStore

logger = logging.getLogger(__name__)

StateT = TypeVar("StateT", bound=BaseModel)
ModelT = TypeVar("ModelT", bound=BaseModel)
T = TypeVar("T")

# id(store) -> epoch the running operation of that store started in
_bound_epochs: ContextVar[Mapping[int, int] | None] = ContextVar("bound_epochs", default=None)


class Store(Generic[StateT]):
    """Holds a state object and notifies subscribers on every transition."""

    def __init__(self, initial_state: StateT | None = None):
        self._state: StateT = initial_state if initial_state is not None else self.baseline()
        self._listeners: list[Callable[[StateT], None]] = []
        self._epoch = 0

    def baseline(self) -> StateT:
        """Empty state the store returns to on reset()."""
        raise NotImplementedError

    @property
    def state(self) -> StateT:
        return self._state

    def subscribe(self, listener: Callable[[StateT], None]) -> Callable[[], None]:
        """Register a listener; returns a callable that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def set_state(self, **changes: Any) -> None:
        if self._is_stale():
            logger.debug("Dropping %s update from before the last reset", type(self).__name__)
            return
        self._publish(self._state.model_copy(update=changes))

    def reset(self) -> None:
        self._epoch += 1
        self._publish(self.baseline())

    @contextmanager
    def _bound(self, epoch: int | None = None) -> Iterator[int]:
        """
        Bind state updates made in this context to an epoch.

        Defaults to the current epoch. A context that is already bound for
        this store keeps its outer epoch, so nested operations cannot revive
        a stale one.
        """
        bound = _bound_epochs.get() or {}
        epoch = bound.get(id(self), self._epoch if epoch is None else epoch)
        token = _bound_epochs.set({**bound, id(self): epoch})
        try:
            yield epoch
        finally:
            _bound_epochs.reset(token)

    def _is_stale(self) -> bool:
        epoch = (_bound_epochs.get() or {}).get(id(self))
        return epoch is not None and epoch != self._epoch

    def _publish(self, state: StateT) -> None:
        self._state = state
        for listener in list(self._listeners):
            listener(state)


def validate_rows(model: type[ModelT], rows: Iterable[Mapping[str, Any]], table: str) -> list[ModelT]:
    """Validate remote rows against their schema at the store boundary."""
    try:
        return [model.model_validate(row) for row in rows]
    except SchemaError as e:
        logger.error("Malformed %s row: %s", table, e)
        raise RemoteError(f"Received malformed {table} data") from e


class RemoteBackedStore(Store[StateT]):
    """Store whose state mirrors user-scoped rows of the remote store."""

    def __init__(
        self,
        identity: IdentityProvider,
        remote: RemoteStore,
        *,
        timeout: float | None = None,
        initial_state: StateT | None = None,
    ):
        super().__init__(initial_state)
        self._identity = identity
        self._remote = remote
        self._timeout = timeout if timeout is not None else get_settings().remote_timeout_seconds

    async def _require_user(self) -> SessionUser:
        user = await self._call(self._identity.get_user())
        if user is None:
            raise AuthError("No authenticated user found")
        return user

    async def _call(self, awaitable: Awaitable[T]) -> T:
        """Await one remote call, bounded by the store's timeout."""
        try:
            return await asyncio.wait_for(awaitable, self._timeout)
        except asyncio.TimeoutError:
            raise RemoteError(f"Request timed out after {self._timeout:g}s") from None

    @asynccontextmanager
    async def _operation(self, failure: str, *, prefix: str = "", reraise: bool = False):
        """
        Bracket one store operation.

        Sets loading for the duration and clears the previous error. A failure
        is logged and recorded in `error`; it is swallowed unless `reraise`.
        Cancellation passes through, still clearing loading. Once the store
        is reset, nothing the operation publishes is kept, its error included.
        """
        with self._bound():
            self.set_state(loading=True, error=None)
            try:
                yield
            except Exception as e:
                logger.error("%s: %s", failure, e, exc_info=True)
                self.set_state(error=f"{prefix}{describe_error(e, failure)}")
                if reraise:
                    raise
            finally:
                self.set_state(loading=False)


def row_values(model: BaseModel, **dump_options: Any) -> dict[str, Any]:
    """Column values for a remote write; enums are sent as their plain values."""
    return {
        key: value.value if isinstance(value, Enum) else value
        for key, value in model.model_dump(**dump_options).items()
    }
