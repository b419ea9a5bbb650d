"""Memoized acquisition of the single tab store connection.

``ConnectionManager`` hands every caller the same connection and makes sure
the schema is current before anyone sees it. The state machine is::

    UNSTARTED -> PENDING -> READY -> CLOSED
                        \\-> FAILED -> (reset) -> UNSTARTED

FAILED is sticky: later calls re-raise the same error until ``reset()`` is
called. CLOSED is terminal for the process; ``acquire()`` afterwards raises
StoreClosedError, so the teardown subscription is taken at most once.
"""

from __future__ import annotations

import asyncio
import enum
import logging
import threading
from concurrent.futures import Future
from concurrent.futures import wait as wait_futures
from contextlib import ExitStack
from typing import Callable

from squirrel.lifecycle import PROFILE_TEARDOWN, EventSource
from squirrel.storage.connection import StoreConnection, open_store
from squirrel.storage.errors import (
    OpenError,
    SchemaInitError,
    StoreClosedError,
    StoreUnavailableError,
    TeardownError,
)
from squirrel.storage.schema import init_schema

logger = logging.getLogger(__name__)

Opener = Callable[[str], StoreConnection]
Initializer = Callable[[StoreConnection], bool]


class AcquisitionState(enum.Enum):
    UNSTARTED = "unstarted"
    PENDING = "pending"
    READY = "ready"
    FAILED = "failed"
    CLOSED = "closed"


class ConnectionManager:
    """Owns at most one open store connection for the process.

    The first acquisition opens the store and initializes the schema on a
    dedicated worker thread. Every caller, including ones that arrive while
    that work is in flight, waits on the same future and receives the same
    connection or the same exception.
    """

    def __init__(
        self,
        database_path: str,
        events: EventSource,
        *,
        opener: Opener = open_store,
        initializer: Initializer = init_schema,
    ) -> None:
        self._database_path = database_path
        self._events = events
        self._opener = opener
        self._initializer = initializer

        self._lock = threading.Lock()
        self._state = AcquisitionState.UNSTARTED
        self._future: Future[StoreConnection] | None = None
        self._connection: StoreConnection | None = None
        self._migration_occurred = False
        self._error: BaseException | None = None
        self._resources: ExitStack | None = None
        self._teardown_registered = False

    @property
    def database_path(self) -> str:
        return self._database_path

    @property
    def state(self) -> AcquisitionState:
        with self._lock:
            return self._state

    @property
    def error(self) -> BaseException | None:
        with self._lock:
            return self._error

    # --- Acquisition ---

    def acquire_future(self) -> Future[StoreConnection]:
        """Return the shared future for the current acquisition, starting it if needed."""
        with self._lock:
            if self._state is AcquisitionState.CLOSED:
                closed: Future[StoreConnection] = Future()
                closed.set_exception(StoreClosedError(self._database_path))
                return closed
            if self._state is AcquisitionState.UNSTARTED:
                future: Future[StoreConnection] = Future()
                self._future = future
                self._state = AcquisitionState.PENDING
                threading.Thread(
                    target=self._acquire,
                    args=(future,),
                    name="squirrel-store-open",
                    daemon=True,
                ).start()
                return future
            return self._future

    def acquire(self, timeout: float | None = None) -> StoreConnection:
        """Return the ready connection, blocking until the acquisition settles.

        Raises an OpenError subclass on failure and TimeoutError if
        ``timeout`` elapses first; a timed-out acquisition keeps running.
        """
        with self._lock:
            if self._state is AcquisitionState.READY and self._connection is not None:
                return self._connection
        return self.acquire_future().result(timeout)

    async def acquire_async(self) -> StoreConnection:
        return await asyncio.wrap_future(self.acquire_future())

    def migration_occurred(self, timeout: float | None = None) -> bool:
        """Whether the settled acquisition created or migrated the schema."""
        self.acquire(timeout)
        with self._lock:
            return self._migration_occurred

    def _acquire(self, future: Future[StoreConnection]) -> None:
        # Runs on the worker thread: every outcome must settle the future.
        try:
            connection = self._opener(self._database_path)
        except BaseException as exc:
            error: BaseException = exc
            if not isinstance(exc, OpenError):
                error = StoreUnavailableError(self._database_path, exc)
            self._settle_failed(future, error)
            return

        try:
            migrated = self._initializer(connection)
            self._settle_ready(future, connection, migrated)
        except BaseException as exc:
            self._release_after_failure(connection)
            error = exc
            if not isinstance(exc, OpenError):
                error = SchemaInitError(self._database_path, exc)
            self._settle_failed(future, error)

    def _release_after_failure(self, connection: StoreConnection) -> None:
        with self._lock:
            resources, self._resources = self._resources, None
            self._connection = None
        if resources is not None:
            resources.close()
        else:
            self._discard(connection)

    def _settle_ready(
        self,
        future: Future[StoreConnection],
        connection: StoreConnection,
        migrated: bool,
    ) -> None:
        resources = ExitStack()
        resources.callback(self._discard, connection)
        with self._lock:
            if not self._teardown_registered:
                resources.enter_context(
                    self._events.subscription(PROFILE_TEARDOWN, self._on_teardown)
                )
                self._teardown_registered = True
            self._resources = resources
            self._connection = connection
            self._migration_occurred = migrated
            self._state = AcquisitionState.READY
        logger.info(
            "Store ready at %s (schema version %s, migrated=%s)",
            self._database_path,
            connection.schema_version,
            migrated,
        )
        future.set_result(connection)

    def _settle_failed(self, future: Future[StoreConnection], error: BaseException) -> None:
        with self._lock:
            self._error = error
            self._state = AcquisitionState.FAILED
        logger.error("Store acquisition failed: %s", error)
        if not future.done():
            future.set_exception(error)

    def reset(self) -> bool:
        """Allow a new acquisition after a failure. Returns False unless FAILED."""
        with self._lock:
            if self._state is not AcquisitionState.FAILED:
                return False
            self._state = AcquisitionState.UNSTARTED
            self._future = None
            self._error = None
        logger.info("Store acquisition reset after failure")
        return True

    # --- Teardown ---

    def close(self, timeout: float | None = None) -> bool:
        """Close the connection once any pending acquisition has settled.

        Unsubscribes from teardown notifications and closes the connection
        exactly once. Returns True if a connection was closed.
        """
        with self._lock:
            future = self._future
        if future is not None:
            wait_futures([future], timeout=timeout)

        with self._lock:
            if self._state is not AcquisitionState.READY:
                return False
            resources, self._resources = self._resources, None
            self._connection = None
            self._state = AcquisitionState.CLOSED

        if resources is not None:
            resources.close()
        logger.info("Store connection closed at %s", self._database_path)
        return True

    def _on_teardown(self) -> None:
        self.close()

    def _discard(self, connection: StoreConnection) -> None:
        try:
            connection.close()
        except TeardownError:
            logger.exception("Failed to close store connection at %s", self._database_path)
