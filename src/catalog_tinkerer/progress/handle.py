"""Cancellable, observable progress handle.

One producer (a decode or an export job) mutates a handle; any number of
observers poll it or subscribe to change notifications. Every mutation is
made under a single lock so ``advance``, ``cancel`` and ``finish`` are
linearizable with respect to readers. Observers are notified outside the
state lock, so a slow observer delays only the caller that triggered it,
never a reader.

Example:
    handle = ProgressHandle(total=3)
    handle.advance()
    handle.fraction_complete  # 0.333...
    handle.cancel()
    handle.finish(DecodeCancelled())
    handle.state  # OperationState.CANCELLED

"""

from __future__ import annotations

import threading
from collections.abc import Callable
from enum import Enum
from typing import Any

from loguru import logger
from pydantic import BaseModel, ConfigDict

from ..errors import OperationCancelled


class OperationState(str, Enum):
    """Lifecycle shared by decode and both export styles."""

    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (OperationState.COMPLETED, OperationState.FAILED, OperationState.CANCELLED)


class ProgressSnapshot(BaseModel):
    """Consistent, immutable view of a handle at one instant."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    label: str
    state: OperationState
    fraction_complete: float
    completed: int
    total: int | None
    cancelled: bool
    finished: bool
    error: BaseException | None = None

    @property
    def indeterminate(self) -> bool:
        return self.total is None


Observer = Callable[[ProgressSnapshot], Any]


class ProgressHandle:
    """Fraction-complete value with cooperative cancellation."""

    def __init__(self, total: int | None = None, label: str = "operation"):
        """Create a handle.

        Args:
            total: Number of units of work, or None for indeterminate mode
            label: Human-readable name used in logs

        """
        if total is not None and total < 0:
            raise ValueError("total must be non-negative")
        self.label = label
        self._lock = threading.Lock()
        self._delivery_lock = threading.RLock()
        self._done = threading.Event()
        self._observers: list[Observer] = []
        self._total = total
        self._completed = 0
        self._fraction = 0.0
        self._started = False
        self._cancelled = False
        self._finished = False
        self._state = OperationState.IDLE
        self._error: BaseException | None = None
        self._result: Any = None

    # --- producer side ---

    def start(self) -> None:
        """Move the handle from idle to running."""
        with self._lock:
            if self._started or self._finished:
                return
            self._started = True
            self._state = OperationState.RUNNING
        self._notify()

    def set_total(self, total: int) -> None:
        """Leave indeterminate mode (or resize the job).

        The fraction is recomputed but never allowed to move backwards.
        """
        if total < 0:
            raise ValueError("total must be non-negative")
        with self._lock:
            if self._finished:
                return
            self._total = total
            self._recompute_locked()
        self._notify()

    def advance(self, by: int = 1) -> None:
        """Record completed units. No-op once cancelled or finished."""
        if by < 0:
            raise ValueError("advance only moves forward")
        with self._lock:
            if self._finished or self._cancelled:
                return
            if not self._started:
                self._started = True
                self._state = OperationState.RUNNING
            self._completed += by
            self._recompute_locked()
        self._notify()

    def finish(self, error: BaseException | None = None, result: Any = None) -> bool:
        """Enter the terminal state. Only the first call has any effect.

        Args:
            error: Whole-operation failure or cancellation error, if any
            result: Operation payload (record count, export report)

        Returns:
            True if this call finished the handle, False if it was already finished

        """
        with self._lock:
            if self._finished:
                return False
            self._finished = True
            self._error = error
            self._result = result
            if isinstance(error, OperationCancelled) or (error is None and self._cancelled):
                self._cancelled = True
                self._state = OperationState.CANCELLED
            elif error is not None:
                self._state = OperationState.FAILED
            else:
                self._state = OperationState.COMPLETED
                self._fraction = 1.0
            snapshot = self._snapshot_locked()
        logger.debug(
            "{} finished: state={}, fraction={:.2f}",
            self.label,
            snapshot.state.value,
            snapshot.fraction_complete,
        )
        # Observers see the terminal state before any waiter is released.
        self._notify()
        self._done.set()
        return True

    # --- any caller ---

    def cancel(self) -> None:
        """Request cancellation.

        Idempotent; the producer honours it at its next checkpoint. A handle
        that already finished is left untouched.
        """
        with self._lock:
            if self._finished or self._cancelled:
                return
            self._cancelled = True
        logger.debug("Cancellation requested for {}", self.label)
        self._notify()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until finished. Never call this on the interactive thread."""
        return self._done.wait(timeout)

    def subscribe(self, observer: Observer) -> Callable[[], None]:
        """Register an observer called with a snapshot after every change.

        The observer is called once immediately with the current snapshot.
        Later deliveries run synchronously on the thread that made the change,
        one at a time, so a slow observer stalls that producer (an export
        worker or the decode thread) until it returns. Observers that need to
        do real work should hand it off; pollers are never blocked.

        Returns:
            Callable that removes the observer

        """
        with self._delivery_lock:
            with self._lock:
                self._observers.append(observer)
                snapshot = self._snapshot_locked()
            self._call(observer, snapshot)

        def unsubscribe() -> None:
            with self._lock:
                if observer in self._observers:
                    self._observers.remove(observer)

        return unsubscribe

    def snapshot(self) -> ProgressSnapshot:
        with self._lock:
            return self._snapshot_locked()

    @property
    def fraction_complete(self) -> float:
        with self._lock:
            return self._fraction

    @property
    def completed(self) -> int:
        with self._lock:
            return self._completed

    @property
    def total(self) -> int | None:
        with self._lock:
            return self._total

    @property
    def indeterminate(self) -> bool:
        with self._lock:
            return self._total is None

    @property
    def cancelled(self) -> bool:
        with self._lock:
            return self._cancelled

    @property
    def finished(self) -> bool:
        with self._lock:
            return self._finished

    @property
    def state(self) -> OperationState:
        with self._lock:
            return self._state

    @property
    def error(self) -> BaseException | None:
        with self._lock:
            return self._error

    @property
    def result(self) -> Any:
        with self._lock:
            return self._result

    def __repr__(self) -> str:
        snap = self.snapshot()
        return (
            f"ProgressHandle(label={snap.label!r}, state={snap.state.value}, "
            f"fraction={snap.fraction_complete:.2f}, cancelled={snap.cancelled})"
        )

    # --- internals ---

    def _recompute_locked(self) -> None:
        if self._total is None:
            return
        if self._total == 0:
            fraction = 1.0
        else:
            fraction = min(1.0, self._completed / self._total)
        # Readers must never see the fraction decrease.
        self._fraction = max(self._fraction, fraction)

    def _snapshot_locked(self) -> ProgressSnapshot:
        return ProgressSnapshot(
            label=self.label,
            state=self._state,
            fraction_complete=self._fraction,
            completed=self._completed,
            total=self._total,
            cancelled=self._cancelled,
            finished=self._finished,
            error=self._error,
        )

    def _notify(self) -> None:
        # Deliveries are serialised and each takes a fresh snapshot, so no
        # observer ever sees an older state after a newer one.
        with self._delivery_lock:
            with self._lock:
                observers = list(self._observers)
                snapshot = self._snapshot_locked()
            for observer in observers:
                self._call(observer, snapshot)

    @staticmethod
    def _call(observer: Observer, snapshot: ProgressSnapshot) -> None:
        try:
            observer(snapshot)
        except Exception as e:
            logger.warning("Progress observer {} raised: {}", observer, e)
