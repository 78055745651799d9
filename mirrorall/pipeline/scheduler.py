"""Bounded-concurrency worker pool for mirror operations.

Every task runs on its own short-lived thread. Admission is gated by a
bounded semaphore sized to ``max_concurrency`` (0 means no limit), finished
workers are collected before each admission, and a final blocking drain joins
whatever is still running so every task yields exactly one outcome.

A ThreadPoolExecutor is not used because it keeps its threads alive and hands
them the next task; here a worker lives for exactly one repository.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Sequence

from ..crawler.models import MirrorOutcome
from ..errors import WorkerFault

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MirrorTask:
    """A pending mirror operation for one repository."""
    full_name: str
    action: Callable[[], MirrorOutcome]


@dataclass
class _Worker:
    task: MirrorTask
    thread: threading.Thread | None = None
    outcome: MirrorOutcome | None = None


class MirrorScheduler:
    """Runs mirror tasks on a bounded pool of concurrent workers.

    Usage::

        scheduler = MirrorScheduler(max_concurrency=4)
        outcomes = scheduler.run(tasks)
    """

    def __init__(
        self,
        max_concurrency: int = 0,
        on_start: Callable[[MirrorTask], None] | None = None,
        on_complete: Callable[[MirrorOutcome], None] | None = None,
    ):
        if max_concurrency < 0:
            raise ValueError("max_concurrency must be >= 0")
        self.max_concurrency = max_concurrency
        self.on_start = on_start
        self.on_complete = on_complete
        self._lock = threading.Lock()
        self._running = 0
        self._peak_running = 0

    @property
    def running(self) -> int:
        """Number of workers currently executing a task."""
        with self._lock:
            return self._running

    @property
    def peak_running(self) -> int:
        """Highest number of simultaneously running workers seen so far."""
        with self._lock:
            return self._peak_running

    def run(
        self,
        tasks: Sequence[MirrorTask],
        on_start: Callable[[MirrorTask], None] | None = None,
        on_complete: Callable[[MirrorOutcome], None] | None = None,
    ) -> list[MirrorOutcome]:
        """Run every task and return one outcome per task, in completion order.

        Hooks given here replace the ones set on the scheduler for this run only.
        """
        hooks = (on_start or self.on_start, on_complete or self.on_complete)
        gate = (
            threading.BoundedSemaphore(self.max_concurrency)
            if self.max_concurrency > 0
            else None
        )
        active: list[_Worker] = []
        outcomes: list[MirrorOutcome] = []

        for task in tasks:
            self._drain(active, outcomes, block=False)
            if gate is not None:
                gate.acquire()

            worker = _Worker(task=task)
            worker.thread = threading.Thread(
                target=self._work,
                args=(worker, gate, hooks),
                name=f"mirror-{task.full_name}",
                daemon=True,
            )
            with self._lock:
                self._running += 1
                self._peak_running = max(self._peak_running, self._running)
            worker.thread.start()
            active.append(worker)

        self._drain(active, outcomes, block=True)
        return outcomes

    def _work(
        self,
        worker: _Worker,
        gate: threading.BoundedSemaphore | None,
        hooks: tuple,
    ) -> None:
        """Execute one task (runs in a worker thread)."""
        task = worker.task
        on_start, on_complete = hooks
        try:
            try:
                if on_start:
                    on_start(task)
                outcome = task.action()
                if not isinstance(outcome, MirrorOutcome):
                    raise TypeError(
                        f"task returned {type(outcome).__name__}, not MirrorOutcome"
                    )
            except Exception as exc:
                logger.debug("Worker for %s crashed", task.full_name, exc_info=True)
                outcome = MirrorOutcome(
                    full_name=task.full_name,
                    strategy=None,
                    error=WorkerFault(task.full_name, exc),
                )
            worker.outcome = outcome
            if on_complete:
                on_complete(outcome)
        finally:
            with self._lock:
                self._running -= 1
            if gate is not None:
                gate.release()

    def _drain(
        self,
        active: list[_Worker],
        outcomes: list[MirrorOutcome],
        block: bool,
    ) -> None:
        """Collect finished workers; with *block*, wait for all of them."""
        pending = []
        for worker in active:
            if block:
                worker.thread.join()
            if worker.thread.is_alive():
                pending.append(worker)
                continue
            outcomes.append(worker.outcome or self._lost(worker.task))
        active[:] = pending

    @staticmethod
    def _lost(task: MirrorTask) -> MirrorOutcome:
        # The thread ended without storing an outcome (e.g. a BaseException).
        return MirrorOutcome(
            full_name=task.full_name,
            strategy=None,
            error=WorkerFault(
                task.full_name, RuntimeError("worker exited without an outcome")
            ),
        )
