"""
Outbox de persistance.

Les mutations sont appliquées en mémoire tout de suite; les écritures backend
sont mises en file et exécutées par un seul thread worker, dans l'ordre.
Un job qui échoue est loggé et compté, jamais relancé vers l'appelant.
"""

import logging
import queue
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Tuple

logger = logging.getLogger(__name__)


@dataclass
class OutboxJob:
    name: str
    fn: Callable[..., Any]
    args: Tuple[Any, ...] = ()


@dataclass
class OutboxStats:
    submitted: int = 0
    succeeded: int = 0
    failures: List[Tuple[str, str]] = field(default_factory=list)  # (job, erreur)


class PersistenceOutbox:
    def __init__(self, inline: bool = False):
        """inline=True exécute les jobs dans le thread appelant (tests)."""
        self.inline = inline
        self.stats = OutboxStats()
        self._lock = threading.Lock()
        self._queue: Optional["queue.Queue[OutboxJob | None]"] = None
        self._worker: Optional[threading.Thread] = None

        if not inline:
            self._queue = queue.Queue()
            self._worker = threading.Thread(target=self._run, name="taskpilot-outbox", daemon=True)
            self._worker.start()

    @property
    def failures(self) -> List[Tuple[str, str]]:
        with self._lock:
            return list(self.stats.failures)

    def submit(self, name: str, fn: Callable[..., Any], *args: Any) -> None:
        job = OutboxJob(name=name, fn=fn, args=args)
        with self._lock:
            self.stats.submitted += 1
        if self._queue is None:
            self._execute(job)
        else:
            self._queue.put(job)

    def _execute(self, job: OutboxJob) -> None:
        try:
            result = job.fn(*job.args)
        except Exception as e:
            # un job ne doit jamais tuer le worker
            logger.exception("Outbox job %s crashed", job.name)
            self._record_failure(job, repr(e))
            return
        # les repositories retournent False quand le backend a échoué
        if result is False:
            self._record_failure(job, "backend write failed")
        else:
            with self._lock:
                self.stats.succeeded += 1

    def _record_failure(self, job: OutboxJob, reason: str) -> None:
        with self._lock:
            self.stats.failures.append((job.name, reason))
        logger.warning("Persistence job %s failed: %s", job.name, reason)

    def _run(self) -> None:
        assert self._queue is not None
        while True:
            job = self._queue.get()
            try:
                if job is None:
                    return
                self._execute(job)
            finally:
                self._queue.task_done()

    def flush(self) -> None:
        """Attend que la file soit vide."""
        if self._queue is not None:
            self._queue.join()

    def close(self) -> None:
        if self._queue is None or self._worker is None:
            return
        self._queue.put(None)
        self._worker.join(timeout=5)
        self._queue = None
        self._worker = None
