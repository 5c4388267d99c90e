"""
UI controller: owns the worker's lifecycle and the page's presentation state.
"""
import threading
from typing import Any, Callable, Dict, Optional

from .log import get_logger
from .messages import (
    Answer,
    Complete,
    Failure,
    Loading,
    QARequest,
    Ready,
    Result,
    WorkerError,
    WorkerMessage,
)
from .worker import InferenceWorker

logger = get_logger(__name__)

WorkerFactory = Callable[[], InferenceWorker]


class QAController:
    """
    Bridges worker events to view state and gates submission on readiness.

    Worker events arrive on the worker's delivery thread while the web layer
    reads and writes from request threads, so state sits behind a lock.
    """

    def __init__(self, worker_factory: WorkerFactory, single_flight: bool = False):
        self.worker_factory = worker_factory
        self.single_flight = single_flight
        self.worker: Optional[InferenceWorker] = None
        self.question = ""
        self.context = ""
        self.ready = False
        self.progress: Optional[int] = None
        self.result: Optional[Result] = None
        self.in_flight = 0
        self._lock = threading.Lock()

    def mount(self) -> None:
        with self._lock:
            if self.worker is not None:
                return
            worker = self.worker_factory()
            self.worker = worker
        worker.add_listener(self.on_message)
        worker.start()

    def unmount(self) -> None:
        with self._lock:
            worker, self.worker = self.worker, None
        if worker is None:
            return
        worker.remove_listener(self.on_message)
        worker.terminate()

    def on_message(self, message: WorkerMessage) -> None:
        logger.debug("worker message: %r", message)
        with self._lock:
            if isinstance(message, Loading):
                self.ready = False
                self.progress = message.progress
            elif isinstance(message, Ready):
                self.ready = True
                self.progress = None
            elif isinstance(message, Complete):
                self.result = message.result
                self.in_flight = max(0, self.in_flight - 1)
            elif isinstance(message, Failure):
                logger.error("Error from worker: %s", message.error.error_message)
                self.result = message.error
                self.in_flight = max(0, self.in_flight - 1)

    def set_question(self, text: str) -> None:
        with self._lock:
            self.question = text

    def set_context(self, text: str) -> None:
        with self._lock:
            self.context = text

    def _can_submit(self) -> bool:
        if self.worker is None or not self.ready:
            return False
        if not self.question.strip() or not self.context.strip():
            return False
        return not (self.single_flight and self.in_flight > 0)

    @property
    def can_submit(self) -> bool:
        with self._lock:
            return self._can_submit()

    @property
    def busy(self) -> bool:
        with self._lock:
            return self.in_flight > 0

    def submit(self, question: Optional[str] = None, context: Optional[str] = None) -> bool:
        """Send one request with the current fields; False when submission is disabled."""
        with self._lock:
            if question is not None:
                self.question = question
            if context is not None:
                self.context = context
            if not self._can_submit():
                return False
            self.worker.post_message(QARequest(question=self.question, context=self.context))
            self.in_flight += 1
            self.result = None
            return True

    def view(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "ready": self.ready,
                "progress": self.progress,
                "question": self.question,
                "context": self.context,
                "can_submit": self._can_submit(),
                "busy": self.in_flight > 0,
                "answer": self.result.to_dict() if isinstance(self.result, Answer) else None,
                "error": self.result.to_dict() if isinstance(self.result, WorkerError) else None,
            }
