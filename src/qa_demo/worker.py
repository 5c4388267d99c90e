"""
Background inference worker.

The worker runs in its own thread and owns the question-answering pipeline.
The host talks to it only through messages: requests go into the inbox,
events come out of the outbox and are handed to the registered listeners by
a delivery thread, in the order they were emitted.

Lifecycle: UNINITIALIZED -> LOADING -> READY -> (BUSY <-> READY) -> TERMINATED
"""
import math
import queue
import threading
from enum import Enum
from typing import Any, Callable, List, Mapping, Optional

from .errors import InferenceError, InvalidMessageError, WorkerTerminatedError
from .log import get_logger
from .messages import (
    Answer,
    Complete,
    Failure,
    Loading,
    Ready,
    WorkerMessage,
    request_from_payload,
)

logger = get_logger(__name__)

MISSING_FIELDS = 'Both "question" and "context" must be provided.'
UNKNOWN_ERROR = "An unknown error occurred."
UNKNOWN_LOAD_ERROR = "Unknown error during model loading."
NO_CANDIDATES = "Pipeline returned no answer candidates."

Listener = Callable[[WorkerMessage], None]
# construct(progress_sink) -> object with infer(question, context)
PipelineFactory = Callable[[Callable[[float], None]], Any]

_STOP = object()


class WorkerState(Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"
    BUSY = "busy"
    TERMINATED = "terminated"


def to_percent(value: float) -> int:
    """Round half up and clamp to 0..100."""
    return max(0, min(100, int(math.floor(value + 0.5))))


def normalize_answer(raw: Any) -> Answer:
    """
    Collapse raw pipeline output into one Answer.

    A sequence of candidates is joined with single spaces in order, and the
    score of the last candidate is reported.
    """
    if isinstance(raw, Mapping):
        return Answer(answer=str(raw["answer"]), score=float(raw["score"]))
    candidates = list(raw)
    if not candidates:
        raise InferenceError(NO_CANDIDATES)
    text = " ".join(str(candidate["answer"]) for candidate in candidates)
    return Answer(answer=text, score=float(candidates[-1]["score"]))


class InferenceWorker:
    """Owns one lazily constructed pipeline and answers QARequest messages."""

    def __init__(self, factory: PipelineFactory, eager_load: bool = True, name: str = "qa-worker"):
        self._factory = factory
        self._eager_load = eager_load
        self._pipeline = None
        self._inbox: "queue.Queue[Any]" = queue.Queue()
        self._outbox: "queue.Queue[Any]" = queue.Queue()
        self._listeners: List[Listener] = []
        self._lock = threading.RLock()
        self._terminated = threading.Event()
        self._started = False
        self._ready_sent = False
        self.state = WorkerState.UNINITIALIZED
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)
        self._delivery = threading.Thread(target=self._deliver, name=f"{name}-delivery", daemon=True)

    # -- host side ---------------------------------------------------------

    @property
    def terminated(self) -> bool:
        return self._terminated.is_set()

    def start(self) -> None:
        with self._lock:
            if self._started:
                return
            if self.terminated:
                raise WorkerTerminatedError("worker has been terminated")
            self._started = True
        self._delivery.start()
        self._thread.start()

    def post_message(self, payload: Any) -> None:
        if self.terminated:
            raise WorkerTerminatedError("cannot post to a terminated worker")
        self._inbox.put(payload)

    def add_listener(self, listener: Listener) -> None:
        with self._lock:
            if listener not in self._listeners:
                self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def terminate(self) -> None:
        """Stop both threads. No message is delivered once this returns."""
        with self._lock:
            if self.terminated:
                return
            self._terminated.set()
            self.state = WorkerState.TERMINATED
        self._inbox.put(_STOP)
        self._outbox.put(_STOP)
        logger.info("worker terminated")

    def join(self, timeout: Optional[float] = None) -> None:
        for thread in (self._thread, self._delivery):
            if thread.is_alive() and thread is not threading.current_thread():
                thread.join(timeout)

    def _deliver(self) -> None:
        while True:
            message = self._outbox.get()
            with self._lock:
                if message is _STOP or self.terminated:
                    return
                listeners = list(self._listeners)
                for listener in listeners:
                    try:
                        listener(message)
                    except Exception:
                        logger.exception("listener failed on %s message", message.kind)

    # -- worker side -------------------------------------------------------

    def _emit(self, message: WorkerMessage) -> None:
        if not self.terminated:
            self._outbox.put(message)

    def _set_state(self, state: WorkerState) -> None:
        if not self.terminated:
            self.state = state

    def _report_progress(self, value: float) -> None:
        # no Loading after Ready
        if not self._ready_sent:
            self._emit(Loading(progress=to_percent(value)))

    def _get_pipeline(self):
        if self._pipeline is None:
            self._set_state(WorkerState.LOADING)
            self._pipeline = self._factory(self._report_progress)
            logger.info("pipeline constructed")
        return self._pipeline

    def _prewarm(self) -> None:
        if not self._eager_load:
            self._set_state(WorkerState.READY)
            self._ready_sent = True
            self._emit(Ready())
            return
        try:
            self._get_pipeline()
        except Exception as e:
            logger.error("construction error: %s", e)
            self._set_state(WorkerState.UNINITIALIZED)
            self._emit(Failure.from_text(str(e) or UNKNOWN_LOAD_ERROR))
            return
        self._set_state(WorkerState.READY)
        self._ready_sent = True
        self._emit(Ready())

    def _run(self) -> None:
        self._prewarm()
        while True:
            payload = self._inbox.get()
            if payload is _STOP or self.terminated:
                return
            try:
                self._handle(payload)
            except Exception as e:
                logger.exception("internal fault")
                self._emit(Failure.from_text(f"Internal Worker error: {e}"))

    def _handle(self, payload: Any) -> None:
        try:
            request = request_from_payload(payload)
        except InvalidMessageError as e:
            logger.warning("invalid message: %s", e)
            self._emit(Failure.from_text(f"Invalid message: {payload!r}"))
            return
        if not request.is_complete():
            logger.info("validation error: %s", MISSING_FIELDS)
            self._emit(Failure.from_text(MISSING_FIELDS))
            return

        try:
            qa = self._get_pipeline()
            self._set_state(WorkerState.BUSY)
            answer = normalize_answer(qa.infer(request.question, request.context))
        except Exception as e:
            logger.warning("inference error: %s", e)
            self._emit(Failure.from_text(str(e) or UNKNOWN_ERROR))
        else:
            logger.debug("answered score=%.4f", answer.score)
            self._emit(Complete(answer))
        finally:
            self._set_state(WorkerState.READY if self._pipeline is not None else WorkerState.UNINITIALIZED)
