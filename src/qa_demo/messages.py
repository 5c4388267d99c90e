"""
Messages exchanged between the UI controller and the inference worker.

Host -> worker: QARequest.
Worker -> host: Loading (0..N during startup), Ready (once), and one
terminal Complete or Failure per request. Failure is also used for
ad-hoc transport and internal faults.
"""
from dataclasses import dataclass
from typing import Any, ClassVar, Dict, Union

from .errors import InvalidMessageError


@dataclass(frozen=True)
class QARequest:
    kind: ClassVar[str] = "request"
    question: str
    context: str

    def is_complete(self) -> bool:
        return bool(self.question.strip()) and bool(self.context.strip())


@dataclass(frozen=True)
class Answer:
    kind: ClassVar[str] = "answer"
    answer: str
    score: float

    def to_dict(self) -> Dict[str, Any]:
        return {"answer": self.answer, "score": self.score}


@dataclass(frozen=True)
class WorkerError:
    kind: ClassVar[str] = "error"
    error_message: str

    def to_dict(self) -> Dict[str, Any]:
        return {"errorMessage": self.error_message}


@dataclass(frozen=True)
class Loading:
    kind: ClassVar[str] = "loading"
    progress: int


@dataclass(frozen=True)
class Ready:
    kind: ClassVar[str] = "ready"


@dataclass(frozen=True)
class Complete:
    kind: ClassVar[str] = "complete"
    result: Answer


@dataclass(frozen=True)
class Failure:
    kind: ClassVar[str] = "error"
    error: WorkerError

    @classmethod
    def from_text(cls, text: str) -> "Failure":
        return cls(WorkerError(text))


WorkerMessage = Union[Loading, Ready, Complete, Failure]
Result = Union[Answer, WorkerError]


def to_payload(message: WorkerMessage) -> Dict[str, Any]:
    """Render a worker message in its JSON wire shape."""
    if isinstance(message, Loading):
        return {"status": "loading", "data": {"progress": message.progress}}
    if isinstance(message, Ready):
        return {"status": "ready"}
    if isinstance(message, Complete):
        return {"status": "complete", "data": message.result.to_dict()}
    if isinstance(message, Failure):
        return {"status": "error", "error": message.error.to_dict()}
    raise TypeError(f"Not a worker message: {message!r}")


def request_from_payload(payload: Any) -> QARequest:
    """
    Accept a QARequest or a mapping with string 'question' and 'context'.
    Empty strings are allowed here; the worker reports them as a
    validation error rather than a malformed message.
    """
    if isinstance(payload, QARequest):
        return payload
    if not isinstance(payload, dict):
        raise InvalidMessageError(f"expected a mapping, got {type(payload).__name__}")
    question = payload.get("question", "")
    context = payload.get("context", "")
    if question is None:
        question = ""
    if context is None:
        context = ""
    if not isinstance(question, str) or not isinstance(context, str):
        raise InvalidMessageError("'question' and 'context' must be strings")
    return QARequest(question=question, context=context)
