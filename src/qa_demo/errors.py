"""Exception hierarchy for the QA demo."""


class QADemoError(Exception):
    """Base class for all QA demo errors."""


class ConfigError(QADemoError):
    pass


class PipelineLoadError(QADemoError):
    """The question-answering pipeline could not be constructed."""


class InferenceError(QADemoError):
    pass


class InvalidMessageError(QADemoError):
    """A payload sent to the worker is not a well-formed request."""


class WorkerTerminatedError(QADemoError):
    pass
