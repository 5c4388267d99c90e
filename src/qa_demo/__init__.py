"""
Extractive question answering demo: a Flask page over a background
transformers pipeline worker.
"""
from .config import QAConfig
from .controller import QAController
from .messages import Answer, Complete, Failure, Loading, QARequest, Ready, WorkerError
from .worker import InferenceWorker, WorkerState

__version__ = "0.1.0"

__all__ = [
    "Answer",
    "Complete",
    "Failure",
    "InferenceWorker",
    "Loading",
    "QAConfig",
    "QAController",
    "QARequest",
    "Ready",
    "WorkerError",
    "WorkerState",
]
