"""
Construct the Hugging Face question-answering pipeline and run it.

The pipeline maps (question, context) to an answer span and a confidence
score. Model download progress is reported to a progress sink as a
percentage.
"""
import os
from typing import Any, Callable, Dict, List, Optional, Union

import torch
from huggingface_hub import snapshot_download
from tqdm.auto import tqdm
from transformers import pipeline

from .config import QAConfig
from .errors import PipelineLoadError
from .log import get_logger

logger = get_logger(__name__)

ProgressSink = Callable[[float], None]
RawOutput = Union[Dict[str, Any], List[Dict[str, Any]]]

TASK = "question-answering"


def resolve_device(device: Optional[str] = None) -> str:
    return device or ("cuda" if torch.cuda.is_available() else "cpu")


def make_progress_bar(sink: ProgressSink) -> type:
    """
    Return a tqdm class that forwards completion percentage to `sink`.
    snapshot_download instantiates it to track files fetched.
    """

    class _SinkProgressBar(tqdm):
        def update(self, n=1):
            displayed = super().update(n)
            if self.total:
                sink(100.0 * self.n / self.total)
            return displayed

    return _SinkProgressBar


class QAPipeline:
    """Question answering over a transformers pipeline."""

    def __init__(self, qa_pipeline, top_k: int = 1, max_answer_len: int = 30):
        self.qa_pipeline = qa_pipeline
        self.top_k = top_k
        self.max_answer_len = max_answer_len

    def infer(self, question: str, context: str) -> RawOutput:
        """
        Returns a single {answer, score, start, end} mapping when top_k == 1,
        otherwise a list of them ordered by the pipeline.
        """
        return self.qa_pipeline(
            question=question,
            context=context,
            top_k=self.top_k,
            max_answer_len=self.max_answer_len,
        )


class TransformersPipelineFactory:
    """Builds a QAPipeline from a local directory or a hub model id."""

    def __init__(self, config: QAConfig):
        self.config = config

    def fetch(self, progress: ProgressSink) -> str:
        if os.path.isdir(self.config.model):
            return self.config.model
        return snapshot_download(
            self.config.model,
            cache_dir=self.config.cache_dir,
            tqdm_class=make_progress_bar(progress),
        )

    def __call__(self, progress: ProgressSink) -> QAPipeline:
        device = resolve_device(self.config.device)
        logger.info("loading %s pipeline model=%s device=%s", TASK, self.config.model, device)
        try:
            model_path = self.fetch(progress)
            qa_pipeline = pipeline(TASK, model=model_path, tokenizer=model_path, device=device)
        except Exception as e:
            raise PipelineLoadError(f"Failed to load model {self.config.model}: {e}") from e
        return QAPipeline(
            qa_pipeline,
            top_k=self.config.top_k,
            max_answer_len=self.config.max_answer_len,
        )
