"""
Runtime configuration, read from QA_* environment variables.
"""
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .errors import ConfigError

DEFAULT_MODEL_NAME = "distilbert-base-cased-distilled-squad"
DEFAULT_MAX_CONTENT_LENGTH = 2 * 1024 * 1024  # 2 MB max context

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def get_project_root() -> str:
    return os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


def default_model() -> str:
    """Fine-tuned weights in outputs/final win over the hub checkpoint."""
    model_path = os.path.join(get_project_root(), "outputs", "final")
    if os.path.isdir(model_path):
        return model_path
    return DEFAULT_MODEL_NAME


def _parse_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ConfigError(f"{name} must be a boolean, got {value!r}")


def _parse_int(name: str, value: str, minimum: int) -> int:
    try:
        parsed = int(value)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {value!r}") from None
    if parsed < minimum:
        raise ConfigError(f"{name} must be >= {minimum}, got {parsed}")
    return parsed


@dataclass(frozen=True)
class QAConfig:
    model: str = DEFAULT_MODEL_NAME
    device: Optional[str] = None
    top_k: int = 1
    max_answer_len: int = 30
    eager_load: bool = True
    single_flight: bool = False
    cache_dir: Optional[str] = None
    max_content_length: int = DEFAULT_MAX_CONTENT_LENGTH

    def __post_init__(self):
        if self.top_k < 1:
            raise ConfigError(f"top_k must be >= 1, got {self.top_k}")
        if self.max_answer_len < 1:
            raise ConfigError(f"max_answer_len must be >= 1, got {self.max_answer_len}")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "QAConfig":
        """Build a config from QA_* variables; unset variables keep their defaults."""
        env = os.environ if environ is None else environ
        kwargs = {"model": env.get("QA_MODEL") or default_model()}
        if env.get("QA_DEVICE"):
            kwargs["device"] = env["QA_DEVICE"]
        if env.get("QA_TOP_K"):
            kwargs["top_k"] = _parse_int("QA_TOP_K", env["QA_TOP_K"], 1)
        if env.get("QA_MAX_ANSWER_LEN"):
            kwargs["max_answer_len"] = _parse_int("QA_MAX_ANSWER_LEN", env["QA_MAX_ANSWER_LEN"], 1)
        if env.get("QA_EAGER_LOAD"):
            kwargs["eager_load"] = _parse_bool("QA_EAGER_LOAD", env["QA_EAGER_LOAD"])
        if env.get("QA_SINGLE_FLIGHT"):
            kwargs["single_flight"] = _parse_bool("QA_SINGLE_FLIGHT", env["QA_SINGLE_FLIGHT"])
        if env.get("QA_CACHE_DIR"):
            kwargs["cache_dir"] = env["QA_CACHE_DIR"]
        if env.get("QA_MAX_CONTENT_LENGTH"):
            kwargs["max_content_length"] = _parse_int(
                "QA_MAX_CONTENT_LENGTH", env["QA_MAX_CONTENT_LENGTH"], 1
            )
        return cls(**kwargs)
