from . import _types, config, errors, extra, models
from .extra import normalize_session_id, seconds_to_time

__all__ = (
    "_types",
    "config",
    "errors",
    "extra",
    "models",
    "normalize_session_id",
    "seconds_to_time",
)
