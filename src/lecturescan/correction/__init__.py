"""Text correction through the external Jockaigne process."""

from .runner import CorrectionProcessRunner, CorrectionResult, parse_response
from .runtime import CorrectionRuntime, FileSystem, resolve_runtime

__all__ = [
    "CorrectionProcessRunner",
    "CorrectionResult",
    "CorrectionRuntime",
    "FileSystem",
    "parse_response",
    "resolve_runtime",
]
