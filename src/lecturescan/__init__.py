"""lecturescan - recognition and correction core for live lecture scanning.

Coordinates a long-lived Tesseract recognition worker and a per-request
Jockaigne correction process from a single asyncio event loop.
"""

__version__ = "0.1.0"

from .correction import CorrectionProcessRunner, CorrectionResult
from .errors import (
    LectureScanError,
    ProcessSpawnError,
    ProcessTimeoutError,
    ProtocolError,
    RecognitionError,
    RuntimeResolutionError,
    WorkerInitError,
)
from .recognition import RecognitionWorkerManager, WorkerState
from .service import LectureScanService

__all__ = [
    "CorrectionProcessRunner",
    "CorrectionResult",
    "LectureScanError",
    "LectureScanService",
    "ProcessSpawnError",
    "ProcessTimeoutError",
    "ProtocolError",
    "RecognitionError",
    "RecognitionWorkerManager",
    "RuntimeResolutionError",
    "WorkerInitError",
    "WorkerState",
    "__version__",
]
