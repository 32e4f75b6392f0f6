"""Pluggable recognition engines."""

from .base import (
    EngineInfo,
    EngineMode,
    OutputConfig,
    RecognitionEngine,
    RecognitionOptions,
    RecognitionResult,
    RecognitionWorker,
    RecognizedWord,
)
from .registry import EngineRegistry, get_registry

__all__ = [
    "EngineInfo",
    "EngineMode",
    "OutputConfig",
    "RecognitionEngine",
    "RecognitionOptions",
    "RecognitionResult",
    "RecognitionWorker",
    "RecognizedWord",
    "EngineRegistry",
    "get_registry",
]
