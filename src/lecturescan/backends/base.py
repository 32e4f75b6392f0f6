"""Abstract interfaces for recognition engines and their workers."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Callable

# Parameter names understood by the recognition worker
PARAM_PAGE_SEG_MODE = "tessedit_pageseg_mode"
PARAM_DPI = "user_defined_dpi"

# progress_callback(status, progress) where progress is 0.0-1.0
ProgressCallback = Callable[[str, float], None]


class EngineMode(IntEnum):
    """OCR engine modes (Tesseract --oem values)."""

    TESSERACT_ONLY = 0
    LSTM_ONLY = 1
    TESSERACT_LSTM_COMBINED = 2
    DEFAULT = 3


@dataclass
class OutputConfig:
    """Which output formats a recognition call should produce."""

    text: bool = True
    hocr: bool = False
    tsv: bool = False


@dataclass
class RecognizedWord:
    """A single word with its confidence (0-100) and bounding box."""

    text: str
    confidence: float
    bbox: dict  # {"x": int, "y": int, "width": int, "height": int}


@dataclass
class RecognitionResult:
    """Structured result of recognizing one image."""

    text: str
    language: str
    confidence: float | None = None
    words: list[RecognizedWord] = field(default_factory=list)
    hocr: str | None = None
    tsv: str | None = None


@dataclass
class RecognitionOptions:
    """Per-call recognition options. ``None`` means "keep current"."""

    lang: str | None = None
    page_seg_mode: int | str | None = None
    dpi: int | None = None


@dataclass
class EngineInfo:
    """Metadata about a recognition engine."""

    id: str
    name: str
    license: str
    description: str = ""


class RecognitionWorker(ABC):
    """A live recognition worker bound to one language configuration."""

    @property
    @abstractmethod
    def language(self) -> str:
        """Language string this worker was created for."""

    @abstractmethod
    async def set_parameters(self, params: dict[str, str]) -> None:
        """Push engine parameters to the worker.

        Args:
            params: Mapping of parameter name to string value.
        """

    @abstractmethod
    async def recognize(
        self,
        image: Any,
        hints: dict[str, Any] | None = None,
        output_config: OutputConfig | None = None,
    ) -> RecognitionResult:
        """Recognize text in an image.

        Args:
            image: Image source (see ``backends.image.to_pil_image``).
            hints: Optional engine-specific hints for this call only.
            output_config: Which output formats to produce.

        Returns:
            RecognitionResult for the image.
        """

    @abstractmethod
    async def terminate(self) -> None:
        """Release the worker's resources. The worker is unusable afterwards."""


class RecognitionEngine(ABC):
    """Factory for recognition workers."""

    @abstractmethod
    async def create_worker(
        self,
        language: str,
        mode: EngineMode = EngineMode.LSTM_ONLY,
        options: dict[str, Any] | None = None,
    ) -> RecognitionWorker:
        """Create a worker for ``language``.

        Raises:
            Exception: If the engine cannot build a worker.
        """

    @classmethod
    @abstractmethod
    def get_info(cls) -> EngineInfo:
        """Get metadata about this engine."""
