"""Tesseract recognition engine built on pytesseract.

pytesseract shells out to the ``tesseract`` binary and blocks, so every call
runs in the event loop's default executor.
"""

import asyncio
import functools
import time
from typing import Any

import pytesseract

from .. import log
from .base import (
    PARAM_DPI,
    PARAM_PAGE_SEG_MODE,
    EngineInfo,
    EngineMode,
    OutputConfig,
    ProgressCallback,
    RecognitionEngine,
    RecognitionResult,
    RecognitionWorker,
    RecognizedWord,
)
from .image import to_pil_image

logger = log.get_logger()


def _noop_progress(status: str, progress: float) -> None:
    pass


def build_config(mode: EngineMode, params: dict[str, str]) -> str:
    """Translate worker parameters into a tesseract command-line config.

    Args:
        mode: OCR engine mode.
        params: Parameter mapping; page segmentation and DPI get their
            dedicated flags, everything else is passed with ``-c``.

    Returns:
        Config string for pytesseract.
    """
    parts = [f"--oem {int(mode)}"]
    for key, value in params.items():
        if key == PARAM_PAGE_SEG_MODE:
            parts.append(f"--psm {value}")
        elif key == PARAM_DPI:
            parts.append(f"--dpi {value}")
        else:
            parts.append(f"-c {key}={value}")
    return " ".join(parts)


def _words_from_data(data: dict) -> list[RecognizedWord]:
    """Extract non-empty words from ``image_to_data`` output."""
    words = []
    for i in range(len(data["text"])):
        text = str(data["text"][i]).strip()
        conf = float(data["conf"][i])
        if not text or conf < 0:
            continue
        words.append(RecognizedWord(
            text=text,
            confidence=conf,
            bbox={
                "x": data["left"][i],
                "y": data["top"][i],
                "width": data["width"][i],
                "height": data["height"][i],
            },
        ))
    return words


def _text_from_data(data: dict) -> str:
    """Rebuild page text from ``image_to_data`` output.

    Words sharing a (block, paragraph, line) key are joined with spaces,
    lines with newlines and blocks with a blank line.
    """
    lines: list[str] = []
    current: list[str] = []
    current_key = None
    current_block = None

    for i in range(len(data["text"])):
        text = str(data["text"][i]).strip()
        if not text or float(data["conf"][i]) < 0:
            continue
        key = (data["block_num"][i], data["par_num"][i], data["line_num"][i])
        if key != current_key:
            if current:
                lines.append(" ".join(current))
            if current_block is not None and key[0] != current_block:
                lines.append("")
            current = []
            current_key = key
            current_block = key[0]
        current.append(text)

    if current:
        lines.append(" ".join(current))

    return "\n".join(lines)


class TesseractWorker(RecognitionWorker):
    """A Tesseract configuration bound to one language string."""

    def __init__(
        self,
        language: str,
        mode: EngineMode = EngineMode.LSTM_ONLY,
        progress_callback: ProgressCallback | None = None,
    ):
        self._language = language
        self._mode = mode
        self._progress = progress_callback or _noop_progress
        self._params: dict[str, str] = {}
        self._terminated = False

    @property
    def language(self) -> str:
        return self._language

    @property
    def parameters(self) -> dict[str, str]:
        """Parameters currently applied to this worker."""
        return dict(self._params)

    def _check_alive(self) -> None:
        if self._terminated:
            raise RuntimeError(f"Tesseract worker for '{self._language}' has been terminated")

    async def set_parameters(self, params: dict[str, str]) -> None:
        self._check_alive()
        self._params.update({key: str(value) for key, value in params.items()})
        logger.debug("tesseract parameters set", language=self._language, **params)

    async def recognize(
        self,
        image: Any,
        hints: dict[str, Any] | None = None,
        output_config: OutputConfig | None = None,
    ) -> RecognitionResult:
        self._check_alive()
        output_config = output_config or OutputConfig()

        params = dict(self._params)
        if hints:
            params.update({key: str(value) for key, value in hints.items()})
        config = build_config(self._mode, params)

        loop = asyncio.get_running_loop()
        start = time.perf_counter()
        self._progress("recognizing text", 0.0)

        pil_image = await loop.run_in_executor(None, to_pil_image, image)
        data = await loop.run_in_executor(None, functools.partial(
            pytesseract.image_to_data,
            pil_image,
            lang=self._language,
            config=config,
            output_type=pytesseract.Output.DICT,
        ))

        words = _words_from_data(data)
        confidence = None
        if words:
            confidence = sum(word.confidence for word in words) / len(words)

        hocr = None
        if output_config.hocr:
            raw = await loop.run_in_executor(None, functools.partial(
                pytesseract.image_to_pdf_or_hocr,
                pil_image,
                lang=self._language,
                config=config,
                extension="hocr",
            ))
            hocr = raw.decode("utf-8")

        tsv = None
        if output_config.tsv:
            tsv = await loop.run_in_executor(None, functools.partial(
                pytesseract.image_to_data,
                pil_image,
                lang=self._language,
                config=config,
            ))

        self._progress("recognizing text", 1.0)
        logger.debug(
            "tesseract recognition complete",
            language=self._language,
            words=len(words),
            time_ms=int((time.perf_counter() - start) * 1000),
        )

        return RecognitionResult(
            text=_text_from_data(data) if output_config.text else "",
            language=self._language,
            confidence=confidence,
            words=words,
            hocr=hocr,
            tsv=tsv,
        )

    async def terminate(self) -> None:
        self._terminated = True
        self._params.clear()


class TesseractEngine(RecognitionEngine):
    """Creates Tesseract workers after checking the binary and language packs."""

    @classmethod
    def get_info(cls) -> EngineInfo:
        return EngineInfo(
            id="tesseract",
            name="Tesseract",
            license="Apache-2.0",
            description="General-purpose OCR, languages joined with '+'",
        )

    async def create_worker(
        self,
        language: str,
        mode: EngineMode = EngineMode.LSTM_ONLY,
        options: dict[str, Any] | None = None,
    ) -> TesseractWorker:
        options = options or {}
        progress = options.get("progress_callback") or _noop_progress
        progress("loading language", 0.0)

        loop = asyncio.get_running_loop()
        try:
            version = await loop.run_in_executor(None, pytesseract.get_tesseract_version)
            installed = await loop.run_in_executor(None, pytesseract.get_languages)
        except pytesseract.TesseractNotFoundError as e:
            raise RuntimeError(
                "Tesseract OCR is not installed or not in PATH. "
                "Please install Tesseract: https://github.com/tesseract-ocr/tesseract"
            ) from e

        missing = [lang for lang in language.split("+") if lang not in installed]
        if missing:
            raise RuntimeError(f"Tesseract language data not installed: {', '.join(missing)}")

        logger.info("tesseract ready", version=str(version), language=language)
        progress("loading language", 1.0)
        return TesseractWorker(language, mode, progress_callback=progress)
