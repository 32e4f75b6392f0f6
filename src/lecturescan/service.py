"""Request surface offered to the host application.

One ``LectureScanService`` owns the recognition manager and the correction
runner and exposes the three host operations: toggling correction, running a
correction, and running a recognition.
"""

from typing import Any

from . import log
from .backends.base import OutputConfig, RecognitionEngine, RecognitionOptions, RecognitionResult
from .backends.registry import get_registry
from .config import Config
from .correction.runner import CorrectionProcessRunner
from .recognition import RecognitionWorkerManager

logger = log.get_logger()


class LectureScanService:
    """Recognition and correction for the host UI."""

    def __init__(
        self,
        config: Config | None = None,
        engine: RecognitionEngine | None = None,
        runner: CorrectionProcessRunner | None = None,
    ):
        """Initialize the service (nothing is started until first use).

        Args:
            config: Application configuration.
            engine: Recognition engine; defaults to the configured one.
            runner: Correction runner; defaults to one built from the config.
        """
        self._config = config or Config()
        engine = engine or get_registry().create(self._config.ocr_engine)
        self._recognition = RecognitionWorkerManager(
            engine, default_language=self._config.language
        )
        self._correction = runner or CorrectionProcessRunner(
            enabled=self._config.correction_enabled,
            timeout=self._config.correction_timeout,
        )

    @property
    def recognition(self) -> RecognitionWorkerManager:
        return self._recognition

    @property
    def correction(self) -> CorrectionProcessRunner:
        return self._correction

    def set_correction_enabled(self, enabled: bool) -> None:
        """Enable or disable correction for later requests."""
        self._correction.set_enabled(enabled)

    async def correct(self, payload: dict[str, Any] | None = None) -> dict:
        """Run a correction request.

        Args:
            payload: ``{"text": str, "meta": dict}``.

        Returns:
            The correction result mapping; never raises.
        """
        payload = payload or {}
        text = payload.get("text") or ""
        meta = payload.get("meta") or {}
        result = await self._correction.run(text, meta)
        return result.to_dict()

    async def recognize(
        self,
        image: Any,
        lang: str | None = None,
        page_seg_mode: int | str | None = None,
        dpi: int | None = None,
        output_config: OutputConfig | None = None,
    ) -> RecognitionResult:
        """Recognize text in ``image``. Missing options come from the config.

        Raises:
            WorkerInitError: If the recognition worker could not be created.
            RecognitionError: If recognition failed.
        """
        options = RecognitionOptions(
            lang=lang,
            page_seg_mode=page_seg_mode if page_seg_mode is not None else self._config.page_seg_mode,
            dpi=dpi if dpi is not None else self._config.dpi,
        )
        return await self._recognition.recognize(image, options, output_config)

    async def shutdown(self) -> None:
        """Release the recognition worker."""
        await self._recognition.terminate()
        logger.info("service shut down")

    async def __aenter__(self) -> "LectureScanService":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.shutdown()
