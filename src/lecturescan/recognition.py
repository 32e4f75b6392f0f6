"""Lifecycle management for the single recognition worker.

The manager owns at most one worker. It creates the worker lazily, pushes
only changed parameters to it, and replaces it when the requested language
changes. Worker creation is single-flight: while one creation task is in
flight every other caller awaits that same task.
"""

import asyncio
import time
from dataclasses import dataclass, replace
from typing import Any

from . import log
from .backends.base import (
    PARAM_DPI,
    PARAM_PAGE_SEG_MODE,
    EngineMode,
    OutputConfig,
    ProgressCallback,
    RecognitionEngine,
    RecognitionOptions,
    RecognitionResult,
    RecognitionWorker,
)
from .config import DEFAULT_LANGUAGE
from .errors import RecognitionError, WorkerInitError

logger = log.get_logger()


@dataclass
class WorkerState:
    """The live worker and the configuration last applied to it."""

    handle: RecognitionWorker | None = None
    language: str | None = None
    page_seg_mode: str | None = None
    dpi: int | None = None


class RecognitionWorkerManager:
    """Creates, reconfigures, and tears down the recognition worker.

    Usage:
        manager = RecognitionWorkerManager(TesseractEngine())
        result = await manager.recognize(image, RecognitionOptions(lang="deu"))
        await manager.terminate()
    """

    def __init__(
        self,
        engine: RecognitionEngine,
        default_language: str = DEFAULT_LANGUAGE,
        mode: EngineMode = EngineMode.LSTM_ONLY,
        progress_callback: ProgressCallback | None = None,
    ):
        self._engine = engine
        self._default_language = default_language
        self._mode = mode
        self._progress_callback = progress_callback
        self._state = WorkerState()
        self._initializing: asyncio.Task | None = None
        self._recognize_lock = asyncio.Lock()

    @property
    def state(self) -> WorkerState:
        """Snapshot of the current worker state."""
        return replace(self._state)

    @property
    def is_initializing(self) -> bool:
        return self._initializing is not None

    def _needs_worker(self, language: str) -> bool:
        return self._state.handle is None or self._state.language != language

    async def ensure_worker(self, options: RecognitionOptions | None = None) -> RecognitionWorker:
        """Return a live worker for the requested language with its parameters applied.

        The worker is live when returned. A concurrent request for another
        language may replace it afterwards; ``recognize`` holds the worker
        for the whole call and is the safe entry point for concurrent callers.

        Args:
            options: Requested language and parameters. Missing values fall
                back to the current worker's configuration.

        Returns:
            The live worker.

        Raises:
            WorkerInitError: If the engine failed to build the worker.
        """
        options = options or RecognitionOptions()
        language = options.lang or self._state.language or self._default_language

        while True:
            while self._needs_worker(language):
                if self._initializing is None:
                    self._initializing = asyncio.ensure_future(self._replace_worker(language))
                # Shielded so a cancelled caller does not cancel the shared creation.
                # Re-check afterwards: the finished task may have built another language.
                await asyncio.shield(self._initializing)

            await self.apply_parameters(options)
            # Another language may have taken over while parameters were pushed.
            if not self._needs_worker(language):
                return self._state.handle

    async def _replace_worker(self, language: str) -> RecognitionWorker:
        """Destroy the current worker and build one for ``language``."""
        carried = {}
        if self._state.page_seg_mode is not None:
            carried[PARAM_PAGE_SEG_MODE] = self._state.page_seg_mode
        if self._state.dpi is not None:
            carried[PARAM_DPI] = str(self._state.dpi)

        try:
            await self._destroy_handle()

            start = time.perf_counter()
            logger.info("creating recognition worker", language=language)
            handle = await self._engine.create_worker(
                language,
                self._mode,
                {"progress_callback": self._progress_callback},
            )
            self._state.handle = handle
            self._state.language = language

            if carried:
                await handle.set_parameters(carried)

            logger.info(
                "recognition worker ready",
                language=language,
                time_ms=int((time.perf_counter() - start) * 1000),
            )
            return handle
        except Exception as e:
            logger.error("recognition worker init failed", language=language, error=str(e))
            await self._destroy_handle()
            self._state.page_seg_mode = None
            self._state.dpi = None
            raise WorkerInitError(language, str(e)) from e
        finally:
            if self._initializing is asyncio.current_task():
                self._initializing = None

    async def _destroy_handle(self) -> None:
        """Terminate the current handle, if any, and forget its language."""
        handle = self._state.handle
        self._state.handle = None
        self._state.language = None
        if handle is None:
            return
        try:
            await handle.terminate()
            logger.debug("recognition worker terminated", language=handle.language)
        except Exception as e:
            logger.warning("recognition worker terminate failed", error=str(e))

    async def apply_parameters(self, options: RecognitionOptions) -> None:
        """Push changed page segmentation mode and DPI values to the worker.

        Values equal to the recorded ones are not sent. Does nothing when no
        worker exists.
        """
        handle = self._state.handle
        if handle is None:
            return

        params = {}
        page_seg_mode = None
        if options.page_seg_mode is not None:
            page_seg_mode = str(options.page_seg_mode)
            if page_seg_mode != self._state.page_seg_mode:
                params[PARAM_PAGE_SEG_MODE] = page_seg_mode

        dpi = options.dpi
        if dpi is not None and dpi != self._state.dpi:
            params[PARAM_DPI] = str(dpi)

        if not params:
            return

        await handle.set_parameters(params)
        if PARAM_PAGE_SEG_MODE in params:
            self._state.page_seg_mode = page_seg_mode
        if PARAM_DPI in params:
            self._state.dpi = dpi
        logger.debug("recognition parameters applied", **params)

    async def recognize(
        self,
        image: Any,
        options: RecognitionOptions | None = None,
        output_config: OutputConfig | None = None,
    ) -> RecognitionResult:
        """Recognize text in ``image`` with a worker matching ``options``.

        Calls are serialized so a language change from one caller cannot
        replace the worker while another caller is using it.

        Raises:
            WorkerInitError: If a worker could not be created.
            RecognitionError: If the engine failed on this image.
        """
        async with self._recognize_lock:
            worker = await self.ensure_worker(options)
            start = time.perf_counter()
            try:
                result = await worker.recognize(image, {}, output_config or OutputConfig())
            except Exception as e:
                logger.error("recognition failed", language=worker.language, error=str(e))
                raise RecognitionError(str(e)) from e

        logger.info(
            "recognition complete",
            language=worker.language,
            chars=len(result.text),
            time_ms=int((time.perf_counter() - start) * 1000),
        )
        return result

    async def terminate(self) -> None:
        """Destroy the worker and clear all recorded state."""
        if self._initializing is not None:
            try:
                await asyncio.shield(self._initializing)
            except WorkerInitError:
                pass
        await self._destroy_handle()
        self._state = WorkerState()
