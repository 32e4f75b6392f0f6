"""Per-request correction through an isolated Jockaigne process.

Each call spawns ``java -cp <processor>:<library> JockaigneProcessor``, writes
one JSON line to stdin, closes it, and reads stdout and stderr until the
process exits. A deadline armed at spawn kills the process if it runs too
long. ``run`` never raises: every failure becomes a ``CorrectionResult``
carrying the original text and an ``error`` message.
"""

import asyncio
import json
import os
import signal
import time
from dataclasses import dataclass
from typing import Any, Callable

from .. import log
from ..config import DEFAULT_CORRECTION_TIMEOUT
from ..errors import (
    CorrectionError,
    ProcessExitError,
    ProcessSpawnError,
    ProcessTimeoutError,
    ProtocolError,
)
from .runtime import DEFAULT_MAIN_CLASS, CorrectionRuntime, resolve_runtime

logger = log.get_logger()

NO_TEXT_ERROR = "No text provided."


@dataclass
class CorrectionResult:
    """Outcome of one correction request."""

    text: str
    corrected: bool = False
    original: str | None = None
    diagnostics: Any = None
    suggestions: list[str] | None = None
    error: str | None = None
    diagnostics_log: str | None = None

    @classmethod
    def failure(cls, text: str, error: str, diagnostics_log: str | None = None) -> "CorrectionResult":
        """Result that hands back the original text with an error."""
        return cls(text=text, corrected=False, error=error, diagnostics_log=diagnostics_log)

    def to_dict(self) -> dict:
        """Host-facing mapping; optional fields are omitted when unset."""
        data = {"text": self.text}
        if self.original is not None:
            data["original"] = self.original
        data["corrected"] = self.corrected
        if self.diagnostics is not None:
            data["diagnostics"] = self.diagnostics
        if self.suggestions is not None:
            data["suggestions"] = list(self.suggestions)
        if self.error is not None:
            data["error"] = self.error
        if self.diagnostics_log is not None:
            data["diagnosticsLog"] = self.diagnostics_log
        return data


class _ResultCell:
    """Single-shot result slot shared by the exit handler and the deadline."""

    def __init__(self):
        self._future = asyncio.get_running_loop().create_future()

    @property
    def finished(self) -> bool:
        return self._future.done()

    def finish(self, result: CorrectionResult) -> bool:
        """Store ``result`` unless one was already stored."""
        if self._future.done():
            return False
        self._future.set_result(result)
        return True

    async def wait(self) -> CorrectionResult:
        return await self._future


def _clean(value: bytes) -> str:
    return value.decode("utf-8", errors="replace").strip()


def parse_response(text: str, stdout: str, stderr: str, engine_name: str = DEFAULT_MAIN_CLASS) -> CorrectionResult:
    """Interpret the stdout of a process that exited with code 0.

    Args:
        text: The text that was sent for correction.
        stdout: Trimmed standard output.
        stderr: Trimmed standard error.
        engine_name: Name used in error messages.

    Returns:
        The corrected result, or a failure result on a protocol violation.
    """
    diagnostics_log = stderr or None
    try:
        parsed = json.loads(stdout)
        if not isinstance(parsed, dict) or not isinstance(parsed.get("text"), str):
            raise ProtocolError("Missing text field in processor response.")
    except (ValueError, ProtocolError) as e:
        logger.warning("correction output rejected", engine=engine_name, reason=str(e))
        return CorrectionResult.failure(
            text, f"Failed to parse {engine_name} output.", diagnostics_log=diagnostics_log
        )

    suggestions = parsed.get("suggestions")
    original = parsed.get("original")
    return CorrectionResult(
        text=parsed["text"],
        original=original if original is not None else text,
        corrected=parsed["text"] != text,
        diagnostics=parsed.get("diagnostics"),
        suggestions=list(suggestions) if isinstance(suggestions, list) else [],
        diagnostics_log=diagnostics_log,
    )


class CorrectionProcessRunner:
    """Runs the correction engine once per request.

    The only state kept between calls is the enabled flag.

    Usage:
        runner = CorrectionProcessRunner()
        result = await runner.run("Teh lecture", {"languages": ["en"]})
        print(result.text, result.error)
    """

    def __init__(
        self,
        enabled: bool = True,
        timeout: float = DEFAULT_CORRECTION_TIMEOUT,
        resolver: Callable[[], CorrectionRuntime] | None = None,
        engine_name: str = DEFAULT_MAIN_CLASS,
    ):
        """Initialize the runner.

        Args:
            enabled: Whether correction runs at all.
            timeout: Seconds before the process is killed.
            resolver: Returns the runtime to launch; defaults to
                ``resolve_runtime`` against the real environment.
            engine_name: Name used in error messages.
        """
        self._enabled = enabled
        self._timeout = timeout
        self._resolver = resolver or resolve_runtime
        self._engine_name = engine_name

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def timeout(self) -> float:
        return self._timeout

    def set_enabled(self, enabled: bool) -> None:
        """Turn correction on or off for subsequent calls."""
        self._enabled = bool(enabled)
        logger.info("correction toggled", enabled=self._enabled)

    async def run(self, text: str, meta: dict | None = None) -> CorrectionResult:
        """Correct ``text``. Never raises; failures keep the original text.

        Args:
            text: Text to correct.
            meta: Extra request data forwarded to the engine (e.g. languages).

        Returns:
            CorrectionResult.
        """
        if not text:
            return CorrectionResult.failure("", NO_TEXT_ERROR)
        if not self._enabled:
            return CorrectionResult(text=text, corrected=False)

        try:
            runtime = self._resolver()
            return await self._exchange(runtime, text, meta or {})
        except CorrectionError as e:
            logger.warning("correction failed", error=str(e))
            return CorrectionResult.failure(text, str(e))
        except Exception as e:
            logger.error("correction crashed", error=str(e))
            return CorrectionResult.failure(text, str(e) or type(e).__name__)

    async def _spawn(self, runtime: CorrectionRuntime) -> asyncio.subprocess.Process:
        env = dict(os.environ)
        if runtime.runtime_home:
            env["JAVA_HOME"] = runtime.runtime_home

        try:
            return await asyncio.create_subprocess_exec(
                runtime.executable,
                *runtime.args,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=env,
                # Own process group, so a launcher that forks the JVM is killed with it.
                start_new_session=True,
            )
        except OSError as e:
            raise ProcessSpawnError(str(e)) from e

    async def _exchange(self, runtime: CorrectionRuntime, text: str, meta: dict) -> CorrectionResult:
        """Spawn the process, send the request and race its exit against the deadline."""
        process = await self._spawn(runtime)
        logger.debug("correction process started", pid=process.pid, executable=runtime.executable)

        start = time.perf_counter()
        payload = (json.dumps({"text": text, "meta": meta}) + "\n").encode("utf-8")
        cell = _ResultCell()
        loop = asyncio.get_running_loop()

        def on_deadline():
            if cell.finished:
                return
            _kill(process)
            error = ProcessTimeoutError(f"{self._engine_name} correction timed out.")
            logger.warning("correction timed out", pid=process.pid, timeout_s=self._timeout)
            cell.finish(CorrectionResult.failure(text, str(error)))

        def on_exit(task: asyncio.Future):
            deadline.cancel()
            if task.cancelled():
                return
            exc = task.exception()
            if exc is not None:
                cell.finish(CorrectionResult.failure(text, str(exc) or type(exc).__name__))
                return
            stdout, stderr = task.result()
            cell.finish(self._interpret(text, process.returncode, _clean(stdout), _clean(stderr)))

        deadline = loop.call_later(self._timeout, on_deadline)
        exchange = asyncio.ensure_future(process.communicate(payload))
        exchange.add_done_callback(on_exit)

        try:
            result = await cell.wait()
        finally:
            deadline.cancel()
            if process.returncode is None:
                _kill(process)
            # Reap the child without waiting on pipe EOF; late output is dropped.
            await process.wait()
            if not exchange.done():
                exchange.cancel()
            await asyncio.wait([exchange])

        logger.debug(
            "correction process finished",
            pid=process.pid,
            returncode=process.returncode,
            time_ms=int((time.perf_counter() - start) * 1000),
        )
        return result

    def _interpret(self, text: str, returncode: int | None, stdout: str, stderr: str) -> CorrectionResult:
        if returncode != 0:
            error = ProcessExitError(stderr or f"{self._engine_name} exited with code {returncode}", returncode)
            logger.warning("correction process failed", returncode=returncode, error=str(error))
            return CorrectionResult.failure(text, str(error))
        return parse_response(text, stdout, stderr, self._engine_name)


def _kill(process: asyncio.subprocess.Process) -> None:
    """Kill the process and everything in its process group."""
    try:
        if hasattr(os, "killpg"):
            os.killpg(process.pid, signal.SIGKILL)
        else:
            process.kill()
    except (ProcessLookupError, PermissionError):
        pass
