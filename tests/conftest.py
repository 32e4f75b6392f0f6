"""Shared fixtures: an in-memory recognition engine and a fake java command."""

import asyncio
import os
import stat
import sys
import textwrap

import pytest

from lecturescan import log
from lecturescan.backends.base import (
    EngineInfo,
    EngineMode,
    RecognitionEngine,
    RecognitionResult,
    RecognitionWorker,
)


@pytest.fixture(autouse=True, scope="session")
def debug_logging():
    """Render every log call so formatting runs in tests (output goes to stderr)."""
    log.configure("DEBUG")


class FakeWorker(RecognitionWorker):
    """Worker that records every call made to it."""

    def __init__(self, language: str, engine: "FakeEngine"):
        self._language = language
        self._engine = engine
        self.parameter_calls: list[dict] = []
        self.terminated = False

    @property
    def language(self) -> str:
        return self._language

    async def set_parameters(self, params):
        self._engine.events.append(("set_parameters", self._language, dict(params)))
        self.parameter_calls.append(dict(params))

    async def recognize(self, image, hints=None, output_config=None):
        if self.terminated:
            raise RuntimeError("worker terminated")
        await asyncio.sleep(self._engine.recognize_delay)
        if self.terminated:
            raise RuntimeError("worker terminated during recognition")
        if self._engine.recognize_error is not None:
            raise self._engine.recognize_error
        self._engine.events.append(("recognize", self._language))
        return RecognitionResult(text=f"{self._language}:{image}", language=self._language, confidence=90.0)

    async def terminate(self):
        self._engine.events.append(("terminate", self._language))
        self.terminated = True


class FakeEngine(RecognitionEngine):
    """Engine whose workers live in memory.

    ``failures`` holds exceptions raised by the next create calls.
    """

    def __init__(self, create_delay: float = 0.0, recognize_delay: float = 0.0):
        self.create_delay = create_delay
        self.recognize_delay = recognize_delay
        self.recognize_error: Exception | None = None
        self.failures: list[Exception] = []
        self.created: list[FakeWorker] = []
        self.events: list[tuple] = []
        self.max_live = 0

    @classmethod
    def get_info(cls) -> EngineInfo:
        return EngineInfo(id="fake", name="Fake", license="MIT")

    @property
    def live_workers(self) -> list[FakeWorker]:
        return [worker for worker in self.created if not worker.terminated]

    async def create_worker(self, language, mode=EngineMode.LSTM_ONLY, options=None):
        self.events.append(("create", language))
        await asyncio.sleep(self.create_delay)
        if self.failures:
            raise self.failures.pop(0)
        worker = FakeWorker(language, self)
        self.created.append(worker)
        self.max_live = max(self.max_live, len(self.live_workers))
        return worker


@pytest.fixture
def engine():
    return FakeEngine()


FAKE_PROCESSOR = """\
import json
import os
import sys
import time

mode = sys.argv[-1]
request = json.loads(sys.stdin.readline())
text = request["text"]

if mode == "Fix":
    sys.stderr.write("fixed 1 word\\n")
    print(json.dumps({
        "text": text.replace("helo", "hello"),
        "suggestions": ["hello"],
        "diagnostics": {"edits": 1},
    }))
elif mode == "Plain":
    print(json.dumps({"text": "hello"}))
elif mode == "Meta":
    print(json.dumps({"text": text, "diagnostics": request["meta"], "suggestions": "nope"}))
elif mode == "Home":
    print(json.dumps({"text": os.environ.get("JAVA_HOME", "")}))
elif mode == "Classpath":
    print(json.dumps({"text": sys.argv[2]}))
elif mode == "Fail":
    sys.stderr.write("bad input\\n")
    sys.exit(1)
elif mode == "Silent":
    sys.exit(3)
elif mode == "Garbage":
    sys.stderr.write("stack trace\\n")
    print("not json")
elif mode == "NoText":
    print(json.dumps({"original": text}))
elif mode == "Sleep":
    pid_file = os.environ.get("FAKE_PROCESSOR_PID_FILE")
    if pid_file:
        with open(pid_file, "w") as f:
            f.write(str(os.getpid()))
    time.sleep(30)
    print(json.dumps({"text": "too late"}))
"""


@pytest.fixture
def fake_java(tmp_path):
    """Executable that speaks the correction protocol.

    It is invoked like java (``-cp CLASSPATH MAIN``); the main class name
    picks the behaviour.
    """
    return _write_java_wrapper(tmp_path, "exec ")


@pytest.fixture
def fake_java_launcher(tmp_path):
    """Like ``fake_java``, but the shell forks the processor instead of exec'ing it."""
    return _write_java_wrapper(tmp_path, "")


def _write_java_wrapper(tmp_path, prefix: str) -> str:
    if sys.platform == "win32":
        pytest.skip("fake java command needs a POSIX shell")

    script = tmp_path / "fake_processor.py"
    script.write_text(FAKE_PROCESSOR, encoding="utf-8")

    wrapper = tmp_path / "java"
    wrapper.write_text(
        textwrap.dedent(f"""\
            #!/bin/sh
            {prefix}"{sys.executable}" "{script}" "$@"
            """),
        encoding="utf-8",
    )
    wrapper.chmod(wrapper.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return str(wrapper)


def touch(path) -> str:
    """Create an empty file (and its parents) and return its path."""
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "w", encoding="utf-8"):
        pass
    return str(path)
