"""Locating the Jockaigne correction engine and a Java runtime to run it.

Everything here is a pure function of an environment mapping and a
``FileSystem``; nothing is cached or mutated. Tests pass their own mapping and
filesystem instead of touching the real ones.
"""

import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Mapping

from .. import log
from ..errors import RuntimeResolutionError

logger = log.get_logger()

PROCESSOR_JAR = "jockaigne-processor.jar"
LIBRARY_JAR = "Jockaigne-1.0.jar"
DEFAULT_MAIN_CLASS = "JockaigneProcessor"
LOCAL_JDK_PREFIX = "jdk-24"

# Environment overrides
ENV_DIST = "JOCKAIGNE_DIST"
ENV_PROCESSOR_JAR = "JOCKAIGNE_JAR"
ENV_LIBRARY_JAR = "JOCKAIGNE_LIB"
ENV_MAIN_CLASS = "JOCKAIGNE_MAIN"
ENV_RUNTIME = "JOCKAIGNE_RUNTIME"
ENV_JAVA_HOME = "JAVA_HOME"


class FileSystem:
    """Filesystem queries used by runtime discovery."""

    def exists(self, path: str) -> bool:
        return os.path.exists(path)

    def is_dir(self, path: str) -> bool:
        return os.path.isdir(path)

    def list_dirs(self, path: str) -> list[str]:
        """Names of the subdirectories of ``path`` (empty if unreadable)."""
        try:
            with os.scandir(path) as entries:
                return [entry.name for entry in entries if entry.is_dir()]
        except OSError:
            return []


@dataclass(frozen=True)
class CorrectionRuntime:
    """Everything needed to launch the correction process."""

    executable: str
    classpath: str
    main_class: str
    runtime_home: str | None = None

    @property
    def args(self) -> list[str]:
        """Command-line arguments following the executable."""
        return ["-cp", self.classpath, self.main_class]

    @property
    def command(self) -> list[str]:
        return [self.executable, *self.args]


def _java_binary_name(platform: str) -> str:
    return "java.exe" if platform == "win32" else "java"


def default_app_root() -> str:
    """Directory the application is running from."""
    return str(Path(sys.argv[0]).resolve().parent) if sys.argv and sys.argv[0] else os.getcwd()


def default_bundle_root() -> str | None:
    """Unpacked resource directory of a frozen (PyInstaller) build, if any."""
    return getattr(sys, "_MEIPASS", None)


def distribution_candidates(
    app_root: str | None,
    environ: Mapping[str, str],
    cwd: str,
    bundle_root: str | None = None,
) -> list[str]:
    """Ordered list of directories that may hold the correction engine jars.

    Order: explicit ``JOCKAIGNE_DIST``, the packaged app's unpacked
    resources, the application root, then the working directory.
    """
    candidates = [
        environ.get(ENV_DIST) or None,
        bundle_root and os.path.join(bundle_root, "java", "dist"),
        app_root and os.path.join(app_root, "java", "dist"),
        os.path.join(cwd, "java", "dist"),
    ]

    ordered = []
    for candidate in candidates:
        if candidate and candidate not in ordered:
            ordered.append(candidate)
    return ordered


def pick_local_jdk(entries: Iterable[str], prefix: str = LOCAL_JDK_PREFIX) -> str | None:
    """Pick the newest JDK directory name matching ``prefix``.

    Names are compared lexicographically, newest (greatest) first.
    """
    matches = sorted((name for name in entries if name.startswith(prefix)), reverse=True)
    return matches[0] if matches else None


def detect_local_jdk(
    environ: Mapping[str, str],
    fs: FileSystem,
    platform: str = sys.platform,
) -> str | None:
    """Find a java binary inside ``~/.jdks/jdk-24*``."""
    home = environ.get("HOME") or environ.get("USERPROFILE")
    if not home:
        return None

    jdks_dir = os.path.join(home, ".jdks")
    if not fs.is_dir(jdks_dir):
        return None

    chosen = pick_local_jdk(fs.list_dirs(jdks_dir))
    if chosen is None:
        return None
    return os.path.join(jdks_dir, chosen, "bin", _java_binary_name(platform))


def resolve_bundled_java(
    dist_dir: str | None,
    environ: Mapping[str, str],
    fs: FileSystem,
    platform: str = sys.platform,
) -> tuple[str, str] | None:
    """Find a Java runtime shipped next to the jars.

    Returns:
        (java executable, runtime home) or None.
    """
    runtime_root = environ.get(ENV_RUNTIME) or (dist_dir and os.path.join(dist_dir, "runtime"))
    if not runtime_root:
        return None

    candidate = os.path.join(runtime_root, "bin", _java_binary_name(platform))
    if fs.exists(candidate):
        return candidate, runtime_root
    return None


def resolve_java_executable(
    environ: Mapping[str, str],
    fs: FileSystem,
    platform: str = sys.platform,
) -> str:
    """Find a java binary outside the distribution.

    Tries ``JAVA_HOME``, then a local ``~/.jdks`` install, and finally
    returns the bare command name for the OS to resolve on PATH.
    """
    java_home = environ.get(ENV_JAVA_HOME)
    if java_home:
        candidate = os.path.join(java_home, "bin", _java_binary_name(platform))
        if fs.exists(candidate):
            return candidate

    detected = detect_local_jdk(environ, fs, platform)
    if detected and fs.exists(detected):
        return detected

    return "java"


def resolve_runtime(
    app_root: str | None = None,
    environ: Mapping[str, str] | None = None,
    fs: FileSystem | None = None,
    cwd: str | None = None,
    bundle_root: str | None = None,
    platform: str = sys.platform,
) -> CorrectionRuntime:
    """Resolve the jars, main class and java executable for a correction call.

    Args:
        app_root: Application root directory (defaults to the script dir).
        environ: Environment mapping (defaults to ``os.environ``).
        fs: Filesystem to query (defaults to the real one).
        cwd: Working directory (defaults to ``os.getcwd()``).
        bundle_root: Unpacked bundle directory of a frozen build.
        platform: ``sys.platform`` value used for binary names.

    Returns:
        CorrectionRuntime whose jars exist.

    Raises:
        RuntimeResolutionError: If either jar cannot be found.
    """
    environ = os.environ if environ is None else environ
    fs = fs or FileSystem()
    cwd = cwd or os.getcwd()
    if app_root is None:
        app_root = default_app_root()
    if bundle_root is None:
        bundle_root = default_bundle_root()

    candidates = distribution_candidates(app_root, environ, cwd, bundle_root)
    dist_dir = candidates[0] if candidates else None
    processor_jar = None
    library_jar = None

    for candidate in candidates:
        candidate_processor = os.path.join(candidate, PROCESSOR_JAR)
        candidate_library = os.path.join(candidate, LIBRARY_JAR)
        if fs.exists(candidate_processor) and fs.exists(candidate_library):
            dist_dir = candidate
            processor_jar = candidate_processor
            library_jar = candidate_library
            break

    processor_jar = environ.get(ENV_PROCESSOR_JAR) or processor_jar or os.path.join(dist_dir, PROCESSOR_JAR)
    library_jar = environ.get(ENV_LIBRARY_JAR) or library_jar or os.path.join(dist_dir, LIBRARY_JAR)

    if not fs.exists(processor_jar):
        raise RuntimeResolutionError(
            "Jockaigne processor jar not found. Build the Java processor into java/dist first."
        )
    if not fs.exists(library_jar):
        raise RuntimeResolutionError(
            f"Jockaigne runtime jar not found. Ensure {LIBRARY_JAR} is available in java/dist."
        )

    classpath = os.pathsep.join([processor_jar, library_jar])
    main_class = environ.get(ENV_MAIN_CLASS) or DEFAULT_MAIN_CLASS

    bundled = resolve_bundled_java(dist_dir, environ, fs, platform)
    if bundled is not None:
        executable, runtime_home = bundled
    else:
        executable, runtime_home = resolve_java_executable(environ, fs, platform), None

    logger.debug(
        "correction runtime resolved",
        dist=dist_dir,
        executable=executable,
        main_class=main_class,
    )
    return CorrectionRuntime(
        executable=executable,
        classpath=classpath,
        main_class=main_class,
        runtime_home=runtime_home,
    )
