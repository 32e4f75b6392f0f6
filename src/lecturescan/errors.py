"""Exception types for recognition and correction.

Recognition errors are raised to the caller. Correction errors are raised
inside the correction package only and always end up as the ``error`` field
of a ``CorrectionResult``.
"""


class LectureScanError(Exception):
    """Base class for all lecturescan errors."""


class WorkerInitError(LectureScanError):
    """The recognition engine failed to construct a worker."""

    def __init__(self, language: str, message: str):
        super().__init__(f"Failed to initialise recognition worker for '{language}': {message}")
        self.language = language


class RecognitionError(LectureScanError):
    """The recognition engine failed while processing an image.

    The worker stays usable after this error.
    """


class CorrectionError(LectureScanError):
    """Base class for correction failures surfaced as result errors."""


class RuntimeResolutionError(CorrectionError):
    """A required correction engine artifact could not be found."""


class ProcessSpawnError(CorrectionError):
    """The correction engine process could not be started."""


class ProcessTimeoutError(CorrectionError):
    """The correction engine process exceeded its deadline and was killed."""


class ProcessExitError(CorrectionError):
    """The correction engine process exited with a non-zero code."""

    def __init__(self, message: str, returncode: int | None):
        super().__init__(message)
        self.returncode = returncode


class ProtocolError(CorrectionError):
    """The correction engine produced output that violates the protocol."""
