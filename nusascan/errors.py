"""Exception types shared by the capability adapters, the pipeline and the transport."""


class CapabilityError(RuntimeError):
    """A capability (vision, OCR, search, completion) failed or returned an unusable payload."""

    def __init__(self, capability: str, message: str) -> None:
        super().__init__(f"{capability}: {message}")
        self.capability = capability


class AnalysisTimeoutError(TimeoutError):
    """The pipeline exceeded the global analysis deadline."""

    def __init__(self, timeout_seconds: float) -> None:
        super().__init__(f"Analysis is taking too long (exceeded {timeout_seconds:g}s)")
        self.timeout_seconds = timeout_seconds


class InputError(ValueError):
    """No usable image was supplied; raised before the pipeline starts."""
