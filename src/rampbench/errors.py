from __future__ import annotations


class RampbenchError(Exception):
    """Base class for harness errors."""


class ConfigError(RampbenchError):
    """Malformed run configuration. Raised before any load is generated."""


class RequestError(RampbenchError):
    """A single request failed. Always converted into a failed outcome."""


class RequestTimeout(RequestError):
    def __init__(self, timeout_sec: float) -> None:
        super().__init__(f"request exceeded {timeout_sec:g}s")
        self.timeout_sec = timeout_sec


class EvaluationError(RampbenchError):
    """A threshold could not be assessed against the run summary."""
