"""Exception types raised by the SiteProof AI layer."""
from __future__ import annotations


class SiteProofError(Exception):
    """Base class for all SiteProof errors."""


class ConfigurationError(SiteProofError):
    """Required configuration (e.g. the API key) is missing or invalid."""


class UpstreamError(SiteProofError):
    """The model API call failed (network, auth, rate limit, server error)."""

    def __init__(self, message: str, *, status_code: int | None = None, attempts: int = 1):
        super().__init__(message)
        self.status_code = status_code
        self.attempts = attempts


class ToolError(SiteProofError):
    """A tool invocation could not be dispatched."""


class UnknownToolError(ToolError):
    def __init__(self, name: str):
        super().__init__(f"Unknown tool: {name}")
        self.name = name


class InvalidToolInputError(ToolError):
    def __init__(self, name: str, missing: list[str]):
        fields = ", ".join(missing)
        super().__init__(f"Invalid input for {name}: missing required field(s): {fields}")
        self.name = name
        self.missing = list(missing)


class MaxIterationsExceeded(SiteProofError):
    """The model kept requesting tools past the configured round-trip limit."""

    def __init__(self, iterations: int):
        super().__init__(
            f"Max iterations reached ({iterations}) - agent did not complete analysis"
        )
        self.iterations = iterations
