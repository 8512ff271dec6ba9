"""
hexbloop/errors.py
Error taxonomy for the processing pipeline

Degradable failures (ExternalToolUnavailable, ArtworkGenerationFailed,
MetadataEmbedFailed) are caught by the orchestrator and turned into notes on
the result record. The rest abort the current file only.
"""


class HexbloopError(Exception):
    """Base class for all Hexbloop errors."""


class InvalidInput(HexbloopError):
    """Input path is missing, not a regular file, or not an allowed audio type."""


class ConfigError(HexbloopError, ValueError):
    """Configuration object failed validation."""


class NamingError(HexbloopError, ValueError):
    """Generated or supplied name violates naming rules."""


class ExternalToolUnavailable(HexbloopError):
    """External executable could not be located or started."""

    def __init__(self, tool: str, message: str = ""):
        self.tool = tool
        super().__init__(message or f"{tool} not found")


class ExternalToolFailed(HexbloopError):
    """External executable ran but exited non-zero or produced no output."""

    def __init__(self, tool: str, message: str, returncode=None, stderr: str = ""):
        self.tool = tool
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(message)


class ArtworkGenerationFailed(HexbloopError):
    """Cover art could not be rendered or saved."""


class MetadataEmbedFailed(HexbloopError):
    """Tags or cover art could not be written into the output container."""


class Cancelled(HexbloopError):
    """Processing was cancelled by the caller.

    Terminal status, not reported as a failure.
    """
