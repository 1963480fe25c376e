"""Exception types raised by playvideo.

Every error the CLI turns into exit status 1 derives from `PlayvideoError`.
"""

from __future__ import annotations


class PlayvideoError(Exception):
    """Base class for all playvideo failures."""


class UsageError(PlayvideoError):
    """Bad or missing command-line argument."""


class UnknownProfileError(UsageError):
    """Raised when `--use-profile` names a profile that does not exist."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown profile '{name}'")
        self.name = name


class UnsupportedFormatError(UsageError):
    """Raised for an output format outside the supported set."""

    def __init__(self, fmt: str) -> None:
        super().__init__(f"Unsupported format '{fmt}'")
        self.format = fmt


class InputNotFoundError(PlayvideoError):
    """Raised when a named input path is not a regular file."""

    def __init__(self, path: str) -> None:
        super().__init__(f"Input file not found: {path}")
        self.path = path


class MissingDependencyError(PlayvideoError):
    """Raised when a required external tool is not installed."""

    def __init__(self, tool: str, *, purpose: str = "") -> None:
        detail = f" for {purpose}" if purpose else ""
        super().__init__(f"Required tool '{tool}' not found{detail}")
        self.tool = tool


class PlanError(PlayvideoError):
    """Raised when a command plan lacks a stage its shape requires."""


class OutputWriteError(PlayvideoError):
    """Raised when a file the run writes (output or stdin spool) cannot be opened."""

    def __init__(self, path: object, reason: str) -> None:
        super().__init__(f"Cannot write {path}: {reason}")
        self.path = path
