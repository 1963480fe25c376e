"""RU: Поддерживаемые форматы вывода.

EN: Supported output formats.
"""

from __future__ import annotations

from enum import Enum

from playvideo.errors import UnsupportedFormatError

# Sentinel for "read stdin" / "write stdout" on the command line.
STREAM: str = "-"


class OutputFormat(str, Enum):
    """Closed set of output formats."""

    SIXEL = "sixel"
    KITTY = "kitty"
    ASCII = "ascii"
    ANSI = "ansi"
    UTF8 = "utf8"
    CACA = "caca"
    GIF = "gif"
    MP4 = "mp4"

    @classmethod
    def parse(cls, value: str | OutputFormat) -> OutputFormat:
        """Return the format named by `value` or raise `UnsupportedFormatError`."""
        if isinstance(value, OutputFormat):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise UnsupportedFormatError(str(value)) from None

    @classmethod
    def names(cls) -> tuple[str, ...]:
        return tuple(f.value for f in cls)

    def __str__(self) -> str:
        return self.value


# Formats rendered as text art from a single still frame.
TEXT_ART_FORMATS: frozenset[OutputFormat] = frozenset(
    {OutputFormat.ASCII, OutputFormat.ANSI, OutputFormat.UTF8, OutputFormat.CACA},
)
