"""RU: Разбор аргументов командной строки и сборка итоговой конфигурации.

Профиль (`--use-profile`) применяется в момент разбора, в порядке аргументов:
флаги после него перекрывают значения профиля, флаги до него перекрываются им.

EN: Command-line parsing and resolution into a frozen run configuration.

`--use-profile` is applied while parsing, in argument order: flags after it
override the profile, flags before it are overridden by it.
"""

from __future__ import annotations

import argparse
import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, NoReturn

from playvideo.errors import InputNotFoundError, UnknownProfileError, UsageError
from playvideo.formats import STREAM, OutputFormat
from playvideo.profiles import Profile, ToolFlags

LOG = logging.getLogger(__name__)

DEFAULT_FORMAT = OutputFormat.SIXEL
DEFAULT_FPS = 24

# Options whose value may itself start with "-" (ffmpeg/ffplay flags).
_SPLIT_FLAG_OPTIONS = ("--video-flags", "--audio-flags")

ProfileLoader = Callable[[], Mapping[str, Profile]]


@dataclass(frozen=True)
class ResolvedConfig:
    """RU: Полностью разрешённая конфигурация одного запуска.

    EN: Fully resolved configuration for one run.
    """

    input_path: Path | None
    output_path: Path | None
    format: OutputFormat = DEFAULT_FORMAT
    fps: int = DEFAULT_FPS
    audio: bool = False
    tool_flags: ToolFlags = field(default_factory=ToolFlags)
    video_flags: tuple[str, ...] = ()
    audio_flags: tuple[str, ...] = ()
    verbose: bool = False
    dry_run: bool = False

    @property
    def is_stream_input(self) -> bool:
        return self.input_path is None


class _Parser(argparse.ArgumentParser):
    """ArgumentParser that raises `UsageError` instead of exiting with status 2."""

    def error(self, message: str) -> NoReturn:
        raise UsageError(message)


class _UseProfileAction(argparse.Action):
    """Apply a profile's format and tool flags at its position on the command line."""

    def __init__(self, option_strings: list[str], dest: str, *, profiles: ProfileLoader, **kwargs: Any) -> None:
        super().__init__(option_strings, dest, **kwargs)
        self.profiles = profiles

    def __call__(
        self,
        parser: argparse.ArgumentParser,
        namespace: argparse.Namespace,
        values: Any,
        option_string: str | None = None,
    ) -> None:
        name = str(values).strip()
        profile = self.profiles().get(name)
        if profile is None:
            raise UnknownProfileError(name)
        namespace.format = profile.format.value
        namespace.tool_flags = profile.flags
        setattr(namespace, self.dest, profile.name)


class _SplitFlagsAction(argparse.Action):
    """Whitespace-split the value and extend the destination list."""

    def __call__(
        self,
        parser: argparse.ArgumentParser,
        namespace: argparse.Namespace,
        values: Any,
        option_string: str | None = None,
    ) -> None:
        tokens = str(values or "").split()
        if not tokens:
            raise UsageError(f"{option_string} requires an argument")
        current = list(getattr(namespace, self.dest, None) or [])
        setattr(namespace, self.dest, current + tokens)


def build_parser(profiles: ProfileLoader) -> argparse.ArgumentParser:
    """Build the CLI parser; `profiles` is called lazily by `--use-profile`."""
    ap = _Parser(
        prog="playvideo",
        description=(
            "Play any file as terminal video/image or convert to gif/mp4 "
            "with audio support"
        ),
        add_help=False,
        allow_abbrev=False,
        epilog=(
            "Everything after '--' is passed to ffmpeg as extra video flags. "
            "Profiles can be defined/modified in ~/.playvideo_profiles.yaml."
        ),
    )
    ap.add_argument(
        "-i", "--input", default=STREAM, help="Input file (default: stdin, or '-')",
    )
    ap.add_argument("-o", "--output", default=None, help="Output file (default: stdout)")
    ap.add_argument(
        "-f",
        "--format",
        default=DEFAULT_FORMAT.value,
        metavar="FMT",
        help="Output format: " + ", ".join(OutputFormat.names()) + f" (default: {DEFAULT_FORMAT})",
    )
    ap.add_argument(
        "--fps", type=int, default=DEFAULT_FPS, help=f"Playback framerate (default: {DEFAULT_FPS})",
    )
    ap.add_argument(
        "--audio",
        action="store_true",
        help=(
            "Enable audio playback via ffplay. With stdin input the whole stream is "
            "buffered to a temp file before playback starts"
        ),
    )
    ap.add_argument("--list-profiles", action="store_true", help="List available profiles")
    ap.add_argument(
        "--use-profile",
        action=_UseProfileAction,
        profiles=profiles,
        default=None,
        metavar="NAME",
        help="Use a profile (sets flags & format accordingly)",
    )
    ap.add_argument(
        "--restore-defaults",
        action="store_true",
        help="Restore default profiles (overwrites the user profile file)",
    )
    ap.add_argument("--verbose", action="store_true", help="Show verbose debug output")
    ap.add_argument(
        "--dry-run", action="store_true", help="Print the commands that would run, then exit",
    )
    ap.add_argument(
        "--video-flags",
        action=_SplitFlagsAction,
        default=None,
        metavar="FLAGS",
        help="Extra flags passed to ffmpeg for video processing (repeatable)",
    )
    ap.add_argument(
        "--audio-flags",
        action=_SplitFlagsAction,
        default=None,
        metavar="FLAGS",
        help="Extra flags passed to the audio playback command (repeatable)",
    )
    ap.add_argument("-h", "--help", action="store_true", help="Show this help message")
    ap.set_defaults(tool_flags=ToolFlags())
    return ap


def split_argv(argv: Sequence[str]) -> tuple[list[str], list[str]]:
    """Split argv at the first bare `--` and glue flag-string values to their option.

    `--video-flags -an` becomes `--video-flags=-an` so argparse does not mistake
    the value for an option. A trailing option with no value is left alone and
    reported by the parser.
    """
    head: list[str] = []
    i = 0
    while i < len(argv):
        tok = argv[i]
        if tok == "--":
            return head, list(argv[i + 1 :])
        if tok in _SPLIT_FLAG_OPTIONS and i + 1 < len(argv):
            head.append(f"{tok}={argv[i + 1]}")
            i += 2
            continue
        head.append(tok)
        i += 1
    return head, []


def parse_args(
    argv: Sequence[str], *, profiles: ProfileLoader,
) -> tuple[argparse.Namespace, argparse.ArgumentParser]:
    """RU: Разбирает argv; ошибки использования поднимаются как `UsageError`.

    EN: Parse argv; usage problems are raised as `UsageError`.
    """
    head, tail = split_argv(argv)
    parser = build_parser(profiles)
    ns, extras = parser.parse_known_args(head)

    unknown = [a for a in extras if a.startswith("-") and a != STREAM]
    if unknown:
        raise UsageError(f"unrecognized arguments: {' '.join(unknown)}")

    ns.positionals = [a for a in extras if a not in unknown]
    ns.passthrough = tail
    return ns, parser


def _pick_input(ns: argparse.Namespace) -> str:
    value = str(ns.input)
    positionals: list[str] = list(getattr(ns, "positionals", []))
    if value == STREAM and positionals:
        value = positionals[0]
    if len(positionals) > 1:
        LOG.warning("Ignoring extra positional arguments: %s", " ".join(positionals[1:]))
    return value


def resolve(ns: argparse.Namespace) -> ResolvedConfig:
    """RU: Проверяет разобранные аргументы и возвращает `ResolvedConfig`.

    EN: Validate parsed arguments and build the frozen `ResolvedConfig`.
    """
    fmt = OutputFormat.parse(ns.format)

    fps = int(ns.fps)
    if fps <= 0:
        raise UsageError(f"--fps must be a positive integer, got {fps}")

    input_value = _pick_input(ns)
    input_path: Path | None = None
    if input_value != STREAM:
        input_path = Path(input_value)
        if not input_path.is_file():
            raise InputNotFoundError(input_value)

    output_path = None
    if ns.output and ns.output != STREAM:
        output_path = Path(ns.output)
        if input_path is not None and output_path.resolve() == input_path.resolve():
            raise UsageError(f"Output file is the same as the input: {ns.output}")

    video_flags = tuple(ns.video_flags or ()) + tuple(getattr(ns, "passthrough", ()))
    audio_flags = tuple(ns.audio_flags or ())

    config = ResolvedConfig(
        input_path=input_path,
        output_path=output_path,
        format=fmt,
        fps=fps,
        audio=bool(ns.audio),
        tool_flags=ns.tool_flags,
        video_flags=video_flags,
        audio_flags=audio_flags,
        verbose=bool(ns.verbose),
        dry_run=bool(ns.dry_run),
    )

    LOG.debug("Input file: %s", config.input_path or "stdin")
    LOG.debug("Output file: %s", config.output_path or "stdout")
    LOG.debug("Format: %s", config.format)
    LOG.debug("FPS: %s", config.fps)
    LOG.debug("Profile: %s", ns.use_profile or "-")
    LOG.debug("Enable audio: %s", config.audio)
    LOG.debug("Dry run: %s", config.dry_run)
    LOG.debug("Video extra flags: %s", " ".join(config.video_flags))
    LOG.debug("Audio extra flags: %s", " ".join(config.audio_flags))
    return config
