"""RU: Хранилище профилей: встроенные профили и пользовательские переопределения.

Профиль содержит только данные (строки флагов для каждого инструмента, формат и
описание). Пользовательский файл никогда не исполняется.

EN: Profile store: built-in profiles plus user overrides.

A profile is data only (one flag string per tool, a format and a description).
The user file is parsed as YAML and never executed.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from types import MappingProxyType
from typing import Any, Final, Mapping

import yaml

from playvideo.errors import UnsupportedFormatError
from playvideo.formats import OutputFormat

LOG = logging.getLogger(__name__)

ENV_PROFILES_PATH: Final[str] = "PLAYVIDEO_PROFILES"
PROFILES_FILENAME: Final[str] = ".playvideo_profiles.yaml"
FILE_HEADER: Final[str] = (
    "# ~/.playvideo_profiles.yaml - user editable playvideo profiles\n"
    "# Keys per profile: format, description, video_filter, ffmpeg_output,\n"
    "# chafa, jp2a, img2txt, kitty. Values are plain flag strings.\n"
)


@dataclass(frozen=True)
class ToolFlags:
    """Flag strings for each external tool; `None` means "use the default"."""

    video_filter: str | None = None
    ffmpeg_output: str | None = None
    chafa: str | None = None
    jp2a: str | None = None
    img2txt: str | None = None
    kitty: str | None = None

    def merged_over(self, defaults: ToolFlags) -> ToolFlags:
        """Return a copy where every unset field falls back to `defaults`."""
        updates = {
            f.name: getattr(defaults, f.name)
            for f in fields(self)
            if getattr(self, f.name) is None
        }
        return replace(self, **updates)

    def as_dict(self) -> dict[str, str]:
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not None
        }


TOOL_FLAG_KEYS: Final[frozenset[str]] = frozenset(f.name for f in fields(ToolFlags))


@dataclass(frozen=True)
class Profile:
    """RU: Именованный набор флагов и формат вывода.

    EN: A named bundle of tool flags and an output format.
    """

    name: str
    format: OutputFormat
    description: str
    flags: ToolFlags

    def to_yaml_entry(self) -> dict[str, str]:
        entry = {"format": self.format.value, "description": self.description}
        entry.update(self.flags.as_dict())
        return entry


_TEXT_FILTER = "scale=80:-1"

_BUILTIN_LIST: Final[tuple[Profile, ...]] = (
    Profile(
        name="sixel",
        format=OutputFormat.SIXEL,
        description="Sixel terminal output (default)",
        flags=ToolFlags(
            video_filter="scale=320:-1",
            chafa="-f sixels --colors=256 --dither=diffusion --fill=all --symbols=all --clear",
        ),
    ),
    Profile(
        name="kitty",
        format=OutputFormat.KITTY,
        description="Kitty graphics protocol output",
        flags=ToolFlags(video_filter="scale=320:-1", kitty="--quiet"),
    ),
    Profile(
        name="ascii",
        format=OutputFormat.ASCII,
        description="ASCII art output via jp2a",
        flags=ToolFlags(video_filter=_TEXT_FILTER, jp2a="--colors --width=80"),
    ),
    Profile(
        name="ansi",
        format=OutputFormat.ANSI,
        description="ANSI colored output via img2txt",
        flags=ToolFlags(video_filter=_TEXT_FILTER, img2txt="--width=80"),
    ),
    Profile(
        name="utf8",
        format=OutputFormat.UTF8,
        description="UTF8 colored output via img2txt",
        flags=ToolFlags(video_filter=_TEXT_FILTER, img2txt="--width=80"),
    ),
    Profile(
        name="caca",
        format=OutputFormat.CACA,
        description="Libcaca output",
        flags=ToolFlags(video_filter=_TEXT_FILTER, img2txt="--width=80"),
    ),
    Profile(
        name="gif",
        format=OutputFormat.GIF,
        description="Animated GIF output via ffmpeg",
        flags=ToolFlags(video_filter="scale=320:-1:flags=lanczos", ffmpeg_output="-f gif"),
    ),
    Profile(
        name="mp4",
        format=OutputFormat.MP4,
        description="MP4 output via ffmpeg",
        flags=ToolFlags(
            video_filter="scale=640:-1",
            ffmpeg_output="-c:v libx264 -preset fast -crf 23",
        ),
    ),
)

BUILTIN_PROFILES: Final[Mapping[str, Profile]] = MappingProxyType(
    {p.name: p for p in _BUILTIN_LIST},
)


def default_flags(fmt: OutputFormat) -> ToolFlags:
    """Return the built-in tool flags for `fmt`."""
    return BUILTIN_PROFILES[fmt.value].flags


def default_profiles_path() -> Path:
    """Return `$PLAYVIDEO_PROFILES` or `~/.playvideo_profiles.yaml`."""
    env_path = os.environ.get(ENV_PROFILES_PATH, "").strip()
    if env_path:
        return Path(env_path).expanduser()
    return Path.home() / PROFILES_FILENAME


def _parse_entry(name: str, raw: Any) -> Profile:
    """Validate one user entry; raise ValueError with a short reason."""
    if not isinstance(raw, dict):
        raise ValueError("entry must be a mapping")

    unknown = sorted(str(k) for k in raw if k not in TOOL_FLAG_KEYS | {"format", "description"})
    if unknown:
        raise ValueError(f"unknown keys: {', '.join(unknown)}")

    for key, value in raw.items():
        if not isinstance(value, str):
            raise ValueError(f"'{key}' must be a string")

    fmt_raw = raw.get("format", name)
    try:
        fmt = OutputFormat.parse(fmt_raw)
    except UnsupportedFormatError as exc:
        raise ValueError(str(exc)) from None

    flags = ToolFlags(**{k: v for k, v in raw.items() if k in TOOL_FLAG_KEYS})
    return Profile(
        name=name,
        format=fmt,
        description=str(raw.get("description", "")).strip() or f"User profile '{name}'",
        flags=flags,
    )


def _read_overrides(path: Path) -> dict[str, Profile]:
    if not path.is_file():
        return {}

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, yaml.YAMLError) as exc:
        LOG.warning("Ignoring profile file %s: %s", path, exc)
        return {}

    if data is None:
        return {}
    if not isinstance(data, dict):
        LOG.warning("Ignoring profile file %s: top level must be a mapping", path)
        return {}

    overrides: dict[str, Profile] = {}
    for key, raw in data.items():
        name = str(key).strip()
        if not name:
            LOG.warning("Skipping profile with empty name in %s", path)
            continue
        try:
            overrides[name] = _parse_entry(name, raw)
        except ValueError as exc:
            LOG.warning("Skipping invalid profile '%s' in %s: %s", name, path, exc)
    return overrides


class ProfileStore:
    """RU: Объединяет встроенные профили с пользовательским файлом.

    Файл читается не более одного раза за запуск.

    EN: Merges built-in profiles with the user override file.

    The file is read at most once per store instance.
    """

    def __init__(self, path: Path | None = None) -> None:
        self.path = path if path is not None else default_profiles_path()
        self._merged: Mapping[str, Profile] | None = None

    def load(self) -> Mapping[str, Profile]:
        """Return the merged, read-only profile mapping (user entries win)."""
        if self._merged is None:
            merged: dict[str, Profile] = dict(BUILTIN_PROFILES)
            merged.update(_read_overrides(self.path))
            self._merged = MappingProxyType(merged)
        return self._merged

    def get(self, name: str) -> Profile | None:
        return self.load().get(name)

    def list(self) -> list[tuple[str, str]]:
        """Return (name, description) pairs in merged insertion order."""
        return [(p.name, p.description) for p in self.load().values()]

    def restore_defaults(self) -> bool:
        """Overwrite the user file with the built-in profiles."""
        payload = {p.name: p.to_yaml_entry() for p in BUILTIN_PROFILES.values()}
        text = FILE_HEADER + yaml.safe_dump(
            payload, sort_keys=False, default_flow_style=False, allow_unicode=True,
        )
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(text, encoding="utf-8")
        except OSError as exc:
            LOG.error("Could not write default profiles to %s: %s", self.path, exc)
            return False
        self._merged = None
        LOG.info("Default profiles restored to %s", self.path)
        return True


def flag_summary(profile: Profile) -> str:
    """Short one-line description of a profile's flags for listings."""
    parts = [f"{key}: {value}" for key, value in profile.flags.as_dict().items()]
    return "; ".join(parts)
