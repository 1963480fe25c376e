"""RU: Сборка плана команд из `ResolvedConfig`.

Для каждого формата есть свой построитель; форматы с общим поведением
(потоковый ввод против файла) используют общий класс.

EN: Build the command plan for a `ResolvedConfig`.

There is one plan builder per format; formats that share the same
stream-vs-file behaviour share a builder class.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Final, Mapping, Protocol

from playvideo.errors import MissingDependencyError, UnsupportedFormatError
from playvideo.formats import OutputFormat
from playvideo.options import ResolvedConfig
from playvideo.profiles import ToolFlags, default_flags
from playvideo.stages import audio_stage, render_stage, video_stage
from playvideo.stages.plan import CommandPlan, Invocation
from playvideo.stages.video_stage import FfmpegOptions
from playvideo.utils.tools import tool_available

LOG = logging.getLogger(__name__)

FRAME_FILENAME: Final[str] = "frame.png"


class PlanBuilder(Protocol):
    """Protocol for per-format plan builders."""

    def build(self, config: ResolvedConfig, flags: ToolFlags, work_dir: Path) -> CommandPlan: ...


def _ffmpeg_opts(config: ResolvedConfig, flags: ToolFlags) -> FfmpegOptions:
    return FfmpegOptions(
        input_path=config.input_path,
        fps=config.fps,
        video_filter=flags.video_filter or "",
        extra=config.video_flags,
    )


class SixelBuilder:
    """ffmpeg raw frames piped into chafa, for stream and file input alike."""

    def build(self, config: ResolvedConfig, flags: ToolFlags, work_dir: Path) -> CommandPlan:
        del work_dir
        return CommandPlan(
            format=config.format,
            stages=(
                video_stage.raw_frames(_ffmpeg_opts(config, flags)),
                render_stage.chafa(flags.chafa or ""),
            ),
            piped=True,
            output_path=config.output_path,
        )


class KittyBuilder:
    """Pipe raw frames into icat for streams; let icat read files directly."""

    def build(self, config: ResolvedConfig, flags: ToolFlags, work_dir: Path) -> CommandPlan:
        del work_dir
        if not tool_available(render_stage.KITTY):
            raise MissingDependencyError(
                "kitty", purpose="kitty graphics output (kitty +kitten icat)",
            )
        if config.is_stream_input:
            return CommandPlan(
                format=config.format,
                stages=(
                    video_stage.raw_frames(_ffmpeg_opts(config, flags)),
                    render_stage.kitty_icat(flags.kitty or "", None),
                ),
                piped=True,
                output_path=config.output_path,
            )
        return CommandPlan(
            format=config.format,
            stages=(render_stage.kitty_icat(flags.kitty or "", config.input_path),),
            output_path=config.output_path,
        )


@dataclass(frozen=True)
class TextArtBuilder:
    """Extract one still frame from streams, then render it as text art."""

    fmt: OutputFormat

    def _renderer(self, flags: ToolFlags, image: Path) -> Invocation:
        if self.fmt is OutputFormat.ASCII:
            return render_stage.jp2a(flags.jp2a or "", image)
        return render_stage.img2txt(self.fmt, flags.img2txt or "", image)

    def build(self, config: ResolvedConfig, flags: ToolFlags, work_dir: Path) -> CommandPlan:
        if config.input_path is not None:
            return CommandPlan(
                format=config.format,
                stages=(self._renderer(flags, config.input_path),),
                output_path=config.output_path,
            )
        frame_path = work_dir / FRAME_FILENAME
        return CommandPlan(
            format=config.format,
            stages=(
                video_stage.extract_frame(_ffmpeg_opts(config, flags), frame_path),
                self._renderer(flags, frame_path),
            ),
            frame_path=frame_path,
            output_path=config.output_path,
        )


class GifBuilder:
    def build(self, config: ResolvedConfig, flags: ToolFlags, work_dir: Path) -> CommandPlan:
        del work_dir
        inv = video_stage.encode_gif(
            _ffmpeg_opts(config, flags), flags.ffmpeg_output or "", config.output_path,
        )
        return CommandPlan(format=config.format, stages=(inv,), output_path=config.output_path)


class Mp4Builder:
    def build(self, config: ResolvedConfig, flags: ToolFlags, work_dir: Path) -> CommandPlan:
        del work_dir
        inv = video_stage.encode_mp4(
            _ffmpeg_opts(config, flags), flags.ffmpeg_output or "", config.output_path,
        )
        return CommandPlan(format=config.format, stages=(inv,), output_path=config.output_path)


BUILDERS: Final[Mapping[OutputFormat, PlanBuilder]] = {
    OutputFormat.SIXEL: SixelBuilder(),
    OutputFormat.KITTY: KittyBuilder(),
    OutputFormat.ASCII: TextArtBuilder(OutputFormat.ASCII),
    OutputFormat.ANSI: TextArtBuilder(OutputFormat.ANSI),
    OutputFormat.UTF8: TextArtBuilder(OutputFormat.UTF8),
    OutputFormat.CACA: TextArtBuilder(OutputFormat.CACA),
    OutputFormat.GIF: GifBuilder(),
    OutputFormat.MP4: Mp4Builder(),
}


def compose(config: ResolvedConfig, *, work_dir: Path) -> CommandPlan:
    """RU: Возвращает план команд для конфигурации.

    Флаги инструментов берутся из встроенного профиля формата, если конфиг их
    не переопределяет. Дополнительные флаги добавляются после значений по
    умолчанию.

    EN: Return the command plan for `config`.

    Tool flags fall back to the format's built-in profile unless the config
    overrides them. Extra user flags are appended after the defaults.
    """
    if not isinstance(config.format, OutputFormat):
        raise UnsupportedFormatError(str(config.format))
    builder = BUILDERS.get(config.format)
    if builder is None:
        raise UnsupportedFormatError(str(config.format))

    LOG.debug("Building %s output command", config.format)
    flags = config.tool_flags.merged_over(default_flags(config.format))
    plan = builder.build(config, flags, work_dir)

    if config.video_flags and plan.video is None:
        LOG.warning(
            "Extra video flags ignored: %s output from a file runs no ffmpeg stage",
            config.format,
        )

    if config.audio:
        audio = audio_stage.ffplay(config.input_path, config.audio_flags)
        plan = replace(plan, audio=audio)
    elif config.audio_flags:
        LOG.warning("Audio flags given without --audio; ignoring them")
    return plan
