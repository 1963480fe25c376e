"""RU: Построение команд FFmpeg для видеостадии.

EN: FFmpeg command builders for the video stage.
"""

from __future__ import annotations

import shlex
from dataclasses import dataclass
from pathlib import Path

from playvideo.stages.plan import Invocation, StageRole

FFMPEG = "ffmpeg"
STDIN_PIPE = "pipe:0"
STDOUT_PIPE = "pipe:1"

# mp4 needs a seekable target unless the muxer writes fragments.
MP4_STREAM_ARGS = ("-movflags", "frag_keyframe+empty_moov", "-f", "mp4")


@dataclass(frozen=True)
class FfmpegOptions:
    """Container for the ffmpeg knobs shared by every video stage."""

    input_path: Path | None
    fps: int
    video_filter: str
    extra: tuple[str, ...] = ()

    @property
    def source(self) -> str:
        return STDIN_PIPE if self.input_path is None else str(self.input_path)

    @property
    def rate_filter(self) -> str:
        vf = f"fps={self.fps}"
        if self.video_filter:
            vf += f",{self.video_filter}"
        return vf


def _head(opts: FfmpegOptions) -> list[str]:
    return [FFMPEG, "-loglevel", "error", "-i", opts.source]


def raw_frames(opts: FfmpegOptions) -> Invocation:
    """Decode to raw rgb24 frames on stdout for a downstream renderer."""
    cmd = _head(opts) + [
        "-vf",
        opts.rate_filter,
        "-f",
        "rawvideo",
        "-pix_fmt",
        "rgb24",
        *opts.extra,
        STDOUT_PIPE,
    ]
    return Invocation(StageRole.VIDEO, tuple(cmd), reads_input=opts.input_path is None)


def extract_frame(opts: FfmpegOptions, frame_path: Path) -> Invocation:
    """Write a single still frame to `frame_path`."""
    cmd = _head(opts) + ["-frames:v", "1"]
    if opts.video_filter:
        cmd += ["-vf", opts.video_filter]
    cmd += [*opts.extra, str(frame_path)]
    return Invocation(StageRole.VIDEO, tuple(cmd), reads_input=opts.input_path is None)


def encode_gif(opts: FfmpegOptions, output_flags: str, out_path: Path | None) -> Invocation:
    """Encode an animated GIF to `out_path` or stdout."""
    cmd = _head(opts) + ["-vf", opts.rate_filter, *shlex.split(output_flags), *opts.extra]
    if out_path is not None:
        cmd += ["-y", str(out_path)]
    else:
        cmd.append("-")
    return Invocation(
        StageRole.VIDEO,
        tuple(cmd),
        reads_input=opts.input_path is None,
        emits_output=out_path is None,
    )


def encode_mp4(opts: FfmpegOptions, output_flags: str, out_path: Path | None) -> Invocation:
    """Encode H.264 MP4 to `out_path` (overwriting) or fragmented MP4 on stdout."""
    cmd = _head(opts) + ["-vf", opts.rate_filter, *shlex.split(output_flags), *opts.extra]
    if out_path is not None:
        cmd += ["-y", str(out_path)]
    else:
        cmd += [*MP4_STREAM_ARGS, "-"]
    return Invocation(
        StageRole.VIDEO,
        tuple(cmd),
        reads_input=opts.input_path is None,
        emits_output=out_path is None,
    )
