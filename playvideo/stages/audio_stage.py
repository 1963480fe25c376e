"""Audio playback command builder."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

from playvideo.stages.plan import Invocation, StageRole
from playvideo.stages.video_stage import STDIN_PIPE

FFPLAY_BASE = ("ffplay", "-nodisp", "-autoexit", "-loglevel", "error")


def ffplay(input_path: Path | None, extra: Sequence[str] = ()) -> Invocation:
    """Play the audio track of `input_path`, or of stdin when it is None."""
    source = STDIN_PIPE if input_path is None else str(input_path)
    return Invocation(
        StageRole.AUDIO,
        (*FFPLAY_BASE, *extra, source),
        reads_input=input_path is None,
    )
