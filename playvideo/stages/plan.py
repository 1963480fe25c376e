"""RU: Описание плана команд: какие процессы запускать и как их соединять.

EN: Command plan: which processes to run and how they are wired together.
"""

from __future__ import annotations

import shlex
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from playvideo.errors import PlanError
from playvideo.formats import OutputFormat


class StageRole(str, Enum):
    """Human-facing role of an invocation."""

    VIDEO = "video"
    RENDER = "render"
    AUDIO = "audio"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Invocation:
    """One external-tool process.

    `reads_input` means the process consumes the run's input stream on stdin;
    `emits_output` means its stdout is the run's output (terminal or file).
    """

    role: StageRole
    argv: tuple[str, ...]
    reads_input: bool = False
    emits_output: bool = False

    @property
    def tool(self) -> str:
        return self.argv[0] if self.argv else ""

    def shell_line(self) -> str:
        return shlex.join(self.argv)


@dataclass(frozen=True)
class CommandPlan:
    """RU: Набор вызовов для одного запуска.

    `stages` содержит 0-2 вызова. При `piped=True` stdout первого подаётся на
    stdin второго. При заданном `frame_path` первый вызов извлекает кадр в
    файл и должен завершиться до старта второго.

    EN: The set of invocations for one run.

    `stages` holds 0-2 invocations. With `piped=True` the first one's stdout
    feeds the second one's stdin. With `frame_path` set the first invocation
    writes a still frame that the second one reads, strictly in sequence.
    """

    format: OutputFormat
    stages: tuple[Invocation, ...]
    piped: bool = False
    frame_path: Path | None = None
    audio: Invocation | None = None
    output_path: Path | None = None

    @property
    def video(self) -> Invocation | None:
        return next((s for s in self.stages if s.role is StageRole.VIDEO), None)

    @property
    def render(self) -> Invocation | None:
        return next((s for s in self.stages if s.role is StageRole.RENDER), None)

    @property
    def invocations(self) -> tuple[Invocation, ...]:
        return self.stages + ((self.audio,) if self.audio is not None else ())

    @property
    def stream_readers(self) -> int:
        return sum(1 for inv in self.invocations if inv.reads_input)

    def validate(self) -> None:
        """Raise `PlanError` when a stage this plan's shape needs is absent."""
        if not self.stages:
            raise PlanError(f"No video command for {self.format}")
        if len(self.stages) > 2:
            raise PlanError(f"Too many stages for {self.format}: {len(self.stages)}")
        for inv in self.invocations:
            if not inv.argv:
                raise PlanError(f"Empty {inv.role} command for {self.format}")
        if self.piped or self.frame_path is not None:
            if self.video is None:
                raise PlanError(f"No video command for {self.format}")
            if self.render is None:
                raise PlanError(f"No render command for {self.format}")
            if self.stages[0] is not self.video:
                raise PlanError("The video stage must come before the render stage")
        elif len(self.stages) > 1:
            raise PlanError(f"Two stages for {self.format} but no pipe or frame file links them")
        if self.piped and self.frame_path is not None:
            raise PlanError("A plan cannot both pipe and bridge through a frame file")
        if self.audio is not None and self.audio.role is not StageRole.AUDIO:
            raise PlanError("Audio invocation has the wrong role")
