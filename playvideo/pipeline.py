"""RU: Исполнение плана команд.

Модуль запускает стадии плана:
1) Опциональное аудио (ffplay) фоновой задачей, ожидается в конце
2) Видеосторона: конвейер (ffmpeg | рендерер), последовательный мост через
   файл кадра или одна стадия
3) Ожидание аудио после завершения видеостороны

EN: Execution of a command plan.

This module runs the stages of a plan:
1) Optional audio (ffplay) as a background task joined at the end
2) The video side: a pipeline (ffmpeg | renderer), a sequential frame-file
   bridge, or a single stage
3) Joining the audio task once the video side has finished

The reported status is always the video side's: for a pipeline that is the
render stage's exit status, as in a shell pipeline.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
import sys
from collections.abc import Callable
from contextlib import ExitStack
from pathlib import Path
from typing import IO, Any, Final

from playvideo.errors import MissingDependencyError, OutputWriteError
from playvideo.stages.plan import CommandPlan, Invocation

log = logging.getLogger(__name__)

SPOOL_FILENAME: Final[str] = "input.spool"

StdinFor = Callable[[Invocation], Any]


def render_dry_run(plan: CommandPlan) -> str:
    """RU: Текстовое описание плана без запуска процессов.

    EN: Describe every invocation of the plan without running anything.
    """
    lines = [f"# playvideo dry run: format={plan.format}"]
    if plan.piped:
        lines.append("# video stage output is piped into the render stage")
    elif plan.frame_path is not None:
        lines.append(f"# video stage writes {plan.frame_path}, then the render stage reads it")
    if plan.output_path is not None and any(s.emits_output for s in plan.stages):
        lines.append(f"# output is written to {plan.output_path}")
    for inv in plan.invocations:
        lines.append(f"[{inv.role}] {inv.shell_line()}")
    return "\n".join(lines) + "\n"


class AudioTask:
    """Background audio process, joined exactly once after the video side."""

    def __init__(self, proc: subprocess.Popen) -> None:
        self.proc = proc
        self._status: int | None = None

    @classmethod
    def start(cls, inv: Invocation, *, stdin: Any = subprocess.DEVNULL) -> AudioTask:
        log.debug("Running %s command: %s", inv.role, inv.shell_line())
        try:
            proc = subprocess.Popen(
                list(inv.argv),
                stdin=stdin,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
            )
        except FileNotFoundError as exc:
            raise MissingDependencyError(inv.tool, purpose="audio playback") from exc
        return cls(proc)

    @property
    def joined(self) -> bool:
        return self._status is not None

    def join(self) -> int:
        """Wait for the audio process; later calls return the same status."""
        if self._status is None:
            self._status = self.proc.wait()
        return self._status

    def terminate(self) -> None:
        """Stop playback early (used when the run is interrupted)."""
        if self.proc.poll() is not None:
            return
        try:
            self.proc.terminate()
            self.proc.wait(timeout=5)
        except subprocess.TimeoutExpired:
            log.warning("Audio player did not terminate in time; killing")
            self.proc.kill()
            self.proc.wait()
        except OSError:
            log.exception("Failed to terminate audio player")


def _popen(inv: Invocation, **kwargs: Any) -> subprocess.Popen:
    log.debug("Running %s command: %s", inv.role, inv.shell_line())
    try:
        return subprocess.Popen(list(inv.argv), **kwargs)
    except FileNotFoundError as exc:
        raise MissingDependencyError(inv.tool) from exc


def _run(inv: Invocation, *, stdin: Any, stdout: Any) -> int:
    log.debug("Running %s command: %s", inv.role, inv.shell_line())
    try:
        res = subprocess.run(list(inv.argv), stdin=stdin, stdout=stdout, check=False)
    except FileNotFoundError as exc:
        raise MissingDependencyError(inv.tool) from exc
    return res.returncode


def _stop(proc: subprocess.Popen) -> None:
    if proc.poll() is None:
        proc.kill()
        proc.wait()


def _run_piped(plan: CommandPlan, stdin_for: StdinFor, out: IO[bytes] | None) -> int:
    first, second = plan.stages
    upstream = _popen(first, stdin=stdin_for(first), stdout=subprocess.PIPE)
    try:
        downstream = _popen(
            second,
            stdin=upstream.stdout,
            stdout=out if second.emits_output else None,
        )
    except BaseException:
        _stop(upstream)
        raise

    # RU: Закрываем свою копию, чтобы ffmpeg получил SIGPIPE при выходе рендерера.
    # EN: Drop our copy so ffmpeg gets SIGPIPE if the renderer exits first.
    if upstream.stdout is not None:
        upstream.stdout.close()

    try:
        status = downstream.wait()
        upstream_status = upstream.wait()
    except BaseException:
        _stop(downstream)
        _stop(upstream)
        raise

    log.debug("Video stage exited with status %s", upstream_status)
    if status != 0:
        log.error("%s render stage exited with status %s", plan.format, status)
    return status


def _run_bridged(plan: CommandPlan, stdin_for: StdinFor, out: IO[bytes] | None) -> int:
    extract, render = plan.stages
    status = _run(extract, stdin=stdin_for(extract), stdout=None)
    if status != 0:
        log.error("Frame extraction failed with status %s", status)
        return status
    status = _run(render, stdin=stdin_for(render), stdout=out if render.emits_output else None)
    if status != 0:
        log.error("%s render stage exited with status %s", plan.format, status)
    return status


def _run_single(plan: CommandPlan, stdin_for: StdinFor, out: IO[bytes] | None) -> int:
    (stage,) = plan.stages
    status = _run(stage, stdin=stdin_for(stage), stdout=out if stage.emits_output else None)
    if status != 0:
        log.error("%s %s stage exited with status %s", plan.format, stage.role, status)
    return status


def _stream_inputs(plan: CommandPlan, work_dir: Path, stack: ExitStack) -> StdinFor:
    """Decide what each invocation reads on stdin.

    A single reader inherits our stdin. With several readers (stream input plus
    audio) stdin is spooled to the work directory once and every reader gets
    its own handle on the spool file.
    """
    spool: Path | None = None
    if plan.stream_readers > 1:
        spool = work_dir / SPOOL_FILENAME
        log.debug("Spooling stdin to %s for %d readers", spool, plan.stream_readers)
        try:
            with spool.open("wb") as f:
                shutil.copyfileobj(sys.stdin.buffer, f)
        except OSError as exc:
            raise OutputWriteError(spool, exc.strerror or str(exc)) from exc

    def stdin_for(inv: Invocation) -> Any:
        if inv.reads_input:
            if spool is None:
                return None
            return stack.enter_context(spool.open("rb"))
        if plan.audio is not None and inv is plan.audio:
            return subprocess.DEVNULL
        return None

    return stdin_for


def execute(plan: CommandPlan, *, work_dir: Path) -> int:
    """RU: Запускает план и возвращает статус видеостороны.

    Аргументы:
        plan: План команд (проверяется до запуска любых процессов).
        work_dir: Временная директория запуска (кадр, буфер stdin).

    EN: Run the plan and return the video side's exit status.

    Args:
        plan: The command plan; validated before any process starts.
        work_dir: The run's temporary directory (frame file, stdin spool).

    """
    plan.validate()

    if plan.piped:
        runner = _run_piped
    elif plan.frame_path is not None:
        runner = _run_bridged
    else:
        runner = _run_single

    with ExitStack() as stack:
        stdin_for = _stream_inputs(plan, work_dir, stack)
        out: IO[bytes] | None = None
        if plan.output_path is not None and any(s.emits_output for s in plan.stages):
            try:
                out = stack.enter_context(plan.output_path.open("wb"))
            except OSError as exc:
                raise OutputWriteError(plan.output_path, exc.strerror or str(exc)) from exc

        audio: AudioTask | None = None
        if plan.audio is not None:
            audio = AudioTask.start(plan.audio, stdin=stdin_for(plan.audio))

        try:
            status = runner(plan, stdin_for, out)
        except BaseException:
            if audio is not None:
                audio.terminate()
            raise

        if audio is not None:
            audio_status = audio.join()
            if audio_status != 0:
                log.warning("Audio playback exited with status %s", audio_status)

    return status
