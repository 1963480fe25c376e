"""End-to-end tests for the CLI entrypoint (no external tools are started)."""

from __future__ import annotations

from pathlib import Path

import pytest

from playvideo import cli, composer, pipeline
from playvideo.formats import OutputFormat
from playvideo.profiles import BUILTIN_PROFILES

# Stages each format needs, for stream input.
STREAM_ROLES = {
    "sixel": ["video", "render"],
    "kitty": ["video", "render"],
    "ascii": ["video", "render"],
    "ansi": ["video", "render"],
    "utf8": ["video", "render"],
    "caca": ["video", "render"],
    "gif": ["video"],
    "mp4": ["video"],
}


@pytest.fixture(autouse=True)
def no_processes(monkeypatch: pytest.MonkeyPatch) -> list[object]:
    """Fail loudly if anything tries to run a real process."""
    calls: list[object] = []

    def forbidden(*args: object, **kwargs: object) -> None:
        calls.append(args)
        raise AssertionError(f"process started: {args}")

    monkeypatch.setattr(cli, "execute", forbidden)
    monkeypatch.setattr(composer, "tool_available", lambda name: True)
    return calls


def _roles(stdout: str) -> list[str]:
    return [line[1 : line.index("]")] for line in stdout.splitlines() if line.startswith("[")]


@pytest.mark.parametrize("fmt", OutputFormat.names())
def test_dry_run_every_format(fmt: str, capsys: pytest.CaptureFixture[str]) -> None:
    assert cli.main(["--dry-run", "-f", fmt]) == 0
    out = capsys.readouterr().out
    assert _roles(out) == STREAM_ROLES[fmt]


@pytest.mark.parametrize("fmt", OutputFormat.names())
def test_dry_run_every_format_with_audio(fmt: str, capsys: pytest.CaptureFixture[str]) -> None:
    assert cli.main(["--dry-run", "--audio", "-f", fmt]) == 0
    assert _roles(capsys.readouterr().out) == STREAM_ROLES[fmt] + ["audio"]


def test_gif_dry_run_example(capsys: pytest.CaptureFixture[str]) -> None:
    assert cli.main(["--dry-run", "--format", "gif"]) == 0
    lines = [ln for ln in capsys.readouterr().out.splitlines() if ln.startswith("[")]
    assert len(lines) == 1
    assert lines[0].startswith("[video] ffmpeg")
    assert "fps=24," in lines[0]
    assert "-f gif" in lines[0]


def test_dry_run_file_input(media_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert cli.main(["--dry-run", "-f", "kitty", str(media_file)]) == 0
    out = capsys.readouterr().out
    assert _roles(out) == ["render"]
    assert str(media_file) in out


def test_kitty_missing_dependency(
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
    caplog: pytest.LogCaptureFixture,
    no_processes: list[object],
) -> None:
    monkeypatch.setattr(composer, "tool_available", lambda name: False)
    assert cli.main(["-f", "kitty"]) == 1
    captured = capsys.readouterr()
    assert "kitty" in caplog.text + captured.err
    assert captured.out == ""
    assert no_processes == []


def test_unknown_profile(capsys: pytest.CaptureFixture[str], caplog: pytest.LogCaptureFixture) -> None:
    assert cli.main(["--use-profile", "does-not-exist"]) == 1
    assert "Unknown profile 'does-not-exist'" in caplog.text + capsys.readouterr().err


def test_unknown_profile_with_user_profiles(profiles_path: Path) -> None:
    profiles_path.parent.mkdir(parents=True)
    profiles_path.write_text("mine:\n  format: gif\n", encoding="utf-8")
    assert cli.main(["--use-profile", "mine", "--dry-run"]) == 0
    assert cli.main(["--use-profile", "yours", "--dry-run"]) == 1


@pytest.mark.parametrize(
    "argv",
    [
        ["--video-flags", ""],
        ["--audio-flags", ""],
        ["--video-flags"],
        ["--audio-flags"],
    ],
)
def test_empty_flag_arguments_exit_1(argv: list[str], no_processes: list[object]) -> None:
    assert cli.main(["--dry-run", *argv]) == 1
    assert no_processes == []


@pytest.mark.parametrize("fmt", OutputFormat.names())
def test_missing_input_exits_1(
    fmt: str, tmp_path: Path, no_processes: list[object], capsys: pytest.CaptureFixture[str],
) -> None:
    assert cli.main(["-f", fmt, "-i", str(tmp_path / "missing.mp4")]) == 1
    assert no_processes == []
    assert capsys.readouterr().out == ""


def test_restore_defaults_twice(profiles_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert cli.main(["--restore-defaults"]) == 0
    first = profiles_path.read_bytes()
    assert cli.main(["--restore-defaults"]) == 0
    assert profiles_path.read_bytes() == first
    assert "Default profiles restored to" in capsys.readouterr().out


def test_list_profiles_includes_merged_names(
    profiles_path: Path, capsys: pytest.CaptureFixture[str],
) -> None:
    profiles_path.parent.mkdir(parents=True)
    profiles_path.write_text(
        "tiny:\n  format: ascii\n  description: Tiny\n  jp2a: --width=20\n", encoding="utf-8",
    )
    assert cli.main(["--list-profiles"]) == 0
    out = capsys.readouterr().out
    for name in [*BUILTIN_PROFILES, "tiny"]:
        assert f"  - {name} (" in out
    assert "DESC=" not in out
    assert "--width=20" in out


def test_help_lists_profiles(capsys: pytest.CaptureFixture[str]) -> None:
    assert cli.main(["--help"]) == 0
    out = capsys.readouterr().out
    assert "--use-profile" in out
    assert "Available profiles:" in out
    assert "  - sixel (sixel)" in out


def test_invalid_option_exits_1() -> None:
    assert cli.main(["--invalid-option"]) == 1


def test_execution_status_maps_to_exit_code(monkeypatch: pytest.MonkeyPatch) -> None:
    seen: list[Path] = []

    def fake_execute(plan: object, *, work_dir: Path) -> int:
        seen.append(work_dir)
        assert work_dir.is_dir()
        return 2

    monkeypatch.setattr(cli, "execute", fake_execute)
    assert cli.main(["-f", "gif"]) == 1
    assert not seen[0].exists()

    monkeypatch.setattr(cli, "execute", lambda plan, *, work_dir: 0)
    assert cli.main(["-f", "gif"]) == 0


def test_temp_dir_removed_on_interrupt(monkeypatch: pytest.MonkeyPatch) -> None:
    seen: list[Path] = []

    def interrupted(plan: object, *, work_dir: Path) -> int:
        seen.append(work_dir)
        raise KeyboardInterrupt

    monkeypatch.setattr(cli, "execute", interrupted)
    assert cli.main(["-f", "ascii"]) == 130
    assert not seen[0].exists()


def test_list_profiles_survives_non_utf8_file(
    profiles_path: Path, capsys: pytest.CaptureFixture[str],
) -> None:
    profiles_path.parent.mkdir(parents=True)
    profiles_path.write_bytes(b"\xff\xfe\x00junk")
    assert cli.main(["--list-profiles"]) == 0
    assert "  - sixel (sixel)" in capsys.readouterr().out
    assert cli.main(["--help"]) == 0
    assert cli.main(["--use-profile", "gif", "--dry-run"]) == 0


def test_unwritable_output_exits_1(
    media_file: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str], caplog: pytest.LogCaptureFixture,
) -> None:
    monkeypatch.setattr(cli, "execute", pipeline.execute)
    out = tmp_path / "no" / "such" / "dir" / "art.txt"
    assert cli.main(["-f", "ascii", "-i", str(media_file), "-o", str(out)]) == 1
    assert "Cannot write" in caplog.text + capsys.readouterr().err
    assert not out.parent.exists()


def test_output_same_as_input_exits_1(media_file: Path, no_processes: list[object]) -> None:
    before = media_file.read_bytes()
    assert cli.main(["-f", "ascii", "-i", str(media_file), "-o", str(media_file)]) == 1
    assert media_file.read_bytes() == before
    assert no_processes == []


@pytest.mark.parametrize(
    ("argv", "verbose"),
    [
        (["--dry-run", "--verbose"], True),
        (["--dry-run", "--", "--verbose"], False),
        (["--dry-run", "--video-flags", "--verbose"], False),
    ],
)
def test_verbose_only_counts_before_passthrough(
    argv: list[str], verbose: bool, monkeypatch: pytest.MonkeyPatch,
) -> None:
    seen: list[bool] = []
    monkeypatch.setattr(cli, "setup_logging", lambda *, verbose=False: seen.append(verbose))
    assert cli.main(argv) == 0
    assert seen == [verbose]
