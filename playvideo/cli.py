"""RU: Точка входа CLI playvideo.

EN: playvideo command-line entrypoint.
"""

from __future__ import annotations

import argparse
import logging
import signal
import sys
import tempfile
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from pathlib import Path

from playvideo.composer import compose
from playvideo.errors import PlayvideoError
from playvideo.options import parse_args, resolve, split_argv
from playvideo.pipeline import execute, render_dry_run
from playvideo.profiles import ProfileStore, flag_summary
from playvideo.utils.logging_utils import setup_logging

LOG = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130


def format_profile_list(store: ProfileStore) -> str:
    """RU: Список профилей для `--list-profiles` и справки.

    EN: Profile listing used by `--list-profiles` and the help text.
    """
    profiles = store.load()
    lines = []
    for name, description in store.list():
        lines.append(f"  - {name} ({profiles[name].format}): {description}")
        summary = flag_summary(profiles[name])
        if summary:
            lines.append(f"      {summary}")
    return "\n".join(lines)


def _format_help(parser: argparse.ArgumentParser, store: ProfileStore) -> str:
    return (
        parser.format_help()
        + f"\nProfiles are read from {store.path}.\nAvailable profiles:\n"
        + format_profile_list(store)
        + "\n"
    )


@contextmanager
def _exit_on_signals() -> Iterator[None]:
    """Turn SIGTERM/SIGHUP into SystemExit so temp dirs and children are cleaned up."""

    def _raise(signum: int, _frame: object) -> None:
        raise SystemExit(128 + signum)

    previous = {}
    for name in ("SIGTERM", "SIGHUP"):
        sig = getattr(signal, name, None)
        if sig is not None:
            previous[sig] = signal.signal(sig, _raise)
    try:
        yield
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)


def _run(argv: Sequence[str], store: ProfileStore) -> int:
    ns, parser = parse_args(argv, profiles=store.load)

    if ns.help:
        sys.stdout.write(_format_help(parser, store))
        return EXIT_OK

    if ns.restore_defaults:
        if not store.restore_defaults():
            return EXIT_FAILURE
        print(f"Default profiles restored to {store.path}")
        return EXIT_OK

    if ns.list_profiles:
        print("Available profiles:")
        print(format_profile_list(store))
        return EXIT_OK

    config = resolve(ns)

    with _exit_on_signals(), tempfile.TemporaryDirectory(prefix="playvideo-") as tmp:
        work_dir = Path(tmp)
        plan = compose(config, work_dir=work_dir)
        if config.dry_run:
            sys.stdout.write(render_dry_run(plan))
            sys.stdout.flush()
            return EXIT_OK
        status = execute(plan, work_dir=work_dir)

    return EXIT_OK if status == 0 else EXIT_FAILURE


def _wants_verbose(args: Sequence[str]) -> bool:
    """`--verbose` counts only before `--`; later tokens belong to ffmpeg."""
    head, _tail = split_argv(args)
    return "--verbose" in head


def main(argv: Sequence[str] | None = None) -> int:
    """RU: Точка входа CLI; возвращает код завершения.

    EN: CLI entrypoint; returns the process exit status.
    """
    args = list(sys.argv[1:] if argv is None else argv)
    setup_logging(verbose=_wants_verbose(args))

    try:
        return _run(args, ProfileStore())
    except PlayvideoError as exc:
        LOG.error("%s", exc)
        return EXIT_FAILURE
    except KeyboardInterrupt:
        LOG.error("Interrupted")
        return EXIT_INTERRUPTED


if __name__ == "__main__":
    sys.exit(main())
