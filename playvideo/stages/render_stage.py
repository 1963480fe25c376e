"""Renderer command builders (chafa, jp2a, img2txt, kitty icat)."""

from __future__ import annotations

import shlex
from pathlib import Path

from playvideo.formats import OutputFormat
from playvideo.stages.plan import Invocation, StageRole

KITTY = "kitty"

# img2txt export format per text-art output format.
IMG2TXT_FORMATS: dict[OutputFormat, str] = {
    OutputFormat.ANSI: "ansi",
    OutputFormat.UTF8: "utf8",
    OutputFormat.CACA: "caca",
}


def chafa(flags: str) -> Invocation:
    """Sixel renderer fed by the raw frame pipe."""
    return Invocation(StageRole.RENDER, ("chafa", *shlex.split(flags)), emits_output=True)


def kitty_icat(flags: str, image: Path | None) -> Invocation:
    """kitty graphics client reading `image`, or stdin when `image` is None."""
    cmd = [KITTY, "+kitten", "icat", "--clear"]
    if image is None:
        cmd.append("--stdin=yes")
    cmd += shlex.split(flags)
    if image is not None:
        cmd.append(str(image))
    return Invocation(StageRole.RENDER, tuple(cmd), emits_output=True)


def jp2a(flags: str, image: Path) -> Invocation:
    return Invocation(
        StageRole.RENDER, ("jp2a", *shlex.split(flags), str(image)), emits_output=True,
    )


def img2txt(fmt: OutputFormat, flags: str, image: Path) -> Invocation:
    try:
        export = IMG2TXT_FORMATS[fmt]
    except KeyError:
        raise ValueError(f"img2txt cannot render format '{fmt}'") from None
    cmd = ("img2txt", "-f", export, *shlex.split(flags), str(image))
    return Invocation(StageRole.RENDER, cmd, emits_output=True)
