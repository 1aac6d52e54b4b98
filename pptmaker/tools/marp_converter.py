"""Marp CLI invocation.

Writes the markdown into a private temporary directory, runs Marp against it
and yields the path of the generated ``.pptx``. The directory, output
included, is removed when the ``with`` block exits, so callers must copy the
file somewhere else before leaving the block.

Executable resolution order:

1. ``MARP_BIN`` (explicit setting)
2. ``node_modules/.bin/marp`` under the current working directory
3. ``marp`` on ``PATH``
4. ``npx --yes @marp-team/marp-cli`` as a last resort

Only "executable not found" moves on to the next strategy. A Marp run that
starts and then fails is reported as is, since the same markdown would fail
the same way under any launcher.
"""

import logging
import os
import shutil
import subprocess
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from pptmaker.data.fs_utils import remove_tree_quietly
from pptmaker.errors import ConversionFailure

logger = logging.getLogger(__name__)

INPUT_NAME = "deck.md"
OUTPUT_NAME = "presentation.pptx"
NPX_PACKAGE = "@marp-team/marp-cli"
_STDERR_LIMIT = 2000


def _local_marp_bin() -> Path:
    name = "marp.cmd" if os.name == "nt" else "marp"
    return Path.cwd() / "node_modules" / ".bin" / name


def resolve_launchers(marp_bin: str | None = None) -> list[list[str]]:
    """Return the candidate command prefixes, most specific first."""
    launchers: list[list[str]] = []
    if marp_bin:
        launchers.append([marp_bin])

    local = _local_marp_bin()
    if local.exists():
        launchers.append([str(local)])

    on_path = shutil.which("marp")
    if on_path:
        launchers.append([on_path])

    npx = shutil.which("npx")
    if npx:
        launchers.append([npx, "--yes", NPX_PACKAGE])
    return launchers


def _run_marp(launcher: list[str], input_path: Path, output_path: Path, cwd: Path) -> None:
    args = [*launcher, str(input_path), "--pptx", "-o", str(output_path), "--quiet"]
    logger.debug("Running %s", " ".join(args))
    # cwd is the private temp dir so Marp does not pick up an ambient .marprc
    proc = subprocess.run(
        args,
        cwd=cwd,
        stdin=subprocess.DEVNULL,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
        check=False,
    )
    if proc.returncode != 0:
        stderr = (proc.stderr or "").strip()[-_STDERR_LIMIT:]
        raise ConversionFailure(f"Marp CLI failed (exit {proc.returncode}): {stderr}")
    if not output_path.is_file():
        raise ConversionFailure(f"Marp CLI did not produce output at {output_path}")


@contextmanager
def convert_markdown(markdown: str, marp_bin: str | None = None) -> Iterator[Path]:
    """Convert Marp markdown to a PowerPoint file.

    Args:
        markdown: Marp markdown, optionally with front-matter choosing a theme
        marp_bin: explicit Marp executable, tried before any other launcher

    Yields:
        path of the generated ``presentation.pptx``

    Raises:
        ConversionFailure: no launcher could be started, Marp exited
            non-zero, or no output file was written
    """
    tmp_dir = Path(tempfile.mkdtemp(prefix="mcp-pptmaker-"))
    try:
        input_path = tmp_dir / INPUT_NAME
        output_path = tmp_dir / OUTPUT_NAME
        try:
            input_path.write_text(markdown, encoding="utf-8")
        except OSError as e:
            raise ConversionFailure(f"Could not write Marp input: {e}") from e

        launchers = resolve_launchers(marp_bin)
        if not launchers:
            raise ConversionFailure(
                "Marp CLI not found: install @marp-team/marp-cli or set MARP_BIN"
            )

        for launcher in launchers:
            try:
                _run_marp(launcher, input_path, output_path, tmp_dir)
                break
            except FileNotFoundError:
                logger.info("Marp launcher %s not found, trying next", launcher[0])
            except OSError as e:
                raise ConversionFailure(f"Could not start Marp CLI: {e}") from e
        else:
            raise ConversionFailure(
                "Marp CLI not found: install @marp-team/marp-cli or set MARP_BIN"
            )

        yield output_path
    finally:
        remove_tree_quietly(tmp_dir)
