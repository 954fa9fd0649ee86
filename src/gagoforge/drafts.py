from __future__ import annotations

import asyncio
import logging
import re
import shlex
import subprocess
from pathlib import Path

from gagoforge.constants import DRAFTS_DIR, LANGUAGE_EXTENSIONS

logger = logging.getLogger(__name__)

_UNSAFE = re.compile(r"[^A-Za-z0-9_.-]")


def get_draft_path(slug: str, language: str, directory: Path = DRAFTS_DIR) -> Path:
    """Get a persistent path for a solution draft."""
    ext = LANGUAGE_EXTENSIONS.get(language, ".txt")
    directory.mkdir(parents=True, exist_ok=True)
    name = _UNSAFE.sub("_", slug).strip(".") or "_"
    return directory / f"{name}{ext}"


def read_draft(path: Path) -> str:
    if path.exists():
        return path.read_text(encoding="utf-8")
    return ""


def write_draft(path: Path, code: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(code, encoding="utf-8")


def discard_draft(path: Path) -> None:
    if path.exists():
        path.unlink()


def _run_editor(command: str, path: Path) -> int:
    argv = shlex.split(command) + [str(path)]
    logger.info("Launching editor: %s", argv)
    try:
        return subprocess.call(argv)
    except OSError as e:
        logger.error("Editor %r failed to start: %s", command, e)
        return -1


async def edit_draft(command: str, path: Path, initial: str = "") -> str | None:
    """Open ``path`` in an external editor and return its contents afterwards.

    The file is seeded with ``initial`` when it does not exist yet.  Returns
    None when the editor could not be started or exited non-zero.
    """
    if not path.exists():
        write_draft(path, initial)
    status = await asyncio.to_thread(_run_editor, command, path)
    if status != 0:
        return None
    return read_draft(path)
