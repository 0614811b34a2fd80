from __future__ import annotations

from pathlib import Path


def ensure_dir(path: Path) -> bool:
    """Create ``path`` if needed; return whether it had to be created."""

    try:
        path.mkdir()
    except FileExistsError:
        return False
    return True


def _candidate_names(stem: str, suffix: str = ""):
    yield f"{stem}{suffix}"
    appendix = 0
    while True:
        yield f"{stem}_{appendix}{suffix}"
        appendix += 1


def create_dir_safely(parent: Path, name: str) -> Path:
    """Create a fresh directory ``parent/name``, ``parent/name_0``, ... and return it."""

    parent.mkdir(parents=True, exist_ok=True)
    for candidate in _candidate_names(name):
        path = parent / candidate
        if ensure_dir(path):
            return path
    raise AssertionError("unreachable")


def write_file_safely(parent: Path, stem: str, extension: str, contents: bytes) -> Path:
    """
    Write ``contents`` to ``parent/stem.extension`` without ever overwriting:
    an existing file pushes the name to ``stem_0.extension``, ``stem_1...``.
    ``extension`` is given without a leading dot.
    """

    parent.mkdir(parents=True, exist_ok=True)
    for candidate in _candidate_names(stem, f".{extension}"):
        path = parent / candidate
        try:
            handle = path.open("xb")
        except FileExistsError:
            continue
        with handle:
            handle.write(contents)
        return path
    raise AssertionError("unreachable")
