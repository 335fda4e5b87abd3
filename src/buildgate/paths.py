"""Derived file paths computed lazily from other path providers."""

from __future__ import annotations

import os
from collections.abc import Callable
from pathlib import Path

from buildgate.lazy import Provider

CANDIDATE_MARKER = "new"


def filter_exists(file: Provider[Path]) -> Provider[Path]:
    """Unset when the file does not exist at read time."""
    return file.filter(lambda path: path.exists())


def parent_directory_of(root: Path, file: Provider[Path]) -> Provider[Path]:
    """Parent of ``file`` re-resolved as a directory below ``root``.

    The parent is relativized against ``root`` first so that equivalent
    spellings of the same directory resolve to one normalized path.
    """

    def relative_parent(path: Path) -> str:
        absolute = path if path.is_absolute() else root / path
        return os.path.relpath(absolute.parent, root)

    def as_directory(relative: str) -> Path:
        if relative in ("", os.curdir):
            return root
        return Path(os.path.normpath(root / relative))

    return file.map(relative_parent).map(as_directory)


def make_sibling(
    root: Path,
    file: Provider[Path],
    rename: Callable[[Path], str],
) -> Provider[Path]:
    """Path next to ``file`` whose name is ``rename(file)``."""
    return parent_directory_of(root, file).zip(file, lambda parent, actual: parent / rename(actual))


def sibling(
    root: Path,
    file: Provider[Path],
    rename: Callable[[Path], str],
    *,
    must_exist: bool = True,
) -> Provider[Path]:
    """Sibling of ``file``; unset while ``file`` is missing unless ``must_exist`` is off."""
    source = filter_exists(file) if must_exist else file
    return make_sibling(root, source, rename)


def candidate_name(path: Path) -> str:
    """``name.ext`` becomes ``name.new.ext``; files without a suffix get ``name.new``."""
    if not path.suffix:
        return f"{path.name}.{CANDIDATE_MARKER}"
    return f"{path.stem}.{CANDIDATE_MARKER}{path.suffix}"


def candidate_sibling(root: Path, file: Provider[Path], *, must_exist: bool = True) -> Provider[Path]:
    return sibling(root, file, candidate_name, must_exist=must_exist)


__all__ = [
    "CANDIDATE_MARKER",
    "candidate_name",
    "candidate_sibling",
    "filter_exists",
    "make_sibling",
    "parent_directory_of",
    "sibling",
]
