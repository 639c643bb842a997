"""Source file collection for the command line."""

from pathlib import Path
from typing import Iterable, List, Sequence, Tuple

from .logging_setup import get_logger

logger = get_logger(__name__)

SKIP_DIRS = frozenset({".git", "__pycache__", ".venv", "venv", "node_modules", ".tox"})


def collect_files(paths: Iterable[Path], suffixes: Sequence[str]) -> List[Path]:
    """Collect source files from files and directories.

    Explicit files are taken as given. Directories are searched
    recursively for files with one of ``suffixes``, skipping VCS and
    virtualenv directories. Order is stable: arguments in the order
    given, directory contents sorted.

    Args:
        paths: Files or directories
        suffixes: Accepted suffixes for directory scans, e.g. (".py",)

    Returns:
        List of file paths, without duplicates
    """
    seen = set()
    files: List[Path] = []

    def add(path: Path) -> None:
        key = path.resolve()
        if key not in seen:
            seen.add(key)
            files.append(path)

    for base in paths:
        base = Path(base)
        if not base.exists():
            logger.warning(f"Path does not exist: {base}")
            continue
        if base.is_file():
            add(base)
            continue
        for candidate in sorted(base.rglob("*")):
            if not candidate.is_file() or candidate.suffix not in suffixes:
                continue
            if SKIP_DIRS.intersection(candidate.relative_to(base).parts):
                continue
            add(candidate)

    return files


def read_sources(files: Iterable[Path]) -> List[Tuple[str, str]]:
    """Read files as ``(label, code)`` pairs; the label is the path as given."""
    return [(str(path), path.read_text(encoding="utf-8", errors="replace")) for path in files]
