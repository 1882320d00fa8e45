"""
Project file collection for the CLI.

Walks a directory, skips hidden and ignored directories, keeps files whose
suffix (or basename, for Dockerfile-style names) is a known language and whose
size is under the configured cap.
"""
import logging
import os
from pathlib import Path
from typing import Iterable, List, Optional

from codescan.config_loader import ProjectConfig
from codescan.languages import find_language
from codescan.schemas import ProjectFile

logger = logging.getLogger(__name__)


def _normalize_ext(ext: str) -> str:
    """".PY" and "py" -> ".py"; basenames such as "Dockerfile" are kept as-is."""
    ext = ext.strip()
    if ext.startswith("."):
        return ext.lower()
    if ext[:1].isupper():
        return ext
    return "." + ext.lower()


def _wanted(path: Path, extensions: Optional[List[str]]) -> bool:
    if extensions:
        return path.suffix.lower() in extensions or path.name in extensions
    return find_language(path.name) is not None


def collect_paths(
    target: Path,
    *,
    extensions: Optional[Iterable[str]] = None,
    config: Optional[ProjectConfig] = None,
) -> List[Path]:
    """Files to review under `target` (or [target] for a single file), sorted."""
    config = config or ProjectConfig()
    if target.is_file():
        return [target]
    if not target.is_dir():
        raise FileNotFoundError(f"Path not found: {target}")

    exts = [_normalize_ext(e) for e in (extensions or config.extensions) if e.strip()]
    ignored = set(config.ignored_dirs)
    found: List[Path] = []
    for root, dirs, names in os.walk(target):
        dirs[:] = sorted(d for d in dirs if not d.startswith(".") and d not in ignored)
        for name in sorted(names):
            path = Path(root) / name
            if name.startswith(".") or not _wanted(path, exts or None):
                continue
            try:
                size = path.stat().st_size
            except OSError as e:
                logger.warning("Skipping %s: %s", path, e)
                continue
            if size >= config.max_file_bytes:
                logger.info("Skipping %s: %d bytes exceeds limit", path, size)
                continue
            found.append(path)
    return found


def load_project_files(paths: Iterable[Path], base: Optional[Path] = None) -> List[ProjectFile]:
    """Read files as UTF-8 (undecodable bytes replaced). Paths are made relative to base."""
    files = []
    for path in paths:
        code = path.read_text(encoding="utf-8", errors="replace")
        display = path
        if base is not None:
            try:
                display = path.relative_to(base)
            except ValueError:
                pass
        files.append(ProjectFile(path=display.as_posix(), code=code))
    return files
