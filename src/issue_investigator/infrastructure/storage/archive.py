"""Zip archives of per-issue working directories."""

import io
import zipfile
from pathlib import Path
from typing import Iterable, Optional

# Cloned projects can be large and are reproducible from their URL.
DEFAULT_EXCLUDED_DIRS = ("project", ".git", "__pycache__", "node_modules")


def build_directory_archive(root: Path, excluded_dirs: Optional[Iterable[str]] = None) -> bytes:
    """Zip every regular file under ``root`` (paths stored relative to it)."""
    excluded = set(DEFAULT_EXCLUDED_DIRS if excluded_dirs is None else excluded_dirs)
    buffer = io.BytesIO()

    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for path in sorted(root.rglob("*")):
            relative = path.relative_to(root)
            if any(part in excluded for part in relative.parts):
                continue
            if path.is_file():
                archive.write(path, arcname=relative.as_posix())

    return buffer.getvalue()
