from __future__ import annotations

import logging
import os
from pathlib import Path

from .types import PDFFile


def find_pdfs(root: str | Path, *, logger: logging.Logger | None = None) -> list[PDFFile]:
    """All PDFs under ``root``, depth-first in sorted order.

    Hidden files and directories are skipped. The relative path is what
    deck names are built from.
    """
    log = logger or logging.getLogger(__name__)
    root = Path(root)
    if not root.is_dir():
        raise FileNotFoundError(f"PDF directory does not exist: {root}")

    found: list[PDFFile] = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if not d.startswith("."))
        log.debug("scanning directory: %s", dirpath)
        for name in sorted(filenames):
            if name.startswith(".") or Path(name).suffix.lower() != ".pdf":
                continue
            abs_path = Path(dirpath) / name
            found.append(PDFFile(absolute_path=abs_path.resolve(), relative_path=abs_path.relative_to(root)))
    return found
