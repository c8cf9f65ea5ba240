from __future__ import annotations

from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from typing import Any, Iterator

from PIL import Image

from .errors import PageRetrievalError


@dataclass
class FitzPage:
    """One page of an open PyMuPDF document.

    Exposes the three things the pipeline needs from a renderer: the page
    size in points, its text layer and a raster.
    """

    doc: Any
    index: int  # 0-based

    def _load(self) -> Any:
        try:
            return self.doc.load_page(self.index)
        except Exception as e:
            raise PageRetrievalError(self.index, "page", e) from e

    def bounds(self) -> tuple[float, float]:
        rect = self._load().rect
        return float(rect.width), float(rect.height)

    def text(self) -> str:
        return self._load().get_text()

    def render(self, dpi: int) -> Image.Image:
        import fitz  # PyMuPDF

        zoom = dpi / 72.0
        try:
            pix = self._load().get_pixmap(matrix=fitz.Matrix(zoom, zoom), alpha=False)
            img_bytes = pix.tobytes("png")
        except PageRetrievalError:
            raise
        except Exception as e:
            raise PageRetrievalError(self.index, "raster", e) from e
        return Image.open(BytesIO(img_bytes)).convert("RGB")


class PDFDocument:
    def __init__(self, path: str | Path):
        try:
            import fitz  # PyMuPDF
        except Exception as e:  # pragma: no cover
            raise RuntimeError("PyMuPDF is required to read PDFs. Install pymupdf.") from e

        self.path = Path(path)
        self._doc = fitz.open(self.path)

    @property
    def page_count(self) -> int:
        return int(self._doc.page_count)

    def page(self, index: int) -> FitzPage:
        if not 0 <= index < self.page_count:
            raise IndexError(f"page index out of range: {index}")
        return FitzPage(doc=self._doc, index=index)

    def iter_pages(self) -> Iterator[FitzPage]:
        for i in range(self.page_count):
            yield FitzPage(doc=self._doc, index=i)

    def close(self) -> None:
        self._doc.close()

    def __enter__(self) -> "PDFDocument":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


def open_pdf(path: str | Path) -> PDFDocument:
    return PDFDocument(path)
