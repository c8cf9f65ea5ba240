from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from PIL import Image

from .hasher import short_hash
from .types import ImagePair
from .utils import ensure_dir


def question_answer_names(base_name: str, content_hash: str) -> tuple[str, str]:
    prefix = f"{base_name}_{short_hash(content_hash)}"
    return f"{prefix}_question.png", f"{prefix}_answer.png"


def split_halves(image: Image.Image) -> tuple[Image.Image, Image.Image]:
    """Top half and bottom half. For odd heights the bottom gets the extra row."""
    w, h = image.size
    mid = h // 2
    return image.crop((0, 0, w, mid)), image.crop((0, mid, w, h))


@dataclass
class ImageSplitter:
    output_dir: Path
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger(__name__))

    def __post_init__(self) -> None:
        self.output_dir = Path(self.output_dir)
        ensure_dir(self.output_dir)

    def split(self, raster: Image.Image | str | Path, base_name: str, content_hash: str) -> ImagePair:
        """Write <base>_<hash8>_question.png and <base>_<hash8>_answer.png.

        Side effects:
        - Both files land in output_dir. If the answer write fails the
          question file stays behind; the pair as a whole has failed.

        Raises:
            OSError: the source could not be decoded or an output could
                not be written.
        """
        if isinstance(raster, (str, Path)):
            self.logger.debug("splitting image: %s", raster)
            with Image.open(raster) as src:
                src.load()
                image = src.copy()
        else:
            image = raster

        question_img, answer_img = split_halves(image)
        question_name, answer_name = question_answer_names(base_name, content_hash)
        question_path = self.output_dir / question_name
        answer_path = self.output_dir / answer_name

        question_img.save(question_path, format="PNG")
        answer_img.save(answer_path, format="PNG")

        self.logger.debug("created question image: %s", question_path)
        self.logger.debug("created answer image: %s", answer_path)
        return ImagePair(question=question_path, answer=answer_path, hash=content_hash)
