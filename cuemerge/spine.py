import re
from typing import Dict, List
from urllib.parse import urlparse

from .errors import MalformedTocError
from .models import Bounded, ChapterBoundary, EndOfStream, Spine, TocChapter
from .utils import get_logger

logger = get_logger(__name__)


def parse_part_number(url: str) -> int:
    """
    Part number from a part URL. Paths look like xxxxx-PartNN.mp3:
    take what follows the last '-', drop the extension, keep the digits.
    """
    path = urlparse(url).path
    part_file = path.split("-")[-1]
    if "." in part_file:
        part_file = part_file[:part_file.rfind(".")]
    digits = re.sub(r"\D", "", part_file)
    if not digits or int(digits) < 1:
        raise MalformedTocError(f"Can't derive a part number from '{url}'")
    return int(digits)


def build_spine(chapters: List[TocChapter]) -> Spine:
    """
    Builds the part map and the chapter boundary index from logical chapters.
    Each chapter ends where the next one starts; the last one runs to the end
    of the stream.
    """
    logger.info("Building spine")
    part_files: Dict[int, str] = {}
    index: List[ChapterBoundary] = []

    def _register(url: str) -> int:
        part = parse_part_number(url)
        known = part_files.get(part)
        if known is not None and known != url:
            logger.warning(f"Part {part} maps to both '{known}' and '{url}', keeping the latter")
        part_files[part] = url
        return part

    last_part = 0
    for chapter in chapters:
        first_part = _register(chapter.paths[0])
        last_part = first_part
        for url in chapter.paths[1:]:
            logger.debug(f"Adding part with path {url}")
            last_part = _register(url)

        bounds = ChapterBoundary(
            chapter.title,
            Bounded(first_part, chapter.offset),
            EndOfStream(last_part),
        )
        if index:
            index[-1].end = bounds.start
        index.append(bounds)
        logger.debug(f"Chapter start {bounds}")

    if index:
        index[-1].end = EndOfStream(max(last_part, max(part_files)))

    return Spine(part_files, index).validate()
