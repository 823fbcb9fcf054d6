import re
from typing import Iterable, List, Mapping, NamedTuple, Optional, Tuple, Union

from .errors import MalformedTocError, UnresolvedPathError
from .models import TocChapter, TocRow
from .utils import get_logger

logger = get_logger(__name__)


class FlatRow(NamedTuple):
    title: str
    path: Optional[str]
    nested: bool = False                # came from a parent's `contents`
    has_contents: bool = False


def parse_part_path(path: str) -> Tuple[str, int]:
    """
    Splits a TOC path into its structural key and the `#offset` fragment.
    '{12345-6789}Fmt111-Part01.mp3#111' -> ('{12345-6789}Fmt111-Part01.mp3', 111)
    """
    key, sep, fragment = path.partition("#")
    if not sep:
        return key, 0

    match = re.match(r"\s*(\d+)", fragment)
    if not match:
        raise MalformedTocError(f"Path '{path}' has a non numeric offset fragment")
    return key, int(match.group(1))


def flatten_toc(rows: Iterable[TocRow]) -> List[FlatRow]:
    """
    Flattens nested `contents` in document order. Children carry their
    parent's title so the merge pass treats them as continuations.
    """
    flat = []

    def _walk(row: TocRow, title: str, nested: bool):
        flat.append(FlatRow(title, row.path, nested, bool(row.contents)))
        for sub in row.contents:
            _walk(sub, title, True)

    for row in rows:
        _walk(row, row.title, False)
    return flat


def _resolve(path_map: Mapping[str, str], path: str) -> Tuple[str, int]:
    key, offset = parse_part_path(path)
    url = path_map.get(key)
    if url is None:
        raise UnresolvedPathError(key)
    return url, offset


def parse_toc(path_map: Mapping[str, str], toc: Iterable[Union[TocRow, dict]]) -> List[TocChapter]:
    """
    Turns the raw table of contents into logical chapters.

    Consecutive rows sharing a title are one chapter: only the first row sets
    the start offset, later rows (and nested rows) just add their part URL
    when it differs from the chapter's last one.
    """
    rows = [row if isinstance(row, TocRow) else TocRow.from_dict(row) for row in toc]
    logger.debug(f"Parsing table of contents with {len(rows)} top level rows")

    chapters: List[TocChapter] = []
    for row in flatten_toc(rows):
        last = chapters[-1] if chapters else None

        if last and last.title == row.title:
            if not row.path or (row.has_contents and not row.nested):
                # a continuation with children only contributes the children's parts
                continue
            url, _ = _resolve(path_map, row.path)
            if last.paths[-1] != url:
                if not row.nested:
                    logger.debug(f"Found contiguous chapters with the same name, merging '{row.title}'")
                last.paths.append(url)
            continue

        if not row.path:
            raise MalformedTocError(f"TOC row '{row.title}' starts a chapter but has no path")
        url, offset = _resolve(path_map, row.path)
        chapters.append(TocChapter(row.title, [url], offset))

    logger.info(f"Parsed {len(chapters)} chapters from the table of contents")
    return chapters
