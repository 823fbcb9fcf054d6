import datetime
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Union

from .errors import FetchError, MalformedSpineError


@dataclass(frozen=True)
class Bounded:
    """A point inside a part: `offset` seconds into part number `part`."""
    part: int
    offset: float

    @property
    def is_end_of_stream(self) -> bool:
        return False


@dataclass(frozen=True)
class EndOfStream:
    """
    "The rest of the stream". Still names the last part that has to be
    fetched before the real end is known.
    """
    part: int

    @property
    def is_end_of_stream(self) -> bool:
        return True


Position = Union[Bounded, EndOfStream]


@dataclass
class ChapterBoundary:
    title: str
    start: Bounded
    end: Position

    def __repr__(self):
        end = f"{self.end.part}#end" if self.end.is_end_of_stream else f"{self.end.part}#{self.end.offset}"
        return f"<ChapterBoundary '{self.title}' {self.start.part}#{self.start.offset} to {end}>"


@dataclass
class Spine:
    """Part number -> URL map plus the ordered chapter boundary index."""
    part_files: Dict[int, str]
    index: List[ChapterBoundary]

    def get_part_url(self, part: int) -> str:
        try:
            return self.part_files[part]
        except KeyError:
            raise FetchError(part, "no URL registered for this part") from None

    def validate(self):
        """Checks that boundaries are contiguous and only the last one is open ended."""
        for i, bounds in enumerate(self.index):
            if bounds.start.part < 1:
                raise MalformedSpineError(f"'{bounds.title}' starts in part {bounds.start.part}")
            end = bounds.end
            if end.part < bounds.start.part or (
                not end.is_end_of_stream
                and end.part == bounds.start.part
                and end.offset < bounds.start.offset
            ):
                raise MalformedSpineError(f"'{bounds.title}' ends before it starts: {bounds!r}")
            is_last = i == len(self.index) - 1
            if is_last:
                if not end.is_end_of_stream:
                    raise MalformedSpineError(f"The last chapter '{bounds.title}' must run to the end of the stream")
                continue
            if bounds.end.is_end_of_stream:
                raise MalformedSpineError(
                    f"Only the last chapter may run to the end of the stream, not '{bounds.title}'"
                )
            if bounds.end != self.index[i + 1].start:
                raise MalformedSpineError(
                    f"'{bounds.title}' ends at {bounds.end} but the next chapter starts at "
                    f"{self.index[i + 1].start}"
                )
        return self


@dataclass
class TocRow:
    """One table of contents entry as delivered by the openbook `nav.toc`."""
    title: str
    path: Optional[str] = None
    contents: List["TocRow"] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> "TocRow":
        return cls(
            title=data.get("title", ""),
            path=data.get("path"),
            contents=[cls.from_dict(sub) for sub in data.get("contents") or []],
        )

    @property
    def is_nested(self) -> bool:
        return bool(self.contents)


@dataclass
class TocChapter:
    """A logical chapter after merging: title, part URLs in order, start offset in the first part."""
    title: str
    paths: List[str]
    offset: float = 0


@dataclass
class FetchResult:
    part: int
    content: bytes
    duration: float


@dataclass
class Chapter:
    """A chapter as it sits in the merged stream."""
    element_id: str                     # ID3 CHAP element id, the chapter title
    start_time_ms: int
    end_time_ms: int

    @property
    def title(self) -> str:
        return self.element_id

    def __repr__(self):
        return f"<Chapter '{self.element_id}' {self.start_time_ms}ms-{self.end_time_ms}ms>"


@dataclass
class BookMeta:
    """Book level tag data."""
    title: str
    author: str = ""
    narrator: str = ""
    description: str = ""
    cover: Optional[bytes] = None
    cover_mime: str = "image/jpeg"
    expires: Optional[datetime.date] = None


@dataclass
class ProcessedMP3:
    """Result of processing the whole book: part payloads in fetch order, chapters and CUE text."""
    meta: BookMeta
    parts: List[bytes] = field(default_factory=list)
    chapters: List[Chapter] = field(default_factory=list)
    cue_content: str = ""
    total_seconds: float = 0.0

    @property
    def merged(self) -> bytes:
        return b"".join(self.parts)
