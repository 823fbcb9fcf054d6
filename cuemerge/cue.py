from decimal import Decimal
from typing import List, NamedTuple, Optional, Sequence

from .models import Chapter
from .utils import round_half_away, seconds_to_hms, zero_pad


class CueTrack(NamedTuple):
    number: int                         # 1-based
    title: str
    start_seconds: int


def to_time(seconds: int, with_hours: bool = False) -> str:
    """
    Formats a second offset as a CUE index timestamp, MM:SS by default.
    Minutes are not capped at 59 unless hours are split off.
    """
    if with_hours:
        return seconds_to_hms(seconds)
    m = seconds // 60
    s = seconds % 60
    return f"{zero_pad(m)}:{zero_pad(s)}"


def build_cue_records(chapters: List[Chapter], starts: Optional[Sequence[float]] = None) -> List[CueTrack]:
    """
    One track per chapter. `starts` are the chapter starts in seconds before
    any millisecond rounding; when given, each index is rounded from those
    once instead of from the already rounded `start_time_ms`.
    """
    if starts is None:
        starts = [Decimal(chapter.start_time_ms) / 1000 for chapter in chapters]
    return [
        CueTrack(i + 1, chapter.title, round_half_away(start))
        for i, (chapter, start) in enumerate(zip(chapters, starts))
    ]


def format_cue(title: str, tracks: List[CueTrack], filename: Optional[str] = None, with_hours: bool = False) -> str:
    """Renders the CUE sheet. `filename` defaults to '<title>.mp3'."""
    filename = filename or f"{title}.mp3"
    lines = [
        f'TITLE "{title}"',
        f'FILE "{filename}" MP3',
    ]
    for track in tracks:
        lines += [
            f"  TRACK {zero_pad(track.number)} AUDIO",
            f'    TITLE "{track.title}"',
            f"    INDEX 01 {to_time(track.start_seconds, with_hours)}",
        ]
    return "\n".join(lines)


def chapter_tags(chapters: List[Chapter]) -> List[dict]:
    """The embedded chapter list handed to the tag writer."""
    return [
        {
            "elementID": chapter.element_id,
            "startTimeMs": chapter.start_time_ms,
            "endTimeMs": chapter.end_time_ms,
        }
        for chapter in chapters
    ]
