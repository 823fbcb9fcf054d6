"""
Translates chapter boundaries, expressed as (part, offset) pairs, into
absolute millisecond positions in the merged stream.

Parts are fetched lazily, once each and in ascending order; the duration of a
part is only known after it has been fetched, so boundary resolution is
interleaved with fetching. The walk is a left fold over the chapter index:
`advance` takes the accumulator state and one boundary and returns the new
state plus that chapter's (tentative) timestamps. `fetch` is the only effect.
"""
from dataclasses import dataclass
from typing import Callable, List, NamedTuple, Optional, Tuple

from .errors import FetchError
from .models import Chapter, ChapterBoundary, FetchResult, Spine
from .utils import get_logger, to_ms

logger = get_logger(__name__)

FetchFn = Callable[[int, str], FetchResult]


@dataclass(frozen=True)
class AccumulatorState:
    current: Optional[FetchResult] = None   # last fetched part
    offset: float = 0.0                     # seconds already placed in the merged stream
    parts: Tuple[bytes, ...] = ()           # payloads in fetch order


class TimelineEntry(NamedTuple):
    title: str
    start: float
    end: Optional[float]                    # None until the end of the stream is known


class Timeline(NamedTuple):
    parts: List[bytes]
    chapters: List[Chapter]
    total_seconds: float
    starts: List[float]                 # unrounded chapter starts in seconds


def finalize_part_offset(current: FetchResult, boundary: ChapterBoundary, offset: float) -> float:
    """
    Adds what is left of `current` to the running offset. If the active
    chapter starts inside this part only the audio past that start counts,
    the rest was already accounted for by the previous chapter's end.
    """
    if current.part == boundary.start.part:
        remainder = current.duration - boundary.start.offset
        logger.debug(f"Incrementing by remainder of part {current.part}: {remainder}")
        return offset + remainder
    logger.debug(f"Incrementing by full duration of part {current.part}: {current.duration}")
    return offset + current.duration


def _fetch_part(fetch: FetchFn, spine: Spine, part: int) -> FetchResult:
    url = spine.get_part_url(part)
    logger.debug(f"Fetching part {part}")
    try:
        return fetch(part, url)
    except FetchError:
        raise
    except Exception as e:
        raise FetchError(part, str(e)) from e


def advance(
    state: AccumulatorState,
    boundary: ChapterBoundary,
    fetch: FetchFn,
    spine: Spine,
) -> Tuple[AccumulatorState, TimelineEntry]:
    """One fold step: fetch up to the boundary's end part and place the chapter."""
    logger.debug(f"Processing chapter {boundary!r}")
    start = state.offset
    current, offset, parts = state.current, state.offset, state.parts

    while current is None or current.part < boundary.end.part:
        if current is None:
            current = _fetch_part(fetch, spine, 1)
        else:
            offset = finalize_part_offset(current, boundary, offset)
            current = _fetch_part(fetch, spine, current.part + 1)
        parts = parts + (current.content,)

    if boundary.end.is_end_of_stream:
        end = None
    elif boundary.start.part == boundary.end.part:
        # both positions are in the same part, only the distance between them counts
        offset += boundary.end.offset - boundary.start.offset
        end = offset
    else:
        # end offset is relative to the part the chapter ends in
        offset += boundary.end.offset
        end = offset
    logger.debug(f"Current offset {offset}")

    return AccumulatorState(current, offset, parts), TimelineEntry(boundary.title, start, end)


def accumulate(spine: Spine, fetch: FetchFn) -> Timeline:
    """
    Walks the chapter index, fetching every part it covers exactly once, and
    returns the part payloads plus millisecond chapter positions. The last
    chapter's end is resolved from the total duration after the walk.
    """
    spine.validate()
    if not spine.index:
        return Timeline([], [], 0.0, [])

    state = AccumulatorState()
    entries: List[TimelineEntry] = []
    for boundary in spine.index:
        state, entry = advance(state, boundary, fetch, spine)
        entries.append(entry)

    total = finalize_part_offset(state.current, spine.index[-1], state.offset)

    chapters = [
        Chapter(entry.title, to_ms(entry.start), to_ms(entry.end if entry.end is not None else total))
        for entry in entries
    ]
    # whatever the last chapter claimed, it runs to the end of what was fetched
    chapters[-1].end_time_ms = to_ms(total)

    logger.info(f"Placed {len(chapters)} chapters over {len(state.parts)} parts ({total:.3f}s)")
    return Timeline(list(state.parts), chapters, total, [entry.start for entry in entries])
