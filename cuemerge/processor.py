from typing import NamedTuple, Optional

from .cue import build_cue_records, format_cue
from .fetcher import PartFetcher
from .metadata import build_path_map
from .models import BookMeta, ProcessedMP3, Spine
from .output_manager import archive_name, build_zip
from .spine import build_spine
from .tags import TagWriter, build_tag_set
from .timeline import accumulate
from .toc import parse_toc
from .utils import clean_filename, get_logger, zero_pad

logger = get_logger("Processor")


class Archive(NamedTuple):
    name: str
    data: bytes


def load_spine(openbook: dict, openbook_url: str) -> Spine:
    """Openbook JSON -> path map -> logical chapters -> spine."""
    path_map = build_path_map(openbook, openbook_url)
    toc = openbook.get("nav", {}).get("toc", [])
    chapters = parse_toc(path_map, toc)
    return build_spine(chapters)


def process_mp3_files(spine: Spine, meta: BookMeta, fetcher: PartFetcher, decode: bool = False) -> ProcessedMP3:
    """Fetches every part once and computes the chapter positions and CUE sheet."""
    timeline = accumulate(spine, lambda part, url: fetcher.fetch(part, url, decode=decode))

    processed = ProcessedMP3(
        meta=meta,
        parts=timeline.parts,
        chapters=timeline.chapters,
        total_seconds=timeline.total_seconds,
    )
    processed.cue_content = format_cue(
        meta.title,
        build_cue_records(timeline.chapters, timeline.starts),
        filename=f"{clean_filename(meta.title)}.mp3",
    )

    logger.info("Chapter list")
    for chapter in processed.chapters:
        logger.info(f"  {chapter!r}")
    return processed


def mp3_with_cue(
    spine: Spine,
    meta: BookMeta,
    fetcher: PartFetcher,
    decode: bool = False,
    tag_writer: Optional[TagWriter] = None,
) -> Archive:
    """
    The whole book as one tagged MP3 with embedded chapters, plus a .cue
    sheet, zipped in memory.
    """
    tag_writer = tag_writer or TagWriter()
    processed = process_mp3_files(spine, meta, fetcher, decode=decode)

    tagged = tag_writer.apply(processed.merged, build_tag_set(meta, processed.chapters))

    filename = clean_filename(meta.title)
    data = build_zip({
        f"{filename}.cue": processed.cue_content.encode("utf-8"),
        f"{filename}.mp3": tagged,
    })
    return Archive(archive_name(meta.title, meta.expires, max_title=25), data)


def mp3_parts(
    spine: Spine,
    meta: BookMeta,
    fetcher: PartFetcher,
    tag_writer: Optional[TagWriter] = None,
) -> Archive:
    """The parts exactly as served, each tagged with the book tags."""
    tag_writer = tag_writer or TagWriter()
    tag_set = build_tag_set(meta)
    folder = clean_filename(meta.title)

    files = {}
    for part in sorted(spine.part_files):
        content = fetcher.fetch_bytes(part, spine.get_part_url(part))
        files[f"{folder}/Part-{zero_pad(part)}.mp3"] = tag_writer.apply(content, tag_set)

    logger.info(f"Packed {len(files)} parts")
    return Archive(archive_name(meta.title, meta.expires), build_zip(files))
