import io
from typing import List, Optional

from mutagen import MutagenError
from mutagen.id3 import (APIC, CHAP, CTOC, ID3, TALB, TCOM, TIT2, TPE1, TRCK,
                         TXXX, CTOCFlags, ID3NoHeaderError)

from .cue import chapter_tags
from .errors import TaggingError
from .models import BookMeta, Chapter
from .utils import get_logger

logger = get_logger(__name__)


def build_tag_set(meta: BookMeta, chapters: Optional[List[Chapter]] = None) -> dict:
    """
    Book tags in a writer neutral shape. `chapter` is only present for the
    merged file; part files get the book tags alone.
    """
    tags = {
        "title": meta.title,
        "album": meta.title,
        "artist": meta.author,
        "composer": meta.narrator,
        "trackNumber": 1,
    }
    if meta.cover:
        tags["image"] = {
            "mime": meta.cover_mime,
            "type": {"id": 3, "name": "Front Cover"},
            "description": meta.description,
            "imageBuffer": meta.cover,
        }
    if meta.expires:
        tags["validUntil"] = meta.expires.isoformat()
    if chapters is not None:
        tags["chapter"] = chapter_tags(chapters)
    return tags


class TagWriter:
    """Writes a tag set into MP3 bytes as ID3v2 frames."""

    def __init__(self, v2_version: int = 3):
        self.v2_version = v2_version

    def apply(self, data: bytes, tag_set: dict) -> bytes:
        buf = io.BytesIO(data)
        try:
            tags = ID3(buf)
        except ID3NoHeaderError:
            tags = ID3()
        except MutagenError as e:
            raise TaggingError(f"Existing ID3 tag is unreadable: {e}") from e

        tags.setall("TIT2", [TIT2(encoding=3, text=[tag_set["title"]])])
        tags.setall("TALB", [TALB(encoding=3, text=[tag_set["album"]])])
        if tag_set.get("artist"):
            tags.setall("TPE1", [TPE1(encoding=3, text=[tag_set["artist"]])])
        if tag_set.get("composer"):
            tags.setall("TCOM", [TCOM(encoding=3, text=[tag_set["composer"]])])
        tags.setall("TRCK", [TRCK(encoding=3, text=[str(tag_set.get("trackNumber", 1))])])

        image = tag_set.get("image")
        if image:
            tags.setall("APIC", [APIC(
                encoding=3,
                mime=image["mime"],
                type=image["type"]["id"],
                desc=image["description"],
                data=image["imageBuffer"],
            )])

        if tag_set.get("validUntil"):
            tags.add(TXXX(encoding=3, desc="VALID_UNTIL", text=[tag_set["validUntil"]]))

        if "chapter" in tag_set:
            self._write_chapters(tags, tag_set["chapter"])

        buf.seek(0)
        try:
            tags.save(buf, v2_version=self.v2_version)
        except MutagenError as e:
            raise TaggingError(f"Could not write ID3 tag: {e}") from e
        return buf.getvalue()

    def _write_chapters(self, tags: ID3, chapters: List[dict]):
        tags.delall("CHAP")
        tags.delall("CTOC")

        # element ids must be unique, titles aren't; the title goes in TIT2
        child_ids = []
        for i, chapter in enumerate(chapters):
            element_id = f"ch{i}"
            tags.add(CHAP(
                element_id=element_id,
                start_time=chapter["startTimeMs"],
                end_time=chapter["endTimeMs"],
                start_offset=0xFFFFFFFF,
                end_offset=0xFFFFFFFF,
                sub_frames=[TIT2(encoding=3, text=[chapter["elementID"]])],
            ))
            child_ids.append(element_id)
            logger.debug(
                f"Added chap tag => {element_id}: {chapter['startTimeMs']}-{chapter['endTimeMs']} "
                f"'{chapter['elementID']}'"
            )

        tags.add(CTOC(
            element_id="toc",
            flags=CTOCFlags.TOP_LEVEL | CTOCFlags.ORDERED,
            child_element_ids=child_ids,
            sub_frames=[TIT2(encoding=3, text=["Table of Contents"])],
        ))
