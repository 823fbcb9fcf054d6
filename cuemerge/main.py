import argparse
import datetime
import json
import sys

from .errors import CuemergeError
from .fetcher import FetchSettings, PartFetcher
from .metadata import loan_expiry, parse_book_meta, pick_cover_href
from .output_manager import save_archive
from .processor import load_spine, mp3_parts, mp3_with_cue
from .utils import get_logger, setup_logging

logger = get_logger("Main")


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Rebuild a multi-part audiobook into a zip of parts or one chaptered MP3")
    parser.add_argument("openbook", help="Openbook JSON: an http(s) URL or a local file")
    parser.add_argument("--base-url", help="URL the openbook was served from (required for local files)")
    parser.add_argument("--merge", action="store_true", help="Merge parts into a single MP3 with a .cue sheet")
    parser.add_argument("--decode", action="store_true", help="Measure part durations with ffprobe instead of MP3 headers")
    parser.add_argument("--expires", type=datetime.date.fromisoformat, help="Loan expiry date (YYYY-MM-DD)")
    parser.add_argument("--cover", help="Cover image URL")
    parser.add_argument("--media", help="Title media JSON (URL or file), used to find the cover when --cover is omitted")
    parser.add_argument("--sync-state", help="Library sync JSON (URL or file), used to find the loan expiry when --expires is omitted")
    parser.add_argument("--title-id", help="Title id to look up in the sync state (defaults to the media id)")
    parser.add_argument("--output", "-o", default=".", help="Directory to save the zip in")
    parser.add_argument("--timeout", type=float, default=30.0, help="Per request timeout in seconds")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")
    return parser.parse_args(argv)


def is_url(source: str) -> bool:
    return source.startswith(("http://", "https://"))


def load_json(source: str, fetcher: PartFetcher) -> dict:
    if is_url(source):
        return fetcher.fetch_json(source)
    with open(source, "r", encoding="utf-8") as f:
        return json.load(f)


def load_openbook(args: argparse.Namespace, fetcher: PartFetcher):
    """Returns (openbook dict, URL it was served from)."""
    if is_url(args.openbook):
        return load_json(args.openbook, fetcher), args.openbook

    if not args.base_url:
        logger.error("--base-url is required when the openbook is a local file")
        sys.exit(1)
    return load_json(args.openbook, fetcher), args.base_url


def resolve_loan_details(args: argparse.Namespace, fetcher: PartFetcher):
    """
    Returns (cover URL, expiry date). Explicit flags win; otherwise the cover
    comes from the media JSON and the expiry from the matching loan in the
    sync state.
    """
    cover_url, expires = args.cover, args.expires
    media = load_json(args.media, fetcher) if args.media else {}

    if not cover_url and media:
        cover_url = pick_cover_href(media)
        logger.debug(f"Cover from media: {cover_url}")

    if expires is None and args.sync_state:
        title_id = args.title_id or media.get("id")
        if title_id:
            expires = loan_expiry(load_json(args.sync_state, fetcher), title_id)
            if expires is None:
                logger.warning(f"No loan for title {title_id} in the sync state")
        else:
            logger.warning("--sync-state needs --title-id or --media to know which loan to read")
    return cover_url, expires


def main(argv=None):
    args = parse_args(argv)

    log_level = "DEBUG" if args.verbose else "INFO"
    setup_logging(log_level)

    fetcher = PartFetcher(FetchSettings(timeout=args.timeout))

    try:
        openbook, openbook_url = load_openbook(args, fetcher)
        spine = load_spine(openbook, openbook_url)
        if not spine.index:
            logger.error("No chapters found in the table of contents. Exiting.")
            sys.exit(1)
        logger.info(f"{len(spine.index)} chapters over {len(spine.part_files)} parts")

        cover_url, expires = resolve_loan_details(args, fetcher)
        cover, cover_mime = None, "image/jpeg"
        if cover_url:
            cover, cover_mime = fetcher.fetch_cover(cover_url)
        meta = parse_book_meta(openbook, expires=expires, cover=cover, cover_mime=cover_mime)

        if args.merge:
            logger.info("Merging files and parsing chapters")
            archive = mp3_with_cue(spine, meta, fetcher, decode=args.decode)
        else:
            logger.info("Downloading files directly")
            archive = mp3_parts(spine, meta, fetcher)
    except (CuemergeError, OSError, ValueError) as e:
        logger.error(f"Failed: {e}")
        sys.exit(1)

    path = save_archive(args.output, archive.name, archive.data)
    logger.info(f"Processing complete: {path}")


if __name__ == "__main__":
    main()
