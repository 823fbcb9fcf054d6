import datetime
from typing import Dict, Optional
from urllib.parse import urlparse

from .models import BookMeta
from .utils import get_logger

logger = get_logger(__name__)

COVER_KEYS = ("cover300Wide", "cover150Wide", "cover510Wide")


def build_path_map(openbook: dict, openbook_url: str) -> Dict[str, str]:
    """
    Maps each spine entry's original path (what the TOC refers to) to the
    URL the part is served from, relative to the openbook host.
    """
    url = urlparse(openbook_url)
    path_map = {}
    for item in openbook.get("spine", []):
        path_map[item["-odread-original-path"]] = f"{url.scheme}://{url.netloc}/{item['path']}"
    logger.debug(f"Resolved {len(path_map)} spine paths")
    return path_map


def book_title(openbook: dict) -> str:
    """'Main: Subtitle (Collection)'"""
    title = openbook.get("title", {})
    text = title.get("main", "Unknown Title")
    if title.get("subtitle"):
        text += f": {title['subtitle']}"
    if title.get("collection"):
        text += f" ({title['collection']})"
    return text


def parse_book_meta(
    openbook: dict,
    expires: Optional[datetime.date] = None,
    cover: Optional[bytes] = None,
    cover_mime: str = "image/jpeg",
) -> BookMeta:
    creators = openbook.get("creator", [])
    authors = [c["name"] for c in creators if c.get("role") == "author"]
    narrators = [c["name"] for c in creators if c.get("role") == "narrator"]

    description = openbook.get("description", {})
    if isinstance(description, str):
        text = description
    else:
        text = description.get("short") or description.get("long") or description.get("full") or ""

    return BookMeta(
        title=book_title(openbook),
        author=", ".join(authors),
        narrator=", ".join(narrators),
        description=text,
        cover=cover,
        cover_mime=cover_mime,
        expires=expires,
    )


def pick_cover_href(media: dict) -> Optional[str]:
    covers = media.get("covers", {})
    for key in COVER_KEYS:
        if covers.get(key):
            return covers[key]["href"]
    return None


def loan_expiry(sync_state: dict, title_id: str) -> Optional[datetime.date]:
    for loan in sync_state.get("loans", []):
        if str(loan.get("id")) == str(title_id) and loan.get("expires"):
            # e.g. 2024-05-01T13:00:00Z
            return datetime.datetime.fromisoformat(loan["expires"].replace("Z", "+00:00")).date()
    return None
