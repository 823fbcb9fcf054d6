import datetime
import io
import pathlib
import zipfile
from typing import Dict, Optional

from .utils import clean_filename, get_logger

logger = get_logger("OutputManager")


def archive_name(title: str, expires: Optional[datetime.date] = None, max_title: Optional[int] = None) -> str:
    """
    Returns the zip filename for a book.
    Format: {Title}_DUE_{Mon Oct 19 2026}.zip, reserved characters removed.
    """
    if max_title is not None:
        title = title[:max_title]
    if expires is None:
        return clean_filename(f"{title}.zip")
    return clean_filename(f"{title}_DUE_{expires.strftime('%a %b %d %Y')}.zip")


def build_zip(files: Dict[str, bytes]) -> bytes:
    """Zips {archive path: payload} in memory, in insertion order."""
    buf = io.BytesIO()
    # mp3 data doesn't compress, store it as is
    with zipfile.ZipFile(buf, "w", compression=zipfile.ZIP_STORED) as zf:
        for name, data in files.items():
            zf.writestr(name, data)
    return buf.getvalue()


def save_archive(output_dir, name: str, data: bytes) -> pathlib.Path:
    output_dir = pathlib.Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    path = output_dir / name
    with open(path, "wb") as f:
        f.write(data)

    logger.info(f"Saved {len(data)} bytes to {path}")
    return path
