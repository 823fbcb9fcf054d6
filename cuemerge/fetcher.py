import io
import os
import subprocess
import tempfile
from dataclasses import dataclass
from typing import Optional, Tuple

import requests
from mutagen import MutagenError
from mutagen.mp3 import MP3

from .errors import FetchError
from .models import FetchResult
from .utils import get_logger, zero_pad

logger = get_logger(__name__)

USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64; rv:128.0) Gecko/20100101 Firefox/128.0"
)


@dataclass
class FetchSettings:
    timeout: float = 30.0
    user_agent: str = USER_AGENT


class PartFetcher:
    """
    Downloads part files. One attempt per part: any network or decode
    failure is raised as FetchError and the caller decides what to do.
    """

    def __init__(self, settings: Optional[FetchSettings] = None, session: Optional[requests.Session] = None):
        self.settings = settings or FetchSettings()
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": self.settings.user_agent})

    def fetch_bytes(self, part: int, url: str) -> bytes:
        logger.info(f"Fetching Part{zero_pad(part)} from {url}")
        try:
            response = self.session.get(url, timeout=self.settings.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise FetchError(part, f"download failed: {e}") from e
        return response.content

    def fetch(self, part: int, url: str, decode: bool = False) -> FetchResult:
        """Downloads a part and measures its duration in seconds."""
        content = self.fetch_bytes(part, url)
        if decode:
            duration = self.decode_duration(part, content)
        else:
            duration = self.probe_duration(part, content)
        logger.debug(f"Part{zero_pad(part)}: {len(content)} bytes, {duration:.3f}s")
        return FetchResult(part, content, duration)

    def probe_duration(self, part: int, content: bytes) -> float:
        """Duration from the MP3 headers (Xing/VBRI or bitrate estimate)."""
        try:
            return float(MP3(io.BytesIO(content)).info.length)
        except MutagenError as e:
            raise FetchError(part, f"could not read MP3 headers: {e}") from e

    def decode_duration(self, part: int, content: bytes) -> float:
        """Duration by decoding the audio with ffprobe. Slower, but exact for broken headers."""
        fd, tmp_path = tempfile.mkstemp(suffix=".mp3")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(content)
            cmd = [
                "ffprobe", "-v", "error",
                "-show_entries", "format=duration",
                "-of", "default=noprint_wrappers=1:nokey=1",
                tmp_path
            ]
            output = subprocess.check_output(cmd).decode().strip()
            return float(output)
        except (OSError, subprocess.CalledProcessError, ValueError) as e:
            raise FetchError(part, f"could not decode audio: {e}") from e
        finally:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)

    def fetch_cover(self, url: str) -> Tuple[bytes, str]:
        """Returns (image bytes, mime type)."""
        logger.info(f"Fetching cover from {url}")
        try:
            response = self.session.get(url, timeout=self.settings.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise FetchError(None, f"cover download failed: {e}") from e
        mime = response.headers.get("Content-Type", "image/jpeg").split(";")[0].strip()
        return response.content, mime

    def fetch_json(self, url: str) -> dict:
        try:
            response = self.session.get(url, timeout=self.settings.timeout)
            response.raise_for_status()
            return response.json()
        except (requests.RequestException, ValueError) as e:
            raise FetchError(None, f"could not load {url}: {e}") from e
