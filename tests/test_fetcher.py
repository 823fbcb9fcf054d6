import subprocess
import unittest
from unittest.mock import MagicMock, patch

import requests
from mutagen.mp3 import HeaderNotFoundError

from cuemerge.errors import FetchError
from cuemerge.fetcher import FetchSettings, PartFetcher


def make_fetcher(content=b"mp3data", headers=None):
    session = MagicMock()
    response = MagicMock()
    response.content = content
    response.headers = headers or {}
    session.get.return_value = response
    session.headers = {}
    return PartFetcher(FetchSettings(timeout=5, user_agent="test-agent"), session=session), session, response


class TestPartFetcher(unittest.TestCase):

    def test_fetch_bytes(self):
        fetcher, session, _ = make_fetcher()

        content = fetcher.fetch_bytes(3, "https://h/x-Part03.mp3")

        self.assertEqual(content, b"mp3data")
        session.get.assert_called_once_with("https://h/x-Part03.mp3", timeout=5)
        self.assertEqual(session.headers["User-Agent"], "test-agent")

    def test_http_error_is_a_fetch_error(self):
        fetcher, session, response = make_fetcher()
        response.raise_for_status.side_effect = requests.HTTPError("403 Forbidden")

        with self.assertRaises(FetchError) as ctx:
            fetcher.fetch_bytes(2, "https://h/x-Part02.mp3")
        self.assertEqual(ctx.exception.part, 2)
        self.assertIn("403", str(ctx.exception))

    def test_connection_error_is_not_retried(self):
        fetcher, session, _ = make_fetcher()
        session.get.side_effect = requests.ConnectionError("reset")

        with self.assertRaises(FetchError):
            fetcher.fetch_bytes(1, "https://h/x-Part01.mp3")
        self.assertEqual(session.get.call_count, 1)

    @patch("cuemerge.fetcher.MP3")
    def test_fetch_probes_duration_from_headers(self, mock_mp3):
        mock_mp3.return_value.info.length = 123.456
        fetcher, _, _ = make_fetcher()

        result = fetcher.fetch(4, "https://h/x-Part04.mp3")

        self.assertEqual(result.part, 4)
        self.assertEqual(result.content, b"mp3data")
        self.assertEqual(result.duration, 123.456)
        self.assertEqual(mock_mp3.call_args[0][0].getvalue(), b"mp3data")

    @patch("cuemerge.fetcher.MP3")
    def test_unreadable_headers(self, mock_mp3):
        mock_mp3.side_effect = HeaderNotFoundError("can't sync to MPEG frame")
        fetcher, _, _ = make_fetcher()

        with self.assertRaises(FetchError) as ctx:
            fetcher.fetch(1, "https://h/x-Part01.mp3")
        self.assertEqual(ctx.exception.part, 1)

    @patch("cuemerge.fetcher.subprocess.check_output")
    def test_fetch_with_decode_uses_ffprobe(self, mock_check_output):
        mock_check_output.return_value = b"99.5\n"
        fetcher, _, _ = make_fetcher()

        result = fetcher.fetch(1, "https://h/x-Part01.mp3", decode=True)

        self.assertEqual(result.duration, 99.5)
        cmd = mock_check_output.call_args[0][0]
        self.assertEqual(cmd[0], "ffprobe")
        self.assertTrue(cmd[-1].endswith(".mp3"))

    @patch("cuemerge.fetcher.subprocess.check_output")
    def test_ffprobe_failure(self, mock_check_output):
        mock_check_output.side_effect = subprocess.CalledProcessError(1, "ffprobe")
        fetcher, _, _ = make_fetcher()

        with self.assertRaises(FetchError):
            fetcher.fetch(1, "https://h/x-Part01.mp3", decode=True)

    def test_fetch_cover(self):
        fetcher, _, _ = make_fetcher(b"png", {"Content-Type": "image/png; charset=binary"})
        self.assertEqual(fetcher.fetch_cover("https://h/cover"), (b"png", "image/png"))

    def test_fetch_json(self):
        fetcher, _, response = make_fetcher()
        response.json.return_value = {"title": {"main": "Book"}}
        self.assertEqual(fetcher.fetch_json("https://h/openbook.json"), {"title": {"main": "Book"}})

        response.json.side_effect = ValueError("not json")
        with self.assertRaises(FetchError):
            fetcher.fetch_json("https://h/openbook.json")


if __name__ == "__main__":
    unittest.main()
