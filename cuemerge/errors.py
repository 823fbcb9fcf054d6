from typing import Optional


class CuemergeError(Exception):
    """Base class for everything that aborts a reconstruction run."""


class UnresolvedPathError(CuemergeError):
    """A TOC path key has no entry in the path map."""

    def __init__(self, path: str):
        super().__init__(f"TOC path '{path}' does not resolve to a part URL")
        self.path = path


class MalformedTocError(CuemergeError):
    """A TOC row or part reference can't be turned into a chapter position."""


class MalformedSpineError(CuemergeError):
    """Chapter boundaries are not contiguous."""


class FetchError(CuemergeError):
    """Network or decode failure for a part."""

    def __init__(self, part: Optional[int], message: str):
        super().__init__(f"Part {part}: {message}" if part else message)
        self.part = part


class TaggingError(CuemergeError):
    """ID3 tags could not be read from or written into the audio."""
