import unittest

from cuemerge.errors import FetchError
from cuemerge.models import (Bounded, BookMeta, Chapter, ChapterBoundary,
                             EndOfStream, ProcessedMP3, Spine, TocRow)


class TestPosition(unittest.TestCase):

    def test_variants(self):
        self.assertFalse(Bounded(1, 0).is_end_of_stream)
        self.assertTrue(EndOfStream(3).is_end_of_stream)
        self.assertEqual(Bounded(2, 50), Bounded(2, 50))
        self.assertNotEqual(Bounded(2, 0), EndOfStream(2))

    def test_boundary_repr(self):
        bounds = ChapterBoundary("Chapter 4", Bounded(3, 50), EndOfStream(5))
        self.assertEqual(repr(bounds), "<ChapterBoundary 'Chapter 4' 3#50 to 5#end>")


class TestSpine(unittest.TestCase):

    def test_get_part_url(self):
        spine = Spine({1: "https://part1"}, [])
        self.assertEqual(spine.get_part_url(1), "https://part1")
        with self.assertRaises(FetchError) as ctx:
            spine.get_part_url(2)
        self.assertEqual(ctx.exception.part, 2)


class TestTocRow(unittest.TestCase):

    def test_from_dict_nested(self):
        row = TocRow.from_dict({
            "title": "Chapter 2", "path": "part-1#400",
            "contents": [{"title": "Chapter 2 (01:00)", "path": "part-2"}],
        })
        self.assertTrue(row.is_nested)
        self.assertEqual(row.contents[0], TocRow("Chapter 2 (01:00)", "part-2"))
        self.assertFalse(row.contents[0].is_nested)

    def test_from_dict_title_only(self):
        row = TocRow.from_dict({"title": "Chapter 2"})
        self.assertIsNone(row.path)
        self.assertEqual(row.contents, [])


class TestChapter(unittest.TestCase):

    def test_chapter_repr(self):
        chap = Chapter("Chapter 5", 1000, 2500)
        self.assertEqual(chap.title, "Chapter 5")
        self.assertIn("Chapter 5", str(chap))
        self.assertIn("1000ms-2500ms", str(chap))

    def test_processed_merges_in_order(self):
        processed = ProcessedMP3(BookMeta("Book"), parts=[b"a", b"b", b"c"])
        self.assertEqual(processed.merged, b"abc")


if __name__ == "__main__":
    unittest.main()
