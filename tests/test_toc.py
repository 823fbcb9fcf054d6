import unittest

from cuemerge.errors import MalformedTocError, UnresolvedPathError
from cuemerge.models import TocChapter, TocRow
from cuemerge.toc import flatten_toc, parse_part_path, parse_toc


class TestParsePartPath(unittest.TestCase):

    def test_offset_is_parsed(self):
        path, offset = parse_part_path("{12345-6789}Fmt111-Part01.mp3#111")
        self.assertEqual(path, "{12345-6789}Fmt111-Part01.mp3")
        self.assertEqual(offset, 111)

    def test_missing_fragment_defaults_to_zero(self):
        self.assertEqual(parse_part_path("part-1"), ("part-1", 0))

    def test_non_numeric_fragment(self):
        with self.assertRaises(MalformedTocError):
            parse_part_path("part-1#abc")


class TestFlattenToc(unittest.TestCase):

    def test_children_follow_parent_and_carry_its_title(self):
        rows = [
            TocRow("Chapter 1", "part-1"),
            TocRow("Chapter 2", "part-1#400", [
                TocRow("Chapter 2 (01:00)", "part-1#600"),
                TocRow("Chapter 2 (02:00)", "part-2"),
            ]),
        ]
        flat = flatten_toc(rows)

        self.assertEqual([r.title for r in flat], ["Chapter 1", "Chapter 2", "Chapter 2", "Chapter 2"])
        self.assertEqual([r.path for r in flat], ["part-1", "part-1#400", "part-1#600", "part-2"])
        self.assertEqual([r.nested for r in flat], [False, False, True, True])


class TestParseToc(unittest.TestCase):

    def test_contiguous_chapters_are_merged(self):
        path_map = {"part-1": "https://path1"}
        toc = [
            {"title": "Chapter 1", "path": "part-1"},
            {"title": "Chapter 1", "path": "part-1#100"},
            {"title": "Chapter 2", "path": "part-1#400"},
        ]
        chapters = parse_toc(path_map, toc)
        self.assertEqual(chapters, [
            TocChapter("Chapter 1", ["https://path1"], 0),
            TocChapter("Chapter 2", ["https://path1"], 400),
        ])

    def test_nested_chapters_are_merged(self):
        path_map = {"part-1": "https://path1", "part-2": "https://path2"}
        toc = [
            {"title": "Chapter 1", "path": "part-1"},
            {
                "title": "Chapter 2", "path": "part-1#400", "contents": [
                    {"title": "Chapter 2 (01:00)", "path": "part-1#600"},
                    {"title": "Chapter 2 (02:00)", "path": "part-2"},
                ]
            },
            {"title": "Chapter 2", "path": "part-2#600"},
        ]
        chapters = parse_toc(path_map, toc)
        self.assertEqual(chapters, [
            TocChapter("Chapter 1", ["https://path1"], 0),
            TocChapter("Chapter 2", ["https://path1", "https://path2"], 400),
        ])

    def test_continuation_with_contents_only_adds_children(self):
        path_map = {"part-1": "https://path1", "part-2": "https://path2"}
        toc = [
            {"title": "Chapter 1", "path": "part-1", "contents": [{"title": "x", "path": "part-2"}]},
            {"title": "Chapter 1", "path": "part-1#900", "contents": [{"title": "y", "path": "part-2#30"}]},
        ]
        chapters = parse_toc(path_map, toc)
        self.assertEqual(chapters, [TocChapter("Chapter 1", ["https://path1", "https://path2"], 0)])

    def test_continuation_never_moves_the_start(self):
        path_map = {"a-Part01.mp3": "https://h/a-Part01.mp3", "a-Part02.mp3": "https://h/a-Part02.mp3"}
        toc = [
            {"title": "Intro", "path": "a-Part01.mp3#30"},
            {"title": "Intro", "path": "a-Part02.mp3#5"},
        ]
        chapters = parse_toc(path_map, toc)
        self.assertEqual(len(chapters), 1)
        self.assertEqual(chapters[0].offset, 30)
        self.assertEqual(chapters[0].paths, ["https://h/a-Part01.mp3", "https://h/a-Part02.mp3"])

    def test_same_title_non_adjacent_is_a_new_chapter(self):
        path_map = {"p": "https://p"}
        toc = [
            {"title": "Interlude", "path": "p#0"},
            {"title": "Chapter 1", "path": "p#10"},
            {"title": "Interlude", "path": "p#20"},
        ]
        chapters = parse_toc(path_map, toc)
        self.assertEqual([c.title for c in chapters], ["Interlude", "Chapter 1", "Interlude"])

    def test_empty_toc(self):
        self.assertEqual(parse_toc({}, []), [])

    def test_unresolved_path(self):
        with self.assertRaises(UnresolvedPathError) as ctx:
            parse_toc({"part-1": "https://path1"}, [{"title": "Chapter 1", "path": "part-9#10"}])
        self.assertEqual(ctx.exception.path, "part-9")

    def test_unresolved_nested_path(self):
        toc = [{"title": "Chapter 1", "path": "part-1", "contents": [{"title": "x", "path": "nope"}]}]
        with self.assertRaises(UnresolvedPathError):
            parse_toc({"part-1": "https://path1"}, toc)

    def test_chapter_without_path(self):
        with self.assertRaises(MalformedTocError):
            parse_toc({"part-1": "https://path1"}, [{"title": "Chapter 1"}])

    def test_title_only_continuation_is_ignored(self):
        toc = [
            {"title": "Chapter 1", "path": "part-1"},
            {"title": "Chapter 1"},
        ]
        chapters = parse_toc({"part-1": "https://path1"}, toc)
        self.assertEqual(chapters, [TocChapter("Chapter 1", ["https://path1"], 0)])

    def test_parsing_is_idempotent(self):
        path_map = {"part-1": "https://path1", "part-2": "https://path2"}
        toc = [
            {"title": "Chapter 1", "path": "part-1"},
            {"title": "Chapter 2", "path": "part-1#400", "contents": [{"title": "x", "path": "part-2"}]},
            {"title": "Chapter 2", "path": "part-2#600"},
            {"title": "Chapter 3", "path": "part-2#900"},
        ]
        self.assertEqual(parse_toc(path_map, toc), parse_toc(path_map, toc))

    def test_accepts_toc_rows(self):
        rows = [TocRow("Chapter 1", "part-1")]
        chapters = parse_toc({"part-1": "https://path1"}, rows)
        self.assertEqual(chapters, [TocChapter("Chapter 1", ["https://path1"], 0)])


if __name__ == "__main__":
    unittest.main()
