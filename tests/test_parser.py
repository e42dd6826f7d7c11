from __future__ import annotations

import textwrap

import pytest

from diffapply.parser import DiffParser, parse_diff
from diffapply.types import DiffFormat, DiffParseError, LineKind, ParsePolicy, PatchError


def test_parse_single_file_single_hunk() -> None:
    patch = textwrap.dedent(
        """
        --- a/sample.txt
        +++ b/sample.txt
        @@ -1,3 +1,3 @@
         a
        -b
        +B
         c
        """
    ).lstrip()

    patch_set = parse_diff(patch)

    assert len(patch_set) == 1
    entry = patch_set[0]
    assert entry.file_path == "a/sample.txt"
    assert entry.new_path == "b/sample.txt"
    assert len(entry.hunks) == 1
    hunk = entry.hunks[0]
    assert (hunk.original_start, hunk.original_lines, hunk.new_start, hunk.new_lines) == (1, 3, 1, 3)
    assert [line.kind for line in hunk.lines] == [
        LineKind.CONTEXT,
        LineKind.DELETION,
        LineKind.ADDITION,
        LineKind.CONTEXT,
    ]
    assert hunk.context == ("a", "c")
    assert hunk.deletions == ("b",)
    assert hunk.additions == ("B",)
    assert hunk.count_mismatch() is None
    assert patch_set.dropped_lines == ()


def test_parse_defaults_omitted_counts_to_one() -> None:
    patch = "--- a/x\n+++ b/x\n@@ -4 +4 @@\n-old\n+new\n"

    hunk = parse_diff(patch)[0].hunks[0]

    assert hunk.original_start == 4
    assert hunk.original_lines == 1
    assert hunk.new_lines == 1


def test_parse_strips_timestamps_and_keeps_section_heading() -> None:
    patch = (
        "--- src/module.py\t2024-01-01 10:00:00.000000000 +0000\n"
        "+++ src/module.py\t2024-01-02 10:00:00.000000000 +0000\n"
        "@@ -10,2 +10,2 @@ def handler():\n"
        "     return 1\n"
        "-    pass\n"
        "+    return 2\n"
    )

    entry = parse_diff(patch)[0]

    assert entry.file_path == "src/module.py"
    assert entry.hunks[0].section == "def handler():"
    assert entry.hunks[0].context == ("    return 1",)


def test_parse_multiple_files_and_hunks() -> None:
    patch = textwrap.dedent(
        """
        diff --git a/one.txt b/one.txt
        index 1111111..2222222 100644
        --- a/one.txt
        +++ b/one.txt
        @@ -1,2 +1,2 @@
        -x
        +y
         z
        @@ -10,1 +10,2 @@
         ten
        +eleven
        diff --git a/two.txt b/two.txt
        --- a/two.txt
        +++ b/two.txt
        @@ -1 +1 @@
        -old
        +new
        """
    ).lstrip()

    patch_set = parse_diff(patch, format=DiffFormat.GIT)

    assert [entry.file_path for entry in patch_set] == ["a/one.txt", "a/two.txt"]
    assert [hunk.original_start for hunk in patch_set[0].hunks] == [1, 10]
    assert patch_set[0].hunks[1].additions == ("eleven",)
    assert patch_set[1].hunks[0].deletions == ("old",)
    assert patch_set.dropped_lines == ()


def test_parse_skips_dev_null_sections() -> None:
    patch = textwrap.dedent(
        """
        --- /dev/null
        +++ b/created.txt
        @@ -0,0 +1,2 @@
        +hello
        +world
        --- a/kept.txt
        +++ b/kept.txt
        @@ -1 +1 @@
        -a
        +b
        """
    ).lstrip()

    patch_set = parse_diff(patch)

    assert [entry.file_path for entry in patch_set] == ["a/kept.txt"]
    assert len(patch_set.dropped_lines) == 3
    assert all("/dev/null" in dropped.reason for dropped in patch_set.dropped_lines)


def test_parse_skipped_dev_null_section_is_tolerated_in_strict_mode() -> None:
    patch = "--- /dev/null\n+++ b/new.txt\n@@ -0,0 +1 @@\n+hello\n"

    patch_set = parse_diff(patch, policy=ParsePolicy.STRICT)

    assert len(patch_set) == 0


def test_parse_blank_line_inside_hunk_is_empty_context() -> None:
    patch = "--- a/x\n+++ b/x\n@@ -1,3 +1,3 @@\n first\n\n-old\n+new\n"

    hunk = parse_diff(patch)[0].hunks[0]

    assert hunk.context == ("first", "")
    assert hunk.count_mismatch() is None


def test_parse_trailing_blank_lines_are_not_context() -> None:
    patch = "--- a/x\n+++ b/x\n@@ -1 +1 @@\n-old\n+new\n\n\n"

    hunk = parse_diff(patch)[0].hunks[0]

    assert hunk.context == ()
    assert len(hunk.lines) == 2


def test_parse_triple_dash_deletion_inside_hunk() -> None:
    patch = "--- a/q.sql\n+++ b/q.sql\n@@ -1,2 +1,1 @@\n select 1;\n--- legacy comment\n"

    entry = parse_diff(patch)[0]

    assert entry.hunks[0].deletions == ("-- legacy comment",)


def test_parse_records_no_newline_markers() -> None:
    patch = "--- a/x\n+++ b/x\n@@ -1 +1 @@\n-old\n\\ No newline at end of file\n+new\n\\ No newline at end of file\n"

    hunk = parse_diff(patch)[0].hunks[0]

    assert hunk.deletions == ("old",)
    assert hunk.additions == ("new",)
    assert hunk.original_missing_newline
    assert hunk.new_missing_newline


def test_parse_no_newline_marker_on_one_side_only() -> None:
    patch = "--- a/x\n+++ b/x\n@@ -1,2 +1,2 @@\n a\n-b\n+b\n\\ No newline at end of file\n"

    hunk = parse_diff(patch)[0].hunks[0]

    assert [line.render() for line in hunk.lines] == [" a", "-b", "+b"]
    assert not hunk.original_missing_newline
    assert hunk.new_missing_newline


def test_parse_keeps_lone_carriage_returns() -> None:
    patch = "--- a/x\n+++ b/x\n@@ -1 +1 @@\n-left\rright\n+joined\n"

    hunk = parse_diff(patch)[0].hunks[0]

    assert hunk.deletions == ("left\rright",)
    assert hunk.additions == ("joined",)


def test_parse_normalises_crlf_patch_text() -> None:
    patch = "--- a/x\r\n+++ b/x\r\n@@ -1 +1 @@\r\n-old\r\n+new\r\n"

    hunk = parse_diff(patch)[0].hunks[0]

    assert hunk.deletions == ("old",)
    assert hunk.additions == ("new",)


def test_parse_reports_count_mismatch() -> None:
    patch = "--- a/x\n+++ b/x\n@@ -1,5 +1,5 @@\n a\n-b\n+B\n"

    hunk = parse_diff(patch)[0].hunks[0]

    assert hunk.actual_counts() == (2, 2)
    assert hunk.count_mismatch() == "header declares -5/+5 but body has -2/+2"


def test_lenient_parse_records_dropped_lines() -> None:
    patch = textwrap.dedent(
        """
        +orphan addition
        --- a/x
        +++ b/x
        @@ -bogus @@
        -a
        +b
        """
    ).lstrip()

    patch_set = parse_diff(patch)

    assert len(patch_set) == 1
    assert patch_set[0].hunks == ()
    reasons = [dropped.reason for dropped in patch_set.dropped_lines]
    assert reasons == [
        "line outside of any hunk",
        "malformed hunk header",
        "line outside of any hunk",
        "line outside of any hunk",
    ]
    assert patch_set.dropped_lines[0].line_number == 1


def test_strict_parse_raises_on_malformed_header() -> None:
    patch = "--- a/x\n+++ b/x\n@@ -bogus @@\n-a\n"

    with pytest.raises(DiffParseError) as excinfo:
        DiffParser(ParsePolicy.STRICT).parse(patch)

    assert excinfo.value.details["line"] == 3
    assert "malformed hunk header" in str(excinfo.value)


def test_parse_hunk_without_file_header_is_dropped() -> None:
    patch = "@@ -1 +1 @@\n-a\n+b\n"

    patch_set = parse_diff(patch)

    assert len(patch_set) == 0
    assert patch_set.dropped_lines[0].reason == "hunk header before any file header"


def test_parse_never_raises_on_garbage() -> None:
    patch_set = parse_diff("this is not a diff\n\t\n@@@\n--- \n")

    assert all(not entry.hunks for entry in patch_set)


def test_parse_context_format_is_not_implemented() -> None:
    with pytest.raises(PatchError):
        parse_diff("*** a/x\n--- b/x\n", format="context")
