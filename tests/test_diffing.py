import pytest

from distkit.diffing import CheckFileMismatch, diff_files


def test_identical_file_passes(tmp_path):
    target = tmp_path / "release.yml"
    target.write_text("a\nb\n", encoding="utf-8")
    assert diff_files(target, "a\nb\n") is None


def test_newline_style_is_ignored(tmp_path):
    target = tmp_path / "release.yml"
    target.write_bytes(b"a\r\nb\r\n")
    assert diff_files(target, "a\nb\n") is None


def test_missing_file_counts_as_empty(tmp_path):
    assert diff_files(tmp_path / "missing.yml", "") is None


def test_missing_file_with_contents_mismatches(tmp_path):
    target = tmp_path / "missing.yml"
    with pytest.raises(CheckFileMismatch) as info:
        diff_files(target, "hello\n")
    assert info.value.contents == ""
    assert info.value.path == str(target)
    assert "+hello\n" in info.value.diff


def test_mismatch_reports_unified_diff(tmp_path):
    target = tmp_path / "release.yml"
    target.write_text("keep\nold\n", encoding="utf-8")
    with pytest.raises(CheckFileMismatch) as info:
        diff_files(target, "keep\nnew\n")
    diff = info.value.diff
    assert diff.startswith(f"--- {target}\n+++ {target}\n")
    assert "-old\n" in diff
    assert "+new\n" in diff
    assert info.value.contents == "keep\nold\n"