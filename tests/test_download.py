"""Tests for saving downloads and filename validation."""

import pytest

from export import ExportDownload, directory_saver, save_download
from security import InputSanitizer, InputValidationError


class TestInputSanitizer:

    def test_valid_filename(self):
        assert InputSanitizer.validate_filename("  course_design_abc.pdf ") == "course_design_abc.pdf"

    @pytest.mark.parametrize("filename", [
        "",
        "   ",
        "../secret.pdf",
        "dir/file.pdf",
        "dir\\file.pdf",
        "bad|name.pdf",
        "CON.pdf",
        "a" * 256,
    ])
    def test_rejected_filenames(self, filename):
        with pytest.raises(InputValidationError):
            InputSanitizer.validate_filename(filename)

    def test_safe_filename_falls_back(self):
        assert InputSanitizer.safe_filename("../x", "fallback.pdf") == "fallback.pdf"
        assert InputSanitizer.safe_filename("ok.pdf", "fallback.pdf") == "ok.pdf"

    @pytest.mark.parametrize("value, expected", [
        ("abc-123", "abc-123"),
        ("sess:42", "sess_42"),
        ("a/b\\c", "a_b_c"),
        ("../../etc", "____etc"),
        ("x\x00y\"z", "x_y_z"),
        ("", "session"),
    ])
    def test_filename_component(self, value, expected):
        component = InputSanitizer.filename_component(value)

        assert component == expected
        assert InputSanitizer.validate_filename(f"course_design_{component}.pdf")


class TestSaveDownload:

    def test_writes_bytes(self, tmp_path):
        download = ExportDownload(filename="course.pdf", content=b"data", export_format="pdf")

        path = save_download(download, tmp_path)

        assert path == tmp_path / "course.pdf"
        assert path.read_bytes() == b"data"

    def test_does_not_overwrite(self, tmp_path):
        (tmp_path / "course.csv").write_bytes(b"old")
        download = ExportDownload(filename="course.csv", content=b"new", export_format="csv")

        path = save_download(download, tmp_path)

        assert path.name == "course_1.csv"
        assert (tmp_path / "course.csv").read_bytes() == b"old"

    def test_creates_directory(self, tmp_path):
        target = tmp_path / "nested" / "exports"
        path = save_download(ExportDownload("a.pdf", b"x", "pdf"), target)
        assert path.parent == target

    def test_rejects_unsafe_name(self, tmp_path):
        with pytest.raises(InputValidationError):
            save_download(ExportDownload("../a.pdf", b"x", "pdf"), tmp_path)

    def test_directory_saver_reports_path(self, tmp_path):
        saved = []
        handler = directory_saver(tmp_path, on_saved=saved.append)

        handler(ExportDownload("a.pdf", b"x", "pdf"))

        assert saved == [tmp_path / "a.pdf"]
