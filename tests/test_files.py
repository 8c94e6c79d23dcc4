"""Tests for upload validation and output naming helpers."""

import os

import pytest

from utils.files import (
    FILE_SIZE_LIMITS,
    derive_filename,
    format_file_size,
    guess_mimetype,
    unique_output_path,
    validate_file,
)


class TestFormatFileSize:
    @pytest.mark.parametrize(
        "num_bytes, expected",
        [(0, "0 Bytes"), (500, "500 Bytes"), (1536, "1.5 KB"), (1048576, "1 MB")],
    )
    def test_sizes(self, num_bytes, expected):
        assert format_file_size(num_bytes) == expected


class TestValidateFile:
    """Tests for validate_file()."""

    def test_valid_pdf(self, sample_pdf):
        result = validate_file(sample_pdf, "pdf", "application/pdf")

        assert result["is_valid"] is True
        assert result["errors"] == []
        assert result["file_info"]["size"] == os.path.getsize(sample_pdf)

    def test_wrong_type(self, sample_image):
        result = validate_file(sample_image, "pdf", "image/png")

        assert result["is_valid"] is False
        assert result["errors"][0].startswith("File type not supported")

    def test_type_guessed_from_name(self, sample_image):
        result = validate_file(sample_image, "image", "application/octet-stream")
        assert result["is_valid"] is True
        assert result["file_info"]["type"] == "image/png"

    def test_too_large(self, tmp_path, monkeypatch):
        path = tmp_path / "big.txt"
        path.write_bytes(b"x" * 2048)
        monkeypatch.setitem(FILE_SIZE_LIMITS, "text", 1024)

        result = validate_file(str(path), "text", "text/plain")

        assert result["is_valid"] is False
        assert "Maximum allowed: 1 KB" in result["errors"][0]

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.pdf"
        path.write_bytes(b"")
        result = validate_file(str(path), "pdf", "application/pdf")
        assert "File is empty" in result["errors"]

    def test_missing_file(self, tmp_path):
        result = validate_file(str(tmp_path / "nope.pdf"), "pdf")
        assert result == {"is_valid": False, "errors": ["No file selected"], "file_info": None}


class TestNaming:
    def test_derive_with_suffix(self):
        assert derive_filename("report.pdf", "rotated") == "report_rotated.pdf"

    def test_derive_new_extension(self):
        assert derive_filename("song.mp3", "", "wav") == "song.wav"

    def test_derive_strips_directories(self):
        assert derive_filename("/tmp/x/photo.png", "cropped", "png") == "photo_cropped.png"

    def test_unique_output_path(self, tmp_path):
        folder = tmp_path / "out"
        first = unique_output_path(str(folder), "report.pdf", "pdf")
        second = unique_output_path(str(folder), "report.pdf", ".pdf")

        assert folder.is_dir()
        assert first != second
        assert os.path.basename(first).startswith("report_")
        assert first.endswith(".pdf")

    def test_guess_keeps_specific_mimetype(self):
        assert guess_mimetype("a.bin", "image/webp") == "image/webp"
