"""Tests for the PDF tools."""

import io
import zipfile

import fitz
import pytest
from docx import Document
from PIL import Image
from PyPDF2 import PdfReader

from conftest import write_image, write_pdf
from utils.errors import ValidationError
from utils.pdf_processor import (
    PDFProcessor,
    page_ranges_to_list,
    parse_page_ranges,
    snap_rotation,
    watermark_position,
)


def page_count(path):
    return len(PdfReader(path).pages)


def page_texts(path):
    with fitz.open(path) as doc:
        return [page.get_text().strip() for page in doc]


class TestPageRanges:
    """Tests for the strict and lenient range parsers."""

    def test_strict_groups(self):
        assert parse_page_ranges("1-2, 3", 3) == [(1, 2), (3, 3)]

    @pytest.mark.parametrize("range_str", ["0-1", "2-1", "1-9", "x", ""])
    def test_strict_rejects(self, range_str):
        with pytest.raises(ValidationError):
            parse_page_ranges(range_str, 3)

    def test_lenient_skips_junk(self):
        assert page_ranges_to_list("3, x, 1-2, 9", 3) == [0, 1, 2]

    def test_lenient_open_ranges(self):
        assert page_ranges_to_list("2-", 4) == [1, 2, 3]
        assert page_ranges_to_list("-2", 4) == [0, 1]

    def test_lenient_empty_selects_all(self):
        assert page_ranges_to_list("", 2) == [0, 1]

    @pytest.mark.parametrize(
        "angle, expected", [(0, 0), (90, 90), (100, 90), (-90, 270), (350, 0), (180, 180)]
    )
    def test_snap_rotation(self, angle, expected):
        assert snap_rotation(angle) == expected

    def test_watermark_positions(self):
        assert watermark_position("bottom-left", 600, 800, 100, 20) == (50, 50)
        assert watermark_position("top-right", 600, 800, 100, 20) == (450, 730)
        assert watermark_position("center", 600, 800, 100, 20) == (250, 390)


class TestPageTools:
    """Merge, split, rotate, organize and watermark."""

    def test_merge(self, tmp_path, output_folder):
        a = write_pdf(tmp_path / "a.pdf", pages=2, text="A")
        b = write_pdf(tmp_path / "b.pdf", pages=1, text="B")

        path, name, mimetype = PDFProcessor(output_folder).merge_pdfs([a, b])

        assert name == "merged.pdf"
        assert mimetype == "application/pdf"
        assert page_texts(path) == ["A 1", "A 2", "B 1"]

    def test_merge_needs_two_files(self, sample_pdf, output_folder):
        with pytest.raises(ValidationError):
            PDFProcessor(output_folder).merge_pdfs([sample_pdf])

    def test_split_pages(self, sample_pdf, output_folder):
        path, name, mimetype = PDFProcessor(output_folder).split_pdf(
            sample_pdf, original_name="report.pdf"
        )

        assert name == "report_split.zip"
        assert mimetype == "application/zip"
        with zipfile.ZipFile(path) as zf:
            assert zf.namelist() == ["page_1.pdf", "page_2.pdf", "page_3.pdf"]

    def test_split_ranges(self, sample_pdf, output_folder):
        path, _, _ = PDFProcessor(output_folder).split_pdf(sample_pdf, mode="ranges", ranges="1-2,3")

        with zipfile.ZipFile(path) as zf:
            assert zf.namelist() == ["pages_1-2.pdf", "pages_3-3.pdf"]
            first = PdfReader(io.BytesIO(zf.read("pages_1-2.pdf")))
            assert len(first.pages) == 2

    def test_split_unknown_mode(self, sample_pdf, output_folder):
        with pytest.raises(ValidationError):
            PDFProcessor(output_folder).split_pdf(sample_pdf, mode="chapters")

    def test_split_invalid_range(self, sample_pdf, output_folder):
        with pytest.raises(ValidationError):
            PDFProcessor(output_folder).split_pdf(sample_pdf, mode="ranges", ranges="2-5")

    def test_rotate_selected_pages(self, sample_pdf, output_folder):
        path, name, _ = PDFProcessor(output_folder).rotate_pdf(
            sample_pdf, 95, pages="2", original_name="report.pdf"
        )

        assert name == "report_rotated.pdf"
        rotations = [page.rotation for page in PdfReader(path).pages]
        assert rotations == [0, 90, 0]

    def test_organize_order_and_delete(self, sample_pdf, output_folder):
        path, _, _ = PDFProcessor(output_folder).organize_pdf(
            sample_pdf, page_order="3,1,2", deleted_pages="1"
        )
        assert page_texts(path) == ["Page 3", "Page 2"]

    def test_organize_nothing_left(self, sample_pdf, output_folder):
        with pytest.raises(ValidationError):
            PDFProcessor(output_folder).organize_pdf(sample_pdf, deleted_pages="1-3")

    def test_watermark(self, sample_pdf, output_folder):
        path, name, _ = PDFProcessor(output_folder).watermark_pdf(
            sample_pdf, text="DRAFT", rotation=0, pages="1", original_name="report.pdf"
        )

        assert name == "report_watermarked.pdf"
        texts = page_texts(path)
        assert "DRAFT" in texts[0]
        assert "DRAFT" not in texts[1]

    def test_watermark_bad_position(self, sample_pdf, output_folder):
        with pytest.raises(ValidationError):
            PDFProcessor(output_folder).watermark_pdf(sample_pdf, position="middle")

    def test_watermark_bad_color(self, sample_pdf, output_folder):
        with pytest.raises(ValidationError):
            PDFProcessor(output_folder).watermark_pdf(sample_pdf, color="#zzz")


class TestDocumentTools:
    """Compression, text, security, metadata and forms."""

    @pytest.mark.parametrize("level", [1, 2, 3])
    def test_compress_levels(self, sample_pdf, output_folder, level):
        path, name, _ = PDFProcessor(output_folder).compress_pdf(
            sample_pdf, level=level, original_name="report.pdf"
        )

        assert name == "report_compressed.pdf"
        assert page_count(path) == 3

    def test_compress_bad_level(self, sample_pdf, output_folder):
        with pytest.raises(ValidationError):
            PDFProcessor(output_folder).compress_pdf(sample_pdf, level=7)

    def test_extract_text(self, sample_pdf, output_folder):
        path, name, mimetype = PDFProcessor(output_folder).extract_text(
            sample_pdf, original_name="report.pdf"
        )

        assert name == "report.txt"
        assert mimetype == "text/plain"
        with open(path, encoding="utf-8") as f:
            content = f.read()
        assert "=== Page 2 ===" in content
        assert "Page 3" in content

    def test_protect_and_unlock(self, sample_pdf, output_folder):
        proc = PDFProcessor(output_folder)
        locked, name, _ = proc.protect_pdf(sample_pdf, "secret123", original_name="report.pdf")

        assert name == "report_protected.pdf"
        with fitz.open(locked) as doc:
            assert doc.needs_pass

        unlocked, _, _ = proc.unlock_pdf(locked, "secret123")
        with fitz.open(unlocked) as doc:
            assert not doc.needs_pass
            assert doc.page_count == 3

    def test_protect_short_password(self, sample_pdf, output_folder):
        with pytest.raises(ValidationError):
            PDFProcessor(output_folder).protect_pdf(sample_pdf, "abc")

    def test_unlock_wrong_password(self, sample_pdf, output_folder):
        proc = PDFProcessor(output_folder)
        locked, _, _ = proc.protect_pdf(sample_pdf, "secret123")

        with pytest.raises(ValidationError):
            proc.unlock_pdf(locked, "wrong-password")

    def test_locked_pdf_rejected_by_page_tools(self, sample_pdf, output_folder):
        proc = PDFProcessor(output_folder)
        locked, _, _ = proc.protect_pdf(sample_pdf, "secret123")

        with pytest.raises(ValidationError):
            proc.rotate_pdf(locked, 90)

    @pytest.mark.parametrize(
        "call",
        [
            lambda proc, path: proc.extract_text(path),
            lambda proc, path: proc.read_metadata(path),
            lambda proc, path: proc.update_metadata(path, {"title": "x"}),
            lambda proc, path: proc.list_form_fields(path),
            lambda proc, path: proc.fill_form(path, {"name": "x"}),
            lambda proc, path: proc.pdf_to_images(path),
            lambda proc, path: proc.pdf_to_word(path),
            lambda proc, path: proc.compress_pdf(path),
        ],
    )
    def test_locked_pdf_rejected_by_readers(self, sample_pdf, output_folder, call):
        proc = PDFProcessor(output_folder)
        locked, _, _ = proc.protect_pdf(sample_pdf, "secret123")

        with pytest.raises(ValidationError, match="password protected"):
            call(proc, locked)

    def test_metadata_round_trip(self, sample_pdf, output_folder):
        proc = PDFProcessor(output_folder)
        path, _, _ = proc.update_metadata(sample_pdf, {"title": "Quarterly", "author": "Finance"})
        info = proc.read_metadata(path)

        assert info["title"] == "Quarterly"
        assert info["author"] == "Finance"
        assert info["page_count"] == 3

    def test_form_fields(self, tmp_path, output_folder):
        src = str(tmp_path / "form.pdf")
        doc = fitz.open()
        page = doc.new_page()
        widget = fitz.Widget()
        widget.field_name = "name"
        widget.field_type = fitz.PDF_WIDGET_TYPE_TEXT
        widget.rect = fitz.Rect(72, 72, 300, 100)
        page.add_widget(widget)
        doc.save(src)
        doc.close()

        proc = PDFProcessor(output_folder)
        fields = proc.list_form_fields(src)
        assert [f["name"] for f in fields] == ["name"]

        filled, _, _ = proc.fill_form(src, {"name": "Ada"})
        assert proc.list_form_fields(filled)[0]["value"] == "Ada"

    def test_fill_form_without_matches(self, sample_pdf, output_folder):
        with pytest.raises(ValidationError):
            PDFProcessor(output_folder).fill_form(sample_pdf, {"missing": "x"})


class TestConversions:
    def test_pdf_to_images_zip(self, sample_pdf, output_folder):
        path, name, mimetype = PDFProcessor(output_folder).pdf_to_images(
            sample_pdf, fmt="png", dpi=72, original_name="report.pdf"
        )

        assert name == "report_images.zip"
        assert mimetype == "application/zip"
        with zipfile.ZipFile(path) as zf:
            assert zf.namelist() == ["page-1.png", "page-2.png", "page-3.png"]
            img = Image.open(io.BytesIO(zf.read("page-1.png")))
            assert img.size == (612, 792)

    def test_pdf_to_single_image(self, tmp_path, output_folder):
        src = write_pdf(tmp_path / "one.pdf", pages=1)
        path, name, mimetype = PDFProcessor(output_folder).pdf_to_images(
            src, fmt="jpeg", dpi=72, original_name="one.pdf"
        )

        assert name == "one.jpg"
        assert mimetype == "image/jpeg"
        assert Image.open(path).format == "JPEG"

    def test_images_to_pdf(self, tmp_path, output_folder):
        a = write_image(tmp_path / "a.png")
        b = write_image(tmp_path / "b.png", mode="RGBA")

        path, name, _ = PDFProcessor(output_folder).images_to_pdf([a, b])

        assert name == "images.pdf"
        assert page_count(path) == 2

    def test_pdf_to_word(self, sample_pdf, output_folder):
        path, name, _ = PDFProcessor(output_folder).pdf_to_word(
            sample_pdf, original_name="report.pdf"
        )

        assert name == "report.docx"
        text = "\n".join(p.text for p in Document(path).paragraphs)
        assert "Page 1" in text
        assert "Page 3" in text

    def test_word_to_pdf(self, tmp_path, output_folder):
        src = str(tmp_path / "letter.docx")
        document = Document()
        document.add_heading("Greetings", level=1)
        document.add_paragraph("Dear reader, " * 60)
        document.save(src)

        path, name, mimetype = PDFProcessor(output_folder).word_to_pdf(
            src, original_name="letter.docx"
        )

        assert name == "letter.pdf"
        assert mimetype == "application/pdf"
        text = " ".join(page_texts(path))
        assert "Greetings" in text
        assert "Dear reader" in text
