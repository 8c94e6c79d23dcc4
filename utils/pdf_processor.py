import io
import logging
import os
import zipfile
from typing import Dict, List, Optional, Tuple

import fitz  # PyMuPDF
from docx import Document
from docx.opc.exceptions import PackageNotFoundError
from PIL import Image
from PyPDF2 import PdfReader, PdfWriter
from PyPDF2.errors import PdfReadError
from reportlab.lib.pagesizes import A4
from reportlab.lib.utils import simpleSplit
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen import canvas

from utils.errors import ProcessingError, ValidationError
from utils.files import derive_filename, unique_output_path


logger = logging.getLogger(__name__)

PDF_MIMETYPE = "application/pdf"
ZIP_MIMETYPE = "application/zip"
DOCX_MIMETYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

WATERMARK_POSITIONS = (
    "top-left",
    "top-center",
    "top-right",
    "center-left",
    "center",
    "center-right",
    "bottom-left",
    "bottom-center",
    "bottom-right",
)
WATERMARK_MARGIN = 50

PERMISSION_FLAGS = {
    "printing": fitz.PDF_PERM_PRINT,
    "modification": fitz.PDF_PERM_MODIFY,
    "copying": fitz.PDF_PERM_COPY,
    "annotation": fitz.PDF_PERM_ANNOTATE,
}

METADATA_FIELDS = ("title", "author", "subject", "keywords", "creator", "producer")

IMAGE_FORMATS = {
    "jpeg": ("JPEG", "jpg", "image/jpeg"),
    "jpg": ("JPEG", "jpg", "image/jpeg"),
    "png": ("PNG", "png", "image/png"),
    "webp": ("WEBP", "webp", "image/webp"),
}

MIN_PASSWORD_LENGTH = 6


# ------------------------------------------------------------------
# Page range parsing
# ------------------------------------------------------------------

def parse_page_ranges(range_str: str, total_pages: int) -> List[Tuple[int, int]]:
    """
    Strict parser for split ranges.

    "1-3, 5" -> [(1, 3), (5, 5)] (one-based, inclusive). Any group that
    is malformed, reversed or outside the document raises ValidationError.
    """
    if not range_str or not range_str.strip():
        raise ValidationError("Please specify page ranges")

    groups = []
    for part in range_str.split(","):
        part = part.strip()
        if not part:
            continue
        try:
            if "-" in part:
                start_str, end_str = part.split("-", 1)
                start, end = int(start_str.strip()), int(end_str.strip())
            else:
                start = end = int(part)
        except ValueError:
            raise ValidationError(f"Invalid range: {part}")

        if start < 1 or end > total_pages or start > end:
            raise ValidationError(f"Invalid range: {part}")
        groups.append((start, end))

    if not groups:
        raise ValidationError("Please specify page ranges")
    return groups


def page_ranges_to_list(range_str: str, total_pages: int) -> List[int]:
    """
    Convert a range string like "1-3,5,8" to zero-based page indices.

    Lenient: junk and out-of-range pages are skipped, an empty string
    selects every page.
    """
    if not range_str or not range_str.strip():
        return list(range(total_pages))

    pages = set()

    for part in range_str.split(","):
        part = part.strip()
        if not part:
            continue

        if "-" in part:
            start_str, end_str = part.split("-", 1)
            try:
                start = int(start_str) if start_str.strip() else 1
                end = int(end_str) if end_str.strip() else total_pages
            except ValueError:
                continue
            if start > end:
                start, end = end, start
            for p in range(start, end + 1):
                if 1 <= p <= total_pages:
                    pages.add(p - 1)
        else:
            try:
                p = int(part)
            except ValueError:
                continue
            if 1 <= p <= total_pages:
                pages.add(p - 1)

    return sorted(pages)


def snap_rotation(angle: int) -> int:
    """Normalize to one of 0/90/180/270."""
    angle = int(angle) % 360
    allowed = (0, 90, 180, 270, 360)
    return min(allowed, key=lambda a: abs(a - angle)) % 360


def watermark_position(
    position: str, page_width: float, page_height: float, mark_width: float, mark_height: float
) -> Tuple[float, float]:
    """Lower-left anchor of the watermark in PDF points."""
    m = WATERMARK_MARGIN
    left = m
    h_center = (page_width - mark_width) / 2
    right = page_width - m - mark_width
    top = page_height - m - mark_height
    v_center = (page_height - mark_height) / 2
    bottom = m

    return {
        "top-left": (left, top),
        "top-center": (h_center, top),
        "top-right": (right, top),
        "center-left": (left, v_center),
        "center": (h_center, v_center),
        "center-right": (right, v_center),
        "bottom-left": (left, bottom),
        "bottom-center": (h_center, bottom),
        "bottom-right": (right, bottom),
    }.get(position, (h_center, v_center))


def hex_to_rgb(color: str) -> Tuple[float, float, float]:
    value = (color or "").lstrip("#")
    if len(value) == 3:
        value = "".join(c * 2 for c in value)
    if len(value) != 6:
        raise ValidationError(f"Invalid color: {color}")
    try:
        return tuple(int(value[i:i + 2], 16) / 255.0 for i in (0, 2, 4))
    except ValueError:
        raise ValidationError(f"Invalid color: {color}")


class PDFProcessor:
    """
    PDF tools built on PyPDF2 (page level work), PyMuPDF (rendering,
    encryption, metadata, forms) and reportlab (drawing).

    Every tool returns (output_path, download_name, mimetype).
    """

    def __init__(self, output_folder: str):
        self.output_folder = output_folder

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _out(self, name: str) -> str:
        ext = os.path.splitext(name)[1]
        return unique_output_path(self.output_folder, name, ext)

    def _reader(self, path: str) -> PdfReader:
        self._open_unlocked(path).close()

        try:
            return PdfReader(path)
        except (PdfReadError, OSError) as e:
            raise ProcessingError(f"Failed to read PDF: {e}") from e

    def _open(self, path: str) -> fitz.Document:
        try:
            return fitz.open(path)
        except RuntimeError as e:
            raise ProcessingError(f"Failed to read PDF: {e}") from e

    def _open_unlocked(self, path: str) -> fitz.Document:
        doc = self._open(path)
        if doc.needs_pass or doc.is_encrypted:
            doc.close()
            raise ValidationError("This PDF is password protected. Unlock it first.")
        return doc

    def _write(self, writer: PdfWriter, name: str) -> str:
        out_path = self._out(name)
        with open(out_path, "wb") as f:
            writer.write(f)
        return out_path

    def _name(self, path: str, original_name: Optional[str]) -> str:
        return original_name or os.path.basename(path)

    # ------------------------------------------------------------------
    # Merge / Split
    # ------------------------------------------------------------------

    def merge_pdfs(self, paths: List[str]) -> Tuple[str, str, str]:
        if len(paths) < 2:
            raise ValidationError("Please select at least 2 PDF files to merge")

        writer = PdfWriter()
        for path in paths:
            reader = self._reader(path)
            for page in reader.pages:
                writer.add_page(page)

        out_path = self._write(writer, "merged.pdf")
        return out_path, "merged.pdf", PDF_MIMETYPE

    def split_pdf(
        self,
        path: str,
        mode: str = "pages",
        ranges: str = "",
        original_name: Optional[str] = None,
    ) -> Tuple[str, str, str]:
        if mode not in ("pages", "ranges"):
            raise ValidationError(f"Unknown split mode: {mode}")

        reader = self._reader(path)
        total = len(reader.pages)

        if mode == "ranges":
            groups = parse_page_ranges(ranges, total)
            parts = [(f"pages_{s}-{e}.pdf", range(s - 1, e)) for s, e in groups]
        else:
            parts = [(f"page_{i + 1}.pdf", [i]) for i in range(total)]

        name = derive_filename(self._name(path, original_name), "split", "zip")
        out_path = self._out(name)

        with zipfile.ZipFile(out_path, "w", zipfile.ZIP_DEFLATED) as zf:
            for part_name, indices in parts:
                writer = PdfWriter()
                for idx in indices:
                    writer.add_page(reader.pages[idx])
                buf = io.BytesIO()
                writer.write(buf)
                zf.writestr(part_name, buf.getvalue())

        logger.debug("split %s into %d file(s)", name, len(parts))
        return out_path, name, ZIP_MIMETYPE

    # ------------------------------------------------------------------
    # Compress
    # ------------------------------------------------------------------

    def compress_pdf(
        self, path: str, level: int = 2, original_name: Optional[str] = None
    ) -> Tuple[str, str, str]:
        """
        level:
            1 -> light (drop unused objects, deflate streams)
            2 -> balanced (full garbage collection, clean content streams)
            3 -> smallest file (re-render every page as an image)
        """
        level = int(level)
        if level not in (1, 2, 3):
            raise ValidationError("Compression level must be 1, 2 or 3.")

        name = derive_filename(self._name(path, original_name), "compressed", "pdf")
        out_path = self._out(name)
        doc = self._open_unlocked(path)

        try:
            if level == 3:
                new_doc = fitz.open()
                mat = fitz.Matrix(0.6, 0.6)
                for page in doc:
                    pix = page.get_pixmap(matrix=mat)
                    new_page = new_doc.new_page(width=pix.width, height=pix.height)
                    new_page.insert_image(fitz.Rect(0, 0, pix.width, pix.height), pixmap=pix)
                new_doc.save(out_path, deflate=True, garbage=4, clean=True)
                new_doc.close()
            elif level == 2:
                doc.save(out_path, deflate=True, garbage=4, clean=True)
            else:
                doc.save(out_path, deflate=True, garbage=2)
        finally:
            doc.close()

        return out_path, name, PDF_MIMETYPE

    # ------------------------------------------------------------------
    # Rotate / Watermark
    # ------------------------------------------------------------------

    def rotate_pdf(
        self,
        path: str,
        angle: int,
        pages: str = "",
        original_name: Optional[str] = None,
    ) -> Tuple[str, str, str]:
        angle = snap_rotation(angle)
        reader = self._reader(path)
        selected = set(page_ranges_to_list(pages, len(reader.pages)))

        writer = PdfWriter()
        for i, page in enumerate(reader.pages):
            if angle and i in selected:
                page.rotate(angle)
            writer.add_page(page)

        name = derive_filename(self._name(path, original_name), "rotated", "pdf")
        return self._write(writer, name), name, PDF_MIMETYPE

    def _watermark_overlay(
        self,
        width: float,
        height: float,
        text: str,
        font_size: int,
        opacity: float,
        rotation: float,
        rgb: Tuple[float, float, float],
        position: str,
    ) -> PdfReader:
        buf = io.BytesIO()
        c = canvas.Canvas(buf, pagesize=(width, height))

        font = "Helvetica-Bold"
        text_width = stringWidth(text, font, font_size)
        x, y = watermark_position(position, width, height, text_width, font_size)

        c.setFont(font, font_size)
        c.setFillColorRGB(*rgb, alpha=opacity)
        c.translate(x, y)
        c.rotate(rotation)
        c.drawString(0, 0, text)
        c.save()

        buf.seek(0)
        return PdfReader(buf)

    def watermark_pdf(
        self,
        path: str,
        text: str = "CONFIDENTIAL",
        font_size: int = 48,
        opacity: float = 0.3,
        rotation: float = 45,
        color: str = "#808080",
        position: str = "center",
        pages: str = "",
        original_name: Optional[str] = None,
    ) -> Tuple[str, str, str]:
        text = (text or "").strip()
        if not text:
            raise ValidationError("Please enter watermark text")
        if position not in WATERMARK_POSITIONS:
            raise ValidationError(f"Unknown watermark position: {position}")

        opacity = max(0.0, min(1.0, float(opacity)))
        rgb = hex_to_rgb(color)

        reader = self._reader(path)
        selected = set(page_ranges_to_list(pages, len(reader.pages)))
        writer = PdfWriter()

        for i, page in enumerate(reader.pages):
            if i in selected:
                width = float(page.mediabox.width)
                height = float(page.mediabox.height)
                overlay = self._watermark_overlay(
                    width, height, text, int(font_size), opacity, rotation, rgb, position
                )
                page.merge_page(overlay.pages[0])
            writer.add_page(page)

        name = derive_filename(self._name(path, original_name), "watermarked", "pdf")
        return self._write(writer, name), name, PDF_MIMETYPE

    # ------------------------------------------------------------------
    # Extract text
    # ------------------------------------------------------------------

    def extract_text(self, path: str, original_name: Optional[str] = None) -> Tuple[str, str, str]:
        chunks: List[str] = []

        with self._open_unlocked(path) as doc:
            for i, page in enumerate(doc, 1):
                chunks.append(f"=== Page {i} ===\n")
                text = page.get_text() or ""
                chunks.append(text + "\n\n")

        name = derive_filename(self._name(path, original_name), "", "txt")
        out_path = self._out(name)
        with open(out_path, "w", encoding="utf-8") as f:
            f.write("".join(chunks))

        return out_path, name, "text/plain"

    # ------------------------------------------------------------------
    # Organize pages (reorder / delete / range)
    # ------------------------------------------------------------------

    def organize_pdf(
        self,
        path: str,
        page_order: str = "",
        deleted_pages: str = "",
        pages: str = "",
        original_name: Optional[str] = None,
    ) -> Tuple[str, str, str]:
        """
        page_order: "3,1,2" one-based page numbers in output order. When it
        is empty the pages filter (or every page) is used in document order.
        deleted_pages: "4,7" pages dropped from the output either way.
        """
        reader = self._reader(path)
        total = len(reader.pages)

        deleted = set()
        if deleted_pages.strip():
            deleted = set(page_ranges_to_list(deleted_pages, total))

        if page_order.strip():
            order = []
            for part in page_order.split(","):
                try:
                    idx = int(part.strip()) - 1
                except ValueError:
                    continue
                if 0 <= idx < total:
                    order.append(idx)
        else:
            order = page_ranges_to_list(pages, total)

        order = [idx for idx in order if idx not in deleted]
        if not order:
            raise ValidationError("No pages selected for output.")

        writer = PdfWriter()
        for idx in order:
            writer.add_page(reader.pages[idx])

        name = derive_filename(self._name(path, original_name), "organized", "pdf")
        return self._write(writer, name), name, PDF_MIMETYPE

    # ------------------------------------------------------------------
    # Protect / Unlock
    # ------------------------------------------------------------------

    def protect_pdf(
        self,
        path: str,
        password: str,
        permissions: Optional[Dict[str, bool]] = None,
        original_name: Optional[str] = None,
    ) -> Tuple[str, str, str]:
        if not password or len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
            )

        if permissions is None:
            permissions = {key: True for key in PERMISSION_FLAGS}

        perm = 0
        for key, flag in PERMISSION_FLAGS.items():
            if permissions.get(key):
                perm |= flag

        doc = self._open(path)
        if doc.needs_pass:
            doc.close()
            raise ValidationError("This PDF is already password protected.")

        name = derive_filename(self._name(path, original_name), "protected", "pdf")
        out_path = self._out(name)
        try:
            doc.save(
                out_path,
                encryption=fitz.PDF_ENCRYPT_AES_256,
                owner_pw=password,
                user_pw=password,
                permissions=perm,
            )
        finally:
            doc.close()

        return out_path, name, PDF_MIMETYPE

    def unlock_pdf(
        self, path: str, password: str, original_name: Optional[str] = None
    ) -> Tuple[str, str, str]:
        doc = self._open(path)
        try:
            if doc.needs_pass and not doc.authenticate(password or ""):
                raise ValidationError("Incorrect password. Please try again.")

            name = derive_filename(self._name(path, original_name), "unlocked", "pdf")
            out_path = self._out(name)
            doc.save(out_path, encryption=fitz.PDF_ENCRYPT_NONE)
        finally:
            doc.close()

        return out_path, name, PDF_MIMETYPE

    # ------------------------------------------------------------------
    # Metadata / Forms
    # ------------------------------------------------------------------

    def read_metadata(self, path: str) -> Dict[str, object]:
        with self._open_unlocked(path) as doc:
            meta = doc.metadata or {}
            info = {key: meta.get(key) or "" for key in METADATA_FIELDS}
            info["creation_date"] = meta.get("creationDate") or ""
            info["modification_date"] = meta.get("modDate") or ""
            info["page_count"] = doc.page_count
        return info

    def update_metadata(
        self, path: str, metadata: Dict[str, str], original_name: Optional[str] = None
    ) -> Tuple[str, str, str]:
        name = derive_filename(self._name(path, original_name), "metadata", "pdf")
        out_path = self._out(name)

        with self._open_unlocked(path) as doc:
            current = doc.metadata or {}

            updated = {key: current.get(key) or "" for key in METADATA_FIELDS}
            for key in METADATA_FIELDS:
                if key in metadata and metadata[key] is not None:
                    updated[key] = str(metadata[key])
            updated["modDate"] = fitz.get_pdf_now()
            if current.get("creationDate"):
                updated["creationDate"] = current["creationDate"]

            doc.set_metadata(updated)
            doc.save(out_path, garbage=1, deflate=True)

        return out_path, name, PDF_MIMETYPE

    def list_form_fields(self, path: str) -> List[Dict[str, object]]:
        fields = []
        with self._open_unlocked(path) as doc:
            for page in doc:
                for widget in page.widgets():
                    fields.append(
                        {
                            "name": widget.field_name,
                            "type": widget.field_type_string,
                            "value": widget.field_value,
                            "page": page.number + 1,
                        }
                    )
        return fields

    def fill_form(
        self, path: str, values: Dict[str, object], original_name: Optional[str] = None
    ) -> Tuple[str, str, str]:
        filled = 0

        with self._open_unlocked(path) as doc:
            for page in doc:
                for widget in page.widgets():
                    if widget.field_name not in values:
                        continue
                    value = values[widget.field_name]

                    if widget.field_type in (fitz.PDF_WIDGET_TYPE_CHECKBOX, fitz.PDF_WIDGET_TYPE_RADIOBUTTON):
                        checked = str(value).strip().lower() in ("1", "true", "yes", "on")
                        widget.field_value = widget.on_state() if checked else "Off"
                    else:
                        widget.field_value = "" if value is None else str(value)

                    widget.update()
                    filled += 1

            if not filled:
                raise ValidationError("No matching form fields found in this PDF.")

            name = derive_filename(self._name(path, original_name), "filled", "pdf")
            out_path = self._out(name)
            doc.save(out_path)

        logger.debug("filled %d form field(s)", filled)
        return out_path, name, PDF_MIMETYPE

    # ------------------------------------------------------------------
    # Conversions
    # ------------------------------------------------------------------

    def pdf_to_images(
        self,
        path: str,
        fmt: str = "jpeg",
        dpi: int = 150,
        quality: int = 90,
        original_name: Optional[str] = None,
    ) -> Tuple[str, str, str]:
        key = (fmt or "jpeg").lower()
        if key not in IMAGE_FORMATS:
            raise ValidationError(f"Unsupported image format: {fmt}")
        pil_format, ext, mimetype = IMAGE_FORMATS[key]

        dpi = max(36, min(600, int(dpi)))
        base = self._name(path, original_name)
        doc = self._open_unlocked(path)

        images = []
        try:
            for page in doc:
                pix = page.get_pixmap(dpi=dpi, alpha=False)
                img = Image.frombytes("RGB", (pix.width, pix.height), pix.samples)
                buf = io.BytesIO()
                params = {"quality": quality} if pil_format in ("JPEG", "WEBP") else {}
                img.save(buf, pil_format, **params)
                images.append((f"page-{page.number + 1}.{ext}", buf.getvalue()))
        finally:
            doc.close()

        if len(images) == 1:
            name = derive_filename(base, "", ext)
            out_path = self._out(name)
            with open(out_path, "wb") as f:
                f.write(images[0][1])
            return out_path, name, mimetype

        name = derive_filename(base, "images", "zip")
        out_path = self._out(name)
        with zipfile.ZipFile(out_path, "w", zipfile.ZIP_DEFLATED) as zf:
            for image_name, data in images:
                zf.writestr(image_name, data)
        return out_path, name, ZIP_MIMETYPE

    def images_to_pdf(self, paths: List[str]) -> Tuple[str, str, str]:
        if not paths:
            raise ValidationError("Please select at least one image.")

        images = []
        for p in paths:
            try:
                img = Image.open(p)
                img.load()
            except OSError as e:
                raise ProcessingError(f"Failed to load image: {e}") from e
            images.append(img.convert("RGB"))

        out_path = self._out("images.pdf")
        images[0].save(out_path, "PDF", save_all=True, append_images=images[1:], resolution=72.0)
        return out_path, "images.pdf", PDF_MIMETYPE

    def pdf_to_word(self, path: str, original_name: Optional[str] = None) -> Tuple[str, str, str]:
        doc = self._open_unlocked(path)
        document = Document()

        try:
            for i, page in enumerate(doc):
                if i:
                    document.add_page_break()
                text = page.get_text() or ""
                for block in text.split("\n\n"):
                    block = block.strip()
                    if block:
                        document.add_paragraph(block.replace("\n", " "))
        finally:
            doc.close()

        name = derive_filename(self._name(path, original_name), "", "docx")
        out_path = self._out(name)
        document.save(out_path)
        return out_path, name, DOCX_MIMETYPE

    def word_to_pdf(
        self, path: str, font_size: int = 12, original_name: Optional[str] = None
    ) -> Tuple[str, str, str]:
        try:
            document = Document(path)
        except (PackageNotFoundError, zipfile.BadZipFile, KeyError) as e:
            raise ProcessingError(f"Failed to read Word document: {e}") from e

        name = derive_filename(self._name(path, original_name), "", "pdf")
        out_path = self._out(name)

        page_width, page_height = A4
        margin = 72
        max_width = page_width - margin * 2
        line_height = font_size * 1.2

        c = canvas.Canvas(out_path, pagesize=A4)
        y = page_height - margin

        for paragraph in document.paragraphs:
            text = paragraph.text.strip()
            if not text:
                y -= line_height * 0.5
                continue

            is_heading = paragraph.style is not None and paragraph.style.name.startswith("Heading")
            font = "Helvetica-Bold" if is_heading else "Helvetica"
            size = font_size + 2 if is_heading else font_size

            for line in simpleSplit(text, font, size, max_width):
                if y < margin + line_height:
                    c.showPage()
                    y = page_height - margin
                c.setFont(font, size)
                c.drawString(margin, y, line)
                y -= line_height

            y -= line_height * 0.5

        c.save()
        return out_path, name, PDF_MIMETYPE
