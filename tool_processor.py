import json
import logging
import os
from typing import Any, Dict, List, Optional

from tools import SLUG_TO_TOOL
from utils import finance, text_tools
from utils.audio_processor import AudioProcessor
from utils.errors import ToolError, ValidationError
from utils.files import ERROR_MESSAGES
from utils.image_processor import ImageProcessor
from utils.pdf_processor import METADATA_FIELDS, PERMISSION_FLAGS, PDFProcessor


logger = logging.getLogger(__name__)

INVALID_INPUT_MESSAGE = "Please enter valid values"

TRUE_VALUES = ("1", "true", "yes", "on")
FALSE_VALUES = ("0", "false", "no", "off")


# ------------------------------------------------------------------
# Form parsing
# ------------------------------------------------------------------

def _float(form: Dict[str, Any], key: str, default: float = 0.0) -> float:
    """parseFloat-or-default: missing or unparsable values give the default."""
    value = form.get(key)
    if value is None or str(value).strip() == "":
        return default
    try:
        result = float(value)
    except (TypeError, ValueError):
        return default
    if result != result or result in (float("inf"), float("-inf")):
        return default
    return result


def _int(form: Dict[str, Any], key: str, default: int = 0) -> int:
    return int(_float(form, key, default))


def _bool(form: Dict[str, Any], key: str, default: bool = False) -> bool:
    value = form.get(key)
    if value is None:
        return default
    value = str(value).strip().lower()
    if value in TRUE_VALUES:
        return True
    if value in FALSE_VALUES:
        return False
    return default


def _text(form: Dict[str, Any], key: str = "text", default: str = "") -> str:
    value = form.get(key)
    return default if value is None else str(value)


# ------------------------------------------------------------------
# Result records
# ------------------------------------------------------------------

def _file_result(out) -> Dict[str, Any]:
    path, download_name, mimetype = out
    return {
        "type": "file",
        "path": path,
        "download_name": download_name,
        "mimetype": mimetype,
    }


def _json_result(data) -> Dict[str, Any]:
    return {"type": "json", "data": data}


def _error_result(message: str, status_code: int) -> Dict[str, Any]:
    return {"type": "error", "data": {"error": message}, "status_code": status_code}


# ------------------------------------------------------------------
# Finance
# ------------------------------------------------------------------

def _run_finance(slug: str, form: Dict[str, Any]):
    if slug == "mortgage-calculator":
        return finance.calculate_mortgage(
            home_price=_float(form, "home_price"),
            down_payment=_float(form, "down_payment"),
            interest_rate=_float(form, "interest_rate"),
            loan_term=_float(form, "loan_term", 30),
            property_tax=_float(form, "property_tax"),
            home_insurance=_float(form, "home_insurance"),
            pmi=_float(form, "pmi"),
            hoa_fees=_float(form, "hoa_fees"),
        )

    if slug == "loan-calculator":
        return finance.calculate_loan(
            loan_amount=_float(form, "loan_amount"),
            interest_rate=_float(form, "interest_rate"),
            loan_term=_float(form, "loan_term"),
            term_unit=_text(form, "term_unit", "years"),
            extra_payment=_float(form, "extra_payment"),
        )

    if slug == "emi-calculator":
        return finance.calculate_emi(
            loan_amount=_float(form, "loan_amount"),
            interest_rate=_float(form, "interest_rate"),
            loan_tenure=_float(form, "loan_tenure"),
            tenure_type=_text(form, "tenure_type", "years"),
        )

    if slug == "retirement-calculator":
        return finance.calculate_retirement(
            current_age=_int(form, "current_age"),
            current_income=_float(form, "current_income"),
            retirement_age=_int(form, "retirement_age", 65),
            current_savings=_float(form, "current_savings"),
            monthly_savings=_float(form, "monthly_savings"),
            expected_return=_float(form, "expected_return", 7),
            inflation_rate=_float(form, "inflation_rate", 3),
            income_needed=_float(form, "income_needed", 80),
            social_security=_float(form, "social_security"),
            pension=_float(form, "pension"),
        )

    if slug == "compound-interest-calculator":
        return finance.calculate_compound_interest(
            principal=_float(form, "principal"),
            interest_rate=_float(form, "interest_rate"),
            years=_int(form, "years"),
            compounding_frequency=_int(form, "compounding_frequency", 1),
            monthly_deposit=_float(form, "monthly_deposit"),
        )

    if slug == "sip-calculator":
        return finance.calculate_sip(
            monthly_investment=_float(form, "monthly_investment"),
            expected_return=_float(form, "expected_return"),
            years=_int(form, "years"),
        )

    if slug == "investment-return-calculator":
        return finance.calculate_investment_return(
            initial_amount=_float(form, "initial_amount"),
            annual_return=_float(form, "annual_return"),
            period=_float(form, "period"),
            period_unit=_text(form, "period_unit", "years"),
            monthly_contribution=_float(form, "monthly_contribution"),
            dividend_yield=_float(form, "dividend_yield"),
            reinvest_dividends=_bool(form, "reinvest_dividends", True),
            tax_rate=_float(form, "tax_rate"),
            inflation_rate=_float(form, "inflation_rate", 3),
        )

    if slug == "tip-calculator":
        return finance.calculate_tip(
            bill_amount=_float(form, "bill_amount"),
            tip_percentage=_float(form, "tip_percentage", 18),
            number_of_people=_int(form, "number_of_people", 1),
        )

    if slug == "budget-calculator":
        income = {src: _float(form, f"income_{src}") for src in finance.INCOME_SOURCES}
        expenses = {
            cat["key"]: _float(form, f"expense_{cat['key']}") for cat in finance.EXPENSE_CATEGORIES
        }
        return finance.calculate_budget(income, expenses)

    if slug == "currency-converter":
        return finance.convert_currency(
            form.get("amount"),
            _text(form, "from_currency", "USD"),
            _text(form, "to_currency", "EUR"),
        )

    raise ValidationError(f"Unknown tool slug: {slug}", 404)


# ------------------------------------------------------------------
# Text
# ------------------------------------------------------------------

CODECS = {
    "html-encoder-decoder": (text_tools.html_encode, text_tools.html_decode),
    "url-encoder-decoder": (text_tools.url_encode, text_tools.url_decode),
    "base64-encoder-decoder": (text_tools.base64_encode, text_tools.base64_decode),
}


def _run_text(slug: str, form: Dict[str, Any]):
    text = _text(form)

    if slug in CODECS:
        encode, decode = CODECS[slug]
        action = _text(form, "action", "encode")
        if action not in ("encode", "decode"):
            raise ValidationError(f"Unknown action: {action}")
        fn = encode if action == "encode" else decode
        return {"text": fn(text), "action": action}

    if slug == "text-reverser":
        mode = _text(form, "mode", "characters")
        return {"text": text_tools.reverse_text(text, mode), "mode": mode}

    if slug == "duplicate-line-remover":
        return text_tools.remove_duplicates(
            text,
            case_sensitive=_bool(form, "case_sensitive", True),
            keep_order=_bool(form, "keep_order", True),
            trim_lines=_bool(form, "trim_lines", True),
            remove_empty=_bool(form, "remove_empty", True),
        )

    if slug == "json-formatter":
        return text_tools.format_json(
            text, mode=_text(form, "mode", "format"), indent=_int(form, "indent", 2)
        )

    if slug == "text-diff":
        return text_tools.diff_lines(_text(form, "original"), _text(form, "modified"))

    if slug == "text-formatter":
        options = {
            name: _bool(form, name) for name in text_tools.FORMAT_OPTIONS if name in form
        }
        return {"text": text_tools.format_text(text, **options)}

    if slug == "case-converter":
        return text_tools.convert_case(text)

    if slug == "word-counter":
        return text_tools.text_statistics(text)

    if slug == "password-generator":
        password = text_tools.generate_password(
            length=_int(form, "length", 12),
            uppercase=_bool(form, "uppercase", True),
            lowercase=_bool(form, "lowercase", True),
            numbers=_bool(form, "numbers", True),
            symbols=_bool(form, "symbols", False),
            exclude_similar=_bool(form, "exclude_similar", False),
            exclude_ambiguous=_bool(form, "exclude_ambiguous", False),
        )
        return {"password": password, "strength": text_tools.password_strength(password)}

    if slug == "hash-generator":
        algorithms = [
            name
            for name in text_tools.HASH_ALGORITHMS
            if _bool(form, name, name in text_tools.DEFAULT_HASH_ALGORITHMS)
        ]
        return text_tools.hash_text(text, algorithms)

    if slug == "find-replace":
        return text_tools.find_replace(
            text,
            _text(form, "find"),
            _text(form, "replace"),
            use_regex=_bool(form, "use_regex", False),
            case_sensitive=_bool(form, "case_sensitive", False),
            whole_word=_bool(form, "whole_word", False),
            replace_all=_bool(form, "replace_all", True),
        )

    raise ValidationError(f"Unknown tool slug: {slug}", 404)


# ------------------------------------------------------------------
# Images / Audio
# ------------------------------------------------------------------

def _optional_number(form: Dict[str, Any], key: str) -> Optional[float]:
    value = _float(form, key)
    return value if value > 0 else None


def _run_image(slug: str, path: str, name: str, output_folder: str, form: Dict[str, Any]):
    proc = ImageProcessor(output_folder)

    if slug == "image-resizer":
        return proc.resize(
            path,
            width=_optional_number(form, "width"),
            height=_optional_number(form, "height"),
            percentage=_optional_number(form, "percentage"),
            maintain_aspect_ratio=_bool(form, "maintain_aspect_ratio", True),
            original_name=name,
        )

    if slug == "image-cropper":
        width, height = _float(form, "width"), _float(form, "height")
        if width <= 0 or height <= 0:
            raise ValidationError("Please specify the crop area.")
        return proc.crop(
            path,
            x=_float(form, "x"),
            y=_float(form, "y"),
            width=width,
            height=height,
            aspect_ratio=form.get("aspect_ratio") or None,
            original_name=name,
        )

    if slug == "image-upscaler":
        return proc.upscale(
            path,
            scale=_int(form, "scale", 2),
            algorithm=_text(form, "algorithm", "bicubic"),
            original_name=name,
        )

    if slug == "image-converter":
        return proc.convert(
            path,
            fmt=_text(form, "format", "jpeg"),
            quality=_int(form, "quality", 90),
            original_name=name,
        )

    if slug == "image-compressor":
        return proc.compress(
            path,
            quality=_int(form, "quality", 80),
            max_width=_int(form, "max_width", 1920),
            max_height=_int(form, "max_height", 1080),
            original_name=name,
        )

    if slug == "image-thumbnail":
        size = _int(form, "size", 150)
        if not 16 <= size <= 1024:
            raise ValidationError("Thumbnail size must be between 16 and 1024 pixels.")
        return proc.thumbnail(path, size=size, original_name=name)

    if slug == "image-info":
        return proc.metadata(path, original_name=name)

    raise ValidationError(f"Unknown tool slug: {slug}", 404)


def _run_audio(slug: str, path: str, name: str, output_folder: str, form: Dict[str, Any]):
    if slug == "audio-converter":
        sample_rate = _int(form, "sample_rate")
        channels = _int(form, "channels")
        return AudioProcessor(output_folder).convert(
            path,
            output_format=_text(form, "output_format", "wav"),
            sample_rate=sample_rate or None,
            channels=channels or None,
            original_name=name,
        )

    raise ValidationError(f"Unknown tool slug: {slug}", 404)


# ------------------------------------------------------------------
# PDF
# ------------------------------------------------------------------

def _form_fields(form: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    raw = form.get("fields")
    if raw is None or not str(raw).strip():
        return None
    try:
        values = json.loads(raw)
    except ValueError:
        raise ValidationError("Form values must be a JSON object.")
    if not isinstance(values, dict):
        raise ValidationError("Form values must be a JSON object.")
    return values


def _run_pdf(
    slug: str,
    paths: List[str],
    names: List[str],
    output_folder: str,
    form: Dict[str, Any],
):
    proc = PDFProcessor(output_folder)
    primary, name = paths[0], names[0]

    if slug == "merge-pdf":
        return proc.merge_pdfs(paths)

    if slug == "image-to-pdf":
        return proc.images_to_pdf(paths)

    if slug == "split-pdf":
        return proc.split_pdf(
            primary,
            mode=_text(form, "split_mode", "pages"),
            ranges=_text(form, "ranges") or _text(form, "pages"),
            original_name=name,
        )

    if slug == "compress-pdf":
        return proc.compress_pdf(primary, level=_int(form, "compression_level", 2), original_name=name)

    if slug == "rotate-pdf":
        angle = _int(form, "rotation_angle", _int(form, "angle", 90))
        return proc.rotate_pdf(primary, angle, pages=_text(form, "pages"), original_name=name)

    if slug == "watermark-pdf":
        opacity = _float(form, "watermark_opacity", 0.3)
        # Percent values from a 0-100 slider
        if opacity > 1:
            opacity = opacity / 100
        font_size = _int(form, "font_size", 48)
        if font_size <= 0:
            raise ValidationError("Font size must be positive.")
        return proc.watermark_pdf(
            primary,
            text=_text(form, "watermark_text", "CONFIDENTIAL"),
            font_size=font_size,
            opacity=opacity,
            rotation=_float(form, "rotation", 45),
            color=_text(form, "color", "#808080"),
            position=_text(form, "watermark_position", "center"),
            pages=_text(form, "pages"),
            original_name=name,
        )

    if slug == "extract-text":
        return proc.extract_text(primary, original_name=name)

    if slug == "organize-pdf":
        return proc.organize_pdf(
            primary,
            page_order=_text(form, "page_order"),
            deleted_pages=_text(form, "deleted_pages"),
            pages=_text(form, "pages"),
            original_name=name,
        )

    if slug == "protect-pdf":
        permissions = {key: _bool(form, f"allow_{key}", True) for key in PERMISSION_FLAGS}
        return proc.protect_pdf(
            primary, _text(form, "password"), permissions=permissions, original_name=name
        )

    if slug == "unlock-pdf":
        return proc.unlock_pdf(primary, _text(form, "password"), original_name=name)

    if slug == "pdf-metadata-editor":
        metadata = {key: form[key] for key in METADATA_FIELDS if key in form}
        if not metadata:
            return proc.read_metadata(primary)
        return proc.update_metadata(primary, metadata, original_name=name)

    if slug == "pdf-form-filler":
        values = _form_fields(form)
        if values is None:
            return {"fields": proc.list_form_fields(primary)}
        return proc.fill_form(primary, values, original_name=name)

    if slug == "pdf-to-jpg":
        return proc.pdf_to_images(
            primary,
            fmt=_text(form, "format", "jpeg"),
            dpi=_int(form, "dpi", 150),
            quality=_int(form, "quality", 90),
            original_name=name,
        )

    if slug == "pdf-to-word":
        return proc.pdf_to_word(primary, original_name=name)

    if slug == "word-to-pdf":
        font_size = _int(form, "font_size", 12)
        if not 6 <= font_size <= 72:
            raise ValidationError("Font size must be between 6 and 72.")
        return proc.word_to_pdf(primary, font_size=font_size, original_name=name)

    raise ValidationError(f"Unknown tool slug: {slug}", 404)


# ------------------------------------------------------------------
# Entry point
# ------------------------------------------------------------------

def process_tool(
    slug: str,
    file_paths: List[str],
    output_folder: str,
    form_data: Dict[str, Any],
    original_names: Optional[List[str]] = None,
) -> Dict[str, Any]:
    """
    Run one tool and describe the outcome:

        {"type": "file", "path", "download_name", "mimetype"}
        {"type": "json", "data"}
        {"type": "error", "data": {"error": msg}, "status_code"}
    """
    tool = SLUG_TO_TOOL.get((slug or "").strip().lower())
    if not tool:
        return _error_result(f"Unknown tool: {slug}", 404)

    slug = tool["slug"]
    form = form_data or {}
    paths = list(file_paths or [])
    names = list(original_names or [os.path.basename(p) for p in paths])

    try:
        if tool["kind"] == "file" and not paths:
            raise ValidationError("No files uploaded")

        category = tool["category"]
        if category == "finance":
            result = _run_finance(slug, form)
        elif category == "text":
            result = _run_text(slug, form)
        elif category == "image":
            result = _run_image(slug, paths[0], names[0], output_folder, form)
        elif category == "audio":
            result = _run_audio(slug, paths[0], names[0], output_folder, form)
        else:
            result = _run_pdf(slug, paths, names, output_folder, form)

    except ToolError as e:
        logger.info("%s rejected: %s", slug, e.message)
        return _error_result(e.message, e.status_code)

    except Exception as e:
        logger.exception("%s failed", slug)
        return _error_result(f"{ERROR_MESSAGES['processingError']} ({e})", 500)

    if result is None:
        return _error_result(INVALID_INPUT_MESSAGE, 400)
    if isinstance(result, tuple):
        return _file_result(result)
    return _json_result(result)
