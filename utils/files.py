import math
import mimetypes
import os
import uuid
from typing import Any, Dict, Optional


# Per-category upload limits (bytes)
FILE_SIZE_LIMITS = {
    "image": 50 * 1024 * 1024,
    "pdf": 100 * 1024 * 1024,
    "audio": 100 * 1024 * 1024,
    "text": 10 * 1024 * 1024,
    "document": 50 * 1024 * 1024,
    "general": 50 * 1024 * 1024,
}

SUPPORTED_FILE_TYPES = {
    "image": [
        "image/jpeg",
        "image/jpg",
        "image/png",
        "image/webp",
        "image/gif",
        "image/bmp",
    ],
    "pdf": ["application/pdf"],
    "audio": [
        "audio/mp3",
        "audio/wav",
        "audio/x-wav",
        "audio/wave",
        "audio/mpeg",
        "audio/ogg",
        "audio/webm",
    ],
    "text": [
        "text/plain",
        "text/csv",
        "application/json",
        "text/html",
        "text/css",
        "text/javascript",
    ],
    "document": [
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ],
}

ERROR_MESSAGES = {
    "fileSize": "File size exceeds the maximum limit",
    "fileType": "File type not supported",
    "processingError": "Error processing file. Please try again",
}

GENERIC_MIMETYPES = ("", "application/octet-stream")


def format_file_size(num_bytes: int) -> str:
    """
    Human readable size: 0 -> "0 Bytes", 1536 -> "1.5 KB".
    """
    if num_bytes <= 0:
        return "0 Bytes"

    k = 1024
    sizes = ["Bytes", "KB", "MB", "GB"]
    i = min(int(math.floor(math.log(num_bytes) / math.log(k))), len(sizes) - 1)
    value = round(num_bytes / math.pow(k, i), 2)

    # 1.50 -> 1.5, 2.00 -> 2
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return f"{text} {sizes[i]}"


def guess_mimetype(filename: str, mimetype: Optional[str] = None) -> str:
    if mimetype and mimetype not in GENERIC_MIMETYPES:
        return mimetype
    guessed, _ = mimetypes.guess_type(filename or "")
    return guessed or "application/octet-stream"


def validate_file(
    path: str,
    category: str = "general",
    mimetype: Optional[str] = None,
    filename: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Check an uploaded file against the size limit and allowed types
    of its category.
    """
    errors = []

    if not path or not os.path.exists(path):
        errors.append("No file selected")
        return {"is_valid": False, "errors": errors, "file_info": None}

    name = filename or os.path.basename(path)
    size = os.path.getsize(path)
    ftype = guess_mimetype(name, mimetype)

    limit = FILE_SIZE_LIMITS.get(category, FILE_SIZE_LIMITS["general"])
    if size > limit:
        errors.append(
            f"{ERROR_MESSAGES['fileSize']}. Maximum allowed: {format_file_size(limit)}"
        )

    allowed = SUPPORTED_FILE_TYPES.get(category)
    if allowed and ftype not in allowed:
        errors.append(
            f"{ERROR_MESSAGES['fileType']}. Supported formats: {', '.join(allowed)}"
        )

    if size == 0:
        errors.append("File is empty")

    return {
        "is_valid": not errors,
        "errors": errors,
        "file_info": {"name": name, "size": size, "type": ftype},
    }


def derive_filename(original_name: str, suffix: str = "", extension: Optional[str] = None) -> str:
    """
    "report.pdf", "rotated" -> "report_rotated.pdf"
    "song.mp3", "", "wav"   -> "song.wav"
    """
    base, ext = os.path.splitext(os.path.basename(original_name or "file"))
    base = base or "file"
    final_ext = (extension or ext.lstrip(".") or "bin").lstrip(".")
    if suffix:
        return f"{base}_{suffix}.{final_ext}"
    return f"{base}.{final_ext}"


def unique_output_path(output_folder: str, base_name: str, ext: str) -> str:
    os.makedirs(output_folder, exist_ok=True)
    safe_base = os.path.splitext(os.path.basename(base_name))[0] or "output"
    if ext and not ext.startswith("."):
        ext = "." + ext
    uid = uuid.uuid4().hex[:8]
    return os.path.join(output_folder, f"{safe_base}_{uid}{ext}")
