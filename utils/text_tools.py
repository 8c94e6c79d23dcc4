import base64
import binascii
import hashlib
import json
import math
import re
import secrets
from typing import Any, Dict, List, Optional
from urllib.parse import quote, unquote_to_bytes

from utils.errors import ValidationError


# ------------------------------------------------------------------
# Reverse
# ------------------------------------------------------------------

def reverse_text(text: str, mode: str = "characters") -> str:
    if not text:
        return ""
    if mode == "words":
        return " ".join(reversed(text.split(" ")))
    if mode == "lines":
        return "\n".join(reversed(text.split("\n")))
    return text[::-1]


# ------------------------------------------------------------------
# Duplicate lines
# ------------------------------------------------------------------

def remove_duplicates(
    text: str,
    case_sensitive: bool = True,
    keep_order: bool = True,
    trim_lines: bool = True,
    remove_empty: bool = True,
) -> Optional[Dict[str, Any]]:
    """
    Drop repeated lines, keeping the first occurrence of each.

    With keep_order=False the unique lines come back sorted instead
    (case-insensitively when case_sensitive=False).
    """
    if not text or not text.strip():
        return None

    lines = text.split("\n")
    original_count = len(lines)

    if trim_lines:
        lines = [line.strip() for line in lines]
    if remove_empty:
        lines = [line for line in lines if line]

    after_cleanup = len(lines)

    seen = set()
    duplicates = set()
    unique: List[str] = []

    for line in lines:
        key = line if case_sensitive else line.lower()
        if key in seen:
            duplicates.add(line)
            continue
        seen.add(key)
        unique.append(line)

    if not keep_order:
        if case_sensitive:
            unique.sort()
        else:
            unique.sort(key=str.lower)

    return {
        "text": "\n".join(unique),
        "original": original_count,
        "after_cleanup": after_cleanup,
        "unique": len(unique),
        "removed": after_cleanup - len(unique),
        "duplicates": len(duplicates),
    }


# ------------------------------------------------------------------
# HTML / URL / Base64 codecs
# ------------------------------------------------------------------

# '&' must come first when encoding
HTML_ENTITIES = {
    "&": "&amp;",
    "<": "&lt;",
    ">": "&gt;",
    '"': "&quot;",
    "'": "&#x27;",
    "/": "&#x2F;",
    " ": "&nbsp;",
}

_ENTITY_RE = re.compile(r"&(amp|lt|gt|quot|nbsp);|&#(\d+);|&#[xX]([0-9a-fA-F]+);")
_NAMED = {"amp": "&", "lt": "<", "gt": ">", "quot": '"', "nbsp": " "}


def html_encode(text: str) -> str:
    return "".join(HTML_ENTITIES.get(ch, ch) for ch in text)


def _decode_entity(match: "re.Match") -> str:
    name, dec, hexa = match.groups()
    if name:
        return _NAMED[name]
    code = int(dec) if dec else int(hexa, 16)
    try:
        return chr(code)
    except (ValueError, OverflowError):
        return match.group(0)


def html_decode(text: str) -> str:
    # Single pass, so "&amp;lt;" decodes to "&lt;" and not "<"
    return _ENTITY_RE.sub(_decode_entity, text)


# encodeURIComponent leaves these alone
_URI_COMPONENT_SAFE = "-_.!~*'()"
_BAD_ESCAPE_RE = re.compile(r"%(?![0-9a-fA-F]{2})")


def url_encode(text: str) -> str:
    return quote(text, safe=_URI_COMPONENT_SAFE)


def url_decode(text: str) -> str:
    if _BAD_ESCAPE_RE.search(text):
        raise ValidationError("Invalid URL encoded input. Please check your text.")
    try:
        return unquote_to_bytes(text).decode("utf-8")
    except UnicodeDecodeError:
        raise ValidationError("Invalid URL encoded input. Please check your text.")


def base64_encode(text: str) -> str:
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


def base64_decode(text: str) -> str:
    try:
        raw = base64.b64decode("".join(text.split()), validate=True)
        return raw.decode("utf-8")
    except (binascii.Error, UnicodeDecodeError, ValueError):
        raise ValidationError("Invalid Base64 input. Please check your text.")


# ------------------------------------------------------------------
# JSON
# ------------------------------------------------------------------

def format_json(text: str, mode: str = "format", indent: int = 2) -> Dict[str, Any]:
    """
    mode:
        "format"   -> pretty print
        "minify"   -> compact separators
        "validate" -> only report validity
    """
    if not text or not text.strip():
        raise ValidationError("Please enter some JSON to process.")

    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as e:
        return {"text": "", "valid": False, "error": f"Invalid JSON: {e}"}

    if mode == "minify":
        out = json.dumps(parsed, ensure_ascii=False, separators=(",", ":"))
    elif mode == "validate":
        out = "Valid JSON"
    else:
        out = json.dumps(parsed, ensure_ascii=False, indent=indent)

    return {"text": out, "valid": True, "error": None}


# ------------------------------------------------------------------
# Diff
# ------------------------------------------------------------------

def diff_lines(original: str, modified: str) -> Dict[str, Any]:
    """
    Positional line comparison: line i of one text against line i of the
    other. Blank line pairs are skipped.
    """
    if not original and not modified:
        return {"differences": [], "removed": 0, "added": 0, "modified": 0, "unchanged": 0}

    left = original.split("\n")
    right = modified.split("\n")
    rows = []

    for i in range(max(len(left), len(right))):
        a = left[i] if i < len(left) else ""
        b = right[i] if i < len(right) else ""
        line_no = i + 1

        if a == b:
            if a:
                rows.append({"type": "unchanged", "line": line_no, "content": a})
        elif a and not b:
            rows.append({"type": "removed", "line": line_no, "content": a})
        elif b and not a:
            rows.append({"type": "added", "line": line_no, "content": b})
        else:
            rows.append({"type": "modified", "line": line_no, "content": a, "new_content": b})

    counts = {kind: 0 for kind in ("removed", "added", "modified", "unchanged")}
    for row in rows:
        counts[row["type"]] += 1

    return {"differences": rows, **counts}


# ------------------------------------------------------------------
# Formatter
# ------------------------------------------------------------------

def _capitalize_first(text: str) -> str:
    return re.sub(r"^\s*\w|[.!?]\s*\w", lambda m: m.group(0).upper(), text)


def _fix_punctuation(text: str) -> str:
    text = re.sub(r"\s+([.!?:;,])", r"\1", text)
    return re.sub(r"([.!?:;,])(?=\w)", r"\1 ", text)


FORMAT_STEPS = [
    ("remove_extra_spaces", lambda t: re.sub(r"\s+", " ", t).strip()),
    ("remove_extra_line_breaks", lambda t: re.sub(r"\n\s*\n", "\n", t).strip()),
    ("trim_lines", lambda t: "\n".join(line.strip() for line in t.split("\n"))),
    ("remove_empty_lines", lambda t: "\n".join(l for l in t.split("\n") if l.strip())),
    ("normalize_line_breaks", lambda t: t.replace("\r\n", "\n").replace("\r", "\n")),
    ("capitalize_first", _capitalize_first),
    ("fix_punctuation", _fix_punctuation),
]

FORMAT_OPTIONS = [name for name, _ in FORMAT_STEPS]


def format_text(text: str, **options: bool) -> str:
    """
    Apply the selected clean-up steps in a fixed order.
    No options means all of them.
    """
    unknown = set(options) - set(FORMAT_OPTIONS)
    if unknown:
        raise ValidationError(f"Unknown formatting option(s): {', '.join(sorted(unknown))}")

    selected = options or {name: True for name in FORMAT_OPTIONS}
    for name, step in FORMAT_STEPS:
        if selected.get(name):
            text = step(text)
    return text


# ------------------------------------------------------------------
# Case conversion
# ------------------------------------------------------------------

def _camel_words(text: str, lower_first: bool) -> str:
    def repl(m: "re.Match") -> str:
        if lower_first and m.start() == 0:
            return m.group(0).lower()
        return m.group(0).upper()

    return re.sub(r"\s+", "", re.sub(r"(?:^\w|[A-Z]|\b\w)", repl, text))


def _joined(text: str, sep: str, upper: bool = False) -> str:
    t = text.strip()
    t = t.upper() if upper else t.lower()
    t = re.sub(r"\s+", sep, t)
    return re.sub(r"[^\w" + re.escape(sep) + r"]", "", t)


def convert_case(text: str) -> Dict[str, str]:
    if not text or not text.strip():
        return {}

    return {
        "uppercase": text.upper(),
        "lowercase": text.lower(),
        "title_case": re.sub(r"\w\S*", lambda m: m.group(0)[0].upper() + m.group(0)[1:].lower(), text),
        "sentence_case": text[:1].upper() + text[1:].lower(),
        "camel_case": _camel_words(text, lower_first=True),
        "pascal_case": _camel_words(text, lower_first=False),
        "snake_case": _joined(text, "_"),
        "kebab_case": _joined(text, "-"),
        "constant_case": _joined(text, "_", upper=True),
        "dot_case": _joined(text, "."),
        "path_case": _joined(text, "/"),
        "alternating_case": "".join(
            ch.lower() if i % 2 == 0 else ch.upper() for i, ch in enumerate(text)
        ),
        "inverse_case": "".join(
            ch.lower() if ch == ch.upper() else ch.upper() for ch in text
        ),
        "capitalize_words": re.sub(r"\b\w", lambda m: m.group(0).upper(), text),
    }


# ------------------------------------------------------------------
# Statistics
# ------------------------------------------------------------------

READING_WPM = 200
SPEAKING_WPM = 150


def text_statistics(text: str) -> Dict[str, int]:
    if not text or not text.strip():
        return {
            "words": 0,
            "characters": 0,
            "characters_no_spaces": 0,
            "sentences": 0,
            "paragraphs": 0,
            "reading_time": 0,
            "speaking_time": 0,
        }

    words = len(text.split())
    sentences = [s for s in re.split(r"[.!?]+", text) if s.strip()]
    paragraphs = [p for p in re.split(r"\n\s*\n", text) if p.strip()]

    return {
        "words": words,
        "characters": len(text),
        "characters_no_spaces": len(re.sub(r"\s", "", text)),
        "sentences": len(sentences),
        "paragraphs": len(paragraphs),
        "reading_time": math.ceil(words / READING_WPM),
        "speaking_time": math.ceil(words / SPEAKING_WPM),
    }


# ------------------------------------------------------------------
# Hashes
# ------------------------------------------------------------------

HASH_ALGORITHMS = ("md5", "sha1", "sha256", "sha512")
DEFAULT_HASH_ALGORITHMS = ("md5", "sha1", "sha256")


def hash_text(text: str, algorithms=DEFAULT_HASH_ALGORITHMS) -> Optional[Dict[str, str]]:
    """Lower-case hex digests of the UTF-8 text, one per algorithm."""
    if not text:
        return None

    unknown = [a for a in algorithms if a not in HASH_ALGORITHMS]
    if unknown:
        raise ValidationError(f"Unknown hash algorithm(s): {', '.join(unknown)}")
    if not algorithms:
        raise ValidationError("Select at least one hash algorithm.")

    data = text.encode("utf-8")
    return {name: hashlib.new(name, data).hexdigest() for name in HASH_ALGORITHMS if name in algorithms}


# ------------------------------------------------------------------
# Find / replace
# ------------------------------------------------------------------

def find_replace(
    text: str,
    find: str,
    replace: str = "",
    use_regex: bool = False,
    case_sensitive: bool = False,
    whole_word: bool = False,
    replace_all: bool = True,
) -> Dict[str, Any]:
    """
    Replace occurrences of `find` and report how many were replaced.

    Plain search text is matched literally and the replacement is inserted
    as-is. With use_regex the pattern and replacement follow `re` syntax
    (groups as \\1 or \\g<name>).
    """
    if not text or not find:
        return {"text": text or "", "count": 0}

    pattern = find if use_regex else re.escape(find)
    if whole_word:
        pattern = rf"\b(?:{pattern})\b"

    try:
        regex = re.compile(pattern, 0 if case_sensitive else re.IGNORECASE)
        repl = replace if use_regex else (lambda m: replace)
        result, count = regex.subn(repl, text, count=0 if replace_all else 1)
    except re.error as e:
        raise ValidationError(f"Invalid regular expression: {e}")

    return {"text": result, "count": count}


# ------------------------------------------------------------------
# Passwords
# ------------------------------------------------------------------

CHAR_SETS = {
    "lowercase": "abcdefghijklmnopqrstuvwxyz",
    "uppercase": "ABCDEFGHIJKLMNOPQRSTUVWXYZ",
    "numbers": "0123456789",
    "symbols": "!@#$%^&*()_+-=[]{}|;:,.<>?",
    "similar": "il1Lo0O",
    "ambiguous": "{}[]()/\\'\"`~,;.<>",
}

MIN_PASSWORD_LENGTH = 4
MAX_PASSWORD_LENGTH = 128


def password_charset(
    uppercase: bool = True,
    lowercase: bool = True,
    numbers: bool = True,
    symbols: bool = False,
    exclude_similar: bool = False,
    exclude_ambiguous: bool = False,
) -> str:
    charset = ""
    if lowercase:
        charset += CHAR_SETS["lowercase"]
    if uppercase:
        charset += CHAR_SETS["uppercase"]
    if numbers:
        charset += CHAR_SETS["numbers"]
    if symbols:
        charset += CHAR_SETS["symbols"]

    if exclude_similar:
        charset = "".join(c for c in charset if c not in CHAR_SETS["similar"])
    if exclude_ambiguous:
        charset = "".join(c for c in charset if c not in CHAR_SETS["ambiguous"])
    return charset


def generate_password(length: int = 12, **options: bool) -> str:
    charset = password_charset(**options)
    if not charset:
        raise ValidationError("Select at least one character type.")

    length = max(MIN_PASSWORD_LENGTH, min(MAX_PASSWORD_LENGTH, int(length)))
    return "".join(secrets.choice(charset) for _ in range(length))


def password_strength(password: str) -> Dict[str, Any]:
    score = 0
    feedback = []

    if len(password) >= 8:
        score += 2
    else:
        feedback.append("Use at least 8 characters")
    if len(password) >= 12:
        score += 1
    if len(password) >= 16:
        score += 1

    has_lower = bool(re.search(r"[a-z]", password))
    has_upper = bool(re.search(r"[A-Z]", password))
    has_digit = bool(re.search(r"\d", password))
    has_symbol = bool(re.search(r"[^A-Za-z0-9]", password))

    if has_lower:
        score += 1
    else:
        feedback.append("Include lowercase letters")
    if has_upper:
        score += 1
    else:
        feedback.append("Include uppercase letters")
    if has_digit:
        score += 1
    else:
        feedback.append("Include numbers")
    if has_symbol:
        score += 2
    else:
        feedback.append("Include special characters")

    if len(password) >= 20:
        score += 1
    if has_lower and has_upper and has_digit and has_symbol:
        score += 1

    if score >= 8:
        level = "Very Strong"
    elif score >= 6:
        level = "Strong"
    elif score >= 4:
        level = "Medium"
    elif score >= 2:
        level = "Weak"
    else:
        level = "Very Weak"

    return {"score": score, "level": level, "feedback": feedback}
