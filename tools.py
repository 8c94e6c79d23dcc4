# tools.py

CATEGORIES = {
    "pdf": {
        "title": "PDF Tools",
        "icon": "pdf.svg",
        "desc": "Merge, split, compress, protect and convert PDF documents.",
    },
    "image": {
        "title": "Image Tools",
        "icon": "image.svg",
        "desc": "Resize, crop, upscale, convert and compress images.",
    },
    "audio": {
        "title": "Audio Tools",
        "icon": "audio.svg",
        "desc": "Convert audio files between sample rates and channel layouts.",
    },
    "text": {
        "title": "Text Tools",
        "icon": "text.svg",
        "desc": "Encode, format, compare and analyse text.",
    },
    "finance": {
        "title": "Finance Calculators",
        "icon": "finance.svg",
        "desc": "Mortgage, loan, investment and budgeting calculators.",
    },
}

# Tools that take uploads use the "file" kind; "accepts" is the
# upload category checked by utils.files.validate_file.
CATEGORY_DEFAULTS = {
    "pdf": {"kind": "file", "accepts": "pdf", "multiple": False},
    "image": {"kind": "file", "accepts": "image", "multiple": False},
    "audio": {"kind": "file", "accepts": "audio", "multiple": False},
    "text": {"kind": "form", "accepts": None, "multiple": False},
    "finance": {"kind": "form", "accepts": None, "multiple": False},
}

# PDF TOOLS
PDF_TOOLS = [
    {
        "slug": "merge-pdf",
        "title": "Merge PDF",
        "desc": "Combine multiple PDF files into a single, clean document.",
        "keywords": ["combine", "join", "pdf"],
        "featured": True,
        "multiple": True,
    },
    {
        "slug": "split-pdf",
        "title": "Split PDF",
        "desc": "Split a PDF into separate pages or custom page ranges.",
        "keywords": ["separate", "extract pages", "ranges"],
        "featured": True,
    },
    {
        "slug": "compress-pdf",
        "title": "Compress PDF",
        "desc": "Reduce PDF file size while keeping readable quality.",
        "keywords": ["shrink", "optimize", "reduce size"],
        "featured": True,
    },
    {
        "slug": "rotate-pdf",
        "title": "Rotate PDF",
        "desc": "Rotate pages to the correct orientation and save permanently.",
        "keywords": ["orientation", "turn", "landscape"],
    },
    {
        "slug": "watermark-pdf",
        "title": "Watermark PDF",
        "desc": "Add custom text watermarks across your PDF pages.",
        "keywords": ["stamp", "confidential", "brand"],
    },
    {
        "slug": "extract-text",
        "title": "PDF Text Extractor",
        "desc": "Pull all readable text out of a PDF into a plain text file.",
        "keywords": ["ocr", "copy text", "txt"],
    },
    {
        "slug": "organize-pdf",
        "title": "Organize PDF",
        "desc": "Reorder or delete PDF pages.",
        "keywords": ["reorder", "delete pages", "arrange"],
    },
    {
        "slug": "protect-pdf",
        "title": "Protect PDF",
        "desc": "Lock your PDF with a password to prevent unwanted access.",
        "keywords": ["password", "encrypt", "secure"],
    },
    {
        "slug": "unlock-pdf",
        "title": "Unlock PDF",
        "desc": "Remove password protection from PDFs you own.",
        "keywords": ["password", "decrypt", "remove password"],
    },
    {
        "slug": "pdf-metadata-editor",
        "title": "PDF Metadata Editor",
        "desc": "View and edit the title, author, subject and keywords of a PDF.",
        "keywords": ["properties", "author", "title"],
    },
    {
        "slug": "pdf-form-filler",
        "title": "PDF Form Filler",
        "desc": "List the fields of a fillable PDF form and fill them in.",
        "keywords": ["form", "fields", "fill"],
    },
    {
        "slug": "pdf-to-jpg",
        "title": "PDF to JPG",
        "desc": "Turn every PDF page into a high quality image.",
        "keywords": ["image", "png", "convert"],
        "featured": True,
    },
    {
        "slug": "image-to-pdf",
        "title": "Image to PDF",
        "desc": "Convert JPG, PNG and other images into a single PDF.",
        "keywords": ["jpg to pdf", "png", "convert"],
        "accepts": "image",
        "multiple": True,
    },
    {
        "slug": "pdf-to-word",
        "title": "PDF to Word",
        "desc": "Convert PDF text into an editable Word document.",
        "keywords": ["docx", "convert", "editable"],
        "featured": True,
    },
    {
        "slug": "word-to-pdf",
        "title": "Word to PDF",
        "desc": "Convert DOCX documents into PDF.",
        "keywords": ["docx", "convert", "document"],
        "accepts": "document",
    },
]

# IMAGE TOOLS
IMAGE_TOOLS = [
    {
        "slug": "image-resizer",
        "title": "Image Resizer",
        "desc": "Resize images by pixels or percentage, keeping the aspect ratio.",
        "keywords": ["scale", "dimensions", "shrink"],
        "featured": True,
    },
    {
        "slug": "image-cropper",
        "title": "Image Cropper",
        "desc": "Crop images freely or to common aspect ratios.",
        "keywords": ["cut", "aspect ratio", "trim"],
    },
    {
        "slug": "image-upscaler",
        "title": "Image Upscaler",
        "desc": "Enlarge images 2x, 3x or 4x with high quality resampling.",
        "keywords": ["enlarge", "enhance", "resolution"],
    },
    {
        "slug": "image-converter",
        "title": "Image Converter",
        "desc": "Convert images between JPG, PNG, WebP, GIF and BMP.",
        "keywords": ["jpg", "png", "webp", "format"],
        "featured": True,
    },
    {
        "slug": "image-compressor",
        "title": "Image Compressor",
        "desc": "Reduce image file size with adjustable quality.",
        "keywords": ["optimize", "reduce size", "quality"],
        "featured": True,
    },
    {
        "slug": "image-thumbnail",
        "title": "Thumbnail Maker",
        "desc": "Create square thumbnails from any image.",
        "keywords": ["preview", "square", "small"],
    },
    {
        "slug": "image-info",
        "title": "Image Info",
        "desc": "Show dimensions, format and size of an image.",
        "keywords": ["metadata", "dimensions", "properties"],
    },
]

# AUDIO TOOLS
AUDIO_TOOLS = [
    {
        "slug": "audio-converter",
        "title": "Audio Converter",
        "desc": "Convert WAV audio to a new sample rate or channel layout.",
        "keywords": ["wav", "sample rate", "mono", "stereo"],
        "featured": True,
    },
]

# TEXT TOOLS
TEXT_TOOLS = [
    {
        "slug": "text-reverser",
        "title": "Text Reverser",
        "desc": "Reverse text by characters, words or lines.",
        "keywords": ["backwards", "mirror", "flip"],
    },
    {
        "slug": "duplicate-line-remover",
        "title": "Duplicate Line Remover",
        "desc": "Remove repeated lines from lists and text.",
        "keywords": ["dedupe", "unique", "lines"],
        "featured": True,
    },
    {
        "slug": "html-encoder-decoder",
        "title": "HTML Encoder/Decoder",
        "desc": "Escape and unescape HTML entities.",
        "keywords": ["entities", "escape", "unescape"],
    },
    {
        "slug": "url-encoder-decoder",
        "title": "URL Encoder/Decoder",
        "desc": "Percent-encode and decode URL components.",
        "keywords": ["percent", "uri", "query string"],
    },
    {
        "slug": "base64-encoder-decoder",
        "title": "Base64 Encoder/Decoder",
        "desc": "Encode text to Base64 and back.",
        "keywords": ["base64", "encode", "decode"],
    },
    {
        "slug": "json-formatter",
        "title": "JSON Formatter",
        "desc": "Format, minify and validate JSON.",
        "keywords": ["pretty print", "minify", "validate"],
        "featured": True,
    },
    {
        "slug": "text-diff",
        "title": "Text Diff Checker",
        "desc": "Compare two texts line by line.",
        "keywords": ["compare", "difference", "changes"],
    },
    {
        "slug": "text-formatter",
        "title": "Text Formatter",
        "desc": "Clean up spacing, line breaks, capitalization and punctuation.",
        "keywords": ["clean", "whitespace", "tidy"],
    },
    {
        "slug": "case-converter",
        "title": "Case Converter",
        "desc": "Convert text to camelCase, snake_case, Title Case and more.",
        "keywords": ["uppercase", "lowercase", "camel", "snake"],
    },
    {
        "slug": "word-counter",
        "title": "Word Counter",
        "desc": "Count words, characters, sentences and reading time.",
        "keywords": ["characters", "reading time", "statistics"],
        "featured": True,
    },
    {
        "slug": "password-generator",
        "title": "Password Generator",
        "desc": "Generate strong random passwords.",
        "keywords": ["secure", "random", "strength"],
        "featured": True,
    },
    {
        "slug": "hash-generator",
        "title": "Hash Generator",
        "desc": "Generate MD5, SHA-1, SHA-256 and SHA-512 hashes of text.",
        "keywords": ["md5", "sha", "checksum", "digest"],
    },
    {
        "slug": "find-replace",
        "title": "Find and Replace",
        "desc": "Find and replace text, with case, whole word and regex options.",
        "keywords": ["search", "regex", "substitute"],
    },
]

# FINANCE TOOLS
FINANCE_TOOLS = [
    {
        "slug": "mortgage-calculator",
        "title": "Mortgage Calculator",
        "desc": "Monthly payment with taxes, insurance, PMI and HOA.",
        "keywords": ["home loan", "house", "monthly payment"],
        "featured": True,
    },
    {
        "slug": "loan-calculator",
        "title": "Loan Calculator",
        "desc": "Payments, interest and the savings from extra payments.",
        "keywords": ["amortization", "interest", "extra payment"],
    },
    {
        "slug": "emi-calculator",
        "title": "EMI Calculator",
        "desc": "Equated monthly installment for any loan.",
        "keywords": ["installment", "loan", "monthly"],
    },
    {
        "slug": "retirement-calculator",
        "title": "Retirement Calculator",
        "desc": "Project your savings and the gap to a comfortable retirement.",
        "keywords": ["pension", "401k", "savings"],
    },
    {
        "slug": "compound-interest-calculator",
        "title": "Compound Interest Calculator",
        "desc": "Growth of savings with compounding and monthly deposits.",
        "keywords": ["interest", "growth", "savings"],
        "featured": True,
    },
    {
        "slug": "sip-calculator",
        "title": "SIP Calculator",
        "desc": "Future value of a systematic investment plan.",
        "keywords": ["mutual fund", "monthly investment", "returns"],
    },
    {
        "slug": "investment-return-calculator",
        "title": "Investment Return Calculator",
        "desc": "Returns with contributions, dividends, tax and inflation.",
        "keywords": ["roi", "dividends", "portfolio"],
    },
    {
        "slug": "tip-calculator",
        "title": "Tip Calculator",
        "desc": "Work out the tip and split the bill.",
        "keywords": ["gratuity", "split bill", "restaurant"],
    },
    {
        "slug": "budget-calculator",
        "title": "Budget Calculator",
        "desc": "Compare your spending with recommended shares of income.",
        "keywords": ["expenses", "income", "savings rate"],
    },
    {
        "slug": "currency-converter",
        "title": "Currency Converter",
        "desc": "Convert between major world currencies.",
        "keywords": ["exchange rate", "forex", "money"],
    },
]


def _build(category, tools):
    result = []
    for tool in tools:
        record = dict(CATEGORY_DEFAULTS[category])
        record.update(
            {
                "category": category,
                "icon": f"{tool['slug']}.svg",
                "keywords": [],
                "featured": False,
            }
        )
        record.update(tool)
        result.append(record)
    return result


TOOLS = (
    _build("pdf", PDF_TOOLS)
    + _build("image", IMAGE_TOOLS)
    + _build("audio", AUDIO_TOOLS)
    + _build("text", TEXT_TOOLS)
    + _build("finance", FINANCE_TOOLS)
)

# MAPPINGS
SLUG_TO_TOOL = {t["slug"]: t for t in TOOLS}


def get_tools_by_category(category):
    return [t for t in TOOLS if t["category"] == category]


def get_featured_tools():
    return [t for t in TOOLS if t["featured"]]


def search_tools(query):
    """
    Case-insensitive match on title, description, keywords and category.
    Queries shorter than two characters return nothing.
    """
    q = (query or "").strip().lower()
    if len(q) < 2:
        return []

    matches = []
    for t in TOOLS:
        haystack = [t["title"], t["desc"], t["category"]] + list(t["keywords"])
        if any(q in field.lower() for field in haystack):
            matches.append(t)
    return matches
