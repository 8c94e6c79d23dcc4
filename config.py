import os


BASE_DIR = os.path.dirname(os.path.abspath(__file__))


class Config:
    UPLOAD_FOLDER = os.environ.get("TOOLS_UPLOAD_FOLDER", os.path.join(BASE_DIR, "uploads"))
    OUTPUT_FOLDER = os.environ.get("TOOLS_OUTPUT_FOLDER", os.path.join(BASE_DIR, "outputs"))

    # Whole request, all uploads together
    MAX_CONTENT_LENGTH = int(os.environ.get("TOOLS_MAX_CONTENT_MB", "200")) * 1024 * 1024

    LOG_LEVEL = os.environ.get("TOOLS_LOG_LEVEL", "INFO").upper()
