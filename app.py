import logging
import os
import uuid

from flask import (
    Flask,
    request,
    send_file,
    abort,
    jsonify,
)

from werkzeug.utils import secure_filename

# Our centralized tools definition
from tools import (
    CATEGORIES,
    TOOLS,
    SLUG_TO_TOOL,
    get_featured_tools,
    get_tools_by_category,
    search_tools,
)

# Central processing engine
from tool_processor import process_tool as run_tool

from config import Config
from utils.files import validate_file


# ---------------------------------------------------
# BASIC FLASK SETUP
# ---------------------------------------------------
app = Flask(__name__)
app.config.from_object(Config)
app.json.sort_keys = False

logging.basicConfig(
    level=app.config["LOG_LEVEL"],
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
app.logger.setLevel(app.config["LOG_LEVEL"])

os.makedirs(app.config["UPLOAD_FOLDER"], exist_ok=True)
os.makedirs(app.config["OUTPUT_FOLDER"], exist_ok=True)


def _category_summary():
    return [
        dict(info, name=name, count=len(get_tools_by_category(name)))
        for name, info in CATEGORIES.items()
    ]


def _collect_uploads():
    uploaded_files = []

    # Tool forms post under "file"; "files" is accepted too
    for field in ("file", "files"):
        if uploaded_files:
            break
        for f in request.files.getlist(field):
            if f and f.filename and f.filename.strip() != "":
                uploaded_files.append(f)

    return uploaded_files


def _remove_files(paths):
    for path in paths:
        try:
            os.remove(path)
        except OSError as e:
            app.logger.warning("could not remove upload %s: %s", path, e)


# ---------------------------------------------------
# ROUTES
# ---------------------------------------------------


@app.route("/")
def index():
    """
    Categories, featured tools and the full tool list.
    """
    return jsonify(
        {
            "categories": _category_summary(),
            "featured": get_featured_tools(),
            "tools": TOOLS,
        }
    )


@app.route("/tool/<slug>")
def tool_page(slug):
    tool = SLUG_TO_TOOL.get(slug)
    if not tool:
        return abort(404)

    return jsonify(tool)


@app.route("/category/<name>")
def category_page(name):
    info = CATEGORIES.get(name)
    if not info:
        return abort(404)

    return jsonify(dict(info, name=name, tools=get_tools_by_category(name)))


@app.route("/search")
def search():
    query = request.args.get("q", "")
    results = search_tools(query)
    return jsonify({"query": query, "count": len(results), "results": results})


@app.route("/process/<slug>", methods=["POST"])
def process_tool(slug):
    """
    Save uploads, validate them against the tool's file category and
    delegate the work to tool_processor.
    """
    tool = SLUG_TO_TOOL.get(slug)
    if not tool:
        return abort(404)

    saved_paths = []
    original_names = []

    if tool["kind"] == "file":
        uploaded_files = _collect_uploads()
        if not uploaded_files:
            return jsonify({"error": "No files uploaded"}), 400

        if not tool["multiple"]:
            uploaded_files = uploaded_files[:1]

        for f in uploaded_files:
            filename = secure_filename(f"{uuid.uuid4().hex}_{f.filename}")
            filepath = os.path.join(app.config["UPLOAD_FOLDER"], filename)
            f.save(filepath)
            saved_paths.append(filepath)
            original_names.append(secure_filename(f.filename) or "file")

            check = validate_file(filepath, tool["accepts"], f.mimetype, f.filename)
            if not check["is_valid"]:
                _remove_files(saved_paths)
                app.logger.info("%s: rejected upload %s: %s", slug, f.filename, check["errors"])
                return jsonify({"error": check["errors"][0], "errors": check["errors"]}), 400

    form_data = request.form.to_dict()
    app.logger.debug("%s: files=%s form=%s", slug, original_names, sorted(form_data))

    try:
        result = run_tool(
            slug=slug,
            file_paths=saved_paths,
            output_folder=app.config["OUTPUT_FOLDER"],
            form_data=form_data,
            original_names=original_names,
        )
    finally:
        _remove_files(saved_paths)

    rtype = result.get("type")

    # File download
    if rtype == "file":
        path = result.get("path")
        mimetype = result.get("mimetype", "application/octet-stream")
        download_name = result.get("download_name") or os.path.basename(path)

        if not path or not os.path.exists(path):
            app.logger.error("%s: output file missing: %s", slug, path)
            return jsonify({"error": "Output file missing"}), 500

        return send_file(
            path,
            as_attachment=True,
            download_name=download_name,
            mimetype=mimetype,
            max_age=0,
        )

    # Json return
    if rtype == "json":
        return jsonify(result.get("data", {})), 200

    # Error return
    if rtype == "error":
        return jsonify(result.get("data", {})), result.get("status_code", 400)

    return jsonify({"error": "Unknown processing response"}), 500


@app.errorhandler(413)
def too_large(e):
    limit_mb = app.config["MAX_CONTENT_LENGTH"] // (1024 * 1024)
    return jsonify({"error": f"Upload exceeds the {limit_mb} MB request limit"}), 413


@app.errorhandler(404)
def not_found(e):
    return jsonify({"error": "Not found"}), 404


# ---------------------------------------------------
# HEALTHCHECK
# ---------------------------------------------------


@app.route("/health")
def health():
    return {"status": "ok", "tools": len(TOOLS)}


# ---------------------------------------------------
# MAIN
# ---------------------------------------------------

if __name__ == "__main__":
    # For local testing
    app.run(debug=True, host="0.0.0.0", port=5000)
