"""Tests for the slug dispatcher."""

import json

import pytest

from conftest import write_pdf
from tool_processor import _bool, _float, process_tool


class TestFormParsing:
    @pytest.mark.parametrize(
        "raw, expected",
        [("6.5", 6.5), ("", 3.0), ("abc", 3.0), (None, 3.0), ("nan", 3.0), ("inf", 3.0)],
    )
    def test_float_or_default(self, raw, expected):
        assert _float({"x": raw}, "x", 3.0) == expected

    @pytest.mark.parametrize(
        "raw, expected", [("on", True), ("true", True), ("0", False), ("no", False), ("?", True)]
    )
    def test_bool(self, raw, expected):
        assert _bool({"x": raw}, "x", True) is expected


class TestFormTools:
    """Finance and text tools answer with JSON."""

    def test_mortgage(self, output_folder):
        result = process_tool(
            "mortgage-calculator",
            [],
            output_folder,
            {"home_price": "300000", "down_payment": "60000", "interest_rate": "6.5"},
        )

        assert result["type"] == "json"
        assert result["data"]["loan_amount"] == 240000
        assert result["data"]["monthly_pi"] == pytest.approx(1516.96, abs=0.01)

    def test_invalid_values_give_400(self, output_folder):
        result = process_tool("mortgage-calculator", [], output_folder, {"home_price": "abc"})

        assert result == {
            "type": "error",
            "data": {"error": "Please enter valid values"},
            "status_code": 400,
        }

    def test_budget_reads_prefixed_fields(self, output_folder):
        result = process_tool(
            "budget-calculator",
            [],
            output_folder,
            {"income_salary": "4000", "income_freelance": "1000", "expense_housing": "1500"},
        )

        assert result["data"]["total_income"] == 5000
        assert result["data"]["remaining_money"] == 3500

    def test_unknown_currency(self, output_folder):
        result = process_tool(
            "currency-converter", [], output_folder, {"amount": "5", "to_currency": "ZZZ"}
        )

        assert result["type"] == "error"
        assert result["status_code"] == 400

    def test_dedup(self, output_folder):
        result = process_tool(
            "duplicate-line-remover",
            [],
            output_folder,
            {"text": "a\nA\nb\na", "case_sensitive": "false"},
        )

        assert result["data"]["text"] == "a\nb"
        assert result["data"]["removed"] == 2

    def test_codec_actions(self, output_folder):
        encoded = process_tool("base64-encoder-decoder", [], output_folder, {"text": "hi"})
        decoded = process_tool(
            "base64-encoder-decoder", [], output_folder, {"text": "aGk=", "action": "decode"}
        )

        assert encoded["data"]["text"] == "aGk="
        assert decoded["data"]["text"] == "hi"

    def test_bad_codec_input(self, output_folder):
        result = process_tool(
            "url-encoder-decoder", [], output_folder, {"text": "%E0%A4%A", "action": "decode"}
        )
        assert result["status_code"] == 400

    def test_text_formatter_selected_options(self, output_folder):
        result = process_tool(
            "text-formatter",
            [],
            output_folder,
            {"text": "a    b", "remove_extra_spaces": "true", "capitalize_first": "false"},
        )
        assert result["data"]["text"] == "a b"

    def test_password_generator(self, output_folder):
        result = process_tool(
            "password-generator", [], output_folder, {"length": "16", "symbols": "true"}
        )

        assert len(result["data"]["password"]) == 16
        assert "level" in result["data"]["strength"]

    def test_mortgage_tiny_rate(self, output_folder):
        result = process_tool(
            "mortgage-calculator",
            [],
            output_folder,
            {"home_price": "300000", "down_payment": "60000", "interest_rate": "1e-13"},
        )

        assert result["type"] == "json"
        assert result["data"]["monthly_pi"] == pytest.approx(240000 / 360)

    def test_hash_generator_checkboxes(self, output_folder):
        result = process_tool(
            "hash-generator",
            [],
            output_folder,
            {"text": "abc", "md5": "false", "sha1": "false", "sha512": "true"},
        )

        assert list(result["data"]) == ["sha256", "sha512"]

    def test_hash_generator_empty_text(self, output_folder):
        result = process_tool("hash-generator", [], output_folder, {"text": ""})
        assert result["status_code"] == 400

    def test_find_replace(self, output_folder):
        result = process_tool(
            "find-replace",
            [],
            output_folder,
            {"text": "one two one", "find": "one", "replace": "1"},
        )
        assert result["data"] == {"text": "1 two 1", "count": 2}

    def test_find_replace_bad_pattern(self, output_folder):
        result = process_tool(
            "find-replace",
            [],
            output_folder,
            {"text": "abc", "find": "[", "use_regex": "true"},
        )
        assert result["status_code"] == 400

    def test_json_formatter(self, output_folder):
        result = process_tool(
            "json-formatter", [], output_folder, {"text": '{"a": 1}', "mode": "minify"}
        )
        assert result["data"] == {"text": '{"a":1}', "valid": True, "error": None}


class TestFileTools:
    """Upload based tools answer with a file or JSON."""

    def test_unknown_slug(self, output_folder):
        result = process_tool("no-such-tool", [], output_folder, {})
        assert result["status_code"] == 404

    def test_missing_upload(self, output_folder):
        result = process_tool("rotate-pdf", [], output_folder, {})

        assert result["status_code"] == 400
        assert result["data"]["error"] == "No files uploaded"

    def test_rotate_uses_original_name(self, sample_pdf, output_folder):
        result = process_tool(
            "rotate-pdf",
            [sample_pdf],
            output_folder,
            {"rotation_angle": "180"},
            original_names=["contract.pdf"],
        )

        assert result["type"] == "file"
        assert result["download_name"] == "contract_rotated.pdf"
        assert result["mimetype"] == "application/pdf"

    def test_merge_multiple(self, tmp_path, output_folder):
        a = write_pdf(tmp_path / "a.pdf", pages=1)
        b = write_pdf(tmp_path / "b.pdf", pages=2)

        result = process_tool("merge-pdf", [a, b], output_folder, {})
        assert result["download_name"] == "merged.pdf"

    def test_split_invalid_range(self, sample_pdf, output_folder):
        result = process_tool(
            "split-pdf", [sample_pdf], output_folder, {"split_mode": "ranges", "ranges": "3-1"}
        )

        assert result["status_code"] == 400
        assert result["data"]["error"] == "Invalid range: 3-1"

    def test_metadata_inspect_then_update(self, sample_pdf, output_folder):
        inspect = process_tool("pdf-metadata-editor", [sample_pdf], output_folder, {})
        update = process_tool(
            "pdf-metadata-editor", [sample_pdf], output_folder, {"title": "New title"}
        )

        assert inspect["type"] == "json"
        assert inspect["data"]["page_count"] == 3
        assert update["type"] == "file"

    def test_split_unknown_mode(self, sample_pdf, output_folder):
        result = process_tool("split-pdf", [sample_pdf], output_folder, {"split_mode": "odd"})
        assert result["status_code"] == 400

    @pytest.mark.parametrize(
        "slug", ["extract-text", "pdf-metadata-editor", "pdf-to-jpg", "pdf-to-word"]
    )
    def test_locked_pdf_gives_400(self, sample_pdf, output_folder, slug):
        locked = process_tool(
            "protect-pdf", [sample_pdf], output_folder, {"password": "secret123"}
        )["path"]

        result = process_tool(slug, [locked], output_folder, {})

        assert result["status_code"] == 400
        assert result["data"]["error"] == "This PDF is password protected. Unlock it first."

    def test_form_filler_lists_fields(self, sample_pdf, output_folder):
        result = process_tool("pdf-form-filler", [sample_pdf], output_folder, {})
        assert result["data"] == {"fields": []}

    def test_form_filler_rejects_bad_json(self, sample_pdf, output_folder):
        result = process_tool(
            "pdf-form-filler", [sample_pdf], output_folder, {"fields": json.dumps([1, 2])}
        )
        assert result["status_code"] == 400

    def test_image_info(self, sample_image, output_folder):
        result = process_tool("image-info", [sample_image], output_folder, {}, ["photo.png"])

        assert result["type"] == "json"
        assert result["data"]["name"] == "photo.png"

    def test_cropper_needs_area(self, sample_image, output_folder):
        result = process_tool("image-cropper", [sample_image], output_folder, {"x": "5"})
        assert result["status_code"] == 400

    def test_audio_converter(self, sample_wav, output_folder):
        result = process_tool(
            "audio-converter", [sample_wav], output_folder, {"channels": "1"}, ["voice.wav"]
        )

        assert result["type"] == "file"
        assert result["download_name"] == "voice.wav"

    def test_corrupt_input_gives_500(self, tmp_path, output_folder):
        bogus = tmp_path / "broken.pdf"
        bogus.write_bytes(b"not a pdf at all")

        result = process_tool("extract-text", [str(bogus)], output_folder, {})

        assert result["type"] == "error"
        assert result["status_code"] == 500
