"""Tests for the tool registry."""

import pytest

from tools import (
    CATEGORIES,
    SLUG_TO_TOOL,
    TOOLS,
    get_featured_tools,
    get_tools_by_category,
    search_tools,
)


REQUIRED_FIELDS = (
    "slug", "title", "category", "icon", "desc", "keywords",
    "featured", "kind", "accepts", "multiple",
)


class TestRegistry:
    def test_every_tool_is_complete(self):
        for tool in TOOLS:
            for field in REQUIRED_FIELDS:
                assert field in tool, f"{tool['slug']} misses {field}"
            assert tool["category"] in CATEGORIES

    def test_slugs_are_unique(self):
        assert len(SLUG_TO_TOOL) == len(TOOLS)

    def test_file_tools_declare_upload_category(self):
        for tool in TOOLS:
            if tool["kind"] == "file":
                assert tool["accepts"] in ("pdf", "image", "audio", "document")
            else:
                assert tool["accepts"] is None

    def test_overrides_win_over_category_defaults(self):
        assert SLUG_TO_TOOL["merge-pdf"]["multiple"] is True
        assert SLUG_TO_TOOL["image-to-pdf"]["accepts"] == "image"
        assert SLUG_TO_TOOL["word-to-pdf"]["accepts"] == "document"

    def test_by_category(self):
        finance = get_tools_by_category("finance")
        assert "mortgage-calculator" in {t["slug"] for t in finance}
        assert all(t["kind"] == "form" for t in finance)

    def test_featured(self):
        featured = get_featured_tools()
        assert featured
        assert all(t["featured"] for t in featured)


class TestSearch:
    @pytest.mark.parametrize("query", ["", "p", " m "])
    def test_short_queries_return_nothing(self, query):
        assert search_tools(query) == []

    def test_matches_title(self):
        assert "merge-pdf" in {t["slug"] for t in search_tools("merge")}

    def test_matches_keywords_case_insensitive(self):
        assert "mortgage-calculator" in {t["slug"] for t in search_tools("HOME LOAN")}

    def test_matches_category(self):
        assert {t["slug"] for t in search_tools("audio")} >= {"audio-converter"}
