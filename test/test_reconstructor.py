"""
Tests for translated document reconstruction
"""
import logging

import pytest

from domain.document.change_detector import detect_changes
from domain.document.errors import FileError, MatchError, TranslationError, ValidationError
from domain.document.heading_map import extract
from domain.document.reconstructor import reconstruct
from domain.document.section_parser import parse, section_keys, split_front_matter


def _run(old_source, new_source, target, translations=None):
    changes = detect_changes(parse(old_source), parse(new_source))
    return reconstruct(target, changes, (translations or {}).get, extract(target), filename="lecture.md")


def _body(document):
    return split_front_matter(document)[1]


class TestScenarios:
    """End-to-end reconstruction scenarios."""

    def test_changed_section_is_retranslated_and_others_copied(self, old_source, target_document):
        new_source = old_source.replace("Beta text.", "Beta text, revised.")

        result = _run(old_source, new_source, target_document, {
            "beta": "## 贝塔（修订）\n\n贝塔文本，已修订。\n",
        })

        assert _body(result.document) == (
            "# 讲座标题\n\n介绍段落。\n\n"
            "## 阿尔法\n\n阿尔法文本。\n\n### 阿尔法细节\n\n细节文本。\n\n"
            "## 贝塔（修订）\n\n贝塔文本，已修订。\n"
        )
        assert result.heading_map["beta"] == "贝塔（修订）"
        assert result.heading_map["alpha"] == "阿尔法"
        assert dict(extract(result.document)) == dict(result.heading_map)

    def test_appended_section_is_translated_at_end(self, old_source, target_document):
        new_source = old_source + "\n## Gamma\n\nGamma text.\n"

        result = _run(old_source, new_source, target_document, {
            "gamma": "## 伽马\n\n伽马文本。\n",
        })

        assert _body(result.document).endswith("## 贝塔\n\n贝塔文本。\n\n## 伽马\n\n伽马文本。\n")
        assert list(result.heading_map) == ["alpha", "alpha::alpha-details", "beta", "gamma"]
        assert result.heading_map["gamma"] == "伽马"

    def test_removed_section_is_dropped(self, old_source, target_document):
        new_source = "# Lecture Title\n\nIntro paragraph.\n\n## Beta\n\nBeta text.\n"

        result = _run(old_source, new_source, target_document)

        assert _body(result.document) == "# 讲座标题\n\n介绍段落。\n\n## 贝塔\n\n贝塔文本。\n"
        assert dict(result.heading_map) == {"beta": "贝塔"}

    def test_missing_translation_fails_the_document(self, old_source, target_document):
        new_source = old_source.replace("Beta text.", "Beta text, revised.")

        with pytest.raises(FileError) as exc_info:
            _run(old_source, new_source, target_document, {})

        assert exc_info.value.filename == "lecture.md"
        assert isinstance(exc_info.value.cause, TranslationError)
        assert exc_info.value.cause.key == "beta"

    def test_blank_translation_fails_the_document(self, old_source, target_document):
        new_source = old_source.replace("Beta text.", "Beta text, revised.")

        with pytest.raises(FileError):
            _run(old_source, new_source, target_document, {"beta": "  \n"})


class TestProperties:
    """Structural guarantees of reconstruction."""

    def test_unchanged_source_returns_target_unchanged(self, old_source, target_document):
        result = _run(old_source, old_source, target_document)

        assert result.document == target_document
        assert dict(result.heading_map) == dict(extract(target_document))

    def test_subsection_edit_does_not_duplicate_headings(self, old_source, target_document):
        new_source = old_source.replace("Details text.", "Details text, revised.")

        result = _run(old_source, new_source, target_document, {
            "alpha::alpha-details": "### 阿尔法细节\n\n细节文本，已修订。\n",
        })

        body = _body(result.document)
        assert body.count("### 阿尔法细节") == 1
        assert body.count("## 阿尔法\n") == 1
        assert "阿尔法文本。" in body
        assert "细节文本，已修订。" in body

    def test_parent_translation_with_child_heading_does_not_duplicate(self, old_source, target_document):
        new_source = old_source.replace("Alpha text.", "Alpha text, revised.")

        result = _run(old_source, new_source, target_document, {
            "alpha": "## 阿尔法\n\n阿尔法文本，已修订。\n\n### 阿尔法细节\n\n细节文本。\n",
        })

        body = _body(result.document)
        assert body.count("### 阿尔法细节") == 1
        assert "阿尔法文本，已修订。" in body

    def test_heading_map_keys_match_new_source(self, old_source, target_document):
        new_source = (
            "# Lecture Title\n\nIntro paragraph.\n\n"
            "## Beta\n\nBeta text.\n\n### Beta Notes\n\nNotes.\n\n## Delta\n\nDelta text.\n"
        )

        result = _run(old_source, new_source, target_document, {
            "beta": "## 贝塔\n\n贝塔文本。\n",
            "beta::beta-notes": "### 贝塔注释\n\n注释。\n",
            "delta": "## 德尔塔\n\n德尔塔文本。\n",
        })

        assert list(result.heading_map) == section_keys(parse(new_source))

    def test_output_follows_new_source_order(self, old_source, target_document):
        new_source = (
            "# Lecture Title\n\nIntro paragraph.\n\n## Beta\n\nBeta text.\n\n"
            "## Alpha\n\nAlpha text.\n\n### Alpha Details\n\nDetails text.\n"
        )

        result = _run(old_source, new_source, target_document)

        body = _body(result.document)
        assert body.index("## 贝塔") < body.index("## 阿尔法")
        assert list(result.heading_map) == ["beta", "alpha", "alpha::alpha-details"]

    def test_unchanged_source_adds_missing_heading_map_once(self):
        source = "## Alpha\n\nA.\n\n## Beta\n\nB.\n"
        target = "## AA\n\nA zh.\n\n## BB\n\nB zh.\n"

        result = _run(source, source, target)

        assert result.document == "---\nheading-map:\n  alpha: AA\n  beta: BB\n---\n" + target
        assert dict(result.heading_map) == {"alpha": "AA", "beta": "BB"}

        again = _run(source, source, result.document)
        assert again.document == result.document

    def test_fenced_hash_lines_survive_unchanged(self):
        source = "## A\n\n```python\n# comment\n## not a heading\n```\n"
        target = "---\nheading-map:\n  a: 甲\n---\n## 甲\n\n```python\n# comment\n## not a heading\n```\n"

        result = _run(source, source, target)

        assert result.document == target


class TestMatching:
    """Locating existing translations."""

    def test_falls_back_to_position_without_heading_map(self, caplog):
        old_source = "## A\n\na\n\n## B\n\nb\n"
        new_source = "## A\n\na\n\n## B\n\nb2\n"
        target = "## 甲\n\n甲文。\n\n## 乙\n\n乙文。\n"

        with caplog.at_level(logging.WARNING):
            result = _run(old_source, new_source, target, {"b": "## 乙\n\n乙文二。\n"})

        assert _body(result.document) == "## 甲\n\n甲文。\n\n## 乙\n\n乙文二。\n"
        assert dict(result.heading_map) == {"a": "甲", "b": "乙"}
        assert "matched by position" in caplog.text

    def test_unmatched_unchanged_section_fails(self):
        old_source = "## A\n\na\n\n## B\n\nb\n"
        target = "## 甲\n\n甲文。\n"

        with pytest.raises(FileError) as exc_info:
            _run(old_source, old_source.replace("a\n\n## B", "a2\n\n## B"), target, {"a": "## 甲\n\n甲文二。\n"})

        assert isinstance(exc_info.value.cause, MatchError)
        assert exc_info.value.cause.key == "b"

    def test_target_only_sections_are_dropped(self):
        source = "## A\n\na\n"
        new_source = "## A\n\na2\n"
        target = "---\nheading-map:\n  a: 甲\n---\n## 甲\n\n甲文。\n\n## 附录\n\n额外。\n"

        result = _run(source, new_source, target, {"a": "## 甲\n\n甲文二。\n"})

        assert "附录" not in result.document


class TestTranslatedTextHandling:
    """Normalizing what the translator returns."""

    def test_added_translation_without_heading_reuses_source_heading(self):
        result = _run("## A\n\na\n", "## A\n\na\n\n## Gamma\n\ng\n",
                      "---\nheading-map:\n  a: 甲\n---\n## 甲\n\n甲文。\n",
                      {"gamma": "伽马文本。\n"})

        assert _body(result.document).endswith("## Gamma\n伽马文本。\n")
        assert result.heading_map["gamma"] == "Gamma"

    def test_added_translation_is_releveled(self):
        result = _run("## A\n\na\n", "## A\n\na\n\n### Sub\n\ns\n",
                      "---\nheading-map:\n  a: 甲\n---\n## 甲\n\n甲文。\n",
                      {"a::sub": "## 子节\n\n子文。\n"})

        assert "### 子节\n" in result.document
        assert result.heading_map["a::sub"] == "子节"

    def test_changed_preamble_is_replaced(self, old_source, target_document):
        new_source = old_source.replace("Intro paragraph.", "Intro paragraph, revised.")

        result = _run(old_source, new_source, target_document, {
            "_preamble": "# 讲座标题\n\n介绍段落，已修订。\n",
        })

        assert _body(result.document).startswith("# 讲座标题\n\n介绍段落，已修订。\n\n## 阿尔法\n")
        assert "_preamble" not in result.heading_map

    def test_broken_translation_fails_validation(self, old_source, target_document):
        new_source = old_source.replace("Beta text.", "Beta text, revised.")

        with pytest.raises(FileError) as exc_info:
            _run(old_source, new_source, target_document, {"beta": "## 贝塔\n\n```python\nx = 1\n"})

        assert isinstance(exc_info.value.cause, ValidationError)
