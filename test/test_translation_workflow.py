"""
Tests for the per-document translation workflow
"""
import pytest

from conftest import FakeTranslator
from domain.document.errors import FileError, TranslationError
from domain.document.heading_map import extract
from domain.langgraph.translation_workflow import TranslationWorkflow


class TestProcess:
    """Test section-based updates of an existing translation."""

    def test_unchanged_source_skips_translation(self, old_source, target_document):
        translator = FakeTranslator()
        workflow = TranslationWorkflow(translator=translator)

        result = workflow.process(old_source, old_source, target_document, "lecture.md")

        assert result == target_document
        assert translator.calls == []

    def test_only_changed_section_is_sent_for_update(self, old_source, target_document):
        translator = FakeTranslator({"beta": "## 贝塔\n\n贝塔文本，已修订。\n"})
        workflow = TranslationWorkflow(translator=translator)
        new_source = old_source.replace("Beta text.", "Beta text, revised.")

        result = workflow.process(old_source, new_source, target_document, "lecture.md")

        assert [(c["mode"], c["key"]) for c in translator.calls] == [("update", "beta")]
        assert translator.calls[0]["text"] == "## Beta\n\nBeta text, revised.\n"
        assert result.endswith("## 贝塔\n\n贝塔文本，已修订。\n")
        assert "阿尔法文本。" in result

    def test_added_subtree_is_translated_once(self, old_source, target_document):
        translator = FakeTranslator({
            "gamma": "## 伽马\n\n伽马文本。\n\n### 伽马一\n\n一。\n",
        })
        workflow = TranslationWorkflow(translator=translator)
        new_source = old_source + "\n## Gamma\n\nGamma text.\n\n### Gamma One\n\nOne.\n"

        result = workflow.process(old_source, new_source, target_document, "lecture.md")

        assert [(c["mode"], c["key"]) for c in translator.calls] == [("new", "gamma")]
        assert dict(extract(result))["gamma::gamma-one"] == "伽马一"

    def test_translation_failure_raises_file_error(self, old_source, target_document):
        translator = FakeTranslator(fail_keys=["beta"])
        workflow = TranslationWorkflow(translator=translator)
        new_source = old_source.replace("Beta text.", "Beta text, revised.")

        with pytest.raises(FileError) as exc_info:
            workflow.process(old_source, new_source, target_document, "lecture.md")

        assert exc_info.value.filename == "lecture.md"
        assert isinstance(exc_info.value.cause, TranslationError)

    def test_missing_current_translation_falls_back_to_new(self):
        translator = FakeTranslator({"b": "## 乙\n\n乙文二。\n"})
        workflow = TranslationWorkflow(translator=translator)

        result = workflow.process(
            "## A\n\na\n\n## B\n\nb\n",
            "## A\n\na\n\n## B\n\nb2\n",
            "## 甲\n\n甲文。\n\n## 乙\n\n乙文。\n",
            "plain.md",
        )

        assert [(c["mode"], c["key"]) for c in translator.calls] == [("new", "b")]
        assert result.endswith("## 乙\n\n乙文二。\n")

    def test_run_reports_change_summary(self, old_source, target_document):
        workflow = TranslationWorkflow(translator=FakeTranslator({"beta": "## 贝塔\n\n新。\n"}))
        new_source = old_source.replace("Beta text.", "Beta text, revised.")

        state = workflow.run(old_source, new_source, target_document, "lecture.md")

        assert state["status"] == "completed"
        assert state["change_summary"]["changed"] == 1
        assert state["translations"] == {"beta": "## 贝塔\n\n新。\n"}

    def test_mock_translator_end_to_end(self, old_source, target_document):
        workflow = TranslationWorkflow(use_mock=True)
        new_source = old_source.replace("Beta text.", "Beta text, revised.")

        result = workflow.process(old_source, new_source, target_document, "lecture.md",
                                  target_language="zh-cn")

        assert "## [zh-cn] Beta" in result
        assert dict(extract(result))["beta"] == "[zh-cn] Beta"


class TestTranslateNewFile:
    """Test full translation of files without a translation."""

    def test_front_matter_kept_and_heading_map_built(self):
        translator = FakeTranslator({"new.md": "# 标题\n\n## 甲\n\n文本\n"})
        workflow = TranslationWorkflow(translator=translator)

        result = workflow.translate_new_file("---\ntitle: x\n---\n# Title\n\n## A\n\ntext\n", "new.md")

        assert result.startswith("---\ntitle: x\nheading-map:\n")
        assert result.endswith("---\n# 标题\n\n## 甲\n\n文本\n")
        assert dict(extract(result)) == {"a": "甲"}
        assert translator.calls[0]["text"] == "# Title\n\n## A\n\ntext\n"

    def test_failure_raises_file_error(self):
        workflow = TranslationWorkflow(translator=FakeTranslator(fail_keys=["new.md"]))

        with pytest.raises(FileError):
            workflow.translate_new_file("## A\n", "new.md")
