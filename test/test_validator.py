"""
Tests for reconstructed document validation
"""
import pytest

from domain.document.errors import ValidationError
from domain.document.validator import find_structure_issues, validate_document


class TestStructureIssues:
    """Test structure checks."""

    def test_clean_document_has_no_issues(self, target_document):
        assert find_structure_issues(target_document) == []

    def test_unclosed_code_fence(self):
        issues = find_structure_issues("## A\n\n```python\nx = 1\n")

        assert len(issues) == 1
        assert "Unclosed code fence" in issues[0]

    def test_unclosed_math_block(self):
        issues = find_structure_issues("## A\n\n$$\nx = 1\n")

        assert any("Unclosed math block" in issue for issue in issues)

    def test_heading_without_space(self):
        issues = find_structure_issues("## A\n\n##B\n")

        assert any("Heading without space" in issue for issue in issues)

    def test_hash_lines_inside_fence_are_ignored(self):
        assert find_structure_issues("```\n##notaheading\n```\n") == []


class TestValidateDocument:
    """Test validation errors."""

    def test_raises_with_filename(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_document("```\n", "lecture.md")

        assert str(exc_info.value).startswith("lecture.md: ")

    def test_valid_document_passes(self):
        validate_document("## A\n\ntext\n")
