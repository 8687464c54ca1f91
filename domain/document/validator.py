"""
재구성 문서 구조 검증

번역/병합 후 문서가 커밋 가능한 구조인지 확인합니다.
- 코드 펜스(```, ~~~) 짝
- 수식 블록($$) 짝
- '#' 뒤에 공백이 없는 헤딩 ('##Title')
"""

import re
from typing import List

from .errors import ValidationError
from .section_parser import FENCE_PATTERN, split_front_matter

_MISSING_SPACE_HEADING = re.compile(r'^#{2,6}[^#\s]')


def find_structure_issues(text: str) -> List[str]:
    """구조 문제 목록 (문제가 없으면 빈 리스트)"""
    issues: List[str] = []
    _, body = split_front_matter(text)

    fence = None
    fence_line = 0
    math_line = 0
    in_math = False

    for lineno, line in enumerate(body.splitlines(), start=1):
        if fence is not None:
            stripped = line.strip()
            char, length = fence
            if len(stripped) >= length and stripped == char * len(stripped):
                fence = None
            continue

        if in_math:
            if line.count("$$") % 2 == 1:
                in_math = False
            continue

        match = FENCE_PATTERN.match(line)
        if match:
            marker = match.group(1)
            fence = (marker[0], len(marker))
            fence_line = lineno
            continue

        if line.strip().startswith("$$") and line.count("$$") % 2 == 1:
            in_math = True
            math_line = lineno
            continue

        if _MISSING_SPACE_HEADING.match(line):
            issues.append(f"Heading without space after '#' at line {lineno}: {line.strip()[:40]}")

    if fence is not None:
        issues.append(f"Unclosed code fence opened at line {fence_line}")
    if in_math:
        issues.append(f"Unclosed math block opened at line {math_line}")
    return issues


def validate_document(text: str, filename: str = "<document>") -> None:
    """구조 문제가 있으면 ValidationError"""
    issues = find_structure_issues(text)
    if issues:
        raise ValidationError(f"{filename}: " + "; ".join(issues))
