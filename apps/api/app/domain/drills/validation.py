"""Structural checks for drill content blocks.

Validators return a list of issue tokens (``item_2:mcq_answer_out_of_range``)
instead of raising, so callers can decide whether a problem is the learner's
input (reject) or a generation defect (retry).
"""

import re
from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import BaseModel

from app.domain.drills.models import BLANK_MARKER

BLOCK_TYPES = ("theory", "code", "mcq")

_LABELED_CHOICE = re.compile(r"^(?:choice|option)\s*[0-9A-Da-d]+(?:\s*[:.)-]\s*|\s+)(.+)$", re.IGNORECASE)
_NUMBERED_CHOICE = re.compile(r"^\s*(?:\(?[1-9]\)?[.)-]|[A-Da-d][.)-])\s*(.+)$")


def count_blanks(template: str) -> int:
    return str(template or "").count(BLANK_MARKER)


def block_as_dict(block: Any) -> dict[str, Any]:
    if isinstance(block, BaseModel):
        return block.model_dump()
    if isinstance(block, Mapping):
        return dict(block)
    return {}


def total_blanks(blocks: Sequence[Any]) -> int:
    total = 0
    for block in blocks:
        item = block_as_dict(block)
        if item.get("type") == "code":
            total += count_blanks(item.get("value", ""))
    return total


def code_block_count(blocks: Sequence[Any]) -> int:
    return sum(1 for block in blocks if block_as_dict(block).get("type") == "code")


def validate_code_block(template: str, solution: Any) -> list[str]:
    issues: list[str] = []
    blank_count = count_blanks(template)
    if blank_count == 0:
        issues.append("code_without_blanks")
    if not isinstance(solution, list):
        issues.append("solution_not_list")
    elif len(solution) != blank_count:
        issues.append("solution_count_mismatch")
    return issues


def validate_mcq(choices: Any, answer: Any) -> list[str]:
    issues: list[str] = []
    if not isinstance(choices, list):
        issues.append("mcq_choices_missing")
    elif len(choices) < 2:
        issues.append("mcq_choices_insufficient")

    if isinstance(answer, bool) or not isinstance(answer, int):
        issues.append("mcq_answer_not_integer")
    elif isinstance(choices, list) and not 0 <= answer < len(choices):
        issues.append("mcq_answer_out_of_range")
    return issues


def validate_drill_content(blocks: Any) -> list[str]:
    if not isinstance(blocks, list):
        return ["content_not_list"]
    if not blocks:
        return ["content_empty"]

    issues: list[str] = []
    for index, block in enumerate(blocks):
        item = block_as_dict(block)
        block_type = item.get("type")
        value = item.get("value")

        if block_type not in BLOCK_TYPES:
            issues.append(f"item_{index}:unknown_type")
            continue
        if not isinstance(value, str) or not value.strip():
            issues.append(f"item_{index}:empty_value")
            continue

        if block_type == "code":
            found = validate_code_block(value, item.get("solution"))
        elif block_type == "mcq":
            found = validate_mcq(item.get("choices"), item.get("answer"))
        else:
            found = []
        issues.extend(f"item_{index}:{issue}" for issue in found)
    return issues


def normalize_choice_text(value: Any) -> str:
    text = str(value or "").strip()
    if not text:
        return ""

    labeled = _LABELED_CHOICE.match(text)
    if labeled:
        return labeled.group(1).strip()

    numbered = _NUMBERED_CHOICE.match(text)
    if numbered:
        return numbered.group(1).strip()

    return text


def normalize_drill_content(blocks: Any, *, default_language: str = "python") -> list[dict[str, Any]]:
    """Fill non-semantic fields of generated blocks.

    Never invents solutions or answers: a block that is wrong stays wrong and
    is reported by :func:`validate_drill_content`.
    """
    if not isinstance(blocks, list):
        return []

    normalized: list[dict[str, Any]] = []
    for block in blocks:
        item = block_as_dict(block)
        if not item:
            continue
        item["type"] = str(item.get("type") or "").strip().lower()
        if isinstance(item.get("value"), str):
            item["value"] = item["value"].strip("\n")

        if item["type"] == "code":
            item["language"] = str(item.get("language") or default_language).strip().lower()
            if isinstance(item.get("solution"), list):
                item["solution"] = [s if isinstance(s, str) else str(s) for s in item["solution"]]
            item["blanks"] = count_blanks(item.get("value", ""))
        elif item["type"] == "mcq":
            if isinstance(item.get("choices"), list):
                item["choices"] = [normalize_choice_text(choice) for choice in item["choices"]]
            answer = item.get("answer")
            if isinstance(answer, str) and answer.strip().isdigit():
                item["answer"] = int(answer.strip())
        normalized.append(item)
    return normalized
