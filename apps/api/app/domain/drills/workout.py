"""Acceptance rules for Crawl / Walk / Run variants of a drill.

Variants are produced by a generative model; these functions decide whether
a produced variant is acceptable. They never build one themselves.
"""

from collections.abc import Sequence
from typing import Any

from app.core.errors import DojoError, ErrorKind
from app.domain.drills.models import WorkoutMode
from app.domain.drills.validation import (
    block_as_dict,
    code_block_count,
    total_blanks,
    validate_drill_content,
)


def ensure_transformable(blocks: Sequence[Any], mode: WorkoutMode) -> None:
    """Reject sources whose blank count cannot move in the requested direction."""

    if mode is WorkoutMode.WALK:
        return
    if code_block_count(blocks) == 0:
        raise DojoError(
            ErrorKind.INVALID_INPUT,
            "workout_source_without_code",
            message="This drill has no code blocks to adjust.",
        )
    if mode is WorkoutMode.RUN and total_blanks(blocks) < 2:
        raise DojoError(
            ErrorKind.INVALID_INPUT,
            "workout_source_cannot_consolidate",
            message="Run mode needs a drill with at least two blanks.",
        )


def workout_contract_issues(
    source: Sequence[Any],
    variant: Any,
    mode: WorkoutMode,
) -> list[str]:
    issues = validate_drill_content(variant)
    if issues:
        return issues

    if mode is WorkoutMode.WALK:
        unchanged = [block_as_dict(b) for b in variant] == [block_as_dict(b) for b in source]
        return [] if unchanged else ["walk_variant_modified"]

    if code_block_count(variant) == 0:
        return ["variant_without_code"]

    before = total_blanks(source)
    after = total_blanks(variant)
    if mode is WorkoutMode.CRAWL and after <= before:
        issues.append(f"crawl_blanks_not_increased:{before}->{after}")
    if mode is WorkoutMode.RUN and after >= before:
        issues.append(f"run_blanks_not_decreased:{before}->{after}")
    return issues
