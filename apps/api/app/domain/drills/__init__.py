"""Drill content types, validation and workout-mode rules."""

from app.domain.drills.models import (
    BLANK_MARKER,
    CodeBlock,
    CodeSnippet,
    CodeSnippetCreateRequest,
    Drill,
    DrillCreateRequest,
    McqBlock,
    Note,
    NoteCreateRequest,
    TheoryBlock,
    WorkoutMode,
)
from app.domain.drills.review import next_review_date
from app.domain.drills.validation import (
    count_blanks,
    normalize_choice_text,
    normalize_drill_content,
    total_blanks,
    validate_code_block,
    validate_drill_content,
    validate_mcq,
)
from app.domain.drills.workout import ensure_transformable, workout_contract_issues

__all__ = [
    "BLANK_MARKER",
    "CodeBlock",
    "CodeSnippet",
    "CodeSnippetCreateRequest",
    "Drill",
    "DrillCreateRequest",
    "McqBlock",
    "Note",
    "NoteCreateRequest",
    "TheoryBlock",
    "WorkoutMode",
    "count_blanks",
    "ensure_transformable",
    "next_review_date",
    "normalize_choice_text",
    "normalize_drill_content",
    "total_blanks",
    "validate_code_block",
    "validate_drill_content",
    "validate_mcq",
    "workout_contract_issues",
]
