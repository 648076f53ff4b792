from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, field_validator

BLANK_MARKER = "____"

Difficulty = Literal["Beginner", "Intermediate", "Advanced"]
ContentKind = Literal["drill", "code", "note"]


class WorkoutMode(str, Enum):
    CRAWL = "Crawl"
    WALK = "Walk"
    RUN = "Run"


class TheoryBlock(BaseModel):
    type: Literal["theory"] = "theory"
    value: str


class CodeBlock(BaseModel):
    type: Literal["code"] = "code"
    value: str
    language: str = "python"
    solution: list[str] = Field(default_factory=list)
    blanks: int | None = None

    @field_validator("solution", mode="before")
    @classmethod
    def _stringify_solution(cls, value: Any) -> Any:
        if isinstance(value, list):
            return [item if isinstance(item, str) else str(item) for item in value]
        return value

    @property
    def blank_count(self) -> int:
        return self.value.count(BLANK_MARKER)


class McqBlock(BaseModel):
    type: Literal["mcq"] = "mcq"
    value: str
    choices: list[str]
    answer: int


DrillBlock = Annotated[Union[TheoryBlock, CodeBlock, McqBlock], Field(discriminator="type")]


class DrillCreateRequest(BaseModel):
    userId: str = Field(min_length=1)
    title: str = Field(min_length=1)
    concept: str = ""
    difficulty: Difficulty = "Beginner"
    description: str = ""
    language: str = "python"
    content: list[DrillBlock] = Field(default_factory=list)


class Drill(DrillCreateRequest):
    id: str
    createdAt: datetime


class CodeSnippetCreateRequest(BaseModel):
    userId: str = Field(min_length=1)
    title: str = Field(min_length=1)
    language: str = "python"
    code: str


class CodeSnippet(CodeSnippetCreateRequest):
    id: str
    createdAt: datetime


class NoteCreateRequest(BaseModel):
    userId: str = Field(min_length=1)
    title: str = Field(min_length=1)
    body: str = ""
    drillId: str | None = None


class Note(NoteCreateRequest):
    id: str
    createdAt: datetime
