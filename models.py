# slide_deck_service/models.py
from datetime import datetime, timezone
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Slide(BaseModel):
    """A single slide. Content is always held as a list of lines."""
    title: str = ""
    content: List[str] = Field(default_factory=list)
    # False when the slide arrived with a plain string body; renderers then
    # draw it as one text block instead of bullets.
    bulleted: bool = True

    @model_validator(mode="before")
    @classmethod
    def normalize_content(cls, data):
        if not isinstance(data, dict):
            return data
        data = dict(data)
        content = data.get("content")
        if content is None:
            data["content"] = []
        elif isinstance(content, str):
            data["content"] = [line for line in content.splitlines() if line.strip()]
            data.setdefault("bulleted", False)
        elif isinstance(content, list):
            data["content"] = [str(item) for item in content if str(item).strip()]
        return data


class Presentation(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str = ""
    theme: str = ""
    slides: List[Slide]
    created_at: datetime = Field(default_factory=_utcnow, alias="createdAt")

    @field_validator("slides")
    @classmethod
    def at_least_one_slide(cls, slides):
        if not slides:
            raise ValueError("a presentation needs at least one slide")
        return slides

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


# --- Generation results ---
class _Result(BaseModel):
    presentation: Optional[Presentation] = None
    slide: Optional[Slide] = None

    @model_validator(mode="after")
    def exactly_one_payload(self):
        if (self.presentation is None) == (self.slide is None):
            raise ValueError("a result carries either a presentation or a slide")
        return self


class Ok(_Result):
    kind: Literal["ok"] = "ok"


class Fallback(_Result):
    kind: Literal["fallback"] = "fallback"
    reason: str = ""


GenerationResult = Union[Ok, Fallback]


# --- Export results ---
class ExportResult(BaseModel):
    success: bool
    filename: str
    filepath: str
    size: int


class ExportedFile(BaseModel):
    filepath: str
    content: bytes
    size: int


# --- API payloads ---
# Fields are optional so the routes can answer missing values with a 400.
class GeneratePayload(BaseModel):
    theme: Optional[str] = None
    slidesCount: Optional[int] = None


class GenerateSlidePayload(BaseModel):
    title: Optional[str] = None
    context: Optional[str] = None


class ExportPayload(BaseModel):
    presentation: Optional[Presentation] = None
    format: Optional[str] = None
