"""
Slide deck editing.

Every operation takes an EditorState and returns a new one; the input state is
never mutated. A state with no presentation is the "nothing loaded" state and
has active_index == -1. Once loaded, active_index always points at a slide.
"""
import logging
from pathlib import Path
from typing import Optional, Union

from pydantic import BaseModel, ValidationError

import config
from models import Presentation, Slide

DEFAULT_SLIDE_CONTENT = ["Main point", "Important details"]


class EditorError(Exception):
    """User-facing refusal of an editing operation."""


class NoPresentationLoadedError(EditorError):
    pass


class LastSlideError(EditorError):
    pass


class EditorState(BaseModel):
    presentation: Optional[Presentation] = None
    active_index: int = -1
    title_field: str = ""
    content_field: str = ""

    @property
    def loaded(self) -> bool:
        return self.presentation is not None

    @property
    def active_slide(self) -> Optional[Slide]:
        if self.presentation is None or self.active_index < 0:
            return None
        return self.presentation.slides[self.active_index]


def _editable(state: EditorState) -> EditorState:
    if not state.loaded:
        raise NoPresentationLoadedError("No presentation is loaded.")
    return state.model_copy(deep=True)


def _select(state: EditorState, index: int) -> EditorState:
    # Mutates a state that is already a private copy
    slide = state.presentation.slides[index]
    state.active_index = index
    state.title_field = slide.title
    state.content_field = "\n".join(slide.content)
    return state


def new_presentation() -> Presentation:
    """The default one-slide document an empty editor starts from."""
    return Presentation(
        title="New Presentation",
        theme="General Theme",
        slides=[Slide(title="Presentation Title", content=["Subtitle or description", "Additional information"])],
    )


def load_presentation(presentation: Presentation) -> EditorState:
    """Resets the editor to `presentation` with its first slide selected."""
    state = EditorState(presentation=presentation.model_copy(deep=True))
    return _select(state, 0)


def select_slide(state: EditorState, index: int) -> EditorState:
    if not state.loaded:
        raise NoPresentationLoadedError("No presentation is loaded.")
    if index < 0 or index >= len(state.presentation.slides):
        return state
    return _select(_editable(state), index)


def update_active_slide(state: EditorState, title: str, content_text: str) -> EditorState:
    """Rewrites the active slide; content becomes the trimmed non-empty lines."""
    state = _editable(state)
    if state.active_index < 0:
        return state
    lines = [line.strip() for line in content_text.splitlines() if line.strip()]
    state.presentation.slides[state.active_index] = Slide(title=title, content=lines, bulleted=True)
    return _select(state, state.active_index)


def update_presentation_title(state: EditorState, title: str) -> EditorState:
    state = _editable(state)
    state.presentation.title = title
    return state


def add_slide(state: EditorState) -> EditorState:
    state = _editable(state)
    slides = state.presentation.slides
    slides.append(Slide(title=f"New Slide {len(slides) + 1}", content=list(DEFAULT_SLIDE_CONTENT)))
    return _select(state, len(slides) - 1)


def duplicate_slide(state: EditorState, index: int) -> EditorState:
    """Inserts a copy right after `index` and selects it."""
    state = _editable(state)
    slides = state.presentation.slides
    if index < 0 or index >= len(slides):
        return state
    original = slides[index]
    copy = Slide(title=f"{original.title} (Copy)", content=list(original.content), bulleted=original.bulleted)
    slides.insert(index + 1, copy)
    return _select(state, index + 1)


def delete_slide(state: EditorState, index: int) -> EditorState:
    state = _editable(state)
    slides = state.presentation.slides
    if len(slides) <= 1:
        raise LastSlideError("Cannot delete the last slide.")
    if index < 0 or index >= len(slides):
        return state
    del slides[index]
    return _select(state, min(index, len(slides) - 1))


def reorder_slide(state: EditorState, old_index: int, new_index: int) -> EditorState:
    """Moves one slide and keeps the active pointer on the slide being edited."""
    state = _editable(state)
    slides = state.presentation.slides
    count = len(slides)
    if old_index == new_index or not (0 <= old_index < count and 0 <= new_index < count):
        return state

    slides.insert(new_index, slides.pop(old_index))

    active = state.active_index
    if active == old_index:
        active = new_index
    elif old_index < active <= new_index:
        active -= 1
    elif new_index <= active < old_index:
        active += 1
    return _select(state, active)


def apply_generated_slide(state: EditorState, slide: Slide) -> EditorState:
    """Writes AI-generated content into the active slide."""
    if state.active_slide is None:
        raise EditorError("Select a slide to edit.")
    return update_active_slide(state, slide.title, "\n".join(slide.content))


class SnapshotStore:
    """Keeps one presentation snapshot on disk, overwritten on every save."""

    def __init__(self, directory: Union[str, Path] = config.STORAGE_DIR, key: str = "current_presentation"):
        self.directory = Path(directory)
        self.path = self.directory / f"{key}.json"

    def save(self, presentation: Presentation) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        self.path.write_text(presentation.model_dump_json(by_alias=True), encoding="utf-8")
        logging.debug(f"Saved presentation snapshot to {self.path}")

    def load(self) -> Optional[Presentation]:
        if not self.path.exists():
            return None
        try:
            return Presentation.model_validate_json(self.path.read_text(encoding="utf-8"))
        except (OSError, ValidationError) as e:
            logging.error(f"Failed to load presentation snapshot {self.path}: {e}", exc_info=True)
            return None

    def open_session(self) -> EditorState:
        """Loads the stored snapshot, or a fresh default presentation."""
        presentation = self.load()
        return load_presentation(presentation if presentation is not None else new_presentation())
