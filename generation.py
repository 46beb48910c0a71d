import json
import logging
import re
from typing import Any, Dict, Optional

from google import genai
from google.auth import default
from google.genai import types
from pydantic import ValidationError

import config
from fallback import build_fallback_presentation, build_fallback_slide
from models import Fallback, GenerationResult, Ok, Presentation, Slide

PRESENTATION_SYSTEM_PROMPT = (
    "You are an expert in creating professional presentations. "
    "Create structured, informative and engaging presentations."
)
SLIDE_SYSTEM_PROMPT = "You are an expert in writing content for presentation slides."

_CODE_FENCE = re.compile(r"```(?:json)?\n?")


def create_presentation_prompt(theme: str, slides_count: int) -> str:
    return f"""
Create a professional presentation about "{theme}" with exactly {slides_count} slides.

Structure the answer using the following JSON format:
{{
    "title": "Presentation Title",
    "slides": [
        {{
            "title": "Slide Title",
            "content": ["Point 1", "Point 2", "Point 3"]
        }}
    ]
}}

Guidelines:
1. The first slide must be an introduction/title slide
2. The last slide must be a conclusion
3. Each slide must have 2-5 main points
4. Use clear, professional language
5. Keep the content relevant and informative
6. Include data and insights where appropriate

Theme: {theme}
Number of slides: {slides_count}

Reply ONLY with valid JSON, without any additional text.
"""


def create_slide_prompt(title: str, context: Optional[str]) -> str:
    return f"""
Create detailed content for a slide titled "{title}" in the context of "{context or ''}".

Return JSON in the format:
{{
    "title": "{title}",
    "content": ["Point 1", "Point 2", "Point 3", "Point 4"]
}}

The content must be:
- Informative and relevant
- Well structured
- Professional
- Between 3 and 5 main points

Reply ONLY with valid JSON.
"""


def extract_json(raw_text: str) -> Any:
    """Parses a JSON value out of an LLM reply, tolerating code fences and chatter."""
    cleaned = _CODE_FENCE.sub("", raw_text.strip()).strip()
    logging.debug(f"Cleaned LLM output: {cleaned}")
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError:
        # Fall back to the outermost {...} block
        first_brace = cleaned.find("{")
        last_brace = cleaned.rfind("}")
        if first_brace == -1 or last_brace == -1 or first_brace >= last_brace:
            raise ValueError("Could not find a valid JSON object in the LLM response.")
        return json.loads(cleaned[first_brace:last_brace + 1])


def parse_presentation(raw_text: str, theme: str) -> Presentation:
    data = extract_json(raw_text)
    if not isinstance(data, dict) or not isinstance(data.get("slides"), list):
        raise ValueError("Invalid response format: 'slides' must be a list.")
    return Presentation(title=data.get("title") or theme, theme=theme, slides=data["slides"])


def parse_slide(raw_text: str, title: str) -> Slide:
    data = extract_json(raw_text)
    if not isinstance(data, dict):
        raise ValueError("Invalid response format: expected a JSON object.")
    slide = Slide(title=data.get("title") or title, content=data.get("content"))
    if not slide.content:
        raise ValueError("Invalid response format: slide has no content.")
    return slide


class PresentationGenerator:
    """Generates presentation content with Gemini, falling back to placeholder decks."""

    def __init__(self, client: Optional[genai.Client] = None, model_name: str = config.GEMINI_MODEL):
        self._client = client
        self.model_name = model_name

    def _get_client(self) -> genai.Client:
        if self._client is None:
            logging.info(
                f"Initializing Vertex AI for project '{config.GOOGLE_CLOUD_PROJECT}' "
                f"in '{config.GOOGLE_CLOUD_LOCATION}'..."
            )
            # Explicitly request the cloud-platform scope to call Vertex AI
            credentials, _ = default(scopes=["https://www.googleapis.com/auth/cloud-platform"])
            self._client = genai.Client(
                vertexai=True,
                project=config.GOOGLE_CLOUD_PROJECT,
                location=config.GOOGLE_CLOUD_LOCATION,
                credentials=credentials,
            )
        return self._client

    def call_model(self, prompt: str, system_instruction: str) -> str:
        response = self._get_client().models.generate_content(
            model=self.model_name,
            contents=prompt,
            config=types.GenerateContentConfig(
                system_instruction=system_instruction,
                temperature=0.7,
            ),
        )
        if not response.text:
            raise ValueError("LLM returned an empty response.")
        logging.debug(f"Received raw response from LLM: {response.text}")
        return response.text

    def generate(self, theme: str, slides_count: int) -> GenerationResult:
        """Returns Ok with the generated deck, or Fallback with a synthesized one. Never raises."""
        logging.info(f"Calling LLM to generate a {slides_count}-slide presentation about '{theme}'...")
        try:
            raw_text = self.call_model(create_presentation_prompt(theme, slides_count), PRESENTATION_SYSTEM_PROMPT)
        except Exception as e:
            logging.error(f"LLM call failed: {e}", exc_info=True)
            return Fallback(
                presentation=build_fallback_presentation(theme, slides_count),
                reason=f"LLM call failed: {e}",
            )

        try:
            presentation = parse_presentation(raw_text, theme)
        except (ValueError, ValidationError) as e:
            logging.error(f"Failed to parse or validate JSON from LLM response: {e}", exc_info=True)
            return Fallback(
                presentation=build_fallback_presentation(theme, slides_count),
                reason=f"Invalid LLM response: {e}",
            )

        if len(presentation.slides) != slides_count:
            logging.warning(
                f"LLM returned {len(presentation.slides)} slides, {slides_count} were requested."
            )
        return Ok(presentation=presentation)

    def generate_slide(self, title: str, context: Optional[str]) -> GenerationResult:
        """Same discipline as generate(), for a single slide."""
        logging.info(f"Calling LLM to generate content for slide '{title}'...")
        try:
            raw_text = self.call_model(create_slide_prompt(title, context), SLIDE_SYSTEM_PROMPT)
            return Ok(slide=parse_slide(raw_text, title))
        except Exception as e:
            logging.error(f"Failed to generate slide content: {e}", exc_info=True)
            return Fallback(slide=build_fallback_slide(title), reason=str(e))


def dump_result(result: GenerationResult) -> Dict[str, Any]:
    """Wire form used by the API routes."""
    payload: Dict[str, Any] = {"success": True, "fallback": result.kind == "fallback"}
    if result.presentation is not None:
        payload["presentation"] = result.presentation.to_wire()
    if result.slide is not None:
        payload["slide"] = result.slide.model_dump(mode="json")
    return payload
