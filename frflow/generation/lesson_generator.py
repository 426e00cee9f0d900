"""
Lesson Generator.

Client for the content-generation providers (Gemini or OpenAI, chosen by the
user's settings). Produces Lesson objects the archive can merge.

Pipeline:
1. Fill the prompt for the topic and level (counts per CEFR level)
2. Gemini: request each section separately and merge;
   OpenAI: request the whole lesson at once
3. Parse the response (strict JSON, then a lenient pass)
4. Normalize into a Lesson with a fresh id and its group key

Any failure surfaces as GenerationError. The only retry is the Gemini
request being re-sent once with a reduced output-token ceiling.
"""

from __future__ import annotations

import json
import re
import uuid
from typing import TYPE_CHECKING, Any

import httpx
from loguru import logger
from pydantic import ValidationError

from frflow.core.exceptions import GenerationError
from frflow.core.models import CEFRLevel, Lesson, UserSettings, VocabEntry, make_group_id, now_ms

from .prompts import (
    COURSE_PROMPT,
    DICTIONARY_PROMPT,
    GEMINI_SECTIONS,
    SECTION_PROMPT,
    SYSTEM_PROMPT,
    fill,
    lesson_values,
)

if TYPE_CHECKING:
    from config import Settings

_TRAILING_COMMA = re.compile(r",\s*([}\]])")


# =============================================================================
# Response parsing
# =============================================================================


def extract_json(text: str) -> str:
    """Outermost {...} span of a response, or the text unchanged."""
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end == -1:
        return text
    return text[start:end + 1]


def parse_json_lenient(text: str) -> dict[str, Any]:
    """
    Parse a model response that is almost JSON.

    Strips surrounding prose, non-breaking spaces and trailing commas.

    Raises:
        GenerationError: if the text still is not a JSON object
    """
    cleaned = _TRAILING_COMMA.sub(r"\1", extract_json(text).replace("\u00a0", " "))
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise GenerationError("Lesson generation failed (JSON parse error), please retry") from e
    if not isinstance(data, dict):
        raise GenerationError("Lesson generation failed (response is not a JSON object)")
    return data


def parse_response(text: str) -> dict[str, Any]:
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        logger.warning("Provider returned invalid JSON, retrying with lenient parser")
        return parse_json_lenient(text)
    if not isinstance(data, dict):
        raise GenerationError("Lesson generation failed (response is not a JSON object)")
    return data


def _response_body(response: httpx.Response, provider: str) -> dict[str, Any]:
    """Decoded provider envelope; anything but a JSON object is a GenerationError."""
    try:
        data = response.json()
    except ValueError as e:
        raise GenerationError(f"{provider} HTTP {response.status_code}: {response.text[:300]}") from e
    if not isinstance(data, dict):
        raise GenerationError(f"{provider} returned an unexpected response ({type(data).__name__})")
    return data


def _error_message(error: Any) -> str:
    if isinstance(error, dict):
        return str(error.get("message") or error)
    return str(error)


def build_lesson(
    raw: dict[str, Any],
    topic: str,
    level: CEFRLevel,
    lesson_id: str | None = None,
    created_at: int | None = None,
) -> Lesson:
    """Normalize a raw provider payload into a Lesson."""
    texts = raw.get("texts") or {}
    document = {
        "id": lesson_id or str(uuid.uuid4()),
        "groupId": make_group_id(topic, level),
        "topic": raw.get("topic") or topic,
        "level": level.value,
        "title": raw.get("title") or [{"text": topic}],
        "vocabulary": raw.get("vocabulary") or [],
        "grammar": raw.get("grammar") or [],
        "texts": {
            "dialogue": texts.get("dialogue") or [],
            "essay": texts.get("essay") or {"title": "", "content": []},
        },
        "createdAt": created_at if created_at is not None else now_ms(),
    }
    try:
        return Lesson.model_validate(document)
    except ValidationError as e:
        raise GenerationError(f"Generated lesson has an unexpected shape: {e}") from e


# =============================================================================
# Generator
# =============================================================================


class LessonGenerator:
    """HTTP client for the lesson-generation providers."""

    def __init__(self, settings: Settings, user_settings: UserSettings):
        """
        Initialize the generator.

        Args:
            settings: Application settings (endpoints, models, token ceilings)
            user_settings: Learner preferences (provider choice, API keys)
        """
        self.settings = settings
        self.user_settings = user_settings
        self.client = httpx.AsyncClient(
            timeout=httpx.Timeout(settings.generation_timeout_seconds),
            follow_redirects=True,
        )

    async def __aenter__(self) -> LessonGenerator:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def close(self) -> None:
        await self.client.aclose()

    @property
    def provider(self) -> str:
        return (self.user_settings.selected_model or "gemini").lower()

    @property
    def gemini_key(self) -> str:
        return self.settings.gemini_api_key or self.user_settings.gemini_key

    @property
    def openai_key(self) -> str:
        return self.settings.openai_api_key or self.user_settings.openai_key

    # =========================================================================
    # Public API
    # =========================================================================

    async def generate(self, topic: str, level: CEFRLevel | str) -> Lesson:
        """
        Generate a lesson for a topic and level.

        Raises:
            GenerationError: on missing keys, provider or parse failures
        """
        level = CEFRLevel(level)
        values = lesson_values(topic, level, self.settings.explanation_language)
        logger.info(f"Generating {level.value} lesson on '{topic}' with {self.provider}")

        if self.provider == "gemini":
            merged: dict[str, Any] = {"texts": {}}
            for section in GEMINI_SECTIONS:
                part = await self._call_gemini(fill(SECTION_PROMPT, section=section, **values))
                if section == "meta":
                    merged["topic"] = part.get("topic")
                    merged["title"] = part.get("title")
                elif section in ("dialogue", "essay"):
                    merged["texts"][section] = (part.get("texts") or {}).get(section)
                else:
                    merged[section] = part.get(section)
            return build_lesson(merged, topic, level)

        raw = await self._call_openai(fill(COURSE_PROMPT, **values))
        return build_lesson(raw, topic, level)

    async def lookup_word(self, query: str) -> VocabEntry:
        """Dictionary explanation of a French word or phrase."""
        prompt = fill(
            DICTIONARY_PROMPT,
            word=query,
            explanation_language=self.settings.explanation_language,
        )
        if self.provider == "gemini":
            raw = await self._call_gemini(prompt)
        else:
            raw = await self._call_openai(prompt)

        try:
            return VocabEntry.model_validate(raw)
        except ValidationError as e:
            raise GenerationError(f"Dictionary entry has an unexpected shape: {e}") from e

    # =========================================================================
    # Providers
    # =========================================================================

    async def _call_gemini(self, prompt: str) -> dict[str, Any]:
        try:
            text = await self._request_gemini(prompt, self.settings.generation_max_output_tokens)
        except GenerationError as e:
            fallback = self.settings.generation_fallback_output_tokens
            logger.warning(f"Gemini request failed, retrying with {fallback} output tokens: {e}")
            text = await self._request_gemini(prompt, fallback)
        return parse_response(text)

    async def _request_gemini(self, prompt: str, max_output_tokens: int) -> str:
        if not self.gemini_key:
            raise GenerationError("Missing Gemini API key")

        url = f"{self.settings.gemini_base_url}/models/{self.settings.gemini_model}:generateContent"
        body = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "maxOutputTokens": max_output_tokens,
                "temperature": 0.7,
                "responseMimeType": "application/json",
            },
        }
        try:
            response = await self.client.post(url, params={"key": self.gemini_key}, json=body)
        except httpx.RequestError as e:
            raise GenerationError(f"Gemini connection error: {e}") from e

        if not response.is_success:
            raise GenerationError(f"Gemini HTTP {response.status_code}: {response.text[:300]}")

        data = _response_body(response, "Gemini")
        if data.get("error"):
            raise GenerationError(f"Gemini error: {_error_message(data['error'])}")
        try:
            text = data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError):
            return ""
        return text if isinstance(text, str) else ""

    async def _call_openai(self, prompt: str) -> dict[str, Any]:
        if not self.openai_key:
            raise GenerationError("Missing OpenAI API key")

        body = {
            "model": self.settings.openai_model,
            "response_format": {"type": "json_object"},
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
        }
        try:
            response = await self.client.post(
                f"{self.settings.openai_base_url}/chat/completions",
                headers={"Authorization": f"Bearer {self.openai_key}"},
                json=body,
            )
        except httpx.RequestError as e:
            raise GenerationError(f"OpenAI connection error: {e}") from e

        data = _response_body(response, "OpenAI")
        if data.get("error"):
            raise GenerationError(f"OpenAI error: {_error_message(data['error'])}")
        if not response.is_success:
            raise GenerationError(f"OpenAI HTTP {response.status_code}")

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            content = None
        if not isinstance(content, str) or not content:
            content = "{}"
        return parse_json_lenient(content)
