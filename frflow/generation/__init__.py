"""Lesson generation through Gemini or OpenAI."""

from .lesson_generator import LessonGenerator, build_lesson, parse_json_lenient
from .prompts import LEVEL_COUNTS, LevelCounts

__all__ = ["LessonGenerator", "build_lesson", "parse_json_lenient", "LEVEL_COUNTS", "LevelCounts"]
