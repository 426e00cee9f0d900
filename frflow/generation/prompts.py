"""
Prompt templates for lesson generation.

Placeholders use the [NAME] form and are filled with `fill()`. Every French
string in a response must be in phonetic-segment form:
    [{"text": "mot", "phonetic": "mo"}]
"""

from __future__ import annotations

from dataclasses import dataclass

from frflow.core.models import CEFRLevel


@dataclass(frozen=True)
class LevelCounts:
    """Exact item counts requested per lesson section."""

    vocab: int
    grammar: int
    dialogue: int
    essay: int


LEVEL_COUNTS: dict[CEFRLevel, LevelCounts] = {
    CEFRLevel.A1: LevelCounts(vocab=12, grammar=3, dialogue=6, essay=8),
    CEFRLevel.A2: LevelCounts(vocab=15, grammar=3, dialogue=8, essay=10),
    CEFRLevel.B1: LevelCounts(vocab=18, grammar=4, dialogue=10, essay=12),
    CEFRLevel.B2: LevelCounts(vocab=22, grammar=4, dialogue=12, essay=14),
    CEFRLevel.C1: LevelCounts(vocab=25, grammar=5, dialogue=14, essay=16),
    CEFRLevel.C2: LevelCounts(vocab=30, grammar=5, dialogue=16, essay=18),
}

# Gemini is asked for one section at a time to stay under output limits
GEMINI_SECTIONS = ("meta", "vocabulary", "grammar", "dialogue", "essay")

SYSTEM_PROMPT = "You are an expert French CEFR instructor. Output strict valid JSON."

LEVEL_RULES = """
Higher levels include all lower-level abilities. Never introduce grammar above [LEVEL].
A1: present tense only, basic vocabulary, simple SVO sentences.
A2: adds passé composé and futur proche, simple comparisons.
B1: adds imparfait, futur simple, conditionnel présent, basic subjunctive, relative clauses.
B2: adds plus-que-parfait, conditionnel passé, full subjunctive, abstract topics.
C1: adds idioms, register variation, complex argumentation.
C2: rare vocabulary, native-like precision.
"""

COURSE_PROMPT = """
Create a complete French learning session about [TOPIC] at CEFR level [LEVEL].
""" + LEVEL_RULES + """
Output size (exact):
- Vocabulary items: [VOCAB_COUNT]
- Grammar points: [GRAMMAR_COUNT]
- Dialogue lines: [DIALOGUE_COUNT]
- Essay sentences: [ESSAY_COUNT]

The dialogue is a spoken, turn-based exchange. The essay is a written
narrative and must not paraphrase the dialogue.
Write meanings, explanations and translations in [EXPLANATION_LANGUAGE].
All French text uses phonetic segments: {"text":"mot","phonetic":"mo"}.
Give gender (m/f/none) and plural form for each vocabulary item.

JSON structure:
{
  "topic": "[TOPIC]",
  "title": [PhoneticSegment...],
  "vocabulary": [{"word": [...], "gender": "m|f|none", "plural": "...", "meaning": "...",
                  "grammar_tag": "...", "example": {"text": [...], "translation": "...", "grammar_point": "..."}}],
  "grammar": [{"point": "...", "explanation": "...", "example": {"text": [...], "translation": "..."}}],
  "texts": {
    "dialogue": [{"role": "A", "name": "...", "text": [...], "translation": "..."}],
    "essay": {"title": "...", "content": [{"text": [...], "translation": "..."}]}
  }
}
Output JSON only. No markdown, no commentary.
"""

SECTION_PROMPT = """
Target: French lesson about [TOPIC], CEFR level [LEVEL].
""" + LEVEL_RULES + """
Output size (exact): vocabulary [VOCAB_COUNT], grammar [GRAMMAR_COUNT],
dialogue [DIALOGUE_COUNT], essay [ESSAY_COUNT].
Write meanings, explanations and translations in [EXPLANATION_LANGUAGE].
All French text uses phonetic segments: {"text":"mot","phonetic":"mo"}.

SECTION: [SECTION]
Return ONLY the JSON for this section:
meta       -> {"topic": "[TOPIC]", "title": [PhoneticSegment...]}   (title in French)
vocabulary -> {"vocabulary": [{"word": [...], "gender": "m|f|none", "plural": "...", "meaning": "...",
               "grammar_tag": "...", "example": {"text": [...], "translation": "...", "grammar_point": "..."}}]}
grammar    -> {"grammar": [{"point": "...", "explanation": "...", "example": {"text": [...], "translation": "..."}}]}
dialogue   -> {"texts": {"dialogue": [{"role": "A", "name": "...", "text": [...], "translation": "..."}]}}
essay      -> {"texts": {"essay": {"title": "...", "content": [{"text": [...], "translation": "..."}]}}}
"""

DICTIONARY_PROMPT = """
Explain a French word or phrase. Output JSON only.
Write the meaning and explanations in [EXPLANATION_LANGUAGE].
Include gender for nouns and conjugation notes for verbs.
{
  "word": [{"text": "mot", "phonetic": "mo"}],
  "gender": "m|f|none",
  "plural": "...",
  "meaning": "...",
  "grammar_tag": "...",
  "example": {"text": [...], "translation": "...", "grammar_point": "..."}
}
WORD: [WORD]
"""


def fill(template: str, **values: object) -> str:
    """Replace every [KEY] placeholder with its value."""
    out = template
    for key, value in values.items():
        out = out.replace(f"[{key.upper()}]", str(value))
    return out


def lesson_values(topic: str, level: CEFRLevel, explanation_language: str) -> dict[str, object]:
    counts = LEVEL_COUNTS[level]
    return {
        "topic": topic,
        "level": level.value,
        "vocab_count": counts.vocab,
        "grammar_count": counts.grammar,
        "dialogue_count": counts.dialogue,
        "essay_count": counts.essay,
        "explanation_language": explanation_language,
    }
