"""Respondent profile synthesis.

Turns a respondent's question/answer set into a single third-person paragraph
that serves as embedding input.

Classes:
    ProfileInput: Everything the synthesizer needs to describe one respondent.
    SummaryResult: Outcome of a synthesis call; either a summary or an explicit error.
    ProfileSynthesizer: Builds the prompt and performs one generative-text call per respondent.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Mapping, Optional, Sequence

from app.core.config import Settings, get_settings
from app.core.errors import UpstreamUnavailable
from app.services.openai_client import OpenAIService
from app.utils.text import clean_generated_summary, word_count

_LOGGER = logging.getLogger(__name__)

NO_ANSWER_PLACEHOLDER = "No answer provided"
SUMMARY_UNAVAILABLE = "summary unavailable"

SYSTEM_PROMPT = (
    "You are an assistant that writes objective profiles of people based on their answers to questionnaires. "
    "Focus on key interests, values, experiences, and personality traits. "
    "Be factual and avoid subjective judgments."
)


@dataclass(slots=True)
class ProfileInput:
    form_title: str
    form_description: str
    questions: Sequence[tuple[str, str]]
    answers: Mapping[str, str] = field(default_factory=dict)
    respondent_name: Optional[str] = None


@dataclass(slots=True)
class SummaryResult:
    summary: Optional[str]
    error: Optional[str] = None
    word_count: int = 0
    model: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.summary is not None and self.error is None

    @classmethod
    def failed(cls, reason: str) -> "SummaryResult":
        return cls(summary=None, error=f"{SUMMARY_UNAVAILABLE}: {reason}")


class ProfileSynthesizer:
    def __init__(self, openai_service: OpenAIService, *, settings: Settings | None = None) -> None:
        self._openai = openai_service
        self._settings = settings or get_settings()

    @property
    def word_band(self) -> tuple[int, int]:
        low = self._settings.summary_min_words
        high = max(low, self._settings.summary_max_words)
        return low, high

    def question_answer_pairs(self, profile: ProfileInput) -> list[tuple[str, str]]:
        pairs: list[tuple[str, str]] = []
        for question_id, question_text in profile.questions:
            answer = profile.answers.get(str(question_id))
            if answer is None or not answer.strip():
                answer = NO_ANSWER_PLACEHOLDER
            pairs.append((question_text, answer.strip()))
        return pairs

    def build_messages(self, profile: ProfileInput) -> list[dict[str, str]]:
        low, high = self.word_band
        subject = profile.respondent_name.strip() if profile.respondent_name and profile.respondent_name.strip() else "a person"
        description = profile.form_description.strip() or "No description provided"
        responses = "\n\n".join(
            f"Question: {question}\nAnswer: {answer}" for question, answer in self.question_answer_pairs(profile)
        )

        user_prompt = (
            f'Please create a summary of {subject} based on their responses to the "{profile.form_title}" form.\n\n'
            f"Form description: {description}\n\n"
            f"Responses:\n{responses}\n\n"
            f"Write a single paragraph of {low}-{high} words in the third person that captures this person's "
            "key qualities, interests, and perspectives. Synthesize the answers rather than quoting or listing them, "
            f'ignore questions answered with "{NO_ANSWER_PLACEHOLDER}", and do not use headings, bullet points, or labels.'
        )
        return [
            {"role": "system", "content": f"{SYSTEM_PROMPT} Your summary should be {low}-{high} words."},
            {"role": "user", "content": user_prompt},
        ]

    async def synthesize(self, profile: ProfileInput) -> SummaryResult:
        messages = self.build_messages(profile)
        try:
            sample = await self._openai.complete_chat(
                messages=messages,
                model=self._settings.openai_chat_model,
                temperature=self._settings.summary_temperature,
                max_tokens=self._settings.summary_max_tokens,
            )
        except UpstreamUnavailable as exc:
            _LOGGER.warning("Profile synthesis failed: %s", exc, extra={"stage": "summary"})
            return SummaryResult.failed(str(exc))

        if sample.finish_reason == "length":
            return SummaryResult.failed("completion was truncated")

        summary = clean_generated_summary(sample.text)
        if not summary:
            return SummaryResult.failed("empty completion")

        words = word_count(summary)
        low, high = self.word_band
        if words < low // 2 or words > high * 2:
            _LOGGER.warning(
                "Summary length %d words is far outside the %d-%d band",
                words,
                low,
                high,
                extra={"stage": "summary"},
            )
        return SummaryResult(summary=summary, word_count=words, model=sample.model)
