"""
Question generation pipeline.

Each requested slot picks a letter pair, asks the LLM for a correct word and
visually confusable distractors, and falls back to seeded templates or the fixed
word list when the model is disabled, unreachable or returns unusable output.
Slots run concurrently; the batch is then de-duplicated against the session's
answered questions and topped up with a bounded number of replacements.
Accepted questions are cached in the background so they can be answered and
served again without the LLM.
"""

from __future__ import annotations

import asyncio
import hashlib
import json
import logging
import random
import threading
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Set, Tuple, TypeVar, Union

from sqlalchemy.orm import Session

from ..errors import NotFoundError
from ..llm_client import LLMClient
from ..repository import QuestionRepository
from ..schemas import Question
from .background import BackgroundRunner
from .parsing import extract_json_object
from .vocab import (
    FALLBACK_WORDS,
    QUESTION_TEXT,
    Difficulty,
    LetterPair,
    parse_letter_pairs,
    target_letter_for,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

MIN_COUNT = 1
MAX_COUNT = 10
MAX_OPTIONS = 4
MAX_REPLACEMENTS = 5

SOURCE_AI = "ai"
SOURCE_FALLBACK = "fallback"


def clamp_count(count: Optional[int]) -> int:
    if count is None:
        return MIN_COUNT
    return max(MIN_COUNT, min(MAX_COUNT, int(count)))


def question_id_for(word: str, difficulty: Difficulty, pair: LetterPair) -> str:
    """Deterministic id: the same word for the same tier and pair is the same question."""
    digest = hashlib.sha256(f"{word.strip().upper()}|{difficulty.value}|{pair.value}".encode("utf-8")).hexdigest()
    return f"{difficulty.value[0]}-{pair.compact}-{digest[:16]}"


def dedupe_options(correct: str, options: Iterable[object]) -> List[str]:
    """Correct answer first, then unique non-empty options, at most MAX_OPTIONS."""
    result = [correct]
    for opt in options:
        word = str(opt or "").strip().upper()
        if not word or word in result:
            continue
        result.append(word)
        if len(result) == MAX_OPTIONS:
            break
    return result


def build_question_prompt(difficulty: Difficulty, pair: LetterPair) -> str:
    first, second = pair.letters
    return (
        "You are generating a multiple-choice reading question for Indonesian dyslexic children (TK-SD).\n\n"
        "Design principles:\n"
        "- Use real, simple Indonesian words a young child knows\n"
        "- High letter contrast: write every word in UPPERCASE\n"
        f"- The correct word must contain the letter {first.upper()} or {second.upper()}\n"
        f"- Distractors swap {first.upper()} and {second.upper()} (or other look-alike letters) so they look almost the same\n"
        "- Exactly one option is a real word\n\n"
        f"Difficulty: {difficulty.value} (easy = 4 letters, medium = 4-5 letters, hard = 5-7 letters)\n"
        f"Target letter pair: {pair.value}\n\n"
        "Return ONLY valid JSON with NO markdown and NO extra text:\n"
        '{"correctAnswer":"...","options":["...","...","...","..."]}\n'
        "The options array holds 4 words and includes the correct answer."
    )


def parse_question_payload(raw: str) -> Tuple[str, List[str]]:
    data = extract_json_object(raw)
    correct = str(data.get("correctAnswer") or "").strip().upper()
    options = data.get("options")
    if not correct or not isinstance(options, list):
        raise ValueError("model output missing correctAnswer/options")
    unique = dedupe_options(correct, options)
    if len(unique) < 2:
        raise ValueError("model output has fewer than 2 unique options")
    return correct, unique


@dataclass(frozen=True)
class _TemplateWords:
    template_id: str
    target_letter: str
    words: Tuple[str, ...]
    hint: Optional[str]


@dataclass(frozen=True)
class _Candidate:
    question: Question
    source: str
    template_id: Optional[str] = None


class QuestionGenerator:
    def __init__(
        self,
        llm: Optional[LLMClient],
        background: BackgroundRunner,
        session_factory: Callable[[], Session],
        *,
        ai_enabled: bool = True,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.llm = llm
        self.background = background
        self.session_factory = session_factory
        self.ai_enabled = ai_enabled
        # Shared by concurrent slots
        self._rng = rng or random.Random()
        self._rng_lock = threading.Lock()

    async def generate(
        self,
        db: Session,
        difficulty: Union[Difficulty, str, None],
        count: Optional[int],
        include_answer: bool = False,
        patterns: Sequence[str] = (),
        use_ai: bool = True,
        session_id: Optional[str] = None,
    ) -> List[Question]:
        tier = difficulty if isinstance(difficulty, Difficulty) else Difficulty.parse(difficulty)
        count = clamp_count(count)
        pairs = parse_letter_pairs(patterns)

        repo = QuestionRepository(db)
        seen = repo.answered_question_ids(session_id)

        if use_ai:
            templates = self._load_templates(repo, tier, pairs)
            questions = await self._generate_batch(tier, pairs, templates, count, seen)
        else:
            questions = self._from_cache(repo, tier, pairs, count, seen)

        if not include_answer:
            questions = [q.model_copy(update={"answer": None}) for q in questions]
        return questions

    # Cache path

    def _from_cache(
        self,
        repo: QuestionRepository,
        tier: Difficulty,
        pairs: Sequence[LetterPair],
        count: int,
        seen: Set[str],
    ) -> List[Question]:
        rows = repo.find_random_generated(tier.value, [p.value for p in pairs], count, seen)
        questions: List[Question] = []
        for row in rows:
            try:
                options = json.loads(row.options)
            except ValueError:
                logger.warning("Cached question %s has unreadable options, skipping", row.question_id)
                continue
            questions.append(
                Question(
                    id=row.question_id,
                    difficulty=row.difficulty,
                    question_text=row.question_text,
                    target_letter_pair=row.target_letter_pair or "",
                    target_letter=row.target_letter or "",
                    options=self._shuffled(options),
                    answer=row.correct_answer,
                    hint=row.hint,
                )
            )
            self.background.spawn(f"increment-usage:{row.question_id}", self._increment_usage, row.question_id)
        if not questions:
            raise NotFoundError(f"no cached questions found for difficulty {tier.value}")
        return questions

    # LLM path

    def _load_templates(
        self,
        repo: QuestionRepository,
        tier: Difficulty,
        pairs: Sequence[LetterPair],
    ) -> Dict[LetterPair, List[_TemplateWords]]:
        grouped: Dict[LetterPair, List[_TemplateWords]] = {}
        for tpl in repo.find_templates(tier.value, [p.value for p in pairs]):
            try:
                distractors = json.loads(tpl.distractors)
            except ValueError:
                logger.warning("Template %s has unreadable distractors, skipping", tpl.template_id)
                continue
            grouped.setdefault(LetterPair(tpl.target_letter_pair), []).append(
                _TemplateWords(
                    template_id=tpl.template_id,
                    target_letter=tpl.target_letter,
                    words=tuple([tpl.correct_word, *distractors]),
                    hint=tpl.hint,
                )
            )
        return grouped

    async def _generate_batch(
        self,
        tier: Difficulty,
        pairs: Sequence[LetterPair],
        templates: Dict[LetterPair, List[_TemplateWords]],
        count: int,
        seen: Set[str],
    ) -> List[Question]:
        slots = await asyncio.gather(*(self._generate_slot(tier, pairs, templates) for _ in range(count)))

        taken = set(seen)
        accepted: List[_Candidate] = []
        for cand in slots:
            if cand.question.id in taken:
                continue
            taken.add(cand.question.id)
            accepted.append(cand)

        replacements = 0
        while len(accepted) < count and replacements < MAX_REPLACEMENTS:
            replacements += 1
            cand = await self._generate_slot(tier, pairs, templates)
            if cand.question.id in taken:
                continue
            taken.add(cand.question.id)
            accepted.append(cand)

        if len(accepted) < count:
            logger.info(
                "Returning %d of %d requested %s questions; no more unique candidates",
                len(accepted), count, tier.value,
            )

        for cand in accepted:
            self.background.spawn(f"save-question:{cand.question.id}", self._save_question, cand)
        return [cand.question for cand in accepted]

    async def _generate_slot(
        self,
        tier: Difficulty,
        pairs: Sequence[LetterPair],
        templates: Dict[LetterPair, List[_TemplateWords]],
    ) -> _Candidate:
        pair = self._choice(pairs)
        if not self.ai_enabled or self.llm is None:
            return self._fallback(tier, pair, templates)
        try:
            raw = await self.llm.generate_json(build_question_prompt(tier, pair))
            correct, options = parse_question_payload(raw)
        except Exception as exc:
            logger.warning("AI question generation failed for %s/%s, using fallback: %s", tier.value, pair.value, exc)
            return self._fallback(tier, pair, templates)
        return _Candidate(
            question=self._build(tier, pair, correct, options, target_letter_for(correct, pair)),
            source=SOURCE_AI,
        )

    def _fallback(
        self,
        tier: Difficulty,
        pair: LetterPair,
        templates: Dict[LetterPair, List[_TemplateWords]],
    ) -> _Candidate:
        candidates = templates.get(pair)
        if candidates:
            tpl = self._choice(candidates)
            correct = tpl.words[0].strip().upper()
            return _Candidate(
                question=self._build(
                    tier, pair, correct, dedupe_options(correct, tpl.words[1:]), tpl.target_letter, hint=tpl.hint
                ),
                source=SOURCE_FALLBACK,
                template_id=tpl.template_id,
            )
        words = FALLBACK_WORDS[pair]
        correct = words[0]
        return _Candidate(
            question=self._build(tier, pair, correct, dedupe_options(correct, words[1:]), target_letter_for(correct, pair)),
            source=SOURCE_FALLBACK,
        )

    def _build(
        self,
        tier: Difficulty,
        pair: LetterPair,
        correct: str,
        options: List[str],
        target_letter: str,
        *,
        hint: Optional[str] = None,
    ) -> Question:
        return Question(
            id=question_id_for(correct, tier, pair),
            difficulty=tier.value,
            question_text=QUESTION_TEXT.format(letter=target_letter),
            target_letter_pair=pair.value,
            target_letter=target_letter,
            options=self._shuffled(options),
            answer=correct,
            hint=hint,
        )

    # Shared random source

    def _choice(self, items: Sequence[T]) -> T:
        with self._rng_lock:
            return self._rng.choice(items)

    def _shuffled(self, items: Iterable[str]) -> List[str]:
        out = list(items)
        with self._rng_lock:
            self._rng.shuffle(out)
        return out

    # Background jobs (run in worker threads with their own DB session)

    def _save_question(self, cand: _Candidate) -> None:
        q = cand.question
        with self.session_factory() as db:
            QuestionRepository(db).save_generated(
                {
                    "question_id": q.id,
                    "template_id": cand.template_id,
                    "difficulty": q.difficulty,
                    "question_text": q.question_text,
                    "target_letter_pair": q.target_letter_pair,
                    "target_letter": q.target_letter,
                    "options": q.options,
                    "correct_answer": q.answer,
                    "hint": q.hint,
                    "generated_by": cand.source,
                }
            )

    def _increment_usage(self, question_id: str) -> None:
        with self.session_factory() as db:
            QuestionRepository(db).increment_usage(question_id)
