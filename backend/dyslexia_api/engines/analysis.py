"""
Session report: accuracy and per-letter-pair error statistics for one session,
plus a short qualitative analysis from the LLM that compares against the
child's recent sessions. The LLM part never fails the report; after the retry
budget is spent a fixed neutral text is used instead.
"""

from __future__ import annotations

import json
import logging
from collections import Counter
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..errors import NotFoundError, PersistenceError
from ..llm_client import LLMClient
from ..models import GeneratedQuestion, UserAnswer
from ..repository import QuestionRepository, format_rate
from ..schemas import ErrorPattern, SessionReport
from .parsing import extract_json_object
from .retry import RetryPolicy
from .vocab import PerformanceLabel

logger = logging.getLogger(__name__)

FALLBACK_ANALYSIS = "Sesi latihan telah selesai. Terus berlatih untuk meningkatkan kemampuan membaca."
FALLBACK_RECOMMENDATIONS = "Fokus pada huruf-huruf yang masih sering tertukar."
FALLBACK_LABEL = PerformanceLabel.BAIK

PREVIOUS_SESSION_LIMIT = 5


@dataclass
class SessionStats:
    total: int
    correct: int
    wrong: int
    accuracy_rate: str
    difficulty_stats: Dict[str, int]
    error_patterns: List[ErrorPattern]

    @property
    def training_pairs(self) -> List[str]:
        """Letter pairs with at least one error, worst first."""
        return [p.letter_pair for p in self.error_patterns if p.error_count > 0]


def compute_session_stats(answers: Sequence[UserAnswer], questions: Mapping[str, GeneratedQuestion]) -> SessionStats:
    correct = sum(1 for a in answers if a.is_correct)
    difficulty_stats = Counter(a.difficulty or "unknown" for a in answers)

    pair_totals: Dict[str, List[int]] = {}
    for a in answers:
        q = questions.get(a.question_id)
        if q is None or not q.target_letter_pair:
            continue
        errors_total = pair_totals.setdefault(q.target_letter_pair, [0, 0])
        errors_total[1] += 1
        if not a.is_correct:
            errors_total[0] += 1

    patterns = [
        ErrorPattern(letter_pair=pair, error_count=errors, total_count=total, error_rate=format_rate(errors, total))
        for pair, (errors, total) in pair_totals.items()
    ]
    patterns.sort(key=lambda p: (-(p.error_count / p.total_count), -p.error_count, p.letter_pair))

    return SessionStats(
        total=len(answers),
        correct=correct,
        wrong=len(answers) - correct,
        accuracy_rate=format_rate(correct, len(answers)),
        difficulty_stats=dict(difficulty_stats),
        error_patterns=patterns,
    )


def build_analysis_prompt(stats: SessionStats, previous: Sequence[Mapping[str, Any]]) -> str:
    lines = [
        "Analyze this dyslexia learning session data for an Indonesian child (TK-SD level):",
        "",
        f"Total Questions: {stats.total}",
        f"Correct Answers: {stats.correct}",
        f"Wrong Answers: {stats.wrong}",
        f"Accuracy Rate: {stats.accuracy_rate}",
        "",
        "Error Patterns by Letter Pairs:",
    ]
    if stats.error_patterns:
        for p in stats.error_patterns:
            lines.append(f"- {p.letter_pair}: {p.error_count} errors out of {p.total_count} questions ({p.error_rate})")
    else:
        lines.append("- no letter pair data")
    lines.append("")
    if previous:
        lines.append("Previous sessions of the same child (most recent first):")
        for i, s in enumerate(previous, start=1):
            label = f", overall {s['overall_value']}" if s.get("overall_value") else ""
            lines.append(
                f"{i}. {s['correct_answers']}/{s['total_questions']} correct ({s['accuracy_rate']}){label}"
            )
        lines.append("Compare this session with the previous ones: say whether the child is improving, declining or consistent.")
    else:
        lines.append("This is the child's first session, so there is no earlier data to compare with.")
    labels = ", ".join(f'"{label.value}"' for label in PerformanceLabel)
    lines.extend(
        [
            "",
            "Task:",
            "1. Provide a brief, caring analysis in Indonesian about the child's learning patterns",
            "2. Identify which letter pairs need most attention",
            "3. Give 2-3 specific, actionable recommendations in Indonesian",
            "4. Decide the overall performance level holistically: accuracy, how concentrated the errors are",
            "   on specific letter pairs, and the trend across sessions all matter, not accuracy alone",
            "",
            'Return JSON only: {"analysis":"...","recommendations":"...","overall_value":"..."}',
            f"overall_value must be exactly one of: {labels} (best to worst).",
            "Keep the language simple, encouraging, and suitable for parents/teachers of young children.",
        ]
    )
    return "\n".join(lines)


def parse_analysis(raw: str) -> Tuple[str, str, PerformanceLabel]:
    data = extract_json_object(raw)
    analysis = _as_text(data.get("analysis"))
    recommendations = _as_text(data.get("recommendations"))
    if not analysis or not recommendations:
        raise ValueError("analysis output missing fields")
    # ValueError for labels outside the closed set
    label = PerformanceLabel.parse(data.get("overall_value"))
    return analysis, recommendations, label


def _as_text(value: Any) -> str:
    if isinstance(value, list):
        return "\n".join(f"- {str(v).strip()}" for v in value if str(v).strip())
    return str(value or "").strip()


class SessionAnalyzer:
    def __init__(self, llm: Optional[LLMClient], retry: Optional[RetryPolicy] = None) -> None:
        self.llm = llm
        self.retry = retry or RetryPolicy()

    async def generate_session_report(self, db: Session, session_id: str) -> SessionReport:
        repo = QuestionRepository(db)
        answers = repo.find_answers_by_session(session_id)
        if not answers:
            raise NotFoundError("no answers found for session")

        stats = compute_session_stats(answers, repo.find_generated_many(a.question_id for a in answers))
        user_id = answers[0].user_id
        previous = repo.recent_session_summaries(user_id, session_id, limit=PREVIOUS_SESSION_LIMIT)

        analysis, recommendations, label = await self._analyse(session_id, stats, previous)

        report = SessionReport(
            session_id=session_id,
            user_id=user_id,
            total_questions=stats.total,
            correct_answers=stats.correct,
            wrong_answers=stats.wrong,
            accuracy_rate=stats.accuracy_rate,
            overall_value=label.value,
            error_patterns=stats.error_patterns,
            difficulty_stats=stats.difficulty_stats,
            ai_analysis=analysis,
            recommendations=recommendations,
            previous_sessions=len(previous),
        )
        self._persist(repo, report, stats)
        return report

    async def _analyse(
        self,
        session_id: str,
        stats: SessionStats,
        previous: Sequence[Mapping[str, Any]],
    ) -> Tuple[str, str, PerformanceLabel]:
        if self.llm is None:
            return FALLBACK_ANALYSIS, FALLBACK_RECOMMENDATIONS, FALLBACK_LABEL
        prompt = build_analysis_prompt(stats, previous)
        llm = self.llm

        async def attempt() -> Tuple[str, str, PerformanceLabel]:
            return parse_analysis(await llm.generate_json(prompt))

        try:
            return await self.retry.run(attempt, label=f"session analysis {session_id}")
        except Exception as exc:
            logger.warning("AI analysis unavailable for session %s, using fallback: %s", session_id, exc)
            return FALLBACK_ANALYSIS, FALLBACK_RECOMMENDATIONS, FALLBACK_LABEL

    def _persist(self, repo: QuestionRepository, report: SessionReport, stats: SessionStats) -> None:
        try:
            repo.upsert_analysis_cache(
                report.session_id,
                {
                    "total_questions": report.total_questions,
                    "correct_answers": report.correct_answers,
                    "wrong_answers": report.wrong_answers,
                    "accuracy_rate": report.accuracy_rate,
                    "overall_value": report.overall_value,
                    "ai_analysis": report.ai_analysis,
                    "recommendations": report.recommendations,
                    "error_patterns": json.dumps([p.model_dump() for p in report.error_patterns]),
                    "difficulty_stats": json.dumps(report.difficulty_stats),
                },
            )
        except SQLAlchemyError as exc:
            logger.error("Caching report for session %s failed: %s", report.session_id, exc)
            raise PersistenceError("failed to save session report") from exc

        try:
            if not repo.has_assistant_message(report.session_id):
                repo.create_chat_message(
                    report.session_id,
                    "assistant",
                    f"{report.ai_analysis}\n\n{report.recommendations}",
                    training_recommendation=",".join(stats.training_pairs) or None,
                )
        except SQLAlchemyError as exc:
            logger.warning("Could not add report message to chat for session %s: %s", report.session_id, exc)
