from __future__ import annotations

import logging
from typing import List

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..errors import NotFoundError, PersistenceError
from ..models import UserAnswer
from ..repository import QuestionRepository
from ..schemas import SubmitAnswerRequest, SubmitAnswerResponse, UserAnswerLog

logger = logging.getLogger(__name__)


def normalize_answer(value: str) -> str:
    return (value or "").strip().upper()


def _to_response(row: UserAnswer) -> SubmitAnswerResponse:
    return SubmitAnswerResponse(
        is_correct=row.is_correct,
        user_answer=row.user_answer,
        correct_answer=row.correct_answer,
        question_id=row.question_id,
        session_id=row.session_id,
    )


def submit_answer(db: Session, req: SubmitAnswerRequest) -> SubmitAnswerResponse:
    """Record one answer; resubmitting the same (user, session, question) returns the stored one."""
    repo = QuestionRepository(db)
    existing = repo.find_existing_answer(req.user_id, req.session_id, req.question_id)
    if existing is not None:
        return _to_response(existing)

    question = repo.find_generated(req.question_id)
    if question is None:
        raise NotFoundError(f"question not found: {req.question_id}")

    row = UserAnswer(
        user_id=req.user_id,
        session_id=req.session_id,
        question_id=req.question_id,
        user_answer=req.answer,
        correct_answer=question.correct_answer,
        is_correct=normalize_answer(req.answer) == normalize_answer(question.correct_answer),
        question_text=question.question_text,
        difficulty=question.difficulty,
    )
    try:
        row = repo.create_user_answer(row)
    except IntegrityError:
        # A concurrent submission stored the same natural key first
        existing = repo.find_existing_answer(req.user_id, req.session_id, req.question_id)
        if existing is None:
            raise PersistenceError("failed to save answer")
        return _to_response(existing)
    except SQLAlchemyError as exc:
        logger.error("Saving answer for session %s failed: %s", req.session_id, exc)
        raise PersistenceError("failed to save answer") from exc
    return _to_response(row)


def get_session_answers(db: Session, session_id: str) -> List[UserAnswerLog]:
    repo = QuestionRepository(db)
    answers = repo.find_answers_by_session(session_id)
    questions = repo.find_generated_many(a.question_id for a in answers)
    logs: List[UserAnswerLog] = []
    for a in answers:
        q = questions.get(a.question_id)
        logs.append(
            UserAnswerLog(
                id=a.id,
                question_id=a.question_id,
                question_text=a.question_text,
                user_answer=a.user_answer,
                correct_answer=a.correct_answer,
                is_correct=a.is_correct,
                difficulty=a.difficulty,
                target_letter_pair=q.target_letter_pair if q else None,
                answered_at=a.answered_at.isoformat(),
            )
        )
    return logs
