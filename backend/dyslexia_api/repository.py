from __future__ import annotations
import json
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set

from sqlalchemy import case, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from .models import ChatMessage, GeneratedQuestion, QuestionBankTemplate, SessionAnalysisCache, UserAnswer


class QuestionRepository:
	"""Persistence for templates, generated questions, answers, report cache and chat."""

	def __init__(self, db: Session) -> None:
		self.db = db

	def _commit(self) -> None:
		try:
			self.db.commit()
		except SQLAlchemyError:
			self.db.rollback()
			raise

	# Templates

	def count_templates(self) -> int:
		return self.db.query(func.count(QuestionBankTemplate.id)).filter(QuestionBankTemplate.deleted_at.is_(None)).scalar() or 0

	def create_templates(self, templates: Iterable[QuestionBankTemplate]) -> None:
		self.db.add_all(list(templates))
		self._commit()

	def find_templates(self, difficulty: str, pairs: Sequence[str]) -> List[QuestionBankTemplate]:
		q = self.db.query(QuestionBankTemplate).filter(
			QuestionBankTemplate.deleted_at.is_(None),
			QuestionBankTemplate.difficulty == difficulty,
		)
		if pairs:
			q = q.filter(QuestionBankTemplate.target_letter_pair.in_(list(pairs)))
		return q.order_by(QuestionBankTemplate.template_id).all()

	# Generated questions

	def find_generated(self, question_id: str) -> Optional[GeneratedQuestion]:
		return (
			self.db.query(GeneratedQuestion)
			.filter(GeneratedQuestion.question_id == question_id, GeneratedQuestion.deleted_at.is_(None))
			.first()
		)

	def find_generated_many(self, question_ids: Iterable[str]) -> Dict[str, GeneratedQuestion]:
		ids = list(set(question_ids))
		if not ids:
			return {}
		rows = (
			self.db.query(GeneratedQuestion)
			.filter(GeneratedQuestion.question_id.in_(ids), GeneratedQuestion.deleted_at.is_(None))
			.all()
		)
		return {r.question_id: r for r in rows}

	def find_random_generated(
		self,
		difficulty: str,
		pairs: Sequence[str],
		limit: int,
		exclude_ids: Iterable[str] = (),
	) -> List[GeneratedQuestion]:
		q = self.db.query(GeneratedQuestion).filter(
			GeneratedQuestion.deleted_at.is_(None),
			GeneratedQuestion.difficulty == difficulty,
		)
		if pairs:
			q = q.filter(GeneratedQuestion.target_letter_pair.in_(list(pairs)))
		excluded = list(exclude_ids)
		if excluded:
			q = q.filter(GeneratedQuestion.question_id.notin_(excluded))
		return q.order_by(func.random()).limit(limit).all()

	def save_generated(self, fields: Dict[str, Any]) -> bool:
		"""Insert a generated question unless it exists; an existing row gets its usage bumped.

		Returns True when a new row was created.
		"""
		existing = self.find_generated(fields["question_id"])
		if existing is not None:
			self.increment_usage(existing.question_id)
			return False
		row = GeneratedQuestion(
			question_id=fields["question_id"],
			template_id=fields.get("template_id"),
			difficulty=fields["difficulty"],
			question_text=fields["question_text"],
			target_letter_pair=fields.get("target_letter_pair"),
			target_letter=fields.get("target_letter"),
			options=json.dumps(list(fields["options"])),
			correct_answer=fields["correct_answer"],
			hint=fields.get("hint"),
			generated_by=fields.get("generated_by", "ai"),
			usage_count=1,
		)
		self.db.add(row)
		self._commit()
		return True

	def increment_usage(self, question_id: str) -> None:
		self.db.query(GeneratedQuestion).filter(GeneratedQuestion.question_id == question_id).update(
			{GeneratedQuestion.usage_count: GeneratedQuestion.usage_count + 1},
			synchronize_session=False,
		)
		self._commit()

	# User answers

	def find_existing_answer(self, user_id: str, session_id: str, question_id: str) -> Optional[UserAnswer]:
		return (
			self.db.query(UserAnswer)
			.filter(
				UserAnswer.user_id == user_id,
				UserAnswer.session_id == session_id,
				UserAnswer.question_id == question_id,
				UserAnswer.deleted_at.is_(None),
			)
			.first()
		)

	def create_user_answer(self, answer: UserAnswer) -> UserAnswer:
		self.db.add(answer)
		self._commit()
		self.db.refresh(answer)
		return answer

	def find_answers_by_session(self, session_id: str) -> List[UserAnswer]:
		return (
			self.db.query(UserAnswer)
			.filter(UserAnswer.session_id == session_id, UserAnswer.deleted_at.is_(None))
			.order_by(UserAnswer.answered_at.asc(), UserAnswer.id.asc())
			.all()
		)

	def answered_question_ids(self, session_id: Optional[str]) -> Set[str]:
		if not session_id:
			return set()
		rows = (
			self.db.query(UserAnswer.question_id)
			.filter(UserAnswer.session_id == session_id, UserAnswer.deleted_at.is_(None))
			.all()
		)
		return {r[0] for r in rows}

	def recent_session_summaries(self, user_id: str, exclude_session_id: str, limit: int = 5) -> List[Dict[str, Any]]:
		"""Most recent prior sessions of a user, newest first, with cached labels when present."""
		last_answered = func.max(UserAnswer.answered_at)
		rows = (
			self.db.query(
				UserAnswer.session_id,
				func.count(UserAnswer.id),
				func.sum(case((UserAnswer.is_correct.is_(True), 1), else_=0)),
				last_answered,
			)
			.filter(
				UserAnswer.user_id == user_id,
				UserAnswer.session_id != exclude_session_id,
				UserAnswer.deleted_at.is_(None),
			)
			.group_by(UserAnswer.session_id)
			.order_by(last_answered.desc())
			.limit(limit)
			.all()
		)
		caches = {
			c.session_id: c
			for c in self.db.query(SessionAnalysisCache)
			.filter(SessionAnalysisCache.session_id.in_([r[0] for r in rows]))
			.all()
		} if rows else {}
		summaries: List[Dict[str, Any]] = []
		for session_id, total, correct, answered_at in rows:
			total = int(total or 0)
			correct = int(correct or 0)
			cache = caches.get(session_id)
			summaries.append(
				{
					"session_id": session_id,
					"total_questions": total,
					"correct_answers": correct,
					"accuracy_rate": format_rate(correct, total),
					"overall_value": cache.overall_value if cache else None,
					"last_answered_at": answered_at,
				}
			)
		return summaries

	# Session analysis cache

	def find_analysis_cache(self, session_id: str) -> Optional[SessionAnalysisCache]:
		return self.db.query(SessionAnalysisCache).filter(SessionAnalysisCache.session_id == session_id).first()

	def upsert_analysis_cache(self, session_id: str, fields: Dict[str, Any]) -> SessionAnalysisCache:
		row = self.find_analysis_cache(session_id)
		if row is None:
			row = SessionAnalysisCache(session_id=session_id)
			self.db.add(row)
		self._apply(row, fields)
		try:
			self._commit()
		except IntegrityError:
			# Another worker inserted the first report for this session
			row = self.find_analysis_cache(session_id)
			if row is None:
				raise
			self._apply(row, fields)
			self._commit()
		return row

	@staticmethod
	def _apply(row: SessionAnalysisCache, fields: Dict[str, Any]) -> None:
		for key, value in fields.items():
			setattr(row, key, value)
		row.updated_at = datetime.utcnow()

	# Chat messages

	def create_chat_message(
		self,
		session_id: str,
		role: str,
		message: str,
		*,
		training_recommendation: Optional[str] = None,
	) -> ChatMessage:
		row = ChatMessage(
			session_id=session_id,
			role=role,
			message=message,
			training_recommendation=training_recommendation,
		)
		self.db.add(row)
		self._commit()
		return row

	def has_assistant_message(self, session_id: str) -> bool:
		return (
			self.db.query(ChatMessage.id)
			.filter(ChatMessage.session_id == session_id, ChatMessage.role == "assistant")
			.first()
			is not None
		)

	def recent_chat_messages(self, session_id: str, limit: int) -> List[ChatMessage]:
		"""The ``limit`` newest messages, returned oldest first."""
		rows = (
			self.db.query(ChatMessage)
			.filter(ChatMessage.session_id == session_id)
			.order_by(ChatMessage.created_at.desc(), ChatMessage.id.desc())
			.limit(limit)
			.all()
		)
		rows.reverse()
		return rows


def format_rate(part: int, total: int) -> str:
	if total <= 0:
		return "0.0%"
	return f"{part / total * 100:.1f}%"
