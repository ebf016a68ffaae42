from __future__ import annotations
from datetime import datetime
from sqlalchemy import Boolean, Column, String, DateTime, Integer, Text, UniqueConstraint, Index
from .db import Base


class QuestionBankTemplate(Base):
	__tablename__ = "question_bank_templates"
	id = Column(Integer, primary_key=True, autoincrement=True)
	# e.g. "e-bd-1"
	template_id = Column(String(50), unique=True, nullable=False, index=True)
	difficulty = Column(String(20), nullable=False, index=True)
	target_letter_pair = Column(String(10), nullable=False)
	target_letter = Column(String(5), nullable=False)
	correct_word = Column(String(100), nullable=False)
	distractors = Column(Text, nullable=False)  # JSON array string
	hint = Column(Text, nullable=True)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
	deleted_at = Column(DateTime, nullable=True, index=True)


class GeneratedQuestion(Base):
	__tablename__ = "generated_questions"
	id = Column(Integer, primary_key=True, autoincrement=True)
	# Content hash, see engines.generation.question_id_for
	question_id = Column(String(100), unique=True, nullable=False, index=True)
	template_id = Column(String(50), nullable=True, index=True)
	difficulty = Column(String(20), nullable=False, index=True)
	question_text = Column(Text, nullable=False)
	target_letter_pair = Column(String(10), nullable=True, index=True)
	target_letter = Column(String(5), nullable=True)
	options = Column(Text, nullable=False)  # JSON array string
	correct_answer = Column(String(100), nullable=False)
	hint = Column(Text, nullable=True)
	generated_by = Column(String(20), default="ai", nullable=False)  # ai, fallback
	usage_count = Column(Integer, default=0, nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
	deleted_at = Column(DateTime, nullable=True, index=True)


class UserAnswer(Base):
	__tablename__ = "user_answers"
	id = Column(Integer, primary_key=True, autoincrement=True)
	user_id = Column(String(100), nullable=False, index=True)
	session_id = Column(String(100), nullable=False, index=True)
	question_id = Column(String(100), nullable=False, index=True)
	user_answer = Column(String(100), nullable=False)
	correct_answer = Column(String(100), nullable=False)
	is_correct = Column(Boolean, nullable=False)
	question_text = Column(Text, nullable=True)
	difficulty = Column(String(20), nullable=True, index=True)
	answered_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
	deleted_at = Column(DateTime, nullable=True, index=True)

	__table_args__ = (
		UniqueConstraint("user_id", "session_id", "question_id", name="uix_user_session_question"),
	)


class SessionAnalysisCache(Base):
	__tablename__ = "session_analysis_cache"
	id = Column(Integer, primary_key=True, autoincrement=True)
	session_id = Column(String(100), unique=True, nullable=False, index=True)
	total_questions = Column(Integer, nullable=False)
	correct_answers = Column(Integer, nullable=False)
	wrong_answers = Column(Integer, nullable=False)
	accuracy_rate = Column(String(20), nullable=True)
	overall_value = Column(String(50), nullable=True)
	ai_analysis = Column(Text, nullable=True)
	recommendations = Column(Text, nullable=True)
	error_patterns = Column(Text, nullable=True)  # JSON array string
	difficulty_stats = Column(Text, nullable=True)  # JSON object string
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class ChatMessage(Base):
	__tablename__ = "chat_messages"
	id = Column(Integer, primary_key=True, autoincrement=True)
	session_id = Column(String(100), nullable=False, index=True)
	role = Column(String(20), nullable=False)  # user, assistant
	message = Column(Text, nullable=False)
	# Comma separated letter pairs, e.g. "b-d,m-w"
	training_recommendation = Column(Text, nullable=True)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

	__table_args__ = (
		Index("ix_chat_messages_session_created", "session_id", "created_at"),
	)
