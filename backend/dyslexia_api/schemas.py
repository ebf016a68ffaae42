from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Question(BaseModel):
    """A multiple-choice question as returned to clients (camelCase on the wire)."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    difficulty: str
    question_text: str = Field(alias="questionText")
    target_letter_pair: str = Field(alias="targetLetterPair")
    target_letter: str = Field(alias="targetLetter")
    options: List[str]
    answer: Optional[str] = None
    hint: Optional[str] = None


class SubmitAnswerRequest(BaseModel):
    user_id: str = Field(min_length=1)
    session_id: str = Field(min_length=1)
    question_id: str = Field(min_length=1)
    answer: str = Field(min_length=1)


class SubmitAnswerResponse(BaseModel):
    is_correct: bool
    user_answer: str
    correct_answer: str
    question_id: str
    session_id: str


class UserAnswerLog(BaseModel):
    id: int
    question_id: str
    question_text: Optional[str] = None
    user_answer: str
    correct_answer: str
    is_correct: bool
    difficulty: Optional[str] = None
    target_letter_pair: Optional[str] = None
    answered_at: str


class ErrorPattern(BaseModel):
    letter_pair: str
    error_count: int
    total_count: int
    error_rate: str


class SessionReport(BaseModel):
    session_id: str
    user_id: str
    total_questions: int
    correct_answers: int
    wrong_answers: int
    accuracy_rate: str
    overall_value: str
    error_patterns: List[ErrorPattern]
    difficulty_stats: Dict[str, int]
    ai_analysis: str
    recommendations: str
    previous_sessions: int = 0


class ChatRequest(BaseModel):
    message: str = Field(min_length=1)

    @field_validator("message")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("message cannot be empty")
        return v


class ChatResponse(BaseModel):
    response: str
    session_id: str


class ChatHistoryItem(BaseModel):
    role: str
    message: str
    created_at: str
