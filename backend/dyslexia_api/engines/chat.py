from __future__ import annotations

import json
import logging
from typing import Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..errors import ChatUnavailableError, ValidationError
from ..llm_client import LLMClient
from ..models import SessionAnalysisCache
from ..repository import QuestionRepository
from ..schemas import ChatHistoryItem, ChatResponse
from .analysis import SessionAnalyzer
from .retry import RetryPolicy

logger = logging.getLogger(__name__)

CONTEXT_MESSAGES = 10
HISTORY_LIMIT = 50


def _error_pattern_lines(raw: Optional[str]) -> List[str]:
    try:
        patterns = json.loads(raw or "[]")
    except ValueError:
        return []
    lines = []
    for p in patterns:
        if not isinstance(p, dict):
            continue
        lines.append(
            f"- {p.get('letter_pair')}: {p.get('error_count')} salah dari {p.get('total_count')} soal ({p.get('error_rate')})"
        )
    return lines


def build_system_prompt(cache: SessionAnalysisCache) -> str:
    patterns = _error_pattern_lines(cache.error_patterns) or ["- belum ada data pasangan huruf"]
    return "\n".join(
        [
            "Kamu adalah teman belajar yang ramah untuk anak disleksia di Indonesia (TK-SD).",
            "Kamu bisa berbicara dengan anak maupun orang tua atau guru yang mendampingi.",
            "",
            "Hasil sesi latihan terakhir:",
            f"- Jumlah soal: {cache.total_questions}",
            f"- Jawaban benar: {cache.correct_answers}",
            f"- Jawaban salah: {cache.wrong_answers}",
            f"- Akurasi: {cache.accuracy_rate}",
            f"- Nilai keseluruhan: {cache.overall_value}",
            "Kesalahan per pasangan huruf:",
            *patterns,
            "",
            f"Analisis: {cache.ai_analysis}",
            f"Rekomendasi: {cache.recommendations}",
            "",
            "Aturan menjawab:",
            "- Selalu memberi semangat dan pujian atas usaha anak",
            "- Gunakan kalimat pendek dan kata-kata sederhana",
            "- Jangan langsung memberi jawaban soal; berikan petunjuk kecil",
            "- Boleh memakai emoji, tapi secukupnya",
            "- Jawab dalam Bahasa Indonesia",
        ]
    )


class ChatBot:
    def __init__(
        self,
        llm: Optional[LLMClient],
        analyzer: SessionAnalyzer,
        retry: Optional[RetryPolicy] = None,
    ) -> None:
        self.llm = llm
        self.analyzer = analyzer
        self.retry = retry or RetryPolicy()

    async def chat_with_bot(self, db: Session, session_id: str, message: str) -> ChatResponse:
        text = (message or "").strip()
        if not text:
            raise ValidationError({"message": "message cannot be empty"})

        repo = QuestionRepository(db)
        cache = repo.find_analysis_cache(session_id)
        if cache is None:
            # first chat of a session builds the report it talks about
            await self.analyzer.generate_session_report(db, session_id)
            cache = repo.find_analysis_cache(session_id)
            if cache is None:
                raise ChatUnavailableError("session report is not available")

        messages: List[Dict[str, str]] = [{"role": "system", "content": build_system_prompt(cache)}]
        for row in repo.recent_chat_messages(session_id, CONTEXT_MESSAGES):
            messages.append({"role": row.role, "content": row.message})
        messages.append({"role": "user", "content": text})

        if self.llm is None:
            raise ChatUnavailableError("chatbot is not configured")
        llm = self.llm

        async def attempt() -> str:
            reply = (await llm.chat(messages)).strip()
            if not reply:
                raise ValueError("empty chat reply")
            return reply

        try:
            reply = await self.retry.run(attempt, label=f"chat {session_id}")
        except Exception as exc:
            logger.error("Chat reply failed for session %s: %s", session_id, exc)
            raise ChatUnavailableError("chatbot is unavailable, please try again later") from exc

        try:
            repo.create_chat_message(session_id, "user", text)
            repo.create_chat_message(session_id, "assistant", reply)
        except SQLAlchemyError as exc:
            logger.warning("Could not store chat exchange for session %s: %s", session_id, exc)

        return ChatResponse(response=reply, session_id=session_id)

    def get_chat_history(self, db: Session, session_id: str) -> List[ChatHistoryItem]:
        rows = QuestionRepository(db).recent_chat_messages(session_id, HISTORY_LIMIT)
        return [
            ChatHistoryItem(role=row.role, message=row.message, created_at=row.created_at.isoformat())
            for row in rows
        ]
