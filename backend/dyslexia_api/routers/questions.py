from __future__ import annotations
import logging
from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from ..db import get_db
from ..deps import get_generator
from ..engines.answers import get_session_answers, submit_answer
from ..engines.generation import QuestionGenerator, clamp_count
from ..errors import AppError
from ..response import failed, from_error, success
from ..schemas import SubmitAnswerRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/questions", tags=["questions"])


@router.get("/generate")
async def generate_questions(
	difficulty: str = Query(default="easy"),
	count: int = Query(default=1),
	include_answer: bool = Query(default=False, alias="includeAnswer"),
	pattern: Optional[List[str]] = Query(default=None),
	use_ai: bool = Query(default=True),
	session_id: Optional[str] = Query(default=None),
	db: Session = Depends(get_db),
	generator: QuestionGenerator = Depends(get_generator),
):
	requested = clamp_count(count)
	try:
		questions = await generator.generate(
			db,
			difficulty,
			requested,
			include_answer=include_answer,
			patterns=pattern or [],
			use_ai=use_ai,
			session_id=session_id,
		)
	except AppError as e:
		return from_error("Gagal generate pertanyaan", e)
	return success(
		"Berhasil generate pertanyaan",
		data=questions,
		meta={"requested": requested, "returned": len(questions)},
	)


@router.post("/answer")
def post_answer(req: SubmitAnswerRequest, db: Session = Depends(get_db)):
	try:
		result = submit_answer(db, req)
	except AppError as e:
		return from_error("Gagal submit jawaban", e)
	return success("Berhasil submit jawaban", data=result)


@router.get("/sessions/{session_id}")
def session_answers(session_id: str, db: Session = Depends(get_db)):
	if not session_id.strip():
		return failed("Gagal mendapatkan data session", {"session_id": "session_id is a required field"})
	try:
		answers = get_session_answers(db, session_id)
	except AppError as e:
		return from_error("Gagal mendapatkan data session", e)
	return success("Berhasil mendapatkan data session", data=answers)
