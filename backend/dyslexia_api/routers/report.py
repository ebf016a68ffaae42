from __future__ import annotations
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from ..db import get_db
from ..deps import get_analyzer
from ..engines.analysis import SessionAnalyzer
from ..errors import AppError
from ..response import failed, from_error, success

router = APIRouter(prefix="/report", tags=["report"])


@router.get("/sessions/{session_id}")
async def session_report(
	session_id: str,
	db: Session = Depends(get_db),
	analyzer: SessionAnalyzer = Depends(get_analyzer),
):
	if not session_id.strip():
		return failed("Gagal generate report", {"session_id": "session_id is a required field"})
	try:
		report = await analyzer.generate_session_report(db, session_id)
	except AppError as e:
		return from_error("Gagal generate report", e)
	return success("Berhasil generate report", data=report)
