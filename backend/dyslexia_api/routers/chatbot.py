from __future__ import annotations
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from ..db import get_db
from ..deps import get_chatbot
from ..engines.chat import ChatBot
from ..errors import AppError
from ..response import failed, from_error, success
from ..schemas import ChatRequest

router = APIRouter(prefix="/chatbot", tags=["chatbot"])


@router.post("/sessions/{session_id}")
async def send_message(
	session_id: str,
	req: ChatRequest,
	db: Session = Depends(get_db),
	chatbot: ChatBot = Depends(get_chatbot),
):
	if not session_id.strip():
		return failed("Gagal mengirim pesan ke chatbot", {"session_id": "session_id is a required field"})
	try:
		reply = await chatbot.chat_with_bot(db, session_id, req.message)
	except AppError as e:
		return from_error("Gagal mengirim pesan ke chatbot", e)
	return success("Berhasil mengirim pesan ke chatbot", data=reply)


@router.get("/sessions/{session_id}/history")
def chat_history(
	session_id: str,
	db: Session = Depends(get_db),
	chatbot: ChatBot = Depends(get_chatbot),
):
	if not session_id.strip():
		return failed("Gagal mendapatkan riwayat chat", {"session_id": "session_id is a required field"})
	return success("Berhasil mendapatkan riwayat chat", data=chatbot.get_chat_history(db, session_id))
