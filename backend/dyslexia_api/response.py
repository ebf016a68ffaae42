from __future__ import annotations
from typing import Any, Dict, Optional
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from .errors import AppError, ValidationError

INTERNAL_ERROR = "Internal Server Error"


def _envelope(success: bool, message: str, **parts: Any) -> Dict[str, Any]:
	body: Dict[str, Any] = {"success": success, "message": message}
	for key, value in parts.items():
		if value is not None:
			body[key] = value
	return body


def success(message: str, data: Any = None, meta: Optional[Dict[str, Any]] = None, status_code: int = 200) -> JSONResponse:
	body = _envelope(True, message, data=data, meta=meta)
	return JSONResponse(status_code=status_code, content=jsonable_encoder(body, exclude_none=True))


def failed(message: str, error: Any = None, status_code: int = 400) -> JSONResponse:
	return JSONResponse(status_code=status_code, content=jsonable_encoder(_envelope(False, message, error=error)))


def from_error(message: str, exc: AppError) -> JSONResponse:
	"""Envelope for a domain error; internal failures never leak their detail."""
	if isinstance(exc, ValidationError):
		return failed(message, exc.fields, status_code=exc.status_code)
	if exc.status_code >= 500:
		return failed(message, INTERNAL_ERROR, status_code=exc.status_code)
	return failed(message, exc.message, status_code=exc.status_code)
