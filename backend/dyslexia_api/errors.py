from __future__ import annotations
from typing import Dict, Optional


class AppError(Exception):
	"""Base for failures that are reported to the client through the response envelope."""

	status_code = 400

	def __init__(self, message: str) -> None:
		super().__init__(message)
		self.message = message


class ValidationError(AppError):
	def __init__(self, fields: Dict[str, str], message: Optional[str] = None) -> None:
		super().__init__(message or "; ".join(f"{k}: {v}" for k, v in fields.items()))
		self.fields = fields


class NotFoundError(AppError):
	pass


class PersistenceError(AppError):
	status_code = 500


class ChatUnavailableError(AppError):
	status_code = 500
