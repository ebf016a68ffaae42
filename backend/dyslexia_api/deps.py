from __future__ import annotations
from dataclasses import dataclass
from typing import Optional
from fastapi import Request
from .engines.analysis import SessionAnalyzer
from .engines.background import BackgroundRunner
from .engines.chat import ChatBot
from .engines.generation import QuestionGenerator
from .llm_client import LLMClient


@dataclass
class Services:
	"""Process-wide collaborators built in the startup hook."""

	llm: Optional[LLMClient]
	background: BackgroundRunner
	generator: QuestionGenerator
	analyzer: SessionAnalyzer
	chatbot: ChatBot


def get_services(request: Request) -> Services:
	return request.app.state.services


def get_generator(request: Request) -> QuestionGenerator:
	return get_services(request).generator


def get_analyzer(request: Request) -> SessionAnalyzer:
	return get_services(request).analyzer


def get_chatbot(request: Request) -> ChatBot:
	return get_services(request).chatbot
