import json
import os
import tempfile
from pathlib import Path

import pytest

# Must be in place before dyslexia_api.settings is imported
_TMP = Path(tempfile.mkdtemp(prefix="dyslexia-tests-"))
os.environ["DATABASE_URL"] = f"sqlite:///{_TMP / 'test.db'}"
os.environ["LLM_API_KEY"] = ""
os.environ["LLM_FALLBACK_API_KEY"] = ""
os.environ["SEED_ON_STARTUP"] = "false"
os.environ["LOG_LEVEL"] = "WARNING"

from dyslexia_api import models  # noqa: E402,F401
from dyslexia_api.db import Base, SessionLocal, engine  # noqa: E402
from dyslexia_api.engines.analysis import SessionAnalyzer  # noqa: E402
from dyslexia_api.engines.background import BackgroundRunner  # noqa: E402
from dyslexia_api.engines.chat import ChatBot  # noqa: E402
from dyslexia_api.engines.generation import QuestionGenerator  # noqa: E402
from dyslexia_api.engines.retry import RetryPolicy  # noqa: E402
from dyslexia_api.llm_client import LLMError  # noqa: E402


class FakeLLM:
    """Scripted stand-in for LLMClient.

    Each call consumes the next scripted item: a string is returned, an
    exception is raised. When the script is exhausted ``default`` is used.
    """

    def __init__(self, script=None, default=None, chat_script=None, chat_default="Hebat! Coba lagi ya."):
        self.script = list(script or [])
        self.default = default
        self.chat_script = list(chat_script or [])
        self.chat_default = chat_default
        self.prompts = []
        self.chat_calls = []
        self.closed = False

    @staticmethod
    def _next(queue, default):
        item = queue.pop(0) if queue else default
        if isinstance(item, BaseException):
            raise item
        if item is None:
            raise LLMError("no scripted response")
        return item

    async def generate_json(self, prompt):
        self.prompts.append(prompt)
        return self._next(self.script, self.default)

    async def chat(self, messages):
        self.chat_calls.append(list(messages))
        return self._next(self.chat_script, self.chat_default)

    async def aclose(self):
        self.closed = True


def question_json(correct, options):
    return json.dumps({"correctAnswer": correct, "options": options})


def analysis_json(analysis="Anak sudah berusaha dengan baik.", recommendations="Latih huruf b dan d.", label="sangat baik"):
    return json.dumps({"analysis": analysis, "recommendations": recommendations, "overall_value": label})


NO_WAIT = RetryPolicy(max_attempts=3, backoff=lambda attempt: 0)


@pytest.fixture(autouse=True)
def fresh_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_generator():
    """Build a generator inside the event loop that will run it."""

    def _make(llm=None, ai_enabled=True, seed=7):
        import random

        runner = BackgroundRunner(max_concurrency=4, timeout=5.0)
        return QuestionGenerator(llm, runner, SessionLocal, ai_enabled=ai_enabled, rng=random.Random(seed))

    return _make


@pytest.fixture
def make_chatbot():
    def _make(llm=None):
        analyzer = SessionAnalyzer(llm, retry=NO_WAIT)
        return ChatBot(llm, analyzer, retry=NO_WAIT), analyzer

    return _make


def add_question(db, question_id, correct, pair="b-d", difficulty="easy", options=None):
    row = models.GeneratedQuestion(
        question_id=question_id,
        difficulty=difficulty,
        question_text="Pilih kata yang benar: mana yang memakai huruf B?",
        target_letter_pair=pair,
        target_letter=correct[0],
        options=json.dumps(options or [correct, "DOLA", "KOLA", "SOLA"]),
        correct_answer=correct,
        generated_by="ai",
        usage_count=1,
    )
    db.add(row)
    db.commit()
    return row


def answer_all(db, user_id, session_id, results):
    """Submit one answer per (question_id, answer) pair through the engine."""
    from dyslexia_api.engines.answers import submit_answer
    from dyslexia_api.schemas import SubmitAnswerRequest

    return [
        submit_answer(db, SubmitAnswerRequest(user_id=user_id, session_id=session_id, question_id=qid, answer=answer))
        for qid, answer in results
    ]
