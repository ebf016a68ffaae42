import asyncio
import json

import pytest

from conftest import NO_WAIT, FakeLLM, add_question, analysis_json, answer_all
from dyslexia_api.engines.analysis import (
    FALLBACK_ANALYSIS,
    FALLBACK_RECOMMENDATIONS,
    SessionAnalyzer,
    parse_analysis,
)
from dyslexia_api.engines.vocab import PerformanceLabel
from dyslexia_api.errors import NotFoundError
from dyslexia_api.llm_client import LLMError
from dyslexia_api.models import ChatMessage, SessionAnalysisCache


def seed_session(db, session_id="s1", user_id="u1"):
    add_question(db, "q1", "BOLA")
    add_question(db, "q2", "DADU")
    add_question(db, "q3", "MAMA", pair="m-w")
    add_question(db, "q4", "WAJA", pair="m-w", difficulty="medium")
    answer_all(db, user_id, session_id, [("q1", "BOLA"), ("q2", "BADU"), ("q3", "MAMA"), ("q4", "waja")])


def report_for(db, llm, session_id="s1"):
    return asyncio.run(SessionAnalyzer(llm, retry=NO_WAIT).generate_session_report(db, session_id))


def test_parse_analysis_label_aliases():
    _, _, label = parse_analysis(analysis_json(label="Excellent"))
    assert label is PerformanceLabel.ISTIMEWA


def test_parse_analysis_rejects_unknown_label():
    with pytest.raises(ValueError):
        parse_analysis(analysis_json(label="great"))


def test_session_without_answers_is_not_found(db):
    with pytest.raises(NotFoundError):
        report_for(db, FakeLLM(default=analysis_json()), "nobody")
    assert db.query(SessionAnalysisCache).count() == 0


def test_report_statistics(db):
    seed_session(db)

    report = report_for(db, FakeLLM(default=analysis_json()))

    assert report.total_questions == 4
    assert report.correct_answers == 3
    assert report.wrong_answers == 1
    assert report.accuracy_rate == "75.0%"
    assert report.overall_value == "sangat baik"
    assert report.difficulty_stats == {"easy": 3, "medium": 1}
    assert report.error_patterns[0].letter_pair == "b-d"
    assert report.error_patterns[0].error_rate == "50.0%"
    assert report.error_patterns[1].error_rate == "0.0%"
    assert report.previous_sessions == 0


def test_report_is_cached_and_opens_the_chat(db):
    seed_session(db)
    report_for(db, FakeLLM(default=analysis_json()))
    report_for(db, FakeLLM(default=analysis_json(label="baik")))

    cache = db.query(SessionAnalysisCache).filter_by(session_id="s1").one()
    assert cache.overall_value == "baik"
    assert json.loads(cache.error_patterns)[0]["letter_pair"] == "b-d"
    messages = db.query(ChatMessage).filter_by(session_id="s1").all()
    assert len(messages) == 1
    assert messages[0].role == "assistant"
    assert messages[0].training_recommendation == "b-d"


def test_unreachable_llm_uses_neutral_fallback(db):
    seed_session(db)
    llm = FakeLLM(default=LLMError("timeout"))

    report = report_for(db, llm)

    assert len(llm.prompts) == 3
    assert report.overall_value == "baik"
    assert report.ai_analysis == FALLBACK_ANALYSIS
    assert report.recommendations == FALLBACK_RECOMMENDATIONS
    assert report.accuracy_rate == "75.0%"


def test_invalid_output_is_retried(db):
    seed_session(db)
    llm = FakeLLM(script=["not json", analysis_json(label="nope")], default=analysis_json(label="cukup"))

    report = report_for(db, llm)

    assert len(llm.prompts) == 3
    assert report.overall_value == "cukup"


def test_report_without_llm(db):
    seed_session(db)
    assert report_for(db, None).overall_value == "baik"


def test_previous_sessions_are_included(db):
    seed_session(db, session_id="old")
    report_for(db, FakeLLM(default=analysis_json()), "old")
    answer_all(db, "u1", "new", [("q1", "DOLA")])
    llm = FakeLLM(default=analysis_json(label="perlu peningkatan"))

    report = report_for(db, llm, "new")

    assert report.previous_sessions == 1
    assert report.accuracy_rate == "0.0%"
    assert "3/4 correct (75.0%), overall sangat baik" in llm.prompts[0]
