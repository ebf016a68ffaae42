from dyslexia_api.db import SessionLocal
from dyslexia_api.models import SessionAnalysisCache
from dyslexia_api.repository import QuestionRepository, format_rate


def cache_fields(label):
    return {
        "total_questions": 4,
        "correct_answers": 3,
        "wrong_answers": 1,
        "accuracy_rate": "75.0%",
        "overall_value": label,
        "ai_analysis": "analisis",
        "recommendations": "rekomendasi",
        "error_patterns": "[]",
        "difficulty_stats": "{}",
    }


def test_format_rate():
    assert format_rate(3, 4) == "75.0%"
    assert format_rate(1, 3) == "33.3%"
    assert format_rate(0, 0) == "0.0%"


def test_upsert_updates_existing_cache(db):
    repo = QuestionRepository(db)
    repo.upsert_analysis_cache("s1", cache_fields("baik"))
    repo.upsert_analysis_cache("s1", cache_fields("cukup"))

    rows = db.query(SessionAnalysisCache).filter_by(session_id="s1").all()
    assert [r.overall_value for r in rows] == ["cukup"]


def test_upsert_recovers_when_another_worker_inserted_first(db):
    repo = QuestionRepository(db)
    real_find = repo.find_analysis_cache
    lookups = []

    def stale_find(session_id):
        lookups.append(session_id)
        if len(lookups) == 1:
            # the concurrent insert lands between our lookup and our commit
            with SessionLocal() as other:
                QuestionRepository(other).upsert_analysis_cache(session_id, cache_fields("baik"))
            return None
        return real_find(session_id)

    repo.find_analysis_cache = stale_find

    row = repo.upsert_analysis_cache("s1", cache_fields("istimewa"))

    assert row.overall_value == "istimewa"
    assert len(lookups) == 2
    db.expire_all()
    rows = db.query(SessionAnalysisCache).filter_by(session_id="s1").all()
    assert [r.overall_value for r in rows] == ["istimewa"]
