from __future__ import annotations
from sqlalchemy import create_engine, inspect
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base
from .settings import settings


DATABASE_URL = settings.database_url or "sqlite:///./dyslexia.db"


def make_engine(url: str) -> Engine:
	connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
	return create_engine(url, connect_args=connect_args, future=True, pool_pre_ping=True)


engine = make_engine(DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)
Base = declarative_base()


def get_db():
	db = SessionLocal()
	try:
		yield db
	finally:
		db.close()


# Best-effort lightweight migrations for development (SQLite-friendly).
# Columns added after the first release are created here for existing databases.
def ensure_schema(bind: Engine | None = None) -> None:
	bind = bind or engine
	try:
		inspector = inspect(bind)
		tables = set(inspector.get_table_names())
	except Exception:
		return
	if "generated_questions" in tables:
		cols = {c["name"] for c in inspector.get_columns("generated_questions")}
		with bind.begin() as conn:
			if "hint" not in cols:
				conn.exec_driver_sql("ALTER TABLE generated_questions ADD COLUMN hint TEXT")
			if "usage_count" not in cols:
				conn.exec_driver_sql("ALTER TABLE generated_questions ADD COLUMN usage_count INTEGER DEFAULT 0 NOT NULL")
	if "chat_messages" in tables:
		cols = {c["name"] for c in inspector.get_columns("chat_messages")}
		with bind.begin() as conn:
			if "training_recommendation" not in cols:
				conn.exec_driver_sql("ALTER TABLE chat_messages ADD COLUMN training_recommendation TEXT")
