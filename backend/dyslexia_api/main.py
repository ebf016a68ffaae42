import logging
import time

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from .db import Base, SessionLocal, engine, ensure_schema
from .deps import Services
from .engines.analysis import SessionAnalyzer
from .engines.background import BackgroundRunner
from .engines.chat import ChatBot
from .engines.generation import QuestionGenerator
from .llm_client import build_llm_client
from .response import INTERNAL_ERROR, failed
from .routers import chatbot, questions, report
from .seeder import seed_question_bank
from .settings import settings

logging.basicConfig(
	level=getattr(logging, settings.log_level.upper(), logging.INFO),
	format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logging.getLogger("httpx").setLevel(logging.WARNING)
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.app_name)
app.add_middleware(
	CORSMiddleware,
	allow_origins=settings.cors_origin_list,
	allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
	allow_headers=["Origin", "Content-Type", "Accept", "Authorization"],
)
app.include_router(questions.router)
app.include_router(report.router)
app.include_router(chatbot.router)


@app.middleware("http")
async def access_log(request: Request, call_next):
	start = time.perf_counter()
	response = await call_next(request)
	elapsed_ms = (time.perf_counter() - start) * 1000
	logger.info("%s %s %d %.1fms", request.method, request.url.path, response.status_code, elapsed_ms)
	return response


def _validation_fields(exc: RequestValidationError) -> dict:
	fields = {}
	for err in exc.errors():
		loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")]
		name = ".".join(loc) or "body"
		if err.get("type") == "missing":
			fields[name] = f"{name} is a required field"
		else:
			fields[name] = str(err.get("msg", "invalid value")).removeprefix("Value error, ")
	return fields


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
	return failed("Data yang dikirim tidak valid", _validation_fields(exc), status_code=400)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
	logger.exception("Unhandled error on %s %s", request.method, request.url.path)
	return failed(INTERNAL_ERROR, INTERNAL_ERROR, status_code=500)


@app.get("/info")
def root():
	services = getattr(app.state, "services", None)
	return {"status": "ok", "llm_configured": bool(services and services.llm)}


def build_services() -> Services:
	llm = build_llm_client()
	background = BackgroundRunner(
		max_concurrency=settings.background_max_concurrency,
		timeout=settings.background_task_timeout_seconds,
	)
	analyzer = SessionAnalyzer(llm)
	return Services(
		llm=llm,
		background=background,
		generator=QuestionGenerator(llm, background, SessionLocal, ai_enabled=settings.ai_generation_enabled),
		analyzer=analyzer,
		chatbot=ChatBot(llm, analyzer),
	)


@app.on_event("startup")
async def startup_event():
	# Initialize DB schema
	Base.metadata.create_all(bind=engine)
	# Apply lightweight dev migrations
	ensure_schema()
	if settings.seed_on_startup:
		with SessionLocal() as db:
			seed_question_bank(db)
	app.state.services = build_services()
	logger.info("%s started (llm configured: %s)", settings.app_name, app.state.services.llm is not None)


@app.on_event("shutdown")
async def shutdown_event():
	services = getattr(app.state, "services", None)
	if services is None:
		return
	await services.background.drain(timeout=settings.background_task_timeout_seconds)
	if services.llm is not None:
		await services.llm.aclose()
