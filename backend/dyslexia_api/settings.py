from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

class Settings(BaseSettings):
	app_name: str = Field(default="Dyslexia Reading Practice API", validation_alias="APP_NAME")
	log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
	# Comma separated list, "*" allows every origin
	cors_origins: str = Field(default="*", validation_alias="CORS_ORIGINS")

	# OpenAI-compatible chat completion endpoint
	llm_api_key: str | None = Field(default=None, validation_alias="LLM_API_KEY")
	llm_base_url: str = Field(default="https://api.openai.com/v1", validation_alias="LLM_BASE_URL")
	llm_model: str = Field(default="gpt-4o-mini", validation_alias="LLM_MODEL")
	llm_timeout_seconds: float = Field(default=30.0, validation_alias="LLM_TIMEOUT_SECONDS")

	# Optional secondary endpoint, used only when the primary call fails
	llm_fallback_api_key: str | None = Field(default=None, validation_alias="LLM_FALLBACK_API_KEY")
	llm_fallback_base_url: str = Field(default="https://openrouter.ai/api/v1", validation_alias="LLM_FALLBACK_BASE_URL")
	llm_fallback_model: str = Field(default="openai/gpt-4o-mini", validation_alias="LLM_FALLBACK_MODEL")

	# Set to false to serve only fallback words (no LLM calls for question generation)
	ai_generation_enabled: bool = Field(default=True, validation_alias="AI_GENERATION_ENABLED")

	# Fire-and-forget persistence
	background_task_timeout_seconds: float = Field(default=10.0, validation_alias="BACKGROUND_TASK_TIMEOUT_SECONDS")
	background_max_concurrency: int = Field(default=8, validation_alias="BACKGROUND_MAX_CONCURRENCY")

	# Database
	database_url: str | None = Field(default=None, validation_alias="DATABASE_URL")
	seed_on_startup: bool = Field(default=True, validation_alias="SEED_ON_STARTUP")

	# pydantic-settings v2 style config
	model_config = SettingsConfigDict(env_file=".env", extra="ignore")

	@property
	def cors_origin_list(self) -> list[str]:
		return [o.strip() for o in self.cors_origins.split(",") if o.strip()] or ["*"]

settings = Settings()
