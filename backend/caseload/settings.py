from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

class Settings(BaseSettings):
	# Database
	database_url: str | None = Field(default=None, validation_alias="DATABASE_URL")

	# Derived-view cache (per caseload); entries older than the TTL read as absent
	cache_ttl_seconds: int = Field(default=120, validation_alias="CACHE_TTL_SECONDS")
	# Values serializing larger than this are not cached at all
	cache_max_entry_bytes: int = Field(default=9216, validation_alias="CACHE_MAX_ENTRY_BYTES")

	# Identity-scoped write lock (progress upsert, meeting save)
	lock_timeout_seconds: float = Field(default=10, validation_alias="LOCK_TIMEOUT_SECONDS")

	# Identity token issued by the hosting platform
	identity_secret_key: str = Field(default="change-me", validation_alias="IDENTITY_SECRET_KEY")
	identity_algorithm: str = Field(default="HS256", validation_alias="IDENTITY_ALGORITHM")

	# Supervisory sync across caseloads (disabled by default)
	oversight_sync_enabled: bool = Field(default=False, validation_alias="OVERSIGHT_SYNC_ENABLED")
	oversight_delay_seconds: float = Field(default=1.0, validation_alias="OVERSIGHT_DELAY_SECONDS")

	log_level: str = Field(default="INFO", validation_alias="CASELOAD_LOG_LEVEL")

	# pydantic-settings v2 style config
	model_config = SettingsConfigDict(env_file=".env", extra="ignore")

settings = Settings()
