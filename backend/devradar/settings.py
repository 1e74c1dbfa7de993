"""Runtime configuration for the DevRadar proximity core, read from env / .env."""

from __future__ import annotations

from typing import Any, Literal, Optional, Tuple

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_DEV_ENVIRONMENTS = frozenset({"dev", "development", "local", "test"})


def _env_field(default, *env_names: str):
	if not env_names:
		return Field(default=default)
	alias = env_names[0] if len(env_names) == 1 else AliasChoices(*env_names)
	return Field(default=default, validation_alias=alias)


def _csv(value: Any) -> Tuple[str, ...]:
	if not value:
		return ()
	parts = value.split(",") if isinstance(value, str) else value
	return tuple(text for text in (str(part).strip() for part in parts) if text)


class Settings(BaseSettings):
	model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

	redis_url: str = _env_field("redis://localhost:6379/0", "REDIS_URL")
	redis_ping_timeout_seconds: float = _env_field(0.25, "REDIS_PING_TIMEOUT_SECONDS")
	# "redis" persists developer records in Redis hashes; "memory" keeps them in-process.
	developer_store: Literal["redis", "memory"] = _env_field("redis", "DEVELOPER_STORE")

	# Spatial index cell edge in degrees. ~0.1 deg is ~11km, close to the default search radius.
	spatial_cell_size_deg: float = _env_field(0.1, "SPATIAL_CELL_SIZE_DEG")
	distance_metric: Literal["haversine", "planar"] = _env_field("haversine", "DISTANCE_METRIC")
	default_search_radius_m: float = _env_field(10_000.0, "DEFAULT_SEARCH_RADIUS_M")
	max_search_radius_m: float = _env_field(500_000.0, "MAX_SEARCH_RADIUS_M")
	search_result_limit: int = _env_field(200, "SEARCH_RESULT_LIMIT")

	# Realtime fan-out
	snapshot_on_subscribe: bool = _env_field(True, "SNAPSHOT_ON_SUBSCRIBE")
	outbox_max_size: int = _env_field(256, "OUTBOX_MAX_SIZE")
	outbox_max_drops: int = _env_field(1024, "OUTBOX_MAX_DROPS")
	subscription_update_rate_limit: int = _env_field(10, "SUBSCRIPTION_UPDATE_RATE_LIMIT")
	subscription_update_window_seconds: int = _env_field(10, "SUBSCRIPTION_UPDATE_WINDOW_SECONDS")

	environment: str = _env_field("production", "ENV", "APP_ENV", "ENVIRONMENT")
	# Comma-separated in env; parsed by _parse_origins.
	cors_allow_origins: Any = _env_field((), "CORS_ALLOW_ORIGINS")

	# Observability
	obs_enabled: bool = _env_field(True, "OBS_ENABLED")
	obs_metrics_public: bool = _env_field(False, "OBS_METRICS_PUBLIC")
	obs_admin_token: Optional[str] = _env_field(None, "OBS_ADMIN_TOKEN")
	obs_log_level: str = _env_field("INFO", "LOG_LEVEL", "OBS_LOG_LEVEL")
	obs_log_sampling_rate_info: float = _env_field(0.1, "LOG_SAMPLING_RATE_INFO")
	service_name: str = _env_field("devradar-api", "SERVICE_NAME")
	git_commit: str = _env_field("unknown", "GIT_COMMIT", "SOURCE_VERSION")

	def is_dev(self) -> bool:
		return self.environment.strip().lower() in _DEV_ENVIRONMENTS

	@field_validator("cors_allow_origins", mode="before")
	@classmethod
	def _parse_origins(cls, value: Any) -> Tuple[str, ...]:
		return _csv(value)

	@field_validator("obs_log_level")
	@classmethod
	def _upper_level(cls, value: str) -> str:
		return value.strip().upper()

	@field_validator("spatial_cell_size_deg")
	@classmethod
	def _check_cell_size(cls, value: float) -> float:
		if not 0 < value <= 90:
			raise ValueError("spatial_cell_size_deg must be in (0, 90]")
		return value


settings = Settings()
