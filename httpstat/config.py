from datetime import timedelta
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from httpstat.history import HistoryOptions


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    namespace: str = Field(default="", alias="HTTPSTAT_NAMESPACE")
    history_enabled: bool = Field(default=False, alias="HTTPSTAT_HISTORY_ENABLED")
    sample_interval_s: float = Field(default=5.0, alias="HTTPSTAT_SAMPLE_INTERVAL_S")
    retention_window_s: float = Field(default=300.0, alias="HTTPSTAT_RETENTION_WINDOW_S")
    excluded_paths: list[str] = Field(default_factory=lambda: ["/stats", "/stats/counters", "/stats/history"], alias="HTTPSTAT_EXCLUDED_PATHS")
    enable_stats_endpoint: bool = Field(default=True, alias="ENABLE_STATS_ENDPOINT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    history_log_level: str | None = Field(default=None, alias="HTTPSTAT_HISTORY_LOG_LEVEL")

    def history_options(self) -> HistoryOptions:
        return HistoryOptions(
            enabled=self.history_enabled,
            sample_interval=timedelta(seconds=self.sample_interval_s),
            retention_window=timedelta(seconds=self.retention_window_s),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
