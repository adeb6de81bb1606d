import os
from datetime import timedelta
from functools import lru_cache

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

from employee_api.services.backoff import BackoffConfig

load_dotenv()


class Settings(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # Upstream employee service
    employee_api_base_url: str = Field(
        default="http://localhost:8112/api/v1/employee", alias="EMPLOYEE_API_BASE_URL"
    )
    employee_api_timeout_ms: int = Field(
        default=5000, gt=0, alias="EMPLOYEE_API_TIMEOUT_MS"
    )

    # Retry Configuration
    retry_max_attempts: int = Field(
        default=5, ge=1, alias="EMPLOYEE_API_RETRY_MAX_ATTEMPTS"
    )
    retry_initial_delay_ms: int = Field(
        default=500, ge=0, alias="EMPLOYEE_API_RETRY_INITIAL_DELAY_MS"
    )
    retry_max_backoff_ms: int = Field(
        default=10000, ge=0, alias="EMPLOYEE_API_RETRY_MAX_BACKOFF_MS"
    )

    # Server Configuration
    api_prefix: str = Field(default="", alias="API_PREFIX")
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=8111, alias="PORT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    cache_debug: bool = Field(default=False, alias="CACHE_DEBUG")

    @property
    def timeout_seconds(self) -> float:
        return self.employee_api_timeout_ms / 1000

    def backoff_config(self) -> BackoffConfig:
        return BackoffConfig(
            max_attempts=self.retry_max_attempts,
            initial_delay=timedelta(milliseconds=self.retry_initial_delay_ms),
            max_backoff=timedelta(milliseconds=self.retry_max_backoff_ms),
        )


@lru_cache
def get_settings() -> Settings:
    return Settings.model_validate(dict(os.environ))
