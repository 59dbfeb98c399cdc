"""Configuration for the dental clinic console.

Domain constants live at module level; everything that depends on the
deployment (backend URL, timeouts, retry policy) is resolved once from the
environment into a ``ClientConfig`` and handed to the gateway explicitly.
"""
import os
from functools import lru_cache
from typing import Literal

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator

SLOT_MINUTES = 30
NOTES_MAX_LENGTH = 500

# Monday=0 ... Friday=4
WORKDAYS = (0, 1, 2, 3, 4)

MAIN_BRANCH = "principal"

CANCELLATION_REASONS = [
    "Solicitud del paciente",
    "Emergencia médica",
    "Doctor no disponible",
    "Reprogramación",
    "Paciente no se presentó",
    "Otro",
]

DEFAULT_API_BASE_URL = "http://localhost:5000/api"


class ClientConfig(BaseModel):
    """Process-wide client settings (immutable once built)."""

    api_base_url: str = Field(default=DEFAULT_API_BASE_URL, min_length=1)
    request_timeout: float = Field(default=10, ge=1, le=15)
    max_retries: int = Field(default=3, ge=0, le=10)
    backoff_factor: float = Field(default=1.0, ge=0)
    circuit_failure_threshold: int = Field(default=5, ge=1)
    circuit_timeout: int = Field(default=60, ge=0)
    calendar_seed_days: int = Field(default=30, ge=0, le=365)
    log_level: str = "INFO"
    report_source: Literal["local", "backend"] = "backend"
    export_dir: str = "."

    model_config = ConfigDict(frozen=True)

    @field_validator("api_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("log_level")
    @classmethod
    def normalize_level(cls, v: str) -> str:
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v}")
        return level

    @classmethod
    def from_env(cls) -> "ClientConfig":
        """
        Build configuration from ``.env`` and the process environment.

        Unset variables fall back to the field defaults.
        """
        load_dotenv()

        env_map = {
            "api_base_url": "CLINICA_API_URL",
            "request_timeout": "CLINICA_TIMEOUT",
            "max_retries": "CLINICA_MAX_RETRIES",
            "backoff_factor": "CLINICA_BACKOFF",
            "circuit_failure_threshold": "CLINICA_CB_THRESHOLD",
            "circuit_timeout": "CLINICA_CB_TIMEOUT",
            "calendar_seed_days": "CLINICA_CALENDAR_DAYS",
            "log_level": "LOG_LEVEL",
            "report_source": "CLINICA_REPORT_SOURCE",
            "export_dir": "CLINICA_EXPORT_DIR",
        }
        values = {
            field: os.getenv(var)
            for field, var in env_map.items()
            if os.getenv(var) not in (None, "")
        }
        return cls(**values)


@lru_cache(maxsize=1)
def get_config() -> ClientConfig:
    """Get the process configuration (resolved on first call only)."""
    return ClientConfig.from_env()
