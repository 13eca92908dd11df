"""
Pipeline configuration via environment variables.
"""

import json
from functools import lru_cache
from typing import Any, Dict, List, Optional, Union

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings

from internscout.models import CandidateProfile


class Settings(BaseSettings):
    """Pipeline settings loaded from INTERNSCOUT_* environment variables."""

    # Storage
    db_path: str = "internscout.db"

    # Candidate profile (JSON file); built-in defaults when unset
    profile_path: Optional[str] = None

    # Polite scraping: randomized delay before each repeated request to one host
    min_delay_s: float = Field(default=2.0, ge=0.0)
    max_delay_s: float = Field(default=8.0, ge=0.0)

    # Retry policy
    max_attempts: int = Field(default=3, ge=1)
    backoff_base_s: float = Field(default=1.0, ge=0.0)
    backoff_max_s: float = Field(default=30.0, ge=0.0)

    # Timeouts and budgets
    request_timeout_s: float = Field(default=20.0, gt=0.0)
    provider_timeout_s: float = Field(default=45.0, gt=0.0)
    # Per-provider soft timeouts, e.g. {"indeed": 30}; others use their built-in default
    provider_timeouts: Dict[str, float] = {}
    run_budget_s: float = Field(default=60.0, gt=0.0)

    # Write volume cap per run
    max_new_per_run: int = Field(default=80, ge=0)

    # Optional allowlist. Empty => all built-in providers.
    # NOTE: Union[...] prevents pydantic-settings from JSON-decoding non-JSON env strings.
    enabled_providers: Union[str, List[str], None] = []

    # The Muse API key (optional, raises the rate limit)
    themuse_api_key: Optional[str] = None

    # Career boards per firm, e.g. {"Jane Street": "https://boards.greenhouse.io/janestreet"}
    career_boards: Dict[str, str] = {}

    # Session material for gated sources
    handshake_cookie: Optional[str] = None
    linkedin_cookie: Optional[str] = None

    @field_validator("enabled_providers", mode="before")
    @classmethod
    def parse_enabled_providers(cls, v: Any) -> List[str]:
        """Parse enabled providers from JSON string or comma-separated list."""
        if v is None:
            return []
        if isinstance(v, list):
            return [p.strip().lower() for p in v if isinstance(p, str) and p.strip()]
        if isinstance(v, str):
            if not v.strip():
                return []
            try:
                parsed = json.loads(v)
                if isinstance(parsed, list):
                    return [p.strip().lower() for p in parsed if isinstance(p, str) and p.strip()]
            except (json.JSONDecodeError, TypeError):
                pass
            return [p.strip().lower() for p in v.split(",") if p.strip()]
        return []

    @model_validator(mode="after")
    def check_delay_range(self) -> "Settings":
        if self.max_delay_s < self.min_delay_s:
            raise ValueError("max_delay_s must be >= min_delay_s")
        return self

    @field_validator("provider_timeouts")
    @classmethod
    def check_provider_timeouts(cls, v: Dict[str, float]) -> Dict[str, float]:
        if any(t <= 0 for t in v.values()):
            raise ValueError("provider timeouts must be positive")
        return {k.strip().lower(): t for k, t in v.items()}

    def load_profile(self) -> CandidateProfile:
        """Profile snapshot for one run."""
        if self.profile_path:
            return CandidateProfile.load(self.profile_path)
        return CandidateProfile()

    class Config:
        env_prefix = "INTERNSCOUT_"
        env_file = ".env"
        extra = "ignore"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
