"""
Engine settings module.
Reads runtime settings from the environment and provides a shared instance.
"""

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

# Load environment variables
load_dotenv()

DEFAULT_REQUEST_TYPES_PATH = str(Path(__file__).parent / "request_types.yaml")


class EngineSettings(BaseModel):
    """Runtime settings for the work request engine."""

    request_types_path: str = Field(
        default=DEFAULT_REQUEST_TYPES_PATH,
        description="Path to the request type rules YAML",
    )
    auto_match_min_score: float = Field(
        default=0.75, ge=0, le=1,
        description="Minimum similarity score for pre-populating a matched lost item",
    )
    detect_duplicate_claims: bool = Field(
        default=True,
        description="Convert competing item claims into a multi-enterprise dispute",
    )
    default_trust_score: float = Field(default=50.0, ge=0, le=100)

    @classmethod
    def from_env(cls) -> "EngineSettings":
        """
        Build settings from LOSTFOUND_* environment variables.

        Returns:
            EngineSettings: settings with environment overrides applied
        """
        return cls(
            request_types_path=os.getenv("REQUEST_TYPES_CONFIG_PATH", DEFAULT_REQUEST_TYPES_PATH),
            auto_match_min_score=float(os.getenv("LOSTFOUND_AUTO_MATCH_MIN_SCORE", "0.75")),
            detect_duplicate_claims=os.getenv("LOSTFOUND_DETECT_DUPLICATE_CLAIMS", "true").lower()
            in ("1", "true", "yes"),
            default_trust_score=float(os.getenv("LOSTFOUND_DEFAULT_TRUST_SCORE", "50.0")),
        )


class _SettingsHolder:
    """Singleton holder for the process-wide settings."""

    _instance: Optional[EngineSettings] = None

    @classmethod
    def get(cls) -> EngineSettings:
        if cls._instance is None:
            cls._instance = EngineSettings.from_env()
        return cls._instance


def get_settings() -> EngineSettings:
    """
    Get the shared engine settings.

    Returns:
        EngineSettings: settings loaded once from the environment
    """
    return _SettingsHolder.get()
