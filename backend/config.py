"""
Runtime configuration, read once from the environment.

Keys may be defined in a .env file in the backend root:

ANTHROPIC_API_KEY=...   suggestions (falls back to a static message)
OPR_API_KEY=...         OpenPageRank domain authority
SERP_API_KEY=...        SerpApi search results (falls back to HTML keywords)

The app loads environment variables automatically using python-dotenv.
"""

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(dotenv_path=Path(__file__).resolve().parent / ".env")

TRUTHY = {"1", "true", "yes", "on"}
DEFAULT_PORT = 3000
DEFAULT_MAX_TOKENS = 1200


@dataclass(frozen=True)
class Settings:
    anthropic_api_key: str = ""
    claude_model: str = ""
    claude_max_tokens: int = DEFAULT_MAX_TOKENS
    opr_api_key: str = ""
    serp_api_key: str = ""
    lighthouse_path: str = "lighthouse"
    debug: bool = False
    port: int = DEFAULT_PORT


def _int_env(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, "").strip() or default)
    except ValueError:
        return default


def load_settings() -> Settings:
    """Build Settings from the current environment."""
    return Settings(
        anthropic_api_key=os.getenv("ANTHROPIC_API_KEY", "").strip(),
        claude_model=os.getenv("CLAUDE_MODEL", "").strip(),
        claude_max_tokens=_int_env("CLAUDE_MAX_TOKENS", DEFAULT_MAX_TOKENS),
        opr_api_key=os.getenv("OPR_API_KEY", "").strip(),
        serp_api_key=os.getenv("SERP_API_KEY", "").strip(),
        lighthouse_path=os.getenv("LIGHTHOUSE_PATH", "").strip() or "lighthouse",
        debug=os.getenv("DEBUG", "").strip().lower() in TRUTHY,
        port=_int_env("PORT", DEFAULT_PORT),
    )


@lru_cache
def get_settings() -> Settings:
    return load_settings()


def config_warnings(settings: Settings) -> list[str]:
    """Describe each missing credential and the feature it degrades."""
    warnings: list[str] = []
    if not settings.anthropic_api_key:
        warnings.append("ANTHROPIC_API_KEY is not set: suggestions will use the static fallback.")
    if not settings.opr_api_key:
        warnings.append("OPR_API_KEY is not set: domain rating lookups will likely be N/A.")
    if not settings.serp_api_key:
        warnings.append("SERP_API_KEY is not set: SERP-derived metrics will come from the page HTML.")
    return warnings
