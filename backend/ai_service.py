"""
AI remediation suggestions for a finished audit.

Claude API key must be defined in a .env file in the backend root:

ANTHROPIC_API_KEY=your_real_key_here

Without a key, or when every call fails, the audit carries a static message.
"""

import json
import logging
import random
import time

from anthropic import Anthropic, APIConnectionError, APIStatusError

from config import Settings

logger = logging.getLogger(__name__)

FALLBACK_SUGGESTIONS = "No suggestions available"

DEFAULT_MODELS = [
    "claude-3-5-sonnet-latest",
    "claude-3-haiku-20240307",
]
TEMPERATURE = 0.2
MAX_RETRIES = 2
RETRY_BASE_SECONDS = 1.0
# Per request. The SDK does not retry on its own; the loop in _call_claude does.
REQUEST_TIMEOUT_SECONDS = 20
RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504, 529}

SYSTEM_MESSAGE = """You are a senior technical SEO consultant.
You review automated single-page SEO audits and explain how to fix what failed.
Be specific to the audited page and never pad the answer with generic advice."""

USER_TEMPLATE = """This is a categorized website SEO audit.
URL: {url}
Score: {score} ({grade})
Categories: {categories}

Suggest fixes only for FAILED checks.
Keep recommendations actionable and concise."""


def _model_candidates(settings: Settings) -> list[str]:
    models = [settings.claude_model, *DEFAULT_MODELS]
    return list(dict.fromkeys(m for m in models if m))


def build_prompt(url: str, score: int, grade: str, categories: dict) -> str:
    return USER_TEMPLATE.format(
        url=url,
        score=score,
        grade=grade,
        categories=json.dumps(categories, indent=2, default=str),
    )


def _response_text(response) -> str:
    """Concatenated text blocks; tool-use and other block types carry no text."""
    return "".join(getattr(block, "text", "") or "" for block in response.content or []).strip()


def _is_retryable_error(exc: Exception) -> bool:
    # Connection failures include request timeouts.
    if isinstance(exc, APIConnectionError):
        return True
    return isinstance(exc, APIStatusError) and exc.status_code in RETRYABLE_STATUS_CODES


def _call_claude(client: Anthropic, user_message: str, settings: Settings) -> str:
    last_error: Exception | None = None

    for model in _model_candidates(settings):
        for attempt in range(MAX_RETRIES):
            try:
                response = client.messages.create(
                    model=model,
                    max_tokens=settings.claude_max_tokens,
                    system=SYSTEM_MESSAGE,
                    messages=[{"role": "user", "content": user_message}],
                    temperature=TEMPERATURE,
                )
                content = _response_text(response)
                if getattr(response, "stop_reason", None) == "max_tokens":
                    logger.warning("Claude output hit max_tokens for model=%s", model)
                if content:
                    return content
                last_error = RuntimeError("Empty Claude response content.")
            except Exception as e:
                last_error = e
                if not _is_retryable_error(e):
                    break
            if attempt < MAX_RETRIES - 1:
                delay = RETRY_BASE_SECONDS * (2 ** attempt) + random.uniform(0, 0.35)
                logger.info("Claude retry: model=%s attempt=%d wait=%.2fs", model, attempt + 1, delay)
                time.sleep(delay)

    if last_error is not None:
        raise last_error
    return ""


def generate_suggestions(url: str, score: int, grade: str, categories: dict, settings: Settings) -> str:
    """
    Ask Claude for fixes to the failed checks.
    Returns FALLBACK_SUGGESTIONS when no key is configured or on any failure. Never raises.
    """
    if not settings.anthropic_api_key:
        return FALLBACK_SUGGESTIONS

    try:
        client = Anthropic(
            api_key=settings.anthropic_api_key,
            timeout=REQUEST_TIMEOUT_SECONDS,
            max_retries=0,
        )
        content = _call_claude(client, build_prompt(url, score, grade, categories), settings)
    except Exception as e:
        logger.warning("AI suggestion failed: %s", e)
        return FALLBACK_SUGGESTIONS

    if settings.debug:
        logger.debug("Raw Claude response: %s", content)
    return content or FALLBACK_SUGGESTIONS
