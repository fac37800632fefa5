"""Pick the response language from request headers and look up messages."""

import logging
from typing import Optional

from starlette.requests import Request

from bazaar.i18n.messages import DEFAULT_LANGUAGE, MESSAGES, SUPPORTED_LANGUAGES

logger = logging.getLogger(__name__)


def resolve_language(accept_language: Optional[str]) -> str:
    """
    Map an Accept-Language header value onto a supported language.

    Only the primary subtag of the first entry is considered
    ("en-US,en;q=0.9" -> "en"). Anything unsupported falls back to Spanish.
    """
    if not accept_language:
        return DEFAULT_LANGUAGE

    primary = accept_language.split(",")[0].split(";")[0].split("-")[0].strip().lower()
    if primary in SUPPORTED_LANGUAGES:
        return primary
    return DEFAULT_LANGUAGE


def get_language(request: Request) -> str:
    return resolve_language(request.headers.get("accept-language"))


def lookup(language: str, key: str, fallback: Optional[str] = None) -> str:
    """Look up a message key for a language; missing keys return fallback or the key."""
    message = MESSAGES.get(language, {}).get(key)
    if message:
        return message

    logger.warning(f"Missing translation for key: {key} in language: {language}")
    return fallback or key


def t(request: Request, key: str, fallback: Optional[str] = None) -> str:
    """Translate a message key into the caller's language."""
    return lookup(get_language(request), key, fallback)


def error_response(request: Request, key: str, fallback: Optional[str] = None) -> dict:
    return {"error": t(request, key, fallback)}
