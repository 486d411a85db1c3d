"""
Retry, backoff and fallback handling for AI provider calls.

``with_ai_error_handling`` wraps an async operation: retryable failures are
retried with (optionally exponential) backoff, and once attempts run out the
configured fallback behaviour decides between raising and returning ``None``.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, TypeVar

import httpx

from inflio.config import settings
from inflio.errors import AIError
from inflio.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

FALLBACK_DEFAULT = "default"
FALLBACK_THROW = "throw"
FALLBACK_SILENT = "silent"

RETRYABLE_NETWORK_CODES = ("ECONNREFUSED", "ETIMEDOUT", "ENOTFOUND")

RETRYABLE_MESSAGE_PATTERNS = (
    "rate limit",
    "timeout",
    "network",
    "temporary",
    "try again",
    "service unavailable",
)


@dataclass
class AIErrorOptions:
    """Options for ``with_ai_error_handling``; delays are in seconds."""

    max_retries: int = field(default_factory=lambda: settings.ai_max_retries)
    retry_delay: float = field(default_factory=lambda: settings.ai_retry_delay_seconds)
    exponential_backoff: bool = True
    fallback_behavior: str = FALLBACK_DEFAULT
    user_notification: bool = True
    context: Optional[str] = None


def _error_status(error: BaseException) -> Optional[int]:
    for attr in ("status", "status_code"):
        value = getattr(error, attr, None)
        if isinstance(value, int):
            return value
    response = getattr(error, "response", None)
    status_code = getattr(response, "status_code", None)
    if isinstance(status_code, int):
        return status_code
    return None


def is_retryable_error(error: Optional[BaseException]) -> bool:
    """Classify an error as transient (worth retrying) or permanent."""
    if not error:
        return False

    if isinstance(error, AIError):
        return error.retryable

    status = _error_status(error)
    if status is not None:
        return status == 429 or status >= 500

    code = getattr(error, "code", None)
    if isinstance(code, str) and code in RETRYABLE_NETWORK_CODES:
        return True
    if isinstance(error, (ConnectionError, TimeoutError, httpx.TransportError)):
        return True

    message = str(error).lower()
    return any(pattern in message for pattern in RETRYABLE_MESSAGE_PATTERNS)


def backoff_delay(attempt: int, retry_delay: float, exponential: bool = True) -> float:
    """Delay before retrying after the failure at 0-based ``attempt``."""
    if exponential:
        return retry_delay * (2 ** attempt)
    return retry_delay


def handle_ai_error(
    error: BaseException,
    context: Optional[str] = None,
    attempt: Optional[int] = None,
    max_attempts: Optional[int] = None,
    user_notification: bool = True,
) -> str:
    """
    Log a failed AI operation and build the message shown to the user.

    Returns the user-facing message; callers decide whether to surface it.
    """
    logger.error(
        "AI operation failed",
        context=context or "unknown",
        attempt=attempt,
        error=str(error),
        error_type=type(error).__name__,
    )

    message = str(error)
    if "rate limit" in message:
        user_message = "Too many requests. Please wait a moment and try again."
    elif "timeout" in message:
        user_message = "Request timed out. Please try again."
    elif "network" in message:
        user_message = "Network error. Please check your connection."
    elif attempt and max_attempts:
        user_message = f"AI service failed after {attempt} attempts. Please try again later."
    else:
        user_message = "AI service temporarily unavailable"

    if user_notification:
        logger.info("AI failure notification", context=context, message=user_message)
    return user_message


async def with_ai_error_handling(
    operation: Callable[[], Awaitable[T]],
    options: Optional[AIErrorOptions] = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> Optional[T]:
    """
    Run ``operation`` with retries.

    The operation is attempted at most ``max_retries + 1`` times. Between a
    failure at attempt ``i`` and the next attempt the wrapper waits
    ``retry_delay * 2**i`` seconds (``retry_delay`` without backoff).
    """
    options = options or AIErrorOptions()
    last_error: Optional[BaseException] = None
    attempts_made = 0

    for attempt in range(options.max_retries + 1):
        try:
            return await operation()
        except Exception as e:
            last_error = e
            attempts_made = attempt + 1
            is_last_attempt = attempt == options.max_retries

            if not is_retryable_error(e) or is_last_attempt:
                handle_ai_error(
                    e,
                    context=options.context,
                    attempt=attempt + 1,
                    max_attempts=options.max_retries + 1,
                    user_notification=(
                        options.user_notification
                        and options.fallback_behavior != FALLBACK_SILENT
                    ),
                )
                break

            delay = backoff_delay(attempt, options.retry_delay, options.exponential_backoff)
            logger.warning(
                "Retrying AI operation",
                context=options.context,
                attempt=attempt + 1,
                max_retries=options.max_retries,
                delay=delay,
                error=str(e),
            )
            await sleep(delay)

    if options.fallback_behavior == FALLBACK_THROW:
        raise AIError(
            f"AI operation failed after {attempts_made} attempts: {last_error}",
            original_error=last_error,
            retryable=False,
        )
    return None


def get_ai_fallback(operation: str, context: Optional[Dict[str, Any]] = None) -> Any:
    """Canned content used when an AI operation gives up."""
    context = context or {}
    title = context.get("title")
    description = context.get("description")

    fallbacks: Dict[str, Any] = {
        "caption": {
            "instagram": (
                f"✨ {title or 'Amazing content'} ✨\n\n"
                f"{description or 'Check this out!'}\n\n#content #creator #viral"
            ),
            "x": f"{title or 'New post'} 🚀\n\n{description or 'Thread below 👇'}",
            "linkedin": (
                f"{title or 'Professional Update'}\n\n"
                f"{description or 'Sharing insights from my latest work.'}\n\n"
                "#professional #business"
            ),
            "tiktok": (
                f"{title or 'Wait for it...'} 😱\n\n"
                f"{description or 'You won’t believe this!'}\n\n#fyp #viral #trending"
            ),
            "youtube": (
                f"{title or 'New Video'}\n\n"
                f"{description or 'Full video description here.'}\n\n"
                "Don't forget to like and subscribe! 🔔"
            ),
            "facebook": (
                f"{title or 'Update'}\n\n"
                f"{description or 'Sharing something interesting with you all.'}\n\n"
                "What are your thoughts?"
            ),
            "threads": f"{title or 'Quick thought'} 💭\n\n{description or 'Let’s discuss!'}",
        },
        "schedule": [
            {"hour": 9, "minute": 0, "reason": "Morning engagement peak", "score": 85},
            {"hour": 12, "minute": 30, "reason": "Lunch break browsing", "score": 90},
            {"hour": 18, "minute": 0, "reason": "Evening wind-down", "score": 95},
        ],
        "hashtags": {
            "default": ["content", "creator", "viral", "trending", "2024"],
            "instagram": ["instagood", "instadaily", "photooftheday", "reels", "explore"],
            "tiktok": ["fyp", "foryoupage", "viral", "trending", "tiktokcreator"],
            "youtube": ["youtube", "youtuber", "subscribe", "video", "content"],
        },
        "summary": "AI-generated summary unavailable. Please try again later.",
        "transcription": {"text": "[Transcription unavailable]", "segments": []},
    }

    return fallbacks.get(operation)


_TYPE_CHECKS: Dict[str, Callable[[Any], bool]] = {
    "string": lambda v: isinstance(v, str),
    "number": lambda v: isinstance(v, (int, float)) and not isinstance(v, bool),
    "boolean": lambda v: isinstance(v, bool),
    "array": lambda v: isinstance(v, list),
    "object": lambda v: isinstance(v, dict),
}


def validate_ai_response(
    response: Any,
    required_fields: Optional[List[str]] = None,
    properties: Optional[Dict[str, str]] = None,
) -> bool:
    """
    Check an AI JSON response against required keys and expected JSON types.

    ``properties`` maps field name to one of ``string``, ``number``,
    ``boolean``, ``array`` or ``object``. Absent optional fields pass.
    """
    if not isinstance(response, dict):
        return False

    for name in required_fields or []:
        if name not in response or response[name] is None:
            logger.warning("AI response missing required field", field=name)
            return False

    for name, expected in (properties or {}).items():
        if name not in response:
            continue
        check = _TYPE_CHECKS.get(expected)
        if check and not check(response[name]):
            logger.warning(
                "AI response field has wrong type", field=name, expected=expected
            )
            return False

    return True
