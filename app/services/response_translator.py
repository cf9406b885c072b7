"""Translate adapter results into a ProviderReply or a RelayError.

Success path (each step is a precondition for the next):
  1. JSON object body                      else 500 (unexpected format)
  2. status 200                            else forwarded status, resolved message
  3. at least one candidate/choice         else 400 on safety block reason, 500 otherwise
  4. finish reason normal                  else warn; 400 on safety finish reason
  5. text present on the first candidate   else 500 with the candidate as details
  6. usage counters (default 0)

No-response failures: timeout -> 504, connection -> 503, anything else -> 500.
"""
from __future__ import annotations
from typing import Any, Optional

from app.domain.errors import ProviderReply, RelayError, error_message_from_body
from app.domain.provider_profiles import FieldPath, ProviderProfile
from app.services.llm_providers import (
    CONNECTION,
    TIMEOUT,
    AdapterResult,
    ProviderFailure,
    ProviderResponse,
)
from app.scripts.logging_config import get_logger, log_provider_failure

logger = get_logger("provider")

MAX_DETAIL_CHARS = 2000


def _dig(obj: Any, path: FieldPath) -> Any:
    cur = obj
    for key in path:
        if isinstance(key, int):
            if not isinstance(cur, list) or len(cur) <= key:
                return None
            cur = cur[key]
        else:
            if not isinstance(cur, dict):
                return None
            cur = cur.get(key)
    return cur


def _as_int(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def status_message(profile: ProviderProfile, status: int) -> Optional[str]:
    name = profile.display_name
    if status in (401, 403):
        return f"Invalid or unauthorized {name} API key"
    if status == 429:
        return f"{name} rate limit exceeded. Please try again later."
    if status >= 500:
        return f"{name} service is temporarily unavailable"
    return None


def resolve_error_message(profile: ProviderProfile, status: int, body: Any) -> str:
    return (
        error_message_from_body(body)
        or status_message(profile, status)
        or f"{profile.display_name} API request failed"
    )


def translate_failure(profile: ProviderProfile, failure: ProviderFailure) -> RelayError:
    name = profile.display_name
    log_provider_failure(profile.name, failure.kind, error=failure.message, logger=logger)
    if failure.kind == TIMEOUT:
        budget = f" after {failure.timeout:g}s" if failure.timeout else ""
        return RelayError(504, f"{name} API request timed out{budget}", details=failure.message)
    if failure.kind == CONNECTION:
        return RelayError(503, f"Unable to connect to {name} API", details=failure.message)
    return RelayError(500, "Internal server error", details=failure.message)


def _reply_from_body(profile: ProviderProfile, body: dict, model: str) -> ProviderReply:
    name = profile.display_name
    candidates = body.get(profile.candidates_field)
    if not isinstance(candidates, list) or not candidates:
        block_reason = _dig(body, profile.block_reason_path) if profile.block_reason_path else None
        if block_reason:
            logger.warning("%s prompt blocked reason=%s", profile.name, block_reason)
            log_provider_failure(profile.name, 200, body, error="safety_block", logger=logger)
            raise RelayError(400, f"Request was blocked by {name} content safety filters ({block_reason})",
                             details=body.get("promptFeedback"))
        log_provider_failure(profile.name, 200, body, error="no_candidates", logger=logger)
        raise RelayError(500, f"No response generated by {name}", details=body)

    candidate = candidates[0]
    finish = _dig(candidate, (profile.finish_reason_field,))
    if finish and finish not in profile.normal_finish_reasons:
        logger.warning("%s abnormal finish reason=%s", profile.name, finish)
        if finish in profile.safety_finish_reasons:
            log_provider_failure(profile.name, 200, candidate, error="safety_block", logger=logger)
            raise RelayError(400, f"Response was blocked by {name} content safety filters ({finish})",
                             details=candidate)

    text = _dig(candidate, profile.text_path)
    if not isinstance(text, str):
        log_provider_failure(profile.name, 200, candidate, error="missing_text", logger=logger)
        raise RelayError(500, f"{name} response did not contain any text", details=candidate)

    usage = body.get(profile.usage_field)
    prompt_key, completion_key, total_key = profile.usage_keys
    return ProviderReply(
        text=text,
        model_used=model,
        prompt_tokens=_as_int(_dig(usage, (prompt_key,))),
        completion_tokens=_as_int(_dig(usage, (completion_key,))),
        total_tokens=_as_int(_dig(usage, (total_key,))),
    )


def translate(profile: ProviderProfile, result: AdapterResult, model: str) -> ProviderReply:
    """Return the uniform success payload or raise RelayError."""
    if isinstance(result, ProviderFailure):
        raise translate_failure(profile, result)
    if not isinstance(result, ProviderResponse):
        raise RelayError(500, f"No response received from {profile.display_name}")

    if not result.is_json or not isinstance(result.body, dict):
        log_provider_failure(profile.name, result.status_code, result.body, error="non_json", logger=logger)
        raise RelayError(500, f"Unexpected response format from {profile.display_name}", details={
            "status": result.status_code,
            "contentType": result.content_type,
            "body": str(result.body)[:MAX_DETAIL_CHARS],
        })

    if result.status_code != 200:
        log_provider_failure(profile.name, result.status_code, result.body, logger=logger)
        raise RelayError(
            result.status_code,
            resolve_error_message(profile, result.status_code, result.body),
            details=result.body,
        )

    return _reply_from_body(profile, result.body, model)
