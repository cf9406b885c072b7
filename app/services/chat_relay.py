"""Single-request chat relay: validate -> normalize -> call provider -> translate.

Stateless; everything built here lives only for the current request.
"""
from __future__ import annotations
from typing import Any, Optional

from app.domain.errors import ProviderReply, RelayError
from app.domain.provider_profiles import get_profile
from app.services import response_translator
from app.services.llm_providers import get_llm
from app.services.prompt_builder import build_messages
from app.scripts.logging_config import get_logger

logger = get_logger("chat")


def relay_chat(
    settings,
    message: Any,
    chat_history: Any = None,
    financial_context: Optional[str] = None,
    model: Optional[str] = None,
    timeout: Optional[float] = None,
) -> ProviderReply:
    if not isinstance(message, str) or not message.strip():
        raise RelayError(400, "Message is required")

    profile = get_profile(settings.LLM_PROVIDER)
    if not settings.api_key_for(profile):
        logger.error("chat.config_error provider=%s api key missing", profile.name)
        raise RelayError(500, f"{profile.display_name} API key not configured")

    chosen_model = model.strip() if isinstance(model, str) and model.strip() else settings.model_for(profile)
    messages = build_messages(
        profile,
        message,
        chat_history,
        financial_context if isinstance(financial_context, str) else None,
        ack_text=settings.CONTEXT_ACK_TEXT,
        default_system_prompt=settings.DEFAULT_SYSTEM_PROMPT,
    )
    if not messages:
        raise RelayError(400, "No valid messages to send")

    try:
        llm = get_llm(settings, profile.name)
        logger.info("chat.llm_call provider=%s model=%s turns=%d", profile.name, chosen_model, len(messages))
        result = llm.generate(messages, chosen_model, timeout or settings.LLM_TIMEOUT_SECONDS)
        reply = response_translator.translate(profile, result, chosen_model)
    except RelayError:
        raise
    except Exception as e:
        logger.exception("chat.relay unexpected error provider=%s", profile.name)
        raise RelayError(500, "Internal server error", details=str(e))

    logger.info("chat.llm_done model=%s len=%d tokens=%d", reply.model_used, len(reply.text), reply.total_tokens)
    return reply
