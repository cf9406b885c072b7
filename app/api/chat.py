from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from app.domain.errors import RelayError
from app.domain.provider_profiles import get_profile
from app.models.chat import ChatRequest, ChatResponse, ConnectivityResponse, ErrorResponse, Usage
from app.services.chat_relay import relay_chat
from config import Settings, get_settings
from app.scripts.logging_config import get_logger

logger = get_logger("chat")

router = APIRouter(prefix="/api", tags=["chat"])

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    429: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
    504: {"model": ErrorResponse},
}


@router.post("/chat", response_model=ChatResponse, responses=ERROR_RESPONSES)
def chat(req: ChatRequest, settings: Settings = Depends(get_settings)):
    try:
        reply = relay_chat(
            settings,
            req.message,
            chat_history=req.chatHistory,
            financial_context=req.financialContext,
            model=req.model,
        )
    except RelayError as e:
        logger.warning("chat.error status=%s error=%s", e.status_code, e.message)
        return JSONResponse(status_code=e.status_code, content=e.to_body())
    return ChatResponse(message=reply.text, model=reply.model_used, usage=Usage(**reply.usage()))


@router.get("/test-{provider}", response_model=ConnectivityResponse, response_model_exclude_none=True)
def test_provider(provider: str, settings: Settings = Depends(get_settings)):
    """Fire a fixed probe message through the configured provider."""
    if provider.lower() != settings.LLM_PROVIDER:
        body = ConnectivityResponse(success=False, error=f"Provider '{provider}' is not configured on this server",
                                    details={"configured": settings.LLM_PROVIDER})
        return JSONResponse(status_code=404, content=body.model_dump(exclude_none=True))
    try:
        reply = relay_chat(settings, settings.PROBE_MESSAGE, timeout=settings.LLM_PROBE_TIMEOUT_SECONDS)
    except RelayError as e:
        logger.warning("connectivity_test failed provider=%s status=%s error=%s", provider, e.status_code, e.message)
        body = ConnectivityResponse(success=False, error=e.message, details=e.details)
        return JSONResponse(status_code=e.status_code, content=body.model_dump(exclude_none=True))
    logger.info("connectivity_test ok provider=%s model=%s", provider, reply.model_used)
    return ConnectivityResponse(
        success=True,
        message=f"{get_profile(settings.LLM_PROVIDER).display_name} API connection successful",
        testResponse=reply.text,
        model=reply.model_used,
    )
