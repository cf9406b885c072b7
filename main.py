# main.py
import uuid
from datetime import datetime, timezone
from time import time

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from config import Settings, get_settings, settings
from app.domain.provider_profiles import PROFILES, get_profile
from app.scripts.logging_config import setup_logging, get_logger, set_request_id

# 1) 로깅 설정(최우선)
# 운영 환경에서 JSON 로그를 원하면 LOG_JSON=true
setup_logging(json_fmt=settings.LOG_JSON, log_dir=settings.LOG_DIR)
logger = get_logger(__name__)

STARTED_AT = time()

# 2) FastAPI 앱
app = FastAPI(title="Financial Chat Relay API")

# 3) 요청 로깅 미들웨어
@app.middleware("http")
async def log_requests(request: Request, call_next):
    rid = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:12]
    set_request_id(rid)

    start = time()
    path = request.url.path
    method = request.method
    client_ip = getattr(request.client, 'host', '-') if request.client else '-'
    ua = request.headers.get('user-agent', '')[:120]

    logger.info("REQ start %s %s ip=%s ua=%r", method, path, client_ip, ua)
    response = None
    try:
        response = await call_next(request)
        response.headers["X-Request-ID"] = rid
        return response
    finally:
        duration = (time() - start) * 1000
        status = getattr(response, 'status_code', 'NA')
        logger.info("REQ end %s %s status=%s %.1fms", method, path, status, duration)

# 4) 요청 body 검증 실패도 {error, details} 형태로 응답
@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    details = [{"loc": list(err.get("loc", ())), "msg": err.get("msg")} for err in exc.errors()]
    logger.warning("request validation failed path=%s errors=%s", request.url.path, details)
    return JSONResponse(status_code=400, content={"error": "Invalid request body", "details": details})

# 5) CORS
from fastapi.middleware.cors import CORSMiddleware

allowed_origins = [o.strip() for o in settings.CORS_ALLOW_ORIGINS.split(",") if o.strip()] or ["*"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=allowed_origins != ["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)
logger.info("CORS middleware configured for %s", allowed_origins)

# 6) 라우터
from app.api import chat

app.include_router(chat.router)

# 7) 엔드포인트
@app.get("/")
def root():
    return {"message": "Financial chat relay", "routes": [
        "/health",
        "/api/chat",
        f"/api/test-{settings.LLM_PROVIDER}",
    ]}

@app.get("/health")
def health(cfg: Settings = Depends(get_settings)):
    body = {
        "status": "OK",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "uptimeSeconds": round(time() - STARTED_AT, 3),
        "provider": cfg.LLM_PROVIDER,
        "model": cfg.model_for(get_profile(cfg.LLM_PROVIDER)),
    }
    for name, profile in PROFILES.items():
        body[f"{name}Configured"] = bool(cfg.api_key_for(profile))
    return body


_active = get_profile(settings.LLM_PROVIDER)
logger.info("Relay configured provider=%s model=%s api_key=%s port=%s",
            _active.name, settings.model_for(_active),
            "configured" if settings.api_key_for(_active) else "MISSING", settings.PORT)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=settings.PORT)
