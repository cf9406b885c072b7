from pydantic import BaseModel
from typing import Any, Optional

class ChatRequest(BaseModel):
    message: Optional[str] = None
    # [{role: 'user'|'assistant'|'system', content: str}, ...]
    # loosely typed: malformed entries are dropped during normalization
    chatHistory: Optional[Any] = None
    financialContext: Optional[str] = None
    model: Optional[str] = None

class Usage(BaseModel):
    promptTokens: int = 0
    completionTokens: int = 0
    totalTokens: int = 0

class ChatResponse(BaseModel):
    message: str
    model: str
    usage: Usage

class ErrorResponse(BaseModel):
    error: str
    details: Optional[Any] = None

class ConnectivityResponse(BaseModel):
    success: bool
    message: Optional[str] = None
    testResponse: Optional[str] = None
    model: Optional[str] = None
    error: Optional[str] = None
    details: Optional[Any] = None
