"""Uniform relay result types.

Every failure on the chat path ends up as a RelayError, whatever its origin
(validation, configuration, upstream status, timeout ...). The API layer turns
it into ``{"error": ..., "details": ...}`` with ``status_code``.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, Optional


class RelayError(Exception):
    def __init__(self, status_code: int, message: str, details: Any = None):
        self.status_code = status_code
        self.message = message
        self.details = details
        super().__init__(message)

    def to_body(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body

    def __repr__(self) -> str:
        return f"RelayError(status_code={self.status_code}, message={self.message!r})"


@dataclass(frozen=True)
class ProviderReply:
    text: str
    model_used: str
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    def usage(self) -> Dict[str, int]:
        return {
            "promptTokens": self.prompt_tokens,
            "completionTokens": self.completion_tokens,
            "totalTokens": self.total_tokens,
        }


def error_message_from_body(body: Any) -> Optional[str]:
    """Provider-embedded error message (``{"error": {"message": ...}}``) if present."""
    if not isinstance(body, dict):
        return None
    err = body.get("error")
    if isinstance(err, dict):
        msg = err.get("message")
        if isinstance(msg, str) and msg.strip():
            return msg
    elif isinstance(err, str) and err.strip():
        return err
    return None
