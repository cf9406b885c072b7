"""Prompt builder for assembling provider-native conversation turns.

build_messages turns the provider-agnostic request (financial context, loose
chat history, current user message) into the ordered turn list one provider
accepts:

  - turn-alternating providers (Gemini): context -> user turn + model ack,
    assistant -> model, same-role runs collapsed to their first turn
  - flat role-list providers (OpenAI/Groq): context -> single leading system
    turn, model -> assistant, history kept in order

The current user message is always the last turn, so the result is never empty.
Output turns are ``{"role": <provider role>, "content": str}``; adapters wrap
them into the wire shape (e.g. Gemini ``parts``).
"""
from __future__ import annotations
from typing import Any, Dict, Iterable, List, Optional

from app.domain.provider_profiles import ProviderProfile

MessageDict = Dict[str, str]


def _has_text(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _iter_history(chat_history: Any) -> Iterable[Dict[str, Any]]:
    if not isinstance(chat_history, (list, tuple)):
        return []
    return [h for h in chat_history if isinstance(h, dict)]


def _context_turns(profile: ProviderProfile, financial_context: Optional[str], ack_text: str,
                   default_system_prompt: Optional[str]) -> List[MessageDict]:
    if profile.requires_alternation:
        if not _has_text(financial_context):
            return []
        # model ack keeps user/model alternation right from the start
        return [
            {"role": "user", "content": financial_context},
            {"role": "model", "content": ack_text},
        ]
    if _has_text(financial_context):
        return [{"role": "system", "content": financial_context}]
    if profile.uses_default_system_prompt and _has_text(default_system_prompt):
        return [{"role": "system", "content": default_system_prompt}]
    return []


def build_messages(
    profile: ProviderProfile,
    message: str,
    chat_history: Any = None,
    financial_context: Optional[str] = None,
    *,
    ack_text: str = "",
    default_system_prompt: Optional[str] = None,
) -> List[MessageDict]:
    msgs: List[MessageDict] = _context_turns(profile, financial_context, ack_text, default_system_prompt)

    for h in _iter_history(chat_history):
        content = h.get("content")
        if not _has_text(content):
            continue
        raw_role = h.get("role")
        role = profile.role_map.get(raw_role) if isinstance(raw_role, str) else None
        if role is None:
            continue
        if profile.requires_alternation and msgs and msgs[-1]["role"] == role:
            # keep only the first turn of a same-role run
            continue
        if role == "system" and all(m["role"] == "system" for m in msgs):
            # single leading system turn: fold head-of-history system content into it
            if msgs:
                msgs[0] = {"role": "system", "content": msgs[0]["content"] + "\n\n" + content}
            else:
                msgs.append({"role": "system", "content": content})
            continue
        msgs.append({"role": role, "content": content})

    # A dangling user history turn would sit next to the current message; it is discarded, not merged.
    if profile.requires_alternation and msgs and msgs[-1]["role"] == "user":
        msgs.pop()

    msgs.append({"role": "user", "content": message})
    return msgs
