"""Static provider profiles: the API contract of each supported LLM provider.

A profile carries everything the normalizer / adapter / translator need to know
about one provider, so the relay code itself never branches on provider names.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Optional, Tuple

ALTERNATING = "alternating"  # strict user/model turns (Gemini)
FLAT = "flat"                # system/user/assistant role list (OpenAI, Groq)

# Gemini harm categories; threshold is permissive but not BLOCK_NONE
GEMINI_HARM_CATEGORIES = [
    "HARM_CATEGORY_HARASSMENT",
    "HARM_CATEGORY_HATE_SPEECH",
    "HARM_CATEGORY_SEXUALLY_EXPLICIT",
    "HARM_CATEGORY_DANGEROUS_CONTENT",
]
GEMINI_SAFETY_THRESHOLD = "BLOCK_ONLY_HIGH"

FieldPath = Tuple[Any, ...]


@dataclass(frozen=True)
class ProviderProfile:
    name: str
    display_name: str
    family: str
    settings_prefix: str  # GEMINI -> GEMINI_API_KEY / GEMINI_MODEL_NAME / GEMINI_BASE_URL
    auth_scheme: str      # "query" | "bearer"
    role_map: Dict[str, str]
    candidates_field: str
    text_path: FieldPath
    finish_reason_field: str
    normal_finish_reasons: FrozenSet[str]
    safety_finish_reasons: FrozenSet[str]
    usage_field: str
    usage_keys: Tuple[str, str, str]  # prompt, completion, total
    generation_config: Dict[str, Any] = field(default_factory=dict)
    block_reason_path: Optional[FieldPath] = None
    uses_default_system_prompt: bool = False

    @property
    def requires_alternation(self) -> bool:
        return self.family == ALTERNATING

    def safety_settings(self):
        if self.family != ALTERNATING:
            return []
        return [{"category": c, "threshold": GEMINI_SAFETY_THRESHOLD} for c in GEMINI_HARM_CATEGORIES]


GEMINI = ProviderProfile(
    name="gemini",
    display_name="Gemini",
    family=ALTERNATING,
    settings_prefix="GEMINI",
    auth_scheme="query",
    role_map={"user": "user", "assistant": "model", "model": "model"},
    candidates_field="candidates",
    text_path=("content", "parts", 0, "text"),
    finish_reason_field="finishReason",
    normal_finish_reasons=frozenset({"STOP"}),
    safety_finish_reasons=frozenset({"SAFETY", "PROHIBITED_CONTENT", "BLOCKLIST", "SPII"}),
    usage_field="usageMetadata",
    usage_keys=("promptTokenCount", "candidatesTokenCount", "totalTokenCount"),
    generation_config={"temperature": 0.7, "maxOutputTokens": 500, "topP": 0.8, "topK": 40},
    block_reason_path=("promptFeedback", "blockReason"),
)

_FLAT_ROLES = {"system": "system", "user": "user", "assistant": "assistant", "model": "assistant"}
_FLAT_GENERATION = {"temperature": 0.7, "max_tokens": 500}

GROQ = ProviderProfile(
    name="groq",
    display_name="Groq",
    family=FLAT,
    settings_prefix="GROQ",
    auth_scheme="bearer",
    role_map=_FLAT_ROLES,
    candidates_field="choices",
    text_path=("message", "content"),
    finish_reason_field="finish_reason",
    normal_finish_reasons=frozenset({"stop"}),
    safety_finish_reasons=frozenset({"content_filter"}),
    usage_field="usage",
    usage_keys=("prompt_tokens", "completion_tokens", "total_tokens"),
    generation_config=_FLAT_GENERATION,
    uses_default_system_prompt=True,
)

OPENAI = ProviderProfile(
    name="openai",
    display_name="OpenAI",
    family=FLAT,
    settings_prefix="OPENAI",
    auth_scheme="bearer",
    role_map=_FLAT_ROLES,
    candidates_field="choices",
    text_path=("message", "content"),
    finish_reason_field="finish_reason",
    normal_finish_reasons=frozenset({"stop"}),
    safety_finish_reasons=frozenset({"content_filter"}),
    usage_field="usage",
    usage_keys=("prompt_tokens", "completion_tokens", "total_tokens"),
    generation_config=_FLAT_GENERATION,
)

PROFILES: Dict[str, ProviderProfile] = {p.name: p for p in (GEMINI, GROQ, OPENAI)}


def get_profile(name: str) -> ProviderProfile:
    try:
        return PROFILES[(name or "").strip().lower()]
    except KeyError:
        raise ValueError(f"unsupported_provider:{name}")
