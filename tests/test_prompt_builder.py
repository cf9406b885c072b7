import pytest

from app.domain.provider_profiles import GEMINI, GROQ, OPENAI
from app.services.prompt_builder import build_messages

ACK = "Tôi hiểu."
DEFAULT_SYS = "You are a finance assistant."


def _build(profile, message="Hello", history=None, context=None):
    return build_messages(profile, message, history, context, ack_text=ACK, default_system_prompt=DEFAULT_SYS)


def _roles(msgs):
    return [m["role"] for m in msgs]


INVALID_HISTORY = [
    {"role": "user", "content": ""},
    {"role": "assistant", "content": "   \n"},
    {"role": "user"},
    {"role": "assistant", "content": 42},
    {"role": "tool", "content": "tool output"},
    {"content": "no role"},
    "not a dict",
    None,
]


def test_gemini_message_only():
    assert _build(GEMINI) == [{"role": "user", "content": "Hello"}]


def test_openai_message_only_has_no_system_turn():
    assert _build(OPENAI) == [{"role": "user", "content": "Hello"}]


def test_groq_message_only_gets_default_system_turn():
    assert _build(GROQ) == [
        {"role": "system", "content": DEFAULT_SYS},
        {"role": "user", "content": "Hello"},
    ]


@pytest.mark.parametrize("profile", [GEMINI, OPENAI])
def test_only_invalid_history_leaves_trailing_message(profile):
    assert _build(profile, history=INVALID_HISTORY) == [{"role": "user", "content": "Hello"}]


def test_non_list_history_is_ignored():
    assert _build(GEMINI, history={"role": "user", "content": "x"}) == [{"role": "user", "content": "Hello"}]
    assert _build(OPENAI, history="oops") == [{"role": "user", "content": "Hello"}]


def test_gemini_context_inserts_user_then_ack():
    msgs = _build(GEMINI, context="Income: 10M VND / month")
    assert msgs == [
        {"role": "user", "content": "Income: 10M VND / month"},
        {"role": "model", "content": ACK},
        {"role": "user", "content": "Hello"},
    ]


def test_gemini_blank_context_is_not_inserted():
    assert _build(GEMINI, context="   ") == [{"role": "user", "content": "Hello"}]


def test_gemini_maps_assistant_to_model_and_drops_system():
    history = [
        {"role": "system", "content": "be nice"},
        {"role": "user", "content": "How much did I spend?"},
        {"role": "assistant", "content": "About 2M."},
    ]
    assert _build(GEMINI, history=history) == [
        {"role": "user", "content": "How much did I spend?"},
        {"role": "model", "content": "About 2M."},
        {"role": "user", "content": "Hello"},
    ]


def test_gemini_same_role_runs_keep_first_turn():
    history = [
        {"role": "user", "content": "q1"},
        {"role": "user", "content": "q1 again"},
        {"role": "assistant", "content": "a1"},
        {"role": "model", "content": "a1 continued"},
        {"role": "user", "content": "q2"},
        {"role": "assistant", "content": "a2"},
    ]
    msgs = _build(GEMINI, history=history)
    assert [m["content"] for m in msgs] == ["q1", "a1", "q2", "a2", "Hello"]


def test_gemini_history_model_turn_right_after_ack_is_skipped():
    history = [
        {"role": "assistant", "content": "Welcome back!"},
        {"role": "user", "content": "q1"},
        {"role": "assistant", "content": "a1"},
    ]
    msgs = _build(GEMINI, history=history, context="ctx")
    assert _roles(msgs) == ["user", "model", "user", "model", "user"]
    assert msgs[1]["content"] == ACK
    assert msgs[2]["content"] == "q1"


def test_gemini_dangling_user_turn_yields_to_current_message():
    history = [
        {"role": "user", "content": "q1"},
        {"role": "assistant", "content": "a1"},
        {"role": "user", "content": "unanswered"},
    ]
    msgs = _build(GEMINI, history=history, message="q2")
    assert [m["content"] for m in msgs] == ["q1", "a1", "q2"]
    assert not any("unanswered" in m["content"] for m in msgs)


@pytest.mark.parametrize("history,context", [
    ([], None),
    ([{"role": "user", "content": "a"}, {"role": "user", "content": "b"}], None),
    ([{"role": "assistant", "content": "a"}, {"role": "assistant", "content": "b"}], "ctx"),
    ([{"role": "user", "content": "a"}, {"role": "assistant", "content": "b"},
      {"role": "user", "content": "c"}, {"role": "user", "content": "d"}], "ctx"),
    ([{"role": "model", "content": "a"}, {"role": "user", "content": "b"}], None),
    (INVALID_HISTORY + [{"role": "user", "content": "x"}], "ctx"),
])
def test_gemini_output_strictly_alternates(history, context):
    msgs = _build(GEMINI, history=history, context=context)
    roles = _roles(msgs)
    assert all(a != b for a, b in zip(roles, roles[1:]))
    assert msgs[-1] == {"role": "user", "content": "Hello"}
    if context:
        assert msgs[0] == {"role": "user", "content": context}
        assert msgs[1] == {"role": "model", "content": ACK}


def test_flat_context_becomes_single_leading_system_turn():
    history = [
        {"role": "user", "content": "q1"},
        {"role": "model", "content": "a1"},
        {"role": "user", "content": "q2"},
        {"role": "user", "content": "q2 again"},
        {"role": "tool", "content": "dropped"},
    ]
    msgs = _build(GROQ, history=history, context="Budget: 5M")
    assert msgs == [
        {"role": "system", "content": "Budget: 5M"},
        {"role": "user", "content": "q1"},
        {"role": "assistant", "content": "a1"},
        {"role": "user", "content": "q2"},
        {"role": "user", "content": "q2 again"},
        {"role": "user", "content": "Hello"},
    ]
    assert _roles(msgs).count("system") == 1


def test_flat_keeps_history_order_and_content_verbatim():
    history = [
        {"role": "assistant", "content": "  spaced  "},
        {"role": "user", "content": "q"},
        {"role": "system", "content": "note"},
    ]
    msgs = _build(OPENAI, history=history)
    assert msgs == [
        {"role": "assistant", "content": "  spaced  "},
        {"role": "user", "content": "q"},
        {"role": "system", "content": "note"},
        {"role": "user", "content": "Hello"},
    ]


def _leading_system_count(msgs):
    n = 0
    for m in msgs:
        if m["role"] != "system":
            break
        n += 1
    return n


def test_groq_history_system_at_head_folds_into_default_prompt():
    history = [
        {"role": "system", "content": "be brief"},
        {"role": "user", "content": "q1"},
        {"role": "assistant", "content": "a1"},
    ]
    msgs = _build(GROQ, history=history)
    assert msgs == [
        {"role": "system", "content": DEFAULT_SYS + "\n\nbe brief"},
        {"role": "user", "content": "q1"},
        {"role": "assistant", "content": "a1"},
        {"role": "user", "content": "Hello"},
    ]


def test_openai_history_system_at_head_folds_into_context():
    history = [
        {"role": "system", "content": "be brief"},
        {"role": "user", "content": "q1"},
    ]
    msgs = _build(OPENAI, history=history, context="Budget: 5M")
    assert msgs[0] == {"role": "system", "content": "Budget: 5M\n\nbe brief"}
    assert _leading_system_count(msgs) == 1
    assert msgs[1:] == [{"role": "user", "content": "q1"}, {"role": "user", "content": "Hello"}]


def test_openai_several_head_system_entries_become_one_turn():
    history = [
        {"role": "system", "content": "rule one"},
        {"role": "system", "content": "rule two"},
        {"role": "assistant", "content": "a0"},
    ]
    msgs = _build(OPENAI, history=history)
    assert msgs == [
        {"role": "system", "content": "rule one\n\nrule two"},
        {"role": "assistant", "content": "a0"},
        {"role": "user", "content": "Hello"},
    ]


@pytest.mark.parametrize("profile", [GROQ, OPENAI])
@pytest.mark.parametrize("context", [None, "Budget: 5M"])
def test_flat_never_has_more_than_one_leading_system_turn(profile, context):
    history = [
        {"role": "system", "content": "s1"},
        {"role": "system", "content": "s2"},
        {"role": "user", "content": "q1"},
        {"role": "system", "content": "later note"},
    ]
    msgs = _build(profile, history=history, context=context)
    assert _leading_system_count(msgs) == 1
    # a system entry after the conversation started stays where it was
    assert msgs[-2] == {"role": "system", "content": "later note"}
    assert msgs[-1] == {"role": "user", "content": "Hello"}


@pytest.mark.parametrize("profile", [GEMINI, GROQ, OPENAI])
def test_build_messages_is_idempotent(profile):
    history = [
        {"role": "user", "content": "q1"},
        {"role": "assistant", "content": "a1"},
        {"role": "user", "content": ""},
    ]
    first = _build(profile, history=history, context="ctx")
    second = _build(profile, history=history, context="ctx")
    assert first == second
    assert history[2] == {"role": "user", "content": ""}
