"""Unit tests for history curation and thought-signature handling."""

import random

import pytest

from resilient_chat.chat.history import (
    ensure_active_loop_has_thought_signatures,
    extract_curated_history,
    find_active_loop_start,
    strip_thoughts,
    validate_history,
)
from resilient_chat.config import SYNTHETIC_THOUGHT_SIGNATURE
from resilient_chat.models import Content, Part, Role


def model_turn(*parts):
    return Content(role=Role.MODEL, parts=list(parts))


class TestValidateHistory:

    def test_accepts_user_and_model(self, user_text, model_text):
        validate_history([user_text("hi"), model_text("hello")])

    def test_rejects_other_roles(self):
        with pytest.raises(ValueError) as exc_info:
            validate_history([{"role": "system", "parts": []}])

        assert "Role must be user or model, but got system." in str(exc_info.value)

    def test_empty_history_is_fine(self):
        validate_history([])


class TestCuratedHistory:

    def test_invalid_model_turn_is_dropped(self, user_text, model_text):
        history = [user_text("q1"), model_turn(), user_text("q2"), model_text("a2")]

        curated = extract_curated_history(history)

        assert curated == [history[0], history[2], history[3]]

    def test_model_run_is_dropped_as_a_unit(self, user_text, model_text):
        history = [
            user_text("q"),
            model_text("first half"),
            model_turn(Part(text="")),
            user_text("next"),
        ]

        curated = extract_curated_history(history)

        assert curated == [history[0], history[3]]

    def test_part_with_only_unknown_keys_is_invalid(self, user_text):
        history = [user_text("hi"), model_turn(Part.model_validate({"bogus": 1}))]

        assert history[1].parts[0].is_empty()
        assert extract_curated_history(history) == [history[0]]

    def test_user_turns_always_survive(self, user_text):
        history = [user_text(""), user_text("x")]

        assert extract_curated_history(history) == history

    def test_thought_with_empty_text_is_valid(self, user_text):
        history = [user_text("q"), model_turn(Part(text="", thought=True), Part(text="a"))]

        assert extract_curated_history(history) == history

    def test_empty(self):
        assert extract_curated_history([]) == []

    def test_idempotent_ordered_subsequence(self, user_text, model_text):
        rng = random.Random(99)
        makers = [
            lambda: user_text("u"),
            lambda: model_text("m"),
            lambda: model_turn(),
            lambda: model_turn(Part(text="")),
        ]
        for _ in range(50):
            history = [rng.choice(makers)() for _ in range(rng.randint(0, 12))]

            curated = extract_curated_history(history)

            assert extract_curated_history(curated) == curated
            ids = [id(content) for content in history]
            positions = [ids.index(id(content)) for content in curated]
            assert positions == sorted(positions)
            kept = {id(content) for content in curated}
            assert all(content.role == Role.MODEL for content in history if id(content) not in kept)


class TestThoughtSignatures:

    def test_finds_last_text_user_turn(self, user_text, tool_exchange):
        history = [user_text("first"), *tool_exchange(), user_text("second"), *tool_exchange(call_id="c2")]

        assert find_active_loop_start(history) == 3

    def test_no_user_text(self, model_text):
        assert find_active_loop_start([model_text("x")]) == -1

    def test_signs_calls_in_active_loop_only(self, user_text, tool_exchange):
        old_call, old_response = tool_exchange(call_id="old")
        new_call, new_response = tool_exchange(call_id="new")
        second_call, second_response = tool_exchange(call_id="newer")
        history = [user_text("earlier"), old_call, old_response,
                   user_text("now"), new_call, new_response, second_call, second_response]

        result = ensure_active_loop_has_thought_signatures(history)

        assert result[1].parts[0].thought_signature is None
        assert result[4].parts[0].thought_signature == SYNTHETIC_THOUGHT_SIGNATURE
        assert result[6].parts[0].thought_signature == SYNTHETIC_THOUGHT_SIGNATURE
        # Input untouched
        assert new_call.parts[0].thought_signature is None

    def test_existing_signature_is_kept(self, user_text, tool_exchange):
        history = [user_text("go"), *tool_exchange(signature="real-signature")]

        result = ensure_active_loop_has_thought_signatures(history)

        assert result[1].parts[0].thought_signature == "real-signature"

    def test_without_user_text_nothing_changes(self, tool_exchange):
        history = tool_exchange()

        assert ensure_active_loop_has_thought_signatures(history) == history

    def test_strip_thoughts_removes_signatures(self, user_text, tool_exchange):
        history = [user_text("go"), *tool_exchange(signature="sig")]

        stripped = strip_thoughts(history)

        assert all(part.thought_signature is None for content in stripped for part in content.parts)
        assert history[1].parts[0].thought_signature == "sig"
