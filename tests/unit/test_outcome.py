"""FetchOutcome tests — the tagged union and its Result-style accessors."""

from __future__ import annotations

import pytest
from pydantic import TypeAdapter, ValidationError

from asyncfetch.models.outcome import Failure, FetchError, FetchErrorKind, FetchOutcome, Success

outcome_adapter = TypeAdapter(FetchOutcome)


class TestVariants:
    def test_success_get_returns_payload(self):
        assert Success(payload="hello").get() == "hello"

    def test_failure_get_raises_with_reason(self):
        failure = Failure(reason=FetchErrorKind.REQUEST_FAILED, cause="reset by peer")
        with pytest.raises(FetchError) as exc_info:
            failure.get()
        assert exc_info.value.reason is FetchErrorKind.REQUEST_FAILED
        assert exc_info.value.cause == "reset by peer"
        assert str(exc_info.value) == "request_failed: reset by peer"

    def test_fetch_error_message_without_cause(self):
        assert str(FetchError(FetchErrorKind.UNKNOWN)) == "unknown"

    def test_is_success(self):
        assert Success(payload="x").is_success is True
        assert Failure(reason=FetchErrorKind.UNKNOWN).is_success is False

    def test_map_transforms_success_only(self):
        assert Success(payload="hello").map(str.upper) == Success(payload="HELLO")
        failure = Failure(reason=FetchErrorKind.BAD_IDENTIFIER)
        assert failure.map(str.upper) is failure

    def test_outcomes_are_frozen(self):
        outcome = Success(payload="hello")
        with pytest.raises(ValidationError):
            outcome.payload = "changed"


class TestExactlyOneVariant:
    """A value can be a Success or a Failure — never both, never neither."""

    def test_discriminator_selects_variant(self):
        assert outcome_adapter.validate_python({"kind": "success", "payload": "hi"}) == Success(payload="hi")
        assert outcome_adapter.validate_python(
            {"kind": "failure", "reason": "bad_identifier"}
        ) == Failure(reason=FetchErrorKind.BAD_IDENTIFIER)

    def test_success_cannot_carry_a_reason(self):
        with pytest.raises(ValidationError):
            Success(payload="hi", reason=FetchErrorKind.UNKNOWN)

    def test_failure_cannot_carry_a_payload(self):
        with pytest.raises(ValidationError):
            outcome_adapter.validate_python(
                {"kind": "failure", "reason": "unknown", "payload": "hi"}
            )

    def test_neither_is_rejected(self):
        with pytest.raises(ValidationError):
            outcome_adapter.validate_python({"kind": "success"})
        with pytest.raises(ValidationError):
            outcome_adapter.validate_python({"kind": "failure"})

    def test_unknown_reason_rejected(self):
        with pytest.raises(ValidationError):
            Failure(reason="timed_out")

    def test_json_keeps_the_tag(self):
        failure = Failure(reason=FetchErrorKind.REQUEST_FAILED, cause="boom")
        assert outcome_adapter.validate_json(failure.model_dump_json()) == failure


def test_error_kinds_are_exactly_three():
    assert {k.value for k in FetchErrorKind} == {"bad_identifier", "request_failed", "unknown"}
