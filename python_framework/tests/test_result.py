"""Tests for the Result monad."""

import pytest

from railway import ErrorCode, Failure, FailureDescription, Result, Success

# ═══════════════════════════════════════════════════════════════
# 1. Creation and introspection
# ═══════════════════════════════════════════════════════════════


class TestSuccessCreation:
    def test_success_holds_value(self):
        result = Result.success("00000042")
        assert result.is_success()
        assert not result.is_failure()
        assert result.value() == "00000042"

    def test_success_with_collection(self):
        result = Result.success(["a.com", "b.com"])
        assert result.value() == ["a.com", "b.com"]

    def test_success_rejects_none(self):
        with pytest.raises(TypeError, match="must not be None"):
            Success(None)

    def test_empty_values_are_allowed(self):
        assert Result.success("").value() == ""
        assert Result.success([]).value() == []

    def test_success_is_truthy(self):
        assert Result.success(42)


class TestFailureCreation:
    def test_failure_with_code_and_message(self):
        result = Result.failure(ErrorCode.PROTOCOL_ERROR, "invalid response format: list not found")
        assert result.is_failure()
        assert result.error().code == ErrorCode.PROTOCOL_ERROR
        assert result.error().message == "invalid response format: list not found"

    def test_failure_with_exception(self):
        ex = ConnectionError("refused")
        result = Result.failure(ErrorCode.TRANSPORT_ERROR, "failed to call gateway", ex)
        assert result.error().exception is ex

    def test_failure_from_description(self):
        desc = FailureDescription(ErrorCode.DELETE_FAILED, "failed to delete old certificate 3")
        assert Result.failure_from(desc).error() is desc

    def test_failure_rejects_none(self):
        with pytest.raises(TypeError, match="must not be None"):
            Failure(None)

    def test_failure_is_falsy(self):
        assert not Result.failure(ErrorCode.DECODE_ERROR, "no PEM")


class TestValueExtraction:
    def test_value_on_failure_raises(self):
        result = Result.failure(ErrorCode.PARSE_ERROR, "bad DER")
        with pytest.raises(ValueError, match="Cannot get value from a Failure"):
            result.value()

    def test_error_on_success_raises(self):
        with pytest.raises(ValueError, match="Cannot get error from a Success"):
            Result.success(1).error()

    def test_pattern_matching(self):
        match Result.success("abc"):
            case Success(value):
                assert value == "abc"
            case Failure(_):
                pytest.fail("expected success")


# ═══════════════════════════════════════════════════════════════
# 2. Transformations
# ═══════════════════════════════════════════════════════════════


class TestMap:
    def test_map_transforms_success_value(self):
        assert Result.success("ab12").map(lambda fp: f"allinssl-{fp}").value() == "allinssl-ab12"

    def test_map_short_circuits_on_failure(self):
        calls = []
        result = Result.failure(ErrorCode.DECODE_ERROR, "no PEM").map(calls.append)
        assert result.is_failure()
        assert calls == []


class TestMapFailure:
    def test_map_failure_wraps_error(self):
        result = Result.failure(ErrorCode.TRANSPORT_ERROR, "refused").map_failure(
            lambda e: e.wrap(ErrorCode.UPSTREAM_UNAVAILABLE, "failed to list certificates")
        )
        assert result.error().code == ErrorCode.UPSTREAM_UNAVAILABLE
        assert result.error().message == "failed to list certificates: refused"
        assert result.error().cause.code == ErrorCode.TRANSPORT_ERROR

    def test_map_failure_passes_through_success(self):
        result = Result.success(42).map_failure(lambda e: pytest.fail("should not run"))
        assert result.value() == 42


class TestFlatMap:
    def test_flat_map_chains_success(self):
        result = Result.success([1, 2]).flat_map(lambda items: Result.success(len(items)))
        assert result.value() == 2

    def test_flat_map_short_circuits_on_first_failure(self):
        calls = []

        def list_step(_):
            calls.append("list")
            return Result.failure(ErrorCode.TRANSPORT_ERROR, "refused")

        def create_step(_):
            calls.append("create")
            return Result.success("1")

        result = Result.success("note").flat_map(list_step).flat_map(create_step)
        assert result.is_failure()
        assert calls == ["list"]


class TestEnsure:
    def test_ensure_passes_when_predicate_true(self):
        result = Result.success("42").ensure(lambda v: v != "", ErrorCode.UPLOAD_FAILED, "empty id")
        assert result.value() == "42"

    def test_ensure_fails_when_predicate_false(self):
        result = Result.success("").ensure(lambda v: v != "", ErrorCode.UPLOAD_FAILED, "empty id")
        assert result.error().code == ErrorCode.UPLOAD_FAILED
        assert result.error().message == "empty id"

    def test_ensure_with_failure_description(self):
        error = FailureDescription(ErrorCode.UPLOAD_FAILED, "empty id")
        assert Result.success("").ensure(lambda v: v != "", error).error() is error

    def test_ensure_skipped_on_failure(self):
        result = Result.failure(ErrorCode.PROTOCOL_ERROR, "code not found").ensure(
            lambda v: False, ErrorCode.UPLOAD_FAILED, "never"
        )
        assert result.error().code == ErrorCode.PROTOCOL_ERROR


class TestEither:
    def test_either_on_success(self):
        assert Result.success(2).either(lambda v: v * 10, lambda e: -1) == 20

    def test_either_on_failure(self):
        result = Result.failure(ErrorCode.CLEANUP_FAILED, "rolled back")
        assert result.either(lambda v: "ok", lambda e: e.message) == "rolled back"


# ═══════════════════════════════════════════════════════════════
# 3. Side effects
# ═══════════════════════════════════════════════════════════════


class TestPeek:
    def test_peek_runs_on_success_only(self):
        seen = []
        Result.success(1).peek(seen.append)
        Result.failure(ErrorCode.TECHNICAL_ERROR, "x").peek(seen.append)
        assert seen == [1]

    def test_peek_failure_runs_on_failure_only(self):
        seen = []
        Result.success(1).peek_failure(seen.append)
        Result.failure(ErrorCode.TECHNICAL_ERROR, "x").peek_failure(lambda e: seen.append(e.message))
        assert seen == ["x"]

    def test_peek_returns_same_result(self):
        result = Result.success(1)
        assert result.peek(lambda v: None) is result


# ═══════════════════════════════════════════════════════════════
# 4. Factories
# ═══════════════════════════════════════════════════════════════


class TestFromComputation:
    def test_captures_value(self):
        result = Result.from_computation(lambda: 7, ErrorCode.TRANSPORT_ERROR, "call failed")
        assert result.value() == 7

    def test_captures_exception(self):
        def boom():
            raise ConnectionError("connection refused")

        result = Result.from_computation(boom, ErrorCode.TRANSPORT_ERROR, "failed to call gateway API GET /ssls")
        assert result.error().code == ErrorCode.TRANSPORT_ERROR
        assert result.error().message == "failed to call gateway API GET /ssls: connection refused"
        assert isinstance(result.error().exception, ConnectionError)


class TestAllOf:
    def test_collects_values(self):
        result = Result.all_of([Result.success("1"), Result.success("2")])
        assert result.value() == ["1", "2"]

    def test_empty_is_success(self):
        assert Result.all_of([]).value() == []

    def test_stops_at_first_failure(self):
        attempted = []

        def delete(cert_id):
            attempted.append(cert_id)
            if cert_id == "2":
                return Result.failure(ErrorCode.DELETE_FAILED, "failed to delete old certificate 2")
            return Result.success(cert_id)

        result = Result.all_of(delete(cert_id) for cert_id in ["1", "2", "3"])
        assert result.error().message == "failed to delete old certificate 2"
        assert attempted == ["1", "2"]


# ═══════════════════════════════════════════════════════════════
# 5. Equality
# ═══════════════════════════════════════════════════════════════


class TestEquality:
    def test_successes_compare_by_value(self):
        assert Result.success("a") == Result.success("a")
        assert Result.success("a") != Result.success("b")

    def test_failures_compare_by_code_and_message(self):
        assert Result.failure(ErrorCode.PARSE_ERROR, "x") == Result.failure(ErrorCode.PARSE_ERROR, "x")
        assert Result.failure(ErrorCode.PARSE_ERROR, "x") != Result.failure(ErrorCode.DECODE_ERROR, "x")

    def test_success_never_equals_failure(self):
        assert Result.success("x") != Result.failure(ErrorCode.PARSE_ERROR, "x")

    def test_hashable(self):
        assert len({Result.success(1), Result.success(1)}) == 1
