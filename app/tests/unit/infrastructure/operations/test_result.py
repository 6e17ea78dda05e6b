"""Unit tests for OperationResult and OperationStatus.

Tests cover:
- Factory methods, including the rate-limit and rejected-target shapes
- is_success / is_retryable / invalidates_target / error_label
"""

import dataclasses

import pytest

from infrastructure.operations.result import OperationResult
from infrastructure.operations.status import OperationStatus


@pytest.mark.unit
class TestOperationResultFactories:
    def test_success_carries_provider_payload(self):
        result = OperationResult.success(data={"ts": "1.2"}, message="posted")

        assert result.status == OperationStatus.SUCCESS
        assert result.data == {"ts": "1.2"}
        assert result.is_success
        assert result.error_label is None

    def test_rate_limited(self):
        result = OperationResult.rate_limited("slack rate limited", retry_after=30)

        assert result.status == OperationStatus.RATE_LIMITED
        assert result.error_code == "RATE_LIMITED"
        assert result.retry_after == 30
        assert result.is_retryable

    def test_transient_error(self):
        result = OperationResult.transient_error("discord request timed out", error_code="TIMEOUT")

        assert result.status == OperationStatus.TRANSIENT_ERROR
        assert result.error_label == "TIMEOUT"

    def test_target_rejected(self):
        result = OperationResult.target_rejected(
            OperationStatus.NOT_FOUND, "discord target not found", error_code="NOT_FOUND"
        )

        assert result.invalidates_target
        assert not result.is_retryable

    def test_target_rejected_refuses_other_statuses(self):
        with pytest.raises(ValueError):
            OperationResult.target_rejected(OperationStatus.TRANSIENT_ERROR, "nope")

    def test_permanent_error_label_falls_back_to_message(self):
        result = OperationResult.permanent_error("bad payload")

        assert result.status == OperationStatus.PERMANENT_ERROR
        assert result.error_label == "bad payload"

    def test_results_are_immutable(self):
        result = OperationResult.success()

        with pytest.raises(dataclasses.FrozenInstanceError):
            result.message = "changed"


@pytest.mark.unit
class TestOperationResultProperties:
    @pytest.mark.parametrize(
        "status,retryable,invalidates",
        [
            (OperationStatus.SUCCESS, False, False),
            (OperationStatus.TRANSIENT_ERROR, True, False),
            (OperationStatus.RATE_LIMITED, True, False),
            (OperationStatus.PERMANENT_ERROR, False, False),
            (OperationStatus.UNAUTHORIZED, False, True),
            (OperationStatus.NOT_FOUND, False, True),
        ],
    )
    def test_flags_by_status(self, status, retryable, invalidates):
        result = OperationResult.error(status, "x")

        assert result.is_retryable is retryable
        assert result.invalidates_target is invalidates
