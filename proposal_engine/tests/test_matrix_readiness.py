"""
Unit tests for the matrix readiness state machine.
"""
from datetime import datetime, timedelta, timezone

import pytest

from proposal_engine.services.matrix_readiness import (
    MatrixVisibility,
    ReadinessReason,
    compute_matrix_visibility,
    evaluate_matrix_readiness,
    is_deadline_passed,
)

NOW = datetime(2026, 5, 10, 12, 0, tzinfo=timezone.utc)
PAST = NOW - timedelta(days=1)
FUTURE = NOW + timedelta(days=3)


class TestVisibilityRules:

    def test_all_invited_responded(self):
        decision = evaluate_matrix_readiness(3, 3, FUTURE, False, now=NOW)

        assert decision.state == MatrixVisibility.VISIBLE
        assert decision.reason == ReadinessReason.ALL_RESPONDED

    def test_waiting_for_responses_before_deadline(self):
        decision = evaluate_matrix_readiness(2, 3, FUTURE, False, now=NOW)

        assert decision.state == MatrixVisibility.HIDDEN
        assert decision.reason == ReadinessReason.AWAITING_RESPONSES

    def test_deadline_passed_with_two_proposals(self):
        decision = evaluate_matrix_readiness(2, 5, PAST, False, now=NOW)

        assert decision.visible
        assert decision.reason == ReadinessReason.DEADLINE_PASSED

    def test_manual_override(self):
        decision = evaluate_matrix_readiness(2, 5, FUTURE, True, now=NOW)

        assert decision.visible
        assert decision.reason == ReadinessReason.MANUAL_OVERRIDE

    def test_no_deadline_with_two_of_three_proposals(self):
        """Two of three invited responded and no deadline is set: show the matrix."""
        decision = evaluate_matrix_readiness(2, 3, None, False, now=NOW)

        assert decision.visible
        assert decision.reason == ReadinessReason.NO_DEADLINE
        assert compute_matrix_visibility(2, 3, None, False, now=NOW) is True

    def test_deadline_exactly_now_is_not_passed(self):
        assert not compute_matrix_visibility(2, 3, NOW, False, now=NOW)


class TestGuards:

    @pytest.mark.parametrize("deadline", [None, PAST, FUTURE])
    @pytest.mark.parametrize("override", [False, True])
    def test_single_invited_supplier_always_hidden(self, deadline, override):
        decision = evaluate_matrix_readiness(1, 1, deadline, override, now=NOW)

        assert decision.state == MatrixVisibility.HIDDEN
        assert decision.reason == ReadinessReason.SINGLE_INVITED_SUPPLIER

    def test_single_invited_supplier_ignores_history(self):
        assert not compute_matrix_visibility(2, 1, None, True, now=NOW, previously_visible=True)

    @pytest.mark.parametrize("count", [0, 1])
    @pytest.mark.parametrize("deadline", [None, PAST])
    def test_fewer_than_two_proposals_hidden(self, count, deadline):
        decision = evaluate_matrix_readiness(count, 4, deadline, True, now=NOW)

        assert decision.state == MatrixVisibility.HIDDEN
        assert decision.reason == ReadinessReason.INSUFFICIENT_PROPOSALS

    def test_unknown_invited_count_waits_for_deadline(self):
        assert not compute_matrix_visibility(2, 0, FUTURE, False, now=NOW)
        assert compute_matrix_visibility(2, 0, PAST, False, now=NOW)


class TestMonotonicity:

    def test_visible_stays_visible(self):
        decision = evaluate_matrix_readiness(0, 3, FUTURE, False, now=NOW, previously_visible=True)

        assert decision.visible
        assert decision.reason == ReadinessReason.PREVIOUSLY_VISIBLE

    def test_sequence_never_hides_again(self):
        visible = False
        history = []
        for proposals, override in [(0, False), (1, False), (2, False), (2, True), (2, False), (1, False)]:
            visible = compute_matrix_visibility(
                proposals, 4, FUTURE, override, now=NOW, previously_visible=visible
            )
            history.append(visible)

        assert history == [False, False, False, True, True, True]


class TestDeadline:

    def test_naive_datetimes_treated_as_utc(self):
        naive_past = datetime(2026, 5, 9, 12, 0)

        assert is_deadline_passed(naive_past, now=NOW)
        assert not is_deadline_passed(datetime(2026, 5, 11), now=NOW)

    def test_no_deadline_never_passes(self):
        assert not is_deadline_passed(None, now=NOW)

    def test_defaults_to_current_time(self):
        assert is_deadline_passed(datetime.now(timezone.utc) - timedelta(minutes=1))
        assert not is_deadline_passed(datetime.now(timezone.utc) + timedelta(hours=1))
