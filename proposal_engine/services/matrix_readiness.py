"""
Matrix readiness state machine.

Decides whether multi-proposal ranking may be shown yet. Showing a ranking
on partial data lets buyers anchor early, so the matrix stays hidden until
enough competitive data exists, with the deadline and a manual override as
ways out. Once visible it never hides again.
"""
import enum
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel

from proposal_engine.core.config import settings


class MatrixVisibility(str, enum.Enum):
    HIDDEN = "hidden"
    VISIBLE = "visible"


class ReadinessReason(str, enum.Enum):
    SINGLE_INVITED_SUPPLIER = "single_invited_supplier"
    PREVIOUSLY_VISIBLE = "previously_visible"
    INSUFFICIENT_PROPOSALS = "insufficient_proposals"
    ALL_RESPONDED = "all_responded"
    DEADLINE_PASSED = "deadline_passed"
    MANUAL_OVERRIDE = "manual_override"
    NO_DEADLINE = "no_deadline"
    AWAITING_RESPONSES = "awaiting_responses"


class ReadinessDecision(BaseModel):
    state: MatrixVisibility
    reason: ReadinessReason

    @property
    def visible(self) -> bool:
        return self.state == MatrixVisibility.VISIBLE


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def is_deadline_passed(deadline: Optional[datetime], now: Optional[datetime] = None) -> bool:
    if deadline is None:
        return False
    now = _as_utc(now) if now else datetime.now(timezone.utc)
    return now > _as_utc(deadline)


def evaluate_matrix_readiness(
    proposals_count: int,
    invited_suppliers_count: int,
    deadline: Optional[datetime],
    manual_override: bool = False,
    now: Optional[datetime] = None,
    previously_visible: bool = False,
) -> ReadinessDecision:
    """
    Evaluate the visibility rules in priority order; the first match wins.

    1. a single invited supplier pins the matrix hidden
    2. a matrix shown before stays visible
    3. fewer than the minimum proposals keeps it hidden
    4. every invited supplier has responded
    5. the response deadline has passed
    6. the buyer chose to proceed now
    7. the RFQ has no deadline
    8. otherwise keep waiting
    """
    if invited_suppliers_count == 1:
        return ReadinessDecision(state=MatrixVisibility.HIDDEN, reason=ReadinessReason.SINGLE_INVITED_SUPPLIER)

    if previously_visible:
        return ReadinessDecision(state=MatrixVisibility.VISIBLE, reason=ReadinessReason.PREVIOUSLY_VISIBLE)

    if proposals_count < settings.MIN_PROPOSALS_FOR_MATRIX:
        return ReadinessDecision(state=MatrixVisibility.HIDDEN, reason=ReadinessReason.INSUFFICIENT_PROPOSALS)

    if invited_suppliers_count > 0 and proposals_count >= invited_suppliers_count:
        return ReadinessDecision(state=MatrixVisibility.VISIBLE, reason=ReadinessReason.ALL_RESPONDED)

    if is_deadline_passed(deadline, now):
        return ReadinessDecision(state=MatrixVisibility.VISIBLE, reason=ReadinessReason.DEADLINE_PASSED)

    if manual_override:
        return ReadinessDecision(state=MatrixVisibility.VISIBLE, reason=ReadinessReason.MANUAL_OVERRIDE)

    if deadline is None:
        return ReadinessDecision(state=MatrixVisibility.VISIBLE, reason=ReadinessReason.NO_DEADLINE)

    return ReadinessDecision(state=MatrixVisibility.HIDDEN, reason=ReadinessReason.AWAITING_RESPONSES)


def compute_matrix_visibility(
    proposals_count: int,
    invited_suppliers_count: int,
    deadline: Optional[datetime],
    manual_override: bool = False,
    now: Optional[datetime] = None,
    previously_visible: bool = False,
) -> bool:
    """True when the decision matrix may be shown."""
    return evaluate_matrix_readiness(
        proposals_count,
        invited_suppliers_count,
        deadline,
        manual_override,
        now=now,
        previously_visible=previously_visible,
    ).visible
