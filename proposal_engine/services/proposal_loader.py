"""
Loads quote data from the store and hands it to the decision engine.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from proposal_engine.core.logging import get_logger
from proposal_engine.db.models import Quote, QuoteProposal
from proposal_engine.services.proposal_normalizer import LineItem, Proposal, normalize_proposals
from proposal_engine.services.matrix_readiness import ReadinessDecision, evaluate_matrix_readiness

logger = get_logger(__name__)


def proposal_row_to_raw(row: QuoteProposal) -> Dict[str, Any]:
    """Flatten a stored proposal and its supplier into a raw proposal record."""
    supplier = row.supplier
    return {
        "id": row.id,
        "quote_id": row.quote_id,
        "supplier_id": row.supplier_id,
        "supplier_name": supplier.name if supplier else None,
        "items": row.items if isinstance(row.items, list) else [],
        "shipping_cost": row.shipping_cost,
        "total_amount": row.total_amount,
        "delivery_time": row.delivery_time,
        "warranty_months": row.warranty_months,
        "delivery_score": supplier.delivery_score if supplier else None,
        "reputation": supplier.reputation if supplier else None,
        "notes": row.notes,
        "created_at": row.created_at,
    }


def load_proposals(quote: Quote) -> List[Proposal]:
    """
    Normalize every proposal of a quote from scratch.

    Called on each read, so a manual refresh always reflects the store.
    """
    proposals = normalize_proposals(proposal_row_to_raw(row) for row in quote.proposals)
    logger.debug(f"Loaded {len(proposals)} proposals for quote {quote.id}")
    return proposals


def load_line_items(quote: Quote) -> List[LineItem]:
    return [
        LineItem(id=str(item.id), product_name=item.product_name, quantity=item.quantity)
        for item in quote.items
    ]


def quote_readiness(
    db: Session,
    quote: Quote,
    now: Optional[datetime] = None,
) -> ReadinessDecision:
    """
    Evaluate matrix readiness for a stored quote.

    The first visible decision is persisted so the matrix never hides again.
    """
    # Count responding suppliers, not rows
    responders = {proposal.supplier_id for proposal in quote.proposals}
    decision = evaluate_matrix_readiness(
        proposals_count=len(responders),
        invited_suppliers_count=len(quote.invitations),
        deadline=quote.deadline,
        manual_override=bool(quote.manual_override),
        now=now,
        previously_visible=bool(quote.matrix_unlocked),
    )
    if decision.visible and not quote.matrix_unlocked:
        quote.matrix_unlocked = True
        db.commit()
        logger.info(f"Decision matrix unlocked for quote {quote.id} ({decision.reason.value})")
    return decision
