"""
Quote API routes - proposals, ranking and smart combination.
"""
from typing import List, Optional
from datetime import datetime
import uuid

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from proposal_engine.db.session import get_db
from proposal_engine.db.models import (
    Quote, QuoteItem, QuoteSupplier, QuoteProposal, SavedDecisionMatrix,
    Supplier, QuoteStatus
)
from proposal_engine.core.config import settings
from proposal_engine.core.logging import audit_logger
from proposal_engine.services.decision_matrix import (
    DecisionEngineError, WeightConfig, RankedProposal, ProposalSummary,
    get_preset, score_proposals, summarize_proposals,
)
from proposal_engine.services.matrix_readiness import ReadinessDecision
from proposal_engine.services.proposal_normalizer import Proposal
from proposal_engine.services.proposal_loader import (
    load_line_items, load_proposals, quote_readiness,
)
from proposal_engine.services.smart_combination import CombinationResult, optimize_combination

router = APIRouter(prefix="/api/quotes", tags=["Quotes"])


# ============= SCHEMAS =============

class QuoteItemCreate(BaseModel):
    product_name: str
    quantity: int = Field(gt=0)


class QuoteCreate(BaseModel):
    title: str
    description: Optional[str] = None
    deadline: Optional[datetime] = None
    items: List[QuoteItemCreate] = Field(default_factory=list)
    supplier_ids: List[int] = Field(default_factory=list)  # Suppliers to invite


class QuoteResponse(BaseModel):
    id: int
    quote_number: str
    title: str
    description: Optional[str]
    status: str
    deadline: Optional[datetime]
    manual_override: bool
    items: List[dict]
    invited_suppliers: List[dict]
    proposal_count: int


class ProposalCreate(BaseModel):
    """Supplier response as received; numbers are checked on read, not here."""
    supplier_id: int
    items: List[dict] = Field(default_factory=list)
    shipping_cost: Optional[float] = None
    total_amount: Optional[float] = None
    delivery_time: Optional[int] = None
    warranty_months: Optional[int] = None
    notes: Optional[str] = None


class RankingRequest(BaseModel):
    weights: Optional[WeightConfig] = None
    preset: Optional[str] = None
    force: bool = False  # Rank even while the matrix is hidden


class RankingResponse(BaseModel):
    quote_id: int
    weights: WeightConfig
    readiness: ReadinessDecision
    summary: Optional[ProposalSummary]
    ranking: List[RankedProposal]


class SavedMatrixCreate(BaseModel):
    name: Optional[str] = None
    weights: Optional[WeightConfig] = None
    preset: Optional[str] = None


# ============= HELPERS =============

def _get_quote(db: Session, quote_id: int) -> Quote:
    quote = db.query(Quote).filter(Quote.id == quote_id).first()
    if not quote:
        raise HTTPException(status_code=404, detail="Quote not found")
    return quote


def _resolve_weights(weights: Optional[WeightConfig], preset: Optional[str]) -> WeightConfig:
    """Explicit weights win over a preset; neither means the default preset."""
    try:
        if weights is not None:
            return weights
        return get_preset(preset or settings.DEFAULT_WEIGHT_PRESET)
    except DecisionEngineError as e:
        raise HTTPException(status_code=400, detail=str(e))


def _rank(proposals: List[Proposal], weights: WeightConfig) -> List[RankedProposal]:
    try:
        return score_proposals(proposals, weights)
    except DecisionEngineError as e:
        raise HTTPException(status_code=400, detail=str(e))


def _ensure_matrix_visible(db: Session, quote: Quote) -> ReadinessDecision:
    readiness = quote_readiness(db, quote)
    if not readiness.visible:
        raise HTTPException(
            status_code=409,
            detail=f"Decision matrix not available yet ({readiness.reason.value})",
        )
    return readiness


def _build_quote_response(quote: Quote) -> QuoteResponse:
    return QuoteResponse(
        id=quote.id,
        quote_number=quote.quote_number,
        title=quote.title,
        description=quote.description,
        status=quote.status or QuoteStatus.DRAFT.value,
        deadline=quote.deadline,
        manual_override=bool(quote.manual_override),
        items=[
            {"id": item.id, "product_name": item.product_name, "quantity": item.quantity}
            for item in quote.items
        ],
        invited_suppliers=[
            {
                "supplier_id": inv.supplier_id,
                "supplier_name": inv.supplier.name if inv.supplier else "Unknown",
                "responded": bool(inv.responded),
            }
            for inv in quote.invitations
        ],
        proposal_count=len(quote.proposals),
    )


# ============= ROUTES =============

@router.post("", response_model=QuoteResponse)
async def create_quote(
    quote_data: QuoteCreate,
    db: Session = Depends(get_db)
):
    """Create a quote with its line items and invited suppliers."""
    quote_number = f"Q-{datetime.utcnow().strftime('%Y%m%d')}-{uuid.uuid4().hex[:6].upper()}"

    quote = Quote(
        quote_number=quote_number,
        title=quote_data.title,
        description=quote_data.description,
        deadline=quote_data.deadline,
        status=QuoteStatus.SENT.value if quote_data.supplier_ids else QuoteStatus.DRAFT.value,
    )
    db.add(quote)
    db.flush()

    for item in quote_data.items:
        db.add(QuoteItem(quote_id=quote.id, product_name=item.product_name, quantity=item.quantity))

    for supplier_id in dict.fromkeys(quote_data.supplier_ids):
        supplier = db.query(Supplier).filter(Supplier.id == supplier_id).first()
        if not supplier:
            db.rollback()
            raise HTTPException(status_code=404, detail=f"Supplier {supplier_id} not found")
        db.add(QuoteSupplier(quote_id=quote.id, supplier_id=supplier_id))

    db.commit()
    db.refresh(quote)

    audit_logger.log(
        action="create_quote",
        quote_id=quote.id,
        entity_type="quote",
        entity_id=quote.id,
        details={"quote_number": quote_number, "suppliers": len(quote.invitations)},
    )
    return _build_quote_response(quote)


@router.get("/{quote_id}", response_model=QuoteResponse)
async def get_quote(
    quote_id: int,
    db: Session = Depends(get_db)
):
    """Get quote details."""
    return _build_quote_response(_get_quote(db, quote_id))


@router.post("/{quote_id}/proposals", response_model=dict)
async def submit_proposal(
    quote_id: int,
    proposal_data: ProposalCreate,
    db: Session = Depends(get_db)
):
    """
    Record a supplier proposal for a quote.

    A supplier has one proposal per quote: submitting again replaces it.
    """
    quote = _get_quote(db, quote_id)

    invitation = db.query(QuoteSupplier).filter(
        QuoteSupplier.quote_id == quote_id,
        QuoteSupplier.supplier_id == proposal_data.supplier_id
    ).first()

    if not invitation:
        raise HTTPException(status_code=400, detail="Supplier not invited to this quote")

    proposal = db.query(QuoteProposal).filter(
        QuoteProposal.quote_id == quote_id,
        QuoteProposal.supplier_id == proposal_data.supplier_id
    ).first()

    if proposal:
        audit_logger.log(
            action="replace_proposal",
            quote_id=quote_id,
            entity_type="quote_proposal",
            entity_id=proposal.id,
            details={"supplier_id": proposal_data.supplier_id},
        )
    else:
        proposal = QuoteProposal(quote_id=quote_id, supplier_id=proposal_data.supplier_id)
        db.add(proposal)

    proposal.items = proposal_data.items
    proposal.shipping_cost = proposal_data.shipping_cost
    proposal.total_amount = proposal_data.total_amount
    proposal.delivery_time = proposal_data.delivery_time
    proposal.warranty_months = proposal_data.warranty_months
    proposal.notes = proposal_data.notes

    # Mark supplier as responded
    invitation.responded = True

    if quote.status == QuoteStatus.SENT.value:
        quote.status = QuoteStatus.RECEIVING.value

    db.commit()
    db.refresh(proposal)

    return {
        "id": proposal.id,
        "quote_id": quote_id,
        "supplier_id": proposal.supplier_id,
        "total_amount": proposal.total_amount,
        "created_at": proposal.created_at,
    }


@router.get("/{quote_id}/proposals", response_model=List[Proposal])
async def list_proposals(
    quote_id: int,
    db: Session = Depends(get_db)
):
    """Normalized proposals, recomputed from the stored submissions."""
    return load_proposals(_get_quote(db, quote_id))


@router.get("/{quote_id}/readiness", response_model=ReadinessDecision)
async def get_readiness(
    quote_id: int,
    db: Session = Depends(get_db)
):
    """Whether the decision matrix may be shown for this quote."""
    return quote_readiness(db, _get_quote(db, quote_id))


@router.post("/{quote_id}/proceed", response_model=ReadinessDecision)
async def proceed_now(
    quote_id: int,
    db: Session = Depends(get_db)
):
    """Buyer override: compare the proposals received so far."""
    quote = _get_quote(db, quote_id)

    if not quote.manual_override:
        quote.manual_override = True
        db.commit()
        audit_logger.log(
            action="matrix_manual_override",
            quote_id=quote_id,
            entity_type="quote",
            entity_id=quote_id,
            details={"proposals": len(quote.proposals), "invited": len(quote.invitations)},
        )

    return quote_readiness(db, quote)


@router.post("/{quote_id}/ranking", response_model=RankingResponse)
async def rank_proposals(
    quote_id: int,
    request_data: Optional[RankingRequest] = None,
    db: Session = Depends(get_db)
):
    """Rank the quote's proposals with the decision matrix."""
    request_data = request_data or RankingRequest()
    quote = _get_quote(db, quote_id)
    weights = _resolve_weights(request_data.weights, request_data.preset)

    if request_data.force:
        readiness = quote_readiness(db, quote)
    else:
        readiness = _ensure_matrix_visible(db, quote)

    proposals = load_proposals(quote)
    ranking = _rank(proposals, weights)

    if quote.status in (QuoteStatus.SENT.value, QuoteStatus.RECEIVING.value) and ranking:
        quote.status = QuoteStatus.EVALUATING.value
        db.commit()

    return RankingResponse(
        quote_id=quote_id,
        weights=weights,
        readiness=readiness,
        summary=summarize_proposals(proposals),
        ranking=ranking,
    )


@router.get("/{quote_id}/combination", response_model=Optional[CombinationResult])
async def get_best_combination(
    quote_id: int,
    db: Session = Depends(get_db)
):
    """Cheapest per-item basket across suppliers; null while no proposals exist."""
    quote = _get_quote(db, quote_id)
    line_items = load_line_items(quote)
    return optimize_combination(load_proposals(quote), line_items or None)


@router.post("/{quote_id}/matrices", response_model=dict)
async def save_matrix(
    quote_id: int,
    matrix_data: SavedMatrixCreate,
    db: Session = Depends(get_db)
):
    """Save the current ranking together with the weights used."""
    quote = _get_quote(db, quote_id)
    weights = _resolve_weights(matrix_data.weights, matrix_data.preset)
    _ensure_matrix_visible(db, quote)
    ranking = _rank(load_proposals(quote), weights)

    saved = SavedDecisionMatrix(
        quote_id=quote_id,
        name=matrix_data.name or f"Matrix - {quote.title}",
        weights=weights.model_dump(),
        proposals=[
            {
                "id": r.proposal.id,
                "name": r.proposal.supplier_name,
                "score": round(r.score, 2),
                "metrics": {metric.value: value for metric, value in r.metrics.items()},
            }
            for r in ranking
        ],
    )
    db.add(saved)
    db.commit()
    db.refresh(saved)

    audit_logger.log(
        action="save_decision_matrix",
        quote_id=quote_id,
        entity_type="saved_decision_matrix",
        entity_id=saved.id,
        details={"name": saved.name, "proposals": len(ranking)},
    )

    return {
        "id": saved.id,
        "name": saved.name,
        "weights": saved.weights,
        "proposals": saved.proposals,
        "created_at": saved.created_at,
    }


@router.get("/{quote_id}/matrices", response_model=List[dict])
async def list_saved_matrices(
    quote_id: int,
    db: Session = Depends(get_db)
):
    """Saved rankings for a quote, newest first."""
    _get_quote(db, quote_id)
    matrices = db.query(SavedDecisionMatrix).filter(
        SavedDecisionMatrix.quote_id == quote_id
    ).order_by(SavedDecisionMatrix.id.desc()).all()

    return [
        {
            "id": m.id,
            "name": m.name,
            "weights": m.weights,
            "proposals": m.proposals,
            "created_at": m.created_at,
        }
        for m in matrices
    ]


@router.delete("/{quote_id}/matrices/{matrix_id}")
async def delete_saved_matrix(
    quote_id: int,
    matrix_id: int,
    db: Session = Depends(get_db)
):
    """Delete a saved ranking."""
    _get_quote(db, quote_id)
    saved = db.query(SavedDecisionMatrix).filter(
        SavedDecisionMatrix.id == matrix_id,
        SavedDecisionMatrix.quote_id == quote_id
    ).first()

    if not saved:
        raise HTTPException(status_code=404, detail="Saved matrix not found")

    name = saved.name
    db.delete(saved)
    db.commit()

    audit_logger.log(
        action="delete_decision_matrix",
        quote_id=quote_id,
        entity_type="saved_decision_matrix",
        entity_id=matrix_id,
        details={"name": name},
    )

    return {"status": "deleted", "id": matrix_id}
