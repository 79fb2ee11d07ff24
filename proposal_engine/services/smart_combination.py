"""
Smart combination optimizer.

For each requested item, pick the lowest unit price offered by any
supplier and assemble the resulting mixed basket. This is a per-item
greedy minimizer: supplier minimum order quantities are not modelled.
"""
import unicodedata
from collections import OrderedDict
from typing import Dict, List, Optional, Sequence

from pydantic import BaseModel, Field

from proposal_engine.core.logging import get_logger
from proposal_engine.services.proposal_normalizer import LineItem, Proposal, ProposalLineItem

logger = get_logger(__name__)


class ItemOption(BaseModel):
    proposal_id: str
    supplier_id: str
    supplier_name: str
    unit_price: float
    quantity: float


class ItemAward(BaseModel):
    product_key: str
    product_name: str
    quantity: float
    winner: ItemOption
    other_options: List[ItemOption] = Field(default_factory=list)
    cost: float
    savings: float


class CombinationResult(BaseModel):
    items: List[ItemAward]
    total_cost: float
    total_savings: float
    original_cost: float
    savings_percentage: float
    unique_suppliers: int
    supplier_ids: List[str]
    is_multi_supplier: bool
    unfulfilled_items: List[LineItem] = Field(default_factory=list)


def normalize_product_name(text: str) -> str:
    """
    Normalize a product name for matching:
    - lower
    - strip accents
    - collapse whitespace
    """
    text = (text or "").strip().lower()
    text = unicodedata.normalize("NFKD", text)
    text = "".join(ch for ch in text if not unicodedata.combining(ch))
    return " ".join(text.split())


class _ItemSlot:
    def __init__(self, key: str, name: str, quantity: Optional[float] = None):
        self.key = key
        self.name = name
        self.quantity = quantity
        self.options: List[ItemOption] = []


def _option(proposal: Proposal, item: ProposalLineItem) -> ItemOption:
    return ItemOption(
        proposal_id=proposal.id,
        supplier_id=proposal.supplier_id,
        supplier_name=proposal.supplier_name,
        unit_price=item.unit_price,
        quantity=item.quantity,
    )


def _collect_open(proposals: Sequence[Proposal]) -> "OrderedDict[str, _ItemSlot]":
    """Group every offered product across proposals, in first-seen order."""
    slots: "OrderedDict[str, _ItemSlot]" = OrderedDict()
    for proposal in proposals:
        for item in proposal.items:
            key = normalize_product_name(item.product_id or item.product_name)
            if not key:
                continue
            if key not in slots:
                slots[key] = _ItemSlot(key, item.product_name)
            slots[key].options.append(_option(proposal, item))
    return slots


def _collect_requested(
    proposals: Sequence[Proposal],
    line_items: Sequence[LineItem],
) -> "OrderedDict[str, _ItemSlot]":
    """Group offers under the requested line items, matched by id then by name."""
    slots: "OrderedDict[str, _ItemSlot]" = OrderedDict()
    by_id: Dict[str, _ItemSlot] = {}
    by_name: Dict[str, _ItemSlot] = {}
    for line_item in line_items:
        slot = _ItemSlot(line_item.id, line_item.product_name, float(line_item.quantity))
        slots[line_item.id] = slot
        by_id[line_item.id] = slot
        by_name.setdefault(normalize_product_name(line_item.product_name), slot)

    for proposal in proposals:
        for item in proposal.items:
            slot = by_id.get(item.product_id) or by_name.get(normalize_product_name(item.product_name))
            if slot is None:
                continue
            slot.options.append(_option(proposal, item))
    return slots


def _award(slot: _ItemSlot) -> ItemAward:
    # min() returns the first minimum, so ties go to the first seen offer
    winner = min(slot.options, key=lambda option: option.unit_price)
    others = [option for option in slot.options if option is not winner]
    others = sorted(others, key=lambda option: option.unit_price)

    quantity = slot.quantity if slot.quantity is not None else winner.quantity
    savings = 0.0
    if others:
        savings = (others[0].unit_price - winner.unit_price) * quantity

    return ItemAward(
        product_key=slot.key,
        product_name=slot.name,
        quantity=quantity,
        winner=winner,
        other_options=others,
        cost=winner.unit_price * quantity,
        savings=savings,
    )


def optimize_combination(
    proposals: Sequence[Proposal],
    line_items: Optional[Sequence[LineItem]] = None,
) -> Optional[CombinationResult]:
    """
    Assemble the cheapest per-item basket across all proposals.

    Savings are measured per item against the next best price offered for
    that item.

    Args:
        proposals: normalized proposals
        line_items: the RFQ's requested items; when given, only these are
            costed and the ones nobody priced are reported as unfulfilled

    Returns:
        CombinationResult, or None when there are no proposals yet
    """
    if not proposals:
        return None

    if line_items is None:
        slots = _collect_open(proposals)
    else:
        slots = _collect_requested(proposals, line_items)

    awards: List[ItemAward] = []
    unfulfilled: List[LineItem] = []
    requested = {item.id: item for item in (line_items or [])}
    for key, slot in slots.items():
        if not slot.options:
            unfulfilled.append(requested[key])
            continue
        awards.append(_award(slot))

    if unfulfilled:
        logger.warning(
            f"{len(unfulfilled)} requested item(s) have no offer: "
            f"{', '.join(item.product_name for item in unfulfilled)}"
        )

    total_cost = sum(award.cost for award in awards)
    total_savings = sum(award.savings for award in awards)
    original_cost = total_cost + total_savings

    supplier_ids: List[str] = []
    for award in awards:
        if award.winner.supplier_id not in supplier_ids:
            supplier_ids.append(award.winner.supplier_id)

    return CombinationResult(
        items=awards,
        total_cost=total_cost,
        total_savings=total_savings,
        original_cost=original_cost,
        savings_percentage=(total_savings / original_cost * 100) if original_cost > 0 else 0.0,
        unique_suppliers=len(supplier_ids),
        supplier_ids=supplier_ids,
        is_multi_supplier=len(supplier_ids) > 1,
        unfulfilled_items=unfulfilled,
    )
