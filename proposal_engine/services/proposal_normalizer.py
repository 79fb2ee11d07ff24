"""
Proposal normalization service.

Supplier submissions arrive as loosely typed records. This module is the
boundary where they become validated, immutable Proposal records with one
trustworthy total price.
"""
import math
import re
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from proposal_engine.core.config import settings
from proposal_engine.core.logging import get_logger

logger = get_logger(__name__)


# ============= RECORDS =============

class RawProposalRecord(BaseModel):
    """A supplier proposal exactly as the data store hands it over."""
    model_config = ConfigDict(extra="ignore")

    id: Optional[Any] = None
    quote_id: Optional[Any] = None
    supplier_id: Optional[Any] = None
    supplier_name: Optional[Any] = None
    items: Optional[Any] = None
    shipping_cost: Optional[Any] = None
    total_amount: Optional[Any] = None
    delivery_time: Optional[Any] = None
    warranty_months: Optional[Any] = None
    delivery_score: Optional[Any] = None
    reputation: Optional[Any] = None
    notes: Optional[Any] = None
    created_at: Optional[Any] = None


class LineItem(BaseModel):
    """An item the buyer asked suppliers to price."""
    model_config = ConfigDict(frozen=True)

    id: str
    product_name: str
    quantity: int = Field(gt=0)


class ProposalLineItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    product_id: str
    product_name: str
    quantity: float = Field(ge=0)
    unit_price: float = Field(ge=0)
    total: float = Field(ge=0)
    brand: Optional[str] = None
    specifications: Optional[str] = None


class Proposal(BaseModel):
    """A normalized supplier proposal."""
    model_config = ConfigDict(frozen=True)

    id: str
    quote_id: Optional[str] = None
    supplier_id: str
    supplier_name: str
    items: List[ProposalLineItem] = Field(default_factory=list)
    shipping_cost: float = Field(ge=0)
    delivery_time_days: int = Field(ge=0)
    warranty_months: int = Field(ge=0)
    delivery_score: float = Field(ge=0, le=100)
    reputation: float = Field(ge=0, le=5)
    observations: Optional[str] = None
    submitted_at: Optional[datetime] = None
    total_price: float = Field(ge=0)

    # Diagnostics kept for audit trails
    reported_total: float = 0.0
    computed_total: float = 0.0


# ============= COERCION =============

_THOUSANDS_ONLY = re.compile(r"^-?\d{1,3}(\.\d{3})+$")


def _safe_number(value: Any, default: float = 0.0) -> float:
    """Coerce anything a supplier may send into a finite float."""
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, str):
        value = value.strip().replace("R$", "").strip()
        if not value:
            return default
        # pt-BR decimal comma: "1.234,56"; dots alone group thousands: "1.234"
        if "," in value or _THOUSANDS_ONLY.match(value):
            value = value.replace(".", "").replace(",", ".")
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(number) or math.isinf(number):
        return default
    return number


def _optional_number(value: Any) -> Optional[float]:
    """Like _safe_number, but keeps "absent" distinguishable from zero."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    number = _safe_number(value, default=math.nan)
    return None if math.isnan(number) else number


def _clamp(value: float, min_value: float, max_value: float) -> float:
    return max(min_value, min(max_value, value))


def _text(value: Any, default: str = "") -> str:
    if value is None:
        return default
    return str(value).strip() or default


def _parse_datetime(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


# ============= NORMALIZATION =============

def normalize_line_item(raw: Dict[str, Any]) -> ProposalLineItem:
    """Normalize one proposal line item; a missing total is derived from quantity and price."""
    product_name = _text(raw.get("product_name"))
    product_id = _text(raw.get("product_id"), default=product_name)
    quantity = max(0.0, _safe_number(raw.get("quantity")))
    unit_price = max(0.0, _safe_number(raw.get("unit_price")))

    total = _optional_number(raw.get("total"))
    if total is None:
        total = quantity * unit_price

    return ProposalLineItem(
        product_id=product_id,
        product_name=product_name,
        quantity=quantity,
        unit_price=unit_price,
        total=max(0.0, total),
        brand=_text(raw.get("brand")) or None,
        specifications=_text(raw.get("specifications")) or None,
    )


def _items_sum(raw_items: Iterable[Dict[str, Any]]) -> float:
    """Sum the supplier's own line items, preferring each item's declared total."""
    items_sum = 0.0
    for item in raw_items:
        total = _optional_number(item.get("total"))
        if total is None:
            total = max(0.0, _safe_number(item.get("quantity"))) * max(0.0, _safe_number(item.get("unit_price")))
        items_sum += max(0.0, total)
    return items_sum


def reconcile_total(reported_total: float, computed_total: float, tolerance: Optional[float] = None) -> float:
    """
    Pick the trustworthy total for a proposal.

    The supplier's reported total wins when it agrees with the bottom-up
    computation (it may carry taxes or discounts we cannot see); otherwise
    the computed total wins.
    """
    if tolerance is None:
        tolerance = settings.TOTAL_MATCH_TOLERANCE
    if abs(reported_total - computed_total) <= tolerance:
        return max(0.0, reported_total)
    return max(0.0, computed_total)


def _as_raw_record(raw: Union[Dict[str, Any], RawProposalRecord, Proposal]) -> RawProposalRecord:
    if isinstance(raw, RawProposalRecord):
        return raw
    if isinstance(raw, Proposal):
        return RawProposalRecord(
            id=raw.id,
            quote_id=raw.quote_id,
            supplier_id=raw.supplier_id,
            supplier_name=raw.supplier_name,
            items=[item.model_dump() for item in raw.items],
            shipping_cost=raw.shipping_cost,
            total_amount=raw.total_price,
            delivery_time=raw.delivery_time_days,
            warranty_months=raw.warranty_months,
            delivery_score=raw.delivery_score,
            reputation=raw.reputation,
            notes=raw.observations,
            created_at=raw.submitted_at,
        )
    return RawProposalRecord.model_validate(raw)


def normalize_proposal(raw: Union[Dict[str, Any], RawProposalRecord, Proposal]) -> Proposal:
    """
    Turn a raw supplier proposal into a normalized Proposal.

    Never raises on data-quality problems: absent or malformed numbers fall
    back to business defaults (or zero), so the result never carries NaN.
    Normalizing an already normalized proposal yields the same total.

    Args:
        raw: a dict, RawProposalRecord or Proposal

    Returns:
        Proposal with a reconciled total_price
    """
    record = _as_raw_record(raw)
    raw_items = record.items if isinstance(record.items, list) else []
    raw_items = [item for item in raw_items if isinstance(item, dict)]

    items_sum = _items_sum(raw_items)
    shipping = max(0.0, _safe_number(record.shipping_cost))
    reported_total = _safe_number(record.total_amount)
    computed_total = items_sum + shipping
    total_price = reconcile_total(reported_total, computed_total)

    delivery_time = _optional_number(record.delivery_time)
    if delivery_time is None:
        delivery_time = settings.DEFAULT_DELIVERY_TIME_DAYS
    warranty = _optional_number(record.warranty_months)
    if warranty is None:
        warranty = settings.DEFAULT_WARRANTY_MONTHS

    supplier_id = _text(record.supplier_id)
    proposal = Proposal(
        id=_text(record.id),
        quote_id=_text(record.quote_id) or None,
        supplier_id=supplier_id,
        supplier_name=_text(record.supplier_name, default=supplier_id),
        items=[normalize_line_item(item) for item in raw_items],
        shipping_cost=shipping,
        delivery_time_days=max(0, int(round(delivery_time))),
        warranty_months=max(0, int(round(warranty))),
        delivery_score=_clamp(_safe_number(record.delivery_score, settings.DEFAULT_DELIVERY_SCORE), 0.0, 100.0),
        reputation=_clamp(_safe_number(record.reputation, settings.DEFAULT_REPUTATION), 0.0, 5.0),
        observations=_text(record.notes) or None,
        submitted_at=_parse_datetime(record.created_at),
        total_price=total_price,
        reported_total=reported_total,
        computed_total=computed_total,
    )

    logger.debug(
        f"Normalized proposal {proposal.id} ({proposal.supplier_name}): "
        f"items_sum={items_sum:.2f} shipping={shipping:.2f} reported={reported_total:.2f} "
        f"computed={computed_total:.2f} used={total_price:.2f}"
    )
    return proposal


def normalize_proposals(raws: Iterable[Union[Dict[str, Any], RawProposalRecord, Proposal]]) -> List[Proposal]:
    """Normalize a batch of proposals, preserving order."""
    return [normalize_proposal(raw) for raw in raws]
