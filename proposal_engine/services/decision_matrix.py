"""
Weighted decision matrix for ranking whole proposals.

Six metrics are normalized to a 0-100 scale across the proposal set and
combined with buyer-configurable weights that always sum to 100.
"""
import enum
from typing import Dict, List, Optional, Sequence, Union

from pydantic import BaseModel, Field

from proposal_engine.core.logging import get_logger
from proposal_engine.services.proposal_normalizer import Proposal

logger = get_logger(__name__)

WEIGHT_TOTAL = 100.0
WEIGHT_TOLERANCE = 0.01
TIED_METRIC_SCORE = 50.0


# ============= ERRORS =============

class DecisionEngineError(ValueError):
    """Base class for precondition violations rejected before computation."""


class InvalidWeightsError(DecisionEngineError):
    def __init__(self, total: float):
        self.total = total
        super().__init__(f"Weights must sum to {WEIGHT_TOTAL:g} (got {total:.2f})")


class UnknownPresetError(DecisionEngineError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown weight preset: {name}")


# ============= METRICS =============

class Metric(str, enum.Enum):
    PRICE = "price"
    DELIVERY_TIME = "delivery_time"
    SHIPPING_COST = "shipping_cost"
    WARRANTY = "warranty"
    DELIVERY_SCORE = "delivery_score"
    REPUTATION = "reputation"

    @property
    def lower_is_better(self) -> bool:
        return self in _LOWER_IS_BETTER


_LOWER_IS_BETTER = frozenset({Metric.PRICE, Metric.DELIVERY_TIME, Metric.SHIPPING_COST})


def metric_values(proposal: Proposal) -> Dict[Metric, float]:
    """Raw metric values of a proposal."""
    return {
        Metric.PRICE: proposal.total_price,
        Metric.DELIVERY_TIME: float(proposal.delivery_time_days),
        Metric.SHIPPING_COST: proposal.shipping_cost,
        Metric.WARRANTY: float(proposal.warranty_months),
        Metric.DELIVERY_SCORE: proposal.delivery_score,
        Metric.REPUTATION: proposal.reputation,
    }


# ============= WEIGHTS =============

class WeightConfig(BaseModel):
    """
    Importance of each metric, in percent.

    Field ranges are checked on construction; the sum-to-100 invariant is
    checked by ensure_valid_weights() before any scoring.
    """
    price: float = Field(ge=0, le=100)
    delivery_time: float = Field(ge=0, le=100)
    shipping_cost: float = Field(ge=0, le=100)
    warranty: float = Field(ge=0, le=100)
    delivery_score: float = Field(ge=0, le=100)
    reputation: float = Field(ge=0, le=100)

    def get(self, metric: Metric) -> float:
        return getattr(self, metric.value)

    def as_dict(self) -> Dict[Metric, float]:
        return {metric: self.get(metric) for metric in Metric}

    def total(self) -> float:
        return sum(self.as_dict().values())

    @classmethod
    def from_metrics(cls, values: Dict[Metric, float]) -> "WeightConfig":
        return cls(**{metric.value: value for metric, value in values.items()})


WEIGHT_PRESETS: Dict[str, WeightConfig] = {
    "balanced": WeightConfig(
        price=30, delivery_time=20, shipping_cost=15,
        warranty=15, delivery_score=10, reputation=10,
    ),
    "price_focused": WeightConfig(
        price=50, delivery_time=15, shipping_cost=15,
        warranty=10, delivery_score=5, reputation=5,
    ),
    "quality_focused": WeightConfig(
        price=15, delivery_time=10, shipping_cost=5,
        warranty=30, delivery_score=15, reputation=25,
    ),
    "urgent": WeightConfig(
        price=20, delivery_time=40, shipping_cost=10,
        warranty=10, delivery_score=15, reputation=5,
    ),
}


def get_preset(name: str) -> WeightConfig:
    """Return a copy of a named weight template."""
    try:
        return WEIGHT_PRESETS[name].model_copy()
    except KeyError:
        raise UnknownPresetError(name)


def validate_weights(weights: WeightConfig) -> bool:
    total = weights.total()
    return abs(total - WEIGHT_TOTAL) <= WEIGHT_TOLERANCE and all(
        value >= 0 for value in weights.as_dict().values()
    )


def ensure_valid_weights(weights: WeightConfig) -> WeightConfig:
    if not validate_weights(weights):
        raise InvalidWeightsError(weights.total())
    return weights


def redistribute_weights(
    key: Union[Metric, str],
    new_value: float,
    current: WeightConfig,
) -> WeightConfig:
    """
    Set one weight and rebalance the others so the total stays 100.

    The remainder is spread across the other five metrics in proportion to
    their current values, or equally when they are all zero. Floating point
    residue goes to the largest untouched weight.
    """
    key = Metric(key)
    new_value = max(0.0, min(WEIGHT_TOTAL, float(new_value)))

    if new_value == current.get(key) and validate_weights(current):
        return current.model_copy()

    others = [metric for metric in Metric if metric != key]
    remaining = WEIGHT_TOTAL - new_value
    others_total = sum(current.get(metric) for metric in others)

    values: Dict[Metric, float] = {key: new_value}
    if others_total <= 0:
        share = remaining / len(others)
        for metric in others:
            values[metric] = share
    else:
        factor = remaining / others_total
        for metric in others:
            values[metric] = current.get(metric) * factor

    residual = WEIGHT_TOTAL - sum(values.values())
    if residual:
        largest = max(others, key=lambda metric: values[metric])
        values[largest] = min(WEIGHT_TOTAL, max(0.0, values[largest] + residual))

    return WeightConfig.from_metrics(values)


# ============= SCORING =============

class RankedProposal(BaseModel):
    rank: int
    proposal: Proposal
    score: float
    normalized: Dict[Metric, float]
    metrics: Dict[Metric, float]


def _metric_bounds(all_metrics: Sequence[Dict[Metric, float]]) -> Dict[Metric, tuple]:
    return {
        metric: (
            min(values[metric] for values in all_metrics),
            max(values[metric] for values in all_metrics),
        )
        for metric in Metric
    }


def _normalize_metric(metric: Metric, value: float, low: float, high: float) -> float:
    if high == low:
        return TIED_METRIC_SCORE
    position = (value - low) / (high - low) * 100
    return 100 - position if metric.lower_is_better else position


def normalize_metrics(
    proposal: Proposal,
    all_proposals: Sequence[Proposal],
) -> Dict[Metric, float]:
    """Place each metric of a proposal on a 0-100 scale relative to the set."""
    all_metrics = [metric_values(p) for p in all_proposals] or [metric_values(proposal)]
    bounds = _metric_bounds(all_metrics)
    values = metric_values(proposal)
    return {
        metric: _normalize_metric(metric, values[metric], *bounds[metric])
        for metric in Metric
    }


def _weighted_sum(normalized: Dict[Metric, float], weights: WeightConfig) -> float:
    return sum(normalized[metric] * weights.get(metric) / WEIGHT_TOTAL for metric in Metric)


def calculate_weighted_score(
    proposal: Proposal,
    all_proposals: Sequence[Proposal],
    weights: WeightConfig,
) -> float:
    """Weighted 0-100 score of one proposal against the whole set."""
    ensure_valid_weights(weights)
    return _weighted_sum(normalize_metrics(proposal, all_proposals), weights)


def score_proposals(
    proposals: Sequence[Proposal],
    weights: WeightConfig,
) -> List[RankedProposal]:
    """
    Rank proposals by weighted score, best first.

    Ties keep the input order. An empty proposal set is a normal state
    while responses are still arriving and yields an empty ranking.

    Raises:
        InvalidWeightsError: if the weights do not sum to 100
    """
    ensure_valid_weights(weights)
    if not proposals:
        return []

    all_metrics = [metric_values(p) for p in proposals]
    bounds = _metric_bounds(all_metrics)

    scored = []
    for proposal, values in zip(proposals, all_metrics):
        normalized = {
            metric: _normalize_metric(metric, values[metric], *bounds[metric])
            for metric in Metric
        }
        scored.append((proposal, _weighted_sum(normalized, weights), normalized, values))

    # sorted() is stable, so equal scores keep their input order
    scored = sorted(scored, key=lambda entry: entry[1], reverse=True)

    ranking = [
        RankedProposal(
            rank=index + 1,
            proposal=proposal,
            score=score,
            normalized=normalized,
            metrics=values,
        )
        for index, (proposal, score, normalized, values) in enumerate(scored)
    ]
    logger.debug(
        f"Ranked {len(ranking)} proposals; leader {ranking[0].proposal.supplier_name} "
        f"with score {ranking[0].score:.1f}"
    )
    return ranking


# ============= SUMMARY =============

class ProposalSummary(BaseModel):
    total_proposals: int
    best_price: float
    average_delivery_time: float
    potential_savings: float


def summarize_proposals(proposals: Sequence[Proposal]) -> Optional[ProposalSummary]:
    """Headline numbers for a set of proposals, or None when there are none."""
    if not proposals:
        return None
    prices = [p.total_price for p in proposals]
    return ProposalSummary(
        total_proposals=len(proposals),
        best_price=min(prices),
        average_delivery_time=sum(p.delivery_time_days for p in proposals) / len(proposals),
        potential_savings=max(prices) - min(prices),
    )
