"""
Proposal decision engine.
Pure functions over plain records. proposal_loader bridges the quote store to them.
"""
from .proposal_normalizer import normalize_proposal, normalize_proposals, Proposal, LineItem
from .decision_matrix import (
    score_proposals,
    redistribute_weights,
    WeightConfig,
    Metric,
    InvalidWeightsError,
)
from .smart_combination import optimize_combination, CombinationResult
from .matrix_readiness import compute_matrix_visibility, evaluate_matrix_readiness

__all__ = [
    "normalize_proposal",
    "normalize_proposals",
    "score_proposals",
    "redistribute_weights",
    "optimize_combination",
    "compute_matrix_visibility",
    "evaluate_matrix_readiness",
    "Proposal",
    "LineItem",
    "WeightConfig",
    "Metric",
    "InvalidWeightsError",
    "CombinationResult",
]
