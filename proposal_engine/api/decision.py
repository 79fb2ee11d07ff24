"""
Decision matrix API routes - weight presets, templates and interactive editing.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from proposal_engine.db.session import get_db
from proposal_engine.db.models import DecisionMatrixTemplate
from proposal_engine.core.logging import audit_logger
from proposal_engine.services.decision_matrix import (
    WEIGHT_PRESETS, Metric, WeightConfig, redistribute_weights, validate_weights,
)

router = APIRouter(prefix="/api/decision", tags=["Decision Matrix"])


# ============= SCHEMAS =============

class RedistributeRequest(BaseModel):
    key: Metric
    value: float = Field(ge=0, le=100)
    current: WeightConfig


class ValidationResponse(BaseModel):
    valid: bool
    total: float


class TemplateCreate(BaseModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    weights: WeightConfig


class TemplateResponse(BaseModel):
    id: int
    name: str
    description: Optional[str]
    weights: WeightConfig


# ============= ROUTES =============

@router.get("/presets", response_model=dict)
async def list_presets():
    """Built-in weight templates."""
    return {name: weights.model_dump() for name, weights in WEIGHT_PRESETS.items()}


@router.post("/weights/redistribute", response_model=WeightConfig)
async def redistribute(request_data: RedistributeRequest):
    """Move one slider and rebalance the others to keep the total at 100."""
    return redistribute_weights(request_data.key, request_data.value, request_data.current)


@router.post("/weights/validate", response_model=ValidationResponse)
async def validate(weights: WeightConfig):
    """Check that weights sum to 100."""
    return ValidationResponse(valid=validate_weights(weights), total=round(weights.total(), 4))


@router.get("/templates", response_model=List[TemplateResponse])
async def list_templates(db: Session = Depends(get_db)):
    """Buyer-defined weight templates."""
    templates = db.query(DecisionMatrixTemplate).order_by(DecisionMatrixTemplate.name).all()
    return [
        TemplateResponse(id=t.id, name=t.name, description=t.description, weights=WeightConfig(**t.weights))
        for t in templates
    ]


@router.post("/templates", response_model=TemplateResponse)
async def create_template(
    template_data: TemplateCreate,
    db: Session = Depends(get_db)
):
    """Save a weight configuration as a reusable template."""
    if not validate_weights(template_data.weights):
        raise HTTPException(status_code=400, detail="Weights must sum to 100")

    name = template_data.name.strip()
    if name in WEIGHT_PRESETS:
        raise HTTPException(status_code=400, detail="Template name clashes with a built-in preset")

    existing = db.query(DecisionMatrixTemplate).filter(DecisionMatrixTemplate.name == name).first()
    if existing:
        raise HTTPException(status_code=400, detail="Template already exists")

    template = DecisionMatrixTemplate(
        name=name,
        description=template_data.description,
        weights=template_data.weights.model_dump(),
    )
    db.add(template)
    db.commit()
    db.refresh(template)

    audit_logger.log(
        action="create_weight_template",
        entity_type="decision_matrix_template",
        entity_id=template.id,
        details={"name": name, "weights": template.weights},
    )

    return TemplateResponse(
        id=template.id,
        name=template.name,
        description=template.description,
        weights=template_data.weights,
    )
