"""
Suppliers API routes.
"""
from typing import List, Optional
from datetime import datetime
from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from proposal_engine.db.session import get_db
from proposal_engine.db.models import Supplier

router = APIRouter(prefix="/api/suppliers", tags=["Suppliers"])


# ============= SCHEMAS =============

class SupplierCreate(BaseModel):
    name: str
    contact_email: Optional[str] = None
    delivery_score: Optional[float] = Field(None, ge=0, le=100)
    reputation: Optional[float] = Field(None, ge=0, le=5)


class SupplierResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    contact_email: Optional[str]
    delivery_score: Optional[float]
    reputation: Optional[float]
    created_at: Optional[datetime]


# ============= ROUTES =============

@router.get("", response_model=List[SupplierResponse])
async def list_suppliers(
    search: Optional[str] = Query(None, description="Search by name"),
    limit: int = Query(50, le=100),
    offset: int = Query(0),
    db: Session = Depends(get_db)
):
    """List suppliers."""
    query = db.query(Supplier)
    if search:
        query = query.filter(Supplier.name.ilike(f"%{search}%"))
    return query.order_by(Supplier.name).offset(offset).limit(limit).all()


@router.post("", response_model=SupplierResponse)
async def create_supplier(
    supplier_data: SupplierCreate,
    db: Session = Depends(get_db)
):
    """Register a supplier."""
    supplier = Supplier(**supplier_data.model_dump())
    db.add(supplier)
    db.commit()
    db.refresh(supplier)
    return supplier


@router.get("/{supplier_id}", response_model=SupplierResponse)
async def get_supplier(
    supplier_id: int,
    db: Session = Depends(get_db)
):
    """Get supplier details."""
    supplier = db.query(Supplier).filter(Supplier.id == supplier_id).first()
    if not supplier:
        raise HTTPException(status_code=404, detail="Supplier not found")
    return supplier
