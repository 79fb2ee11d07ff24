"""
SQLAlchemy ORM models for the quote store.
Proposals are stored as the supplier sent them; normalization happens on read.
"""
from sqlalchemy import (
    Column, Integer, String, Text, Boolean, DateTime, Float,
    ForeignKey, Enum, JSON, UniqueConstraint
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum

from proposal_engine.db.session import Base


# ============= ENUMS =============

class QuoteStatus(str, enum.Enum):
    DRAFT = "draft"
    SENT = "sent"
    RECEIVING = "receiving"
    EVALUATING = "evaluating"
    AWARDED = "awarded"
    CLOSED = "closed"


# Store enum values (lowercase) rather than names (UPPERCASE)
def enum_values(enum_cls):
    return [e.value for e in enum_cls]

QuoteStatusType = Enum(
    *enum_values(QuoteStatus),
    name='quotestatus',
)


# ============= SUPPLIERS =============

class Supplier(Base):
    """Supplier that can be invited to quotes."""
    __tablename__ = "suppliers"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    contact_email = Column(String(255))
    # Historical on-time delivery performance (0-100)
    delivery_score = Column(Float)
    # Buyer rating (0-5)
    reputation = Column(Float)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    invitations = relationship("QuoteSupplier", back_populates="supplier")


# ============= QUOTES =============

class Quote(Base):
    """Request for Quote."""
    __tablename__ = "quotes"

    id = Column(Integer, primary_key=True, index=True)
    quote_number = Column(String(50), unique=True, nullable=False)
    title = Column(String(255), nullable=False)
    description = Column(Text)
    status = Column(QuoteStatusType, default=QuoteStatus.DRAFT.value)
    deadline = Column(DateTime(timezone=True))
    # Buyer chose to proceed before every supplier responded (one way)
    manual_override = Column(Boolean, default=False, nullable=False)
    # Set once the decision matrix has been shown; never cleared
    matrix_unlocked = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    items = relationship("QuoteItem", back_populates="quote", order_by="QuoteItem.id")
    invitations = relationship("QuoteSupplier", back_populates="quote")
    proposals = relationship("QuoteProposal", back_populates="quote", order_by="QuoteProposal.id")
    saved_matrices = relationship("SavedDecisionMatrix", back_populates="quote")


class QuoteItem(Base):
    """Line item requested in a quote."""
    __tablename__ = "quote_items"

    id = Column(Integer, primary_key=True, index=True)
    quote_id = Column(Integer, ForeignKey("quotes.id"), nullable=False)
    product_name = Column(String(255), nullable=False)
    quantity = Column(Integer, nullable=False)

    quote = relationship("Quote", back_populates="items")


class QuoteSupplier(Base):
    """Suppliers invited to a quote."""
    __tablename__ = "quote_suppliers"

    id = Column(Integer, primary_key=True, index=True)
    quote_id = Column(Integer, ForeignKey("quotes.id"), nullable=False)
    supplier_id = Column(Integer, ForeignKey("suppliers.id"), nullable=False)
    invited_at = Column(DateTime(timezone=True), server_default=func.now())
    responded = Column(Boolean, default=False)

    # Relationships
    quote = relationship("Quote", back_populates="invitations")
    supplier = relationship("Supplier", back_populates="invitations")

    __table_args__ = (
        UniqueConstraint('quote_id', 'supplier_id', name='uq_quote_supplier'),
    )


class QuoteProposal(Base):
    """A supplier's response to a quote, stored verbatim."""
    __tablename__ = "quote_proposals"

    id = Column(Integer, primary_key=True, index=True)
    quote_id = Column(Integer, ForeignKey("quotes.id"), nullable=False)
    supplier_id = Column(Integer, ForeignKey("suppliers.id"), nullable=False)
    # Line items exactly as submitted: product_name, quantity, unit_price, total, brand...
    items = Column(JSON)
    shipping_cost = Column(Float)
    total_amount = Column(Float)  # Supplier-declared total
    delivery_time = Column(Integer)  # days
    warranty_months = Column(Integer)
    notes = Column(Text)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    quote = relationship("Quote", back_populates="proposals")
    supplier = relationship("Supplier")

    # One proposal per supplier and quote; a resubmission replaces it
    __table_args__ = (
        UniqueConstraint('quote_id', 'supplier_id', name='uq_quote_proposal_supplier'),
    )


# ============= DECISION MATRIX =============

class DecisionMatrixTemplate(Base):
    """Buyer-defined weight template."""
    __tablename__ = "decision_matrix_templates"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), unique=True, nullable=False)
    description = Column(Text)
    weights = Column(JSON, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class SavedDecisionMatrix(Base):
    """Snapshot of a ranking with the weights that produced it."""
    __tablename__ = "saved_decision_matrices"

    id = Column(Integer, primary_key=True, index=True)
    quote_id = Column(Integer, ForeignKey("quotes.id"), nullable=False)
    name = Column(String(255), nullable=False)
    weights = Column(JSON, nullable=False)
    proposals = Column(JSON, nullable=False)  # [{id, name, score, metrics}]
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    quote = relationship("Quote", back_populates="saved_matrices")
