"""
Seed demo data for decision matrix verification.
Creates 3 suppliers, 1 quote with 2 items, and 3 proposals.
Run: python -m scripts.seed_demo_data
"""
import os
import sys

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from proposal_engine.db.session import get_db_context, init_db
from proposal_engine.db.models import (
    Supplier, Quote, QuoteItem, QuoteSupplier, QuoteProposal, QuoteStatus
)


def _seed(db):
    """Insert the demo rows; returns the new quote, or None when already seeded."""
    # 1. Suppliers
    supplier_data = [
        {"name": "Casa do Construtor", "contact_email": "vendas@casaconstrutor.example.com",
         "delivery_score": 92.0, "reputation": 4.5},
        {"name": "Depósito Central", "contact_email": "orcamentos@depositocentral.example.com",
         "delivery_score": 75.0, "reputation": 3.8},
        {"name": "Materiais Silva", "contact_email": "contato@materiaissilva.example.com",
         "delivery_score": 60.0, "reputation": 3.0},
    ]

    suppliers = []
    for data in supplier_data:
        supplier = db.query(Supplier).filter(Supplier.name == data["name"]).first()
        if not supplier:
            supplier = Supplier(**data)
            db.add(supplier)
            db.flush()
            print(f"✅ Created supplier: {supplier.name} (ID: {supplier.id})")
        else:
            print(f"✓ Supplier exists: {supplier.name} (ID: {supplier.id})")
        suppliers.append(supplier)

    # 2. Quote with items and invitations
    quote = db.query(Quote).filter(Quote.quote_number == "Q-DEMO-0001").first()
    if quote:
        print(f"✓ Quote exists: {quote.quote_number} (ID: {quote.id})")
        return None

    quote = Quote(
        quote_number="Q-DEMO-0001",
        title="Reforma do salão de festas",
        status=QuoteStatus.RECEIVING.value,
    )
    db.add(quote)
    db.flush()

    db.add(QuoteItem(quote_id=quote.id, product_name="Cimento CP II 50kg", quantity=10))
    db.add(QuoteItem(quote_id=quote.id, product_name="Areia média (m³)", quantity=4))
    for supplier in suppliers:
        db.add(QuoteSupplier(quote_id=quote.id, supplier_id=supplier.id, responded=True))

    # 3. Proposals (the second one reports a total that does not add up)
    proposal_data = [
        (suppliers[0], [("Cimento CP II 50kg", 10, 20.0), ("Areia média (m³)", 4, 130.0)], 10.0, 730.0, 3, 12),
        (suppliers[1], [("Cimento CP II 50kg", 10, 18.0), ("Areia média (m³)", 4, 140.0)], 0.0, 800.0, 5, None),
        (suppliers[2], [("Cimento CP II 50kg", 10, 25.0), ("Areia média (m³)", 4, 120.0)], 25.0, 755.0, 2, 6),
    ]
    for supplier, items, shipping, total, delivery, warranty in proposal_data:
        db.add(QuoteProposal(
            quote_id=quote.id,
            supplier_id=supplier.id,
            items=[
                {"product_name": name, "quantity": qty, "unit_price": price, "total": qty * price}
                for name, qty, price in items
            ],
            shipping_cost=shipping,
            total_amount=total,
            delivery_time=delivery,
            warranty_months=warranty,
        ))
    db.flush()
    return quote


def seed_demo_data():
    """Create demo data for verification."""
    init_db()

    try:
        with get_db_context() as db:
            quote = _seed(db)
            if quote is None:
                return
            quote_id, quote_number = quote.id, quote.quote_number
    except Exception as e:
        print(f"❌ Error: {e}")
        raise

    print("\n" + "="*60)
    print("DEMO DATA SEED COMPLETE")
    print("="*60)
    print(f"""
Summary:
- Suppliers: 3
- Quote: {quote_number} (ID: {quote_id}) with 2 items
- Proposals: 3

Try:
1. GET  /api/quotes/{quote_id}/proposals
2. POST /api/quotes/{quote_id}/ranking
3. GET  /api/quotes/{quote_id}/combination
""")


if __name__ == "__main__":
    seed_demo_data()
