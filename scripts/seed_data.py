#!/usr/bin/env python3
"""Seed database with sample data for development/testing."""

import random
import sys
import uuid
from datetime import date, datetime, timedelta
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from app.api.services.widget_catalogue import seed_widgets
from app.core.auth import ROLE_ADMIN
from app.core.database import SessionLocal, init_db
from app.models.recommendation import GlobalRecommendation
from app.models.score import SecureScoreHistory, TenantScore
from app.models.tenant import Tenant, UserTenant
from app.models.user import AppUser


def seed_tenants(db):
    """Create sample tenants."""
    tenants = [
        Tenant(
            id=str(uuid.uuid4()),
            name="Contoso Ltd",
            tenant_id="11111111-1111-1111-1111-111111111111",
            description="Professional services, 120 seats",
            is_active=True,
        ),
        Tenant(
            id=str(uuid.uuid4()),
            name="Fabrikam Inc",
            tenant_id="22222222-2222-2222-2222-222222222222",
            description="Manufacturing, 45 seats",
            is_active=True,
        ),
        Tenant(
            id=str(uuid.uuid4()),
            name="Northwind Traders",
            tenant_id="33333333-3333-3333-3333-333333333333",
            description="Retail, 300 seats",
            is_active=True,
        ),
    ]
    db.add_all(tenants)
    db.commit()
    return tenants


def seed_admin(db, tenants):
    """Create a local admin with access to every sample tenant."""
    admin = AppUser(
        id=str(uuid.uuid4()),
        email="admin@example.com",
        first_name="Dashboard",
        last_name="Admin",
        role=ROLE_ADMIN,
    )
    db.add(admin)
    for tenant in tenants:
        db.add(UserTenant(
            id=str(uuid.uuid4()),
            user_id=admin.id,
            tenant_id=tenant.id,
            granted_by="seed",
        ))
    db.commit()
    return admin


def seed_scores(db, tenants, days=120):
    """Create daily maturity and secure score snapshots with a gentle upward drift."""
    today = date.today()
    for tenant in tenants:
        maturity = random.uniform(35, 55)
        secure = random.uniform(40, 60)
        for i in range(days, 0, -1):
            maturity = min(100, maturity + random.uniform(-0.5, 0.8))
            secure = min(100, secure + random.uniform(-0.4, 0.6))
            db.add(TenantScore(
                tenant_id=tenant.id,
                score_date=today - timedelta(days=i),
                total_score=round(maturity),
                max_score=100,
                total_score_pct=round(maturity, 2),
                microsoft_secure_score=round(secure * 1.5, 2),
                microsoft_secure_score_pct=round(secure, 2),
                breakdown={},
                last_updated=datetime.utcnow() - timedelta(days=i),
            ))
    db.commit()


def seed_secure_score_history(db, tenants, months=6):
    """Create month-end secure score captures."""
    first_of_month = date.today().replace(day=1)
    for tenant in tenants:
        for i in range(months, 0, -1):
            month_end = first_of_month
            for _ in range(i):
                month_end = month_end.replace(day=1) - timedelta(days=1)
            pct = random.randint(40, 80)
            db.add(SecureScoreHistory(
                tenant_id=tenant.id,
                score=pct * 1.5,
                score_percent=pct,
                max_score=150,
                recorded_at=datetime.combine(month_end, datetime.min.time()).replace(hour=23, minute=59),
                report_quarter=(month_end.month - 1) // 3 + 1,
                report_year=month_end.year,
            ))
    db.commit()


def seed_global_recommendations(db):
    """Create a starter recommendation library."""
    entries = [
        ("Enforce phishing-resistant MFA", "Roll out FIDO2 keys or Windows Hello for all admins.", "High", "Identity"),
        ("Block legacy authentication", "Create a conditional access policy blocking legacy protocols.", "High", "Identity"),
        ("Encrypt all managed devices", "Require BitLocker/FileVault through an Intune compliance policy.", "Medium", "Devices"),
        ("Define trusted locations", "Add office egress IPs as trusted named locations.", "Low", "Identity"),
        ("Test backup restores quarterly", "Schedule and document a restore test every quarter.", "Medium", "Data"),
    ]
    for title, description, priority, category in entries:
        db.add(GlobalRecommendation(
            title=title,
            description=description,
            priority=priority,
            category=category,
            active=True,
            created_by="seed",
        ))
    db.commit()


def main():
    """Main seeding function."""
    print("Initializing database...")
    init_db()

    db = SessionLocal()
    try:
        result = seed_widgets(db)
        print(f"  ✓ Widget catalogue: {result['created']} created, {result['updated']} updated")

        # Check if data already exists
        existing = db.query(Tenant).first()
        if existing:
            print("Database already seeded. Clear data/ folder to re-seed.")
            return

        tenants = seed_tenants(db)
        print(f"  ✓ Created {len(tenants)} tenants")

        seed_admin(db, tenants)
        print("  ✓ Created admin@example.com")

        seed_scores(db, tenants)
        print("  ✓ Created daily score snapshots")

        seed_secure_score_history(db, tenants)
        print("  ✓ Created secure score history")

        seed_global_recommendations(db)
        print("  ✓ Created global recommendation library")

        print("\nSeeding complete! Run 'uvicorn app.main:app --reload' to start.")

    finally:
        db.close()


if __name__ == "__main__":
    main()
