"""
FieldDesk Test Configuration

Shared fixtures for all tests. Settings are module-level constants read at
import time, so the environment is prepared before the app is imported.
"""
import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["CACHE_ENABLED"] = "false"
os.environ["SECURITY_HEADERS_ENABLED"] = "true"
os.environ["AUTH_JWT_SECRET"] = "test-jwt-secret"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["WEBHOOK_SECRET"] = "test-webhook-secret"
os.environ["STRIPE_SECRET_KEY"] = "sk_test_fielddesk"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test_fielddesk"
os.environ["RESEND_API_KEY"] = ""
os.environ["OPENAI_API_KEY"] = ""
os.environ["SQUARE_WEBHOOK_SIGNATURE_KEY"] = ""
os.environ["BUSINESS_EMAIL"] = "office@sparkle.test"

from datetime import datetime, timedelta  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from jose import jwt  # noqa: E402

from app.database import Base, SessionLocal, engine, get_db  # noqa: E402
from app.main import app  # noqa: E402
from app.models import Account, Client, Job, User  # noqa: E402
from app.models_invoice import Estimate, Invoice  # noqa: E402
from app.models_visit import Visit  # noqa: E402


def make_token(auth_uid: str, email: str, **claims) -> str:
    payload = {"sub": auth_uid, "email": email, **claims}
    return jwt.encode(payload, "test-jwt-secret", algorithm="HS256")


def auth_header(user: User) -> dict:
    return {"Authorization": f"Bearer {make_token(user.auth_uid, user.email)}"}


# =============================================================================
# FIXTURES: Database & client
# =============================================================================

@pytest.fixture
def db():
    """Fresh in-memory schema per test."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db):
    """TestClient bound to the test session (lifespan is not started)."""

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


# =============================================================================
# FIXTURES: Accounts & users
# =============================================================================

@pytest.fixture
def account(db) -> Account:
    account = Account(name="Sparkle Field Services", email="office@sparkle.test", default_tax_rate=0.1)
    db.add(account)
    db.commit()
    db.refresh(account)
    return account


@pytest.fixture
def other_account(db) -> Account:
    account = Account(name="Other Co", email="hello@other.test")
    db.add(account)
    db.commit()
    db.refresh(account)
    return account


def _user(db, account, role, email, client_id=None, auth_uid=None) -> User:
    user = User(
        auth_uid=auth_uid or f"{role.lower()}-{account.id}",
        email=email,
        full_name=f"{role.title()} User",
        account_id=account.id,
        role=role,
        client_id=client_id,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def owner(db, account) -> User:
    return _user(db, account, "OWNER", "owner@sparkle.test")


@pytest.fixture
def admin(db, account) -> User:
    return _user(db, account, "ADMIN", "admin@sparkle.test")


@pytest.fixture
def tech(db, account) -> User:
    return _user(db, account, "TECH", "tech@sparkle.test")


@pytest.fixture
def other_tech(db, account) -> User:
    return _user(db, account, "TECH", "tech2@sparkle.test", auth_uid="second-tech")


@pytest.fixture
def customer_client(db, account) -> Client:
    record = Client(
        account_id=account.id,
        name="Jane Homeowner",
        email="jane@home.test",
        phone="+15125550100",
        address="12 Oak St",
        city="Austin",
        state="TX",
        zip_code="78701",
    )
    db.add(record)
    db.commit()
    db.refresh(record)
    return record


@pytest.fixture
def customer(db, account, customer_client) -> User:
    return _user(db, account, "CUSTOMER", "jane@home.test", client_id=customer_client.id)


@pytest.fixture
def outsider(db, other_account) -> User:
    return _user(db, other_account, "OWNER", "owner@other.test")


@pytest.fixture
def owner_headers(owner) -> dict:
    return auth_header(owner)


@pytest.fixture
def admin_headers(admin) -> dict:
    return auth_header(admin)


@pytest.fixture
def tech_headers(tech) -> dict:
    return auth_header(tech)


@pytest.fixture
def customer_headers(customer) -> dict:
    return auth_header(customer)


@pytest.fixture
def outsider_headers(outsider) -> dict:
    return auth_header(outsider)


# =============================================================================
# FIXTURES: Sample records
# =============================================================================

@pytest.fixture
def make_job(db, account, customer_client):
    counter = {"n": 0}

    def _make(**fields) -> Job:
        counter["n"] += 1
        values = {
            "account_id": account.id,
            "client_id": customer_client.id,
            "job_number": f"JOB-TEST-{counter['n']:04d}",
            "title": "Deep clean",
            "status": "scheduled",
            "service_date": datetime.utcnow().date(),
            "scheduled_time": "09:00",
            "address": "12 Oak St",
            "line_items": [{"description": "Deep clean", "quantity": 1, "unit_price": 200.0, "total": 200.0}],
            "subtotal": 200.0,
            "tax_rate": 0.1,
            "tax_amount": 20.0,
            "total": 220.0,
        }
        values.update(fields)
        job = Job(**values)
        db.add(job)
        db.commit()
        db.refresh(job)
        return job

    return _make


@pytest.fixture
def make_invoice(db, account, customer_client):
    counter = {"n": 0}

    def _make(**fields) -> Invoice:
        counter["n"] += 1
        values = {
            "account_id": account.id,
            "client_id": customer_client.id,
            "invoice_number": f"INV-TEST-{counter['n']:04d}",
            "title": "Deep clean",
            "line_items": [{"description": "Deep clean", "quantity": 1, "unit_price": 100.0, "total": 100.0}],
            "subtotal": 100.0,
            "total": 100.0,
            "amount_paid": 0.0,
            "status": "sent",
            "due_date": datetime.utcnow() + timedelta(days=14),
        }
        values.update(fields)
        invoice = Invoice(**values)
        db.add(invoice)
        db.commit()
        db.refresh(invoice)
        return invoice

    return _make


@pytest.fixture
def make_estimate(db, account, customer_client):
    counter = {"n": 0}

    def _make(**fields) -> Estimate:
        counter["n"] += 1
        values = {
            "account_id": account.id,
            "client_id": customer_client.id,
            "estimate_number": f"EST-TEST-{counter['n']:04d}",
            "title": "Carpet cleaning",
            "line_items": [{"description": "Carpet cleaning", "quantity": 2, "unit_price": 75.0, "total": 150.0}],
            "subtotal": 150.0,
            "total": 150.0,
            "status": "sent",
        }
        values.update(fields)
        estimate = Estimate(**values)
        db.add(estimate)
        db.commit()
        db.refresh(estimate)
        return estimate

    return _make


@pytest.fixture
def make_visit(db, account):
    def _make(job, **fields) -> Visit:
        values = {
            "account_id": account.id,
            "job_id": job.id,
            "start_at": datetime.utcnow().replace(hour=9, minute=0, second=0, microsecond=0),
            "status": "scheduled",
        }
        values.update(fields)
        visit = Visit(**values)
        db.add(visit)
        db.commit()
        db.refresh(visit)
        return visit

    return _make
