"""
Shared pytest fixtures.

In-memory SQLite (one shared connection through StaticPool), a fake payment
gateway and notifier, seeded users and a FastAPI TestClient with dependency
overrides.
"""

import os
from datetime import datetime, timedelta
from types import SimpleNamespace
from typing import Optional

# Must be set before vaidhya.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DB_LOG_SLOW_QUERIES", "false")
os.environ.setdefault("NOTIFICATIONS_ENABLED", "false")
os.environ.setdefault("CLINIC_TIMEZONE", "Asia/Kolkata")

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from vaidhya.config import JWT_ALGORITHM, SECRET_KEY
from vaidhya.database import Base, get_db
from vaidhya.domain.booking.schemas import PatientDetails
from vaidhya.domain.booking.service import BookingService
from vaidhya.errors import PaymentGatewayError
from vaidhya.main import app
from vaidhya.models import (
    AvailabilitySlot,
    ProviderProfile,
    ProviderService,
    User,
    WorkingDay,
)
from vaidhya.services.notification_service import get_notification_service
from vaidhya.services.payment_gateway import get_payment_gateway
from vaidhya.webhook_security import checkout_signature

TEST_GATEWAY_SECRET = "rzp_test_secret"

# 2025-06-16 is a Monday
MONDAY = datetime(2025, 6, 16)
TUESDAY = datetime(2025, 6, 17)


def sign(order_id: str, payment_id: str) -> str:
    """Signature the checkout would return for a genuine payment"""
    return checkout_signature(TEST_GATEWAY_SECRET, order_id, payment_id)


class FakeGateway:
    """Records orders and refunds; verifies signatures like the real gateway"""

    def __init__(self):
        self.orders = []
        self.refunds = []
        self.fail_orders = False
        self.fail_refunds = False

    async def create_order(
        self, amount_minor_units: int, receipt: str, currency: str = "INR", notes: Optional[dict] = None
    ) -> dict:
        if self.fail_orders:
            raise PaymentGatewayError("Payment gateway is unreachable")
        order = {
            "id": f"order_{len(self.orders) + 1}",
            "amount": amount_minor_units,
            "currency": currency,
            "receipt": receipt,
            "notes": notes or {},
        }
        self.orders.append(order)
        return order

    def verify_signature(self, order_id: str, payment_id: str, signature: str) -> bool:
        return bool(signature) and signature == sign(order_id, payment_id)

    async def refund(self, payment_id: str, amount_minor_units: Optional[int] = None) -> dict:
        if self.fail_refunds:
            raise PaymentGatewayError("Payment gateway rejected the request")
        refund = {"id": f"rfnd_{len(self.refunds) + 1}", "payment_id": payment_id, "amount": amount_minor_units}
        self.refunds.append(refund)
        return refund


class FakeNotifier:
    """Collects notifications instead of sending SMS"""

    def __init__(self):
        self.sent = []
        self.fail = False

    async def _record(self, kind: str, appointment, *args) -> dict:
        if self.fail:
            raise RuntimeError("SMS provider down")
        self.sent.append((kind, appointment.public_id) + args)
        return {"customer_sent": True, "provider_sent": True, "errors": []}

    async def notify_booking_confirmed(self, appointment):
        return await self._record("booking_confirmed", appointment)

    async def notify_cancelled(self, appointment, cancelled_by):
        return await self._record("cancelled", appointment, cancelled_by)

    async def notify_status_changed(self, appointment):
        return await self._record("status_changed", appointment)


# ============================================================================
# DATABASE FIXTURES
# ============================================================================


@pytest.fixture
def engine():
    test_engine = create_engine(
        "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
    )
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture
def db(engine):
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()
    yield session
    session.close()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def notifier():
    return FakeNotifier()


# ============================================================================
# SEED DATA
# ============================================================================


def make_user(db, name: str, email: str, mobile: str, role: str) -> User:
    user = User(name=name, email=email, mobile_number=mobile, role=role, is_verified=True)
    db.add(user)
    db.flush()
    return user


def make_provider(db, name: str, email: str, mobile: str, role: str, subscribed: bool = True, **profile) -> User:
    user = make_user(db, name, email, mobile, role)
    user.provider_profile = ProviderProfile(
        address_line1="12 MG Road",
        city="Pune",
        state="MH",
        postal_code="411001",
        subscription_active=subscribed,
        subscription_expiry=datetime.utcnow() + timedelta(days=30) if subscribed else None,
        **profile,
    )
    db.flush()
    return user


def add_working_day(db, provider: User, day: str, slots: list, is_available: bool = True) -> WorkingDay:
    working_day = WorkingDay(provider_id=provider.id, day=day, is_available=is_available)
    working_day.slots = [
        AvailabilitySlot(position=i, start_time=start, end_time=end) for i, (start, end) in enumerate(slots)
    ]
    db.add(working_day)
    db.flush()
    return working_day


@pytest.fixture
def seed(db):
    """Dr. A works Mondays 09:00-09:30 and 10:00-10:30; video costs 500, clinic visit 400"""
    customer = make_user(db, "Asha Rao", "asha@example.com", "9876543210", "customer")
    other_customer = make_user(db, "Ravi Kumar", "ravi@example.com", "9876500000", "customer")

    doctor = make_provider(
        db,
        "A Sharma",
        "dr.a@example.com",
        "9811111111",
        "doctor",
        specialty="Cardiology",
        clinic_name="Heart Care Clinic",
    )
    db.add_all(
        [
            ProviderService(provider_id=doctor.id, service_type="Video Consultation", price=500),
            ProviderService(provider_id=doctor.id, service_type="Clinical Visit", price=400),
            ProviderService(provider_id=doctor.id, service_type="Voice Consultation", price=0),
            ProviderService(provider_id=doctor.id, service_type="Home Visit", price=900, is_active=False),
        ]
    )
    monday = add_working_day(db, doctor, "Monday", [("09:00", "09:30"), ("10:00", "10:30")])
    add_working_day(db, doctor, "Tuesday", [("09:00", "12:00")], is_available=False)

    hospital = make_provider(
        db, "City Hospital", "city@example.com", "9822222222", "hospital", departments=["Radiology"]
    )
    db.add(ProviderService(provider_id=hospital.id, name="MRI Scan", price=2500, commission_percentage=15))

    vendor = make_provider(
        db, "Care At Home", "care@example.com", "9833333333", "vendor", service_types=["Physiotherapy"]
    )
    vendor_service = ProviderService(provider_id=vendor.id, name="Knee Rehab Session", price=800)
    db.add(vendor_service)

    unsubscribed_doctor = make_provider(
        db, "B Menon", "dr.b@example.com", "9844444444", "doctor", subscribed=False
    )

    db.commit()
    return SimpleNamespace(
        customer=customer,
        other_customer=other_customer,
        doctor=doctor,
        monday=monday,
        hospital=hospital,
        vendor=vendor,
        vendor_service=vendor_service,
        unsubscribed_doctor=unsubscribed_doctor,
    )


# ============================================================================
# API FIXTURES
# ============================================================================


async def book_and_pay(db, gateway, notifier, customer, doctor, when=None, consultation_type="video"):
    """Paid doctor appointment, Monday 09:15 unless ``when`` is given"""
    service = BookingService(db, gateway, notifier)
    appointment, order = await service.initiate_booking(
        customer,
        "doctor",
        doctor.id,
        when or MONDAY.replace(hour=9, minute=15),
        consultation_type,
        patient_details=PatientDetails(name=customer.name),
    )
    return await service.confirm_payment(
        customer, appointment.public_id, order["id"], f"pay_{order['id']}", sign(order["id"], f"pay_{order['id']}")
    )


def auth_headers(user: User) -> dict:
    token = jwt.encode({"sub": user.public_id}, SECRET_KEY, algorithm=JWT_ALGORITHM)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def client(db, gateway, notifier):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    app.dependency_overrides[get_notification_service] = lambda: notifier
    yield TestClient(app)
    app.dependency_overrides.clear()
