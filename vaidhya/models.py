import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base

PROVIDER_ROLES = ("doctor", "hospital", "vendor")
USER_ROLES = ("customer", "admin") + PROVIDER_ROLES
WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")

# Appointment type -> provider role that serves it
APPOINTMENT_PROVIDER_ROLES = {"doctor": "doctor", "hospital": "hospital", "service": "vendor"}


def generate_public_id():
    """Generate a unique public ID for secure public access"""
    return str(uuid.uuid4())


class User(Base):
    """Common base record for every role; provider roles carry a ProviderProfile"""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    public_id = Column(
        String(36), unique=True, nullable=False, index=True, default=generate_public_id
    )
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    mobile_number = Column(String(20), unique=True, index=True, nullable=False)
    role = Column(String(20), nullable=False, index=True)  # customer, doctor, hospital, vendor, admin
    is_verified = Column(Boolean, default=False, nullable=False)
    preferred_language = Column(String(30), default="english")
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    provider_profile = relationship(
        "ProviderProfile", back_populates="user", uselist=False, cascade="all, delete-orphan"
    )
    services = relationship(
        "ProviderService",
        back_populates="provider",
        cascade="all, delete-orphan",
        order_by="ProviderService.id",
    )
    working_days = relationship(
        "WorkingDay",
        back_populates="provider",
        cascade="all, delete-orphan",
        order_by="WorkingDay.id",
    )
    unavailable_periods = relationship(
        "UnavailablePeriod",
        back_populates="provider",
        cascade="all, delete-orphan",
        order_by="UnavailablePeriod.start_date",
    )

    @property
    def is_provider(self) -> bool:
        return self.role in PROVIDER_ROLES


class ProviderProfile(Base):
    """Role-specific extension for doctors, hospitals and vendors"""

    __tablename__ = "provider_profiles"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)

    # Doctor
    specialty = Column(String(255), nullable=True)
    clinic_name = Column(String(255), nullable=True)
    # Hospital
    facility_details = Column(Text, nullable=True)
    departments = Column(JSON, default=list, nullable=True)
    # Vendor
    service_types = Column(JSON, default=list, nullable=True)

    # Primary address (snapshotted onto appointments at booking time)
    address_line1 = Column(String(500), nullable=True)
    city = Column(String(255), nullable=True)
    state = Column(String(255), nullable=True)
    postal_code = Column(String(20), nullable=True)

    # Subscription gating
    subscription_active = Column(Boolean, default=False, nullable=False)
    subscription_expiry = Column(DateTime, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="provider_profile")

    def formatted_address(self) -> str:
        """Single-line address, e.g. '12 MG Road, Pune, MH 411001'"""
        locality = " ".join(part for part in (self.state, self.postal_code) if part)
        parts = [part for part in (self.address_line1, self.city, locality) if part]
        return ", ".join(parts)


class ProviderService(Base):
    """Priced catalog entry offered by a provider"""

    __tablename__ = "provider_services"

    id = Column(Integer, primary_key=True, index=True)
    provider_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    service_key = Column(
        String(36), unique=True, nullable=False, index=True, default=generate_public_id
    )
    # Doctors: Clinical Visit, Home Visit, Video Consultation, Voice Consultation
    service_type = Column(String(50), nullable=True)
    # Hospitals and vendors book by service name
    name = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    price = Column(Float, default=0, nullable=False)
    currency = Column(String(10), default="INR", nullable=False)
    duration_minutes = Column(Integer, nullable=True)
    commission_percentage = Column(Float, default=10, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    provider = relationship("User", back_populates="services")


class WorkingDay(Base):
    """One weekday of a provider's recurring schedule"""

    __tablename__ = "working_days"
    __table_args__ = (UniqueConstraint("provider_id", "day", name="uq_working_day_provider_day"),)

    id = Column(Integer, primary_key=True, index=True)
    provider_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    day = Column(String(10), nullable=False)  # Monday..Sunday
    is_available = Column(Boolean, default=True, nullable=False)

    provider = relationship("User", back_populates="working_days")
    slots = relationship(
        "AvailabilitySlot",
        back_populates="working_day",
        cascade="all, delete-orphan",
        order_by="AvailabilitySlot.position",
    )


class AvailabilitySlot(Base):
    """Bookable interval [start_time, end_time) on a working day"""

    __tablename__ = "availability_slots"

    id = Column(Integer, primary_key=True, index=True)
    working_day_id = Column(Integer, ForeignKey("working_days.id"), nullable=False, index=True)
    position = Column(Integer, default=0, nullable=False)
    start_time = Column(String(5), nullable=False)  # HH:MM, 24-hour
    end_time = Column(String(5), nullable=False)  # HH:MM, 24-hour
    # Only ever flipped through a conditional UPDATE (compare-and-swap)
    is_booked = Column(Boolean, default=False, nullable=False)

    working_day = relationship("WorkingDay", back_populates="slots")


class UnavailablePeriod(Base):
    """Leave/holiday block, inclusive on both calendar dates"""

    __tablename__ = "unavailable_periods"

    id = Column(Integer, primary_key=True, index=True)
    provider_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    reason = Column(String(500), nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    provider = relationship("User", back_populates="unavailable_periods")


class Appointment(Base):
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True, index=True)
    public_id = Column(
        String(36), unique=True, nullable=False, index=True, default=generate_public_id
    )

    # Exactly one provider reference is set, matching ``type``
    type = Column(String(20), nullable=False)  # doctor, hospital, service
    customer_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    doctor_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    hospital_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    service_vendor_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)

    # Clinic wall-clock time (naive, CLINIC_TIMEZONE)
    date_time = Column(DateTime, nullable=False, index=True)
    consultation_type = Column(String(20), nullable=True)  # video, audio, in-person, homeVisit
    provider_service_id = Column(Integer, ForeignKey("provider_services.id"), nullable=True)

    # Price locked at booking time
    amount = Column(Float, nullable=False)
    currency = Column(String(10), default="INR", nullable=False)

    # Status workflow: pending → upcoming | confirmed → completed
    # pending/upcoming/confirmed → cancelled | rejected
    status = Column(String(20), default="pending", nullable=False, index=True)
    notes = Column(Text, nullable=True)

    # Payment tracking
    payment_order_id = Column(String(255), nullable=True, index=True)
    payment_id = Column(String(255), nullable=True)
    is_paid = Column(Boolean, default=False, nullable=False)
    refund_status = Column(String(20), nullable=True)  # requested, failed
    # True while this appointment holds the commit on its slot
    slot_committed = Column(Boolean, default=False, nullable=False)

    # Audit trail
    booked_at = Column(DateTime, server_default=func.now())
    cancelled_at = Column(DateTime, nullable=True)
    cancellation_reason = Column(String(500), nullable=True)

    # Snapshot of provider details at booking time
    specialty = Column(String(255), nullable=True)
    clinic_name = Column(String(255), nullable=True)
    clinic_address = Column(String(500), nullable=True)
    department = Column(String(255), nullable=True)
    service = Column(String(255), nullable=True)
    hospital_address = Column(String(500), nullable=True)
    service_type = Column(String(255), nullable=True)
    service_name = Column(String(255), nullable=True)
    vendor_address = Column(String(500), nullable=True)

    patient_details = Column(JSON, nullable=True)

    # Call session, filled lazily on first initialization
    call_channel_name = Column(String(255), nullable=True)
    call_customer_uid = Column(Integer, nullable=True)
    call_provider_uid = Column(Integer, nullable=True)
    call_customer_token = Column(Text, nullable=True)
    call_provider_token = Column(Text, nullable=True)
    call_started = Column(Boolean, default=False, nullable=False)
    call_start_time = Column(DateTime, nullable=True)
    call_end_time = Column(DateTime, nullable=True)
    call_duration = Column(Integer, nullable=True)  # seconds

    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    customer = relationship("User", foreign_keys=[customer_id])
    doctor = relationship("User", foreign_keys=[doctor_id])
    hospital = relationship("User", foreign_keys=[hospital_id])
    service_vendor = relationship("User", foreign_keys=[service_vendor_id])
    provider_service = relationship("ProviderService")
    transactions = relationship("Transaction", back_populates="appointment")

    @property
    def appointment_id(self) -> str:
        """Short display id, e.g. appt_3fa2c1"""
        return f"appt_{self.public_id.replace('-', '')[-6:]}"

    @property
    def provider_id(self):
        return {
            "doctor": self.doctor_id,
            "hospital": self.hospital_id,
            "service": self.service_vendor_id,
        }.get(self.type)

    @property
    def provider(self):
        return {
            "doctor": self.doctor,
            "hospital": self.hospital,
            "service": self.service_vendor,
        }.get(self.type)


class Transaction(Base):
    """Ledger row written once when an appointment payment is captured"""

    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, index=True)
    appointment_id = Column(Integer, ForeignKey("appointments.id"), nullable=False, index=True)
    provider_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    amount = Column(Float, nullable=False)
    commission_amount = Column(Float, nullable=False)
    provider_earnings = Column(Float, nullable=False)
    appointment_type = Column(String(20), nullable=True)
    status = Column(String(20), default="pending", nullable=False)  # pending, completed, failed
    payment_id = Column(String(255), nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    appointment = relationship("Appointment", back_populates="transactions")


class Subscription(Base):
    """Yearly provider subscription purchased through the payment gateway"""

    __tablename__ = "subscriptions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    order_id = Column(String(255), nullable=False)
    payment_id = Column(String(255), nullable=False)
    amount = Column(Float, nullable=False)
    status = Column(String(20), default="pending", nullable=False)  # pending, completed, failed
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    user = relationship("User")
