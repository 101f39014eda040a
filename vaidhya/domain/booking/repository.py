"""Booking repository - Database operations for appointments"""

from typing import Optional

from sqlalchemy.orm import Session, joinedload

from ...models import Appointment, ProviderService, Transaction, User


class BookingRepository:
    """Repository for appointment database operations"""

    @staticmethod
    def get_user_by_id(db: Session, user_id: int) -> Optional[User]:
        """Get user by ID with provider profile"""
        return (
            db.query(User)
            .options(joinedload(User.provider_profile))
            .filter(User.id == user_id)
            .first()
        )

    @staticmethod
    def get_active_service_by_type(
        db: Session, provider_id: int, service_type: str
    ) -> Optional[ProviderService]:
        """Active doctor service of a consultation type"""
        return (
            db.query(ProviderService)
            .filter(
                ProviderService.provider_id == provider_id,
                ProviderService.service_type == service_type,
                ProviderService.is_active.is_(True),
            )
            .first()
        )

    @staticmethod
    def get_active_service_by_name(db: Session, provider_id: int, name: str) -> Optional[ProviderService]:
        return (
            db.query(ProviderService)
            .filter(
                ProviderService.provider_id == provider_id,
                ProviderService.name == name,
                ProviderService.is_active.is_(True),
            )
            .first()
        )

    @staticmethod
    def get_active_service_by_key(db: Session, provider_id: int, service_key: str) -> Optional[ProviderService]:
        return (
            db.query(ProviderService)
            .filter(
                ProviderService.provider_id == provider_id,
                ProviderService.service_key == service_key,
                ProviderService.is_active.is_(True),
            )
            .first()
        )

    @staticmethod
    def get_appointment_by_public_id(db: Session, public_id: str) -> Optional[Appointment]:
        """Get appointment by public ID"""
        return db.query(Appointment).filter(Appointment.public_id == public_id).first()

    @staticmethod
    def create_appointment(db: Session, **appointment_data) -> Appointment:
        """Create a new appointment"""
        appointment = Appointment(**appointment_data)
        db.add(appointment)
        db.commit()
        db.refresh(appointment)
        return appointment

    @staticmethod
    def compare_and_set_status(
        db: Session,
        appointment_id: int,
        expected: tuple,
        new_status: str,
        require_unpaid: bool = False,
        **fields,
    ) -> bool:
        """
        Move an appointment to ``new_status`` only if its status is still one of
        ``expected``. Extra column values are written in the same UPDATE.
        With ``require_unpaid`` the row must also still have ``is_paid = false``.
        Returns True when the row changed. The caller commits.
        """
        values = {Appointment.status: new_status}
        values.update({getattr(Appointment, name): value for name, value in fields.items()})
        query = db.query(Appointment).filter(
            Appointment.id == appointment_id, Appointment.status.in_(expected)
        )
        if require_unpaid:
            query = query.filter(Appointment.is_paid.is_(False))
        updated = query.update(values, synchronize_session="fetch")
        return updated == 1

    @staticmethod
    def list_customer_appointments(
        db: Session,
        customer_id: int,
        status: Optional[str] = None,
        appointment_type: Optional[str] = None,
    ) -> list[Appointment]:
        """Customer appointments, newest date first"""
        query = db.query(Appointment).filter(Appointment.customer_id == customer_id)
        if status:
            query = query.filter(Appointment.status == status)
        if appointment_type:
            query = query.filter(Appointment.type == appointment_type)
        return query.order_by(Appointment.date_time.desc()).all()

    @staticmethod
    def latest_customer_appointment(
        db: Session,
        customer_id: int,
        status: Optional[str] = None,
        appointment_type: Optional[str] = None,
    ) -> Optional[Appointment]:
        """Most recently booked appointment of a customer"""
        query = db.query(Appointment).filter(Appointment.customer_id == customer_id)
        if status:
            query = query.filter(Appointment.status == status)
        if appointment_type:
            query = query.filter(Appointment.type == appointment_type)
        return query.order_by(Appointment.booked_at.desc(), Appointment.id.desc()).first()

    @staticmethod
    def list_provider_appointments(
        db: Session, provider_column, provider_id: int, status: Optional[str] = None
    ) -> list[Appointment]:
        """Appointments referencing a provider through ``provider_column``"""
        query = db.query(Appointment).filter(provider_column == provider_id)
        if status:
            query = query.filter(Appointment.status == status)
        return query.order_by(Appointment.date_time.desc()).all()

    @staticmethod
    def add_transaction(db: Session, **transaction_data) -> Transaction:
        """Stage a ledger row. The caller commits."""
        transaction = Transaction(**transaction_data)
        db.add(transaction)
        return transaction
