"""Booking router - FastAPI endpoints for appointments"""

import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_provider, get_current_provider_with_subscription, get_current_user
from ...config import RAZORPAY_KEY_ID
from ...database import get_db
from ...models import Appointment, User
from ...services.notification_service import NotificationService, get_notification_service
from ...services.payment_gateway import RazorpayGateway, get_payment_gateway
from .cancellation import CancellationService
from .schemas import (
    AppointmentActionResponse,
    AppointmentResponse,
    AppointmentStatus,
    AppointmentType,
    BookingResponse,
    CancelRequest,
    DoctorBookingRequest,
    HospitalBookingRequest,
    PaymentOrderResponse,
    RespondRequest,
    ServiceBookingRequest,
    VerifyPaymentRequest,
)
from .service import BookingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/appointments", tags=["Appointments"])


def get_booking_service(
    db: Session = Depends(get_db),
    gateway: RazorpayGateway = Depends(get_payment_gateway),
    notifier: NotificationService = Depends(get_notification_service),
) -> BookingService:
    """Dependency injection for BookingService"""
    return BookingService(db, gateway, notifier)


def get_cancellation_service(
    db: Session = Depends(get_db),
    notifier: NotificationService = Depends(get_notification_service),
) -> CancellationService:
    """Dependency injection for CancellationService"""
    return CancellationService(db, notifier)


def appointment_response(appointment: Appointment) -> AppointmentResponse:
    provider = appointment.provider
    return AppointmentResponse(
        id=appointment.public_id,
        appointmentId=appointment.appointment_id,
        type=appointment.type,
        customerId=appointment.customer_id,
        doctorId=appointment.doctor_id,
        hospitalId=appointment.hospital_id,
        serviceVendorId=appointment.service_vendor_id,
        providerName=provider.name if provider else None,
        dateTime=appointment.date_time,
        consultationType=appointment.consultation_type,
        amount=appointment.amount,
        currency=appointment.currency,
        status=appointment.status,
        notes=appointment.notes,
        isPaid=appointment.is_paid,
        paymentId=appointment.payment_id,
        refundStatus=appointment.refund_status,
        bookedAt=appointment.booked_at,
        cancelledAt=appointment.cancelled_at,
        cancellationReason=appointment.cancellation_reason,
        specialty=appointment.specialty,
        clinicName=appointment.clinic_name,
        clinicAddress=appointment.clinic_address,
        department=appointment.department,
        service=appointment.service,
        hospitalAddress=appointment.hospital_address,
        serviceType=appointment.service_type,
        serviceName=appointment.service_name,
        vendorAddress=appointment.vendor_address,
        patientDetails=appointment.patient_details,
    )


def booking_response(message: str, appointment: Appointment, order: dict) -> BookingResponse:
    return BookingResponse(
        message=message,
        appointment=appointment_response(appointment),
        order=PaymentOrderResponse(
            id=order["id"],
            amount=order.get("amount", 0),
            currency=order.get("currency", appointment.currency),
            receipt=order.get("receipt"),
        ),
        keyId=RAZORPAY_KEY_ID,
    )


# ============================================================================
# BOOKING
# ============================================================================


@router.post("/book/doctor", response_model=BookingResponse, status_code=201)
async def book_doctor_appointment(
    data: DoctorBookingRequest,
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    """Book a doctor consultation and get a payment order"""
    appointment, order = await service.initiate_booking(
        current_user,
        "doctor",
        data.doctorId,
        data.dateTime,
        data.consultationType,
        patient_details=data.patientDetails,
        notes=data.notes,
    )
    return booking_response("Doctor appointment created successfully", appointment, order)


@router.post("/book/hospital", response_model=BookingResponse, status_code=201)
async def book_hospital_appointment(
    data: HospitalBookingRequest,
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    """Book a hospital service and get a payment order"""
    appointment, order = await service.initiate_booking(
        current_user,
        "hospital",
        data.hospitalId,
        data.dateTime,
        data.service,
        patient_details=data.patientDetails,
        notes=data.notes,
        department=data.department,
    )
    return booking_response("Hospital appointment created successfully", appointment, order)


@router.post("/book/service", response_model=BookingResponse, status_code=201)
async def book_service_appointment(
    data: ServiceBookingRequest,
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    """Book a vendor service and get a payment order"""
    appointment, order = await service.initiate_booking(
        current_user,
        "service",
        data.vendorId,
        data.dateTime,
        data.serviceId,
        patient_details=data.patientDetails,
        notes=data.notes,
    )
    return booking_response("Service appointment created successfully", appointment, order)


@router.post("/verify-payment", response_model=AppointmentActionResponse)
async def verify_appointment_payment(
    data: VerifyPaymentRequest,
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    """Apply the checkout callback and commit the slot"""
    appointment = await service.confirm_payment(
        current_user,
        data.appointmentId,
        data.razorpay_order_id,
        data.razorpay_payment_id,
        data.razorpay_signature,
    )
    return AppointmentActionResponse(
        message="Payment verified and appointment confirmed successfully",
        appointment=appointment_response(appointment),
    )


# ============================================================================
# QUERIES
# ============================================================================


@router.get("/customer", response_model=list[AppointmentResponse])
async def get_customer_appointments(
    status: Optional[AppointmentStatus] = Query(None),
    appointment_type: Optional[AppointmentType] = Query(None, alias="type"),
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    """All appointments of the current customer, newest first"""
    appointments = service.get_customer_appointments(current_user, status, appointment_type)
    return [appointment_response(a) for a in appointments]


@router.get("/customer/latest", response_model=AppointmentResponse)
async def get_latest_customer_appointment(
    status: Optional[AppointmentStatus] = Query(None),
    appointment_type: Optional[AppointmentType] = Query(None, alias="type"),
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    """Most recently booked appointment of the current customer"""
    appointment = service.get_latest_customer_appointment(current_user, status, appointment_type)
    return appointment_response(appointment)


@router.get("/provider", response_model=list[AppointmentResponse])
async def get_provider_appointments(
    status: Optional[AppointmentStatus] = Query(None),
    current_user: User = Depends(get_current_provider),
    service: BookingService = Depends(get_booking_service),
):
    """Appointments booked with the current provider"""
    appointments = service.get_provider_appointments(current_user, status)
    return [appointment_response(a) for a in appointments]


# ============================================================================
# STATUS CHANGES
# ============================================================================


@router.post("/respond", response_model=AppointmentActionResponse)
async def respond_to_appointment(
    data: RespondRequest,
    current_user: User = Depends(get_current_provider_with_subscription),
    service: CancellationService = Depends(get_cancellation_service),
):
    """Provider confirms or rejects an appointment"""
    appointment = await service.respond(data.appointmentId, current_user, data.action, data.reason)
    verb = "confirmed" if data.action == "confirm" else "rejected"
    return AppointmentActionResponse(
        message=f"Appointment {verb} successfully", appointment=appointment_response(appointment)
    )


@router.post("/{appointment_id}/cancel", response_model=AppointmentActionResponse)
async def cancel_appointment(
    appointment_id: str,
    data: Optional[CancelRequest] = Body(None),
    current_user: User = Depends(get_current_user),
    service: CancellationService = Depends(get_cancellation_service),
):
    """Cancel an appointment as its customer or provider"""
    appointment = await service.cancel(
        appointment_id, current_user, data.reason if data else None
    )
    return AppointmentActionResponse(
        message="Appointment cancelled successfully", appointment=appointment_response(appointment)
    )
