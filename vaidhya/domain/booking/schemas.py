"""Booking domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, field_validator

from ...shared.validators import validate_email, validate_mobile_number

ConsultationType = Literal["video", "audio", "in-person", "homeVisit"]
AppointmentType = Literal["doctor", "hospital", "service"]
AppointmentStatus = Literal["pending", "upcoming", "confirmed", "completed", "cancelled", "rejected"]


class PatientDetails(BaseModel):
    """Who the appointment is for (the customer or a dependant)"""

    name: str
    age: Optional[int] = None
    gender: Optional[Literal["Male", "Female", "Other"]] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    relationshipToCustomer: Literal["self", "spouse", "child", "parent", "sibling", "other"] = "self"
    medicalHistory: Optional[str] = None
    allergies: Optional[str] = None
    currentMedications: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Patient name is required")
        return v.strip()

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        if v:
            return validate_mobile_number(v)
        return v

    @field_validator("email")
    @classmethod
    def validate_patient_email(cls, v):
        if v:
            return validate_email(v)
        return v


class DoctorBookingRequest(BaseModel):
    """Schema for booking a doctor consultation"""

    doctorId: int
    consultationType: ConsultationType
    dateTime: datetime
    notes: Optional[str] = None
    patientDetails: PatientDetails


class HospitalBookingRequest(BaseModel):
    """Schema for booking a hospital service"""

    hospitalId: int
    dateTime: datetime
    service: str
    department: Optional[str] = None
    notes: Optional[str] = None
    patientDetails: Optional[PatientDetails] = None


class ServiceBookingRequest(BaseModel):
    """Schema for booking a vendor service"""

    vendorId: int
    serviceId: str
    dateTime: datetime
    notes: Optional[str] = None
    patientDetails: Optional[PatientDetails] = None


class VerifyPaymentRequest(BaseModel):
    """Checkout callback forwarded by the client app"""

    appointmentId: str
    razorpay_order_id: str
    razorpay_payment_id: str
    razorpay_signature: str


class RespondRequest(BaseModel):
    """Provider decision on an appointment"""

    appointmentId: str
    action: Literal["confirm", "reject"]
    reason: Optional[str] = None


class CancelRequest(BaseModel):
    reason: Optional[str] = None


class AppointmentResponse(BaseModel):
    """Schema for appointment response"""

    id: str
    appointmentId: str
    type: str
    customerId: int
    doctorId: Optional[int] = None
    hospitalId: Optional[int] = None
    serviceVendorId: Optional[int] = None
    providerName: Optional[str] = None
    dateTime: datetime
    consultationType: Optional[str] = None
    amount: float
    currency: str
    status: str
    notes: Optional[str] = None
    isPaid: bool
    paymentId: Optional[str] = None
    refundStatus: Optional[str] = None
    bookedAt: Optional[datetime] = None
    cancelledAt: Optional[datetime] = None
    cancellationReason: Optional[str] = None
    # Snapshot at booking time
    specialty: Optional[str] = None
    clinicName: Optional[str] = None
    clinicAddress: Optional[str] = None
    department: Optional[str] = None
    service: Optional[str] = None
    hospitalAddress: Optional[str] = None
    serviceType: Optional[str] = None
    serviceName: Optional[str] = None
    vendorAddress: Optional[str] = None
    patientDetails: Optional[dict[str, Any]] = None


class PaymentOrderResponse(BaseModel):
    id: str
    amount: int
    currency: str
    receipt: Optional[str] = None


class BookingResponse(BaseModel):
    """Pending appointment plus the order the client app must pay"""

    message: str
    appointment: AppointmentResponse
    order: PaymentOrderResponse
    keyId: Optional[str] = None


class AppointmentActionResponse(BaseModel):
    message: str
    appointment: AppointmentResponse
