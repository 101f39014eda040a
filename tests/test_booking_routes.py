"""End-to-end appointment flows through the HTTP API."""

from .conftest import auth_headers, sign

DOCTOR_BOOKING = {
    "consultationType": "video",
    "dateTime": "2025-06-16T09:15:00",
    "notes": "Chest pain after exercise",
    "patientDetails": {"name": "Asha Rao", "age": 34, "gender": "Female"},
}


def book(client, seed, customer=None, **overrides):
    payload = {**DOCTOR_BOOKING, "doctorId": seed.doctor.id, **overrides}
    return client.post(
        "/appointments/book/doctor", json=payload, headers=auth_headers(customer or seed.customer)
    )


def verify(client, user, appointment_id, order_id, payment_id="pay_1", signature=None):
    return client.post(
        "/appointments/verify-payment",
        json={
            "appointmentId": appointment_id,
            "razorpay_order_id": order_id,
            "razorpay_payment_id": payment_id,
            "razorpay_signature": signature or sign(order_id, payment_id),
        },
        headers=auth_headers(user),
    )


class TestBookDoctor:
    def test_booking_returns_order(self, client, seed):
        response = book(client, seed)

        assert response.status_code == 201
        data = response.json()
        assert data["order"]["amount"] == 50000
        assert data["order"]["currency"] == "INR"
        assert data["appointment"]["status"] == "pending"
        assert data["appointment"]["isPaid"] is False
        assert data["appointment"]["providerName"] == "A Sharma"
        assert data["appointment"]["clinicName"] == "Heart Care Clinic"
        assert data["appointment"]["patientDetails"]["name"] == "Asha Rao"

    def test_full_flow_commits_slot(self, client, seed):
        booking = book(client, seed).json()
        appointment_id = booking["appointment"]["id"]

        response = verify(client, seed.customer, appointment_id, booking["order"]["id"])

        assert response.status_code == 200
        assert response.json()["appointment"]["status"] == "upcoming"
        assert response.json()["appointment"]["isPaid"] is True

        slots = client.get(f"/availability/{seed.doctor.id}", params={"date": "2025-06-16", "days": 1}).json()
        assert slots["availableSlots"][0]["slots"] == [{"startTime": "10:00", "endTime": "10:30"}]

    def test_taken_slot_reports_free_slots(self, client, seed):
        booking = book(client, seed).json()
        verify(client, seed.customer, booking["appointment"]["id"], booking["order"]["id"])

        response = book(client, seed, customer=seed.other_customer)

        assert response.status_code == 409
        data = response.json()
        assert data["error"] == "slot_unavailable"
        assert data["detail"]
        assert data["available_slots"] == [{"startTime": "10:00", "endTime": "10:30"}]

    def test_losing_the_race_is_409_with_refund(self, client, gateway, seed):
        first = book(client, seed).json()
        second = book(client, seed, customer=seed.other_customer).json()

        assert verify(client, seed.customer, first["appointment"]["id"], first["order"]["id"]).status_code == 200
        response = verify(
            client, seed.other_customer, second["appointment"]["id"], second["order"]["id"], payment_id="pay_2"
        )

        assert response.status_code == 409
        assert response.json()["error"] == "slot_no_longer_available"
        assert response.json()["refund_status"] == "requested"
        assert gateway.refunds[0]["payment_id"] == "pay_2"

    def test_bad_signature_is_400(self, client, seed):
        booking = book(client, seed).json()

        response = verify(
            client, seed.customer, booking["appointment"]["id"], booking["order"]["id"], signature="forged"
        )

        assert response.status_code == 400
        assert response.json()["error"] == "payment_verification_failed"

    def test_other_customer_cannot_send_payment_callback(self, client, seed):
        booking = book(client, seed).json()

        response = verify(
            client, seed.other_customer, booking["appointment"]["id"], booking["order"]["id"], signature="junk"
        )

        assert response.status_code == 403
        assert response.json()["error"] == "forbidden"
        listing = client.get("/appointments/customer", headers=auth_headers(seed.customer)).json()
        assert listing[0]["status"] == "pending"
        assert listing[0]["cancelledAt"] is None

    def test_unavailable_day_is_409(self, client, seed):
        response = book(client, seed, dateTime="2025-06-17T10:00:00")
        assert response.status_code == 409
        assert response.json()["error"] == "slot_unavailable"

    def test_unpriced_consultation_is_400(self, client, seed):
        response = book(client, seed, consultationType="audio")
        assert response.status_code == 400
        assert response.json()["error"] == "price_not_configured"

    def test_gateway_down_is_502(self, client, gateway, seed):
        gateway.fail_orders = True
        response = book(client, seed)
        assert response.status_code == 502
        assert response.json()["error"] == "payment_gateway_error"

    def test_unknown_consultation_type_is_422(self, client, seed):
        response = book(client, seed, consultationType="telepathy")
        assert response.status_code == 422

    def test_blank_patient_name_is_422(self, client, seed):
        response = book(client, seed, patientDetails={"name": "   "})
        assert response.status_code == 422

    def test_provider_cannot_book(self, client, seed):
        response = book(client, seed, customer=seed.doctor)
        assert response.status_code == 403
        assert response.json()["error"] == "forbidden"

    def test_missing_token_is_rejected(self, client, seed):
        response = client.post("/appointments/book/doctor", json={**DOCTOR_BOOKING, "doctorId": seed.doctor.id})
        assert response.status_code in (401, 403)


class TestBookOtherProviders:
    def test_hospital_booking(self, client, seed):
        response = client.post(
            "/appointments/book/hospital",
            json={
                "hospitalId": seed.hospital.id,
                "dateTime": "2025-06-17T11:00:00",
                "service": "MRI Scan",
                "department": "Radiology",
            },
            headers=auth_headers(seed.customer),
        )

        assert response.status_code == 201
        data = response.json()
        assert data["order"]["amount"] == 250000
        assert data["appointment"]["service"] == "MRI Scan"
        assert data["appointment"]["hospitalAddress"] == "12 MG Road, Pune, MH 411001"

    def test_vendor_booking(self, client, seed):
        response = client.post(
            "/appointments/book/service",
            json={
                "vendorId": seed.vendor.id,
                "serviceId": seed.vendor_service.service_key,
                "dateTime": "2025-06-18T16:00:00",
            },
            headers=auth_headers(seed.customer),
        )

        assert response.status_code == 201
        assert response.json()["appointment"]["serviceName"] == "Knee Rehab Session"
        assert response.json()["appointment"]["serviceType"] == "Physiotherapy"

    def test_unknown_hospital_service(self, client, seed):
        response = client.post(
            "/appointments/book/hospital",
            json={"hospitalId": seed.hospital.id, "dateTime": "2025-06-17T11:00:00", "service": "CT Scan"},
            headers=auth_headers(seed.customer),
        )
        assert response.status_code == 400
        assert response.json()["error"] == "service_not_offered"


class TestListings:
    def test_customer_listing_and_latest(self, client, seed):
        book(client, seed)
        headers = auth_headers(seed.customer)

        listing = client.get("/appointments/customer", headers=headers)
        assert listing.status_code == 200
        assert len(listing.json()) == 1

        assert client.get("/appointments/customer", params={"type": "hospital"}, headers=headers).json() == []

        latest = client.get("/appointments/customer/latest", headers=headers)
        assert latest.json()["id"] == listing.json()[0]["id"]

    def test_latest_without_appointments_is_404(self, client, seed):
        response = client.get("/appointments/customer/latest", headers=auth_headers(seed.customer))
        assert response.status_code == 404

    def test_provider_listing(self, client, seed):
        book(client, seed)

        response = client.get("/appointments/provider", headers=auth_headers(seed.doctor))
        assert response.status_code == 200
        assert len(response.json()) == 1

        assert client.get("/appointments/provider", headers=auth_headers(seed.customer)).status_code == 403


class TestStatusChanges:
    def test_cancel_with_reason(self, client, seed):
        booking = book(client, seed).json()
        appointment_id = booking["appointment"]["id"]
        verify(client, seed.customer, appointment_id, booking["order"]["id"])

        response = client.post(
            f"/appointments/{appointment_id}/cancel",
            json={"reason": "Travelling"},
            headers=auth_headers(seed.customer),
        )

        assert response.status_code == 200
        assert response.json()["appointment"]["status"] == "cancelled"
        assert response.json()["appointment"]["cancellationReason"] == "Travelling"

    def test_cancel_without_body(self, client, seed):
        booking = book(client, seed).json()
        response = client.post(
            f"/appointments/{booking['appointment']['id']}/cancel", headers=auth_headers(seed.customer)
        )
        assert response.status_code == 200
        assert response.json()["appointment"]["cancellationReason"] == "Cancelled by customer"

    def test_cancel_twice_is_409(self, client, seed):
        booking = book(client, seed).json()
        url = f"/appointments/{booking['appointment']['id']}/cancel"
        client.post(url, headers=auth_headers(seed.customer))

        response = client.post(url, headers=auth_headers(seed.customer))
        assert response.status_code == 409
        assert response.json()["error"] == "already_finalized"

    def test_provider_confirms(self, client, seed):
        booking = book(client, seed).json()
        appointment_id = booking["appointment"]["id"]
        verify(client, seed.customer, appointment_id, booking["order"]["id"])

        response = client.post(
            "/appointments/respond",
            json={"appointmentId": appointment_id, "action": "confirm"},
            headers=auth_headers(seed.doctor),
        )

        assert response.status_code == 200
        assert response.json()["appointment"]["status"] == "confirmed"

    def test_respond_requires_subscription(self, client, seed):
        booking = book(client, seed).json()

        response = client.post(
            "/appointments/respond",
            json={"appointmentId": booking["appointment"]["id"], "action": "reject"},
            headers=auth_headers(seed.unsubscribed_doctor),
        )
        assert response.status_code == 403
        assert response.json()["error"] == "subscription_required"

    def test_unknown_action_is_422(self, client, seed):
        booking = book(client, seed).json()
        response = client.post(
            "/appointments/respond",
            json={"appointmentId": booking["appointment"]["id"], "action": "maybe"},
            headers=auth_headers(seed.doctor),
        )
        assert response.status_code == 422
