"""Tests for appointment call sessions."""

import time

import pytest

from vaidhya.domain.booking.service import BookingService
from vaidhya.domain.calls.service import CallService
from vaidhya.errors import Forbidden, InvalidTransition, NotFound, ServiceNotOffered
from vaidhya.services.call_session_service import UID_RANGE, CallSessionService

from .conftest import MONDAY, auth_headers, book_and_pay, sign


@pytest.fixture
def sessions():
    return CallSessionService(secret="call-test-secret", app_id="vaidhya-test", ttl_seconds=60)


@pytest.fixture
def calls(db, sessions):
    return CallService(db, sessions)


class TestCallSessionService:
    def test_channel_names_are_unique(self, sessions):
        first = sessions.create_channel("abc")
        second = sessions.create_channel("abc")
        assert first.startswith("vaidhya_appointment_abc_")
        assert first != second

    def test_token_round_trip(self, sessions):
        token = sessions.token_for("room-1", "customer", 4242)
        payload = sessions.verify_token(token)
        assert payload["channel"] == "room-1"
        assert payload["uid"] == 4242
        assert payload["app_id"] == "vaidhya-test"

    def test_token_from_another_secret_is_rejected(self, sessions):
        token = CallSessionService(secret="someone-else").token_for("room-1", "customer", 4242)
        assert sessions.verify_token(token) is None

    def test_expired_token_is_rejected(self, sessions):
        token = sessions.token_for("room-1", "provider", 4343)
        time.sleep(1.1)
        assert sessions.verify_token(token, max_age=0) is None

    def test_allocated_uids_are_distinct_and_in_range(self, sessions):
        for _ in range(20):
            customer_uid, provider_uid = sessions.allocate_uids()
            assert customer_uid != provider_uid
            assert 1 <= customer_uid <= UID_RANGE
            assert 1 <= provider_uid <= UID_RANGE


class TestCallService:
    @pytest.mark.asyncio
    async def test_initialize_gives_each_side_its_token(self, db, gateway, notifier, calls, sessions, seed):
        appointment = await book_and_pay(db, gateway, notifier, seed.customer, seed.doctor)

        customer_side = calls.initialize(appointment.public_id, seed.customer)
        provider_side = calls.initialize(appointment.public_id, seed.doctor)

        assert customer_side["channelName"] == provider_side["channelName"]
        db.refresh(appointment)
        assert customer_side["uid"] == appointment.call_customer_uid
        assert provider_side["uid"] == appointment.call_provider_uid
        assert customer_side["uid"] != provider_side["uid"]
        assert customer_side["otherParticipant"] == "A Sharma"
        assert provider_side["otherParticipant"] == "Asha Rao"
        assert sessions.verify_token(customer_side["token"])["uid"] == customer_side["uid"]
        provider_payload = sessions.verify_token(provider_side["token"])
        assert provider_payload["role"] == "provider"
        assert provider_payload["uid"] == provider_side["uid"]

    @pytest.mark.asyncio
    async def test_initialize_is_memoized(self, db, gateway, notifier, calls, seed):
        appointment = await book_and_pay(db, gateway, notifier, seed.customer, seed.doctor)

        first = calls.initialize(appointment.public_id, seed.customer)
        second = calls.initialize(appointment.public_id, seed.customer)
        assert first == second

    @pytest.mark.asyncio
    async def test_each_appointment_gets_its_own_uids(self, db, gateway, notifier, calls, seed):
        first = await book_and_pay(db, gateway, notifier, seed.customer, seed.doctor)
        second = await book_and_pay(
            db, gateway, notifier, seed.other_customer, seed.doctor, when=MONDAY.replace(hour=10, minute=5)
        )

        first_side = calls.initialize(first.public_id, seed.customer)
        second_side = calls.initialize(second.public_id, seed.other_customer)

        assert first_side["channelName"] != second_side["channelName"]
        assert first_side["uid"] != second_side["uid"]

    @pytest.mark.asyncio
    async def test_expired_tokens_are_reissued_for_the_same_channel(self, db, gateway, notifier, seed):
        sessions = CallSessionService(secret="call-test-secret", app_id="vaidhya-test", ttl_seconds=0)
        calls = CallService(db, sessions)
        appointment = await book_and_pay(db, gateway, notifier, seed.customer, seed.doctor)

        first = calls.initialize(appointment.public_id, seed.customer)
        time.sleep(1.1)
        second = calls.initialize(appointment.public_id, seed.customer)

        assert second["token"] != first["token"]
        assert second["channelName"] == first["channelName"]
        assert second["uid"] == first["uid"]
        payload = sessions.verify_token(second["token"], max_age=60)
        assert payload["channel"] == first["channelName"]
        assert payload["uid"] == first["uid"]

    @pytest.mark.asyncio
    async def test_unpaid_appointment_cannot_start_a_call(self, db, gateway, notifier, calls, seed):
        appointment, _ = await BookingService(db, gateway, notifier).initiate_booking(
            seed.customer, "doctor", seed.doctor.id, MONDAY.replace(hour=9, minute=15), "video"
        )
        with pytest.raises(InvalidTransition):
            calls.initialize(appointment.public_id, seed.customer)

    @pytest.mark.asyncio
    async def test_in_person_has_no_call(self, db, gateway, notifier, calls, seed):
        appointment = await book_and_pay(
            db, gateway, notifier, seed.customer, seed.doctor, consultation_type="in-person"
        )
        with pytest.raises(ServiceNotOffered):
            calls.initialize(appointment.public_id, seed.customer)

    @pytest.mark.asyncio
    async def test_outsiders_are_forbidden(self, db, gateway, notifier, calls, seed):
        appointment = await book_and_pay(db, gateway, notifier, seed.customer, seed.doctor)
        with pytest.raises(Forbidden):
            calls.initialize(appointment.public_id, seed.other_customer)

    def test_unknown_appointment(self, calls, seed):
        with pytest.raises(NotFound):
            calls.initialize("missing", seed.customer)

    @pytest.mark.asyncio
    async def test_start_requires_initialize(self, db, gateway, notifier, calls, seed):
        appointment = await book_and_pay(db, gateway, notifier, seed.customer, seed.doctor)
        with pytest.raises(InvalidTransition):
            calls.start(appointment.public_id, seed.customer)

    @pytest.mark.asyncio
    async def test_start_and_end_record_times_once(self, db, gateway, notifier, calls, seed):
        appointment = await book_and_pay(db, gateway, notifier, seed.customer, seed.doctor)
        calls.initialize(appointment.public_id, seed.customer)

        started = calls.start(appointment.public_id, seed.customer)
        start_time = started.call_start_time
        assert started.call_started is True
        assert calls.start(appointment.public_id, seed.doctor).call_start_time == start_time

        ended = calls.end(appointment.public_id, seed.doctor)
        end_time = ended.call_end_time
        assert ended.call_duration >= 0
        assert calls.end(appointment.public_id, seed.customer).call_end_time == end_time

    @pytest.mark.asyncio
    async def test_end_before_start_is_a_noop(self, db, gateway, notifier, calls, seed):
        appointment = await book_and_pay(db, gateway, notifier, seed.customer, seed.doctor)
        ended = calls.end(appointment.public_id, seed.customer)
        assert ended.call_end_time is None


class TestCallRoutes:
    def test_initialize_start_end(self, client, seed):
        headers = auth_headers(seed.customer)
        booking = client.post(
            "/appointments/book/doctor",
            json={
                "doctorId": seed.doctor.id,
                "consultationType": "video",
                "dateTime": "2025-06-16T10:05:00",
                "patientDetails": {"name": "Asha Rao"},
            },
            headers=headers,
        ).json()
        order_id = booking["order"]["id"]
        body = {"appointmentId": booking["appointment"]["id"]}
        client.post(
            "/appointments/verify-payment",
            json={
                **body,
                "razorpay_order_id": order_id,
                "razorpay_payment_id": "pay_call",
                "razorpay_signature": sign(order_id, "pay_call"),
            },
            headers=headers,
        )

        initialized = client.post("/calls/initialize", json=body, headers=headers)
        assert initialized.status_code == 200
        uid = initialized.json()["callDetails"]["uid"]
        assert isinstance(uid, int)
        again = client.post("/calls/initialize", json=body, headers=headers)
        assert again.json()["callDetails"]["uid"] == uid

        started = client.post("/calls/start", json=body, headers=headers)
        assert started.status_code == 200
        assert started.json()["startTime"]

        ended = client.post("/calls/end", json=body, headers=auth_headers(seed.doctor))
        assert ended.status_code == 200
        assert ended.json()["callDuration"] >= 0

    def test_unknown_appointment_is_404(self, client, seed):
        response = client.post(
            "/calls/initialize", json={"appointmentId": "missing"}, headers=auth_headers(seed.customer)
        )
        assert response.status_code == 404
