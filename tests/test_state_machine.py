"""Tests for the appointment status workflow."""

import pytest

from vaidhya.domain.booking import state_machine
from vaidhya.errors import AlreadyFinalized, InvalidTransition


class TestInitialStatus:
    def test_in_person_is_confirmed_at_creation(self):
        assert state_machine.initial_status("in-person") == "confirmed"

    @pytest.mark.parametrize("consultation_type", ["video", "audio", "homeVisit", None])
    def test_everything_else_waits_for_payment(self, consultation_type):
        assert state_machine.initial_status(consultation_type) == "pending"


class TestTransitions:
    @pytest.mark.parametrize(
        "current,event,consultation_type,expected",
        [
            ("pending", "pay", "video", "upcoming"),
            ("pending", "pay", None, "upcoming"),
            ("pending", "pay", "in-person", "confirmed"),
            ("confirmed", "pay", "in-person", "confirmed"),
            ("upcoming", "confirm", "video", "confirmed"),
            ("confirmed", "confirm", "video", "confirmed"),
            ("pending", "reject", "video", "rejected"),
            ("upcoming", "reject", "video", "rejected"),
            ("confirmed", "reject", "in-person", "rejected"),
            ("pending", "cancel", "video", "cancelled"),
            ("upcoming", "cancel", "video", "cancelled"),
            ("confirmed", "cancel", "video", "cancelled"),
            ("upcoming", "complete", "video", "completed"),
            ("confirmed", "complete", "in-person", "completed"),
        ],
    )
    def test_legal_transitions(self, current, event, consultation_type, expected):
        assert state_machine.next_status(current, event, consultation_type) == expected

    @pytest.mark.parametrize("current", ["completed", "cancelled"])
    @pytest.mark.parametrize("event", ["pay", "confirm", "reject", "cancel", "complete"])
    def test_final_statuses_raise_already_finalized(self, current, event):
        with pytest.raises(AlreadyFinalized):
            state_machine.next_status(current, event, "video")

    @pytest.mark.parametrize(
        "current,event,consultation_type",
        [
            ("pending", "confirm", "video"),
            ("pending", "complete", "video"),
            ("upcoming", "pay", "video"),
            ("confirmed", "pay", "video"),
            ("rejected", "cancel", "video"),
            ("rejected", "confirm", "video"),
        ],
    )
    def test_illegal_transitions(self, current, event, consultation_type):
        with pytest.raises(InvalidTransition):
            state_machine.next_status(current, event, consultation_type)
