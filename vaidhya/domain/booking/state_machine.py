"""
Appointment status workflow

    pending ──pay──▶ upcoming | confirmed (in-person)
    upcoming ──confirm──▶ confirmed
    pending | upcoming | confirmed ──reject──▶ rejected
    pending | upcoming | confirmed ──cancel──▶ cancelled
    upcoming | confirmed ──complete──▶ completed

``completed`` and ``cancelled`` are final; ``rejected`` accepts no further
events. ``confirmed`` re-confirmed (or re-paid, for in-person visits that are
confirmed at creation) is a no-op.
"""

from ...errors import AlreadyFinalized, InvalidTransition

PENDING = "pending"
UPCOMING = "upcoming"
CONFIRMED = "confirmed"
COMPLETED = "completed"
CANCELLED = "cancelled"
REJECTED = "rejected"

FINAL_STATUSES = (COMPLETED, CANCELLED)
ACTIVE_STATUSES = (PENDING, UPCOMING, CONFIRMED)

# event -> statuses the event may start from
ALLOWED_SOURCES = {
    "pay": (PENDING, CONFIRMED),
    "confirm": (UPCOMING, CONFIRMED),
    "reject": ACTIVE_STATUSES,
    "cancel": ACTIVE_STATUSES,
    "complete": (UPCOMING, CONFIRMED),
}


def initial_status(consultation_type) -> str:
    """In-person visits are confirmed at creation; everything else waits for payment"""
    return CONFIRMED if consultation_type == "in-person" else PENDING


def target_status(event: str, consultation_type=None) -> str:
    if event == "pay":
        return CONFIRMED if consultation_type == "in-person" else UPCOMING
    return {
        "confirm": CONFIRMED,
        "reject": REJECTED,
        "cancel": CANCELLED,
        "complete": COMPLETED,
    }[event]


def next_status(current: str, event: str, consultation_type=None) -> str:
    """
    Status after applying ``event`` to an appointment in ``current``.

    Raises:
        AlreadyFinalized: current status is completed or cancelled
        InvalidTransition: event is not legal from current status
    """
    if current in FINAL_STATUSES:
        raise AlreadyFinalized(
            f"Cannot {event} an appointment that is already {current}", status=current
        )
    sources = ALLOWED_SOURCES.get(event, ())
    if event == "pay" and consultation_type != "in-person":
        sources = (PENDING,)
    if current not in sources:
        raise InvalidTransition(
            f"Cannot {event} an appointment that is {current}", status=current, event=event
        )
    return target_status(event, consultation_type)
