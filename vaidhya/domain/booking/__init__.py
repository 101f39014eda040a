"""
Booking Domain

Appointment booking and slot reservation.

Flow: resolve slot and price → payment order → pending appointment →
payment callback → status transition + slot commit → (cancel/reject → release)

Structure:
- slot_resolver.py     # Read-only checks before booking
- state_machine.py     # Legal status transitions
- service.py           # initiate_booking / confirm_payment, queries
- cancellation.py      # cancel / respond, slot release
- repository.py        # Appointment queries and conditional status updates
- router.py            # /appointments endpoints
"""
