"""
Availability Domain

Weekly recurring schedules, leave periods and the slot lookups the booking
engine runs against them.

Structure:
- time_calculator.py   # HH:MM parsing, clinic wall-clock conversion
- repository.py        # Schedule queries and the slot compare-and-swap
- service.py           # isWorkingAt / isOnLeave / markSlotBooked, schedule edits
- router.py            # /availability endpoints
"""
