"""
Scheduling Domain

Answers "is this slot free?" and "which slots are free?" for bookings.

MODULES:
- time_calculator.py: HH:MM parsing, UTC normalization, half-open overlap
- business_hours.py: weekly open/close table (0 = Sunday ... 6 = Saturday)
- conflicts.py: overlap queries against existing appointments
- availability_service.py: slot enumeration on a fixed grid inside business hours

Writes that reserve a slot live in the appointments domain; nothing here
commits an appointment.
"""
