"""Bookings app package.

This app encapsulates the booking lifecycle: creating bookings against a
batch's seat inventory, the status state machine, cancellation refunds,
participant details and the periodic sweeps that expire unpaid holds and
cancel overdue partial payments.
"""
