"""Notifications app package.

Email notifications and PDF invoices triggered by booking domain events.
"""
