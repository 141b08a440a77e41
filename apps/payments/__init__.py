"""Payments app package.

Gateway client, payment verification and webhook handling, and refunds.
"""
