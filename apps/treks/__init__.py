"""Treks app package.

Treks, their dated batches and the seat ledger that guards batch capacity.
"""
