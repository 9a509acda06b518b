"""Bookings app package.

Owns the booking lifecycle (pending, confirmed, cancelled, expired,
converted) and the per-car availability checks. Creation and schedule
changes serialise on a per-car lock row so that two overlapping
bookings can never both be accepted.
"""
