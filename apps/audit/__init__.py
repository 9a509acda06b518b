"""Audit app package: append-only trail of booking changes."""
