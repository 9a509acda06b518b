"""
Shared Kernel

Base classes and utilities used by every app: domain errors and value
objects, the unit of work, the message bus and the API glue.
"""
