"""Fleet app package.

Holds the cars and customers that bookings refer to. The booking engine
does not own these records; it only asks whether they exist and what a
car costs per day through the lookups in :mod:`apps.fleet.services`.
"""
