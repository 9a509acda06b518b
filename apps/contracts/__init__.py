"""Contracts app package.

Binding rental contracts. Confirmed bookings are converted into a
contract through :class:`apps.contracts.services.DjangoContractGateway`;
active contracts keep blocking their car for the booking engine.
"""
