"""
PlaceShare Backend — Abstract Geocoder Interface
==================================================

What:  Abstract base class defining the contract for address → coordinates lookup.
Why:   PlaceService depends on this interface, not on a provider, so the
       provider can be swapped and tests can hand in a stub.
How:   Concrete implementations inherit from Geocoder and implement resolve().
"""

from abc import ABC, abstractmethod

from app.schemas.place import Coordinates


class Geocoder(ABC):
    """
    Contract:
        - resolve() returns coordinates or raises GeocodingError
        - no retries: a failure aborts the operation that needed the lookup
        - no side effects beyond logging
    """

    @abstractmethod
    async def resolve(self, address: str) -> Coordinates:
        """
        Resolve a free-text address.

        Raises:
            GeocodingError: unknown address, upstream error, or timeout.
            GeocoderUnavailableError: the circuit breaker is open.
        """
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        """True if lookups are currently admitted. Must not consume quota."""
        ...

    async def close(self) -> None:
        """Release network resources. Called on application shutdown."""
