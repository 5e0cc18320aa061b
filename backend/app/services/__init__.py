"""
PlaceShare Backend — Services Layer
=====================================

What:  Business logic layer sitting between routes (HTTP) and repositories (persistence).
How:   Services receive the request's AsyncSession, apply the business rules,
       and return response schemas.

Service Inventory:
    - Geocoder (abstract): Interface for address → coordinates providers
    - GoogleGeocodingService: Concrete Geocoder over httpx with a circuit breaker
    - AssetStore: Image upload validation, storage and removal
    - PlaceService: Get/create/update/delete places across both records and the image
    - UserService: Register and read user profiles
    - ReconciliationService: Repairs drift between places, references and images
"""
