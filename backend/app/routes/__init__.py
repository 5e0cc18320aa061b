"""
PlaceShare Backend — API Routes Package
=========================================

What:  HTTP route handlers that accept requests and return responses.
How:   Each route module handles one resource.

Route Inventory:
    - places.py:  GET    /api/places/{pid}
                  GET    /api/places/user/{uid}
                  POST   /api/places              (multipart, authenticated)
                  PATCH  /api/places/{pid}        (authenticated)
                  DELETE /api/places/{pid}        (authenticated)
    - users.py:   POST   /api/users
                  GET    /api/users
                  GET    /api/users/{uid}
    - health.py:  GET    /health

Design Principle:
    Routes are THIN: extract data from the request, resolve the caller,
    call the service, shape the response. Status codes for failures come
    from the exception handlers in main.py.
"""
