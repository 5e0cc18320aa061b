"""
PlaceShare Backend — Middleware Package
=========================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (order matters!):
    Request → [Request ID] → [Logging] → [GZip] → [CORS] → Route Handler

    1. Request ID first: every later log line can carry the correlation id
    2. Logging: records status and duration once the response exists

    Responses travel back through the chain in reverse, so the request id
    header is set on every response, errors included.
"""
