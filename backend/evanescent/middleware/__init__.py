"""
Evanescent Backend: Middleware Package
========================================

Cross-cutting concerns applied to every request.

Middleware Chain:
    Request → [Request ID] → [Logging] → [CORS] → Route Handler

    1. Request ID: correlation ID shared by every log line of the request
    2. Logging: one access line per request with status and duration
    3. CORS: FastAPI's CORSMiddleware, credentials allowed for the refresh cookie

    Responses travel back through the same chain in reverse, which is where
    the X-Request-ID header is attached and the duration is measured.
"""
