"""
Knowledge Scout Backend - Middleware Package
============================================

What:  Cross-cutting concerns applied to every request before a route runs.

Middleware Chain (execution order, fixed):
    Request → [Security Headers] → [CORS] → [Request ID] → [Logging]
            → [JSON Body Parser] → [Unhandled Errors] → Route Handler

    Why this order:
    1. Security headers outermost: every response gets them, including
       CORS preflights and body-parser rejections
    2. CORS: answers preflight OPTIONS before any other work
    3. Request ID: correlation ID exists before anything logs
    4. Logging: sees the final status and duration of everything below it
    5. Body parser last: decides per path, BEFORE reading any bytes,
       whether JSON parsing applies. The document upload stream is never
       touched by it.
    6. Unhandled errors innermost: a route exception becomes the
       structured 500 here and travels back out through every layer above

    Starlette runs middleware in REVERSE order of add_middleware(), so
    main.install_middleware() adds them bottom-up.
"""
