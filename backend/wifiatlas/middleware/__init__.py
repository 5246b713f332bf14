# Middleware package init
"""
WifiAtlas Backend — Middleware Package
========================================

Middleware Chain (outermost first):
    Request → [Rate Limit] → [Request ID] → [Logging] → [GZip] → [CORS] → Route

    Rate limiting runs first so abusive clients are rejected before any
    work; the request ID is assigned before the access log line is written.
"""
