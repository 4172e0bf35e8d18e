"""
Get Yummy Backend - Middleware Package
======================================

Middleware Chain (outermost first):
    Request → [Request ID] → [Rate Limit] → [Logging] → [GZip] → [CORS] → Route

    - Request ID is outermost so 429 bodies and access lines carry the id
    - Rate Limit only inspects the credential endpoints under /auth
"""
