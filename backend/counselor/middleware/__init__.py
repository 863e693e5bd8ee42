# Middleware package init
"""
Merit Badge Counselor Backend — Middleware Package
===================================================

Middleware Chain (order matters):
    Request → [Request ID] → [Logging] → [GZip] → [CORS] → Route Handler

    1. Request ID first: every later log line can be correlated
    2. Logging: records status and duration with the request ID
    3. CORS: applied by FastAPI's CORSMiddleware (handles preflight)
"""
