# Routes package init
"""
Merit Badge Counselor Backend — API Routes Package
===================================================

Route Inventory:
    - applications.py:  GET  /api/applications/merit-badges
                        POST /api/applications
                        GET  /api/applications/{id}
    - health.py:        GET  /health

Routes stay thin: parse the request, call a service, shape the envelope.
"""
