# Routes package init
"""
Evanescent Backend: API Routes Package
========================================

Route Inventory (all mounted under settings.api_prefix, default /api):
    - auth.py:     POST /signup, /login, /refresh-token, /logout; GET /user-info
    - writeups.py: the /writeups resource (feed, likes, claims, delete)
    - health.py:   GET  /health

Routes are thin: they extract request data, call a service, and choose the
status code. Business rules live in services.
"""
