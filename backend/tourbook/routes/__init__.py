# Routes package init
"""
Tourbook Backend — API Routes Package
======================================

Route Inventory:
    - views.py:    GET /, GET /tour/{slug}              (HTML pages)
    - tours.py:    /api/v1/tours                        (+ /top-5-cheap, /tour-stats,
                                                          /{tour_id}/reviews)
    - users.py:    /api/v1/users
    - reviews.py:  /api/v1/reviews
    - bookings.py: /api/v1/bookings
    - health.py:   GET /health

Routes stay thin: read the request, call a service, return what it built.
Business rules live in tourbook.services.
"""
