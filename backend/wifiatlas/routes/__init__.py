# Routes package init
"""
WifiAtlas Backend — API Routes Package
========================================

Route Inventory:
    - auth.py:           /api/auth/register, /api/auth/login
    - access_points.py:  /api/access-points (nearby, detail, create, password,
                         rating, service-block, qr-code)
    - organizations.py:  /api/organizations
    - speed_test.py:     /api/speed-test/start, /save, /history/{id}
    - user.py:           /api/user/favorites, /activity, /profile
    - wigle.py:          /api/wigle/search, /api/wigle/statistics
    - realtime.py:       WS /ws
    - health.py:         GET /health

Routes stay thin: parse the request, resolve the caller, call one service.
"""
