"""
WifiAtlas Backend — Application Package
=========================================

Location-based WiFi access-point directory: a map of networks with shared
credentials, ratings, speed tests and organization-scoped visibility.

    ┌─────────────────────────────────────┐
    │    Routes (HTTP + WebSocket)        │
    ├─────────────────────────────────────┤
    │    Services (business rules)        │
    ├─────────────────────────────────────┤
    │    Models & Schemas                 │
    ├─────────────────────────────────────┤
    │    Database (async SQLAlchemy)      │
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
