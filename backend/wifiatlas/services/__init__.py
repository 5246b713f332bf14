# Services package init
"""
WifiAtlas Backend — Services Layer
====================================

What:  Business logic between routes (HTTP) and the database.
How:   Stateless singletons; every call receives the AsyncSession and any
       collaborator (Broadcaster, NetworkDirectory) it needs as arguments.

Service Inventory:
    - CredentialService:   access points, passwords, service blocks, QR payload
    - ProximityService:    radius search ordered by great-circle distance
    - TelemetryService:    ratings and speed tests
    - OrganizationService: membership and visibility scope
    - ImportService:       merge networks from the external directory
    - AccountService:      registration and login
    - UserService:         favourites, activity feed, profile
    - NetworkDirectory (abstract) / WigleClient: external directory client
    - Broadcaster (abstract) / OrganizationBroadcaster: live event fan-out
"""
