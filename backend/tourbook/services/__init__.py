# Services package init
"""
Tourbook Backend — Services Layer
==================================

What:  Business logic between routes (HTTP) and the database.
How:   Every resource service subclasses CrudService and overrides its hooks;
       routes call the module-level singleton of each service.

Service Inventory:
    - QueryFeatures:  ?filter / sort / fields / page / limit → SELECT
    - CrudService:    list, get, create, update, delete with response envelopes
    - TourService:    slugs, discount check, top-5-cheap preset, tour stats
    - UserService:    hides deactivated users
    - ReviewService:  keeps tour rating aggregates in sync
    - BookingService: defaults the booking price to the tour price
"""
