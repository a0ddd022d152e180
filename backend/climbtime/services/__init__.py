"""
ClimbTime Backend - Services Layer
====================================

What:  Business logic between routes (HTTP) and the database.
How:   Services take an AsyncSession plus domain values, enforce the rules
       and raise ClimbTimeError subclasses; routes never touch the ORM.

Service Inventory:
    - UserService:        accounts, profiles, user search and suggestions
    - FollowService:      the follow graph and mutual-follow checks
    - PostService:        posts, feed, likes, comments, shares
    - MessageService:     conversations and direct messages
    - FileService:        upload validation, storage and serving
    - PredictionService:  HTTP client for the route-segmentation service
    - route_service:      pure Route Zero selection helpers
"""
