"""
ClimbTime Backend - API Routes Package
========================================

What:  HTTP route handlers. Routes are thin: they read the request, call a
       service and shape the response. Business rules live in services/.

Route Inventory:
    - auth.py:      /api/auth/signup, /login, /logout, /session
    - posts.py:     /api/posts (feed, search, likes, comments, shares, delete)
    - follow.py:    /api/follow, /api/follow/check
    - users.py:     /api/users (search, suggestions, follower search, profiles)
    - profile.py:   /api/profile (own profile, multipart edit)
    - messages.py:  /api/messages (conversations, messages, unread count)
    - proxy.py:     /api/proxy (prediction service proxy and health)
    - grade.py:     /api/grade (route file, Route Zero, export)
    - files.py:     /api/files/{path} (uploaded images)
    - health.py:    /health
"""
