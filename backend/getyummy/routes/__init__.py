# Routes package init
"""
Get Yummy Backend - API Routes Package
======================================

What:  HTTP route handlers; each module owns one resource.

Route Inventory:
    - auth.py:       /auth/register, /auth/login, /auth/refresh, /auth/logout,
                     /auth/forgot-password, /auth/reset-password,
                     /auth/cleanup-tokens, /auth/token-stats
    - users.py:      /users, /users/me, /users/{id}, /users/{id}/admin
    - recipes.py:    /recipes and its sub-paths (lenient reads, strict writes)
    - favorites.py:  /favorites, /favorites/check/{recipe_id}
    - uploads.py:    POST /upload, DELETE /upload/{id}, GET /uploads/{filename}
    - health.py:     GET /health

Handlers stay thin: pick the auth policy, call a service, shape the
response. Cookies are set only in auth.py and the lenient dependency.
"""
