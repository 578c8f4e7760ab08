"""web/ -- HTTP layer for Gatekeeper: middleware, routes, views, static files.

Layer rule: web/ may import from auth/ and core/. Nothing imports from web/
except the entry points (asgi.py, main.py).
"""
