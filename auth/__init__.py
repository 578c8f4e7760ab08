"""auth/ -- Sessions, credentials, and the login use case for Gatekeeper.

Layer rule: auth/ imports only stdlib, third-party libraries, and core/.
It does NOT import from web/. web/ imports from auth/, not the other way around.
"""
