"""auth/ -- Credential store, session issuer, and auth gate for the dealership API.

Layer rule: auth/ imports only stdlib, third-party libraries, and core/.
It does NOT import from api/, inventory/, or media/.
api/ imports from auth/, not the other way around.
"""
