"""auth/ -- Authentication and authorization package for UserAPI.

Layer rule: auth/ imports stdlib, third-party libraries, and core/.
It does NOT import from api/, cache/, or users/.
api/ and users/ import from auth/, not the other way around.
"""
