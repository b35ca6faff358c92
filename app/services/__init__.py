"""
Service layer for the background-removal portal backend.

This package holds the request lifecycle, content resolution, storage
providers and notification fan-out used by the API routers.
"""
