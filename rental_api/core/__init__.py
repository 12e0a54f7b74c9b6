"""
Core application utilities.

This package provides:
- Application-level settings (separate from DB settings)
- Logging configuration with request context
- Domain error taxonomy and shared helpers
- FastAPI dependency providers wiring services per request (see rental_api.core.deps)
"""
