"""
Public Pydantic schemas used by FastAPI routes, services, and tests.

Schemas are grouped by domain module (rental, lookup, pricing) and also
include common reusable models such as query configuration and standard responses.
"""

from .common import ErrorResponse, FindConfig, MessageResponse  # noqa: F401
