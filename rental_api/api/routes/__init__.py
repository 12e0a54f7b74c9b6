"""
API route modules for the rental catalog.

This package contains subrouters for:
- Admin rentals: rentals, their variants, options and metadata
- Admin variants and lookups: variants across rentals, rental types and tags
- Store rentals: published, priced rentals and search

Routers are included from rental_api.api.main under the /admin and /store prefixes.
"""
