"""
Repository layer for data access.

Repositories encapsulate SQLAlchemy queries for each entity: selector translation,
free-text search, join-table filters and relation hydration (see query.py).
"""
