"""
Service layer: transactional orchestration of the catalog.

Services own the atomic phases and event staging; repositories own the queries.
"""
