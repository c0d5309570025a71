"""
Repository layer for data access.

Repositories encapsulate SQLAlchemy queries for each domain area (accounts,
tracking, catalog, content, billing, back-office) on top of BaseRepository.
"""
