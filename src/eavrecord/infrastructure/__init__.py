"""Infrastructure layer - External dependencies and implementations.

This layer contains the database adapters (SQLAlchemy): catalog and value
table models, value stores and the dynamic attribute engine.
"""
