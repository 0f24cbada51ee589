"""Persistence base — the declarative Base every marketplace table hangs off.

Engine and sessions live in infrastructure/database.py; migrations in alembic/.
"""
