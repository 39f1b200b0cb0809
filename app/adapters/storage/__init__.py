"""Relational storage for user records.

Services depend on ``AbstractUserRepository``; the SQLAlchemy implementation
is wired in by the application factory.
"""
