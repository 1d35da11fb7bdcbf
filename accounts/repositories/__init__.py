"""
Persistence adapters.

These modules encapsulate how accounts are stored and retrieved.
Services depend on the repository interface rather than touching SQLAlchemy sessions.
"""
