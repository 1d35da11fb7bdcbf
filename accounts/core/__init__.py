"""
Core utilities shared across the accounts service.

This package hosts configuration, logging setup, the error taxonomy,
password hashing, token signing, the SMTP notifier and the auth rate limiter.
Services depend on these primitives instead of reading the environment or
importing FastAPI internals directly.
"""
