"""
High-level use cases for the accounts API.

Each service module orchestrates the repository, token service and notifier
to implement business rules (register, login, reset password, manage users).

Routers (FastAPI endpoints) call these services instead of touching the
database or tokens directly.
"""
