"""Account authentication service: registration, login, tokens and user management."""

__version__ = "1.0.0"
