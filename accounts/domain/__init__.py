"""Domain rules for accounts: roles, field validation and the public view."""
