"""Authentication module - registration, login and token refresh."""
