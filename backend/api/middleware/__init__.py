"""Request-level authentication dependencies."""
