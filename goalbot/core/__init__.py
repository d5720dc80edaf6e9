"""Background jobs and structured logging."""
