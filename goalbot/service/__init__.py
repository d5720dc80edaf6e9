"""Long-running service entry point."""
