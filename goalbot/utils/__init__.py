"""Shared helpers: project paths and configuration."""
