"""Monitoring and structured logging."""
