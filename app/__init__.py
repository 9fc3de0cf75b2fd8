"""Notification targeting, fan-out and push delivery service for the academic portal."""
