"""Notification events."""
