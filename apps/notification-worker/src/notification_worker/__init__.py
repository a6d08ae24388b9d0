"""Notification worker service."""
