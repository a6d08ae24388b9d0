"""
Notifications

Consumes domain events from the per-source queues and turns them into
email notifications: route by event type, render a template, send.
"""
