"""
Eventbus - domain event delivery between services.

This package provides:
- Event contracts (envelope, types, topic wrapper)
- Broker interface with Redis Streams and in-memory implementations
- Publisher used by producing services (sync and fire-and-forget)
- Topology setup and the admin CLI

Producing services only build envelopes and hand them to the publisher.
They never know which queues are subscribed to their topic.
"""
