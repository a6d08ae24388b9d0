"""Queue consumers: one poller thread per queue, run by the supervisor."""

from notifications.consumer.poller import PollerConfig, PollerState, QueuePoller
from notifications.consumer.supervisor import ConsumerSupervisor, QueueBinding, build_bindings

__all__ = [
    "PollerConfig",
    "PollerState",
    "QueuePoller",
    "ConsumerSupervisor",
    "QueueBinding",
    "build_bindings",
]
