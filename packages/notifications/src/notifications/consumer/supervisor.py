"""
Consumer Supervisor

Runs one poller thread per configured queue and stops them together.
"""

import logging
import threading
import time
from dataclasses import dataclass

from eventbus.broker.base import MessageBroker
from eventbus.topology import source_routes
from notifications.consumer.poller import EnvelopeHandler, PollerConfig, QueuePoller

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QueueBinding:
    """A queue and the handler for its messages. No queue id = disabled."""

    name: str
    queue_id: str | None
    handler: EnvelopeHandler


def build_bindings(settings, handler: EnvelopeHandler) -> list[QueueBinding]:
    """One binding per event source, using the configured queue names."""
    return [
        QueueBinding(name=route.source.value, queue_id=route.queue_id, handler=handler)
        for route in source_routes(settings)
    ]


class ConsumerSupervisor:
    """
    Owns the pollers and their shared stop signal.

    Pollers share nothing but the broker (thread-safe) and the stop event.
    """

    def __init__(
        self,
        broker: MessageBroker,
        bindings: list[QueueBinding],
        config: PollerConfig | None = None,
    ):
        self.broker = broker
        self.bindings = list(bindings)
        self.config = config or PollerConfig()
        self.stop_event = threading.Event()
        self.pollers: list[QueuePoller] = []
        self._threads: list[threading.Thread] = []

    def start(self) -> None:
        """
        Ensure the bound queues exist and start a poller thread for each.

        Raises:
            BrokerError: a queue could not be created
        """
        active = []
        for binding in self.bindings:
            if not binding.queue_id:
                logger.info(f"No queue configured for {binding.name} events, skipping consumer")
                continue
            self.broker.create_queue(binding.queue_id)
            active.append(binding)

        if self.config.dead_letter_enabled:
            self.broker.create_queue(self.config.dead_letter_queue)

        for binding in active:
            poller = QueuePoller(
                self.broker,
                binding.queue_id,
                binding.handler,
                self.stop_event,
                self.config,
            )
            thread = threading.Thread(
                target=poller.run,
                name=f"poller-{binding.queue_id}",
                daemon=True,
            )
            self.pollers.append(poller)
            self._threads.append(thread)
            thread.start()

        logger.info(
            f"Started {len(self.pollers)} queue pollers",
            extra={"queues": self.running_queues},
        )

    @property
    def running_queues(self) -> list[str]:
        """Queues with a live poller thread."""
        return [
            poller.queue_id
            for poller, thread in zip(self.pollers, self._threads)
            if thread.is_alive()
        ]

    def stop(self, grace_period: float = 30.0) -> bool:
        """
        Signal all pollers to stop and wait for them.

        In-flight batches are finished; a poller blocked in receive returns
        when its wait ends.

        Returns:
            True if every poller stopped within the grace period
        """
        self.stop_event.set()

        deadline = time.monotonic() + grace_period
        for thread in self._threads:
            thread.join(timeout=max(0.0, deadline - time.monotonic()))

        stuck = [t.name for t in self._threads if t.is_alive()]
        if stuck:
            logger.warning(f"Pollers did not stop within {grace_period}s: {', '.join(stuck)}")
            return False

        logger.info("All queue pollers stopped")
        return True
