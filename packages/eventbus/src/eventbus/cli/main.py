"""
Event Bus CLI

Command-line interface for event bus administration.

Commands:
- setup: Create topics, queues and subscriptions
- subscribe: Subscribe a queue to a topic
- publish-test: Publish a sample event to its topic
- inject: Put a raw event envelope straight into a queue
- queue-stats: Show queue lengths and in-flight messages
- replay-dlq: Move messages from a dead letter queue back to a queue
"""

from typing import List, Optional

import typer
from rich import print as rprint
from rich.console import Console
from rich.table import Table

app = typer.Typer(
    name="eventbus-cli",
    help="Event bus administration CLI",
)

console = Console()


def get_settings():
    """Get service settings."""
    from basecore.settings import get_settings as _get_settings
    return _get_settings()


def get_broker():
    """Get the configured broker."""
    from eventbus.broker import create_broker
    return create_broker(get_settings())


def sample_event(event_type: str, user_id: str, email: str):
    """Build a sample envelope for an event type."""
    from eventbus import events
    from eventbus.contracts.types import EventType

    try:
        kind = EventType(event_type)
    except ValueError:
        rprint(f"[red]Unknown event type: {event_type}[/red]")
        rprint(f"  Known types: {', '.join(t.value for t in EventType)}")
        raise typer.Exit(1)

    if kind == EventType.USER_REGISTERED:
        return events.user_registered(user_id, email, name="Test User")
    if kind == EventType.EXPENSE_CREATED:
        return events.expense_created(user_id, email, "exp-test", "42.50", "Team lunch", "Food", "2024-03-15")
    if kind == EventType.EXPENSE_UPDATED:
        return events.expense_updated(user_id, email, "exp-test", "45.00", "Team lunch", "Food", "2024-03-15")
    if kind == EventType.RECEIPT_UPLOADED:
        return events.receipt_uploaded(user_id, email, "rcpt-test", "receipt.pdf", 52431, "application/pdf")
    return events.receipt_linked(user_id, email, "rcpt-test", "exp-test", "receipt.pdf")


@app.command()
def setup(
    with_email_topic: bool = typer.Option(True, help="Also create the notification email topic"),
):
    """
    Create topics, queues and subscriptions.

    Safe to run repeatedly; existing resources are left untouched.
    """
    from eventbus.broker import BrokerError
    from eventbus.topology import NOTIFICATION_EMAIL_TOPIC, SourceRoute, ensure_topology, source_routes

    broker = get_broker()
    settings = get_settings()

    # Configured names, default queues where none is configured
    routes = [
        SourceRoute(route.source, route.topic_id, route.queue_id or default.queue_id)
        for route, default in zip(source_routes(settings), source_routes())
    ]
    extra_topics = []
    if with_email_topic:
        extra_topics.append(settings.NOTIFICATION_EMAIL_TOPIC or NOTIFICATION_EMAIL_TOPIC)

    try:
        created = ensure_topology(broker, routes, extra_topics=extra_topics)
    except BrokerError as e:
        rprint(f"[red]Setup failed: {e}[/red]")
        raise typer.Exit(1)

    rprint("[green]Topology ready[/green]")
    rprint(f"  Topics created: {created['topics']}")
    rprint(f"  Queues created: {created['queues']}")
    rprint(f"  Subscriptions created: {created['subscriptions']}")

    rprint("\n[cyan]Environment:[/cyan]")
    for route in routes:
        prefix = route.source.value.upper()
        rprint(f"  {prefix}_EVENTS_TOPIC={route.topic_id}")
        rprint(f"  {prefix}_EVENTS_QUEUE={route.queue_id}")
    for topic_id in extra_topics:
        rprint(f"  NOTIFICATION_EMAIL_TOPIC={topic_id}")


@app.command()
def subscribe(
    topic_id: str = typer.Argument(..., help="Topic to subscribe to"),
    queue_id: str = typer.Argument(..., help="Queue receiving the topic's messages"),
):
    """Subscribe a queue to a topic, creating the queue if needed."""
    from eventbus.broker import BrokerError

    broker = get_broker()

    try:
        broker.create_queue(queue_id)
        created = broker.subscribe(topic_id, queue_id)
    except BrokerError as e:
        rprint(f"[red]Failed to subscribe: {e}[/red]")
        raise typer.Exit(1)

    if created:
        rprint(f"[green]Subscribed {queue_id} to {topic_id}[/green]")
    else:
        rprint(f"[yellow]{queue_id} is already subscribed to {topic_id}[/yellow]")


@app.command()
def publish_test(
    event_type: str = typer.Argument(..., help="Event type (e.g. expense.created)"),
    email: str = typer.Option("test@example.com", help="Recipient email"),
    user_id: str = typer.Option("test-user", help="Subject user ID"),
    topic_id: Optional[str] = typer.Option(None, help="Topic (defaults to the event's source topic)"),
):
    """
    Publish a sample event to its topic.

    The event goes through the same path as production publishes, so every
    subscribed queue receives it.
    """
    from eventbus.broker import BrokerError
    from eventbus.contracts.types import EVENT_SOURCES
    from eventbus.publisher import EventPublisher
    from eventbus.topology import topic_for_source

    envelope = sample_event(event_type, user_id, email)
    topic = topic_id or topic_for_source(EVENT_SOURCES[envelope.event_type], get_settings())

    publisher = EventPublisher(get_broker(), topic, max_workers=1)
    try:
        message_id = publisher.publish(envelope)
    except BrokerError as e:
        rprint(f"[red]Failed to publish: {e}[/red]")
        raise typer.Exit(1)
    finally:
        publisher.shutdown()

    rprint("[green]Event published![/green]")
    rprint(f"  Topic: {topic}")
    rprint(f"  Message ID: {message_id}")


@app.command()
def inject(
    queue_id: str = typer.Argument(..., help="Queue to send to"),
    event_type: str = typer.Argument(..., help="Event type (e.g. user.registered)"),
    email: str = typer.Option("test@example.com", help="Recipient email"),
    user_id: str = typer.Option("test-user", help="Subject user ID"),
):
    """
    Send a bare event envelope straight into a queue.

    No topic wrapper is added, which exercises the direct-envelope path of
    the consumer.
    """
    from eventbus.broker import BrokerError

    envelope = sample_event(event_type, user_id, email)

    try:
        handle = get_broker().send(queue_id, envelope.to_json())
    except BrokerError as e:
        rprint(f"[red]Failed to send: {e}[/red]")
        raise typer.Exit(1)

    rprint(f"[green]Injected {envelope.event_type} into {queue_id}[/green]")
    rprint(f"  Handle: {handle}")


@app.command()
def queue_stats(
    queue_id: Optional[List[str]] = typer.Argument(None, help="Queues (defaults to the configured ones)"),
):
    """Show message counts for queues."""
    from eventbus.broker import BrokerError
    from eventbus.topology import source_routes

    broker = get_broker()
    queues = queue_id or [r.queue_id for r in source_routes(get_settings()) if r.queue_id]

    if not queues:
        rprint("[yellow]No queues configured[/yellow]")
        raise typer.Exit(0)

    table = Table(title="Queues")
    table.add_column("Queue")
    table.add_column("Messages", justify="right")
    table.add_column("In flight", justify="right")

    for queue in queues:
        try:
            stats = broker.queue_stats(queue)
        except BrokerError as e:
            rprint(f"[red]Failed to read {queue}: {e}[/red]")
            raise typer.Exit(1)
        table.add_row(queue, str(stats.length), str(stats.in_flight))

    console.print(table)


@app.command()
def replay_dlq(
    dlq_id: str = typer.Argument(..., help="Dead letter queue"),
    queue_id: str = typer.Argument(..., help="Queue to move messages back to"),
    limit: int = typer.Option(10, help="Maximum messages to replay"),
):
    """
    Replay messages from a dead letter queue.

    Each message is sent to the target queue before it is removed from the
    dead letter queue.
    """
    from eventbus.broker import BrokerError

    broker = get_broker()

    try:
        messages = broker.receive(dlq_id, max_batch=limit, wait_seconds=0)
    except BrokerError as e:
        rprint(f"[red]Failed to read {dlq_id}: {e}[/red]")
        raise typer.Exit(1)

    if not messages:
        rprint("[yellow]No messages in DLQ[/yellow]")
        raise typer.Exit(0)

    rprint(f"[cyan]Found {len(messages)} messages in DLQ[/cyan]")

    replayed = 0
    for message in messages:
        try:
            broker.send(queue_id, message.body)
            broker.delete(dlq_id, message.handle)
            replayed += 1
        except BrokerError as e:
            rprint(f"[red]Failed to replay {message.handle}: {e}[/red]")

    rprint(f"[green]Replayed {replayed}/{len(messages)} messages[/green]")


if __name__ == "__main__":
    app()
