"""
Command-line interface for events-indexer.

Provides commands to initialize storage, manage the topic registry, run
indexing cycles and serve the query API.

Usage:
    events-indexer init-db        # Create tables
    events-indexer seed-topics    # Load default topics into an empty registry
    events-indexer index --mock   # Run one indexing cycle
    events-indexer worker --mock  # Index continuously
    events-indexer reprocess ID TEXT  # Correct a stored post
    events-indexer serve          # Start the API server
    events-indexer health         # Check dependencies
"""

import asyncio
import json
import signal
import sys

import click

from events_indexer.config.settings import get_settings
from events_indexer.observability.logging import setup_logging
from events_indexer.observability.metrics import get_metrics


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def main(debug: bool) -> None:
    """Events Indexer - Stellar ecosystem social post indexing."""
    setup_logging(level="DEBUG" if debug else None)


def _build_pipeline(db):
    from events_indexer.services.pipeline import PostProcessingService
    from events_indexer.topics.service import TopicMatchingService

    topics = TopicMatchingService(db)
    return topics, PostProcessingService(db, topics)


def _install_stop_handlers(loop: asyncio.AbstractEventLoop, indexer) -> set[asyncio.Task]:
    """Stop the indexer on SIGTERM/SIGINT.

    Returns the set holding in-flight stop tasks; each stays referenced
    until it finishes.
    """
    pending: set[asyncio.Task] = set()

    def _on_signal() -> None:
        task = loop.create_task(indexer.stop())
        pending.add(task)
        task.add_done_callback(pending.discard)

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, _on_signal)
    return pending


@main.command("init-db")
def init_db() -> None:
    """Initialize the database schema."""
    from events_indexer.authors.repository import AuthorRepository
    from events_indexer.posts.repository import PostRepository
    from events_indexer.storage.database import Database
    from events_indexer.topics.repository import TopicRepository

    async def run():
        db = Database()
        await db.connect()

        try:
            await TopicRepository(db).create_table()
            await AuthorRepository(db).create_tables()
            await PostRepository(db).create_tables()
            click.echo("Database initialized successfully")
        finally:
            await db.close()

    asyncio.run(run())


@main.command("seed-topics")
def seed_topics() -> None:
    """Bootstrap the default topics if the registry is empty."""
    from events_indexer.storage.database import Database
    from events_indexer.topics.service import TopicMatchingService

    async def run():
        db = Database()
        await db.connect()

        try:
            service = TopicMatchingService(db)
            terms = await service.initialize()
            stats = service.stats()
            click.echo(f"Topic dictionary ready: {stats['topics']} topics, {terms} terms")
            for collision in stats["collisions"]:
                click.echo(
                    click.style(
                        f"  ! '{collision['surface']}' moved from "
                        f"{collision['previous']} to {collision['current']}",
                        fg="yellow",
                    )
                )
        finally:
            await db.close()

    asyncio.run(run())


@main.command("reset-topics")
@click.confirmation_option(prompt="Replace every topic with the defaults?")
def reset_topics() -> None:
    """Replace the topic registry with the default vocabulary."""
    from events_indexer.storage.database import Database
    from events_indexer.topics.service import TopicMatchingService

    async def run():
        db = Database()
        await db.connect()

        try:
            loaded = await TopicMatchingService(db).reset_and_reload()
            click.echo(f"Reset topic registry with {loaded} topics")
        finally:
            await db.close()

    asyncio.run(run())


@main.command("add-topic")
@click.argument("name")
@click.option("--alias", "aliases", multiple=True, help="Alternative surface form (repeatable)")
@click.option("--category", default=None, help="Topic category")
@click.option("--description", default=None, help="Free-text description")
def add_topic(name: str, aliases: tuple[str, ...], category: str | None, description: str | None) -> None:
    """Register a new topic with optional aliases."""
    from events_indexer.storage.database import Database
    from events_indexer.topics.service import TopicConflictError, TopicMatchingService

    async def run() -> int:
        db = Database()
        await db.connect()

        try:
            service = TopicMatchingService(db)
            await service.initialize()
            try:
                topic = await service.add_topic(
                    name, list(aliases), category=category, description=description
                )
            except (TopicConflictError, ValueError) as e:
                click.echo(click.style(f"Cannot add topic: {e}", fg="red"))
                return 1

            click.echo(f"Added topic '{topic.name}' with {len(topic.aliases)} aliases")
            return 0
        finally:
            await db.close()

    sys.exit(asyncio.run(run()))


@main.command()
@click.argument("text")
def match(text: str) -> None:
    """Show which topics the dictionary finds in TEXT."""
    from events_indexer.storage.database import Database
    from events_indexer.topics.service import TopicMatchingService

    async def run():
        db = Database()
        await db.connect()

        try:
            service = TopicMatchingService(db)
            await service.initialize()
            found = sorted(service.match_topics(text))
        finally:
            await db.close()

        if found:
            click.echo("Topics: " + ", ".join(found))
        else:
            click.echo("No topics matched")

    asyncio.run(run())


@main.command()
@click.argument("post_id")
@click.argument("content")
def reprocess(post_id: str, content: str) -> None:
    """Replace a stored post's content and re-derive its topics."""
    from events_indexer.storage.database import Database

    async def run() -> int:
        db = Database()
        await db.connect()

        try:
            topics, pipeline = _build_pipeline(db)
            await topics.initialize()
            post = await pipeline.reprocess_content(post_id, content)
        finally:
            await db.close()

        if post is None:
            click.echo(click.style(f"Post not found: {post_id}", fg="red"))
            return 1

        click.echo(f"Reprocessed {post.id}: topics={', '.join(post.topics) or '-'}")
        return 0

    sys.exit(asyncio.run(run()))


@main.command()
@click.option("--mock", is_flag=True, help="Use mock sources")
@click.option("--limit", default=None, type=int, help="Max posts per source")
def index(mock: bool, limit: int | None) -> None:
    """Run a single indexing cycle and print the results."""
    from events_indexer.services.indexer_service import EventsIndexerService
    from events_indexer.storage.database import Database

    async def run():
        db = Database()
        await db.connect()

        try:
            topics, pipeline = _build_pipeline(db)
            await topics.initialize()

            indexer = EventsIndexerService(pipeline, use_mock=mock)
            results = await indexer.run_once(max_results=limit)
        finally:
            await db.close()

        click.echo("\nIndexing Results:")
        click.echo("-" * 40)
        for platform, counts in results.items():
            if platform == "total_processed":
                continue
            click.echo(
                f"  {platform}: fetched={counts['fetched']} processed={counts['processed']} "
                f"skipped={counts['skipped']} errors={counts['errors']}"
            )
        click.echo("-" * 40)
        click.echo(f"Total processed: {results['total_processed']}")

    asyncio.run(run())


@main.command()
@click.option("--mock", is_flag=True, help="Use mock sources")
@click.option("--metrics-port", default=None, type=int, help="Metrics server port")
def worker(mock: bool, metrics_port: int | None) -> None:
    """Index continuously on the configured poll interval."""
    from events_indexer.services.indexer_service import EventsIndexerService
    from events_indexer.storage.database import Database

    async def run():
        db = Database()
        await db.connect()

        get_metrics().start_server(port=metrics_port)

        topics, pipeline = _build_pipeline(db)
        await topics.initialize()
        indexer = EventsIndexerService(pipeline, use_mock=mock)

        stopping = _install_stop_handlers(asyncio.get_running_loop(), indexer)

        try:
            await indexer.start_background()
            await asyncio.gather(*stopping)
        finally:
            await db.close()

    asyncio.run(run())


@main.command()
@click.option("--hours", default=None, type=int, help="Time window in hours")
def stats(hours: int | None) -> None:
    """Print indexing statistics as JSON."""
    from events_indexer.services.analytics import AnalyticsService
    from events_indexer.storage.database import Database

    async def run():
        db = Database()
        await db.connect()

        try:
            analytics = AnalyticsService(db)
            result = await analytics.indexing_stats(hours)
            result["time_window_hours"] = analytics.clamp_hours(hours)
        finally:
            await db.close()

        click.echo(json.dumps(result, indent=2, default=str))

    asyncio.run(run())


@main.command()
@click.option("--dry-run", is_flag=True, help="Show count without deleting")
def purge(dry_run: bool) -> None:
    """Delete posts past their retention expiry."""
    from events_indexer.posts.repository import PostRepository
    from events_indexer.storage.database import Database

    async def run():
        db = Database()
        await db.connect()

        try:
            if dry_run:
                count = await db.fetchval(
                    "SELECT COUNT(*) FROM posts WHERE expires_at <= NOW()"
                )
                click.echo(f"\nDry run - would delete {count} expired posts")
                click.echo("\nRun without --dry-run to actually delete.")
            else:
                deleted = await PostRepository(db).delete_expired()
                get_metrics().record_purge(deleted)
                click.echo(f"\nDeleted {deleted} expired posts")
        finally:
            await db.close()

    asyncio.run(run())


@main.command()
@click.option("--host", default=None, help="API server host")
@click.option("--port", default=None, type=int, help="API server port")
@click.option("--reload", is_flag=True, help="Enable auto-reload (dev only)")
@click.option("--metrics-port", default=None, type=int, help="Metrics server port")
def serve(host: str | None, port: int | None, reload: bool, metrics_port: int | None) -> None:
    """Start the query API server."""
    import uvicorn

    settings = get_settings()
    host = host or settings.api_host
    port = port or settings.api_port
    metrics_port = metrics_port or settings.metrics_port

    get_metrics().start_server(port=metrics_port)

    click.echo(f"Starting API server on {host}:{port}")
    click.echo(f"Metrics available on http://localhost:{metrics_port}/metrics")
    click.echo(f"API docs available on http://localhost:{port}/docs")

    uvicorn.run(
        "events_indexer.api.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_level="info",
    )


@main.command()
def health() -> None:
    """Check health of all dependencies."""
    import structlog
    logger = structlog.get_logger()

    async def check():
        results: dict[str, bool] = {}

        try:
            from events_indexer.storage.database import Database
            db = Database()
            await db.connect()
            results["postgres"] = await db.health_check()
            await db.close()
        except Exception as e:
            results["postgres"] = False
            logger.error("Postgres health check failed", error=str(e))

        from events_indexer.extraction.config import ExtractionConfig

        settings = get_settings()
        results["twitter_configured"] = settings.twitter_configured
        results["reddit_configured"] = settings.reddit_configured
        results["extraction_configured"] = ExtractionConfig().configured

        click.echo("\nHealth Check Results:")
        click.echo("-" * 40)

        for name, status in results.items():
            icon = "✓" if status else "✗"
            color = "green" if status else "red"
            click.echo(click.style(f"  {icon} {name}: {status}", fg=color))

        click.echo("-" * 40)

        if results["postgres"]:
            click.echo(click.style("All core services healthy!", fg="green"))
            sys.exit(0)
        else:
            click.echo(click.style("Some services unhealthy!", fg="red"))
            sys.exit(1)

    asyncio.run(check())


if __name__ == "__main__":
    main()
