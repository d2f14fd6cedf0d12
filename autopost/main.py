import asyncio
import signal

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from .application.services import PublishDispatcher
from .config import settings
from .consumer import KinesisConsumer
from .infrastructure.adapters import (
    HttpMediaProcessor,
    OAuthTokenRefresher,
    SettingsTokenProvider,
    SqlAlchemyContentStore,
    SqlAlchemyMetricsRecorder,
    SqlTokenProvider,
    TokenCipher,
    build_platform_publishers,
)
from .infrastructure.logging import configure_logging
from .infrastructure.metrics import start_metrics_server
from .processor import PublishJobProcessor

configure_logging(settings.service_name, settings.log_level)

logger = structlog.get_logger()


async def main() -> None:
    """Main entry point for the publish worker."""
    logger.info("Starting worker", service=settings.service_name, dry_run=settings.dry_run)

    engine = create_async_engine(settings.database_url, echo=False)
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    start_metrics_server(settings.metrics_port)

    # Composition root
    content_store = SqlAlchemyContentStore(session_factory)
    metrics = SqlAlchemyMetricsRecorder(session_factory)
    media = HttpMediaProcessor(timeout=settings.http_timeout_seconds)
    token_provider = SqlTokenProvider(
        session_factory,
        cipher=TokenCipher(settings.token_encryption_key),
        refresher=OAuthTokenRefresher(
            linkedin_client_id=settings.linkedin_client_id,
            linkedin_client_secret=settings.linkedin_client_secret,
            google_client_id=settings.google_client_id,
            google_client_secret=settings.google_client_secret,
            timeout=settings.http_timeout_seconds,
        ),
        fallback=SettingsTokenProvider(
            meta_access_token=settings.meta_access_token,
            linkedin_access_token=settings.linkedin_access_token,
            google_access_token=settings.google_access_token,
        ),
        refresh_window_seconds=settings.token_refresh_window_seconds,
    )

    dispatcher = PublishDispatcher(
        content_store=content_store,
        token_provider=token_provider,
        publishers=build_platform_publishers(media, metrics, settings),
        dry_run_default=settings.dry_run,
    )
    processor = PublishJobProcessor(
        dispatcher=dispatcher,
        content_store=content_store,
        max_attempts=settings.publish_max_attempts,
        base_delay=settings.retry_base_delay_seconds,
        max_delay=settings.retry_max_delay_seconds,
    )
    consumer = KinesisConsumer(processor=processor)

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, lambda: asyncio.create_task(consumer.stop()))

    try:
        await consumer.start()
    except asyncio.CancelledError:
        logger.info("Worker cancelled")
    finally:
        await engine.dispose()
        logger.info("Worker shutdown complete")


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
