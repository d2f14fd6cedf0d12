"""
Kinesis stream consumer for the publish worker.

Reads publish.scheduled events from every shard of the stream and hands
them to the PublishJobProcessor. Dependencies are injected by main.
"""

import asyncio
import json
from typing import Any

import structlog
from aiobotocore.session import get_session

from .config import settings
from .infrastructure.logging import set_correlation_id
from .processor import PublishJob, PublishJobProcessor

logger = structlog.get_logger()

PUBLISH_SCHEDULED = "publish.scheduled"


class KinesisConsumer:
    """
    Kinesis stream consumer for publish events.

    Malformed records are logged and skipped so one bad event cannot stall
    a shard.
    """

    def __init__(
        self,
        processor: PublishJobProcessor,
        stream_name: str = settings.kinesis_stream_name,
        region: str = settings.aws_region,
        endpoint_url: str | None = settings.aws_endpoint_url,
    ) -> None:
        """
        Initialize with injected dependencies.

        Args:
            processor: PublishJobProcessor instance
            stream_name: Kinesis stream to read
            region: AWS region of the stream
            endpoint_url: Endpoint override (LocalStack)
        """
        self._processor = processor
        self._stream_name = stream_name
        self._region = region
        self._endpoint_url = endpoint_url
        self._session = get_session()
        self._running = False

    async def start(self) -> None:
        """Start consuming from the Kinesis stream."""
        self._running = True
        logger.info(
            "Starting Kinesis consumer",
            stream=self._stream_name,
            region=self._region,
        )

        client_kwargs = {"region_name": self._region}
        if self._endpoint_url:
            client_kwargs["endpoint_url"] = self._endpoint_url

        async with self._session.create_client("kinesis", **client_kwargs) as client:
            stream_desc = await client.describe_stream(StreamName=self._stream_name)
            shards = stream_desc["StreamDescription"]["Shards"]

            tasks = [self._process_shard(client, shard["ShardId"]) for shard in shards]
            await asyncio.gather(*tasks)

    async def stop(self) -> None:
        """Stop the consumer after the current batch."""
        self._running = False
        logger.info("Stopping Kinesis consumer")

    async def _process_shard(self, client: Any, shard_id: str) -> None:
        logger.info("Processing shard", shard_id=shard_id)

        iterator_response = await client.get_shard_iterator(
            StreamName=self._stream_name,
            ShardId=shard_id,
            ShardIteratorType="LATEST",
        )
        shard_iterator = iterator_response["ShardIterator"]

        while self._running and shard_iterator:
            try:
                response = await client.get_records(
                    ShardIterator=shard_iterator,
                    Limit=100,
                )

                for record in response.get("Records", []):
                    await self.process_record(record)

                shard_iterator = response.get("NextShardIterator")

                if not response.get("Records"):
                    await asyncio.sleep(1)

            except Exception as e:
                logger.error("Error processing shard", shard_id=shard_id, error=str(e))
                await asyncio.sleep(5)

    async def process_record(self, record: dict) -> None:
        """Decode one Kinesis record and route it by event type."""
        try:
            data = json.loads(record["Data"].decode("utf-8"))
            event_type = data.get("event_type")
            payload = data.get("payload") or {}

            correlation_id = data.get("correlation_id", "")
            if correlation_id:
                set_correlation_id(correlation_id)

            with structlog.contextvars.bound_contextvars(
                correlation_id=correlation_id,
                event_type=event_type,
            ):
                logger.info(
                    "Processing event",
                    content_item_id=payload.get("contentItemId"),
                    sequence_number=record.get("SequenceNumber"),
                )

                if event_type == PUBLISH_SCHEDULED:
                    job = PublishJob.from_payload(payload, job_id=data.get("event_id"))
                    await self._processor.process(job)
                else:
                    logger.warning("Unknown event type")

        except json.JSONDecodeError as e:
            logger.error("Invalid JSON in record", error=str(e))
        except KeyError as e:
            logger.error("Publish event missing field", field=str(e))
        except Exception as e:
            logger.error("Error processing record", error=str(e))
