import asyncio
import json
import logging
from typing import Optional

from aiokafka import AIOKafkaConsumer, TopicPartition
from aiokafka.errors import KafkaError

from .errors import SourceUnavailableError
from .schemas import EventKind, ListingRecord, parse_event

logger = logging.getLogger("availability_service.kafka_ledger")


class KafkaEventLog:
    """
    Event source for deployments that mirror ledger events onto a
    single-partition Kafka topic. The topic offset is the log position.

    Message values are JSON: {"event": "Booked" | "Cancelled" | "Settled", "args": [...]}.
    Listing reads are delegated to `listings` (normally the HTTP gateway).
    """

    def __init__(
        self,
        bootstrap_servers: str,
        topic: str,
        listings,
        fetch_timeout_ms: int = 1000,
        consumer: Optional[AIOKafkaConsumer] = None,
    ):
        self.bootstrap_servers = bootstrap_servers
        self.topic = topic
        self.listings = listings
        self.fetch_timeout_ms = fetch_timeout_ms
        self._partition = TopicPartition(topic, 0)
        self._consumer = consumer
        self._started = False
        # One consumer is shared by all queries; seek + read must not interleave.
        self._lock = asyncio.Lock()

    async def start(self):
        if self._consumer is None:
            self._consumer = AIOKafkaConsumer(
                bootstrap_servers=self.bootstrap_servers,
                enable_auto_commit=False,
                group_id=None,
                # A seek below the retained range resets to the oldest message, not the end
                auto_offset_reset="earliest",
            )
        logger.info("Starting Kafka ledger consumer...")
        try:
            await self._consumer.start()
        except KafkaError as e:
            logger.error(f"Failed to connect to Kafka: {e}")
            raise SourceUnavailableError("kafka_start", str(e)) from e
        self._started = True
        self._consumer.assign([self._partition])
        logger.info(f"Kafka ledger consumer assigned to {self.topic}.")

    async def aclose(self):
        if self._started:
            self._started = False
            logger.info("Stopping Kafka ledger consumer...")
            await self._consumer.stop()
        await self.listings.aclose()

    async def _beginning_offset(self) -> int:
        offsets = await self._consumer.beginning_offsets([self._partition])
        return offsets[self._partition]

    async def _end_offset(self) -> int:
        offsets = await self._consumer.end_offsets([self._partition])
        return offsets[self._partition]

    async def get_current_position(self) -> int:
        try:
            end = await self._end_offset()
        except KafkaError as e:
            raise SourceUnavailableError("get_current_position", str(e)) from e
        return max(end - 1, 0)

    async def query_events(
        self, kind: EventKind, from_position: int, to_position: Optional[int] = None
    ) -> list:
        kind = EventKind(kind)
        operation = f"query_events({kind.value})"
        if not self._started:
            raise SourceUnavailableError(operation, "consumer not started")

        events = []
        async with self._lock:
            try:
                # Offsets below the beginning are gone (retention); above the end are not written yet.
                first = await self._beginning_offset()
                last = await self._end_offset() - 1
                if to_position is not None:
                    last = min(to_position, last)
                start = max(from_position, first)
                if start > from_position:
                    logger.warning(
                        f"Positions {from_position}..{start - 1} are no longer retained; reading from {start}"
                    )
                if last < start:
                    return events

                self._consumer.seek(self._partition, start)
                while True:
                    batch = await self._consumer.getmany(
                        self._partition, timeout_ms=self.fetch_timeout_ms
                    )
                    messages = batch.get(self._partition, [])
                    for msg in messages:
                        if msg.offset > last:
                            break
                        event = self._decode(kind, msg)
                        if event is not None:
                            events.append(event)
                    position = await self._consumer.position(self._partition)
                    if position > last:
                        break
                    if not messages:
                        raise SourceUnavailableError(
                            operation, f"fetch timed out before reaching position {last}"
                        )
            except KafkaError as e:
                logger.error(f"Kafka read failed during {operation}: {e}")
                raise SourceUnavailableError(operation, str(e)) from e
        return events

    def _decode(self, kind: EventKind, msg):
        try:
            message = json.loads(msg.value.decode("utf-8"))
            if message.get("event") != kind.value:
                return None
            return parse_event(kind, message["args"], msg.offset)
        except (ValueError, LookupError, TypeError, AttributeError) as e:
            logger.warning(f"Skipping malformed ledger message at offset {msg.offset}: {e}")
            return None

    async def get_listing_count(self) -> int:
        return await self.listings.get_listing_count()

    async def get_listing_owner(self, listing_id: int) -> str:
        return await self.listings.get_listing_owner(listing_id)

    async def get_listing(self, listing_id: int) -> ListingRecord:
        return await self.listings.get_listing(listing_id)
