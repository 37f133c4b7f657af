# psyconnect/kafka.py
import json
import logging
from aiokafka import AIOKafkaProducer
from aiokafka.errors import KafkaError

from psyconnect.config import KAFKA_ENABLED, KAFKA_BOOTSTRAP, KAFKA_TOPIC_EVENTS

logger = logging.getLogger(__name__)

producer: AIOKafkaProducer | None = None


async def start_kafka():
    global producer
    if not KAFKA_ENABLED:
        logger.info("[kafka] disabled, domain events will not be published")
        return
    producer = AIOKafkaProducer(
        bootstrap_servers=KAFKA_BOOTSTRAP,
        value_serializer=lambda v: json.dumps(v, default=str).encode(),
        key_serializer=lambda v: str(v).encode(),
        linger_ms=5,
        acks="all",
        enable_idempotence=True,
    )
    await producer.start()


async def stop_kafka():
    global producer
    if producer:
        await producer.stop()
        producer = None


async def publish_event(event_type: str, key, payload: dict) -> None:
    """
    Publishes a domain event such as session.requested or report.created.
    Events are fire-and-forget: a broker failure is logged and never fails the request.
    """
    if not producer:
        logger.debug("[kafka] skip %s key=%s (producer not running)", event_type, key)
        return
    try:
        await producer.send_and_wait(
            KAFKA_TOPIC_EVENTS,
            key=key,
            value={"type": event_type, **payload},
        )
    except KafkaError:
        logger.exception("[kafka] failed to publish %s key=%s", event_type, key)
