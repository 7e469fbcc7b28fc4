"""Queue consumer entry point.

Blocks on ``BRPOP <queue_key>`` with a short timeout, parses each payload
into a :class:`~compass.pipeline.messages.QueueMessage` and hands it to
the :class:`~compass.pipeline.job_processor.JobProcessor`.  Messages are
processed strictly one at a time; horizontal scale comes from running
more worker processes against the same queue.

Usage:
    compass-worker                 # uses env / .env for configuration
    python -m compass.worker
"""
from __future__ import annotations

import logging
import signal
import threading
import time

import redis

from compass.core.logging import setup_logging
from compass.core.settings import PipelineConfig, Settings, get_settings
from compass.db.session import get_session_factory, init_schema
from compass.extraction.extractor import build_extractor
from compass.notification.senders import LoggingNotifier
from compass.pipeline.job_processor import JobOutcome, JobProcessor
from compass.pipeline.messages import MessageError, QueueMessage, parse_message

logger = logging.getLogger(__name__)

RECONNECT_DELAY_S = 2.0


class QueueConsumer:
    """Pop messages from a Redis list and process them sequentially."""

    def __init__(
        self,
        redis_client: redis.Redis,
        processor: JobProcessor,
        *,
        queue_key: str,
        timeout_s: int = 5,
    ) -> None:
        self.redis = redis_client
        self.processor = processor
        self.queue_key = queue_key
        self.timeout_s = timeout_s

    def poll_once(self) -> JobOutcome | None:
        """Wait up to ``timeout_s`` for one message and process it.

        Returns ``None`` when the wait timed out or the payload was
        malformed.  Malformed payloads are logged and dropped.
        """
        item = self.redis.brpop([self.queue_key], timeout=self.timeout_s)
        if item is None:
            return None

        _key, payload = item
        try:
            message = parse_message(payload)
        except MessageError:
            logger.exception("Dropping malformed message from %s", self.queue_key)
            return None

        logger.info("Received job %s for document %s", message.job_id, message.document_id)
        return self.processor.process(message)

    def run_forever(self, stop_event: threading.Event | None = None) -> None:
        """Poll until *stop_event* is set.  Redis outages are retried."""
        stop_event = stop_event or threading.Event()
        logger.info("Worker listening on %s", self.queue_key)
        while not stop_event.is_set():
            try:
                self.poll_once()
            except redis.exceptions.ConnectionError:
                logger.exception("Lost connection to Redis; retrying in %.0fs", RECONNECT_DELAY_S)
                time.sleep(RECONNECT_DELAY_S)
            except Exception:
                logger.exception("Unexpected error while consuming %s", self.queue_key)
        logger.info("Worker stopped")


def enqueue_job(redis_client: redis.Redis, queue_key: str, job_id: str, document_id: str) -> None:
    """Push a job message so that ``BRPOP`` consumers see it in FIFO order."""
    message = QueueMessage(job_id=job_id, document_id=document_id)
    redis_client.lpush(queue_key, message.to_json())


def build_processor(settings: Settings) -> JobProcessor:
    config = PipelineConfig.from_settings(settings)
    return JobProcessor(
        get_session_factory(),
        config=config,
        extractor=build_extractor(config),
        notifier=LoggingNotifier(),
    )


def main() -> None:
    setup_logging()
    settings = get_settings()
    init_schema()

    consumer = QueueConsumer(
        redis.from_url(settings.redis_url),
        build_processor(settings),
        queue_key=settings.queue_key,
        timeout_s=settings.queue_timeout_s,
    )

    stop_event = threading.Event()

    def _stop(signum, _frame):
        logger.info("Received signal %s; finishing current job", signum)
        stop_event.set()

    signal.signal(signal.SIGINT, _stop)
    signal.signal(signal.SIGTERM, _stop)

    logger.info(
        "Starting %s %s (env=%s, mode=%s)",
        settings.app_name,
        settings.app_version,
        settings.app_env,
        settings.extraction_mode,
    )
    consumer.run_forever(stop_event)


if __name__ == "__main__":
    main()
