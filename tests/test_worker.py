"""QueueConsumer against a mocked Redis client."""
from __future__ import annotations

import json
import threading
from unittest.mock import MagicMock, patch

import redis

from compass.pipeline.job_processor import JobOutcome
from compass.pipeline.messages import QueueMessage
from compass.worker import QueueConsumer, enqueue_job

QUEUE_KEY = "queue:document-ingest"


def _consumer(redis_client, processor=None, timeout_s=5):
    processor = processor or MagicMock()
    return QueueConsumer(redis_client, processor, queue_key=QUEUE_KEY, timeout_s=timeout_s)


class TestPollOnce:
    def test_timeout_returns_none(self):
        client = MagicMock()
        client.brpop.return_value = None
        processor = MagicMock()

        assert _consumer(client, processor, timeout_s=5).poll_once() is None

        client.brpop.assert_called_once_with([QUEUE_KEY], timeout=5)
        processor.process.assert_not_called()

    def test_message_is_parsed_and_processed(self):
        client = MagicMock()
        payload = json.dumps({"jobId": "job_1", "documentId": "doc_1"}).encode()
        client.brpop.return_value = (QUEUE_KEY.encode(), payload)
        processor = MagicMock()
        processor.process.return_value = JobOutcome(job_id="job_1", result="completed")

        outcome = _consumer(client, processor).poll_once()

        assert outcome.result == "completed"
        message = processor.process.call_args.args[0]
        assert message == QueueMessage(job_id="job_1", document_id="doc_1")

    def test_malformed_message_is_dropped(self, caplog):
        client = MagicMock()
        client.brpop.return_value = (QUEUE_KEY, "{not json")
        processor = MagicMock()

        assert _consumer(client, processor).poll_once() is None

        processor.process.assert_not_called()
        assert "Dropping malformed message" in caplog.text


class TestRunForever:
    def test_keeps_consuming_after_a_bad_message(self):
        stop = threading.Event()
        good = json.dumps({"jobId": "job_1", "documentId": "doc_1"})
        client = MagicMock()
        processor = MagicMock()

        def brpop(keys, timeout):
            if client.brpop.call_count == 1:
                return (QUEUE_KEY, "garbage")
            if client.brpop.call_count == 2:
                return (QUEUE_KEY, good)
            stop.set()
            return None

        client.brpop.side_effect = brpop

        _consumer(client, processor).run_forever(stop)

        assert processor.process.call_count == 1
        assert processor.process.call_args.args[0].job_id == "job_1"

    def test_redis_outage_is_retried(self):
        stop = threading.Event()
        client = MagicMock()

        def brpop(keys, timeout):
            if client.brpop.call_count == 1:
                raise redis.exceptions.ConnectionError("connection refused")
            stop.set()
            return None

        client.brpop.side_effect = brpop

        with patch("compass.worker.time.sleep") as mock_sleep:
            _consumer(client).run_forever(stop)

        mock_sleep.assert_called_once()
        assert client.brpop.call_count == 2

    def test_unexpected_processing_error_does_not_stop_the_loop(self):
        stop = threading.Event()
        client = MagicMock()
        client.brpop.return_value = (QUEUE_KEY, json.dumps({"jobId": "job_1", "documentId": "doc_1"}))
        processor = MagicMock()

        def process(message):
            if processor.process.call_count == 1:
                raise RuntimeError("unexpected")
            stop.set()

        processor.process.side_effect = process

        _consumer(client, processor).run_forever(stop)

        assert processor.process.call_count == 2


def test_enqueue_job_pushes_wire_format():
    client = MagicMock()

    enqueue_job(client, QUEUE_KEY, "job_1", "doc_1")

    key, payload = client.lpush.call_args.args
    assert key == QUEUE_KEY
    assert json.loads(payload) == {"jobId": "job_1", "documentId": "doc_1", "type": "document-ingest"}
