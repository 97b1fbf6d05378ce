# src/meal_decoder/infra/messaging/sqs_queue.py
"""
AWS SQS implementation of the dish request queue.
Redrive (dead-letter) policy and visibility timeout are configured on the
queue itself; this wrapper only sends, receives and acknowledges.
"""
from __future__ import annotations

import json
import logging
import os
from typing import Any, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from src.meal_decoder.domain.errors import QueueTransportError
from src.meal_decoder.infra.messaging.base import MessageQueue, ReceivedMessage

logger = logging.getLogger(__name__)

MAX_WAIT_SECONDS = 20
MAX_BATCH_SIZE = 10


class SqsMessageQueue(MessageQueue):
    """
    SQS queue wrapper using boto3.

    Environment variables used when arguments are omitted:
    - DISH_QUEUE_URL: Full URL of the queue
    - AWS_ACCESS_KEY_ID / AWS_SECRET_ACCESS_KEY: Credentials
    - AWS_REGION: Queue region
    """

    def __init__(
        self,
        queue_url: Optional[str] = None,
        access_key_id: Optional[str] = None,
        secret_access_key: Optional[str] = None,
        region: Optional[str] = None,
        timeout_seconds: int = 10,
        client: Any = None,
    ):
        self.queue_url = queue_url or os.getenv("DISH_QUEUE_URL")
        if not self.queue_url:
            raise QueueTransportError("configure", "Missing DISH_QUEUE_URL")

        self._client = client or boto3.client(
            "sqs",
            aws_access_key_id=access_key_id or os.getenv("AWS_ACCESS_KEY_ID"),
            aws_secret_access_key=secret_access_key or os.getenv("AWS_SECRET_ACCESS_KEY"),
            region_name=region or os.getenv("AWS_REGION", "us-east-1"),
            config=Config(
                connect_timeout=timeout_seconds,
                read_timeout=timeout_seconds + MAX_WAIT_SECONDS,
                retries={"max_attempts": 3, "mode": "standard"},
            ),
        )

        logger.info("SqsMessageQueue initialized: queue_url=%s", self.queue_url)

    def send(self, payload: dict[str, Any]) -> str:
        try:
            response = self._client.send_message(
                QueueUrl=self.queue_url,
                MessageBody=json.dumps(payload),
            )
        except (ClientError, BotoCoreError) as e:
            logger.error("Failed to send message to SQS: %s", e)
            raise QueueTransportError("send", str(e)) from e

        message_id = response["MessageId"]
        logger.debug("Sent message to SQS: delivery_id=%s", message_id)
        return message_id

    def receive(self, max_messages: int = 1, wait_seconds: int = MAX_WAIT_SECONDS) -> list[ReceivedMessage]:
        try:
            response = self._client.receive_message(
                QueueUrl=self.queue_url,
                MaxNumberOfMessages=max(1, min(max_messages, MAX_BATCH_SIZE)),
                WaitTimeSeconds=max(0, min(wait_seconds, MAX_WAIT_SECONDS)),
                AttributeNames=["ApproximateReceiveCount"],
            )
        except (ClientError, BotoCoreError) as e:
            logger.error("Failed to receive from SQS: %s", e)
            raise QueueTransportError("receive", str(e)) from e

        return [
            ReceivedMessage(
                delivery_id=message["MessageId"],
                receipt_handle=message["ReceiptHandle"],
                body=message.get("Body", ""),
                receive_count=int(message.get("Attributes", {}).get("ApproximateReceiveCount", 1)),
            )
            for message in response.get("Messages", [])
        ]

    def delete(self, receipt_handle: str) -> None:
        try:
            self._client.delete_message(
                QueueUrl=self.queue_url,
                ReceiptHandle=receipt_handle,
            )
        except (ClientError, BotoCoreError) as e:
            logger.error("Failed to delete SQS message: %s", e)
            raise QueueTransportError("delete", str(e)) from e

    def exists(self) -> bool:
        """Check that the queue is reachable with the configured credentials."""
        try:
            self._client.get_queue_attributes(
                QueueUrl=self.queue_url,
                AttributeNames=["All"],
            )
            return True
        except (ClientError, BotoCoreError) as e:
            logger.warning("SQS queue not reachable: %s", e)
            return False
