from __future__ import annotations

import json
import logging
import sys
from dataclasses import dataclass
from typing import Any, Protocol, TextIO

from botocore.exceptions import BotoCoreError, ClientError

from batch_loader.errors import NotificationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Notification:
    """The one message sent per batch run."""
    batch_id: str
    message: str        # summary JSON, or the fatal error text

    @property
    def subject(self) -> str:
        return f"Batch processing notification: {self.batch_id}"

    def to_payload(self) -> dict[str, str]:
        return {"batchId": self.batch_id, "message": self.message}


class Notifier(Protocol):
    """Raises `NotificationError` when the message cannot be delivered."""
    def publish(self, notification: Notification) -> None: ...


class SnsNotifier:
    """Publishes to an SNS topic with a boto3 client."""

    def __init__(self, client: Any, *, topic_arn: str | None) -> None:
        self.client = client
        self.topic_arn = topic_arn

    def publish(self, notification: Notification) -> None:
        if not self.topic_arn:
            raise NotificationError("NOTIFICATION_TOPIC_ARN is not set")
        try:
            resp = self.client.publish(
                TopicArn=self.topic_arn,
                Subject=notification.subject,
                Message=notification.message,
            )
        except (ClientError, BotoCoreError) as e:
            raise NotificationError(f"SNS publish to {self.topic_arn} failed: {e}") from e

        logger.info(
            "%s >> Notification sent to the topic %s with message ID %s",
            notification.batch_id,
            self.topic_arn,
            resp.get("MessageId"),
        )


class ConsoleNotifier:
    """Writes each notification as one JSON line (local runs, demos)."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self.stream = stream

    def publish(self, notification: Notification) -> None:
        out = self.stream or sys.stdout
        try:
            out.write(json.dumps(notification.to_payload()) + "\n")
            out.flush()
        except (OSError, ValueError) as e:
            raise NotificationError(f"unable to write notification: {e}") from e
