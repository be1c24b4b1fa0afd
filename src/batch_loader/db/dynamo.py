from __future__ import annotations

from typing import Any, Sequence

from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectTimeoutError,
    EndpointConnectionError,
    NoCredentialsError,
)

from batch_loader.db.gateway import BaseRecordGateway
from batch_loader.errors import ConnectivityError, PersistenceError

# errors meaning no request can reach the table at all
_UNREACHABLE = (EndpointConnectionError, ConnectTimeoutError, NoCredentialsError)


class DynamoRecordGateway(BaseRecordGateway):
    """
    Writes records with `put_item` on a boto3 DynamoDB `Table` resource.

    The table's partition key is the record key; a repeated key overwrites.
    Row by row on purpose: `batch_writer()` would lose per-record outcomes.
    """

    def __init__(self, table: Any, *, columns: Sequence[str]) -> None:
        super().__init__(columns=columns)
        self.table = table

    def _put(self, item: dict[str, Any]) -> None:
        try:
            self.table.put_item(Item=item)
        except ClientError as e:
            err = e.response.get("Error", {})
            raise PersistenceError(f"{err.get('Code', 'ClientError')}: {err.get('Message', str(e))}") from e
        except _UNREACHABLE as e:
            raise ConnectivityError(f"DynamoDB unreachable: {e}") from e
        except BotoCoreError as e:
            raise PersistenceError(str(e)) from e
