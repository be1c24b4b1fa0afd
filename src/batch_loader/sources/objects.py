from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, BinaryIO, Mapping, Protocol
from urllib.parse import unquote_plus

from botocore.exceptions import BotoCoreError, ClientError

from batch_loader.errors import SourceReadError, TriggerError


@dataclass(frozen=True, slots=True)
class ObjectRef:
    """Where the batch file lives."""
    bucket_name: str
    file_name: str

    def __str__(self) -> str:
        return f"s3://{self.bucket_name}/{self.file_name}"


def extract_object_ref(event: Any, *, inbound_bucket: str) -> ObjectRef:
    """
    Pull bucket and key out of an S3 event notification.

    Only the first record is looked at. The bucket must be the configured
    inbound bucket. Keys arrive URL-encoded (`+` for spaces), so are decoded.
    Raises `TriggerError` on anything else.
    """
    try:
        s3 = event["Records"][0]["s3"]
        bucket = s3["bucket"]["name"]
        key = s3["object"]["key"]
    except (KeyError, IndexError, TypeError) as e:
        raise TriggerError(f"Unable to extract bucket and file name from event: {event!r}") from e

    if bucket != inbound_bucket:
        raise TriggerError(f"Event is for bucket {bucket!r}, expected {inbound_bucket!r}")
    if not isinstance(key, str) or not key:
        raise TriggerError(f"Event carries no object key: {event!r}")

    return ObjectRef(bucket_name=bucket, file_name=unquote_plus(key))


def make_event(bucket: str, key: str) -> dict[str, Any]:
    """The minimal S3 event shape `extract_object_ref` understands."""
    return {"Records": [{"s3": {"bucket": {"name": bucket}, "object": {"key": key}}}]}


class ObjectSource(Protocol):
    """Opens the batch file as a binary stream. Caller closes it."""
    def open(self, ref: ObjectRef) -> BinaryIO: ...


class LocalObjectSource:
    """Buckets are directories under `root`, keys are paths inside them."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def path_for(self, ref: ObjectRef) -> Path:
        bucket_dir = (self.root / ref.bucket_name).resolve()
        path = (bucket_dir / ref.file_name).resolve()
        # keys like `../x` must stay inside the bucket
        if bucket_dir not in path.parents:
            raise SourceReadError(f"Object key escapes its bucket: {ref}")
        return path

    def open(self, ref: ObjectRef) -> BinaryIO:
        path = self.path_for(ref)
        try:
            return path.open("rb")
        except OSError as e:
            raise SourceReadError(f"Unable to read {ref} from {path}: {e}") from e


class S3ObjectSource:
    """Streams the object body from S3 with a boto3 client."""

    def __init__(self, client: Any) -> None:
        self.client = client

    def open(self, ref: ObjectRef) -> BinaryIO:
        try:
            resp: Mapping[str, Any] = self.client.get_object(Bucket=ref.bucket_name, Key=ref.file_name)
        except (ClientError, BotoCoreError) as e:
            raise SourceReadError(f"Unable to read {ref}: {e}") from e
        return resp["Body"]
