import logging
from typing import Any, MutableMapping


def configure_logging(level: str) -> None:
    """
    Route log lines to stderr at `level`.

    `basicConfig` is a no-op when the root logger already has a handler (the
    serverless runtime installs one), so the level is also set explicitly.
    """
    resolved = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=resolved,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    logging.getLogger().setLevel(resolved)


class BatchLogAdapter(logging.LoggerAdapter):
    """Prefixes every message with the run's batch id, for grepping one run's lines."""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        kwargs.setdefault("extra", {}).setdefault("batch_id", self.extra["batch_id"])
        return f"{self.extra['batch_id']} >> {msg}", kwargs


def batch_logger(logger: logging.Logger, batch_id: str) -> BatchLogAdapter:
    return BatchLogAdapter(logger, {"batch_id": batch_id})
