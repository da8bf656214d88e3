import logging
import sys
import json

# Passed through ``extra=`` by services and adapters so a log line can be
# traced back to the campaign, donation or charge it concerns
CONTEXT_FIELDS = ("entity_id", "operation")

QUIET_LOGGERS = ("botocore", "boto3", "urllib3", "stripe")


class JsonFormatter(logging.Formatter):
    """
    One JSON object per line for CloudWatch. ``entity_id`` and ``operation``
    are copied from the record when the caller supplied them; Decimals and
    datetimes in messages are rendered with ``str``.
    """
    def format(self, record: logging.LogRecord) -> str:
        log_record = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
            "function": record.funcName,
            "line": record.lineno,
        }

        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_record[field] = value

        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_record, default=str)


def configure_logging(level: int = logging.INFO) -> None:
    """Route every logger of the Lambda through a single stdout JSON handler."""
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Lambda installs its own handler; replace it
    if root_logger.handlers:
        root_logger.handlers = []

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter())
    root_logger.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
