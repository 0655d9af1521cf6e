"""
Closing Event Logger

Every significant step of the closing workflow is logged as a structured
event: saves, rejections, reconciliation prompts and outcomes, deletes,
summary fallbacks.

The logger:
- Writes through structlog (JSON by default, console renderer for local use)
- Never raises into the save path
- Never receives free-text notes
"""

import logging
import sys
from typing import Optional

import structlog

from cash_close.config import get_settings
from cash_close.models.events import (
    ClosingEvent,
    ClosingEventBuilder,
    EventSeverity,
)


def configure_logging(
    level: Optional[str] = None,
    format: Optional[str] = None,
) -> None:
    """
    Configure structured logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR). Defaults to settings.
        format: Output format (json or console). Defaults to settings.
    """
    settings = get_settings().app
    log_level = level or settings.log_level
    log_format = format or settings.log_format

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level),
    )

    if log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


class ClosingEventLogger:
    """Central operational logger for the closing workflow."""

    def __init__(self, logger_name: str = "cash_close"):
        self._logger = structlog.get_logger(logger_name)

    def log(self, event: ClosingEvent) -> None:
        """Log an event at the level given by its severity."""
        log_dict = event.to_log_dict()

        if event.severity == EventSeverity.ERROR:
            self._logger.error("closing_event", **log_dict)
        elif event.severity == EventSeverity.WARNING:
            self._logger.warning("closing_event", **log_dict)
        elif event.severity == EventSeverity.DEBUG:
            self._logger.debug("closing_event", **log_dict)
        else:
            self._logger.info("closing_event", **log_dict)

    def log_record_saved(
        self,
        record_date: str,
        version: int,
        actor_name: str,
        change_count: int,
    ) -> None:
        """Log a successful save."""
        self.log(ClosingEventBuilder.record_saved(
            record_date=record_date,
            version=version,
            actor_name=actor_name,
            change_count=change_count,
        ))

    def log_save_rejected(self, record_date: str, reasons: list[str]) -> None:
        """Log a save refused by validation."""
        self.log(ClosingEventBuilder.save_rejected(record_date, reasons))

    def log_version_conflict(
        self,
        record_date: str,
        expected_version: Optional[int],
        stored_version: int,
    ) -> None:
        self.log(ClosingEventBuilder.version_conflict(
            record_date, expected_version, stored_version
        ))

    def log_record_deleted(self, record_date: str, existed: bool) -> None:
        self.log(ClosingEventBuilder.record_deleted(record_date, existed))

    def log_reconciliation_prompted(
        self,
        record_date: str,
        prior_date: str,
        staff_count: int,
        manual: bool,
    ) -> None:
        self.log(ClosingEventBuilder.reconciliation_prompted(
            record_date, prior_date, staff_count, manual
        ))

    def log_reconciliation_confirmed(
        self,
        record_date: str,
        prior_date: str,
        carried: int,
        skipped_duplicates: int,
    ) -> None:
        self.log(ClosingEventBuilder.reconciliation_confirmed(
            record_date, prior_date, carried, skipped_duplicates
        ))

    def log_reconciliation_cancelled(self, record_date: str, prior_date: str) -> None:
        self.log(ClosingEventBuilder.reconciliation_cancelled(record_date, prior_date))

    def log_reconciliation_not_found(self, record_date: str) -> None:
        self.log(ClosingEventBuilder.reconciliation_not_found(record_date))

    def log_summary_generated(self, record_date: str, used_ai: bool) -> None:
        self.log(ClosingEventBuilder.summary_generated(record_date, used_ai))

    def log_summary_fallback(self, record_date: str, error_message: str) -> None:
        self.log(ClosingEventBuilder.summary_fallback_used(record_date, error_message))

    def log_storage_error(
        self,
        operation: str,
        error_message: str,
        record_date: Optional[str] = None,
    ) -> None:
        """Log a storage failure."""
        self.log(ClosingEventBuilder.storage_error(
            operation=operation,
            error_message=error_message,
            record_date=record_date,
        ))
