"""
Structured logging setup for the treasury service.

All modules obtain their logger through ``get_structured_logger().get_logger(__name__)``
and log with keyword context instead of formatted strings.
"""

import logging
import re
from typing import Any, Dict, Optional

import structlog

# IBANs and Spanish tax ids are masked before anything reaches a handler.
_IBAN_PATTERN = re.compile(r"\b[A-Z]{2}\d{2}(?:\s?[A-Z0-9]{4}){3,7}(?:\s?[A-Z0-9]{1,4})?\b")
_CIF_PATTERN = re.compile(r"\b[A-HJ-NP-SUVW]\d{7}[0-9A-J]\b|\b\d{8}[A-Z]\b")


def mask_sensitive(value: str) -> str:
    """Mask account numbers and tax identifiers inside free text."""
    value = _IBAN_PATTERN.sub(lambda m: m.group(0)[:4] + "****" + m.group(0).replace(" ", "")[-4:], value)
    return _CIF_PATTERN.sub(lambda m: m.group(0)[:1] + "*******" + m.group(0)[-1:], value)


def _mask_event_dict(logger, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """structlog processor that masks sensitive values in string fields."""
    for key, value in list(event_dict.items()):
        if isinstance(value, str):
            event_dict[key] = mask_sensitive(value)
    return event_dict


class StructuredLogger:
    """Structured logging setup with sensitive data masking"""

    def __init__(
        self,
        service_name: str = "treasury",
        level: str = "INFO",
        json_output: bool = True,
    ):
        self.service_name = service_name
        self.level = level
        self.json_output = json_output
        self._setup_logging()

    def _setup_logging(self) -> None:
        renderer = (
            structlog.processors.JSONRenderer()
            if self.json_output
            else structlog.dev.ConsoleRenderer(colors=False)
        )
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
                _mask_event_dict,
                renderer,
            ],
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=True,
        )

        logging.basicConfig(level=getattr(logging, self.level, logging.INFO), format="%(message)s")
        logging.getLogger().setLevel(getattr(logging, self.level, logging.INFO))

    def get_logger(self, name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
        """Get a structured logger instance"""
        return structlog.get_logger(name or self.service_name)


_structured_logger: Optional[StructuredLogger] = None


def get_structured_logger() -> StructuredLogger:
    """Get the global structured logger, configuring it on first use."""
    global _structured_logger
    if _structured_logger is None:
        _structured_logger = StructuredLogger()
    return _structured_logger


def configure_logging(level: str = "INFO", json_output: bool = True) -> StructuredLogger:
    """(Re)configure structured logging, used at application start-up."""
    global _structured_logger
    _structured_logger = StructuredLogger(level=level, json_output=json_output)
    return _structured_logger
