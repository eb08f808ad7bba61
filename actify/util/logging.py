"""
Structured logging for the retrieval core.
Thin wrapper over stdlib logging with operation-shaped messages and audit events.
"""

import logging
from typing import Any, Dict, List

DEFAULT_SENSITIVE_FIELDS = ['content', 'vector', 'secret', 'password', 'token', 'contactEmail']


class StructuredLogger:
    """Structured logger for indexing, search, query and privacy operations."""

    def __init__(self, name: str = "actify"):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(logging.INFO)

        if not self.logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)

    def log_operation(self, operation: str, status: str, details: Dict[str, Any] = None):
        """Log a structured operation."""
        message = f"Operation: {operation}, Status: {status}"
        if details:
            message += f", Details: {details}"

        if status in ("failed", "error"):
            self.logger.error(message)
        elif status in ("skipped", "denied", "fallback"):
            self.logger.warning(message)
        else:
            self.logger.info(message)

    def log_index_operation(self, operation: str, entity_type: str, record_id: str = None,
                            status: str = "success", details: Dict[str, Any] = None):
        """Log an indexer operation for a single record or batch."""
        log_details = {"entity_type": entity_type}
        if record_id is not None:
            log_details["record_id"] = record_id
        if details:
            log_details.update(details)

        self.log_operation(f"index.{operation}", status, log_details)

    def log_search(self, query: str, principal_id: str, status: str = "success",
                   details: Dict[str, Any] = None):
        """Log a search call. The query text is truncated."""
        log_details = {
            "query": query[:50] + "..." if len(query) > 50 else query,
            "principal_id": principal_id,
        }
        if details:
            log_details.update(details)

        self.log_operation("search", status, log_details)

    def log_query(self, entity_type: str, principal_id: str, status: str = "success",
                  details: Dict[str, Any] = None):
        """Log a generic query."""
        log_details = {"entity_type": entity_type, "principal_id": principal_id}
        if details:
            log_details.update(details)

        self.log_operation("query", status, log_details)

    # Standard logging methods for compatibility
    def info(self, message: str) -> None:
        self.logger.info(message)

    def warning(self, message: str) -> None:
        self.logger.warning(message)

    def error(self, message: str) -> None:
        self.logger.error(message)

    def debug(self, message: str) -> None:
        self.logger.debug(message)


# Global logger instance
logger = StructuredLogger()


def audit_event(event_type: str, identifiers: Dict[str, Any], payload: Dict[str, Any] = None,
                sensitive_fields: List[str] = None):
    """General audit event logging with privacy controls."""
    if sensitive_fields is None:
        sensitive_fields = DEFAULT_SENSITIVE_FIELDS

    log_details = identifiers.copy() if identifiers else {}

    if payload:
        log_details["payload"] = sanitize_payload(payload, sensitive_fields=sensitive_fields)

    logger.log_operation(event_type.replace(".", "_"), "audit", log_details)


def sanitize_payload(payload: Any, reveal_sensitive: bool = False, sensitive_fields: List[str] = None) -> Any:
    """Sanitize payloads for audit logging."""
    if sensitive_fields is None:
        sensitive_fields = DEFAULT_SENSITIVE_FIELDS

    if isinstance(payload, dict):
        sanitized = {}
        for k, v in payload.items():
            if reveal_sensitive or k not in sensitive_fields:
                sanitized[k] = sanitize_payload(v, reveal_sensitive, sensitive_fields)
            else:
                sanitized[k] = "[REDACTED]"
        return sanitized
    elif isinstance(payload, str):
        return payload[:100] + "..." if len(payload) > 100 else payload
    elif isinstance(payload, list):
        return [sanitize_payload(item, reveal_sensitive, sensitive_fields) for item in payload]
    else:
        return payload
