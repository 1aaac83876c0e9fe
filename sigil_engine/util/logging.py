"""
Structured logging for sigil engine operations.
Text content is truncated before it reaches the log stream.
"""

import logging
from typing import Any, Dict, List

from ..core.config import debug_enabled


class StructuredLogger:
    """Structured logger for generation, similarity, braid, cluster and persistence operations."""

    def __init__(self, name: str = "sigil_engine"):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(logging.DEBUG if debug_enabled() else logging.INFO)

        # Create handler if not already set
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
        elif status in ("fallback", "degenerate", "evicted"):
            self.logger.warning(message)
        else:
            self.logger.info(message)

    def log_sigil_operation(self, operation: str, sigil_id: str, details: Dict[str, Any] = None, status: str = "success"):
        """Log a sigil store or generation operation."""
        log_details = {"sigil_id": sigil_id}
        if details:
            log_details.update(details)

        self.log_operation(f"sigil.{operation}", status, log_details)

    def log_similarity_query(self, target_id: str, threshold: float, match_count: int, scanned: int):
        """Log a find-similar scan."""
        self.log_operation("similarity.find", "success", {
            "target_id": target_id,
            "threshold": threshold,
            "matches": match_count,
            "scanned": scanned
        })

    def log_braid(self, braid_id: str, member_count: int, connection_count: int, strength: float, status: str = "success"):
        """Log braid construction."""
        self.log_operation("braid.created", status, {
            "braid_id": braid_id,
            "members": member_count,
            "connections": connection_count,
            "strength": round(strength, 4)
        })

    def log_cluster(self, sigil_count: int, cluster_count: int, threshold: float):
        """Log a clustering pass."""
        self.log_operation("pattern.cluster", "success", {
            "sigils": sigil_count,
            "clusters": cluster_count,
            "threshold": threshold
        })

    def log_persistence(self, operation: str, status: str = "success", details: Dict[str, Any] = None):
        """Log snapshot load/save."""
        self.log_operation(f"persistence.{operation}", status, details)

    def log_encoding_fallback(self, reason: str, text: str = None, source_type: str = None):
        """Log an encoding that fell back to a degenerate or substitute vector."""
        details = {"reason": reason}
        if source_type is not None:
            details["source_type"] = source_type
        if text is not None:
            details["text"] = sanitize_payload(text)

        self.log_operation("encoding.fallback", "fallback", details)

    # Standard logging methods for compatibility
    def info(self, message: str) -> None:
        """Log an info message."""
        self.logger.info(message)

    def warning(self, message: str) -> None:
        """Log a warning message."""
        self.logger.warning(message)

    def error(self, message: str) -> None:
        """Log an error message."""
        self.logger.error(message)

    def debug(self, message: str) -> None:
        """Log a debug message."""
        self.logger.debug(message)


# Global logger instance
logger = StructuredLogger()


def sanitize_payload(payload: Any, sensitive_fields: List[str] = None) -> Any:
    """Truncate journal text and redact sensitive fields before logging."""
    if sensitive_fields is None:
        sensitive_fields = ['text', 'content', 'secret', 'password']

    if isinstance(payload, dict):
        sanitized = {}
        for k, v in payload.items():
            if k not in sensitive_fields:
                sanitized[k] = sanitize_payload(v, sensitive_fields)
            else:
                sanitized[k] = "[REDACTED]"
        return sanitized
    elif isinstance(payload, str):
        # Truncate long strings
        return payload[:50] + "..." if len(payload) > 50 else payload
    elif isinstance(payload, list):
        return [sanitize_payload(item, sensitive_fields) for item in payload]
    else:
        return payload
