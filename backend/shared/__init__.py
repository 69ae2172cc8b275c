"""
Shared module for infrastructure used by the signaling gateway.

STRUCTURE:
- shared.config: Configuration
  - settings.py: Environment config (pydantic-settings)
  - logging.py: Structured logging and connection audit helper

- shared.infrastructure: Cross-cutting runtime support
  - correlation.py: Per-connection correlation id for log records

IMPORT EXAMPLES:
    from shared.config.settings import settings
    from shared.config.logging import get_logger, audit_ws_connection
    from shared.infrastructure.correlation import bind_connection_id
"""
