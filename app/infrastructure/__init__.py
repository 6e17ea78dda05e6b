"""Infrastructure packages for the notification engine.

- configuration: Settings management (pydantic-settings)
- logging: Structured logging (structlog)
- operations: Operation results and HTTP error classification
- kvstore: Shared key-value store (in-memory, Redis)
- queue: Durable job queue with exponential backoff
- services: Application-scoped providers (get_settings)
"""
