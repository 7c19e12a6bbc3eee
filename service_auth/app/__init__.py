"""
Auth Service package for the Access Layer.

This package provides the identity provider metadata layer used when
validating tokens:

- app.metadata: cache-aside retrieval of discovery and key-set documents,
  parsing, and the consumer-side refresh policy.
- app.cache: distributed cache backends (Redis, in-memory).
- app.main: wiring of the above from service configuration.

Design notes:
- Module import must not perform network calls. All IO happens in
  explicit calls or the startup hook.
- Use the shared/ utilities for logging, metrics, config and errors.
"""
