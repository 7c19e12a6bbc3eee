"""
Shared utilities for the Access Layer auth service.

- config: Service configuration via pydantic-settings, runtime setting lookup
- logging: Structured logging with correlation context
- metrics: Prometheus metrics helpers
- errors: Canonical error types and failure kinds

Do not import from service_* packages into shared/.
"""
