"""
Shared utilities for the Comment Control service.

This package aggregates common building blocks consumed by the service:

- config: Service configuration via pydantic-settings
- logging: Structured logging with trace correlation
- metrics: Prometheus metrics helpers
- errors: Canonical error types and responses
- base_service: FastAPI application scaffolding (health, metrics, errors)

Any cross-service logic should live here to avoid import cycles. Do not
import from service_* packages into shared/.
"""
