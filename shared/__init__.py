"""
Shared utilities for Redis Tester services.

This package aggregates common building blocks consumed by the services:

- config: Immutable settings via pydantic-settings (env, .env, config.yaml)
- logging: Structured logging with request correlation
- metrics: Prometheus metrics helpers
- errors: Canonical error types and responses
- base_service: FastAPI scaffolding (middleware, health routes, error handlers)

Any cross-service logic should live here to avoid import cycles across
service packages. Do not import from service packages into shared/.
"""
