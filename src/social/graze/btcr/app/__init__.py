"""
did:btcr Driver Application Layer

This package implements the HTTP surface of the did:btcr driver using the aiohttp framework. It exposes the
resolver through the Universal Resolver driver interface.

Key Components:
- cli.py: Entry point for running the application
- server.py: Web server configuration, middleware and startup/shutdown of shared resources
- config.py: Configuration management using Pydantic settings
- backends.py: Selection of the blockchain backend from configuration
- metrics.py: Metrics abstraction (Telegraf/StatsD or no-op)
- handlers/: Request handlers
- tasks.py: Background task recovering the health gauge

The application uses two middleware layers:
- Statsd middleware for request metrics
- Sentry middleware for error reporting

It provides the following endpoints:
- GET /1.0/identifiers/{identifier}: Resolve a did:btcr DID
- GET /1.0/properties: Driver configuration
- GET /internal/alive, GET /internal/ready: Liveness and readiness probes
"""
