"""
Service State Models

In-process state shared by the request handlers of the did:btcr driver. The resolver itself keeps no state
between resolutions, so the only model kept here is the health gauge behind the readiness probe.

- health.py: Failure score reported by /internal/ready
"""
