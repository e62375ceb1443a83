"""
Infrastructure layer - external service integrations.

- storage: Object storage (R2/S3) and its in-memory stand-in

These wrappers translate between external formats and our own types.
"""
