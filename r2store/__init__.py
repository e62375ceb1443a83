"""
R2 Store - a small web front end for a Cloudflare R2 bucket.

Lists, uploads, downloads and deletes files, optionally gated by a
shared-secret token.

This package contains the complete application:
- core: Framework-agnostic access control
- infrastructure: Object storage integration
- api: FastAPI routes, dependencies and HTML pages
- config: Application configuration
"""

__version__ = "0.1.0"
