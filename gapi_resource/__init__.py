"""
Google API resource - Python package.

Exposes Google APIs on the host application's routes:
- /<instance>/auth/v1/init and /<instance>/auth/v1/oauth2callback bootstrap
  the OAuth2 credentials of a resource instance
- /<instance>/<api>/<version>/<command> calls the matching Google API method
  with those credentials
"""

__all__ = [
    "api",
    "api_library",
    "auth",
    "config",
    "credential_store",
    "exceptions",
    "models",
    "oauth",
    "parser",
    "resolver",
    "router",
    "routes",
]
