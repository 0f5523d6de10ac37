"""CLI package for Redirect Auth

Runs the authentication server and offers offline helpers to build
authorize URLs and verify ID tokens.
"""

from cli.main import main

__all__ = [
    "main",
]
