"""Ordering HTTP API package.

Import routers from ``ordering.api.routes`` and error handlers from
``ordering.api.errors``. This package module itself imports nothing.
"""
