"""Vercel Python function: routes /api/* to the relay app."""

from chatrelay.adapters.serverless import app, handler

__all__ = ["app", "handler"]
