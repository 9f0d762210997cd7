"""
FastAPI integration for checkout.

    from checkout.contrib import fastapi
    app = fastapi.create_app(Settings.from_env())
"""

from checkout.contrib._fastapi import create_app, current_actor, encode, unwrap, STATUS_CODES

__all__ = ("create_app", "current_actor", "encode", "unwrap", "STATUS_CODES")
