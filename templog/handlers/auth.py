"""Caller identity for the HTTP layer.

Authentication itself lives in front of this service; by the time a request
arrives the user id is an opaque value in the ``X-User-Id`` header.
"""
from __future__ import annotations

from fastapi import Header, HTTPException


def current_user_id(x_user_id: str | None = Header(None, alias="X-User-Id")) -> str:
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Authentication required")
    return x_user_id.strip()
