"""Health check and login endpoints."""

import time
from datetime import datetime, timezone

from fastapi import APIRouter, HTTPException, Request

from .models import LoginBody

router = APIRouter()


@router.get("/health")
async def health(request: Request):
    """Health check."""
    return {
        "status": "ok",
        "uptime": int(time.monotonic() - request.app.state.started),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.post("/login")
async def login(body: LoginBody, request: Request):
    """Exchange username + secret for a bearer token."""
    if not body.username or not body.secret:
        raise HTTPException(400, "Username and secret are required")
    user = request.app.state.users.login(body.username, body.secret)
    if user is None:
        raise HTTPException(401, "Invalid credentials")
    return {"userId": user.id, "token": user.token}
