"""
API router aggregator: wires all endpoint modules together.
"""

from fastapi import APIRouter

from taskdesk.api.endpoints import auth, health, tasks, users

api_router = APIRouter()

# Invites, OTP, login, password flows
api_router.include_router(auth.router)

# User management (admin)
api_router.include_router(users.router)

# Tasks
api_router.include_router(tasks.router)

# Liveness
api_router.include_router(health.router)
