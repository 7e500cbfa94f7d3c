from fastapi import APIRouter
from app.routers import absences, contracts, leave_balances, notifications

# Centralized API router hub
# Routers are aggregated here, and main.py only imports this single hub.
api_router = APIRouter()

api_router.include_router(absences.router, tags=["Absences"])
api_router.include_router(leave_balances.router, tags=["Leave Balances"])
api_router.include_router(contracts.router, tags=["Contracts"])
api_router.include_router(notifications.router, tags=["Notifications"])
