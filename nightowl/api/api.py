# nightowl/api/api.py
from fastapi import APIRouter

from nightowl.api.routes import gamification

api_router = APIRouter()
api_router.include_router(
    gamification.router,
    prefix="/users/{user_id}/gamification",
    tags=["gamification"],
)
