# nightowl/api/deps.py
from fastapi import Request

from nightowl.services.gamification_engine import GamificationEngine


def get_engine(request: Request) -> GamificationEngine:
    """The engine built at startup and kept on the application state."""
    return request.app.state.engine
