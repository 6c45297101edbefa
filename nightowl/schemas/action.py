# nightowl/schemas/action.py
from typing import Any, Dict
from pydantic import BaseModel

from nightowl.core.constants import GamificationAction


class ActionRequest(BaseModel):
    action: GamificationAction
    metadata: Dict[str, Any] = {}
