# agent response models

from typing import Any
from pydantic import BaseModel

class ToolInfo(BaseModel):
    name: str
    description: str
    category: str
    parameters: dict[str, Any]
    requires_permission: bool
