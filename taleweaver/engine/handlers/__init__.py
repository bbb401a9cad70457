"""Action handlers grouped by concern."""

from .base import ActionHandler, HandlerGroup
from .exploration import ExplorationHandlers
from .items import ItemHandlers
from .movement import MovementHandlers
from .social import SocialHandlers
from .status import StatusHandlers

__all__ = [
    "ActionHandler",
    "ExplorationHandlers",
    "HandlerGroup",
    "ItemHandlers",
    "MovementHandlers",
    "SocialHandlers",
    "StatusHandlers",
]
