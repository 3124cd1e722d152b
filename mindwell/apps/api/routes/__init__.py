from .activity import router as activity_router
from .chat import router as chat_router
from .dashboard import router as dashboard_router
from .mood import router as mood_router
from .recommendations import router as recommendations_router

__all__ = [
    "activity_router",
    "chat_router",
    "dashboard_router",
    "mood_router",
    "recommendations_router",
]
