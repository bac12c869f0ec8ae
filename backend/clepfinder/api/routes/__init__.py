# API Routes Module
from clepfinder.api.routes import (
    admin,
    auth,
    chat,
    feedback,
    institutions,
    universities,
)

__all__ = [
    "admin",
    "auth",
    "chat",
    "feedback",
    "institutions",
    "universities",
]
