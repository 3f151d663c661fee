# API routers package

from app.routers.auth import router as auth_router
from app.routers.users import router as users_router
from app.routers.api_keys import router as api_keys_router
from app.routers.detect import router as detect_router

__all__ = ["auth_router", "users_router", "api_keys_router", "detect_router"]
