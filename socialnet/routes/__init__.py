"""
HTTP routes, one router per resource.
"""

from socialnet.routes.auth import router as auth_router
from socialnet.routes.posts import router as posts_router
from socialnet.routes.profiles import router as profiles_router
from socialnet.routes.users import router as users_router

__all__ = ["auth_router", "posts_router", "profiles_router", "users_router"]
