from .admin import router as admin_router
from .auth import router as auth_router
from .notification import router as notification_router
from .user import block_notice_router
from .user import router as user_router
from .voices import router as voices_router

routes = [
    auth_router,
    user_router,
    block_notice_router,
    voices_router,
    admin_router,
    notification_router,
]
