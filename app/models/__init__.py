"""
Models package initialization
Import all models and setup relationships
"""

from .banned_email import BannedEmail
from .media_upload import MediaUpload
from .notification import Notification
from .post import Post

# Import and setup relationships
from .relations import setup_relationships
from .report import Report
from .user import User

# Setup all relationships after models are imported
setup_relationships()

# Make models available at package level
__all__ = [
    "BannedEmail",
    "MediaUpload",
    "Notification",
    "Post",
    "Report",
    "User",
]
