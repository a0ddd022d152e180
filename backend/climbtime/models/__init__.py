"""
ORM models. Importing this package registers every table on Base.metadata,
which Alembic's env.py and the test fixtures rely on.
"""

from climbtime.models.user import User
from climbtime.models.post import Post, Like, Comment, Share
from climbtime.models.follow import Follow
from climbtime.models.message import Conversation, Message

__all__ = [
    "User",
    "Post",
    "Like",
    "Comment",
    "Share",
    "Follow",
    "Conversation",
    "Message",
]
