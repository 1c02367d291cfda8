from whistlespace.feedback.models import (
    AdminAction,
    Feedback,
    FeedbackPage,
    FeedbackQuery,
    FeedbackStatus,
)
from whistlespace.feedback.store import FeedbackStore

__all__ = [
    "AdminAction",
    "Feedback",
    "FeedbackPage",
    "FeedbackQuery",
    "FeedbackStatus",
    "FeedbackStore",
]
