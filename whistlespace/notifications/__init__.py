from whistlespace.notifications.dispatcher import NotificationDispatcher
from whistlespace.notifications.mailer import Mailer, NullMailer, SMTPMailer, build_mailer
from whistlespace.notifications.store import Notification, NotificationPage, NotificationStore
from whistlespace.notifications.templates import TEMPLATES, Template, render

__all__ = [
    "Mailer",
    "Notification",
    "NotificationDispatcher",
    "NotificationPage",
    "NotificationStore",
    "NullMailer",
    "SMTPMailer",
    "TEMPLATES",
    "Template",
    "build_mailer",
    "render",
]
