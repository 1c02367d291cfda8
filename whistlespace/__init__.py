"""WhistleSpace: anonymous feedback with content moderation and user enforcement."""

__version__ = "0.1.0"
