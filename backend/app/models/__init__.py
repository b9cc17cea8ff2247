"""Convenience exports for ORM models.

Surface the SQLModel tables so calling code can import them from a single module.
"""

from .form import Form
from .question import Question
from .response import Response
from .answer import Answer
from .connection import Connection

__all__ = [
    "Form",
    "Question",
    "Response",
    "Answer",
    "Connection",
]
