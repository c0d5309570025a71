"""
Public Pydantic schemas used by FastAPI routes, services, and tests.

Schemas are grouped by domain module (auth, tracking, foods, quiz, dashboard,
subscriptions, articles, admin, health) and also include common reusable models
such as pagination and the standard error envelope.
"""

from .common import MessageResponse  # noqa: F401
