# API Routes Module
from allcare.api.routes import (
    plans,
    subscriptions,
)

__all__ = [
    "plans",
    "subscriptions",
]
