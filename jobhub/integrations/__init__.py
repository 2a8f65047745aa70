"""External collaborators the lifecycle engine talks to.

Every client implements ``BaseIntegration`` and falls back to mock
responses when no real credentials are configured.
"""

from jobhub.integrations.base import BaseIntegration
from jobhub.integrations.stripe_client import StripeClient

__all__ = [
    "BaseIntegration",
    "StripeClient",
]
