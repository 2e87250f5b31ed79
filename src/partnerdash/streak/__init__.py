"""Streak CRM upstream -- per-tenant REST client.

Provides StreakClient for Streak REST API calls with one tenant's key and
StreakGateway for picking the right key per tenant.
"""

from src.partnerdash.streak.client import StreakClient, StreakGateway

__all__ = ["StreakClient", "StreakGateway"]
