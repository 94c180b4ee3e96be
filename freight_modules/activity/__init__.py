"""
Activity Log Module.

Append-only record of notable document events (invoice paid, costs
confirmed, PJO converted) for the activity feed.
"""

from freight_modules.activity.recorder import ActivityType, record_activity

__all__ = ["ActivityType", "record_activity"]
