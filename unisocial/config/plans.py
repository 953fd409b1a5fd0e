"""
Subscription Plans

Static plan table. Prices are in KRW and -1 means unlimited.
"""

from typing import Any, Dict

UNLIMITED = -1

PLANS: Dict[str, Dict[str, Any]] = {
    "free": {
        "name": "Free",
        "price": 0,
        "posts_per_month": 5,
        "ai_suggestions_per_month": 3,
        "max_platforms": 2,
        "scheduled_posting": False,
        "history_days": 7,
        "max_band_groups": 1,
    },
    "basic": {
        "name": "Basic",
        "price": 3900,
        "posts_per_month": 50,
        "ai_suggestions_per_month": 30,
        "max_platforms": 3,
        "scheduled_posting": True,
        "history_days": 30,
        "max_band_groups": 3,
    },
    "pro": {
        "name": "Pro",
        "price": 9900,
        "posts_per_month": UNLIMITED,
        "ai_suggestions_per_month": UNLIMITED,
        "max_platforms": 3,
        "scheduled_posting": True,
        "history_days": UNLIMITED,
        "max_band_groups": UNLIMITED,
    },
}

DEFAULT_PLAN = "free"
PAID_PLANS = tuple(name for name, plan in PLANS.items() if plan["price"] > 0)


def get_plan(name: str) -> Dict[str, Any]:
    """Return the plan record, falling back to Free for unknown names."""
    return PLANS.get(name, PLANS[DEFAULT_PLAN])
