"""Lead urgency scoring used to order the follow-up queue"""

from datetime import datetime
from typing import Iterable, Optional

PRIORITY_POINTS = {"urgent": 100, "high": 50, "medium": 25}
SOURCE_POINTS = {"phone": 20, "walk_in": 30}


def calculate_urgency_score(lead, now: Optional[datetime] = None) -> int:
    """
    Higher means follow up sooner.

    new status +50; priority urgent +100 / high +50 / medium +25;
    estimated value over 10k +50, over 5k +25; age under 1h +50, under 4h +30,
    under 24h +10, over 72h -20; phone +20, walk-in +30.
    """
    now = now or datetime.utcnow()
    score = 0

    if lead.status == "new":
        score += 50

    score += PRIORITY_POINTS.get(lead.priority or "", 0)

    value = lead.estimated_value or 0
    if value > 10000:
        score += 50
    elif value > 5000:
        score += 25

    if lead.created_at:
        hours_old = (now - lead.created_at).total_seconds() / 3600
        if hours_old < 1:
            score += 50
        elif hours_old < 4:
            score += 30
        elif hours_old < 24:
            score += 10
        elif hours_old > 72:
            score -= 20

    score += SOURCE_POINTS.get(lead.source or "", 0)
    return score


def sort_by_urgency(leads: Iterable, now: Optional[datetime] = None) -> list:
    """Score descending, then newest first"""
    now = now or datetime.utcnow()
    return sorted(
        leads,
        key=lambda lead: (
            calculate_urgency_score(lead, now),
            lead.created_at or datetime.min,
        ),
        reverse=True,
    )
