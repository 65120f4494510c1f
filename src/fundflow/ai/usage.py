#!/usr/bin/env python3
"""
AI usage statistics stored on the fund document.

Shape of fund["aiUsageStats"]:
    {
        "lastUpdated": <epoch ms>,
        "todayCalls": int,
        "todayDate": "YYYY-MM-DD",
        "totalCalls": int,
        "history": [{"date": "YYYY-MM-DD", "calls": int}, ...]  # last 30 days
    }
"""

import logging
from datetime import date
from typing import Any

from ..core.datastore import DocumentStore, StoreError
from ..core.models import now_millis

logger = logging.getLogger(__name__)

HISTORY_DAYS = 30


def empty_usage_stats(today: str) -> dict[str, Any]:
    return {"lastUpdated": now_millis(), "todayCalls": 0, "todayDate": today, "totalCalls": 0, "history": []}


def roll_usage_stats(stats: dict[str, Any] | None, today: str, increment: int = 1) -> dict[str, Any]:
    """
    Return updated statistics after increment more calls today.

    When the stored day is not today, its count moves into history first.
    """
    if not isinstance(stats, dict):
        stats = empty_usage_stats(today)

    updated = {
        "lastUpdated": stats.get("lastUpdated", now_millis()),
        "todayCalls": int(stats.get("todayCalls") or 0),
        "todayDate": stats.get("todayDate") or today,
        "totalCalls": int(stats.get("totalCalls") or 0),
        "history": [dict(entry) for entry in stats.get("history") or [] if isinstance(entry, dict)],
    }

    if updated["todayDate"] != today:
        if updated["todayCalls"] > 0:
            updated["history"].append({"date": updated["todayDate"], "calls": updated["todayCalls"]})
        updated["history"] = updated["history"][-HISTORY_DAYS:]
        updated["todayDate"] = today
        updated["todayCalls"] = 0

    updated["todayCalls"] += increment
    updated["totalCalls"] += increment
    updated["lastUpdated"] = now_millis()
    return updated


async def record_ai_usage(store: DocumentStore, fund_id: str, increment: int = 1, today: date | None = None) -> None:
    """
    Count LLM calls against a fund. Best-effort: failures are only logged.
    """
    if not fund_id:
        return

    day = (today or date.today()).isoformat()
    try:
        fund = await store.get("funds", fund_id)
        if fund is None:
            logger.error("Fund %s not found for updating AI usage stats", fund_id)
            return
        stats = roll_usage_stats(fund.get("aiUsageStats"), day, increment)
        await store.update("funds", fund_id, {"aiUsageStats": stats, "updatedAt": now_millis()})
    except StoreError as e:
        logger.error("Error updating AI usage stats for fund %s: %s", fund_id, e)
