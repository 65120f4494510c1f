#!/usr/bin/env python3
"""Tests for transaction notifications."""

import pytest

from fundflow.services.notifications import (
    LoggingNotificationDispatcher,
    build_transaction_notification,
    send_transaction_notification,
)
from fundflow.services.users import UserDirectory


class BrokenDispatcher:
    async def dispatch(self, notification):
        raise RuntimeError("push service unavailable")


class TestBuildNotification:
    """Test payload construction."""

    @pytest.mark.unit
    @pytest.mark.services
    def test_creator_excluded(self):
        notification = build_transaction_notification(
            "A", "Hưng", "/a.png", "fund-1", "t9", "Ăn tối", 300000, ["A", "B", "C", "B"]
        )

        assert notification.recipients == ["B", "C"]
        assert notification.title == "Giao dịch mới từ Hưng"
        assert notification.body == "Ăn tối: 300.000đ"
        assert notification.click_action == "/funds/fund-1?transaction=t9"
        assert notification.to_dict()["data"]["transactionId"] == "t9"

    @pytest.mark.unit
    @pytest.mark.services
    def test_nobody_to_notify(self):
        assert build_transaction_notification("A", "Hưng", "", "f", "t", "x", 1, ["A"]) is None


class TestSendNotification:
    """Test best-effort delivery."""

    @pytest.mark.unit
    @pytest.mark.services
    @pytest.mark.asyncio
    async def test_sends_with_creator_name(self, store):
        dispatcher = LoggingNotificationDispatcher()

        sent = await send_transaction_notification(
            dispatcher, UserDirectory(store), "B", "fund-1", "t9", "Taxi", 90000, ["A", "B", "C"]
        )

        assert dispatcher.sent == [sent]
        assert sent.title == "Giao dịch mới từ Linh"
        assert sent.recipients == ["A", "C"]

    @pytest.mark.unit
    @pytest.mark.services
    @pytest.mark.asyncio
    async def test_unknown_creator_gets_default_name(self, store):
        dispatcher = LoggingNotificationDispatcher()

        sent = await send_transaction_notification(
            dispatcher, UserDirectory(store), "Z", "fund-1", "t9", "Taxi", 90000, ["A"]
        )
        assert sent.title == "Giao dịch mới từ Thành viên"

    @pytest.mark.unit
    @pytest.mark.services
    @pytest.mark.asyncio
    async def test_dispatch_failure_is_swallowed(self, store, caplog):
        sent = await send_transaction_notification(
            BrokenDispatcher(), UserDirectory(store), "A", "fund-1", "t9", "Taxi", 90000, ["B"]
        )

        assert sent is None
        assert "push service unavailable" in caplog.text
