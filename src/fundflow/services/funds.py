#!/usr/bin/env python3
"""
Fund Service

CRUD and membership management for funds on top of a DocumentStore.
Member lists are always stored as unique user ids with the creator included.
"""

import logging
from typing import Any

from ..core.datastore import DocumentNotFoundError, DocumentStore
from ..core.models import Fund, normalize_member_ids, now_millis

logger = logging.getLogger(__name__)

FUNDS_COLLECTION = "funds"

# Fields callers may not overwrite through update_fund
PROTECTED_FIELDS = ("id", "createdAt", "createdBy")


class FundService:
    """Funds stored in the "funds" collection."""

    def __init__(self, store: DocumentStore):
        self.store = store

    async def create_fund(
        self,
        name: str,
        created_by: str,
        members: list[Any] | None = None,
        description: str = "",
        icon: str = "",
        currency: str | None = None,
    ) -> Fund:
        """
        Create a fund. Members are de-duplicated and the creator is always added.
        """
        member_ids = normalize_member_ids(list(members or []) + [created_by])
        now = now_millis()
        fund = Fund(
            id="",
            name=name,
            description=description,
            icon=icon,
            members=member_ids,
            created_by=created_by,
            created_at=now,
            updated_at=now,
            currency=currency,
        )
        document = fund.to_dict()
        del document["id"]
        fund.id = await self.store.create(FUNDS_COLLECTION, document)
        logger.info("Created fund %s (%s) with %d member(s)", fund.id, name, len(member_ids))
        return fund

    async def get_fund(self, fund_id: str) -> Fund | None:
        document = await self.store.get(FUNDS_COLLECTION, fund_id)
        return Fund.from_dict(document) if document is not None else None

    async def get_user_funds(self, user_id: str) -> list[Fund]:
        """Funds the user belongs to, newest first."""
        documents = await self.store.query(FUNDS_COLLECTION, "members", user_id)
        funds = [Fund.from_dict(document) for document in documents]
        return sorted(funds, key=lambda fund: fund.created_at, reverse=True)

    async def update_fund(self, fund_id: str, changes: dict[str, Any]) -> None:
        """Apply document-shaped changes; members are re-normalized if present."""
        update = {key: value for key, value in changes.items() if key not in PROTECTED_FIELDS}
        if "members" in update:
            update["members"] = normalize_member_ids(update["members"])
        update["updatedAt"] = now_millis()
        await self.store.update(FUNDS_COLLECTION, fund_id, update)

    async def delete_fund(self, fund_id: str) -> None:
        await self.store.delete(FUNDS_COLLECTION, fund_id)
        logger.info("Deleted fund %s", fund_id)

    async def _require_fund(self, fund_id: str) -> Fund:
        fund = await self.get_fund(fund_id)
        if fund is None:
            raise DocumentNotFoundError(FUNDS_COLLECTION, fund_id)
        return fund

    async def add_member(self, fund_id: str, user_id: str) -> bool:
        """
        Add a member. Returns False when the user already belongs to the fund.

        Raises:
            DocumentNotFoundError: If the fund does not exist
        """
        fund = await self._require_fund(fund_id)
        if fund.has_member(user_id):
            return False
        await self.store.update(
            FUNDS_COLLECTION,
            fund_id,
            {"members": normalize_member_ids(fund.members + [user_id]), "updatedAt": now_millis()},
        )
        logger.info("Added member %s to fund %s", user_id, fund_id)
        return True

    async def remove_member(self, fund_id: str, user_id: str) -> None:
        """
        Remove a member. Existing transactions keep their splits, so balances
        for a removed member remain visible.
        """
        fund = await self._require_fund(fund_id)
        members = [member for member in fund.members if member != user_id]
        await self.store.update(FUNDS_COLLECTION, fund_id, {"members": members, "updatedAt": now_millis()})
        logger.info("Removed member %s from fund %s", user_id, fund_id)
