#!/usr/bin/env python3
"""
User Directory

Two-tier user lookup: a synchronous TTL cache for rendering and an async
load-through path to the document store. Rendering never waits on the store;
an id that is not cached yet shows as a placeholder until it loads.
"""

import logging
from typing import Iterable

from ..core.cache import TTLCache
from ..core.config import CacheConfig
from ..core.datastore import DocumentStore, StoreError
from ..core.models import BankAccount, User, now_millis
from .funds import FUNDS_COLLECTION, FundService

logger = logging.getLogger(__name__)

USERS_COLLECTION = "users"
MIN_SEARCH_LENGTH = 2
DEFAULT_DISPLAY_NAME = "User"


def _user_from_document(document: dict) -> User:
    user = User.from_dict(document)
    if not user.display_name:
        user.display_name = "Unknown User"
    return user


def _search_rank(user: User, query: str) -> tuple[int, str]:
    email = user.email.casefold()
    name = user.display_name.casefold()
    if email == query:
        rank = 0
    elif name == query:
        rank = 1
    elif email.startswith(query):
        rank = 2
    elif name.startswith(query):
        rank = 3
    else:
        rank = 4
    return rank, name


class UserDirectory:
    """
    Cached access to user profiles.

    Args:
        store: Document store holding the "users" collection
        user_cache: Cache of profiles by id (default TTL 30 minutes)
        search_cache: Cache of search results by query (default TTL 5 minutes)
    """

    def __init__(
        self,
        store: DocumentStore,
        user_cache: TTLCache[str, User] | None = None,
        search_cache: TTLCache[str, list[User]] | None = None,
    ):
        self.store = store
        defaults = CacheConfig()
        self.user_cache = user_cache or TTLCache(defaults.user_ttl_seconds)
        self.search_cache = search_cache or TTLCache(defaults.search_ttl_seconds)

    @classmethod
    def from_config(cls, store: DocumentStore, config: CacheConfig) -> "UserDirectory":
        return cls(store, TTLCache(config.user_ttl_seconds), TTLCache(config.search_ttl_seconds))

    def get_cached(self, user_id: str) -> User | None:
        """Cached profile, or None when absent or expired."""
        return self.user_cache.get(user_id)

    def display_user(self, user_id: str) -> User:
        """Cached profile, or a "User <id prefix>" placeholder."""
        return self.get_cached(user_id) or User.placeholder(user_id)

    def remember(self, user: User) -> None:
        self.user_cache.put(user.id, user)

    async def ensure_loaded(self, user_id: str) -> User | None:
        """Return the profile, loading it from the store on a cache miss."""
        if not user_id:
            return None
        cached = self.get_cached(user_id)
        if cached is not None:
            return cached

        document = await self.store.get(USERS_COLLECTION, user_id)
        if document is None:
            return None
        user = _user_from_document(document)
        self.remember(user)
        return user

    async def batch_get(self, user_ids: Iterable[str]) -> dict[str, User]:
        """
        Profiles by id. Cached entries are used as-is; only misses hit the
        store. Unknown ids are omitted.
        """
        result: dict[str, User] = {}
        for user_id in dict.fromkeys(user_ids):
            if not user_id:
                continue
            user = await self.ensure_loaded(user_id)
            if user is not None:
                result[user_id] = user
        return result

    async def find_by_email(self, email: str) -> User | None:
        if not email:
            return None
        normalized = email.strip().lower()
        documents = await self.store.query(USERS_COLLECTION, "email", normalized)
        if not documents:
            return None
        user = _user_from_document(documents[0])
        self.remember(user)
        return user

    async def search(self, query: str, limit: int = 5) -> list[User]:
        """
        Users whose name or email contains the query.

        Exact matches rank first, then prefix matches (email before name),
        then the rest by name.
        """
        if not query or len(query.strip()) < MIN_SEARCH_LENGTH:
            return []

        normalized = query.strip().casefold()
        cache_key = f"{normalized}_{limit}"
        cached = self.search_cache.get(cache_key)
        if cached is not None:
            return cached

        matches = []
        for document in await self.store.all(USERS_COLLECTION):
            user = _user_from_document(document)
            if normalized in user.email.casefold() or normalized in user.display_name.casefold():
                matches.append(user)

        results = sorted(matches, key=lambda user: _search_rank(user, normalized))[:limit]
        self.search_cache.put(cache_key, results)
        return results

    async def save_user(self, user: User) -> User:
        """Create or update a profile document, keeping the stored email lowercase."""
        document = user.to_dict()
        document["email"] = user.email.lower()
        document["updatedAt"] = now_millis()

        existing = await self.store.get(USERS_COLLECTION, user.id)
        if existing is None:
            document["createdAt"] = document["updatedAt"]
            await self.store.create(USERS_COLLECTION, document)
            logger.info("Created user %s", user.id)
        else:
            await self.store.update(USERS_COLLECTION, user.id, document)

        self.remember(user)
        self.search_cache.invalidate()
        return user

    async def sync_authenticated_user(
        self,
        user_id: str,
        display_name: str | None,
        email: str | None,
        photo_url: str | None = None,
    ) -> User:
        """
        Mirror an authenticated identity into the directory.

        Creates the profile on first sign-in and refreshes name, email and
        photo afterwards. A store failure falls back to the identity data so
        sign-in never breaks.
        """
        user = User(
            id=user_id,
            display_name=display_name or DEFAULT_DISPLAY_NAME,
            email=email or "",
            photo_url=photo_url or "",
        )
        try:
            existing = await self.store.get(USERS_COLLECTION, user_id)
            if existing is not None and isinstance(existing.get("bankAccount"), dict):
                user.bank_account = BankAccount.from_dict(existing["bankAccount"])
            await self.save_user(user)
            await self.store.update(USERS_COLLECTION, user_id, {"lastLoginAt": now_millis()})
        except StoreError as e:
            logger.warning("Could not sync user %s, using identity data: %s", user_id, e)
            self.remember(user)
        return user

    async def update_bank_account(self, user_id: str, bank_account: BankAccount | None) -> None:
        """Set or clear a user's bank details."""
        value = bank_account.to_dict() if bank_account is not None else None
        await self.store.update(USERS_COLLECTION, user_id, {"bankAccount": value, "updatedAt": now_millis()})

        cached = self.get_cached(user_id)
        if cached is not None:
            cached.bank_account = bank_account

    async def add_member_by_email(self, funds: FundService, fund_id: str, email: str, requested_by: str) -> bool:
        """
        Add the user registered under email to a fund.

        Returns False when no such user exists or the requester is not a
        member of the fund. Adding an existing member counts as success.
        """
        if not fund_id or not email:
            raise ValueError("Fund ID and email are required")

        user = await self.find_by_email(email)
        if user is None:
            logger.info("No user registered with email %s", email)
            return False

        fund = await funds.get_fund(fund_id)
        if fund is None:
            logger.warning("Fund %s not found in %s", fund_id, FUNDS_COLLECTION)
            return False
        if not fund.has_member(requested_by):
            logger.warning("User %s is not a member of fund %s", requested_by, fund_id)
            return False

        await funds.add_member(fund_id, user.id)
        return True
