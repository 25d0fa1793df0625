"""Change notification for the holdings table.

Subscribers register a callback per user. Subscribing records the user's
current row markers as the baseline. `ChangeWatcher.poll()` (run by the
scheduler) compares each subscribed user's row markers with the previous
snapshot and fires every callback for that user when anything was inserted,
updated or deleted.
"""

import itertools
import logging
from collections.abc import Callable
from typing import Any

from portfolio_dashboard.config import HOLDINGS_TABLE
from portfolio_dashboard.errors import PortfolioFetchError
from portfolio_dashboard.models.user import AuthUser
from portfolio_dashboard.services.portfolio import PortfolioService

logger = logging.getLogger(__name__)

ChangeCallback = Callable[[dict[str, Any]], Any]

_REJECTED_STATUSES = (401, 403)


def diff_markers(previous: dict[str, str], current: dict[str, str]) -> dict[str, list[str]]:
    return {
        "inserted": sorted(current.keys() - previous.keys()),
        "updated": sorted(
            k for k in current.keys() & previous.keys() if current[k] != previous[k]
        ),
        "deleted": sorted(previous.keys() - current.keys()),
    }


class Subscription:
    """Handle returned by ChangeWatcher.subscribe."""

    def __init__(self, watcher: "ChangeWatcher", user_id: str, sub_id: int):
        self._watcher = watcher
        self.user_id = user_id
        self.id = sub_id
        self.active = True

    def unsubscribe(self) -> None:
        if self.active:
            self.active = False
            self._watcher._remove(self)


class ChangeWatcher:
    def __init__(self, portfolio: PortfolioService):
        self._portfolio = portfolio
        self._ids = itertools.count(1)
        # user_id -> {subscription id: (subscriber identity, callback)}
        self._subscriptions: dict[str, dict[int, tuple[AuthUser, ChangeCallback]]] = {}
        self._snapshots: dict[str, dict[str, str]] = {}
        # tokens the store refused during a poll
        self._rejected: set[str] = set()

    async def subscribe(self, user: AuthUser, on_change: ChangeCallback) -> Subscription:
        """Register `on_change` for `user` and take the baseline snapshot.

        Changes made after this returns are reported by the next poll. A
        failed baseline is logged and the next poll takes it instead.
        """
        sub = Subscription(self, user.id, next(self._ids))
        self._subscriptions.setdefault(user.id, {})[sub.id] = (user, on_change)
        logger.info(f"Subscribed to holdings changes for user {user.id} (#{sub.id})")

        if user.id not in self._snapshots:
            try:
                markers = await self._portfolio.get_change_markers(user)
            except PortfolioFetchError as e:
                logger.error(f"Change baseline failed for user {user.id}: {e}")
                return sub
            # an earlier snapshot (from a poll or another subscriber) wins
            if sub.active and user.id not in self._snapshots:
                self._snapshots[user.id] = markers
        return sub

    def _remove(self, sub: Subscription) -> None:
        subscriptions = self._subscriptions.get(sub.user_id, {})
        entry = subscriptions.pop(sub.id, None)
        if not subscriptions:
            self._subscriptions.pop(sub.user_id, None)
            self._snapshots.pop(sub.user_id, None)
        if entry is not None:
            token = entry[0].access_token
            if token not in self._tokens_in_use():
                self._rejected.discard(token)
        logger.info(f"Unsubscribed from holdings changes for user {sub.user_id} (#{sub.id})")

    def _tokens_in_use(self) -> set[str]:
        return {
            user.access_token
            for subscriptions in self._subscriptions.values()
            for user, _ in subscriptions.values()
        }

    def subscriber_count(self, user_id: str | None = None) -> int:
        if user_id is not None:
            return len(self._subscriptions.get(user_id, {}))
        return sum(len(s) for s in self._subscriptions.values())

    def _candidates(self, user_id: str) -> list[AuthUser]:
        """Distinct usable identities for `user_id`, newest subscription first."""
        seen: set[str] = set()
        candidates = []
        for user, _ in reversed(list(self._subscriptions.get(user_id, {}).values())):
            token = user.access_token
            if token in seen or token in self._rejected:
                continue
            seen.add(token)
            candidates.append(user)
        return candidates

    async def _fetch_markers(self, user_id: str) -> dict[str, str] | None:
        for user in self._candidates(user_id):
            try:
                return await self._portfolio.get_change_markers(user)
            except PortfolioFetchError as e:
                if e.status_code in _REJECTED_STATUSES:
                    self._rejected.add(user.access_token)
                    logger.warning(f"Token rejected while polling user {user_id}: {e}")
                    continue
                logger.error(f"Change poll failed for user {user_id}: {e}")
                return None
        logger.error(f"No accepted token left to poll changes for user {user_id}")
        return None

    async def poll(self) -> int:
        """Check every subscribed user once. Returns the number of users that changed."""
        changed = 0
        for user_id in list(self._subscriptions):
            markers = await self._fetch_markers(user_id)
            if markers is None or user_id not in self._subscriptions:
                # failed, or unsubscribed while the poll was in flight
                continue

            previous = self._snapshots.get(user_id)
            self._snapshots[user_id] = markers
            if previous is None or previous == markers:
                continue

            changed += 1
            payload = {
                "table": HOLDINGS_TABLE,
                "user_id": user_id,
                **diff_markers(previous, markers),
            }
            self._notify(user_id, payload)
        return changed

    def _notify(self, user_id: str, payload: dict[str, Any]) -> None:
        for sub_id, (_, callback) in list(self._subscriptions.get(user_id, {}).items()):
            try:
                callback(payload)
            except Exception as e:
                logger.error(f"Change callback #{sub_id} for user {user_id} failed: {e}")
