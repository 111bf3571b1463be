# petmatch/services/scanner.py
"""
Periodic lost/found sweep.

One tick pulls every open lost and found candidate, drops pairs that are too
far apart before scoring them, records qualifying pairs on the lost report
and asks the notification gateway to tell the lost pet's reporter. Each
match is written on its own, so a tick that dies halfway keeps what it
recorded and the next tick skips those pairs.
"""
import asyncio
import logging
import time
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Callable, Optional

from petmatch.core.errors import StoreError
from petmatch.core.policy import DEFAULT_POLICY, MatchPolicy
from petmatch.repos.candidates import match_result, utcnow
from petmatch.services.geo import coordinates_of, distance_km
from petmatch.services.scoring import score

logger = logging.getLogger(__name__)

MATCH_TITLE = "Possible Match Found"


@dataclass
class ScanStats:
    started_at: datetime = field(default_factory=utcnow)
    finished_at: Optional[datetime] = None
    lost: int = 0
    found: int = 0
    pairs: int = 0
    skipped_far: int = 0
    skipped_same_pet: int = 0
    scored: int = 0
    qualified: int = 0
    recorded: int = 0
    notified: int = 0
    notify_failed: int = 0
    aborted: bool = False
    budget_exhausted: bool = False

    def as_dict(self) -> dict:
        return asdict(self)


def match_message(score_value: int, found: dict) -> str:
    msg = f"We may have found your lost pet! Match score: {score_value}"
    phones = [p for p in (found.get("phone_numbers") or []) if p]
    if phones:
        msg += f". Contact the finder at {', '.join(phones)}"
    return msg


class MatchScanner:
    def __init__(self, repo, gateway, policy: MatchPolicy = DEFAULT_POLICY,
                 scorer: Callable[..., int] = score, budget_seconds: Optional[float] = None,
                 clock: Callable[[], float] = time.monotonic):
        self.repo = repo
        self.gateway = gateway
        self.policy = policy
        self.scorer = scorer
        self.budget_seconds = budget_seconds
        self.clock = clock
        self.last_stats: Optional[ScanStats] = None
        self._running = asyncio.Lock()

    async def scan(self) -> None:
        """One scheduled tick; results land in the store and on `last_stats`."""
        await self.run_once()

    async def run_once(self) -> Optional[ScanStats]:
        """Like scan(), but hands back the tick's stats (None when the tick was skipped)."""
        if self._running.locked():
            logger.warning("Previous match scan still running; skipping this tick")
            return None
        async with self._running:
            stats = ScanStats()
            self.last_stats = stats
            try:
                await self._sweep(stats)
            except StoreError:
                stats.aborted = True
                logger.exception("Match scan aborted by a store failure; next tick starts fresh")
            finally:
                stats.finished_at = utcnow()
            logger.info(
                "Match scan: lost=%d found=%d pairs=%d far=%d scored=%d qualified=%d recorded=%d notified=%d failed=%d",
                stats.lost, stats.found, stats.pairs, stats.skipped_far, stats.scored,
                stats.qualified, stats.recorded, stats.notified, stats.notify_failed,
            )
            return stats

    def _over_budget(self, started: float) -> bool:
        return self.budget_seconds is not None and self.clock() - started > self.budget_seconds

    async def _sweep(self, stats: ScanStats) -> None:
        started = self.clock()
        lost_list = await self.repo.find_open_lost()
        found_list = await self.repo.find_open_found()
        stats.lost, stats.found = len(lost_list), len(found_list)

        for lost in lost_list:
            lost_xy = coordinates_of(lost)
            for found in found_list:
                if self._over_budget(started):
                    stats.budget_exhausted = True
                    logger.warning("Match scan stopped after %.1fs budget", self.budget_seconds)
                    return
                stats.pairs += 1

                if lost.get("pet_id") and lost.get("pet_id") == found.get("pet_id"):
                    # the same pet reported both ways; never match it against itself
                    stats.skipped_same_pet += 1
                    continue

                if distance_km(lost_xy, coordinates_of(found)) > self.policy.max_search_radius_km:
                    stats.skipped_far += 1
                    continue

                s = self.scorer(lost, found, self.policy)
                stats.scored += 1
                if s < self.policy.match_threshold:
                    continue
                stats.qualified += 1
                logger.debug("Match score %d between lost:%s and found:%s", s, lost["id"], found["id"])

                if await self.repo.has_match(lost["id"], found["id"]):
                    continue
                if not await self.repo.append_match(lost["id"], match_result(found["id"], s)):
                    # another writer got there first
                    continue
                stats.recorded += 1

                await self._notify(stats, lost, found, s)

    async def _notify(self, stats: ScanStats, lost: dict, found: dict, s: int) -> None:
        try:
            res = await self.gateway.send(
                lost["reporter_id"], MATCH_TITLE, match_message(s, found), context_id=found["id"],
            )
        except Exception:
            stats.notify_failed += 1
            logger.exception("Notification for lost:%s raised; match kept", lost["id"])
            return
        if res.ok:
            stats.notified += 1
        else:
            stats.notify_failed += 1
            logger.warning("Notification for lost:%s not delivered (%s): %s", lost["id"], res.error, res.detail)
