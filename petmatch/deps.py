from functools import lru_cache

from petmatch.core.config import settings
from petmatch.core.policy import MatchPolicy
from petmatch.services.notifications import LoggingGateway, PushGateway
from petmatch.services.scanner import MatchScanner


@lru_cache(maxsize=1)
def get_repo():
    if settings.use_mongo:
        from petmatch.core.db import get_db
        from petmatch.repos.mongo import MongoRepo
        return MongoRepo(get_db())
    from petmatch.repos.inmemory import InMemoryRepo
    return InMemoryRepo()


@lru_cache(maxsize=1)
def get_policy() -> MatchPolicy:
    return MatchPolicy.from_settings(settings)


@lru_cache(maxsize=1)
def get_gateway():
    if settings.fcm_project_id:
        return PushGateway(
            get_repo(),
            project_id=settings.fcm_project_id,
            access_token=settings.fcm_access_token,
            endpoint=settings.fcm_endpoint,
            max_attempts=settings.notify_max_attempts,
            timeout=settings.notify_timeout_seconds,
        )
    return LoggingGateway(get_repo())


@lru_cache(maxsize=1)
def get_scanner() -> MatchScanner:
    return MatchScanner(
        get_repo(),
        get_gateway(),
        policy=get_policy(),
        budget_seconds=settings.scan_budget_seconds,
    )


def reset():
    """Drop cached singletons (settings changes, tests)."""
    for fn in (get_scanner, get_gateway, get_policy, get_repo):
        fn.cache_clear()
