# petmatch/services/scoring.py
import re
from typing import Iterable, List, Optional

from petmatch.core.policy import DEFAULT_POLICY, MatchPolicy
from petmatch.services.geo import coordinates_of, distance_km

_LEADING_NUMBER = re.compile(r"^\s*[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")


def _text(pet: dict, key: str) -> str:
    val = (pet or {}).get(key)
    if not isinstance(val, str):
        return ""
    return val.strip().lower()


def parse_age(value) -> Optional[float]:
    """
    "3" -> 3.0, "3 years" -> 3.0, 2.5 -> 2.5, "about 3" -> None
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if not isinstance(value, str):
        return None
    m = _LEADING_NUMBER.match(value)
    if not m:
        return None
    return float(m.group(0))


def score(lost: dict, found: dict, policy: MatchPolicy = DEFAULT_POLICY,
          score_radius_km: Optional[float] = None) -> int:
    """
    Heuristic compatibility between a lost and a found pet, 0..policy.max_score.

    lost / found: dicts with species, breed, age, fur_color, eye_color and a
    location (see geo.coordinates_of). Callers are expected to have dropped
    geographically implausible pairs already; the radius here only decides
    whether proximity earns points.
    """
    species_a = _text(lost, "species")
    species_b = _text(found, "species")
    if not species_a or not species_b or species_a != species_b:
        return 0

    total = 0

    breed_a = _text(lost, "breed")
    breed_b = _text(found, "breed")
    if breed_a and breed_b:
        if breed_a == breed_b:
            total += policy.breed_exact
        elif breed_a in breed_b or breed_b in breed_a:
            total += policy.breed_partial

    fur_a = _text(lost, "fur_color")
    if fur_a and fur_a == _text(found, "fur_color"):
        total += policy.fur_color

    eye_a = _text(lost, "eye_color")
    if eye_a and eye_a == _text(found, "eye_color"):
        total += policy.eye_color

    age_a = parse_age((lost or {}).get("age"))
    age_b = parse_age((found or {}).get("age"))
    if age_a is not None and age_b is not None and abs(age_a - age_b) <= policy.age_tolerance_years:
        total += policy.age

    radius = policy.score_radius_km if score_radius_km is None else score_radius_km
    if distance_km(coordinates_of(lost), coordinates_of(found)) <= radius:
        total += policy.location

    return total


def rank_lost_candidates(candidate: dict, lost_candidates: Iterable[dict],
                         min_score: Optional[int] = None,
                         policy: MatchPolicy = DEFAULT_POLICY) -> List[dict]:
    """
    Score a found-pet payload against every open lost candidate.
    returns [{"score": int, "lost": <candidate>}] best first, ties keep input order
    """
    floor = policy.query_min_score if min_score is None else min_score
    hits = []
    for lost in lost_candidates:
        s = score(lost, candidate, policy)
        if s >= floor:
            hits.append({"score": s, "lost": lost})
    hits.sort(key=lambda h: h["score"], reverse=True)
    return hits
