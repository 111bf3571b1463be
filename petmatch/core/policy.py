# petmatch/core/policy.py
from dataclasses import dataclass


@dataclass(frozen=True)
class MatchPolicy:
    """
    Weights and radii used by the scorer and the scan job.

    Points are awarded per attribute; species is a gate, not a weight.
    """
    breed_exact: int = 4
    breed_partial: int = 2
    fur_color: int = 3
    eye_color: int = 2
    age: int = 2
    location: int = 6
    age_tolerance_years: float = 1.0
    score_radius_km: float = 3.0
    max_search_radius_km: float = 10.0
    match_threshold: int = 7
    query_min_score: int = 8

    @property
    def max_score(self) -> int:
        return max(self.breed_exact, self.breed_partial) + self.fur_color + self.eye_color + self.age + self.location

    @classmethod
    def from_settings(cls, s) -> "MatchPolicy":
        return cls(
            breed_exact=s.breed_exact_weight,
            breed_partial=s.breed_partial_weight,
            fur_color=s.fur_color_weight,
            eye_color=s.eye_color_weight,
            age=s.age_weight,
            location=s.location_weight,
            age_tolerance_years=s.age_tolerance_years,
            score_radius_km=s.score_radius_km,
            max_search_radius_km=s.max_search_radius_km,
            match_threshold=s.match_threshold,
            query_min_score=s.query_min_score,
        )


DEFAULT_POLICY = MatchPolicy()
