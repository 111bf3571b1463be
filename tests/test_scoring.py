import pytest

from petmatch.core.policy import MatchPolicy
from petmatch.services.scoring import parse_age, rank_lost_candidates, score

LOST = {
    "species": "dog",
    "breed": "Labrador Retriever",
    "fur_color": "golden",
    "age": "3",
    "location": {"coordinates": [34.78, 32.09]},
}
FOUND = {
    "species": "dog",
    "breed": "Labrador",
    "fur_color": "golden",
    "age": "3",
    "location": {"coordinates": [34.781, 32.091]},
}
# ~5.5 km east of LOST: inside the search radius, outside the scoring radius
MID_DISTANCE = [34.84, 32.09]


def _with(base, **over):
    doc = dict(base)
    doc.update(over)
    return doc


def test_close_labradors_score_13():
    # breed substring 2 + fur 3 + age 2 + location 6
    assert score(LOST, FOUND) == 13


def test_species_mismatch_scores_zero():
    assert score(LOST, _with(FOUND, species="cat")) == 0


@pytest.mark.parametrize("lost_species,found_species", [(None, "dog"), ("dog", None), ("", "dog"), ("dog", "")])
def test_missing_species_scores_zero(lost_species, found_species):
    assert score(_with(LOST, species=lost_species), _with(FOUND, species=found_species)) == 0


def test_species_compare_ignores_case():
    assert score(_with(LOST, species="DOG"), _with(FOUND, species="Dog")) == 13


def test_species_gate_beats_perfect_attributes():
    perfect = _with(LOST, eye_color="brown")
    assert score(perfect, _with(perfect, species="cat")) == 0


def test_exact_breed_scores_4():
    assert score(LOST, _with(FOUND, breed="labrador retriever")) == 15


def test_unrelated_breed_scores_nothing():
    assert score(LOST, _with(FOUND, breed="Poodle")) == 11


def test_missing_breed_scores_nothing():
    assert score(LOST, _with(FOUND, breed=None)) == 11


def test_eye_color_match_scores_2():
    assert score(_with(LOST, eye_color="Brown"), _with(FOUND, eye_color="brown")) == 15


def test_fur_color_mismatch():
    assert score(LOST, _with(FOUND, fur_color="black")) == 10


@pytest.mark.parametrize("age_a,age_b,points", [
    ("3", "4", 2),
    ("3", "4.5", 0),
    ("3 years", "2", 2),
    (3, "3.5", 2),
    ("about 3", "3", 0),
    (None, "3", 0),
    ("", "3", 0),
])
def test_age_points(age_a, age_b, points):
    base = score(_with(LOST, age=None), _with(FOUND, age=None))
    assert score(_with(LOST, age=age_a), _with(FOUND, age=age_b)) - base == points


def test_location_outside_scoring_radius():
    found = _with(FOUND, location={"coordinates": MID_DISTANCE})
    assert score(LOST, found) == 7


def test_custom_scoring_radius():
    found = _with(FOUND, location={"coordinates": MID_DISTANCE})
    assert score(LOST, found, score_radius_km=10) == 13


def test_missing_location_on_both_sides_counts_as_same_place():
    # both fall back to [0, 0]
    assert score(_with(LOST, location=None), _with(FOUND, location=None)) == 13


def test_missing_location_on_one_side_is_far():
    assert score(LOST, _with(FOUND, location=None)) == 7


def test_policy_weights_are_used():
    policy = MatchPolicy(breed_partial=1, fur_color=10, age=0, location=1)
    assert score(LOST, FOUND, policy) == 12


def test_score_is_deterministic():
    assert len({score(LOST, FOUND) for _ in range(20)}) == 1


@pytest.mark.parametrize("field,bad,good", [
    ("fur_color", "black", "golden"),
    ("eye_color", "blue", "green"),
    ("breed", "Poodle", "Labrador Retriever"),
    ("age", "9", "3"),
    ("location", {"coordinates": MID_DISTANCE}, {"coordinates": [34.78, 32.09]}),
])
def test_fixing_one_attribute_never_lowers_score(field, bad, good):
    lost = _with(LOST, eye_color="green")
    assert score(lost, _with(FOUND, **{field: good})) >= score(lost, _with(FOUND, **{field: bad}))


def test_maximum_score_is_17():
    twin = _with(LOST, eye_color="green")
    assert score(twin, dict(twin)) == 17


@pytest.mark.parametrize("value,expected", [
    ("3", 3.0),
    ("3 years", 3.0),
    ("  2.5yrs", 2.5),
    (".5", 0.5),
    (4, 4.0),
    (1.5, 1.5),
    ("years 3", None),
    ("", None),
    (None, None),
    (True, None),
    ([3], None),
])
def test_parse_age(value, expected):
    assert parse_age(value) == expected


def test_rank_lost_candidates_sorted_and_filtered():
    near_twin = _with(LOST, id="a", eye_color="green")
    partial = _with(LOST, id="b")
    far = _with(LOST, id="c", fur_color="black", location={"coordinates": MID_DISTANCE})
    cat = _with(LOST, id="d", species="cat")
    query = _with(FOUND, breed="Labrador Retriever", eye_color="green")

    hits = rank_lost_candidates(query, [partial, far, cat, near_twin])

    assert [h["lost"]["id"] for h in hits] == ["a", "b"]
    assert [h["score"] for h in hits] == [17, 15]


def test_rank_lost_candidates_default_threshold_is_8():
    far = _with(LOST, id="c", location={"coordinates": MID_DISTANCE})
    query = _with(FOUND, breed="Labrador Retriever")
    # breed 4 + fur 3 + age 2 = 9 without the location points
    assert [h["score"] for h in rank_lost_candidates(query, [far])] == [9]
    assert rank_lost_candidates(query, [far], min_score=10) == []
