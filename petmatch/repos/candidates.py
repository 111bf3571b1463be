# petmatch/repos/candidates.py
"""
Document shaping shared by the repositories.

Reports are the source of truth for lost/found state; the matcher works on
"candidates", i.e. a report joined with the attributes of the pet it points
at.
"""
from datetime import datetime, timezone
from typing import Optional

from petmatch.core.errors import ConflictError
from petmatch.services.geo import coordinates_of, has_coordinates

REPORT_STATUSES = ("lost", "found", "closed")
PET_MATCH_FIELDS = ("name", "species", "breed", "age", "fur_color", "eye_color")


def utcnow():
    return datetime.now(timezone.utc)


def geo_point(location: Optional[dict]) -> Optional[dict]:
    """GeoJSON point for the 2dsphere index, or None when there are no usable coords."""
    rec = {"location": location or {}}
    if not has_coordinates(rec):
        return None
    lng, lat = coordinates_of(rec)
    return {"type": "Point", "coordinates": [lng, lat]}


def normalize_location(location: Optional[dict]) -> dict:
    loc = dict(location or {})
    lng, lat = coordinates_of({"location": loc})
    loc["coordinates"] = [lng, lat]
    return loc


def match_result(candidate_id: str, score: int, matched_at: Optional[datetime] = None) -> dict:
    return {"candidate_id": str(candidate_id), "score": int(score), "matched_at": matched_at or utcnow()}


def flags_for(status: str) -> dict:
    # legacy boolean view kept on the pet document
    return {"is_lost": status == "lost", "is_found": status == "found"}


def build_candidate(report: dict, pet: Optional[dict]) -> dict:
    """
    Flatten report + pet into what the scorer consumes.

    Location is where the report says the pet was lost/seen; reports without
    usable coordinates fall back to the pet's stored location.
    """
    pet = pet or {}
    cand = {
        "id": str(report.get("_id") or report.get("id") or ""),
        "pet_id": str(report.get("pet_id") or ""),
        "reporter_id": str(report.get("reporter_id") or ""),
        "status": report.get("status"),
        "phone_numbers": list(report.get("phone_numbers") or []),
        "matches": [dict(m) for m in (report.get("matches") or [])],
    }
    for key in PET_MATCH_FIELDS:
        cand[key] = pet.get(key)
    if has_coordinates(report):
        cand["location"] = normalize_location(report.get("location"))
    else:
        cand["location"] = normalize_location(pet.get("location"))
    return cand


def public_report(doc: dict) -> dict:
    out = {k: v for k, v in doc.items() if k not in ("_id", "geo")}
    out["id"] = str(doc.get("_id") or doc.get("id") or "")
    for key in ("pet_id", "reporter_id"):
        if out.get(key) is not None:
            out[key] = str(out[key])
    out["matches"] = [dict(m) for m in (doc.get("matches") or [])]
    return out


def public_pet(doc: dict) -> dict:
    out = {k: v for k, v in doc.items() if k not in ("_id", "geo")}
    out["id"] = str(doc.get("_id") or doc.get("id") or "")
    if out.get("owner_id") is not None:
        out["owner_id"] = str(out["owner_id"])
    return out


def check_confirmable(lost: dict, found: dict) -> None:
    """Raise ConflictError unless `lost` is an open lost report and `found` an open found one."""
    if str(lost.get("_id")) == str(found.get("_id")):
        raise ConflictError("A report cannot be confirmed against itself")
    if lost.get("status") != "lost":
        raise ConflictError(f"Report {lost.get('_id')} is not an open lost report (status {lost.get('status')!r})")
    if found.get("status") != "found":
        raise ConflictError(f"Report {found.get('_id')} is not an open found report (status {found.get('status')!r})")
