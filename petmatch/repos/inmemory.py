# petmatch/repos/inmemory.py
import copy
import uuid
from typing import Dict, List, Optional, Tuple

from petmatch.core.errors import NotFoundError
from petmatch.repos.candidates import (
    REPORT_STATUSES,
    build_candidate,
    check_confirmable,
    flags_for,
    geo_point,
    normalize_location,
    public_pet,
    public_report,
    utcnow,
)
from petmatch.services.geo import coordinates_of, distance_km


def _id() -> str:
    return uuid.uuid4().hex


class InMemoryRepo:
    """Dict-backed store with the same contract as MongoRepo (dev + tests)."""

    def __init__(self):
        self.users: Dict[str, dict] = {}
        self.pets: Dict[str, dict] = {}
        self.reports: Dict[str, dict] = {}

    # Users
    async def create_user(self, email: str, name: Optional[str] = None,
                          fcm_token: Optional[str] = None, user_id: Optional[str] = None) -> dict:
        uid = user_id or _id()
        doc = {"_id": uid, "email": email, "name": name, "fcm_token": fcm_token, "created_at": utcnow()}
        self.users[uid] = doc
        return copy.deepcopy(doc)

    async def get_user(self, user_id: str) -> Optional[dict]:
        doc = self.users.get(str(user_id))
        return copy.deepcopy(doc) if doc else None

    async def set_fcm_token(self, user_id: str, token: Optional[str]) -> None:
        user = self.users.get(str(user_id))
        if not user:
            raise NotFoundError(f"User {user_id} not found")
        user["fcm_token"] = token

    # Pets
    async def create_pet(self, doc: dict) -> dict:
        pid = _id()
        pet = dict(doc)
        pet["_id"] = pid
        pet["location"] = normalize_location(pet.get("location"))
        pet.setdefault("is_lost", False)
        pet.setdefault("is_found", False)
        pet["created_at"] = utcnow()
        self.pets[pid] = pet
        return public_pet(copy.deepcopy(pet))

    async def get_pet(self, pet_id: str) -> dict:
        pet = self.pets.get(str(pet_id))
        if not pet:
            raise NotFoundError(f"Pet {pet_id} not found")
        return public_pet(copy.deepcopy(pet))

    # Reports
    def _report(self, report_id: str) -> dict:
        rep = self.reports.get(str(report_id))
        if not rep:
            raise NotFoundError(f"Report {report_id} not found")
        return rep

    def _sync_pet_flags(self, pet_id: str, status: str) -> None:
        pet = self.pets.get(str(pet_id))
        if pet:
            pet.update(flags_for(status))

    async def create_report(self, doc: dict) -> dict:
        pet_id = str(doc.get("pet_id") or "")
        if pet_id not in self.pets:
            raise NotFoundError(f"Pet {pet_id} not found")
        status = doc.get("status") or "lost"
        if status not in REPORT_STATUSES:
            raise ValueError(f"Invalid status {status!r}")

        rid = _id()
        now = utcnow()
        rep = dict(doc)
        rep.update({
            "_id": rid,
            "pet_id": pet_id,
            "reporter_id": str(doc.get("reporter_id") or ""),
            "status": status,
            "location": normalize_location(doc.get("location")),
            "phone_numbers": list(doc.get("phone_numbers") or []),
            "matches": [],
            "created_at": now,
            "updated_at": now,
        })
        geo = geo_point(rep["location"])
        if geo:
            rep["geo"] = geo
        self.reports[rid] = rep
        self._sync_pet_flags(pet_id, status)
        return public_report(copy.deepcopy(rep))

    async def get_report(self, report_id: str) -> dict:
        return public_report(copy.deepcopy(self._report(report_id)))

    async def list_reports(self, status: Optional[str] = None, near: Optional[Tuple[float, float]] = None,
                           radius_km: Optional[float] = None, limit: int = 20,
                           offset: int = 0) -> Tuple[List[dict], int]:
        rows = [r for r in self.reports.values() if status is None or r["status"] == status]
        if near is not None and radius_km is not None:
            rows = [r for r in rows if "geo" in r and distance_km(near, coordinates_of(r)) <= radius_km]
        rows.sort(key=lambda r: r["created_at"], reverse=True)
        total = len(rows)
        page = rows[offset:offset + limit]
        return [public_report(copy.deepcopy(r)) for r in page], total

    async def update_report_status(self, report_id: str, status: str) -> dict:
        if status not in REPORT_STATUSES:
            raise ValueError(f"Invalid status {status!r}")
        rep = self._report(report_id)
        rep["status"] = status
        rep["updated_at"] = utcnow()
        self._sync_pet_flags(rep["pet_id"], status)
        return public_report(copy.deepcopy(rep))

    # Matching
    def _candidates(self, status: str) -> List[dict]:
        out = []
        for rep in self.reports.values():
            if rep["status"] == status:
                out.append(build_candidate(copy.deepcopy(rep), copy.deepcopy(self.pets.get(rep["pet_id"]))))
        return out

    async def find_open_lost(self) -> List[dict]:
        return self._candidates("lost")

    async def find_open_found(self) -> List[dict]:
        return self._candidates("found")

    async def has_match(self, lost_id: str, candidate_id: str) -> bool:
        rep = self.reports.get(str(lost_id))
        if not rep:
            return False
        return any(m["candidate_id"] == str(candidate_id) for m in rep["matches"])

    async def append_match(self, lost_id: str, result: dict) -> bool:
        # no await between check and append, so this is atomic on the event loop
        rep = self.reports.get(str(lost_id))
        if not rep:
            return False
        cid = str(result["candidate_id"])
        if any(m["candidate_id"] == cid for m in rep["matches"]):
            return False
        rep["matches"].append(dict(result, candidate_id=cid))
        rep["updated_at"] = utcnow()
        return True

    async def list_matches(self, lost_id: str) -> List[dict]:
        return copy.deepcopy(self._report(lost_id)["matches"])

    async def clear_matches(self, lost_id: str) -> None:
        rep = self._report(lost_id)
        rep["matches"] = []
        rep["updated_at"] = utcnow()

    async def confirm_match(self, lost_id: str, candidate_id: str) -> dict:
        lost = self._report(lost_id)
        found = self._report(candidate_id)
        check_confirmable(lost, found)
        now = utcnow()

        for rep in (lost, found):
            rep["status"] = "closed"
            rep["updated_at"] = now
            self._sync_pet_flags(rep["pet_id"], "closed")
        lost["matches"] = []

        # the found pet is taken; nobody else should keep pointing at it
        cid = str(candidate_id)
        for rep in self.reports.values():
            if any(m["candidate_id"] == cid for m in rep["matches"]):
                rep["matches"] = [m for m in rep["matches"] if m["candidate_id"] != cid]
                rep["updated_at"] = now

        return public_report(copy.deepcopy(lost))
