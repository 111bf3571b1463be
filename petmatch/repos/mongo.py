# petmatch/repos/mongo.py
import functools
from typing import Any, List, Optional, Tuple

from bson import ObjectId
from pymongo import DESCENDING
from pymongo.errors import PyMongoError

from petmatch.core.errors import NotFoundError, StoreError
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
from petmatch.services.geo import EARTH_RADIUS_KM


def _key(x: Any):
    """ObjectId when the string looks like one, the raw value otherwise."""
    if isinstance(x, ObjectId):
        return x
    if isinstance(x, str) and ObjectId.is_valid(x):
        return ObjectId(x)
    return x


def _store_op(fn):
    @functools.wraps(fn)
    async def wrapper(*args, **kwargs):
        try:
            return await fn(*args, **kwargs)
        except PyMongoError as exc:
            raise StoreError(f"{fn.__name__} failed: {exc}") from exc
    return wrapper


def _candidate_pipeline(status: str) -> list:
    return [
        {"$match": {"status": status}},
        {"$lookup": {"from": "pets", "localField": "pet_id", "foreignField": "_id", "as": "pet"}},
        {"$unwind": {"path": "$pet", "preserveNullAndEmptyArrays": True}},
    ]


class MongoRepo:
    """
    Match store over Motor.

    Collections: users, pets, reports. Match results live inside the lost
    report document (reports.matches), so every append/clear is a single
    document write.
    """

    def __init__(self, db):
        self.db = db

    # Users
    @_store_op
    async def create_user(self, email: str, name: Optional[str] = None,
                          fcm_token: Optional[str] = None, user_id: Optional[str] = None) -> dict:
        doc = {"email": email, "name": name, "fcm_token": fcm_token, "created_at": utcnow()}
        if user_id:
            doc["_id"] = _key(user_id)
        res = await self.db.users.insert_one(doc)
        doc["_id"] = res.inserted_id
        return doc

    @_store_op
    async def get_user(self, user_id: str) -> Optional[dict]:
        return await self.db.users.find_one({"_id": _key(user_id)})

    @_store_op
    async def set_fcm_token(self, user_id: str, token: Optional[str]) -> None:
        res = await self.db.users.update_one({"_id": _key(user_id)}, {"$set": {"fcm_token": token}})
        if not res.matched_count:
            raise NotFoundError(f"User {user_id} not found")

    # Pets
    @_store_op
    async def create_pet(self, doc: dict) -> dict:
        pet = dict(doc)
        pet["location"] = normalize_location(pet.get("location"))
        if pet.get("owner_id") is not None:
            pet["owner_id"] = _key(pet["owner_id"])
        pet.setdefault("is_lost", False)
        pet.setdefault("is_found", False)
        pet["created_at"] = utcnow()
        res = await self.db.pets.insert_one(pet)
        pet["_id"] = res.inserted_id
        return public_pet(pet)

    @_store_op
    async def get_pet(self, pet_id: str) -> dict:
        pet = await self.db.pets.find_one({"_id": _key(pet_id)})
        if not pet:
            raise NotFoundError(f"Pet {pet_id} not found")
        return public_pet(pet)

    # Reports
    async def _sync_pet_flags(self, pet_id, status: str) -> None:
        await self.db.pets.update_one({"_id": _key(pet_id)}, {"$set": flags_for(status)})

    @_store_op
    async def create_report(self, doc: dict) -> dict:
        pet_key = _key(doc.get("pet_id"))
        if not await self.db.pets.find_one({"_id": pet_key}, {"_id": 1}):
            raise NotFoundError(f"Pet {doc.get('pet_id')} not found")
        status = doc.get("status") or "lost"
        if status not in REPORT_STATUSES:
            raise ValueError(f"Invalid status {status!r}")

        now = utcnow()
        rep = dict(doc)
        rep.update({
            "pet_id": pet_key,
            "reporter_id": _key(doc.get("reporter_id")),
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
        res = await self.db.reports.insert_one(rep)
        rep["_id"] = res.inserted_id
        await self._sync_pet_flags(pet_key, status)
        return public_report(rep)

    @_store_op
    async def get_report(self, report_id: str) -> dict:
        rep = await self.db.reports.find_one({"_id": _key(report_id)})
        if not rep:
            raise NotFoundError(f"Report {report_id} not found")
        return public_report(rep)

    @_store_op
    async def list_reports(self, status: Optional[str] = None, near: Optional[Tuple[float, float]] = None,
                           radius_km: Optional[float] = None, limit: int = 20,
                           offset: int = 0) -> Tuple[List[dict], int]:
        q: dict = {}
        if status:
            q["status"] = status
        if near is not None and radius_km is not None:
            q["geo"] = {"$geoWithin": {"$centerSphere": [[near[0], near[1]], radius_km / EARTH_RADIUS_KM]}}
        total = await self.db.reports.count_documents(q)
        cur = self.db.reports.find(q).sort("created_at", DESCENDING).skip(offset).limit(limit)
        items = [public_report(d) async for d in cur]
        return items, total

    @_store_op
    async def update_report_status(self, report_id: str, status: str) -> dict:
        if status not in REPORT_STATUSES:
            raise ValueError(f"Invalid status {status!r}")
        q = {"_id": _key(report_id)}
        res = await self.db.reports.update_one(q, {"$set": {"status": status, "updated_at": utcnow()}})
        if not res.matched_count:
            raise NotFoundError(f"Report {report_id} not found")
        rep = await self.db.reports.find_one(q)
        await self._sync_pet_flags(rep["pet_id"], status)
        return public_report(rep)

    # Matching
    async def _candidates(self, status: str) -> List[dict]:
        rows = [r async for r in self.db.reports.aggregate(_candidate_pipeline(status))]
        return [build_candidate(r, r.pop("pet", None)) for r in rows]

    @_store_op
    async def find_open_lost(self) -> List[dict]:
        return await self._candidates("lost")

    @_store_op
    async def find_open_found(self) -> List[dict]:
        return await self._candidates("found")

    @_store_op
    async def has_match(self, lost_id: str, candidate_id: str) -> bool:
        doc = await self.db.reports.find_one(
            {"_id": _key(lost_id), "matches.candidate_id": str(candidate_id)}, {"_id": 1}
        )
        return doc is not None

    @_store_op
    async def append_match(self, lost_id: str, result: dict) -> bool:
        cid = str(result["candidate_id"])
        # conditional push: the filter fails when the candidate is already listed
        res = await self.db.reports.update_one(
            {"_id": _key(lost_id), "matches.candidate_id": {"$ne": cid}},
            {"$push": {"matches": dict(result, candidate_id=cid)}, "$set": {"updated_at": utcnow()}},
        )
        return res.modified_count == 1

    @_store_op
    async def list_matches(self, lost_id: str) -> List[dict]:
        rep = await self.db.reports.find_one({"_id": _key(lost_id)}, {"matches": 1})
        if not rep:
            raise NotFoundError(f"Report {lost_id} not found")
        return list(rep.get("matches") or [])

    @_store_op
    async def clear_matches(self, lost_id: str) -> None:
        res = await self.db.reports.update_one(
            {"_id": _key(lost_id)}, {"$set": {"matches": [], "updated_at": utcnow()}}
        )
        if not res.matched_count:
            raise NotFoundError(f"Report {lost_id} not found")

    @_store_op
    async def confirm_match(self, lost_id: str, candidate_id: str) -> dict:
        lost_q = {"_id": _key(lost_id)}
        found_q = {"_id": _key(candidate_id)}
        lost = await self.db.reports.find_one(lost_q)
        if not lost:
            raise NotFoundError(f"Report {lost_id} not found")
        found = await self.db.reports.find_one(found_q)
        if not found:
            raise NotFoundError(f"Report {candidate_id} not found")
        check_confirmable(lost, found)

        now = utcnow()
        await self.db.reports.update_one(lost_q, {"$set": {"status": "closed", "matches": [], "updated_at": now}})
        await self.db.reports.update_one(found_q, {"$set": {"status": "closed", "updated_at": now}})
        for rep in (lost, found):
            await self._sync_pet_flags(rep["pet_id"], "closed")

        cid = str(candidate_id)
        await self.db.reports.update_many(
            {"matches.candidate_id": cid},
            {"$pull": {"matches": {"candidate_id": cid}}, "$set": {"updated_at": now}},
        )

        lost.update({"status": "closed", "matches": [], "updated_at": now})
        return public_report(lost)
