# petmatch/routers/lost.py
from typing import List, Optional, Tuple

from fastapi import APIRouter, Depends, HTTPException, Query

from petmatch.core.errors import ConflictError, NotFoundError
from petmatch.deps import get_policy, get_repo
from petmatch.repos.candidates import PET_MATCH_FIELDS
from petmatch.schemas import (
    ConfirmIn,
    MatchQuery,
    MatchQueryOut,
    MatchResultOut,
    ReportIn,
    ReportList,
    ReportOut,
    ReportStatus,
    StatusIn,
)
from petmatch.services.scoring import rank_lost_candidates

router = APIRouter(prefix="/lost", tags=["lost-pets"])


def _parse_lat_lng(location: str) -> Tuple[float, float]:
    """'lat,lng' -> (lng, lat)"""
    try:
        lat, lng = (float(x) for x in location.split(","))
    except ValueError:
        raise HTTPException(400, "location must be 'lat,lng'")
    if not (-90 <= lat <= 90 and -180 <= lng <= 180):
        raise HTTPException(400, "location out of range")
    return (lng, lat)


@router.post("", response_model=ReportOut, status_code=201)
async def report_pet(body: ReportIn, repo=Depends(get_repo)):
    try:
        return await repo.create_report(body.model_dump())
    except NotFoundError as ex:
        raise HTTPException(404, str(ex))


@router.get("", response_model=ReportList)
async def list_reports(
    status: Optional[ReportStatus] = None,
    location: Optional[str] = Query(None, description="lat,lng"),
    radius: Optional[float] = Query(None, gt=0, description="Radius in km"),
    limit: int = Query(20, ge=1, le=200),
    offset: int = Query(0, ge=0),
    repo=Depends(get_repo),
):
    near = _parse_lat_lng(location) if location and radius else None
    items, total = await repo.list_reports(
        status=status, near=near, radius_km=radius if near else None, limit=limit, offset=offset
    )
    return {
        "success": True,
        "lost_pets": items,
        "pagination": {
            "total": total,
            "limit": limit,
            "offset": offset,
            "has_more": total > offset + limit,
        },
    }


@router.post("/match", response_model=MatchQueryOut)
async def match_found_pet(body: MatchQuery, repo=Depends(get_repo), policy=Depends(get_policy)):
    """Score a found pet against every open lost report, best first."""
    candidate = body.model_dump(exclude={"min_score"})
    lost = await repo.find_open_lost()
    hits = rank_lost_candidates(candidate, lost, min_score=body.min_score, policy=policy)

    out = []
    for hit in hits:
        entry = await repo.get_report(hit["lost"]["id"])
        pet = {k: hit["lost"].get(k) for k in PET_MATCH_FIELDS}
        pet["id"] = hit["lost"]["pet_id"]
        out.append({"score": hit["score"], "lost_entry": entry, "pet": pet})
    return {"success": True, "matches": out}


@router.put("/{report_id}/status", response_model=ReportOut)
async def update_status(report_id: str, body: StatusIn, repo=Depends(get_repo)):
    try:
        return await repo.update_report_status(report_id, body.status)
    except NotFoundError as ex:
        raise HTTPException(404, str(ex))


@router.get("/{report_id}/matches", response_model=List[MatchResultOut])
async def list_matches(report_id: str, repo=Depends(get_repo)):
    try:
        return await repo.list_matches(report_id)
    except NotFoundError as ex:
        raise HTTPException(404, str(ex))


@router.delete("/{report_id}/matches")
async def clear_matches(report_id: str, repo=Depends(get_repo)):
    try:
        await repo.clear_matches(report_id)
    except NotFoundError as ex:
        raise HTTPException(404, str(ex))
    return {"ok": True}


@router.post("/{report_id}/confirm", response_model=ReportOut)
async def confirm_match(report_id: str, body: ConfirmIn, repo=Depends(get_repo)):
    try:
        return await repo.confirm_match(report_id, body.candidate_id)
    except NotFoundError as ex:
        raise HTTPException(404, str(ex))
    except ConflictError as ex:
        raise HTTPException(409, str(ex))
