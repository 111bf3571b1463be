# petmatch/routers/matching.py
from fastapi import APIRouter, Depends

from petmatch.deps import get_scanner
from petmatch.schemas import ScanOut

router = APIRouter(prefix="/api/matching", tags=["matching"])


@router.post("/run", response_model=ScanOut)
async def run_scan(scanner=Depends(get_scanner)):
    """Run one scan tick now (same guard as the scheduled loop)."""
    stats = await scanner.run_once()
    if stats is None:
        return {"ok": False, "skipped": True, "stats": {}}
    return {"ok": not stats.aborted, "skipped": False, "stats": stats.as_dict()}
