# petmatch/core/indexes.py
from pymongo import ASCENDING, GEOSPHERE


async def ensure_index(col, keys, name: str, **kwargs):
    existing = [ix["name"] async for ix in col.list_indexes()]
    if name in existing:
        return
    await col.create_index(keys, name=name, **kwargs)


async def ensure_indexes(db):
    # Reports drive the scan
    await ensure_index(db.reports, [("status", ASCENDING)], "status_1")
    await ensure_index(db.reports, [("pet_id", ASCENDING)], "pet_id_1")
    await ensure_index(db.reports, [("matches.candidate_id", ASCENDING)], "matches_candidate_id_1")
    await ensure_index(db.reports, [("geo", GEOSPHERE)], "geo_2dsphere")
    # Pets
    await ensure_index(db.pets, [("owner_id", ASCENDING)], "owner_id_1")
    await ensure_index(db.pets, [("species", ASCENDING)], "species_1")
