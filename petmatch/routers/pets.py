# petmatch/routers/pets.py
from fastapi import APIRouter, Depends, HTTPException

from petmatch.core.errors import NotFoundError
from petmatch.deps import get_repo
from petmatch.schemas import PetIn, PetOut

router = APIRouter(prefix="/pets", tags=["pets"])


@router.post("", response_model=PetOut, status_code=201)
async def create_pet(body: PetIn, repo=Depends(get_repo)):
    return await repo.create_pet(body.model_dump())


@router.get("/{pet_id}", response_model=PetOut)
async def get_pet(pet_id: str, repo=Depends(get_repo)):
    try:
        return await repo.get_pet(pet_id)
    except NotFoundError as ex:
        raise HTTPException(404, str(ex))
