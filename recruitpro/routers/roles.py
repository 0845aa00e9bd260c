from typing import List

from fastapi import APIRouter, Depends

from recruitpro.dependencies import get_role_catalog
from recruitpro.models.requests import RoleUpsert
from recruitpro.models.schemas import RoleProfile
from recruitpro.services.roles import RoleCatalog
from recruitpro.utils.exceptions import ValidationError

router = APIRouter()


@router.get("", response_model=List[RoleProfile])
async def list_roles(catalog: RoleCatalog = Depends(get_role_catalog)):
    return await catalog.list()


@router.get("/{role_id}", response_model=RoleProfile)
async def get_role(role_id: str, catalog: RoleCatalog = Depends(get_role_catalog)):
    # unknown ids resolve to a generic profile, same as during scoring
    return await catalog.get(role_id)


@router.put("/{role_id}", response_model=RoleProfile)
async def upsert_role(role_id: str, payload: RoleUpsert, catalog: RoleCatalog = Depends(get_role_catalog)):
    if not payload.title.strip():
        raise ValidationError("'title' is required", field="title")
    skills = [s.strip() for s in payload.skills if s.strip()]
    return await catalog.upsert(RoleProfile(role_id=role_id, **payload.model_dump(exclude={"skills"}), skills=skills))
