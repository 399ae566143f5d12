from typing import List

from fastapi import APIRouter, Depends

from app.api.deps import get_addons
from app.auth.dependencies import CurrentUser, get_current_user
from app.core.errors import NotFound
from app.repositories.addons import AddOnRepository
from app.schemas.addon import (
    AddOnCreate,
    AddOnGroupCreate,
    AddOnGroupRead,
    AddOnGroupUpdate,
    AddOnRead,
    AddOnUpdate,
)

router = APIRouter(prefix="/api", tags=["addons"])


async def _own_group(addons: AddOnRepository, group_id: str, user: CurrentUser) -> AddOnGroupRead:
    group = await addons.get_group(group_id)
    if group.restaurant_id != user.restaurant_id:
        raise NotFound("addon_group", group_id)
    return group


# ----- Groups
@router.get("/addon-groups", response_model=List[AddOnGroupRead])
async def list_groups(
    addons: AddOnRepository = Depends(get_addons),
    user: CurrentUser = Depends(get_current_user),
):
    return await addons.list_groups(user.restaurant_id)


@router.post("/addon-groups", response_model=AddOnGroupRead, status_code=201)
async def create_group(
    payload: AddOnGroupCreate,
    addons: AddOnRepository = Depends(get_addons),
    user: CurrentUser = Depends(get_current_user),
):
    return await addons.create_group(payload.model_copy(update={"restaurant_id": user.restaurant_id}))


@router.get("/addon-groups/{group_id}", response_model=AddOnGroupRead)
async def get_group(
    group_id: str,
    addons: AddOnRepository = Depends(get_addons),
    user: CurrentUser = Depends(get_current_user),
):
    return await _own_group(addons, group_id, user)


@router.patch("/addon-groups/{group_id}", response_model=AddOnGroupRead)
async def update_group(
    group_id: str,
    payload: AddOnGroupUpdate,
    addons: AddOnRepository = Depends(get_addons),
    user: CurrentUser = Depends(get_current_user),
):
    await _own_group(addons, group_id, user)
    return await addons.update_group(group_id, payload)


@router.delete("/addon-groups/{group_id}")
async def delete_group(
    group_id: str,
    addons: AddOnRepository = Depends(get_addons),
    user: CurrentUser = Depends(get_current_user),
):
    await _own_group(addons, group_id, user)
    return {"removed": await addons.delete_group(group_id)}


# ----- Add-ons
@router.get("/addon-groups/{group_id}/addons", response_model=List[AddOnRead])
async def list_addons(
    group_id: str,
    addons: AddOnRepository = Depends(get_addons),
    user: CurrentUser = Depends(get_current_user),
):
    await _own_group(addons, group_id, user)
    return await addons.list_addons(group_id)


@router.post("/addons", response_model=AddOnRead, status_code=201)
async def create_addon(
    payload: AddOnCreate,
    addons: AddOnRepository = Depends(get_addons),
    user: CurrentUser = Depends(get_current_user),
):
    await _own_group(addons, payload.addon_group_id, user)
    return await addons.create_addon(payload)


@router.patch("/addons/{addon_id}", response_model=AddOnRead)
async def update_addon(
    addon_id: str,
    payload: AddOnUpdate,
    addons: AddOnRepository = Depends(get_addons),
    user: CurrentUser = Depends(get_current_user),
):
    addon = await addons.get_addon(addon_id)
    await _own_group(addons, addon.addon_group_id, user)
    return await addons.update_addon(addon_id, payload)


@router.delete("/addons/{addon_id}", status_code=204)
async def delete_addon(
    addon_id: str,
    addons: AddOnRepository = Depends(get_addons),
    user: CurrentUser = Depends(get_current_user),
):
    addon = await addons.get_addon(addon_id)
    await _own_group(addons, addon.addon_group_id, user)
    await addons.delete_addon(addon_id)
