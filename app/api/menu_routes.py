import logging
from typing import List

from fastapi import APIRouter, Depends, File, UploadFile

from app.api.deps import get_catalog
from app.auth.dependencies import CurrentUser, get_current_user
from app.core.errors import NotFound, RestaurantDataError
from app.repositories.catalog import CatalogRepository
from app.schemas.menu import (
    AddOnGroupLinksIn,
    AvailabilityIn,
    CategoryCreate,
    CategoryRead,
    CategoryUpdate,
    MenuItemCreate,
    MenuItemRead,
    MenuItemUpdate,
    VariantCreate,
    VariantListIn,
    VariantRead,
    VariantUpdate,
)
from app.utils.spaces import delete_image, upload_image

log = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["menu"])


async def _own_category(catalog: CatalogRepository, category_id: str, user: CurrentUser) -> CategoryRead:
    category = await catalog.get_category(category_id)
    if category.restaurant_id != user.restaurant_id:
        raise NotFound("category", category_id)
    return category


async def _own_item(catalog: CatalogRepository, item_id: str, user: CurrentUser) -> MenuItemRead:
    """
    Loads a MenuItem by id, then validates restaurant ownership via its category.
    (menu_items has no restaurant_id column.)
    """
    item = await catalog.get_item(item_id)
    await _own_category(catalog, item.category_id, user)
    return item


async def _own_variant(catalog: CatalogRepository, variant_id: str, user: CurrentUser) -> VariantRead:
    variant = await catalog.get_variant(variant_id)
    await _own_item(catalog, variant.menu_item_id, user)
    return variant


# ----- Categories
@router.get("/categories", response_model=List[CategoryRead])
async def list_categories(
    catalog: CatalogRepository = Depends(get_catalog),
    user: CurrentUser = Depends(get_current_user),
):
    return await catalog.list_categories(user.restaurant_id)


@router.post("/categories", response_model=CategoryRead, status_code=201)
async def create_category(
    payload: CategoryCreate,
    catalog: CatalogRepository = Depends(get_catalog),
    user: CurrentUser = Depends(get_current_user),
):
    return await catalog.create_category(payload.model_copy(update={"restaurant_id": user.restaurant_id}))


@router.patch("/categories/{category_id}", response_model=CategoryRead)
async def update_category(
    category_id: str,
    payload: CategoryUpdate,
    catalog: CatalogRepository = Depends(get_catalog),
    user: CurrentUser = Depends(get_current_user),
):
    await _own_category(catalog, category_id, user)
    return await catalog.update_category(category_id, payload)


@router.delete("/categories/{category_id}", response_model=CategoryRead)
async def delete_category(
    category_id: str,
    catalog: CatalogRepository = Depends(get_catalog),
    user: CurrentUser = Depends(get_current_user),
):
    await _own_category(catalog, category_id, user)
    return await catalog.delete_category(category_id)


@router.get("/categories/{category_id}/items", response_model=List[MenuItemRead])
async def list_items(
    category_id: str,
    catalog: CatalogRepository = Depends(get_catalog),
    user: CurrentUser = Depends(get_current_user),
):
    await _own_category(catalog, category_id, user)
    return await catalog.list_items(category_id)


# ----- Menu items
@router.post("/items", response_model=MenuItemRead, status_code=201)
async def create_item(
    payload: MenuItemCreate,
    catalog: CatalogRepository = Depends(get_catalog),
    user: CurrentUser = Depends(get_current_user),
):
    await _own_category(catalog, payload.category_id, user)
    return await catalog.create_item(payload)


@router.get("/items/{item_id}", response_model=MenuItemRead)
async def get_item(
    item_id: str,
    catalog: CatalogRepository = Depends(get_catalog),
    user: CurrentUser = Depends(get_current_user),
):
    return await _own_item(catalog, item_id, user)


@router.patch("/items/{item_id}", response_model=MenuItemRead)
async def update_item(
    item_id: str,
    payload: MenuItemUpdate,
    catalog: CatalogRepository = Depends(get_catalog),
    user: CurrentUser = Depends(get_current_user),
):
    await _own_item(catalog, item_id, user)
    if payload.category_id:
        await _own_category(catalog, payload.category_id, user)
    return await catalog.update_item(item_id, payload)


@router.put("/items/{item_id}/availability", status_code=204)
async def set_item_availability(
    item_id: str,
    payload: AvailabilityIn,
    catalog: CatalogRepository = Depends(get_catalog),
    user: CurrentUser = Depends(get_current_user),
):
    await _own_item(catalog, item_id, user)
    await catalog.set_item_availability(item_id, payload.is_available)


@router.delete("/items/{item_id}")
async def delete_item(
    item_id: str,
    catalog: CatalogRepository = Depends(get_catalog),
    user: CurrentUser = Depends(get_current_user),
):
    await _own_item(catalog, item_id, user)
    return {"removed": await catalog.delete_item(item_id)}


@router.post("/items/{item_id}/image", response_model=MenuItemRead)
async def upload_item_image(
    item_id: str,
    photo: UploadFile = File(...),
    catalog: CatalogRepository = Depends(get_catalog),
    user: CurrentUser = Depends(get_current_user),
):
    item = await _own_item(catalog, item_id, user)
    contents = await photo.read()
    url = await upload_image(
        body=contents,
        path_hint=f"restaurants/{user.restaurant_id}/items/{item_id}",
        filename=photo.filename,
        content_type=photo.content_type,
    )
    updated = await catalog.update_item(item_id, MenuItemUpdate(image_url=url))

    if item.image_url:
        try:
            await delete_image(item.image_url)
        except RestaurantDataError as exc:
            # item already points at the new image
            log.warning("old image not removed: item=%s url=%s err=%s", item_id, item.image_url, exc)
    return updated


# ----- Variants
@router.get("/items/{item_id}/variants", response_model=List[VariantRead])
async def list_variants(
    item_id: str,
    catalog: CatalogRepository = Depends(get_catalog),
    user: CurrentUser = Depends(get_current_user),
):
    await _own_item(catalog, item_id, user)
    return await catalog.get_variants(item_id)


@router.put("/items/{item_id}/variants", response_model=List[VariantRead])
async def save_variants(
    item_id: str,
    payload: VariantListIn,
    catalog: CatalogRepository = Depends(get_catalog),
    user: CurrentUser = Depends(get_current_user),
):
    await _own_item(catalog, item_id, user)
    return await catalog.save_variants(
        item_id, payload.variants, user_id=user.id, restaurant_id=user.restaurant_id
    )


@router.post("/variants", response_model=VariantRead, status_code=201)
async def create_variant(
    payload: VariantCreate,
    catalog: CatalogRepository = Depends(get_catalog),
    user: CurrentUser = Depends(get_current_user),
):
    await _own_item(catalog, payload.menu_item_id, user)
    return await catalog.create_variant(payload, user_id=user.id, restaurant_id=user.restaurant_id)


@router.patch("/variants/{variant_id}", response_model=VariantRead)
async def update_variant(
    variant_id: str,
    payload: VariantUpdate,
    catalog: CatalogRepository = Depends(get_catalog),
    user: CurrentUser = Depends(get_current_user),
):
    await _own_variant(catalog, variant_id, user)
    return await catalog.update_variant(variant_id, payload)


# ----- Add-on group links
@router.get("/items/{item_id}/addon-groups", response_model=List[str])
async def get_item_addon_groups(
    item_id: str,
    catalog: CatalogRepository = Depends(get_catalog),
    user: CurrentUser = Depends(get_current_user),
):
    await _own_item(catalog, item_id, user)
    return await catalog.get_item_addon_groups(item_id)


@router.put("/items/{item_id}/addon-groups", response_model=List[str])
async def set_item_addon_groups(
    item_id: str,
    payload: AddOnGroupLinksIn,
    catalog: CatalogRepository = Depends(get_catalog),
    user: CurrentUser = Depends(get_current_user),
):
    await _own_item(catalog, item_id, user)
    return await catalog.set_item_addon_groups(item_id, payload.addon_group_ids, restaurant_id=user.restaurant_id)


@router.get("/variants/{variant_id}/addon-groups", response_model=List[str])
async def get_variant_addon_groups(
    variant_id: str,
    catalog: CatalogRepository = Depends(get_catalog),
    user: CurrentUser = Depends(get_current_user),
):
    variant = await _own_variant(catalog, variant_id, user)
    return variant.addon_groups


@router.put("/variants/{variant_id}/addon-groups", response_model=List[str])
async def set_variant_addon_groups(
    variant_id: str,
    payload: AddOnGroupLinksIn,
    catalog: CatalogRepository = Depends(get_catalog),
    user: CurrentUser = Depends(get_current_user),
):
    await _own_variant(catalog, variant_id, user)
    return await catalog.set_variant_addon_groups(
        variant_id, payload.addon_group_ids, restaurant_id=user.restaurant_id
    )
