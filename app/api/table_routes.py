from typing import List

from fastapi import APIRouter, Depends

from app.api.deps import get_tables
from app.auth.dependencies import CurrentUser, get_current_user
from app.core.errors import NotFound
from app.repositories.tables import TableRepository
from app.schemas.table import TableCreate, TableRead, TableUpdate

router = APIRouter(prefix="/api", tags=["tables"])


async def _own_table(tables: TableRepository, table_id: str, user: CurrentUser) -> TableRead:
    table = await tables.get_table(table_id)
    if table.restaurant_id != user.restaurant_id:
        raise NotFound("table", table_id)
    return table


@router.get("/tables", response_model=List[TableRead])
async def list_tables(
    tables: TableRepository = Depends(get_tables),
    user: CurrentUser = Depends(get_current_user),
):
    return await tables.list_tables(user.restaurant_id)


@router.post("/tables", response_model=TableRead, status_code=201)
async def create_table(
    payload: TableCreate,
    tables: TableRepository = Depends(get_tables),
    user: CurrentUser = Depends(get_current_user),
):
    return await tables.create_table(payload.model_copy(update={"restaurant_id": user.restaurant_id}))


@router.patch("/tables/{table_id}", response_model=TableRead)
async def update_table(
    table_id: str,
    payload: TableUpdate,
    tables: TableRepository = Depends(get_tables),
    user: CurrentUser = Depends(get_current_user),
):
    await _own_table(tables, table_id, user)
    return await tables.update_table(table_id, payload)


@router.delete("/tables/{table_id}", status_code=204)
async def delete_table(
    table_id: str,
    tables: TableRepository = Depends(get_tables),
    user: CurrentUser = Depends(get_current_user),
):
    await _own_table(tables, table_id, user)
    await tables.delete_table(table_id)
