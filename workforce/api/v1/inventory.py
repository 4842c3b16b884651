"""
Inventory endpoints, gated by the inventory module
"""
from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from workforce.core.constants import MODULE_INVENTORY
from workforce.core.deps import get_db, require_module
from workforce.schemas.inventory import InventoryItemCreate, InventoryItemOut
from workforce.services import inventory_service
from workforce.services.permission_service import ModuleAction, enforce
from workforce.services.scope_service import TenantScope

router = APIRouter()


@router.get("", response_model=List[InventoryItemOut])
async def list_items(
    db: Session = Depends(get_db),
    scope: TenantScope = Depends(require_module(MODULE_INVENTORY, ModuleAction.VIEW))
):
    return inventory_service.list_items(db, scope)


@router.post("", response_model=InventoryItemOut, status_code=201)
async def create_item(
    payload: InventoryItemCreate,
    db: Session = Depends(get_db),
    scope: TenantScope = Depends(require_module(MODULE_INVENTORY, ModuleAction.MODIFY))
):
    """Create an item; items assigned to a branch are checked against the caller's branch"""
    if payload.branch_id is not None:
        enforce(db, scope, MODULE_INVENTORY, ModuleAction.MODIFY, resource_branch_id=payload.branch_id)
    return inventory_service.create_item(
        db,
        scope,
        name=payload.name,
        category=payload.category,
        status=payload.status,
        branch_id=payload.branch_id,
    )
