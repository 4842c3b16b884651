"""
Inventory service
"""
from typing import List, Optional

from sqlalchemy.orm import Session

from workforce.core.errors import ValidationError
from workforce.db.session import with_read_retry
from workforce.models.inventory import InventoryItem
from workforce.models.user import Role
from workforce.services.audit_service import log_audit
from workforce.services.company_service import get_branch
from workforce.services.scope_service import TenantScope, resolve_identity


@with_read_retry
def list_items(db: Session, scope: TenantScope) -> List[InventoryItem]:
    """Company admins see the whole company; everyone else their branch plus unassigned items."""
    query = db.query(InventoryItem).filter(InventoryItem.company_id == scope.company_id)
    if scope.role != Role.COMPANY_ADMIN:
        query = query.filter(
            (InventoryItem.branch_id.is_(None)) | (InventoryItem.branch_id == scope.branch_id)
        )
    return query.order_by(InventoryItem.id).all()


def create_item(
    db: Session,
    scope: TenantScope,
    name: str,
    category: Optional[str] = None,
    status: str = "available",
    branch_id: Optional[int] = None,
) -> InventoryItem:
    if scope.company_id is None:
        raise ValidationError("Inventory items belong to a company; log in as a company user")
    if not name or not name.strip():
        raise ValidationError("Item name is required", fields=["name"])
    if branch_id is not None:
        get_branch(db, scope.company_id, branch_id)

    actor_id = resolve_identity(db, scope)
    item = InventoryItem(
        company_id=scope.company_id,
        branch_id=branch_id,
        name=name.strip(),
        category=category,
        status=status,
        created_by=actor_id,
    )
    db.add(item)
    db.commit()
    db.refresh(item)

    log_audit(
        db=db,
        actor_id=actor_id,
        action="CREATE",
        entity_type="inventory_items",
        entity_id=item.id,
        company_id=scope.company_id,
        meta={"name": item.name, "branch_id": branch_id},
    )
    return item
