"""
Inventory schemas
"""
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class InventoryItemCreate(BaseModel):
    name: str = Field(..., min_length=1)
    category: Optional[str] = None
    status: str = "available"
    branch_id: Optional[int] = None


class InventoryItemOut(BaseModel):
    id: int
    company_id: int
    branch_id: Optional[int] = None
    name: str
    category: Optional[str] = None
    status: str

    model_config = ConfigDict(from_attributes=True)
