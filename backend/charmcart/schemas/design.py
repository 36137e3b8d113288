from typing import List, Optional
from datetime import datetime
from pydantic import BaseModel, Field

from charmcart.models.cart import CartState
from charmcart.models.design import CharmPlacement, DesignMetadata, DesignSnapshot


class SaveDesignRequest(BaseModel):
    """Schema for recording an editor state in the design history."""
    charms: List[CharmPlacement] = Field(default_factory=list)
    necklace_id: Optional[str] = None

    class Config:
        json_schema_extra = {
            "example": {
                "charms": [
                    {"id": "charm_1", "inventory_id": "inv_heart_charm", "x": 120.0, "y": 88.5}
                ],
                "necklace_id": "plain_chain"
            }
        }


class MilestoneRequest(BaseModel):
    """Schema for labelling the current design state."""
    label: str = Field(min_length=1, max_length=100)


class ExportDesignRequest(BaseModel):
    """Schema for exporting the current design to the cart."""
    metadata: DesignMetadata = Field(default_factory=DesignMetadata)


class CreateBundleRequest(BaseModel):
    """Schema for creating a design bundle."""
    name: str = Field(min_length=1, max_length=100)


class DesignBundle(BaseModel):
    """Design state and cart state saved together."""
    bundle_name: str
    design_state: Optional[DesignSnapshot] = None
    cart_state: Optional[CartState] = None
    created_at: datetime
    version: str = "1.0"


class HistoryEntryInfo(BaseModel):
    """One row of the design history listing."""
    index: int
    id: str
    created_at: datetime
    is_current: bool
    charm_count: int
    milestone: Optional[str] = None
    exported_line_item_id: Optional[str] = None


class HistoryInfo(BaseModel):
    """Schema for design history state."""
    total: int
    current: int  # 1-based position, 0 when empty
    can_undo: bool
    can_redo: bool
    entries: List[HistoryEntryInfo]


class DesignStateResponse(BaseModel):
    """Schema for undo/redo/save responses on the design history."""
    changed: bool
    snapshot: Optional[DesignSnapshot] = None
    history: HistoryInfo
