from datetime import datetime
from typing import Any, Dict, Iterable, Optional, Tuple, Union
from pydantic import BaseModel, Field

from charmcart.utils.helpers import generate_id, get_current_timestamp


def generate_snapshot_id() -> str:
    """Generate a unique design snapshot ID."""
    return generate_id("state")


class CharmPlacement(BaseModel):
    """One charm placed on the necklace."""
    id: str
    inventory_id: Optional[str] = None
    name: Optional[str] = None
    image_url: Optional[str] = None
    x: float
    y: float
    rotation: float = 0.0
    scale_x: float = 1.0
    scale_y: float = 1.0

    class Config:
        frozen = True
        populate_by_name = True


class DesignSnapshot(BaseModel):
    """
    Immutable capture of the design editor at one point in time.

    Annotations (milestone, export marker) are applied by building a new
    snapshot with `model_copy(update=...)`; the charm tuple is shared.
    """
    id: str = Field(default_factory=generate_snapshot_id)
    created_at: datetime = Field(default_factory=get_current_timestamp)
    charms: Tuple[CharmPlacement, ...] = ()
    necklace_id: Optional[str] = None
    milestone: Optional[str] = None
    exported_line_item_id: Optional[str] = None
    exported_at: Optional[datetime] = None

    class Config:
        frozen = True
        json_schema_extra = {
            "example": {
                "id": "state_5b1f0c9e2a7d4e61",
                "created_at": "2025-08-02T00:00:00",
                "charms": [
                    {"id": "charm_1", "inventory_id": "inv_heart", "x": 120.0, "y": 88.5, "rotation": 0.0}
                ],
                "necklace_id": "plain_chain",
                "milestone": None,
                "exported_line_item_id": None
            }
        }

    @classmethod
    def capture(
        cls,
        charms: Iterable[Union[CharmPlacement, Dict[str, Any]]],
        necklace_id: Optional[str] = None
    ) -> "DesignSnapshot":
        """Build a snapshot from editor charm data."""
        placements = tuple(
            charm if isinstance(charm, CharmPlacement) else CharmPlacement.model_validate(charm)
            for charm in charms
        )
        return cls(charms=placements, necklace_id=necklace_id)

    @property
    def is_exported(self) -> bool:
        return self.exported_line_item_id is not None

    @property
    def component_ids(self) -> Tuple[str, ...]:
        """Catalog identifiers referenced by the placed charms."""
        return tuple(charm.inventory_id for charm in self.charms if charm.inventory_id)

    def same_design(self, other: Optional["DesignSnapshot"], tolerance: float = 1.0) -> bool:
        """
        Semantic equality used to drop no-op edits.

        Same charm set, positions within `tolerance` on each axis, same rotation.
        """
        if other is None:
            return False
        if len(self.charms) != len(other.charms):
            return False

        others = {charm.id: charm for charm in other.charms}
        if len(others) != len(other.charms):
            # Duplicate ids: fall back to positional comparison
            pairs = zip(self.charms, other.charms)
        else:
            pairs = ((charm, others.get(charm.id)) for charm in self.charms)

        for mine, theirs in pairs:
            if theirs is None or mine.id != theirs.id or mine.inventory_id != theirs.inventory_id:
                return False
            if abs(mine.x - theirs.x) > tolerance or abs(mine.y - theirs.y) > tolerance:
                return False
            if mine.rotation != theirs.rotation:
                return False

        return True


class DesignMetadata(BaseModel):
    """Caller-supplied details for a design exported to the cart."""
    name: Optional[str] = None
    description: Optional[str] = None
    thumbnail_url: Optional[str] = None
    estimated_completion: str = "2-3 weeks"
    requires_consultation: bool = False


class DesignPayload(BaseModel):
    """Design data embedded in a custom design cart line item."""
    snapshot: DesignSnapshot
    metadata: DesignMetadata = Field(default_factory=DesignMetadata)
    exported_at: datetime = Field(default_factory=get_current_timestamp)
    version: str = "1.0"

    @property
    def component_ids(self) -> Tuple[str, ...]:
        return self.snapshot.component_ids
