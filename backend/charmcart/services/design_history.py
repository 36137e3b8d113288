"""
Bounded undo/redo history of design snapshots.
"""
import logging
from datetime import timedelta
from typing import Any, Callable, Dict, List, Optional

from charmcart.core.exceptions import NotFoundError, ValidationError
from charmcart.models.design import DesignSnapshot
from charmcart.schemas.design import HistoryEntryInfo, HistoryInfo
from charmcart.utils.helpers import get_current_timestamp

logger = logging.getLogger(__name__)


class DesignHistoryStack:
    """
    Ordered snapshots plus a cursor.

    The cursor is -1 only when the history is empty; otherwise it always
    indexes an entry. Snapshots are immutable, so the same objects are
    handed out to callers.
    """

    def __init__(self, max_size: int = 50, position_tolerance: float = 1.0):
        if max_size < 1:
            raise ValueError("max_size must be at least 1")

        self.max_size = max_size
        self.position_tolerance = position_tolerance
        self._entries: List[DesignSnapshot] = []
        self._cursor = -1

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def entries(self) -> List[DesignSnapshot]:
        return list(self._entries)

    def current(self) -> Optional[DesignSnapshot]:
        if self._cursor < 0:
            return None
        return self._entries[self._cursor]

    # ===========================================
    # Navigation
    # ===========================================

    def push(self, snapshot: DesignSnapshot) -> bool:
        """
        Record a confirmed edit.

        Returns:
            False when the snapshot matches the current entry and was dropped
        """
        if snapshot.same_design(self.current(), self.position_tolerance):
            return False

        del self._entries[self._cursor + 1:]
        self._entries.append(snapshot)
        self._cursor = len(self._entries) - 1

        if len(self._entries) > self.max_size:
            self._entries.pop(0)
            self._cursor -= 1

        return True

    def can_undo(self) -> bool:
        return self._cursor > 0

    def can_redo(self) -> bool:
        return self._cursor < len(self._entries) - 1

    def undo(self) -> Optional[DesignSnapshot]:
        """Step back one entry. Returns None at the oldest entry."""
        if not self.can_undo():
            return None
        self._cursor -= 1
        return self._entries[self._cursor]

    def redo(self) -> Optional[DesignSnapshot]:
        """Step forward one entry. Returns None at the newest entry."""
        if not self.can_redo():
            return None
        self._cursor += 1
        return self._entries[self._cursor]

    def jump_to(self, index: int) -> DesignSnapshot:
        if index < 0 or index >= len(self._entries):
            raise NotFoundError(f"No history entry at index {index}")
        self._cursor = index
        return self._entries[index]

    def clear(self) -> None:
        self._entries = []
        self._cursor = -1

    # ===========================================
    # Annotations
    # ===========================================

    def index_of(self, snapshot_id: str) -> Optional[int]:
        """Position of the entry with the given snapshot id, or None."""
        for index, snapshot in enumerate(self._entries):
            if snapshot.id == snapshot_id:
                return index
        return None

    def mark_milestone(self, label: str, index: Optional[int] = None) -> DesignSnapshot:
        """Label an entry (the current one by default) without moving the cursor."""
        return self._annotate(index, milestone=label)

    def mark_exported(self, line_item_id: str, index: Optional[int] = None) -> DesignSnapshot:
        """Mark an entry (the current one by default) as exported to a cart line item."""
        return self._annotate(
            index,
            exported_line_item_id=line_item_id,
            exported_at=get_current_timestamp()
        )

    def clear_exported(self, line_item_id: str) -> int:
        """
        Remove the exported marker from every entry exported as `line_item_id`.

        Returns:
            Number of entries un-marked
        """
        cleared = 0
        for index, snapshot in enumerate(self._entries):
            if snapshot.exported_line_item_id == line_item_id:
                self._entries[index] = snapshot.model_copy(
                    update={"exported_line_item_id": None, "exported_at": None}
                )
                cleared += 1
        return cleared

    def exported_snapshots(self) -> List[DesignSnapshot]:
        return [snapshot for snapshot in self._entries if snapshot.is_exported]

    def milestones(self) -> List[DesignSnapshot]:
        return [snapshot for snapshot in self._entries if snapshot.milestone]

    def _annotate(self, index: Optional[int], **changes: Any) -> DesignSnapshot:
        if index is None:
            index = self._cursor
        if not 0 <= index < len(self._entries):
            raise NotFoundError("No design state to annotate")

        annotated = self._entries[index].model_copy(update=changes)
        self._entries[index] = annotated
        return annotated

    # ===========================================
    # Inspection, import/export and maintenance
    # ===========================================

    def history_info(self) -> HistoryInfo:
        return HistoryInfo(
            total=len(self._entries),
            current=self._cursor + 1,
            can_undo=self.can_undo(),
            can_redo=self.can_redo(),
            entries=[
                HistoryEntryInfo(
                    index=index,
                    id=snapshot.id,
                    created_at=snapshot.created_at,
                    is_current=index == self._cursor,
                    charm_count=len(snapshot.charms),
                    milestone=snapshot.milestone,
                    exported_line_item_id=snapshot.exported_line_item_id
                )
                for index, snapshot in enumerate(self._entries)
            ]
        )

    def export_history(self) -> Dict[str, Any]:
        """JSON-ready dump of the whole history."""
        return {
            "entries": [snapshot.model_dump(mode="json") for snapshot in self._entries],
            "cursor": self._cursor,
            "max_size": self.max_size,
            "exported_at": get_current_timestamp().isoformat()
        }

    def import_history(self, data: Dict[str, Any]) -> int:
        """
        Replace the history with a previous `export_history` dump.

        Only the newest `max_size` entries are kept.

        Raises:
            ValidationError: the dump is malformed
        """
        try:
            entries = [DesignSnapshot.model_validate(entry) for entry in data["entries"]]
            cursor = int(data.get("cursor", len(entries) - 1))
        except (KeyError, TypeError, ValueError) as e:
            raise ValidationError(f"Invalid history data: {str(e)}") from e

        dropped = max(0, len(entries) - self.max_size)
        entries = entries[dropped:]

        self._entries = entries
        if entries:
            self._cursor = min(max(cursor - dropped, 0), len(entries) - 1)
        else:
            self._cursor = -1

        logger.info(f"Imported {len(entries)} history entries ({dropped} dropped)")
        return len(entries)

    def optimize(self) -> int:
        """
        Drop entries that repeat the previous entry's design.

        Milestones, exported entries and empty designs are always kept.

        Returns:
            Number of entries removed
        """
        def keep(index: int) -> bool:
            snapshot = self._entries[index]
            if index == 0 or snapshot.milestone or snapshot.is_exported or not snapshot.charms:
                return True
            return not snapshot.same_design(self._entries[index - 1], self.position_tolerance)

        return self._retain(keep)

    def cleanup_older_than(self, max_age: timedelta) -> int:
        """
        Drop entries created more than `max_age` ago.

        Milestones and the current entry are kept.
        """
        cutoff = get_current_timestamp() - max_age

        def keep(index: int) -> bool:
            snapshot = self._entries[index]
            return index == self._cursor or bool(snapshot.milestone) or snapshot.created_at >= cutoff

        return self._retain(keep)

    def _retain(self, keep: Callable[[int], bool]) -> int:
        kept_indices = [index for index in range(len(self._entries)) if keep(index)]
        removed = len(self._entries) - len(kept_indices)
        if not removed:
            return 0

        # Cursor moves to the nearest kept entry at or before it
        at_or_before = [i for i in kept_indices if i <= self._cursor]
        self._entries = [self._entries[i] for i in kept_indices]
        if not self._entries:
            self._cursor = -1
        else:
            self._cursor = max(len(at_or_before) - 1, 0)

        logger.info(f"Removed {removed} design history entries")
        return removed
