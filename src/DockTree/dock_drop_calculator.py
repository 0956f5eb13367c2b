"""
Pure geometry for drag and drop: which zone of which tab group the cursor is
over, and where a dragged tab would land in a tab strip.

Nothing here touches the layout tree. Rectangles are supplied by the view
layer in screen coordinates.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence

from PySide6.QtCore import QPoint, QRect

from .dock_model import AnyNode, PanelNode, TabGroupNode
from .dock_zone import DockZone

DEFAULT_MARGIN_PERCENT = 0.25
DEFAULT_MIN_MARGIN = 30
DEFAULT_LINE_WIDTH = 3


@dataclass
class DockDropTarget:
    """A place a dragged panel could be dropped, and how to preview it."""
    target_node: AnyNode
    zone: DockZone
    hit_rect: QRect = field(default_factory=QRect)
    preview_rect: QRect = field(default_factory=QRect)
    # Set when the drop lands in a tab strip: the index to insert/reorder at.
    insert_index: Optional[int] = None

    @property
    def is_tab_insert(self) -> bool:
        return self.insert_index is not None

    def __repr__(self):
        return (f"DockDropTarget(zone={self.zone.name}, target={self.target_node!r}, "
                f"hit={self.hit_rect}, preview={self.preview_rect}, index={self.insert_index})")


@dataclass
class TabStripGeometry:
    """Screen geometry of one group's tab strip, supplied by the view layer."""
    group: TabGroupNode
    header_rect: QRect
    tab_rects: list[QRect] = field(default_factory=list)
    group_bounds: Optional[QRect] = None


class DockDropCalculator:
    """Static helpers computing drop zones, hit tests and tab insert positions."""

    @staticmethod
    def margin_size(bounds: QRect, margin_percent: float = DEFAULT_MARGIN_PERCENT,
                    min_margin: int = DEFAULT_MIN_MARGIN) -> int:
        """
        Edge margin thickness: a share of the smaller dimension, floored at
        min_margin and capped at a third so the center never vanishes.
        """
        smallest = min(bounds.width(), bounds.height())
        margin = int(smallest * margin_percent)
        margin = max(margin, min_margin)
        return min(margin, smallest // 3)

    @staticmethod
    def calculate_drop_zones(target_node: Optional[AnyNode], bounds: QRect,
                             margin_percent: float = DEFAULT_MARGIN_PERCENT,
                             min_margin: int = DEFAULT_MIN_MARGIN) -> list[DockDropTarget]:
        """
        Builds the five drop zones of a node.

        Args:
            target_node: The node that would receive the drop
            bounds: Screen rectangle of that node
            margin_percent: Share of the smaller dimension used for edge margins
            min_margin: Lower bound for the margin in pixels

        Returns:
            list: Left, Right, Top, Bottom and Center targets, or an empty list
            for a missing node or an empty rectangle.
        """
        if target_node is None or bounds.width() <= 0 or bounds.height() <= 0:
            return []

        x, y, w, h = bounds.x(), bounds.y(), bounds.width(), bounds.height()
        margin = DockDropCalculator.margin_size(bounds, margin_percent, min_margin)

        # Edge previews show the half the new group will occupy after the split.
        return [
            DockDropTarget(target_node, DockZone.LEFT,
                           QRect(x, y, margin, h),
                           QRect(x, y, w // 2, h)),
            DockDropTarget(target_node, DockZone.RIGHT,
                           QRect(x + w - margin, y, margin, h),
                           QRect(x + w // 2, y, w // 2, h)),
            DockDropTarget(target_node, DockZone.TOP,
                           QRect(x, y, w, margin),
                           QRect(x, y, w, h // 2)),
            DockDropTarget(target_node, DockZone.BOTTOM,
                           QRect(x, y + h - margin, w, margin),
                           QRect(x, y + h // 2, w, h // 2)),
            DockDropTarget(target_node, DockZone.CENTER,
                           QRect(x + margin, y + margin, w - 2 * margin, h - 2 * margin),
                           QRect(bounds)),
        ]

    @staticmethod
    def get_drop_target_at_position(drop_zones: Sequence[DockDropTarget],
                                    position: QPoint) -> Optional[DockDropTarget]:
        """Edge zones win over the center; the first matching zone is returned."""
        if not drop_zones:
            return None
        for zone in drop_zones:
            if zone.zone != DockZone.CENTER and zone.hit_rect.contains(position):
                return zone
        for zone in drop_zones:
            if zone.zone == DockZone.CENTER and zone.hit_rect.contains(position):
                return zone
        return None

    @staticmethod
    def find_drop_target(group_rects: Iterable[tuple[AnyNode, QRect]], position: QPoint,
                         margin_percent: float = DEFAULT_MARGIN_PERCENT,
                         min_margin: int = DEFAULT_MIN_MARGIN) -> Optional[DockDropTarget]:
        """
        Hit-tests every visible group in the order given (pre-order from the
        renderer). The first group with a matching zone wins; z-order and
        distance are not considered.
        """
        for node, rect in group_rects:
            zones = DockDropCalculator.calculate_drop_zones(node, rect, margin_percent, min_margin)
            target = DockDropCalculator.get_drop_target_at_position(zones, position)
            if target is not None:
                return target
        return None

    @staticmethod
    def calculate_tab_insert_index(tab_rects: Sequence[QRect], mouse_x: int) -> int:
        """Index of the first tab whose midpoint lies right of mouse_x."""
        for i, rect in enumerate(tab_rects):
            if mouse_x < rect.x() + rect.width() // 2:
                return i
        return len(tab_rects)

    @staticmethod
    def calculate_tab_index(group: Optional[TabGroupNode], tab_rects: Sequence[QRect], mouse_x: int,
                            dragged_panel: PanelNode) -> int:
        """
        Target index for reordering dragged_panel inside its own group.

        The raw insertion slot is shifted left by one when the dragged tab sits
        before it, since the tab is removed before being reinserted.

        Returns:
            int: Final index after removal, or -1 when no reorder is possible.
        """
        if group is None or len(group) <= 1 or not tab_rects:
            return -1

        dragged_index = group.index_of(dragged_panel)
        if dragged_index < 0:
            return -1

        target_index = DockDropCalculator.calculate_tab_insert_index(tab_rects, mouse_x)
        if dragged_index < target_index:
            target_index -= 1

        return max(0, min(target_index, len(group) - 1))

    @staticmethod
    def calculate_tab_reorder_preview_rect(group: Optional[TabGroupNode], tab_rects: Sequence[QRect],
                                           header_rect: QRect, target_index: int,
                                           dragged_panel: Optional[PanelNode] = None,
                                           group_bounds: Optional[QRect] = None,
                                           line_width: int = DEFAULT_LINE_WIDTH) -> QRect:
        """
        A thin vertical insertion line at the boundary where the dragged tab
        would land.

        Args:
            group: The group being reordered
            tab_rects: Current tab rectangles, dragged tab included
            header_rect: The tab strip; gives the line its top and height
            target_index: Final index as returned by calculate_tab_index
            dragged_panel: The tab being dragged
            group_bounds: Returned when there are no tabs to measure
            line_width: Width of the insertion line

        Returns:
            QRect: The insertion line, group_bounds as a fallback, or an empty
            rect when group is missing.
        """
        if group is None:
            return QRect()
        if not tab_rects:
            return QRect(group_bounds) if group_bounds is not None else QRect()

        dragged_index = group.index_of(dragged_panel) if dragged_panel is not None else -1

        # The dragged tab is still drawn, so the visual slot is one further right.
        visual_index = target_index
        if 0 <= dragged_index <= target_index:
            visual_index = target_index + 1

        if visual_index <= 0:
            insert_x = tab_rects[0].x()
        elif visual_index >= len(tab_rects):
            last = tab_rects[-1]
            insert_x = last.x() + last.width()
        else:
            insert_x = tab_rects[visual_index].x()

        return QRect(insert_x - line_width // 2, header_rect.y(), line_width, header_rect.height())
