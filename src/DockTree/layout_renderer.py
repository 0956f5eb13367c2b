from typing import Optional

from PySide6.QtCore import QRect, Qt

from .dock_model import AnyNode, LayoutModel, PanelNode, SplitNode, TabGroupNode

DEFAULT_SPLITTER_THICKNESS = 4


class LayoutRenderer:
    """
    Turns a layout model into the geometry a view layer needs: which node to
    render at the top, where every group sits, and where the splitter bars are.
    No widgets are created here.
    """

    @staticmethod
    def build_view_tree(model: LayoutModel) -> Optional[AnyNode]:
        """
        Returns the node the view should render. A bare panel at the root is
        shown inside a synthetic tab group that is never attached to the model.
        """
        if model is None or model.root_node is None:
            return None
        root = model.root_node
        if isinstance(root, PanelNode):
            return TabGroupNode.synthetic(root)
        return root

    @staticmethod
    def compute_layout(model: LayoutModel, bounds: QRect,
                       splitter_thickness: int = DEFAULT_SPLITTER_THICKNESS) -> dict[str, QRect]:
        """
        Lays the tree out inside bounds.

        Args:
            model: The layout to arrange
            bounds: Rectangle available to the root
            splitter_thickness: Width of the bar between split children

        Returns:
            dict: node id -> QRect for every node of the view tree. Panels map
            to the rectangle of their tab group.
        """
        rects: dict[str, QRect] = {}
        root = LayoutRenderer.build_view_tree(model)
        if root is not None:
            LayoutRenderer._arrange_node(root, QRect(bounds), splitter_thickness, rects, {})
        return rects

    @staticmethod
    def compute_splitter_rects(model: LayoutModel, bounds: QRect,
                               splitter_thickness: int = DEFAULT_SPLITTER_THICKNESS) -> dict[str, QRect]:
        """Rectangles of the splitter bars, keyed by split node id."""
        bars: dict[str, QRect] = {}
        root = LayoutRenderer.build_view_tree(model)
        if root is not None:
            LayoutRenderer._arrange_node(root, QRect(bounds), splitter_thickness, {}, bars)
        return bars

    @staticmethod
    def visible_tab_groups(model: LayoutModel, bounds: QRect,
                           splitter_thickness: int = DEFAULT_SPLITTER_THICKNESS) -> list[tuple[TabGroupNode, QRect]]:
        """Pre-order list of (group, rect) pairs, the hit-test order for drops."""
        root = LayoutRenderer.build_view_tree(model)
        if root is None:
            return []
        rects: dict[str, QRect] = {}
        LayoutRenderer._arrange_node(root, QRect(bounds), splitter_thickness, rects, {})

        result = []
        stack = [root]
        while stack:
            node = stack.pop()
            if isinstance(node, TabGroupNode):
                result.append((node, rects[node.id]))
            elif isinstance(node, SplitNode):
                stack.extend(reversed(node.get_children()))
        return result

    @staticmethod
    def split_child_sizes(split: SplitNode, available: int) -> tuple[int, int]:
        """
        Sizes of the two children along the split axis: the ratio share first,
        then the minimum sizes, never negative.
        """
        first = int(available * split.split_ratio)
        second = available - first
        if first < split.min_first_size:
            first = split.min_first_size
            second = available - first
        if second < split.min_second_size:
            second = split.min_second_size
            first = available - second
        return max(0, first), max(0, second)

    @staticmethod
    def clamp_ratio_to_min_sizes(split: SplitNode, ratio: float, bounds: QRect,
                                 splitter_thickness: int = DEFAULT_SPLITTER_THICKNESS) -> float:
        """
        Restricts ratio so both children keep their minimum size within bounds.
        Returns ratio unchanged when there is no room at all.
        """
        if split.orientation == Qt.Orientation.Horizontal:
            available = bounds.width() - splitter_thickness
        else:
            available = bounds.height() - splitter_thickness
        if available <= 0:
            return ratio

        min_ratio = split.min_first_size / available
        max_ratio = (available - split.min_second_size) / available
        # Minimum sizes that do not fit favour the first child.
        clamped = max(min_ratio, min(ratio, max_ratio))
        return max(0.0, min(1.0, clamped))

    @staticmethod
    def _arrange_node(node: AnyNode, rect: QRect, thickness: int,
                      rects: dict[str, QRect], bars: dict[str, QRect]):
        rects[node.id] = rect
        if isinstance(node, TabGroupNode):
            for panel in node.panels:
                rects[panel.id] = QRect(rect)
            return
        if not isinstance(node, SplitNode):
            return

        x, y, w, h = rect.x(), rect.y(), rect.width(), rect.height()
        if node.orientation == Qt.Orientation.Horizontal:
            first, second = LayoutRenderer.split_child_sizes(node, w - thickness)
            first_rect = QRect(x, y, first, h)
            bar_rect = QRect(x + first, y, thickness, h)
            second_rect = QRect(x + first + thickness, y, second, h)
        else:
            first, second = LayoutRenderer.split_child_sizes(node, h - thickness)
            first_rect = QRect(x, y, w, first)
            bar_rect = QRect(x, y + first, w, thickness)
            second_rect = QRect(x, y + first + thickness, w, second)

        bars[node.id] = bar_rect
        if node.first_child is not None:
            LayoutRenderer._arrange_node(node.first_child, first_rect, thickness, rects, bars)
        if node.second_child is not None:
            LayoutRenderer._arrange_node(node.second_child, second_rect, thickness, rects, bars)
