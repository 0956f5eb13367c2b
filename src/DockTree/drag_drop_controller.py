import math
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Sequence

from PySide6.QtCore import QObject, QPoint, QRect, Qt, Signal

from .core.dock_settings import DockSettings
from .dock_drop_calculator import DockDropCalculator, DockDropTarget, TabStripGeometry
from .dock_errors import DockArgumentError
from .dock_model import AnyNode, LayoutModel, PanelNode, SplitNode, TabGroupNode
from .dock_operation import DockOperation
from .dock_zone import DockZone
from .docking_state import DockingState
from .layout_renderer import LayoutRenderer


def _distance(a: QPoint, b: QPoint) -> float:
    return math.hypot(a.x() - b.x(), a.y() - b.y())


@dataclass
class DragSession:
    """State of one tab drag, from press to release or cancel."""
    panel: PanelNode
    source_group: TabGroupNode
    start_pos: QPoint
    source_handle: Any = None
    threshold_exceeded: bool = False
    current_target: Optional[DockDropTarget] = None
    last_preview_position: Optional[QPoint] = None


@dataclass
class SplitterDragSession:
    """
    A splitter bar being dragged. The ratio shown while dragging lives only
    here in preview_ratio; the model is written once, on release.
    """
    split: SplitNode
    start_pos: QPoint
    start_ratio: float
    bounds: QRect
    available_size: int
    preview_ratio: float


class DragSignals(QObject):
    """Preview updates for the view layer."""

    # Args: the preview QRect, or None to hide the preview
    preview_changed = Signal(object)

    # Args: split node, ratio to display
    splitter_preview_changed = Signal(object, float)

    # Args: True if the drop changed the layout
    drag_finished = Signal(bool)


class DragDropController:
    """
    Drives tab and splitter drags for one layout model.

    The view layer feeds it pointer positions and screen rectangles; it never
    reads input devices itself. At most one drag of either kind is active.
    """

    def __init__(self, model: LayoutModel, settings: Optional[DockSettings] = None):
        """
        Args:
            model: The layout model drops are applied to
            settings: Thresholds and zone sizes; defaults to DockSettings()
        """
        self.model = model
        self.settings = settings or DockSettings()
        self.signals = DragSignals()
        self.state = DockingState.IDLE
        self.session: Optional[DragSession] = None
        self.splitter_session: Optional[SplitterDragSession] = None

    @property
    def is_dragging(self) -> bool:
        return self.state != DockingState.IDLE

    def _trace(self, message: str):
        if self.model.debug_mode:
            print(f"[DragDropController] {message}")

    def _cancel_active(self):
        if self.state == DockingState.DRAGGING_TAB:
            self._trace("drag already in progress, cancelling the previous drag")
            self.cancel_drag()
        elif self.state == DockingState.DRAGGING_SPLITTER:
            self._trace("splitter drag in progress, cancelling it")
            self.cancel_splitter_drag()

    # --- Tab drags ---

    def begin_drag(self, panel: PanelNode, source_group: TabGroupNode, start_pos: QPoint,
                   source_handle: Any = None) -> DragSession:
        """
        Starts dragging a tab. Nothing moves until the pointer travels past
        the drag threshold.

        Args:
            panel: The panel whose tab was pressed
            source_group: The group showing that tab
            start_pos: Pointer position at the press
            source_handle: Opaque view object for the pressed tab
        """
        if panel is None:
            raise DockArgumentError("panel is required")
        if source_group is None:
            raise DockArgumentError("source_group is required")
        if source_group.index_of(panel) < 0:
            raise DockArgumentError(f"Panel '{panel.id}' is not in the source group.")

        self._cancel_active()
        self.session = DragSession(panel, source_group, QPoint(start_pos), source_handle)
        self.state = DockingState.DRAGGING_TAB
        self._trace(f"begin drag of '{panel.title}' at ({start_pos.x()}, {start_pos.y()})")
        return self.session

    def update_drag(self, pos: QPoint, group_rects: Iterable[tuple[AnyNode, QRect]],
                    tab_headers: Optional[Sequence[TabStripGeometry]] = None) -> Optional[DockDropTarget]:
        """
        Recomputes the drop target for a pointer move.

        Returns:
            DockDropTarget: The current target, or None when there is none or
            the threshold has not been passed yet.
        """
        session = self.session
        if session is None:
            return None

        if not session.threshold_exceeded:
            if _distance(pos, session.start_pos) < self.settings.drag_threshold:
                return None
            session.threshold_exceeded = True
            self._trace("drag threshold exceeded")

        last = session.last_preview_position
        if last is not None and _distance(pos, last) < self.settings.preview_move_epsilon:
            return session.current_target
        session.last_preview_position = QPoint(pos)

        target = self.find_target(pos, group_rects, tab_headers)
        self._set_current_target(target)
        return target

    def end_drag(self, pos: Optional[QPoint] = None,
                 group_rects: Optional[Iterable[tuple[AnyNode, QRect]]] = None,
                 tab_headers: Optional[Sequence[TabStripGeometry]] = None) -> bool:
        """
        Finishes the drag and applies the drop. With a position the target is
        recomputed there, otherwise the last previewed target is used. The
        session always ends, even when the drop raises.

        Returns:
            bool: True if the layout changed.
        """
        session = self.session
        if session is None:
            return False

        changed = False
        try:
            if pos is not None and not session.threshold_exceeded:
                session.threshold_exceeded = _distance(pos, session.start_pos) >= self.settings.drag_threshold
            if not session.threshold_exceeded:
                self._trace("released below drag threshold, nothing to drop")
                return False

            if pos is not None:
                target = self.find_target(pos, group_rects or (), tab_headers)
            else:
                target = session.current_target
            changed = self._execute_drop(session, target)
            return changed
        finally:
            self._reset_drag()
            self.signals.drag_finished.emit(changed)

    def cancel_drag(self):
        """Discards the drag without touching the layout."""
        if self.session is None:
            return
        self._trace(f"cancel drag of '{self.session.panel.title}'")
        self._reset_drag()
        self.signals.drag_finished.emit(False)

    def tick(self, pos: QPoint, button_pressed: bool,
             group_rects: Iterable[tuple[AnyNode, QRect]],
             tab_headers: Optional[Sequence[TabStripGeometry]] = None) -> Optional[bool]:
        """
        Polling entry point, called once per frame while a drag may be active.
        A released button is handled before any target recompute.

        Returns:
            bool: The drop result when this tick ended a drag, else None.
        """
        if self.state == DockingState.DRAGGING_TAB:
            if not button_pressed:
                return self.end_drag(pos, group_rects, tab_headers)
            self.update_drag(pos, group_rects, tab_headers)
        elif self.state == DockingState.DRAGGING_SPLITTER:
            if not button_pressed:
                return self.end_splitter_drag()
            self.update_splitter_drag(pos)
        return None

    def find_target(self, pos: QPoint, group_rects: Iterable[tuple[AnyNode, QRect]],
                    tab_headers: Optional[Sequence[TabStripGeometry]] = None) -> Optional[DockDropTarget]:
        """
        Resolves the drop target under pos. Tab strips are checked first,
        then the edge and center zones of each group.
        """
        session = self.session
        for strip in tab_headers or ():
            if not strip.header_rect.contains(pos):
                continue
            target = self._tab_strip_target(strip, pos, session.panel if session else None)
            if target is not None:
                return target

        return DockDropCalculator.find_drop_target(group_rects, pos,
                                                   self.settings.margin_percent, self.settings.min_margin)

    def _tab_strip_target(self, strip: TabStripGeometry, pos: QPoint,
                          panel: Optional[PanelNode]) -> Optional[DockDropTarget]:
        group = strip.group
        line_width = self.settings.tab_insert_line_width

        if panel is not None and group.index_of(panel) >= 0:
            index = DockDropCalculator.calculate_tab_index(group, strip.tab_rects, pos.x(), panel)
            if index < 0:
                return None
            preview = DockDropCalculator.calculate_tab_reorder_preview_rect(
                group, strip.tab_rects, strip.header_rect, index, panel, strip.group_bounds, line_width)
        else:
            index = DockDropCalculator.calculate_tab_insert_index(strip.tab_rects, pos.x())
            preview = DockDropCalculator.calculate_tab_reorder_preview_rect(
                group, strip.tab_rects, strip.header_rect, index, None, strip.group_bounds, line_width)
        return DockDropTarget(group, DockZone.CENTER, QRect(strip.header_rect), preview, index)

    def _set_current_target(self, target: Optional[DockDropTarget]):
        session = self.session
        previous = session.current_target
        session.current_target = target
        if previous is None and target is None:
            return
        if previous is not None and target is not None and previous.preview_rect == target.preview_rect:
            return
        self.signals.preview_changed.emit(target.preview_rect if target is not None else None)

    def _reset_drag(self):
        had_preview = self.session is not None and self.session.current_target is not None
        self.session = None
        if self.state == DockingState.DRAGGING_TAB:
            self.state = DockingState.IDLE
        if had_preview:
            self.signals.preview_changed.emit(None)

    def _resolve_group(self, group: TabGroupNode) -> TabGroupNode:
        """Maps a synthetic view group onto the real group holding its panel."""
        if not group.is_synthetic:
            return group
        DockOperation.normalize_root(self.model)
        return group.panels[0].parent

    def _execute_drop(self, session: DragSession, target: Optional[DockDropTarget]) -> bool:
        if target is None or target.zone == DockZone.NONE:
            self._trace("no drop target, panel stays in its source group")
            return False

        panel = session.panel
        node = target.target_node
        same_group = isinstance(node, TabGroupNode) and node.index_of(panel) >= 0

        with self.model.batch_update():
            if self.model.root_node is panel:
                DockOperation.normalize_root(self.model)

            if target.is_tab_insert:
                group = self._resolve_group(node)
                if same_group:
                    return DockOperation.reorder_tab(self.model, panel, group, target.insert_index)
                DockOperation.move_tab(self.model, panel, group, target.insert_index)
                return True

            if target.zone == DockZone.CENTER:
                if same_group:
                    self._trace("center drop on the source group, nothing to do")
                    return False
                DockOperation.move_tab(self.model, panel, self._resolve_group(node), -1)
                return True

            if isinstance(node, TabGroupNode):
                node = self._resolve_group(node)
            return DockOperation.split_dock(self.model, panel, node, target.zone, self.settings)

    # --- Splitter drags ---

    def begin_splitter_drag(self, split: SplitNode, start_pos: QPoint, split_bounds: QRect) -> SplitterDragSession:
        """
        Starts dragging the bar of split.

        Args:
            split: The split whose bar was pressed
            start_pos: Pointer position at the press
            split_bounds: Screen rectangle of the whole split node
        """
        if not isinstance(split, SplitNode):
            raise DockArgumentError("split is required")
        if not self.model.contains(split):
            raise DockArgumentError("split is not part of this layout")

        self._cancel_active()
        thickness = self.settings.splitter_thickness
        if split.orientation == Qt.Orientation.Horizontal:
            available = split_bounds.width() - thickness
        else:
            available = split_bounds.height() - thickness

        self.splitter_session = SplitterDragSession(split, QPoint(start_pos), split.split_ratio,
                                                    QRect(split_bounds), available, split.split_ratio)
        self.state = DockingState.DRAGGING_SPLITTER
        self._trace(f"begin splitter drag of {split!r}")
        return self.splitter_session

    def update_splitter_drag(self, pos: QPoint) -> Optional[float]:
        """Updates the preview ratio for a pointer move. The model is not touched."""
        session = self.splitter_session
        if session is None:
            return None

        ratio = session.start_ratio
        if session.available_size > 0:
            if session.split.orientation == Qt.Orientation.Horizontal:
                delta = pos.x() - session.start_pos.x()
            else:
                delta = pos.y() - session.start_pos.y()
            ratio = session.start_ratio + delta / session.available_size

        ratio = LayoutRenderer.clamp_ratio_to_min_sizes(session.split, ratio, session.bounds,
                                                        self.settings.splitter_thickness)
        if ratio != session.preview_ratio:
            session.preview_ratio = ratio
            self.signals.splitter_preview_changed.emit(session.split, ratio)
        return ratio

    def end_splitter_drag(self) -> bool:
        """
        Commits the previewed ratio in a single write.

        Returns:
            bool: True if the split ratio changed.
        """
        session = self.splitter_session
        if session is None:
            return False
        try:
            if abs(session.preview_ratio - session.start_ratio) <= 0.001:
                return False
            DockOperation.set_split_ratio(self.model, session.split, session.preview_ratio)
            self._trace(f"committed split ratio {session.split.split_ratio:.3f}")
            return True
        finally:
            self._reset_splitter()

    def cancel_splitter_drag(self):
        """Drops the preview and tells the view to show the stored ratio again."""
        session = self.splitter_session
        if session is None:
            return
        self._reset_splitter()
        self.signals.splitter_preview_changed.emit(session.split, session.split.split_ratio)

    def _reset_splitter(self):
        self.splitter_session = None
        if self.state == DockingState.DRAGGING_SPLITTER:
            self.state = DockingState.IDLE
