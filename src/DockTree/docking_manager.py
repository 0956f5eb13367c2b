from typing import Callable, Optional, Sequence, Iterable

from PySide6.QtCore import QObject, QPoint, QRect, Signal

from .core.dock_settings import DockSettings
from .core.panel_registry import PanelRegistry
from .dock_drop_calculator import TabStripGeometry
from .dock_model import AnyNode, LayoutModel, PanelNode, TabGroupNode
from .dock_operation import DockOperation
from .dock_zone import DockZone
from .docking_state import DockingState
from .drag_drop_controller import DragDropController, DragSession
from .model.layout_serializer import LayoutSerializer


class DockingSignals(QObject):
    """
    A collection of signals to allow applications to react to layout changes.
    """
    # Emitted whenever a panel is successfully docked.
    # Args: panel (PanelNode), tab group now holding it (TabGroupNode)
    panel_docked = Signal(object, object)

    # Emitted after a panel has been removed from the layout and the registry.
    # Args: panel id (str)
    panel_removed = Signal(str)

    # Emitted when the manager activates a panel, directly or by docking it.
    # Args: panel (PanelNode)
    active_panel_changed = Signal(object)

    # Relayed from the layout model once a change is complete.
    # Args: the new tree version
    layout_changed = Signal(int)


class DockingManager(QObject):
    """
    Entry point for applications: owns the layout model, the panel registry
    and the drag controller, and reports what happened through signals.
    """

    def __init__(self, settings: Optional[DockSettings] = None):
        super().__init__()
        self.settings = settings or DockSettings()
        self.model = LayoutModel()
        self.registry = PanelRegistry()
        self.controller = DragDropController(self.model, self.settings)
        self.signals = DockingSignals()
        self.panel_factory: Optional[Callable[[dict], Optional[PanelNode]]] = None
        self.debug_mode = False
        self._debug_report_connected = False
        self.model.signals.layout_changed.connect(self.signals.layout_changed)

    @property
    def state(self) -> DockingState:
        return self.controller.state

    def set_debug_mode(self, enabled: bool):
        """
        Enables or disables trace output and the printing of the layout state
        to the console after every change.
        """
        self.debug_mode = enabled
        self.model.debug_mode = enabled
        if enabled and not self._debug_report_connected:
            self.model.signals.layout_changed.connect(self._debug_report_layout)
            self._debug_report_connected = True
        elif not enabled and self._debug_report_connected:
            self.model.signals.layout_changed.disconnect(self._debug_report_layout)
            self._debug_report_connected = False

    def _debug_report_layout(self, version: int):
        print(f"[DockingManager] layout version {version}")
        self.model.pretty_print()

    def set_panel_factory(self, factory: Callable[[dict], Optional[PanelNode]]):
        """
        Sets the function used to recreate panels that are not registered when
        a saved layout is loaded. It receives the saved panel dictionary.
        """
        self.panel_factory = factory

    # --- Panels ---

    def register_panel(self, panel: PanelNode):
        """
        Registers a panel with the manager without placing it in the layout.
        Raises ValueError if a panel with the same id is already registered.
        """
        self.registry.register(panel)

    def add_panel(self, panel: PanelNode, target: Optional[AnyNode] = None,
                  zone: DockZone = DockZone.CENTER) -> bool:
        """
        Registers a panel if needed and docks it. Without a target it goes
        into the first tab group of the layout.
        """
        if not self.registry.is_registered(panel.id):
            self.register_panel(panel)
        if target is None:
            DockOperation.insert_panel(self.model, panel)
            self._report_docked(panel)
            return True
        return self.dock_panel(panel, target, zone)

    def remove_panel(self, panel_id: str) -> bool:
        """
        Takes a panel out of the layout and the registry and releases its
        content.

        Returns:
            bool: False if no panel with that id is registered.
        """
        if not panel_id:
            return False
        panel = self.registry.get(panel_id)
        if panel is None:
            return False

        if self.model.root_node is panel:
            self.model.root_node = None
        else:
            DockOperation.remove_panel(self.model, panel)
        self.registry.unregister(panel_id)
        panel.clear_cached_content()
        self.signals.panel_removed.emit(panel_id)
        return True

    def find_panel(self, panel_id: str) -> Optional[PanelNode]:
        """Looks a panel up by id, registered or merely placed in the layout."""
        return self.registry.get(panel_id) or self.model.find_panel_by_id(panel_id)

    def get_all_panels(self) -> list[PanelNode]:
        """Returns all panels currently placed in the layout."""
        return self.model.get_all_panels()

    def get_all_tab_groups(self) -> list[TabGroupNode]:
        return self.model.get_all_tab_groups()

    def dock_panel(self, panel: PanelNode, target: AnyNode, zone: DockZone, index: int = -1) -> bool:
        """
        Programmatically docks a panel relative to a target.

        Args:
            panel: The panel to dock. It must be registered.
            target: A tab group, a split, or a panel standing for its tab group
            zone: CENTER to dock as a tab, an edge to split
            index: Tab position for CENTER docking

        Returns:
            bool: True if the layout changed.
        """
        if panel is None or not self.registry.is_registered(panel.id):
            print("ERROR: Panel is not valid or not managed by this manager.")
            return False

        if isinstance(target, PanelNode):
            target = target.parent
            if not isinstance(target, TabGroupNode):
                print("ERROR: Target panel is not placed in a tab group.")
                return False

        if zone == DockZone.CENTER and isinstance(target, TabGroupNode):
            DockOperation.dock_as_tab(self.model, panel, target, index)
            changed = True
        else:
            changed = DockOperation.split_dock(self.model, panel, target, zone, self.settings)

        if changed:
            self._report_docked(panel)
        return changed

    def activate_panel(self, panel_id: str) -> bool:
        """Makes a placed panel the active tab of its group."""
        panel = self.model.find_panel_by_id(panel_id)
        if panel is None or not isinstance(panel.parent, TabGroupNode):
            return False
        group = panel.parent
        if group.active_panel_id != panel.id:
            with self.model.batch_update():
                group.set_active_panel(panel.id)
            self.signals.active_panel_changed.emit(panel)
        return True

    def _report_docked(self, panel: PanelNode):
        group = panel.parent
        self.signals.panel_docked.emit(panel, group)
        if isinstance(group, TabGroupNode) and group.active_panel_id == panel.id:
            self.signals.active_panel_changed.emit(panel)

    # --- Drag & drop pass-throughs ---

    def begin_drag(self, panel: PanelNode, source_group: TabGroupNode, start_pos: QPoint,
                   source_handle=None) -> DragSession:
        return self.controller.begin_drag(panel, source_group, start_pos, source_handle)

    def update_drag(self, pos: QPoint, group_rects: Iterable[tuple[AnyNode, QRect]],
                    tab_headers: Optional[Sequence[TabStripGeometry]] = None):
        return self.controller.update_drag(pos, group_rects, tab_headers)

    def end_drag(self, pos: Optional[QPoint] = None,
                 group_rects: Optional[Iterable[tuple[AnyNode, QRect]]] = None,
                 tab_headers: Optional[Sequence[TabStripGeometry]] = None) -> bool:
        """Applies the drop of the current tab drag. Returns True if the layout changed."""
        session = self.controller.session
        changed = self.controller.end_drag(pos, group_rects, tab_headers)
        if changed and session is not None:
            self._report_docked(session.panel)
        return changed

    def cancel_drag(self):
        self.controller.cancel_drag()
        self.controller.cancel_splitter_drag()

    def tick(self, pos: QPoint, button_pressed: bool, group_rects: Iterable[tuple[AnyNode, QRect]],
             tab_headers: Optional[Sequence[TabStripGeometry]] = None) -> Optional[bool]:
        """Per-frame polling; see DragDropController.tick()."""
        if self.controller.state == DockingState.DRAGGING_TAB and not button_pressed:
            return self.end_drag(pos, group_rects, tab_headers)
        return self.controller.tick(pos, button_pressed, group_rects, tab_headers)

    # --- Persistence ---

    def save_layout_to_bytearray(self) -> bytes:
        return LayoutSerializer.save_layout_to_bytearray(self.model)

    def load_layout_from_bytearray(self, data: bytes) -> bool:
        """
        Restores a saved layout. Registered panels are reused by id; others
        are created through the panel factory and registered.
        """
        self.cancel_drag()
        fallback = self.panel_factory or LayoutSerializer.default_panel_factory
        loaded = LayoutSerializer.load_layout_from_bytearray(self.model, data,
                                                             self.registry.panel_factory(fallback))
        if loaded:
            for panel in self.model.get_all_panels():
                if not self.registry.is_registered(panel.id):
                    self.registry.register(panel)
        return loaded
