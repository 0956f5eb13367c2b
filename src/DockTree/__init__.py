from .dock_errors import DockError, DockArgumentError, DockInvariantError, DuplicatePanelError
from .dock_zone import DockZone
from .dock_model import PanelNode, TabGroupNode, SplitNode, LayoutModel, LayoutSignals
from .dock_operation import DockOperation
from .dock_drop_calculator import DockDropCalculator, DockDropTarget, TabStripGeometry
from .docking_state import DockingState
from .drag_drop_controller import DragDropController, DragSession, SplitterDragSession
from .layout_renderer import LayoutRenderer
from .core.dock_settings import DockSettings
from .core.panel_registry import PanelRegistry
from .model.layout_serializer import LayoutSerializer
from .docking_manager import DockingManager, DockingSignals

__all__ = [
    "DockError", "DockArgumentError", "DockInvariantError", "DuplicatePanelError",
    "DockZone", "PanelNode", "TabGroupNode", "SplitNode", "LayoutModel", "LayoutSignals",
    "DockOperation", "DockDropCalculator", "DockDropTarget", "TabStripGeometry",
    "DockingState", "DragDropController", "DragSession", "SplitterDragSession",
    "LayoutRenderer", "DockSettings", "PanelRegistry", "LayoutSerializer",
    "DockingManager", "DockingSignals",
]
