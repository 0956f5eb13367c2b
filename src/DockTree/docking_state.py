from enum import Enum, auto


class DockingState(Enum):
    """What the drag/drop controller is doing right now."""
    IDLE = auto()
    DRAGGING_TAB = auto()
    DRAGGING_SPLITTER = auto()
