from enum import Enum


class DockZone(Enum):
    """Where, relative to a target node, a dragged panel is dropped."""
    NONE = "none"
    LEFT = "left"      # horizontal split, new group first
    RIGHT = "right"    # horizontal split, new group second
    TOP = "top"        # vertical split, new group first
    BOTTOM = "bottom"  # vertical split, new group second
    CENTER = "center"  # join the target group as a tab

    @property
    def is_edge(self) -> bool:
        return self in (DockZone.LEFT, DockZone.RIGHT, DockZone.TOP, DockZone.BOTTOM)
