"""
Tunable constants for drop-zone hit testing and drag handling.
"""

from dataclasses import dataclass


@dataclass
class DockSettings:
    """Settings shared by the drop calculator, drag controller and renderer."""
    drag_threshold: int = 5            # pixels before a press becomes a drag
    preview_move_epsilon: int = 5      # skip drop-target recompute below this move
    margin_percent: float = 0.25
    min_margin: int = 30
    tab_insert_line_width: int = 3
    splitter_thickness: int = 4
    left_top_ratio: float = 0.3
    right_bottom_ratio: float = 0.7

    def __post_init__(self):
        if self.drag_threshold < 0:
            raise ValueError("drag_threshold cannot be negative")
        if not 0.0 < self.margin_percent < 0.5:
            raise ValueError("margin_percent must be between 0 and 0.5")
        if self.splitter_thickness < 0:
            raise ValueError("splitter_thickness cannot be negative")
