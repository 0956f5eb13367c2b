#!/usr/bin/env python3
"""
Console walkthrough of the DockTree layout engine.

Builds an IDE-style layout, then docks, drags and saves panels while
printing the tree after each step.
"""

import sys

from PySide6.QtCore import QPoint, QRect, Qt

from DockTree.core.dock_settings import DockSettings
from DockTree.dock_model import PanelNode, SplitNode, TabGroupNode
from DockTree.dock_zone import DockZone
from DockTree.docking_manager import DockingManager
from DockTree.layout_renderer import LayoutRenderer

SCREEN = QRect(0, 0, 1280, 800)


def create_ide_layout(manager: DockingManager) -> dict[str, PanelNode]:
    """
    Layout: [Left sidebar 25%] | [Documents 70% over Output 30%]

    Returns:
        dict: The demo panels by id
    """
    panels = {
        "solution_explorer": PanelNode("solution_explorer", "Solution Explorer", can_close=False),
        "properties": PanelNode("properties", "Properties"),
        "output": PanelNode("output", "Output"),
        "document1": PanelNode("document1", "Document 1"),
        "document2": PanelNode("document2", "Document 2"),
    }
    for panel in panels.values():
        manager.register_panel(panel)

    left_group = TabGroupNode(panels=[panels["solution_explorer"], panels["properties"]])
    left_group.set_active_panel("solution_explorer")

    bottom_group = TabGroupNode(panels=[panels["output"]])

    center_group = TabGroupNode(panels=[panels["document1"], panels["document2"]])
    center_group.set_active_panel("document1")

    center_bottom_split = SplitNode(orientation=Qt.Orientation.Vertical,
                                    first_child=center_group, second_child=bottom_group,
                                    split_ratio=0.7)
    root_split = SplitNode(orientation=Qt.Orientation.Horizontal,
                           first_child=left_group, second_child=center_bottom_split,
                           split_ratio=0.25)
    manager.model.root_node = root_split
    return panels


def print_geometry(manager: DockingManager):
    for group, rect in LayoutRenderer.visible_tab_groups(manager.model, SCREEN,
                                                         manager.settings.splitter_thickness):
        titles = ", ".join(p.title for p in group.panels)
        print(f"  [{titles}] at ({rect.x()}, {rect.y()}, {rect.width()}x{rect.height()})")


def main():
    manager = DockingManager(DockSettings())
    if "--debug" in sys.argv:
        manager.set_debug_mode(True)

    manager.signals.panel_docked.connect(
        lambda panel, group: print(f"Docked '{panel.title}' into {group!r}"))
    manager.signals.panel_removed.connect(lambda panel_id: print(f"Removed '{panel_id}'"))

    panels = create_ide_layout(manager)
    print("Initial layout:")
    manager.model.pretty_print()
    print_geometry(manager)

    # Move Properties below the documents.
    manager.dock_panel(panels["properties"], panels["output"], DockZone.TOP)
    manager.model.pretty_print()

    # Drag Document 2 onto the right edge of the Output group.
    groups = LayoutRenderer.visible_tab_groups(manager.model, SCREEN, manager.settings.splitter_thickness)
    output_rect = next(rect for group, rect in groups if group.contains_panel_id("output"))
    source = panels["document2"].parent
    target = QPoint(output_rect.x() + output_rect.width() - 5, output_rect.y() + output_rect.height() // 2)

    manager.begin_drag(panels["document2"], source, QPoint(400, 100))
    manager.tick(target, True, groups)
    manager.tick(target, False, groups)
    manager.model.pretty_print()

    manager.remove_panel("output")
    manager.model.pretty_print()

    data = manager.save_layout_to_bytearray()
    print(f"Saved layout: {len(data)} bytes, version {manager.model.version}")
    print_geometry(manager)
    return 0


if __name__ == "__main__":
    sys.exit(main())
