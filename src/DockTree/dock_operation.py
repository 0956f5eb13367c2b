from __future__ import annotations
from typing import Optional

from PySide6.QtCore import Qt

from .core.dock_settings import DockSettings
from .dock_errors import DockArgumentError, DockInvariantError, DuplicatePanelError
from .dock_model import AnyNode, DockNode, LayoutModel, PanelNode, SplitNode, TabGroupNode, _is_ancestor
from .dock_zone import DockZone

_DEFAULT_SETTINGS = DockSettings()


def _trace(model: LayoutModel, message: str):
    if model.debug_mode:
        print(f"[DockOperation] {message}")


class DockOperation:
    """
    The only sanctioned way to change the structure of a layout tree.

    Every public method validates its inputs before touching the tree and runs
    inside a single ``model.batch_update()``, so each call produces exactly one
    change notification, fired after any cascading cleanup has finished.
    """

    # --- Tab operations ---

    @staticmethod
    def dock_as_tab(model: LayoutModel, panel: PanelNode, target_group: TabGroupNode, index: int = -1):
        """
        Moves a panel into target_group at index and makes it the active tab.

        Args:
            model: The layout model to operate on
            panel: The panel to dock. It may already live in another group.
            target_group: The receiving tab group
            index: Insert position; -1 or out of range appends
        """
        DockOperation._require(model, "model")
        DockOperation._require(panel, "panel", PanelNode)
        DockOperation._require(target_group, "target_group", TabGroupNode)
        DockOperation._require_in_model(model, target_group, "target_group")
        if target_group.contains_panel_id(panel.id):
            raise DuplicatePanelError(panel.id)
        DockOperation._require_unique_in_tree(model, panel)

        source_group = DockOperation._source_group(model, panel)

        with model.batch_update():
            # Re-home first; the source is only collapsed once the panel has a new parent.
            target_group.add_panel(panel, index)
            target_group.set_active_panel(panel.id)
            if source_group is not None and source_group.is_empty:
                DockOperation._cleanup_empty_tab_group(model, source_group)

        _trace(model, f"docked '{panel.title}' as tab at {target_group.index_of(panel)} of {target_group!r}")

    @staticmethod
    def move_tab(model: LayoutModel, panel: PanelNode, target_group: TabGroupNode, index: int = -1):
        """Moves a panel to another tab group. Same as dock_as_tab."""
        DockOperation.dock_as_tab(model, panel, target_group, index)

    @staticmethod
    def reorder_tab(model: LayoutModel, panel: PanelNode, group: TabGroupNode, new_index: int) -> bool:
        """
        Moves a panel to new_index within its own group. new_index is the final
        position after removal; -1 means last.

        Returns:
            bool: False if the panel was already at that position.
        """
        DockOperation._require(model, "model")
        DockOperation._require(panel, "panel", PanelNode)
        DockOperation._require(group, "group", TabGroupNode)
        if panel.parent is not group:
            raise DockInvariantError("Panel is not in the specified target group.")

        with model.batch_update():
            moved = group.reorder_panel(panel, new_index)

        if moved:
            _trace(model, f"reordered '{panel.title}' to index {group.index_of(panel)}")
        else:
            _trace(model, f"'{panel.title}' already at index {group.index_of(panel)}, no change needed")
        return moved

    @staticmethod
    def remove_panel(model: LayoutModel, panel: PanelNode) -> bool:
        """
        Removes a panel from the layout and collapses its group if it empties.

        Returns:
            bool: False if the panel was not in any tab group.
        """
        DockOperation._require(model, "model")
        DockOperation._require(panel, "panel", PanelNode)

        group = panel.parent
        if not isinstance(group, TabGroupNode):
            _trace(model, f"'{panel.title}' is not in a tab group, nothing to remove")
            return False

        in_model = model.contains(group)
        with model.batch_update():
            group.remove_panel(panel)
            if in_model and group.is_empty:
                DockOperation._cleanup_empty_tab_group(model, group)

        _trace(model, f"removed '{panel.title}'")
        return True

    # --- Split operations ---

    @staticmethod
    def split_dock(model: LayoutModel, panel: PanelNode, target_node: AnyNode, zone: DockZone,
                   settings: Optional[DockSettings] = None) -> bool:
        """
        Docks a panel beside target_node by replacing the target with a new split
        holding the target and a fresh tab group for the panel.

        Left and Top put the new group first, Right and Bottom put it second.
        The Center zone docks the panel as a tab of the target instead.

        Args:
            model: The layout model to operate on
            panel: The panel to dock
            target_node: The tab group or split to split
            zone: Which side of the target receives the panel
            settings: Supplies the split ratios; defaults to DockSettings()

        Returns:
            bool: False if the request was a no-op (the last panel of a group
            split against its own group).
        """
        DockOperation._require(model, "model")
        DockOperation._require(panel, "panel", PanelNode)
        DockOperation._require(target_node, "target_node")
        if not isinstance(zone, DockZone) or zone == DockZone.NONE:
            raise DockArgumentError(f"Invalid zone for docking: {zone!r}")

        if zone == DockZone.CENTER:
            if isinstance(target_node, TabGroupNode):
                DockOperation.dock_as_tab(model, panel, target_node, -1)
                return True
            raise DockArgumentError("Cannot dock to center of a non-TabGroup node.")

        if not isinstance(target_node, (TabGroupNode, SplitNode)):
            raise DockArgumentError(f"Cannot split a {type(target_node).__name__}.")
        DockOperation._require_in_model(model, target_node, "target_node")
        if isinstance(target_node, TabGroupNode) and target_node.is_empty:
            # An empty group has nothing to split against; the panel fills it.
            DockOperation.dock_as_tab(model, panel, target_node, -1)
            return True
        if not DockOperation.validate_dock_operation(panel, target_node):
            raise DockArgumentError("A panel cannot be docked onto itself or one of its ancestors.")
        DockOperation._require_unique_in_tree(model, panel)

        source_group = DockOperation._source_group(model, panel)
        dragging_from_target = source_group is target_node
        if dragging_from_target and len(source_group) <= 1:
            # Would leave an empty group on one side of the new split.
            _trace(model, f"refusing to split '{panel.title}' against its own single-panel group")
            return False

        settings = settings or _DEFAULT_SETTINGS
        orientation = Qt.Orientation.Horizontal if zone in (DockZone.LEFT, DockZone.RIGHT) else Qt.Orientation.Vertical
        new_group_first = zone in (DockZone.LEFT, DockZone.TOP)
        ratio = settings.left_top_ratio if new_group_first else settings.right_bottom_ratio

        with model.batch_update():
            empty_group_to_cleanup = None
            if source_group is not None:
                target_is_descendant = _is_ancestor(source_group, target_node)
                source_group.remove_panel(panel)
                if source_group.is_empty and not dragging_from_target and not target_is_descendant:
                    empty_group_to_cleanup = source_group

            new_group = TabGroupNode(panels=[panel])

            # Capture the target's slot and free it before the split adopts the target.
            target_parent = target_node.parent
            was_first_child = isinstance(target_parent, SplitNode) and target_parent.first_child is target_node
            if isinstance(target_parent, SplitNode):
                target_parent.replace_child(target_node, None)

            split = SplitNode(orientation=orientation, split_ratio=ratio)
            if new_group_first:
                split.first_child = new_group
                split.second_child = target_node
            else:
                split.first_child = target_node
                split.second_child = new_group

            if target_parent is None:
                model.root_node = split
            elif was_first_child:
                target_parent.first_child = split
            else:
                target_parent.second_child = split

            if empty_group_to_cleanup is not None:
                DockOperation._cleanup_empty_tab_group(model, empty_group_to_cleanup)

        _trace(model, f"split-docked '{panel.title}' {zone.value} of {target_node!r}")
        return True

    @staticmethod
    def set_split_ratio(model: LayoutModel, split: SplitNode, ratio: float) -> float:
        """Writes a committed splitter position. Returns the clamped ratio."""
        DockOperation._require(model, "model")
        DockOperation._require(split, "split", SplitNode)
        DockOperation._require_in_model(model, split, "split")
        with model.batch_update():
            split.split_ratio = ratio
        return split.split_ratio

    # --- Bootstrap helpers ---

    @staticmethod
    def normalize_root(model: LayoutModel):
        """Wraps a bare panel root in a tab group of its own."""
        DockOperation._require(model, "model")
        root = model.root_node
        if isinstance(root, PanelNode):
            with model.batch_update():
                group = TabGroupNode()
                group.add_panel(root)
                model.root_node = group

    @staticmethod
    def insert_panel(model: LayoutModel, panel: PanelNode):
        """
        Places a loose panel into the first tab group of the layout, creating a
        root group when the layout is empty.
        """
        DockOperation._require(model, "model")
        DockOperation._require(panel, "panel", PanelNode)
        DockOperation._require_unique_in_tree(model, panel)

        with model.batch_update():
            DockOperation.normalize_root(model)
            if model.root_node is None:
                model.root_node = TabGroupNode()
            first_group = model.get_all_tab_groups()[0]
            DockOperation.dock_as_tab(model, panel, first_group, -1)

    # --- Cleanup ---

    @staticmethod
    def cleanup_empty_nodes(model: LayoutModel):
        """
        Full bottom-up sweep that removes empty tab groups and collapses splits
        left with a single meaningful child.
        """
        if model is None or model.root_node is None:
            return

        with model.batch_update():
            if DockOperation._cleanup_node_recursive(model, model.root_node):
                root = model.root_node
                if not (isinstance(root, TabGroupNode) and root.is_empty):
                    # Nothing worth keeping: fall back to the explicit empty layout.
                    model.root_node = TabGroupNode()

    @staticmethod
    def _cleanup_node_recursive(model: LayoutModel, node: Optional[AnyNode]) -> bool:
        """Returns True if node can be removed by its parent."""
        if node is None:
            return True
        if isinstance(node, TabGroupNode):
            return node.is_empty
        if isinstance(node, SplitNode):
            first_cleanable = DockOperation._cleanup_node_recursive(model, node.first_child)
            second_cleanable = DockOperation._cleanup_node_recursive(model, node.second_child)
            if first_cleanable and second_cleanable:
                return True
            # Re-read the slots: the recursion may have collapsed a child in place.
            if first_cleanable:
                DockOperation._replace_node_in_parent(model, node, node.second_child)
            elif second_cleanable:
                DockOperation._replace_node_in_parent(model, node, node.first_child)
            return False
        return False

    @staticmethod
    def _cleanup_empty_tab_group(model: LayoutModel, empty_group: TabGroupNode):
        if empty_group is None or not empty_group.is_empty:
            return
        parent = empty_group.parent
        if parent is None:
            # An empty root group is the explicit empty layout; leave it.
            return
        if isinstance(parent, SplitNode):
            DockOperation._collapse_split(model, parent, empty_group)

    @staticmethod
    def _collapse_split(model: LayoutModel, split: SplitNode, removed_child: Optional[AnyNode]):
        """Replaces split with the child that survives removed_child."""
        if removed_child is not None:
            survivor = split.get_sibling(removed_child)
        else:
            survivor = split.first_child or split.second_child
        DockOperation._replace_node_in_parent(model, split, survivor)

    @staticmethod
    def _replace_node_in_parent(model: LayoutModel, old_node: AnyNode, new_node: Optional[AnyNode]):
        parent = old_node.parent
        if parent is None:
            if model.root_node is old_node:
                model.root_node = new_node
            return

        if isinstance(parent, SplitNode):
            parent.replace_child(old_node, new_node)
            if new_node is None:
                # The parent just lost a child of its own; collapse it too.
                DockOperation._collapse_split(model, parent, None)

    # --- Validation ---

    @staticmethod
    def validate_dock_operation(panel: PanelNode, target_node: DockNode) -> bool:
        """
        Rejects docking a panel onto itself or onto one of its ancestors.

        Returns:
            bool: True if the operation cannot create a cycle.
        """
        if panel is None or target_node is None:
            return False
        if panel is target_node:
            return False
        current = target_node
        seen = set()
        while current is not None and id(current) not in seen:
            if current is panel:
                return False
            seen.add(id(current))
            current = current.parent
        return True

    @staticmethod
    def _require(value, name: str, expected_type: Optional[type] = None):
        if value is None:
            raise DockArgumentError(f"{name} is required")
        if expected_type is not None and not isinstance(value, expected_type):
            raise DockArgumentError(f"{name} must be a {expected_type.__name__}, got {type(value).__name__}")

    @staticmethod
    def _require_in_model(model: LayoutModel, node: DockNode, name: str):
        if not model.contains(node):
            raise DockArgumentError(f"{name} is not part of this layout")

    @staticmethod
    def _require_unique_in_tree(model: LayoutModel, panel: PanelNode):
        existing = model.find_node_by_id(panel.id)
        if existing is not None and existing is not panel:
            raise DuplicatePanelError(panel.id, "the layout")

    @staticmethod
    def _source_group(model: LayoutModel, panel: PanelNode) -> Optional[TabGroupNode]:
        """The group currently holding panel, if that group belongs to model."""
        group = panel.parent
        if isinstance(group, TabGroupNode) and model.contains(group):
            return group
        return None
