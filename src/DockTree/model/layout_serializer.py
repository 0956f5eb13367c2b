import pickle
from typing import Callable, Optional

from PySide6.QtCore import Qt

from ..dock_errors import DockInvariantError, DuplicatePanelError
from ..dock_model import AnyNode, LayoutModel, PanelNode, SplitNode, TabGroupNode, _detach

PanelFactory = Callable[[dict], Optional[PanelNode]]


class LayoutSerializer:
    """
    Saves and restores the structure of a layout tree.

    Nodes become plain dictionaries and the whole tree is pickled. Panel
    content is never stored; panels are recreated through a factory that
    receives the saved panel dictionary.
    """

    @staticmethod
    def save_layout_to_bytearray(model: LayoutModel) -> bytes:
        """
        Serializes the layout of model to binary data.

        Returns:
            bytes: Serialized layout data that can be saved to file
        """
        layout_data = {
            'version': 1,
            'content': LayoutSerializer.serialize_node(model.root_node) if model.root_node is not None else None,
        }
        return pickle.dumps(layout_data)

    @staticmethod
    def serialize_node(node: AnyNode) -> dict:
        """
        Recursively serializes a layout node to a dictionary.

        Args:
            node: The layout node to serialize

        Returns:
            dict: Serialized node data
        """
        if isinstance(node, SplitNode):
            return {
                'type': 'SplitNode',
                'id': node.id,
                'orientation': 'horizontal' if node.orientation == Qt.Orientation.Horizontal else 'vertical',
                'split_ratio': node.split_ratio,
                'min_first_size': node.min_first_size,
                'min_second_size': node.min_second_size,
                'children': [LayoutSerializer.serialize_node(child) if child is not None else None
                             for child in (node.first_child, node.second_child)]
            }
        elif isinstance(node, TabGroupNode):
            return {
                'type': 'TabGroupNode',
                'id': node.id,
                'active_panel_id': node.active_panel_id,
                'children': [LayoutSerializer.serialize_node(panel) for panel in node.panels]
            }
        elif isinstance(node, PanelNode):
            return {
                'type': 'PanelNode',
                'id': node.id,
                'title': node.title,
                'can_close': node.can_close,
                'can_float': node.can_float,
                'is_pinned': node.is_pinned,
            }
        return {}

    @staticmethod
    def default_panel_factory(panel_data: dict) -> PanelNode:
        """Recreates a content-less panel from its saved attributes."""
        return PanelNode(node_id=panel_data['id'],
                         title=panel_data.get('title', "Untitled"),
                         can_close=panel_data.get('can_close', True),
                         can_float=panel_data.get('can_float', True),
                         is_pinned=panel_data.get('is_pinned', True))

    @staticmethod
    def load_layout_from_bytearray(model: LayoutModel, data: bytes,
                                   panel_factory: Optional[PanelFactory] = None) -> bool:
        """
        Deserializes layout data and makes it the layout of model.

        Every panel is resolved through the factory before any node is
        touched. The new tree is then built and validated off to the side and
        swapped in as the root in one step. Reused panels go back to their old
        places if building or validating the new tree fails.

        Args:
            model: The layout model to restore into
            data: Binary layout data from save_layout_to_bytearray()
            panel_factory: Returns the PanelNode for a saved panel dict, or
                None to drop it. Defaults to content-less panels.

        Returns:
            bool: False if the data could not be read.
        """
        try:
            layout_data = pickle.loads(data)
        except (pickle.UnpicklingError, EOFError, TypeError, ValueError) as e:
            print(f"Error deserializing layout data: {e}")
            return False
        if not isinstance(layout_data, dict) or 'content' not in layout_data:
            print("Error deserializing layout data: unexpected format")
            return False

        content = layout_data['content']
        LayoutSerializer._collect_panel_ids(content, set())
        resolved = LayoutSerializer._resolve_panels(content, panel_factory or LayoutSerializer.default_panel_factory)
        locations = LayoutSerializer._record_locations(resolved.values())

        with model.batch_update():
            try:
                root = None
                if content is not None:
                    root = LayoutSerializer.deserialize_node(content, lambda d: resolved.get(d.get('id')),
                                                             is_root=True)

                staging = LayoutModel(root)
                errors = staging.get_validation_errors()
                if errors:
                    raise DockInvariantError("Loaded layout is invalid: " + "; ".join(errors))
            except Exception:
                LayoutSerializer._restore_locations(locations)
                raise

            # Taking the root from the staging model detaches it there.
            model.root_node = root
        if model.debug_mode:
            print(f"[LayoutSerializer] loaded {model!r}")
        return True

    @staticmethod
    def _collect_panel_ids(node_data, panel_ids: set):
        if not isinstance(node_data, dict):
            return
        if node_data.get('type') == 'PanelNode':
            panel_id = node_data.get('id')
            if panel_id and panel_id in panel_ids:
                raise DuplicatePanelError(panel_id, "the saved layout")
            panel_ids.add(panel_id)
        for child in node_data.get('children', []):
            LayoutSerializer._collect_panel_ids(child, panel_ids)

    @staticmethod
    def _resolve_panels(node_data, factory: PanelFactory, resolved: Optional[dict] = None) -> dict:
        """
        Calls the factory once per saved panel, in tree order. Returns saved
        id -> PanelNode (None for declined panels).
        """
        if resolved is None:
            resolved = {}
        if not isinstance(node_data, dict):
            return resolved
        if node_data.get('type') == 'PanelNode':
            panel_id = node_data.get('id')
            if panel_id:
                panel = factory(node_data)
                if panel is not None:
                    for other in resolved.values():
                        if other is panel or (other is not None and other.id == panel.id):
                            raise DuplicatePanelError(panel.id, "the loaded layout")
                resolved[panel_id] = panel
        for child in node_data.get('children', []):
            LayoutSerializer._resolve_panels(child, factory, resolved)
        return resolved

    @staticmethod
    def _record_locations(panels) -> list[tuple]:
        """Where each panel currently sits: (panel, group, index, active id, owning model)."""
        locations = []
        for panel in panels:
            if panel is None:
                continue
            group = panel.parent
            if isinstance(group, TabGroupNode):
                locations.append((panel, group, group.index_of(panel), group.active_panel_id, None))
            else:
                locations.append((panel, None, -1, None, panel.owning_model()))
        return locations

    @staticmethod
    def _restore_locations(locations: list[tuple]):
        for panel, group, index, _, owner in sorted(locations, key=lambda loc: loc[2]):
            if group is not None:
                if panel.parent is not group:
                    group.add_panel(panel, index)
            elif owner is not None:
                if owner.root_node is not panel:
                    owner.root_node = panel
            elif panel.parent is not None:
                _detach(panel)
        for _, group, _, active_id, _ in locations:
            if group is not None and active_id is not None and group.contains_panel_id(active_id):
                group.set_active_panel(active_id)

    @staticmethod
    def deserialize_node(node_data: dict, panel_factory: Optional[PanelFactory] = None,
                         is_root: bool = False, _seen_panels: Optional[set] = None) -> Optional[AnyNode]:
        """
        Recursively recreates layout nodes from serialized data.

        Panels the factory declines are skipped. A group left without panels
        is dropped, and a split missing a child collapses into the other one,
        so the result always satisfies the tree invariants.

        Args:
            node_data: Serialized node dictionary
            panel_factory: See load_layout_from_bytearray()
            is_root: Keep an empty tab group instead of dropping it

        Returns:
            AnyNode: Recreated layout node, or None
        """
        factory = panel_factory or LayoutSerializer.default_panel_factory
        seen = _seen_panels if _seen_panels is not None else set()
        node_type = node_data.get('type') if isinstance(node_data, dict) else None

        if node_type == 'SplitNode':
            children = [
                LayoutSerializer.deserialize_node(child, factory, False, seen) if child else None
                for child in node_data.get('children', [])[:2]
            ]
            children = [child for child in children if child is not None]
            if len(children) < 2:
                if children:
                    return children[0]
                return TabGroupNode(node_id=node_data.get('id')) if is_root else None
            orientation = (Qt.Orientation.Vertical if node_data.get('orientation') == 'vertical'
                           else Qt.Orientation.Horizontal)
            return SplitNode(orientation=orientation,
                             first_child=children[0], second_child=children[1],
                             split_ratio=node_data.get('split_ratio', 0.5),
                             min_first_size=node_data.get('min_first_size', 100),
                             min_second_size=node_data.get('min_second_size', 100),
                             node_id=node_data.get('id'))

        elif node_type == 'TabGroupNode':
            group = TabGroupNode(node_id=node_data.get('id'))
            for child in node_data.get('children', []):
                panel = LayoutSerializer.deserialize_node(child, factory, False, seen)
                if panel is not None:
                    group.add_panel(panel)
            if group.is_empty and not is_root:
                return None
            active_id = node_data.get('active_panel_id')
            if active_id and group.contains_panel_id(active_id):
                group.set_active_panel(active_id)
            return group

        elif node_type == 'PanelNode':
            panel_id = node_data.get('id')
            if not panel_id:
                return None
            if panel_id in seen:
                raise DuplicatePanelError(panel_id, "the saved layout")
            panel = factory(node_data)
            if panel is None:
                print(f"ERROR: Cannot recreate panel '{panel_id}'")
                return None
            seen.add(panel_id)
            if is_root:
                group = TabGroupNode()
                group.add_panel(panel)
                return group
            return panel

        return None
