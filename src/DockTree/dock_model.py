from __future__ import annotations
import uuid
import weakref
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Optional, Union

from PySide6.QtCore import QObject, Qt, Signal

from .dock_errors import DockArgumentError, DockInvariantError, DuplicatePanelError

# Define a type hint for any possible node
AnyNode = Union['PanelNode', 'TabGroupNode', 'SplitNode']

_MISSING = object()


class _Observed:
    """A plain attribute that reports changes to the layout model owning the node."""

    def __set_name__(self, owner, name):
        self._attr = '_' + name

    def __get__(self, obj, objtype=None):
        if obj is None:
            return self
        return getattr(obj, self._attr)

    def __set__(self, obj, value):
        if getattr(obj, self._attr, _MISSING) != value:
            setattr(obj, self._attr, value)
            obj._notify_changed()


def _detach(node: 'DockNode'):
    """
    Removes a node from whatever slot currently holds it: a tab group's panel
    list, a split child slot, or the root of a layout model.
    """
    parent = node.parent
    if isinstance(parent, TabGroupNode):
        parent.remove_panel(node)
    elif isinstance(parent, SplitNode):
        parent.replace_child(node, None)
    else:
        owner = node._owner_ref() if node._owner_ref is not None else None
        if owner is not None:
            owner._release_root(node)


def _is_ancestor(candidate: 'DockNode', node: 'DockNode') -> bool:
    """True if candidate appears in node's parent chain."""
    current = node.parent
    seen = set()
    while current is not None and id(current) not in seen:
        if current is candidate:
            return True
        seen.add(id(current))
        current = current.parent
    return False


# --- Node Definitions ---

class DockNode:
    """
    Base class for every node of the layout tree.

    The parent link is a weak, lookup-only reference. Only the container
    that owns the child slot ever writes it.
    """

    def __init__(self, node_id: Optional[str] = None):
        if node_id is None:
            node_id = str(uuid.uuid4())
        elif not isinstance(node_id, str) or not node_id.strip():
            raise DockArgumentError("Node ID cannot be null or empty.")
        self._id = node_id
        self._parent_ref: Optional[weakref.ref] = None
        # Only set on a node while it is the root of a LayoutModel.
        self._owner_ref: Optional[weakref.ref] = None

    @property
    def id(self) -> str:
        return self._id

    @property
    def parent(self) -> Optional[DockNode]:
        return self._parent_ref() if self._parent_ref is not None else None

    def _set_parent(self, parent: Optional[DockNode]):
        if parent is self.parent:
            return
        self._parent_ref = weakref.ref(parent) if parent is not None else None

    def get_children(self) -> list[AnyNode]:
        return []

    def find_node_by_id(self, node_id: str) -> Optional[AnyNode]:
        """Pre-order search of this subtree."""
        if self._id == node_id:
            return self
        for child in self.get_children():
            found = child.find_node_by_id(node_id)
            if found is not None:
                return found
        return None

    def get_root(self) -> DockNode:
        node = self
        seen = {id(node)}
        while node.parent is not None and id(node.parent) not in seen:
            node = node.parent
            seen.add(id(node))
        return node

    def owning_model(self) -> Optional['LayoutModel']:
        """The LayoutModel whose tree contains this node, if any."""
        root = self.get_root()
        return root._owner_ref() if root._owner_ref is not None else None

    def _notify_changed(self):
        model = self.owning_model()
        if model is not None:
            model._node_changed(self)

    def __repr__(self):
        return f"{type(self).__name__}(id={self._id!r})"


class PanelNode(DockNode):
    """A leaf of the tree: one dockable panel, shown as a tab of its group."""

    title = _Observed()
    icon = _Observed()
    can_close = _Observed()
    can_float = _Observed()
    is_pinned = _Observed()

    def __init__(self, node_id: Optional[str] = None, title: str = "Untitled", icon: Any = None,
                 content_factory: Optional[Callable[[], Any]] = None,
                 can_close: bool = True, can_float: bool = True, is_pinned: bool = True):
        super().__init__(node_id)
        self.title = title
        self.icon = icon  # opaque to the model, interpreted by the view layer
        self.content_factory = content_factory
        self.can_close = can_close
        self.can_float = can_float
        self.is_pinned = is_pinned
        self._cached_content = None
        self._content_created = False

    def get_or_create_content(self):
        """
        Returns the panel content, invoking the content factory on first use.
        The factory is not called again until the cache is cleared.
        """
        if not self._content_created and self.content_factory is not None:
            self._cached_content = self.content_factory()
            self._content_created = True
        return self._cached_content

    def get_cached_content(self):
        return self._cached_content

    @property
    def is_content_created(self) -> bool:
        return self._content_created

    def clear_cached_content(self):
        """Drops the cached content so the factory runs again on next access."""
        content = self._cached_content
        self._cached_content = None
        self._content_created = False
        if isinstance(content, QObject):
            content.deleteLater()

    def __repr__(self):
        state = "Created" if self._content_created else "Not Created"
        return f"PanelNode(id={self.id!r}, title={self.title!r}, content={state})"


class TabGroupNode(DockNode):
    """An ordered group of panels. At most one of them is active."""

    def __init__(self, node_id: Optional[str] = None, panels: Optional[list[PanelNode]] = None):
        super().__init__(node_id)
        self._panels: list[PanelNode] = []
        self._active_panel_id: Optional[str] = None
        self._synthetic = False
        for panel in panels or ():
            self.add_panel(panel)

    @classmethod
    def synthetic(cls, panel: PanelNode) -> 'TabGroupNode':
        """
        A view-only wrapper around a bare panel. The panel is listed but not
        adopted, so the real tree is left untouched.
        """
        group = cls()
        group._synthetic = True
        group._panels.append(panel)
        group._active_panel_id = panel.id
        return group

    @property
    def is_synthetic(self) -> bool:
        return self._synthetic

    @property
    def panels(self) -> tuple[PanelNode, ...]:
        return tuple(self._panels)

    @property
    def active_panel_id(self) -> Optional[str]:
        return self._active_panel_id

    @property
    def active_panel(self) -> Optional[PanelNode]:
        return next((p for p in self._panels if p.id == self._active_panel_id), None)

    @property
    def is_empty(self) -> bool:
        return not self._panels

    def __len__(self):
        return len(self._panels)

    def get_children(self) -> list[AnyNode]:
        return list(self._panels)

    def contains_panel_id(self, panel_id: str) -> bool:
        return any(p.id == panel_id for p in self._panels)

    def index_of(self, panel: PanelNode) -> int:
        for i, p in enumerate(self._panels):
            if p is panel:
                return i
        return -1

    def add_panel(self, panel: PanelNode, index: int = -1):
        """
        Inserts a panel at index, appending when index is outside [0, count).
        A panel that still sits in another group is taken out of it first.
        """
        if panel is None:
            raise DockArgumentError("panel is required")
        if not isinstance(panel, PanelNode):
            raise DockArgumentError(f"Only panels can be added to a tab group, got {type(panel).__name__}.")
        if self.contains_panel_id(panel.id):
            raise DuplicatePanelError(panel.id)

        _detach(panel)
        if index < 0 or index >= len(self._panels):
            self._panels.append(panel)
        else:
            self._panels.insert(index, panel)
        panel._set_parent(self)
        self._on_panels_changed(added=panel)

    def remove_panel(self, panel: PanelNode) -> bool:
        index = self.index_of(panel) if panel is not None else -1
        if index < 0:
            return False
        del self._panels[index]
        panel._set_parent(None)
        self._on_panels_changed(removed=panel)
        return True

    def remove_panel_by_id(self, panel_id: str) -> bool:
        panel = next((p for p in self._panels if p.id == panel_id), None)
        return self.remove_panel(panel) if panel is not None else False

    def set_active_panel(self, panel_id: Optional[str]):
        """Activates the panel with the given id; None clears the selection."""
        if panel_id and not self.contains_panel_id(panel_id):
            raise DockArgumentError(f"No panel with ID '{panel_id}' exists in this group.")
        panel_id = panel_id or None
        if panel_id != self._active_panel_id:
            self._active_panel_id = panel_id
            self._notify_changed()

    def reorder_panel(self, panel: PanelNode, new_index: int) -> bool:
        """
        Moves a member panel to new_index, the final position after removal.
        Returns False when the panel is not a member or is already there.
        """
        current_index = self.index_of(panel)
        if current_index < 0:
            return False

        if new_index < 0 or new_index >= len(self._panels):
            new_index = len(self._panels) - 1
        if new_index == current_index:
            return False

        del self._panels[current_index]
        insert_index = max(0, min(new_index, len(self._panels)))
        self._panels.insert(insert_index, panel)
        self._notify_changed()
        return True

    def _on_panels_changed(self, added: Optional[PanelNode] = None, removed: Optional[PanelNode] = None):
        if removed is not None and removed.id == self._active_panel_id:
            self._active_panel_id = self._panels[0].id if self._panels else None
        if added is not None and len(self._panels) == 1:
            self._active_panel_id = added.id
        self._notify_changed()

    def __repr__(self):
        return f"TabGroupNode(id={self.id!r}, panels={len(self._panels)}, active={self._active_panel_id!r})"


class SplitNode(DockNode):
    """
    Divides its space between two children along one axis.

    Horizontal puts the children side by side, Vertical stacks them.
    split_ratio is the share given to first_child.
    """

    orientation = _Observed()

    def __init__(self, orientation: Qt.Orientation = Qt.Orientation.Horizontal,
                 first_child: Optional[AnyNode] = None, second_child: Optional[AnyNode] = None,
                 split_ratio: float = 0.5, min_first_size: int = 100, min_second_size: int = 100,
                 node_id: Optional[str] = None):
        super().__init__(node_id)
        self._first_child: Optional[AnyNode] = None
        self._second_child: Optional[AnyNode] = None
        self._split_ratio = 0.5
        self._min_first_size = 100
        self._min_second_size = 100
        self.orientation = orientation
        self.split_ratio = split_ratio
        self.min_first_size = min_first_size
        self.min_second_size = min_second_size
        if first_child is not None:
            self.first_child = first_child
        if second_child is not None:
            self.second_child = second_child

    @property
    def first_child(self) -> Optional[AnyNode]:
        return self._first_child

    @first_child.setter
    def first_child(self, node: Optional[AnyNode]):
        self._assign_slot('_first_child', node)

    @property
    def second_child(self) -> Optional[AnyNode]:
        return self._second_child

    @second_child.setter
    def second_child(self, node: Optional[AnyNode]):
        self._assign_slot('_second_child', node)

    def _assign_slot(self, slot: str, node: Optional[AnyNode]):
        current = getattr(self, slot)
        if current is node:
            return
        if node is not None:
            if not isinstance(node, (TabGroupNode, SplitNode)):
                raise DockArgumentError(
                    f"Split children must be tab groups or splits, got {type(node).__name__}.")
            if node is self or _is_ancestor(node, self):
                raise DockInvariantError("Assigning this child would create a cycle.")
            # The node may be sitting in our other slot, or anywhere else.
            _detach(node)
        current = getattr(self, slot)
        if current is not None:
            current._set_parent(None)
        setattr(self, slot, node)
        if node is not None:
            node._set_parent(self)
        self._notify_changed()

    @property
    def split_ratio(self) -> float:
        return self._split_ratio

    @split_ratio.setter
    def split_ratio(self, value: float):
        clamped = max(0.0, min(1.0, float(value)))
        if abs(self._split_ratio - clamped) > 0.001:
            self._split_ratio = clamped
            self._notify_changed()

    @property
    def min_first_size(self) -> int:
        return self._min_first_size

    @min_first_size.setter
    def min_first_size(self, value: int):
        if value < 0:
            raise DockArgumentError("Minimum size cannot be negative.")
        if value != self._min_first_size:
            self._min_first_size = value
            self._notify_changed()

    @property
    def min_second_size(self) -> int:
        return self._min_second_size

    @min_second_size.setter
    def min_second_size(self, value: int):
        if value < 0:
            raise DockArgumentError("Minimum size cannot be negative.")
        if value != self._min_second_size:
            self._min_second_size = value
            self._notify_changed()

    def get_children(self) -> list[AnyNode]:
        return [c for c in (self._first_child, self._second_child) if c is not None]

    def is_valid(self) -> bool:
        return self._first_child is not None and self._second_child is not None

    def get_sibling(self, child: Optional[AnyNode]) -> Optional[AnyNode]:
        if child is None:
            return None
        if self._first_child is child:
            return self._second_child
        if self._second_child is child:
            return self._first_child
        return None

    def replace_child(self, old: AnyNode, new: Optional[AnyNode]) -> bool:
        """Puts new into the slot held by old. Returns False if old is not a child."""
        if old is None:
            return False
        if self._first_child is old:
            self.first_child = new
        elif self._second_child is old:
            self.second_child = new
        else:
            return False
        return True

    def remove_child(self, child: AnyNode) -> bool:
        return self.replace_child(child, None)

    def __repr__(self):
        orientation = "Horizontal" if self.orientation == Qt.Orientation.Horizontal else "Vertical"
        return f"SplitNode(id={self.id!r}, orientation={orientation}, ratio={self._split_ratio:.2f})"


# --- Layout Model ---

class LayoutSignals(QObject):
    """Notifications emitted by a LayoutModel once a change is complete."""

    # Args: the new tree version
    layout_changed = Signal(int)

    # Args: the new root node (or None)
    root_changed = Signal(object)


class LayoutModel:
    """
    Owns the root of one dock layout tree.

    Every change anywhere in the tree bumps ``version`` and emits
    ``signals.layout_changed`` exactly once. Changes made inside
    ``batch_update()`` are coalesced and reported when the outermost batch
    exits, so listeners never see a half-finished operation.
    """

    def __init__(self, root_node: Optional[AnyNode] = None):
        self.signals = LayoutSignals()
        self.debug_mode = False
        self._root_node: Optional[AnyNode] = None
        self._version = 0
        self._batch_depth = 0
        self._dirty = False
        self._root_dirty = False
        if root_node is not None:
            self.root_node = root_node

    # --- Root & notifications ---

    @property
    def root_node(self) -> Optional[AnyNode]:
        return self._root_node

    @root_node.setter
    def root_node(self, node: Optional[AnyNode]):
        if node is self._root_node:
            return
        if node is not None and not isinstance(node, DockNode):
            raise DockArgumentError(f"Root must be a dock node, got {type(node).__name__}.")

        with self.batch_update():
            old_root = self._root_node
            if old_root is not None:
                old_root._owner_ref = None
                self._root_node = None
            if node is not None:
                _detach(node)
                node._owner_ref = weakref.ref(self)
            self._root_node = node
            self._mark_dirty(root=True)

    @property
    def version(self) -> int:
        return self._version

    @contextmanager
    def batch_update(self) -> Iterator['LayoutModel']:
        """Defers change notification until the outermost batch finishes."""
        self._batch_depth += 1
        try:
            yield self
        finally:
            self._batch_depth -= 1
            if self._batch_depth == 0 and self._dirty:
                self._flush()

    def _mark_dirty(self, root: bool = False):
        self._dirty = True
        if root:
            self._root_dirty = True
        if self._batch_depth == 0:
            self._flush()

    def _node_changed(self, node: DockNode):
        self._mark_dirty()

    def _release_root(self, node: DockNode):
        if self._root_node is node:
            node._owner_ref = None
            self._root_node = None
            self._mark_dirty(root=True)

    def _flush(self):
        self._dirty = False
        root_dirty, self._root_dirty = self._root_dirty, False
        self._version += 1
        if self.debug_mode:
            print(f"[LayoutModel] version {self._version}: {self!r}")
        if root_dirty:
            self.signals.root_changed.emit(self._root_node)
        self.signals.layout_changed.emit(self._version)

    def clear(self):
        """Empties the layout."""
        self.root_node = None

    # --- Lookup ---

    def find_node_by_id(self, node_id: str) -> Optional[AnyNode]:
        if not node_id or self._root_node is None:
            return None
        return self._root_node.find_node_by_id(node_id)

    def find_panel_by_id(self, panel_id: str) -> Optional[PanelNode]:
        node = self.find_node_by_id(panel_id)
        return node if isinstance(node, PanelNode) else None

    def iter_nodes(self) -> Iterator[AnyNode]:
        """Pre-order walk of the whole tree."""
        if self._root_node is None:
            return
        stack = [self._root_node]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.get_children()))

    def get_all_panels(self) -> list[PanelNode]:
        return [n for n in self.iter_nodes() if isinstance(n, PanelNode)]

    def get_all_tab_groups(self) -> list[TabGroupNode]:
        return [n for n in self.iter_nodes() if isinstance(n, TabGroupNode)]

    def get_all_split_nodes(self) -> list[SplitNode]:
        return [n for n in self.iter_nodes() if isinstance(n, SplitNode)]

    def contains(self, node: Optional[DockNode]) -> bool:
        """True if node is part of this model's tree."""
        return node is not None and self._root_node is not None and node.get_root() is self._root_node

    # --- Validation ---

    def validate_tree(self) -> bool:
        """
        Checks the tree for cycles and for parent links that do not match the
        container actually holding each node.

        Returns:
            bool: True if the tree is consistent, False otherwise.
        """
        if self._root_node is None:
            return True
        visited = set()
        return self._validate_node(self._root_node, None, visited)

    def _validate_node(self, node: AnyNode, expected_parent: Optional[AnyNode], visited: set) -> bool:
        if node.id in visited:
            return False
        visited.add(node.id)
        if node.parent is not expected_parent:
            return False
        return all(self._validate_node(child, node, visited) for child in node.get_children())

    def get_validation_errors(self) -> list[str]:
        """
        Full structural audit. Returns a list of human readable problems,
        empty when every invariant holds.
        """
        errors = []
        root = self._root_node
        if root is None:
            return errors
        if root.parent is not None:
            errors.append(f"Root {root!r} has a parent.")
        if root._owner_ref is None or root._owner_ref() is not self:
            errors.append(f"Root {root!r} is not owned by this model.")

        seen_objects = set()
        panel_ids = set()
        stack = [(root, None)]
        while stack:
            node, expected_parent = stack.pop()
            if id(node) in seen_objects:
                errors.append(f"Cycle detected at {node!r}.")
                continue
            seen_objects.add(id(node))

            if node.parent is not expected_parent:
                errors.append(f"{node!r} records parent {node.parent!r}, expected {expected_parent!r}.")

            if isinstance(node, PanelNode):
                if node.id in panel_ids:
                    errors.append(f"Duplicate panel id '{node.id}'.")
                panel_ids.add(node.id)
            elif isinstance(node, TabGroupNode):
                if node.is_empty and node is not root:
                    errors.append(f"Empty tab group {node!r} below the root.")
                if node.active_panel_id is not None and not node.contains_panel_id(node.active_panel_id):
                    errors.append(f"{node!r} has an active id that is not a member.")
            elif isinstance(node, SplitNode):
                if not node.is_valid():
                    errors.append(f"{node!r} is missing a child.")

            for child in node.get_children():
                stack.append((child, node))
        return errors

    # --- Diagnostics ---

    def pretty_print(self):
        """Outputs the current state of the layout tree to the console."""
        print("\n--- DOCKING LAYOUT STATE ---")
        if self._root_node is None:
            print("  (Empty layout)")
        else:
            self._print_node(self._root_node, indent=1)
        print("----------------------------\n")

    def _print_node(self, node: AnyNode, indent: int):
        prefix = "  " * indent
        if isinstance(node, SplitNode):
            orientation = "Horizontal" if node.orientation == Qt.Orientation.Horizontal else "Vertical"
            print(f"{prefix}↳ Split ({orientation}, {node.split_ratio:.2f}) [id: ...{node.id[-4:]}]")
        elif isinstance(node, TabGroupNode):
            print(f"{prefix}↳ TabGroup [id: ...{node.id[-4:]}] - Tabs: {len(node)}")
        elif isinstance(node, PanelNode):
            marker = "*" if node.parent and node.parent.active_panel_id == node.id else " "
            print(f"{prefix}↳{marker}Panel: '{node.title}' [id: {node.id}]")
        for child in node.get_children():
            self._print_node(child, indent + 1)

    def __repr__(self):
        return f"LayoutModel(panels={len(self.get_all_panels())}, groups={len(self.get_all_tab_groups())})"
