"""
Registry of the panels known to a docking manager.

A panel can be registered before it is placed in the layout, and stays
registered while it is moved around. Layout loading uses the registry to
reattach existing panel objects by id.
"""

from typing import Callable, Dict, Optional

from ..dock_model import PanelNode


class PanelRegistry:
    """Panels by id, in registration order."""

    def __init__(self):
        self._registry: Dict[str, PanelNode] = {}

    def register(self, panel: PanelNode) -> None:
        """Register a panel under its id."""
        if panel is None:
            raise ValueError("panel is required")
        if panel.id in self._registry:
            raise ValueError(f"A panel with ID '{panel.id}' is already registered")

        self._registry[panel.id] = panel

    def unregister(self, panel_id: str) -> Optional[PanelNode]:
        """Remove a panel from the registry. Returns it, or None if unknown."""
        return self._registry.pop(panel_id, None)

    def get(self, panel_id: str) -> Optional[PanelNode]:
        return self._registry.get(panel_id)

    def is_registered(self, panel_id: str) -> bool:
        return panel_id in self._registry

    def get_all_keys(self) -> list[str]:
        return list(self._registry.keys())

    def get_all_panels(self) -> list[PanelNode]:
        return list(self._registry.values())

    def clear(self):
        self._registry.clear()

    def panel_factory(self, fallback: Optional[Callable[[dict], Optional[PanelNode]]] = None):
        """
        Builds a factory for LayoutSerializer that hands back registered
        panels by id and defers to fallback for unknown ids.
        """
        def create(panel_data: dict) -> Optional[PanelNode]:
            panel = self.get(panel_data.get('id'))
            if panel is not None:
                return panel
            return fallback(panel_data) if fallback is not None else None
        return create

    def __len__(self):
        return len(self._registry)

    def __contains__(self, panel_id):
        return panel_id in self._registry
