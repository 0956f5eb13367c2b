"""
Exception types raised by the DockTree layout engine.

Argument errors are raised for missing or unusable inputs, invariant errors
for requests that would break the structure of the tree. Both are raised
before any node is touched.
"""


class DockError(Exception):
    """Base class for all layout tree errors."""


class DockArgumentError(DockError, ValueError):
    """A required node is missing, detached, or of the wrong kind."""


class DockInvariantError(DockError, RuntimeError):
    """The requested change would leave the tree in an invalid state."""


class DuplicatePanelError(DockInvariantError):
    """A panel with the same id already lives in the target group or tree."""

    def __init__(self, panel_id: str, where: str = "this group"):
        super().__init__(f"A panel with ID '{panel_id}' already exists in {where}.")
        self.panel_id = panel_id
