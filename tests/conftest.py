"""
Shared pytest fixtures for DockTree tests.
"""

import os

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import pytest
from PySide6.QtCore import QRect, Qt

from DockTree.dock_model import LayoutModel, PanelNode, SplitNode, TabGroupNode


@pytest.fixture
def make_panel():
    """Factory fixture for panels with readable ids."""

    def _make(panel_id, title=None, **kwargs):
        return PanelNode(panel_id, title or panel_id.upper(), **kwargs)

    return _make


@pytest.fixture
def single_group_model(make_panel):
    """A layout whose root is one tab group holding panel 'a'."""
    group = TabGroupNode(panels=[make_panel("a")])
    return LayoutModel(group)


@pytest.fixture
def ide_model(make_panel):
    """
    [left: explorer, properties] | [center: doc1, doc2 over bottom: output]
    """
    left = TabGroupNode(panels=[make_panel("explorer"), make_panel("properties")])
    center = TabGroupNode(panels=[make_panel("doc1"), make_panel("doc2")])
    bottom = TabGroupNode(panels=[make_panel("output")])
    center_bottom = SplitNode(Qt.Orientation.Vertical, center, bottom, split_ratio=0.7)
    root = SplitNode(Qt.Orientation.Horizontal, left, center_bottom, split_ratio=0.25)
    return LayoutModel(root)


@pytest.fixture
def group_of():
    """Returns the tab group holding the panel with the given id."""

    def _group_of(model, panel_id):
        return model.find_panel_by_id(panel_id).parent

    return _group_of


@pytest.fixture
def screen_rect():
    """Standard 1000x600 area for geometry tests."""
    return QRect(0, 0, 1000, 600)
