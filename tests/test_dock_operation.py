"""
Unit tests for the dock operation engine.
"""

import random

import pytest
from PySide6.QtCore import Qt

from DockTree.core.dock_settings import DockSettings
from DockTree.dock_errors import DockArgumentError, DockInvariantError, DuplicatePanelError
from DockTree.dock_model import LayoutModel, PanelNode, SplitNode, TabGroupNode
from DockTree.dock_operation import DockOperation
from DockTree.dock_zone import DockZone


def panel_ids(group):
    return [p.id for p in group.panels]


def assert_invariants(model):
    assert model.validate_tree()
    assert model.get_validation_errors() == []


class TestDockAsTab:
    """Docking panels as tabs and moving them between groups."""

    def test_moves_panel_and_activates_it(self, ide_model, group_of):
        doc2 = ide_model.find_panel_by_id("doc2")
        output_group = group_of(ide_model, "output")

        DockOperation.dock_as_tab(ide_model, doc2, output_group, 0)

        assert panel_ids(output_group) == ["doc2", "output"]
        assert output_group.active_panel_id == "doc2"
        assert panel_ids(group_of(ide_model, "doc1")) == ["doc1"]
        assert_invariants(ide_model)

    def test_emptied_source_group_collapses(self, ide_model, group_of):
        output = ide_model.find_panel_by_id("output")
        center_group = group_of(ide_model, "doc1")

        DockOperation.move_tab(ide_model, output, center_group)

        # The vertical split collapsed into the center group.
        assert ide_model.root_node.second_child is center_group
        assert panel_ids(center_group) == ["doc1", "doc2", "output"]
        assert len(ide_model.get_all_split_nodes()) == 1
        assert_invariants(ide_model)

    def test_single_notification(self, ide_model, group_of):
        versions = []
        ide_model.signals.layout_changed.connect(versions.append)

        DockOperation.dock_as_tab(ide_model, ide_model.find_panel_by_id("output"), group_of(ide_model, "doc1"))

        assert len(versions) == 1

    def test_notification_sees_finished_tree(self, ide_model, group_of):
        seen = []
        ide_model.signals.layout_changed.connect(lambda _: seen.append(ide_model.get_validation_errors()))

        DockOperation.dock_as_tab(ide_model, ide_model.find_panel_by_id("output"), group_of(ide_model, "doc1"))

        assert seen == [[]]

    def test_loose_panel(self, single_group_model):
        DockOperation.dock_as_tab(single_group_model, PanelNode("b"), single_group_model.root_node)
        assert panel_ids(single_group_model.root_node) == ["a", "b"]

    def test_duplicate_in_target_group(self, single_group_model):
        a = single_group_model.find_panel_by_id("a")
        with pytest.raises(DuplicatePanelError):
            DockOperation.dock_as_tab(single_group_model, a, single_group_model.root_node)

    def test_duplicate_elsewhere_in_tree(self, ide_model, group_of):
        with pytest.raises(DuplicatePanelError):
            DockOperation.dock_as_tab(ide_model, PanelNode("doc1"), group_of(ide_model, "output"))

    def test_missing_arguments(self, single_group_model):
        with pytest.raises(DockArgumentError):
            DockOperation.dock_as_tab(single_group_model, None, single_group_model.root_node)
        with pytest.raises(DockArgumentError):
            DockOperation.dock_as_tab(single_group_model, PanelNode("b"), None)

    def test_target_outside_model(self, single_group_model):
        before = single_group_model.version
        with pytest.raises(DockArgumentError):
            DockOperation.dock_as_tab(single_group_model, PanelNode("b"), TabGroupNode())
        assert single_group_model.version == before


class TestReorderAndRemove:
    """Reordering inside a group and removing panels."""

    def test_reorder_round_trip(self, make_panel):
        panels = [make_panel(x) for x in "abcd"]
        group = TabGroupNode(panels=panels)
        model = LayoutModel(group)
        original = panel_ids(group)

        assert DockOperation.reorder_tab(model, panels[1], group, 3)
        assert panel_ids(group) == ["a", "c", "d", "b"]
        assert DockOperation.reorder_tab(model, panels[1], group, 1)
        assert panel_ids(group) == original

    def test_reorder_keeps_active(self, make_panel):
        a, b = make_panel("a"), make_panel("b")
        group = TabGroupNode(panels=[a, b])
        model = LayoutModel(group)
        DockOperation.reorder_tab(model, a, group, 1)
        assert group.active_panel_id == "a"

    def test_reorder_to_same_index_is_noop(self, single_group_model):
        a = single_group_model.find_panel_by_id("a")
        before = single_group_model.version
        assert not DockOperation.reorder_tab(single_group_model, a, single_group_model.root_node, 0)
        assert single_group_model.version == before

    def test_reorder_non_member(self, ide_model, group_of):
        with pytest.raises(DockInvariantError):
            DockOperation.reorder_tab(ide_model, ide_model.find_panel_by_id("output"),
                                      group_of(ide_model, "doc1"), 0)

    def test_remove_panel_collapses(self, ide_model, group_of):
        left = group_of(ide_model, "explorer")
        assert DockOperation.remove_panel(ide_model, ide_model.find_panel_by_id("output"))
        root = ide_model.root_node
        assert root.first_child is left
        assert root.second_child is group_of(ide_model, "doc1")
        assert_invariants(ide_model)

    def test_remove_loose_panel_is_noop(self, single_group_model):
        assert not DockOperation.remove_panel(single_group_model, PanelNode("x"))

    def test_last_panel_leaves_empty_root_group(self, single_group_model):
        root = single_group_model.root_node
        DockOperation.remove_panel(single_group_model, single_group_model.find_panel_by_id("a"))
        assert single_group_model.root_node is root
        assert root.is_empty


class TestSplitDock:
    """Edge docking and the collapse that undoes it."""

    def test_split_then_collapse(self, single_group_model):
        root_group = single_group_model.root_node
        b = PanelNode("b")

        assert DockOperation.split_dock(single_group_model, b, root_group, DockZone.RIGHT)

        split = single_group_model.root_node
        assert isinstance(split, SplitNode)
        assert split.orientation == Qt.Orientation.Horizontal
        assert split.first_child is root_group
        assert panel_ids(split.first_child) == ["a"]
        assert panel_ids(split.second_child) == ["b"]
        assert split.split_ratio == pytest.approx(0.7)
        assert split.parent is None

        DockOperation.remove_panel(single_group_model, b)

        assert single_group_model.root_node is root_group
        assert root_group.parent is None
        assert panel_ids(root_group) == ["a"]
        assert_invariants(single_group_model)

    @pytest.mark.parametrize("zone, orientation, new_first, ratio", [
        (DockZone.LEFT, Qt.Orientation.Horizontal, True, 0.3),
        (DockZone.TOP, Qt.Orientation.Vertical, True, 0.3),
        (DockZone.BOTTOM, Qt.Orientation.Vertical, False, 0.7),
    ])
    def test_zone_geometry(self, single_group_model, zone, orientation, new_first, ratio):
        DockOperation.split_dock(single_group_model, PanelNode("b"), single_group_model.root_node, zone)
        split = single_group_model.root_node
        new_group = split.first_child if new_first else split.second_child
        assert split.orientation == orientation
        assert panel_ids(new_group) == ["b"]
        assert split.split_ratio == pytest.approx(ratio)

    @pytest.mark.parametrize("zone", [DockZone.LEFT, DockZone.RIGHT, DockZone.TOP, DockZone.BOTTOM])
    def test_edge_of_empty_root_group_fills_it(self, zone):
        root_group = TabGroupNode()
        model = LayoutModel(root_group)
        b = PanelNode("b")

        assert DockOperation.split_dock(model, b, root_group, zone)

        assert model.root_node is root_group
        assert panel_ids(root_group) == ["b"]
        assert root_group.active_panel_id == "b"
        assert_invariants(model)

    def test_settings_supply_ratio(self, single_group_model):
        settings = DockSettings(right_bottom_ratio=0.6)
        DockOperation.split_dock(single_group_model, PanelNode("b"), single_group_model.root_node,
                                 DockZone.RIGHT, settings)
        assert single_group_model.root_node.split_ratio == pytest.approx(0.6)

    def test_self_split_of_single_panel_group_rejected(self, ide_model, group_of):
        output = ide_model.find_panel_by_id("output")
        errors_before = ide_model.get_validation_errors()
        version = ide_model.version
        for zone in (DockZone.LEFT, DockZone.RIGHT, DockZone.TOP, DockZone.BOTTOM):
            assert not DockOperation.split_dock(ide_model, output, group_of(ide_model, "output"), zone)
        assert ide_model.version == version
        assert ide_model.get_validation_errors() == errors_before

    def test_self_split_of_multi_panel_group(self, ide_model, group_of):
        center = group_of(ide_model, "doc1")
        doc2 = ide_model.find_panel_by_id("doc2")

        assert DockOperation.split_dock(ide_model, doc2, center, DockZone.RIGHT)

        split = center.parent
        assert isinstance(split, SplitNode)
        assert split.first_child is center
        assert panel_ids(split.second_child) == ["doc2"]
        assert_invariants(ide_model)

    def test_split_inner_node_keeps_slot(self, ide_model, group_of):
        center_group = group_of(ide_model, "doc1")
        center_bottom = center_group.parent
        root = ide_model.root_node

        DockOperation.split_dock(ide_model, ide_model.find_panel_by_id("explorer"), center_bottom, DockZone.TOP)

        new_split = root.second_child
        assert isinstance(new_split, SplitNode)
        assert new_split.orientation == Qt.Orientation.Vertical
        assert panel_ids(new_split.first_child) == ["explorer"]
        assert new_split.second_child is center_bottom
        assert root.first_child is group_of(ide_model, "properties")
        assert_invariants(ide_model)

    def test_emptied_source_cleaned_after_splice(self, ide_model, group_of):
        output = ide_model.find_panel_by_id("output")
        DockOperation.split_dock(ide_model, output, group_of(ide_model, "explorer"), DockZone.BOTTOM)

        root = ide_model.root_node
        assert root.second_child is group_of(ide_model, "doc1")
        left = root.first_child
        assert isinstance(left, SplitNode)
        assert panel_ids(left.second_child) == ["output"]
        assert_invariants(ide_model)

    def test_source_group_is_ancestor_chain_of_target(self, make_panel):
        # Dragging the last panel of a group onto the split that contains it.
        a, b = make_panel("a"), make_panel("b")
        g1, g2 = TabGroupNode(panels=[a]), TabGroupNode(panels=[b])
        split = SplitNode(Qt.Orientation.Horizontal, g1, g2)
        model = LayoutModel(split)

        assert DockOperation.split_dock(model, a, split, DockZone.LEFT)

        root = model.root_node
        assert panel_ids(root.first_child) == ["a"]
        assert root.second_child is g2
        assert_invariants(model)

    def test_center_zone_docks_as_tab(self, ide_model, group_of):
        center = group_of(ide_model, "doc1")
        assert DockOperation.split_dock(ide_model, ide_model.find_panel_by_id("output"), center, DockZone.CENTER)
        assert panel_ids(center) == ["doc1", "doc2", "output"]

    def test_center_zone_on_split_rejected(self, ide_model):
        with pytest.raises(DockArgumentError):
            DockOperation.split_dock(ide_model, ide_model.find_panel_by_id("output"),
                                     ide_model.root_node, DockZone.CENTER)

    def test_invalid_arguments(self, ide_model, group_of):
        output = ide_model.find_panel_by_id("output")
        center = group_of(ide_model, "doc1")
        with pytest.raises(DockArgumentError):
            DockOperation.split_dock(ide_model, output, center, DockZone.NONE)
        with pytest.raises(DockArgumentError):
            DockOperation.split_dock(ide_model, output, ide_model.find_panel_by_id("doc1"), DockZone.LEFT)
        with pytest.raises(DockArgumentError):
            DockOperation.split_dock(ide_model, output, TabGroupNode(), DockZone.LEFT)
        with pytest.raises(DockArgumentError):
            DockOperation.split_dock(ide_model, None, center, DockZone.LEFT)
        assert_invariants(ide_model)

    def test_validate_dock_operation(self, ide_model, group_of):
        doc1 = ide_model.find_panel_by_id("doc1")
        assert not DockOperation.validate_dock_operation(doc1, doc1)
        assert not DockOperation.validate_dock_operation(None, doc1)
        assert DockOperation.validate_dock_operation(doc1, group_of(ide_model, "output"))


class TestBootstrapAndCleanup:
    """Root normalization, insertion and the full cleanup sweep."""

    def test_normalize_bare_panel_root(self, make_panel):
        a = make_panel("a")
        model = LayoutModel(a)
        DockOperation.normalize_root(model)
        assert isinstance(model.root_node, TabGroupNode)
        assert a.parent is model.root_node
        assert_invariants(model)

    def test_insert_panel_into_empty_layout(self, make_panel):
        model = LayoutModel()
        DockOperation.insert_panel(model, make_panel("a"))
        DockOperation.insert_panel(model, make_panel("b"))
        assert panel_ids(model.root_node) == ["a", "b"]

    def test_insert_panel_uses_first_group(self, ide_model, group_of, make_panel):
        DockOperation.insert_panel(ide_model, make_panel("new"))
        assert group_of(ide_model, "new") is group_of(ide_model, "explorer")

    def test_cleanup_collapses_nested_empties(self, make_panel):
        a = make_panel("a")
        keep = TabGroupNode(panels=[a])
        inner = SplitNode(Qt.Orientation.Vertical, TabGroupNode(), TabGroupNode())
        root = SplitNode(Qt.Orientation.Horizontal, inner, keep)
        model = LayoutModel(root)

        DockOperation.cleanup_empty_nodes(model)

        assert model.root_node is keep
        assert_invariants(model)

    def test_cleanup_handles_missing_child(self, make_panel):
        keep = TabGroupNode(panels=[make_panel("a")])
        model = LayoutModel(SplitNode(first_child=keep))
        DockOperation.cleanup_empty_nodes(model)
        assert model.root_node is keep

    def test_cleanup_of_fully_empty_tree(self):
        model = LayoutModel(SplitNode(first_child=TabGroupNode(), second_child=TabGroupNode()))
        DockOperation.cleanup_empty_nodes(model)
        assert isinstance(model.root_node, TabGroupNode)
        assert model.root_node.is_empty

    def test_cleanup_of_valid_tree_changes_nothing(self, ide_model):
        before = ide_model.version
        DockOperation.cleanup_empty_nodes(ide_model)
        assert ide_model.version == before


class TestInvariantPreservation:
    """Random operation sequences never break the tree."""

    def test_random_sequence(self, make_panel):
        rng = random.Random(1234)
        panels = [make_panel(f"p{i}") for i in range(8)]
        model = LayoutModel(TabGroupNode(panels=panels[:1]))
        for panel in panels[1:]:
            DockOperation.insert_panel(model, panel)
        edges = [DockZone.LEFT, DockZone.RIGHT, DockZone.TOP, DockZone.BOTTOM]

        for _ in range(300):
            placed = model.get_all_panels()
            groups = model.get_all_tab_groups()
            panel = rng.choice(panels)
            action = rng.randrange(5)

            if panel not in placed:
                DockOperation.insert_panel(model, panel)
            elif action == 0:
                target = rng.choice(groups)
                if target is not panel.parent:
                    DockOperation.dock_as_tab(model, panel, target, rng.randrange(-1, 4))
            elif action == 1:
                target = rng.choice(groups + model.get_all_split_nodes())
                DockOperation.split_dock(model, panel, target, rng.choice(edges))
            elif action == 2:
                group = panel.parent
                DockOperation.reorder_tab(model, panel, group, rng.randrange(-1, len(group)))
            elif action == 3:
                if len(placed) > 1:
                    DockOperation.remove_panel(model, panel)
            else:
                target = rng.choice(groups)
                if target is not panel.parent:
                    DockOperation.move_tab(model, panel, target)

            assert_invariants(model)
            ids = [p.id for p in model.get_all_panels()]
            assert len(ids) == len(set(ids))
