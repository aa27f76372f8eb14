"""Tests for export graph construction and pruning.

These tests cover:
- One context per visited object, keyed under its true parent
- Duplication contexts and the export-parent precedence rule
- Nested duplication and duplication cycles
- Post-order pruning of weak subtrees
- The hierarchy depth limit
"""

from __future__ import annotations

import numpy as np
import pytest

from conftest import context_at, export_paths, translation
from hierarchy_export import (
    DiagnosticKind,
    HierarchyContext,
    HierarchyDepthError,
    IteratorSettings,
    IteratorState,
    ObjectData,
    PredicatePolicy,
    SceneObject,
)
from hierarchy_export.core.export_graph import ExportGraph


# ===================================================================
# Graph data structure
# ===================================================================


class TestExportGraph:
    """Tests for the arena/children mapping itself."""

    def test_add_assigns_sequential_handles(self) -> None:
        graph = ExportGraph()
        a = HierarchyContext(object=SceneObject("A"), export_name="A")
        b = HierarchyContext(object=SceneObject("B"), export_name="B")
        assert graph.add(a, graph.root.graph_key()) == 0
        assert graph.add(b, graph.root.graph_key()) == 1
        assert graph.get(1) is b
        assert len(graph) == 2

    def test_children_sorted_by_name_then_creation(self) -> None:
        graph = ExportGraph()
        names = ["b", "a", "b", "a"]
        for name in names:
            graph.add(HierarchyContext(object=SceneObject(name), export_name=name),
                      graph.root.graph_key())
        ordered = [(c.export_name, c.handle) for c in graph.children_of(graph.root)]
        assert ordered == [("a", 1), ("a", 3), ("b", 0), ("b", 2)]

    def test_clear_invalidates_handles(self) -> None:
        graph = ExportGraph()
        context = HierarchyContext(object=SceneObject("A"), export_name="A")
        handle = graph.add(context, graph.root.graph_key())
        graph.clear()
        assert graph.get(handle) is None
        assert len(graph) == 0
        assert graph.children_of(graph.root) == []

    def test_prune_keeps_weak_parent_of_real_child(self) -> None:
        graph = ExportGraph()
        y_obj, z_obj, w_obj = SceneObject("Y"), SceneObject("Z"), SceneObject("W")
        y = HierarchyContext(object=y_obj, export_name="Y", weak_export=True)
        z = HierarchyContext(object=z_obj, export_parent=y_obj, export_name="Z")
        w = HierarchyContext(object=w_obj, export_name="W", weak_export=True)
        graph.add(y, graph.root.graph_key())
        graph.add(z, y.graph_key())
        graph.add(w, graph.root.graph_key())

        graph.prune()

        assert [c.export_name for c in graph.walk()] == ["Y", "Z"]
        assert graph.get(w.handle) is None
        assert y.weak_export is True

    def test_prune_removes_all_weak_subtree(self) -> None:
        graph = ExportGraph()
        y_obj, z_obj = SceneObject("Y"), SceneObject("Z")
        y = HierarchyContext(object=y_obj, export_name="Y", weak_export=True)
        z = HierarchyContext(object=z_obj, export_parent=y_obj, export_name="Z", weak_export=True)
        graph.add(y, graph.root.graph_key())
        graph.add(z, y.graph_key())

        graph.prune()

        assert len(graph) == 0
        assert not graph.has_entry(y.graph_key())

    def test_debug_format_lists_contexts(self) -> None:
        graph = ExportGraph()
        assert "(empty)" in graph.debug_format()
        graph.add(HierarchyContext(object=SceneObject("A"), export_name="A", weak_export=True),
                  graph.root.graph_key())
        text = graph.debug_format()
        assert "[0] A (weak)" in text


# ===================================================================
# Construction through the iterator
# ===================================================================


class TestConstruction:
    """Tests for visiting the true hierarchy."""

    def test_true_hierarchy_becomes_paths(self, evaluator, make_iterator) -> None:
        parent = evaluator.add_object("Parent")
        evaluator.add_object("Child", parent=parent)
        evaluator.add_object("Other")

        iterator = make_iterator()
        iterator.iterate()

        assert export_paths(iterator) == ["/Other", "/Parent", "/Parent/Child"]
        child = context_at(iterator, "/Parent/Child")
        assert child.export_parent is parent
        assert child.duplicator is None
        assert child.animation_check_include_parent is False

    def test_world_matrix_comes_from_evaluator(self, evaluator, make_iterator) -> None:
        evaluator.add_object("Moved", matrix_world=translation(1, 2, 3))
        iterator = make_iterator()
        iterator.iterate()
        np.testing.assert_allclose(context_at(iterator, "/Moved").world_matrix, translation(1, 2, 3))

    def test_depth_limit_is_fatal(self, evaluator, make_iterator) -> None:
        parent = None
        for index in range(5):
            parent = evaluator.add_object(f"Level{index}", parent=parent)

        iterator = make_iterator(settings=IteratorSettings(max_depth=3))
        with pytest.raises(HierarchyDepthError):
            iterator.iterate()

        assert len(iterator.export_graph) == 0
        assert iterator.state is IteratorState.IDLE

    def test_depth_within_limit(self, evaluator, make_iterator) -> None:
        parent = None
        for index in range(3):
            parent = evaluator.add_object(f"Level{index}", parent=parent)

        iterator = make_iterator(settings=IteratorSettings(max_depth=3))
        iterator.iterate()
        assert export_paths(iterator)[-1] == "/Level0/Level1/Level2"


class TestDuplication:
    """Tests for duplication contexts."""

    def test_dupli_contexts_live_below_duplicator(self, evaluator, make_iterator) -> None:
        tree = evaluator.add_object("Tree", data=ObjectData("TreeMesh"))
        forest = evaluator.add_object("Forest")
        evaluator.add_duplication(forest, tree, 0, translation(5, 0, 0))
        evaluator.add_duplication(forest, tree, 1, translation(10, 0, 0))

        iterator = make_iterator()
        iterator.iterate()

        assert export_paths(iterator) == ["/Forest", "/Forest/Tree-0", "/Forest/Tree-1", "/Tree"]
        instance = context_at(iterator, "/Forest/Tree-1")
        assert instance.object is tree
        assert instance.duplicator is forest
        assert instance.export_parent is forest
        assert instance.persistent_id == (1,)
        assert instance.animation_check_include_parent is True
        assert instance.weak_export is False
        np.testing.assert_allclose(instance.world_matrix, translation(10, 0, 0))

    def test_persistent_id_suffix_is_hex(self, evaluator, make_iterator) -> None:
        leaf = evaluator.add_object("Leaf")
        emitter = evaluator.add_object("Emitter")
        evaluator.add_duplication(emitter, leaf, (26, 3))

        iterator = make_iterator()
        iterator.iterate()
        assert "/Emitter/Leaf-1a-3" in export_paths(iterator)

    def test_duplicated_parent_wins_over_duplicator(self, evaluator, make_iterator) -> None:
        group = evaluator.add_object("Group")
        member = evaluator.add_object("Member", parent=group)
        instancer = evaluator.add_object("Instancer")
        evaluator.add_duplication(instancer, group, 0)
        evaluator.add_duplication(instancer, member, 1)

        iterator = make_iterator()
        iterator.iterate()

        member_instance = context_at(iterator, "/Instancer/Group-0/Member-1")
        assert member_instance.export_parent is group
        assert member_instance.duplicator is instancer
        assert member_instance.animation_check_include_parent is False
        assert context_at(iterator, "/Instancer/Group-0").animation_check_include_parent is True

    def test_hidden_duplications_are_skipped(self, evaluator, make_iterator) -> None:
        bone_shape = evaluator.add_object("BoneShape")
        armature = evaluator.add_object("Armature")
        evaluator.add_duplication(armature, bone_shape, 0, no_draw=True)

        iterator = make_iterator()
        iterator.iterate()
        assert export_paths(iterator) == ["/Armature", "/BoneShape"]

    def test_duplication_policy_hook(self, evaluator, make_iterator) -> None:
        rock = evaluator.add_object("Rock")
        scatter = evaluator.add_object("Scatter")
        evaluator.add_duplication(scatter, rock, 0)
        evaluator.add_duplication(scatter, rock, 1)

        policy = PredicatePolicy(should_visit_duplication=lambda link: link.persistent_id != (1,))
        iterator = make_iterator(policy=policy)
        iterator.iterate()
        assert export_paths(iterator) == ["/Rock", "/Scatter", "/Scatter/Rock-0"]

    def test_weak_duplicator_does_not_instance(self, evaluator, make_iterator) -> None:
        rock = evaluator.add_object("Rock")
        scatter = evaluator.add_object("Scatter")
        evaluator.add_duplication(scatter, rock, 0)

        policy = PredicatePolicy(should_export_object=lambda obj: obj.name != "Scatter")
        iterator = make_iterator(policy=policy)
        iterator.iterate()
        assert export_paths(iterator) == ["/Rock"]

    def test_nested_duplication_is_rebased(self, evaluator, make_iterator) -> None:
        mesh = evaluator.add_object("Mesh")
        group = evaluator.add_object("Group")
        evaluator.add_duplication(group, mesh, 0, translation(1, 0, 0))
        outer = evaluator.add_object("Outer")
        evaluator.add_duplication(outer, group, 1, translation(0, 5, 0))

        iterator = make_iterator()
        iterator.iterate()

        nested = context_at(iterator, "/Outer/Group-1/Mesh-1-0")
        assert nested.duplicator is group
        assert nested.export_parent is group
        assert nested.persistent_id == (1, 0)
        np.testing.assert_allclose(nested.world_matrix, translation(1, 5, 0))
        assert "/Group/Mesh-0" in export_paths(iterator)


class TestDuplicationCycles:
    """A duplication chain that re-enters itself is truncated."""

    def test_self_duplication_is_skipped(self, evaluator, make_iterator) -> None:
        a = evaluator.add_object("A")
        evaluator.add_duplication(a, a, 0)

        iterator = make_iterator()
        diagnostics = iterator.iterate()

        assert export_paths(iterator) == ["/A"]
        cycles = diagnostics.of_kind(DiagnosticKind.DUPLICATION_CYCLE)
        assert len(cycles) == 1

    def test_transitive_cycle_is_truncated(self, evaluator, make_iterator) -> None:
        a = evaluator.add_object("A")
        b = evaluator.add_object("B")
        evaluator.add_duplication(a, b, 0)
        evaluator.add_duplication(b, a, 0)

        iterator = make_iterator()
        diagnostics = iterator.iterate()

        assert export_paths(iterator) == ["/A", "/A/B-0", "/B", "/B/A-0"]
        assert len(diagnostics.of_kind(DiagnosticKind.DUPLICATION_CYCLE)) == 2
        assert len(iterator.export_graph) == 4


class TestWeakExport:
    """Objects failing the export predicate only carry transforms."""

    def test_weak_parent_is_kept_for_real_child(self, evaluator, make_iterator) -> None:
        y = evaluator.add_object("Y", data=ObjectData("YMesh"))
        evaluator.add_object("Z", parent=y)

        policy = PredicatePolicy(should_export_object=lambda obj: obj.name != "Y")
        iterator = make_iterator(policy=policy)
        iterator.iterate()

        assert export_paths(iterator) == ["/Y", "/Y/Z"]
        assert context_at(iterator, "/Y").weak_export is True
        assert context_at(iterator, "/Y/Z").weak_export is False

    def test_all_weak_subtree_is_pruned(self, evaluator, make_iterator) -> None:
        y = evaluator.add_object("Y")
        evaluator.add_object("Z", parent=y)
        evaluator.add_object("Kept")

        policy = PredicatePolicy(should_export_object=lambda obj: obj.name == "Kept")
        iterator = make_iterator(policy=policy)
        iterator.iterate()

        assert export_paths(iterator) == ["/Kept"]
        assert all(c.object.name not in ("Y", "Z") for c in iterator.export_graph.contexts())

    def test_every_remaining_weak_context_has_real_descendant(self, evaluator, make_iterator) -> None:
        top = evaluator.add_object("Top")
        mid = evaluator.add_object("Mid", parent=top)
        evaluator.add_object("Leaf", parent=mid)
        dead = evaluator.add_object("Dead", parent=top)
        evaluator.add_object("DeadLeaf", parent=dead)

        policy = PredicatePolicy(should_export_object=lambda obj: obj.name == "Leaf")
        iterator = make_iterator(policy=policy)
        iterator.iterate()

        graph = iterator.export_graph
        for context in iterator.contexts():
            if context.weak_export:
                assert any(not d.weak_export for d in graph.walk(context))
        assert export_paths(iterator) == ["/Top", "/Top/Mid", "/Top/Mid/Leaf"]
