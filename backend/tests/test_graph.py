"""
Dependency graph cycle detection tests.
"""

import uuid

from taskhive.services.graph import build_graph, find_cycle_with


def ids(n):
    return [uuid.uuid4() for _ in range(n)]


class TestFindCycleWith:
    def test_chain_has_no_cycle(self):
        """A -> B -> C, then C gains no edges."""
        a, b, c = ids(3)
        graph = build_graph([a, b, c], [(a, b), (b, c)])
        assert find_cycle_with(graph, c, []) is None

    def test_closing_a_loop_is_detected(self):
        """A -> B -> C, then C -> A closes a cycle."""
        a, b, c = ids(3)
        graph = build_graph([a, b, c], [(a, b), (b, c)])

        cycle = find_cycle_with(graph, c, [a])

        assert cycle is not None
        assert cycle[0] == cycle[-1]
        assert set(cycle) == {a, b, c}

    def test_replacing_edges_can_remove_a_cycle(self):
        """A -> B; B's edges are replaced so B -> A is fine once A -> B is gone."""
        a, b = ids(2)
        graph = build_graph([a, b], [(b, a)])
        # B already depends on A; making A depend on B would cycle
        assert find_cycle_with(graph, a, [b]) is not None
        # Replacing B's own list with [] leaves nothing to cycle through
        assert find_cycle_with(graph, b, []) is None

    def test_diamond_is_acyclic(self):
        a, b, c, d = ids(4)
        graph = build_graph([a, b, c, d], [(b, a), (c, a)])
        assert find_cycle_with(graph, d, [b, c]) is None

    def test_graph_is_not_modified(self):
        a, b = ids(2)
        graph = build_graph([a, b], [(a, b)])
        find_cycle_with(graph, b, [a])
        assert list(graph.edges) == [(a, b)]

    def test_new_task_node(self):
        """A task not yet in the graph cannot close a cycle."""
        a, b, new = ids(3)
        graph = build_graph([a, b], [(a, b)])
        assert find_cycle_with(graph, new, [a, b]) is None
