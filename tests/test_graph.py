"""Tests for DependencyGraph."""

from schemascope.schema.graph import DependencyGraph
from schemascope.schema.models import ForeignKey, SchemaSnapshot, Table


class TestDependencyGraph:
    """Verify node and edge bookkeeping."""

    def test_one_node_per_table(self) -> None:
        schema = SchemaSnapshot(
            tables=[
                Table(name="users"),
                Table(
                    name="posts",
                    foreign_keys=[ForeignKey(column="user_id", references="users.id")],
                ),
            ]
        )
        graph = DependencyGraph.from_schema(schema)

        assert graph.nodes() == ["users", "posts"]
        assert graph.successors("posts") == ["users"]
        assert graph.successors("users") == []

    def test_edge_to_missing_table_adds_node(self) -> None:
        schema = SchemaSnapshot(
            tables=[
                Table(
                    name="posts",
                    foreign_keys=[ForeignKey(column="user_id", references="users.id")],
                )
            ]
        )
        graph = DependencyGraph.from_schema(schema)

        assert "users" in graph
        assert len(graph) == 2

    def test_repeated_edges_stored_once(self) -> None:
        graph = DependencyGraph()
        graph.add_edge("posts", "users")
        graph.add_edge("posts", "users")

        assert graph.successors("posts") == ["users"]

    def test_unknown_node_has_no_successors(self) -> None:
        graph = DependencyGraph()

        assert graph.successors("ghost") == []
        assert graph.has_node("ghost") is False

    def test_successors_returns_copy(self) -> None:
        graph = DependencyGraph()
        graph.add_edge("a", "b")

        graph.successors("a").append("c")

        assert graph.successors("a") == ["b"]

    def test_self_edge(self) -> None:
        graph = DependencyGraph()
        graph.add_edge("categories", "categories")

        assert graph.successors("categories") == ["categories"]
        assert graph.nodes() == ["categories"]
