"""Foreign-key dependency graph over table names.

Edges point from the referencing table to the referenced table, matching
the ``table -> set of referenced tables`` shape used for topological
ordering of DDL.
"""

from schemascope.schema.models import Relationship, SchemaSnapshot


class DependencyGraph:
    """Directed graph with one node per table and one edge per relationship.

    Usage:
        graph = DependencyGraph.from_schema(schema)
        graph.successors("orders")   # ['customers']
        graph.nodes()                # ['customers', 'orders', ...]
    """

    def __init__(self) -> None:
        # dict preserves insertion order for deterministic traversal
        self._edges: dict[str, list[str]] = {}

    @classmethod
    def from_schema(cls, schema: SchemaSnapshot) -> "DependencyGraph":
        """Build the graph from a schema's tables and derived relationships."""
        return cls.from_relationships(
            [table.name for table in schema.tables], schema.relationships
        )

    @classmethod
    def from_relationships(
        cls, table_names: list[str], relationships: list[Relationship]
    ) -> "DependencyGraph":
        graph = cls()
        for name in table_names:
            graph.add_node(name)
        for rel in relationships:
            graph.add_edge(rel.from_table, rel.to_table)
        return graph

    def add_node(self, node: str) -> None:
        self._edges.setdefault(node, [])

    def add_edge(self, source: str, target: str) -> None:
        """Add ``source -> target``; repeated edges are stored once."""
        self.add_node(source)
        self.add_node(target)
        if target not in self._edges[source]:
            self._edges[source].append(target)

    def nodes(self) -> list[str]:
        return list(self._edges)

    def successors(self, node: str) -> list[str]:
        """Tables that *node* references; empty if unknown or no FKs."""
        return list(self._edges.get(node, ()))

    def has_node(self, node: str) -> bool:
        return node in self._edges

    def __len__(self) -> int:
        return len(self._edges)

    def __contains__(self, node: object) -> bool:
        return node in self._edges
