"""Relationships between annotations created in connect mode.

Connect mode pairs two markers; the resulting relationship is recorded here
between the two durable storage ids (never between marker ids, which change
whenever a marker is recreated). The graph is in-memory; how relationships
are persisted or drawn is up to the application.
"""

from __future__ import annotations

import logging

import networkx as nx

logger = logging.getLogger(__name__)


class ConnectionGraph:
    """Undirected graph of connected annotations keyed by storage id.

    Examples
    --------
    >>> graph = ConnectionGraph()
    >>> graph.connect("a", "b")
    True
    >>> graph.connect("b", "a")  # duplicate, either direction
    False
    >>> graph.connect("a", "a")  # self-loop
    False
    >>> graph.neighbors("a")
    ['b']

    """

    def __init__(self) -> None:
        self._graph = nx.Graph()

    def __len__(self) -> int:
        """Number of connections (edges)."""
        return self._graph.number_of_edges()

    def __contains__(self, storage_id: object) -> bool:
        return storage_id in self._graph

    def connect(self, first: str, second: str) -> bool:
        """Record a connection between two annotations.

        Returns
        -------
        bool
            True if the connection was added, False for self-loops and
            connections that already exist.

        """
        if first == second:
            logger.warning("Refusing to connect annotation %s to itself", first)
            return False
        if self._graph.has_edge(first, second):
            logger.info("Annotations %s and %s are already connected", first, second)
            return False
        self._graph.add_edge(first, second)
        logger.info("Connected annotations %s <-> %s", first, second)
        return True

    def disconnect(self, first: str, second: str) -> bool:
        if not self._graph.has_edge(first, second):
            return False
        self._graph.remove_edge(first, second)
        self._drop_isolated((first, second))
        return True

    def is_connected(self, first: str, second: str) -> bool:
        return self._graph.has_edge(first, second)

    def neighbors(self, storage_id: str) -> list[str]:
        if storage_id not in self._graph:
            return []
        return sorted(self._graph.neighbors(storage_id))

    def remove_annotation(self, storage_id: str) -> int:
        """Drop every connection of a deleted annotation.

        Returns
        -------
        int
            Number of connections removed.

        """
        if storage_id not in self._graph:
            return 0
        neighbors = list(self._graph.neighbors(storage_id))
        self._graph.remove_node(storage_id)
        self._drop_isolated(neighbors)
        return len(neighbors)

    def edges(self) -> list[tuple[str, str]]:
        """All connections as ``(a, b)`` pairs with ``a < b``, in sorted order."""
        return sorted(tuple(sorted(edge)) for edge in self._graph.edges())

    def to_networkx(self) -> nx.Graph:
        """Copy of the underlying graph for analysis or drawing."""
        return self._graph.copy()

    def _drop_isolated(self, nodes) -> None:
        for node in nodes:
            if node in self._graph and self._graph.degree(node) == 0:
                self._graph.remove_node(node)
