# Isomorph: Matrix-Isomorphism Tensor Substrate (C) 2026 Eunkyum Kim
# Licensed under the Apache License, Version 2.0 | "Unbending" Paradigm

"""Read-only dense projection of a graph onto a backend.

The view owns a host index map (node <-> row) and an adjacency tensor
uploaded once. It never writes back to its source; structural edits to the
source are detected through a fingerprint.
"""

from __future__ import annotations

import hashlib
from collections.abc import Mapping
from typing import Dict, Hashable, Iterable, List, Optional, Tuple

import numpy as np

from core.errors import DisconnectedGraph, IndexOutOfBounds, StaleView
from core.scalar import ScalarType
from backends.base import Tensor, TensorBackend
from log import get_logger

logger = get_logger(__name__)


def _edges_of(graph) -> Tuple[List[Hashable], List[Tuple[Hashable, Hashable, float]]]:
    """Normalizes the supported graph encodings to ``(nodes, weighted edges)``."""
    if isinstance(graph, Mapping):
        nodes = list(graph.keys())
        edges = []
        for u, nbrs in graph.items():
            if isinstance(nbrs, Mapping):
                for v, w in nbrs.items():
                    if isinstance(w, Mapping):
                        w = w.get("weight", 1.0)
                    edges.append((u, v, float(w)))
            else:
                edges.extend((u, v, 1.0) for v in nbrs)
        seen = set(nodes)
        for _, v, _ in edges:
            if v not in seen:
                seen.add(v)
                nodes.append(v)
        return nodes, edges
    if hasattr(graph, "nodes") and hasattr(graph, "edges"):
        # networkx-style: nodes() and edges(data=True)
        nodes = list(graph.nodes())
        edges = [(u, v, float(d.get("weight", 1.0))) for u, v, d in graph.edges(data=True)]
        return nodes, edges
    raise TypeError(f"unsupported graph type {type(graph).__name__}")


def graph_fingerprint(graph) -> str:
    """Structural hash of a graph: node order, edges and weights."""
    nodes, edges = _edges_of(graph)
    h = hashlib.sha1()
    h.update(repr(nodes).encode())
    h.update(repr(sorted((repr(u), repr(v), w) for u, v, w in edges)).encode())
    return h.hexdigest()


class TopologyView:
    """Adjacency-based view of a graph.

    Attributes:
        adjacency (Tensor): Dense ``[N, N]`` weights, row = source node.
        directed (bool): Whether edges were kept one-way.
        fingerprint (str): Structural hash of the source at projection time.
    """

    def __init__(self, nodes: List[Hashable], adjacency: Tensor, directed: bool, fingerprint: str):
        self._nodes = list(nodes)
        self._index: Dict[Hashable, int] = {node: i for i, node in enumerate(self._nodes)}
        self.adjacency = adjacency
        self.directed = directed
        self.fingerprint = fingerprint

    @classmethod
    def from_graph(cls, graph, backend: TensorBackend, scalar_type=ScalarType.F64,
                   directed: bool = False) -> "TopologyView":
        """Projects a graph.

        Args:
            graph: ``{node: {nbr: weight}}``, ``{node: iterable_of_nbrs}`` or a
                networkx-style object with ``nodes()`` and ``edges(data=True)``.
            backend (TensorBackend): Where the adjacency lives.
            scalar_type: Element type of the adjacency.
            directed (bool): Keep edges one-way instead of symmetrising.
        """
        nodes, edges = _edges_of(graph)
        return cls._build(nodes, edges, backend, scalar_type, directed, graph_fingerprint(graph))

    @classmethod
    def from_edges(cls, nodes: Iterable[Hashable], edges: Iterable, backend: TensorBackend,
                   scalar_type=ScalarType.F64, directed: bool = False) -> "TopologyView":
        """Projects an explicit node list and ``(u, v)`` / ``(u, v, w)`` edges."""
        nodes = list(nodes)
        weighted = []
        for edge in edges:
            if len(edge) == 2:
                weighted.append((edge[0], edge[1], 1.0))
            else:
                weighted.append((edge[0], edge[1], float(edge[2])))
        graph = {u: {} for u in nodes}
        for u, v, w in weighted:
            graph.setdefault(u, {})[v] = w
        return cls._build(nodes, weighted, backend, scalar_type, directed, graph_fingerprint(graph))

    @classmethod
    def _build(cls, nodes, edges, backend, scalar_type, directed, fingerprint) -> "TopologyView":
        scalar_type = ScalarType.parse(scalar_type)
        index = {node: i for i, node in enumerate(nodes)}
        n = len(nodes)
        adj = np.zeros((n, n), dtype=scalar_type.numpy_dtype)
        for u, v, w in edges:
            i, j = index[u], index[v]
            adj[i, j] = w
            if not directed:
                adj[j, i] = w
        logger.debug("Projected graph with %d nodes and %d edges onto %s", n, len(edges), backend.key)
        return cls(nodes, backend.upload(adj, scalar_type), directed, fingerprint)

    # ------------------------------------------------------------------
    # Index map
    # ------------------------------------------------------------------

    @property
    def backend(self) -> TensorBackend:
        return self.adjacency.backend

    @property
    def scalar_type(self) -> ScalarType:
        return self.adjacency.scalar_type

    @property
    def nodes(self) -> List[Hashable]:
        return list(self._nodes)

    @property
    def num_nodes(self) -> int:
        return len(self._nodes)

    def __len__(self) -> int:
        return len(self._nodes)

    def index_of(self, node: Hashable) -> int:
        try:
            return self._index[node]
        except KeyError:
            raise IndexOutOfBounds(f"node {node!r} is not in the view") from None

    def node_at(self, row: int) -> Hashable:
        if not 0 <= row < len(self._nodes):
            raise IndexOutOfBounds(f"row {row} outside view of {len(self._nodes)} nodes")
        return self._nodes[row]

    # ------------------------------------------------------------------
    # Operators
    # ------------------------------------------------------------------

    def degree(self) -> Tensor:
        """Weighted out-degree per node, ``[N]``."""
        return self.backend.sum(self.adjacency, axis=1)

    def laplacian(self) -> Tensor:
        """Combinatorial ``L = D - A``."""
        backend = self.backend
        n = self.num_nodes
        deg = backend.reshape(self.degree(), (n, 1))
        degree_matrix = backend.mul(backend.eye(n, self.scalar_type), deg)
        return backend.sub(degree_matrix, self.adjacency)

    def _inv_sqrt_degree(self) -> Tensor:
        # Isolated nodes give 1/sqrt(0) = inf, mapped to 0
        return self.backend.nan_to_num(self._reciprocal(self.backend.sqrt(self.degree())), 0.0)

    def _reciprocal(self, t: Tensor) -> Tensor:
        backend = self.backend
        return backend.div(backend.ones(t.shape, t.scalar_type), t)

    def normalized_laplacian(self) -> Tensor:
        """``I - D^-1/2 A D^-1/2``; isolated nodes get ``D^-1/2 = 0``."""
        backend = self.backend
        n = self.num_nodes
        d = self._inv_sqrt_degree()
        scaled = backend.mul(backend.mul(self.adjacency, backend.reshape(d, (n, 1))), backend.reshape(d, (1, n)))
        return backend.sub(backend.eye(n, self.scalar_type), scaled)

    def random_walk(self) -> Tensor:
        """Row-stochastic transition matrix ``D^-1 A``."""
        backend = self.backend
        n = self.num_nodes
        inv_deg = backend.nan_to_num(self._reciprocal(self.degree()), 0.0)
        return backend.mul(self.adjacency, backend.reshape(inv_deg, (n, 1)))

    def spectrum(self) -> Tensor:
        """Ascending eigenvalues of the normalized Laplacian."""
        if self.directed:
            logger.debug("Spectrum of a directed view requires a symmetric adjacency")
        values, _ = self.backend.eig(self.normalized_laplacian())
        return values

    def spectral_gap(self, tol: Optional[float] = None) -> float:
        """Second smallest normalized-Laplacian eigenvalue.

        Raises:
            IndexOutOfBounds: With fewer than two nodes.
            DisconnectedGraph: If zero is a repeated eigenvalue.
        """
        if self.num_nodes < 2:
            raise IndexOutOfBounds(f"spectral gap needs at least 2 nodes, got {self.num_nodes}")
        values = self.spectrum().to_numpy()
        if tol is None:
            tol = np.sqrt(self.scalar_type.eps) * self.num_nodes
        gap = float(values[1])
        if abs(gap) <= tol:
            raise DisconnectedGraph(
                f"zero eigenvalue has multiplicity > 1 (lambda_2 = {gap:.3e})"
            )
        return gap

    def diffuse(self, state, steps: int) -> Tensor:
        """Applies ``state <- A @ state`` exactly ``steps`` times.

        Args:
            state: ``[N]`` or ``[N, K]`` host array or tensor.
            steps (int): Non-negative step count.
        """
        if isinstance(steps, bool) or not isinstance(steps, (int, np.integer)) or steps < 0:
            raise ValueError(f"steps must be a non-negative integer, got {steps!r}")
        backend = self.backend
        if isinstance(state, Tensor):
            current = state.backend.transfer(state, backend)
        else:
            current = backend.upload(np.asarray(state, dtype=self.scalar_type.numpy_dtype), self.scalar_type)
        vector = current.ndim == 1
        if vector:
            current = backend.reshape(current, (current.shape[0], 1))
        for _ in range(int(steps)):
            current = backend.matmul(self.adjacency, current)
        if vector:
            current = backend.reshape(current, (current.shape[0],))
        return current

    # ------------------------------------------------------------------
    # Staleness
    # ------------------------------------------------------------------

    def is_stale(self, graph) -> bool:
        return graph_fingerprint(graph) != self.fingerprint

    def ensure_fresh(self, graph) -> None:
        """Raises :class:`StaleView` if ``graph`` changed since projection."""
        if self.is_stale(graph):
            raise StaleView("source graph was structurally edited after the view was built")

    def __repr__(self):
        return f"TopologyView(nodes={self.num_nodes}, directed={self.directed}, backend={self.backend.key})"
