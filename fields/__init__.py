# Isomorph: Matrix-Isomorphism Tensor Substrate (C) 2026 Eunkyum Kim
# Licensed under the Apache License, Version 2.0 | "Unbending" Paradigm

"""Fields and read-only views over backend tensors."""

from .multifield import Boundary, CausalMultiField, central_difference
from .topology import TopologyView, graph_fingerprint
from .manifold import ManifoldView

__all__ = [
    "Boundary",
    "CausalMultiField",
    "central_difference",
    "TopologyView",
    "graph_fingerprint",
    "ManifoldView",
]
