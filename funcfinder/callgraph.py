"""
Direct call graph over function candidates.

Each resolved edge is lifted to function granularity: its source address is
attributed to the nearest candidate at or below it. No edges are inferred
beyond the direct calls and jumps the detector saw.
"""

import bisect
import logging
from typing import Iterable, List, Optional, Sequence

import networkx

from .models import CallSiteEdge, DetectionKind, EdgeKind, FunctionCandidate
from .utils.serialize import hexify

logger = logging.getLogger(__name__)


def owning_candidate(starts: Sequence[int], address: int) -> Optional[int]:
    """Return the greatest candidate start <= ``address`` (``starts`` sorted)."""
    index = bisect.bisect_right(starts, address)
    if index == 0:
        return None
    return starts[index - 1]


def build_call_graph(candidates: Iterable[FunctionCandidate],
                     edges: Iterable[CallSiteEdge],
                     include_jumps: bool = False) -> networkx.DiGraph:
    """
    Build a directed graph of candidate-to-target edges.

    Args:
        candidates: Merged candidates; each becomes a node keyed by address
        edges: Call-site edges; unresolved ones are skipped
        include_jumps: Also add jump edges (tail calls, cross-function branches)

    Returns:
        networkx.DiGraph whose edges carry ``kinds`` (set of edge kinds),
        ``sites`` (source addresses) and ``count``
    """
    graph = networkx.DiGraph()
    owners = []
    for candidate in candidates:
        # bare jump targets are usually labels inside a function, not entries
        if candidate.detection_kind is not DetectionKind.JUMP_TARGET:
            owners.append(candidate.address)
        graph.add_node(candidate.address,
                       detection_kind=str(candidate.detection_kind),
                       confidence=str(candidate.confidence),
                       prologue_kind=str(candidate.prologue_kind) if candidate.prologue_kind else None)

    starts = sorted(owners)
    for edge in edges:
        if not edge.resolved:
            continue
        if not include_jumps and edge.kind is EdgeKind.JUMP:
            continue
        caller = owning_candidate(starts, edge.source_address)
        if caller is None:
            continue
        if not graph.has_node(edge.target_address):
            graph.add_node(edge.target_address)
        if graph.has_edge(caller, edge.target_address):
            data = graph.edges[caller, edge.target_address]
            data['kinds'].add(str(edge.kind))
            data['sites'].append(edge.source_address)
            data['count'] += 1
        else:
            graph.add_edge(caller, edge.target_address,
                           kinds={str(edge.kind)}, sites=[edge.source_address], count=1)

    logger.debug(f"call graph: {graph.number_of_nodes()} node(s), {graph.number_of_edges()} edge(s)")
    return graph


def callees(graph: networkx.DiGraph, address: int) -> List[int]:
    if not graph.has_node(address):
        return []
    return sorted(graph.successors(address))


def callers(graph: networkx.DiGraph, address: int) -> List[int]:
    if not graph.has_node(address):
        return []
    return sorted(graph.predecessors(address))


def graph_to_dict(graph: networkx.DiGraph) -> dict:
    return {
        'nodes': [hexify(node) for node in sorted(graph.nodes)],
        'edges': [
            {
                'caller': hexify(src),
                'callee': hexify(dst),
                'kinds': sorted(data['kinds']),
                'count': data['count'],
            }
            for src, dst, data in sorted(graph.edges(data=True), key=lambda e: (e[0], e[1]))
        ],
    }
