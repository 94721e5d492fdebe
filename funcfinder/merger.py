"""
Function candidate merger.

Fuses prologue matches and call/jump edges into one candidate per address.
The merge is architecture-agnostic: it only looks at addresses, prologue
kinds and edge kinds.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set

from .config import DetectorConfig
from .models import (
    CallSiteEdge,
    Confidence,
    DetectionKind,
    EdgeKind,
    FunctionCandidate,
    Prologue,
    PrologueKind,
)

log = logging.getLogger(__name__)


@dataclass
class _Evidence:
    """Mutable accumulator for one address, used only during a merge."""

    prologue_kind: Optional[PrologueKind] = None
    called_from: Set[int] = field(default_factory=set)
    jumped_from: Set[int] = field(default_factory=set)

    def add_prologue(self, kind: PrologueKind) -> None:
        # several patterns may anchor at the same address; keep the most trusted
        if self.prologue_kind is None or prologue_trust(kind) > prologue_trust(self.prologue_kind):
            self.prologue_kind = kind


def prologue_trust(kind: PrologueKind) -> int:
    return DetectorConfig.PROLOGUE_TRUST.get(str(kind), 0)


def prologue_confidence(kind: PrologueKind) -> Confidence:
    """Confidence of a candidate supported by a prologue alone."""
    if str(kind) in DetectorConfig.HIGH_TRUST_PROLOGUES:
        return Confidence.HIGH
    return Confidence.MEDIUM


def merge_candidates(prologues: Iterable[Prologue],
                     edges: Iterable[CallSiteEdge]) -> List[FunctionCandidate]:
    """
    Merge prologues and call/jump edges into function candidates.

    Args:
        prologues: Prologue records from one analysis run
        edges: Call-site edges from the same run; unresolved ones are ignored

    Returns:
        One FunctionCandidate per address that received any signal, sorted
        by ascending address
    """
    evidence: Dict[int, _Evidence] = {}

    for prologue in prologues:
        evidence.setdefault(prologue.address, _Evidence()).add_prologue(prologue.kind)

    for edge in edges:
        if not edge.resolved:
            continue
        entry = evidence.setdefault(edge.target_address, _Evidence())
        if edge.kind is EdgeKind.CALL:
            entry.called_from.add(edge.source_address)
        else:
            entry.jumped_from.add(edge.source_address)

    candidates = [_finalize(address, entry) for address, entry in sorted(evidence.items())]
    log.debug(f"merged {len(candidates)} candidate(s)")
    return candidates


def _finalize(address: int, entry: _Evidence) -> FunctionCandidate:
    has_edges = bool(entry.called_from or entry.jumped_from)

    if entry.prologue_kind is not None and has_edges:
        detection, confidence = DetectionKind.BOTH, Confidence.HIGH
    elif entry.prologue_kind is not None:
        detection, confidence = DetectionKind.PROLOGUE_ONLY, prologue_confidence(entry.prologue_kind)
    elif entry.called_from:
        detection, confidence = DetectionKind.CALL_TARGET, Confidence.MEDIUM
    else:
        detection, confidence = DetectionKind.JUMP_TARGET, Confidence.LOW

    return FunctionCandidate(
        address=address,
        detection_kind=detection,
        confidence=confidence,
        prologue_kind=entry.prologue_kind,
        called_from=frozenset(entry.called_from),
        jumped_from=frozenset(entry.jumped_from),
    )


def filter_edges_to_region(edges: Iterable[CallSiteEdge], start: int, size: int) -> List[CallSiteEdge]:
    """Keep resolved edges whose target lies in ``[start, start + size)``."""
    end = start + size
    return [edge for edge in edges if edge.resolved and start <= edge.target_address < end]
