"""
Result records produced by the detectors and the merger.
"""

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Dict, FrozenSet, List, Optional

from .arch import Arch
from .utils.serialize import hexify


class PrologueKind(str, Enum):
    """Classification of a detected prologue pattern."""

    # AMD64
    CLASSIC = 'classic'
    NO_FRAME_POINTER = 'no-frame-pointer'
    PUSH_ONLY = 'push-only'
    LEA_BASED = 'lea-based'

    # ARM64
    STP_FRAME_PAIR = 'stp-frame-pair'
    STP_ONLY = 'stp-only'
    STR_LR_PREINDEX = 'str-lr-preindex'
    SUB_SP = 'sub-sp'

    def __str__(self) -> str:
        return self.value


class EdgeKind(str, Enum):
    CALL = 'call'
    JUMP = 'jump'

    def __str__(self) -> str:
        return self.value


class AddressingMode(str, Enum):
    PC_RELATIVE = 'pc-relative'
    ABSOLUTE = 'absolute'
    REGISTER_INDIRECT = 'register-indirect'

    def __str__(self) -> str:
        return self.value


class Confidence(IntEnum):
    """Ordinal evidence strength. Relative only, not a probability."""

    NONE = 0
    LOW = 1
    MEDIUM = 2
    HIGH = 3

    def __str__(self) -> str:
        return self.name.lower()

    @classmethod
    def parse(cls, value) -> 'Confidence':
        if isinstance(value, cls):
            return value
        return cls[str(value).upper()]


class DetectionKind(str, Enum):
    PROLOGUE_ONLY = 'prologue-only'
    CALL_TARGET = 'call-target'
    JUMP_TARGET = 'jump-target'
    BOTH = 'both'

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Prologue:
    """A prologue pattern match anchored at the pattern's first instruction."""

    address: int
    kind: PrologueKind
    instructions: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            'address': hexify(self.address),
            'type': str(self.kind),
            'instructions': self.instructions,
        }


@dataclass(frozen=True)
class CallSiteEdge:
    """
    A call or jump instruction and its statically resolved target.

    ``target_address`` is None when the target depends on runtime state
    (register or memory operands).
    """

    source_address: int
    target_address: Optional[int]
    kind: EdgeKind
    addressing_mode: AddressingMode
    confidence: Confidence
    instruction: str = ''
    conditional: bool = False

    @property
    def resolved(self) -> bool:
        return self.target_address is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'source_address': hexify(self.source_address),
            'target_address': hexify(self.target_address) if self.resolved else None,
            'kind': str(self.kind),
            'addressing_mode': str(self.addressing_mode),
            'confidence': str(self.confidence),
            'conditional': self.conditional,
            'instruction': self.instruction,
        }


@dataclass(frozen=True)
class FunctionCandidate:
    """An address hypothesized to be a function entry, with its evidence."""

    address: int
    detection_kind: DetectionKind
    confidence: Confidence
    prologue_kind: Optional[PrologueKind] = None
    called_from: FrozenSet[int] = frozenset()
    jumped_from: FrozenSet[int] = frozenset()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'address': hexify(self.address),
            'detection_kind': str(self.detection_kind),
            'prologue_kind': str(self.prologue_kind) if self.prologue_kind else None,
            'confidence': str(self.confidence),
            'called_from': [hexify(addr) for addr in sorted(self.called_from)],
            'jumped_from': [hexify(addr) for addr in sorted(self.jumped_from)],
        }


@dataclass
class AnalysisResult:
    """Everything one analysis run produced for a single code region."""

    arch: Arch
    base_address: int
    code_size: int
    prologues: List[Prologue] = field(default_factory=list)
    call_sites: List[CallSiteEdge] = field(default_factory=list)
    candidates: List[FunctionCandidate] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'arch': str(self.arch),
            'base_address': hexify(self.base_address),
            'code_size': self.code_size,
            'prologues': [p.to_dict() for p in self.prologues],
            'call_sites': [e.to_dict() for e in self.call_sites],
            'candidates': [c.to_dict() for c in self.candidates],
        }
