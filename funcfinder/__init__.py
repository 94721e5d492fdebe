"""
funcfinder detects function boundaries in raw machine code or ELF binaries
using instruction-level disassembly, without symbols or debug information.

Use ``detect_prologues`` and ``detect_call_sites`` on raw bytes, ``analyze``
to merge both into function candidates, or ``analyze_elf`` to run on the
.text section of an ELF image.
"""

from .arch import Arch, supported_architectures
from .callgraph import build_call_graph
from .detector_factory import DetectorFactory, analyze, detect_call_sites, detect_prologues
from .elf_loader import CodeSection, analyze_elf, analyze_file, detect_prologues_from_elf, load_code_section
from .errors import (
    ContainerError,
    ContainerReadError,
    FuncFinderError,
    MalformedContainerError,
    SectionNotFoundError,
    SectionReadError,
    UnsupportedArchitectureError,
    UnsupportedMachineError,
)
from .merger import merge_candidates
from .models import (
    AddressingMode,
    AnalysisResult,
    CallSiteEdge,
    Confidence,
    DetectionKind,
    EdgeKind,
    FunctionCandidate,
    Prologue,
    PrologueKind,
)

__version__ = '0.1.0'

__all__ = [
    'AddressingMode',
    'AnalysisResult',
    'Arch',
    'CallSiteEdge',
    'CodeSection',
    'Confidence',
    'ContainerError',
    'ContainerReadError',
    'DetectionKind',
    'DetectorFactory',
    'EdgeKind',
    'FuncFinderError',
    'FunctionCandidate',
    'MalformedContainerError',
    'Prologue',
    'PrologueKind',
    'SectionNotFoundError',
    'SectionReadError',
    'UnsupportedArchitectureError',
    'UnsupportedMachineError',
    'analyze',
    'analyze_elf',
    'analyze_file',
    'build_call_graph',
    'detect_call_sites',
    'detect_prologues',
    'detect_prologues_from_elf',
    'load_code_section',
    'merge_candidates',
    'supported_architectures',
]
