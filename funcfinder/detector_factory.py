"""
Factory class for creating detectors based on the target architecture, and
the analysis entry points built on it.
"""

import logging
from typing import Dict, List, Optional, Type

from .arch import Arch, supported_architectures
from .config import DetectorConfig
from .decoder import as_code_bytes, get_decoder
from .detectors.callsite_detector import AMD64CallSiteDetector, ARM64CallSiteDetector, CallSiteDetector
from .detectors.prologue_detector import AMD64PrologueDetector, ARM64PrologueDetector, PrologueDetector
from .errors import UnsupportedArchitectureError
from .merger import filter_edges_to_region, merge_candidates
from .models import AnalysisResult, CallSiteEdge, Prologue

log = logging.getLogger(__name__)


class DetectorFactory:
    """
    Factory for creating the prologue and call-site detectors of an architecture.
    """

    # Registry of available detectors
    PROLOGUE_DETECTORS: Dict[Arch, Type[PrologueDetector]] = {
        Arch.AMD64: AMD64PrologueDetector,
        Arch.ARM64: ARM64PrologueDetector,
    }

    CALLSITE_DETECTORS: Dict[Arch, Type[CallSiteDetector]] = {
        Arch.AMD64: AMD64CallSiteDetector,
        Arch.ARM64: ARM64CallSiteDetector,
    }

    @classmethod
    def _lookup(cls, registry, arch):
        detector_class = registry.get(Arch.parse(arch))
        if detector_class is None:
            raise UnsupportedArchitectureError(arch, supported=supported_architectures())
        return detector_class

    @classmethod
    def create_prologue_detector(cls, arch, decoder=None, log_level: Optional[str] = None) -> PrologueDetector:
        """
        Create the prologue detector for ``arch``.

        Args:
            arch: Architecture tag or alias
            decoder: Optional decoder to share with a call-site detector
            log_level: Logging level override

        Returns:
            Detector instance

        Raises:
            UnsupportedArchitectureError: If the architecture is not supported
        """
        return cls._lookup(cls.PROLOGUE_DETECTORS, arch)(decoder, log_level)

    @classmethod
    def create_callsite_detector(cls, arch, decoder=None, log_level: Optional[str] = None) -> CallSiteDetector:
        """
        Create the call-site detector for ``arch``.

        Raises:
            UnsupportedArchitectureError: If the architecture is not supported
        """
        return cls._lookup(cls.CALLSITE_DETECTORS, arch)(decoder, log_level)

    @classmethod
    def get_available_architectures(cls) -> List[str]:
        """
        Get list of architectures with both detectors registered.

        Returns:
            List of architecture names
        """
        return [arch.value for arch in cls.PROLOGUE_DETECTORS if arch in cls.CALLSITE_DETECTORS]

    @classmethod
    def register_detector(cls, arch, prologue_class: Type[PrologueDetector] = None,
                          callsite_class: Type[CallSiteDetector] = None) -> None:
        """
        Register detector classes for an architecture.

        Args:
            arch: Architecture the detectors handle
            prologue_class: PrologueDetector subclass
            callsite_class: CallSiteDetector subclass
        """
        arch = Arch.parse(arch)
        for detector_class, base in ((prologue_class, PrologueDetector), (callsite_class, CallSiteDetector)):
            if detector_class is not None and not issubclass(detector_class, base):
                raise ValueError(f"Detector class must inherit from {base.__name__}")
        if prologue_class is not None:
            cls.PROLOGUE_DETECTORS[arch] = prologue_class
        if callsite_class is not None:
            cls.CALLSITE_DETECTORS[arch] = callsite_class


def detect_prologues(code, base_address: int, arch) -> List[Prologue]:
    """
    Detect function prologues in raw machine code.

    Args:
        code: Bytes-like machine code; None is treated as empty
        base_address: Virtual address of ``code[0]``
        arch: Architecture tag ('amd64' or 'arm64')

    Returns:
        Prologues in ascending address order

    Raises:
        UnsupportedArchitectureError: If ``arch`` is not supported
    """
    return DetectorFactory.create_prologue_detector(arch).scan(code, base_address)


def detect_call_sites(code, base_address: int, arch) -> List[CallSiteEdge]:
    """
    Detect call and jump sites in raw machine code.

    Returns:
        One edge per call/jump instruction, in scan order

    Raises:
        UnsupportedArchitectureError: If ``arch`` is not supported
    """
    return DetectorFactory.create_callsite_detector(arch).scan(code, base_address)


def analyze(code, base_address: int, arch, in_region_only: Optional[bool] = None) -> AnalysisResult:
    """
    Run both detectors over the same code and merge their output.

    Args:
        code: Bytes-like machine code; None is treated as empty
        base_address: Virtual address of ``code[0]``
        arch: Architecture tag
        in_region_only: Only let edges whose target lies inside the analyzed
            code contribute candidates (defaults to DetectorConfig.IN_REGION_ONLY)

    Returns:
        AnalysisResult with prologues, call sites and candidates

    Raises:
        UnsupportedArchitectureError: If ``arch`` is not supported
    """
    arch = Arch.parse(arch)
    code = as_code_bytes(code)
    if in_region_only is None:
        in_region_only = DetectorConfig.IN_REGION_ONLY

    # one decoder, two independent passes
    decoder = get_decoder(arch)
    prologues = DetectorFactory.create_prologue_detector(arch, decoder).scan(code, base_address)
    call_sites = DetectorFactory.create_callsite_detector(arch, decoder).scan(code, base_address)

    edges = call_sites
    if in_region_only:
        edges = filter_edges_to_region(call_sites, base_address, len(code))

    candidates = merge_candidates(prologues, edges)
    log.info(f"{arch}: {len(prologues)} prologue(s), {len(call_sites)} call site(s), "
             f"{len(candidates)} candidate(s) in {len(code)} bytes at {base_address:#x}")

    return AnalysisResult(
        arch=arch,
        base_address=base_address,
        code_size=len(code),
        prologues=prologues,
        call_sites=call_sites,
        candidates=candidates,
    )
