"""
Base detector class for linear-sweep pattern detection.
"""

import logging
from abc import ABC, abstractmethod
from typing import Generic, List, Optional, TypeVar

from ..arch import Arch, ArchitectureInfo
from ..decoder import DecodedInstruction, InstructionDecoder, as_code_bytes, get_decoder

T = TypeVar('T')


class BaseDetector(ABC, Generic[T]):
    """
    Abstract base class for single-pass detectors.

    A subclass implements ``visit`` for one architecture. ``scan`` owns the
    sweep: it threads exactly one slot of look-behind (the previous
    successfully decoded instruction) and clears it whenever the decoder
    reports a failure. Transparent markers leave it untouched.
    """

    arch: Arch = None

    def __init__(self, decoder: Optional[InstructionDecoder] = None, log_level: Optional[str] = None):
        """
        Initialize the detector.

        Args:
            decoder: Decoder to use; a fresh one is created when omitted
            log_level: Optional logging level override (DEBUG, INFO, ...)
        """
        if decoder is not None and decoder.arch is not self.arch:
            raise ValueError(f"{self.__class__.__name__} needs a {self.arch} decoder, "
                             f"got {decoder.arch}")
        self.decoder = decoder or get_decoder(self.arch)
        self.arch_info = ArchitectureInfo(self.arch)
        self.log = logging.getLogger(f"funcfinder.{self.__class__.__name__}")
        if log_level:
            self.log.setLevel(getattr(logging, log_level.upper()))

    def scan(self, code, base_address: int) -> List[T]:
        """
        Run one forward pass over ``code``.

        Args:
            code: Bytes-like machine code (None is treated as empty)
            base_address: Virtual address of the first byte

        Returns:
            Records in scan order
        """
        code = as_code_bytes(code)
        results: List[T] = []
        previous: Optional[DecodedInstruction] = None

        for step in self.decoder.walk(code, base_address):
            if step.transparent:
                continue
            if step.instruction is None:
                previous = None
                continue
            self.visit(step.instruction, previous, results)
            previous = step.instruction

        self.log.debug(f"{len(results)} record(s) from {len(code)} bytes at {base_address:#x}")
        return results

    @abstractmethod
    def visit(self, insn: DecodedInstruction, previous: Optional[DecodedInstruction],
              results: List[T]) -> None:
        """Inspect one instruction and append any records it produces."""
