"""
Single-instruction decoders backed by capstone.

A decoder turns ``(code, offset, address)`` into one decoded instruction or
reports a failure by returning None. ``walk`` drives a linear sweep over a
code buffer and applies the architecture's resynchronization policy, so the
detectors only ever see a flat stream of steps.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Iterator, Optional, Type

import capstone

from .arch import Arch, supported_architectures
from .config import DetectorConfig
from .errors import UnsupportedArchitectureError
from .utils.serialize import ADDRESS_MASK

log = logging.getLogger(__name__)


@dataclass
class DecodedInstruction:
    """One decoded instruction. Lives for a single detector iteration."""

    address: int
    size: int
    mnemonic: str
    op_str: str
    insn: capstone.CsInsn

    @property
    def id(self) -> int:
        return self.insn.id

    @property
    def operands(self):
        return self.insn.operands

    @property
    def text(self) -> str:
        if self.op_str:
            return f"{self.mnemonic} {self.op_str}"
        return self.mnemonic


@dataclass
class DecodeStep:
    """
    One position of a linear sweep.

    ``instruction`` is None for a failed decode and for a transparent
    marker. Failed steps break pattern continuity; transparent ones do not.
    """

    offset: int
    address: int
    size: int
    instruction: Optional[DecodedInstruction] = None
    transparent: bool = False

    @property
    def failed(self) -> bool:
        return self.instruction is None and not self.transparent


class InstructionDecoder(ABC):
    """
    Abstract base class for per-architecture decoders.

    Each instance owns its own capstone handle, so concurrent analyses
    should each create their own decoder.
    """

    arch: Arch = None

    def __init__(self):
        cs_arch, cs_mode = self._capstone_target()
        self._cs = capstone.Cs(cs_arch, cs_mode)
        self._cs.detail = True

    @abstractmethod
    def _capstone_target(self):
        """Return the (CS_ARCH_*, CS_MODE_*) pair for this architecture."""

    @property
    @abstractmethod
    def max_length(self) -> int:
        """Upper bound on the encoded length of one instruction."""

    @property
    @abstractmethod
    def failure_stride(self) -> int:
        """Bytes to skip after a failed decode."""

    def has_room(self, code_len: int, offset: int) -> bool:
        """True while the sweep should still attempt a decode at ``offset``."""
        return offset < code_len

    def transparent_marker(self, code: bytes, offset: int) -> int:
        """Size of a pattern-transparent marker at ``offset``, or 0."""
        return 0

    def decode(self, code: bytes, offset: int, address: int) -> Optional[DecodedInstruction]:
        """
        Decode exactly one instruction at ``offset``.

        Args:
            code: Immutable code buffer
            offset: Byte offset into ``code``
            address: Virtual address of ``code[offset]``

        Returns:
            The decoded instruction, or None for malformed or truncated
            encodings. Never reads past the end of ``code``.
        """
        if offset < 0 or offset >= len(code):
            return None
        window = code[offset:offset + self.max_length]
        try:
            insn = next(self._cs.disasm(window, address, 1), None)
        except capstone.CsError as e:
            log.debug(f"capstone error at {address:#x}: {e}")
            return None
        if insn is None or insn.size <= 0:
            return None
        return DecodedInstruction(
            address=insn.address,
            size=insn.size,
            mnemonic=insn.mnemonic,
            op_str=insn.op_str,
            insn=insn,
        )

    def walk(self, code: bytes, base_address: int) -> Iterator[DecodeStep]:
        """
        Linear sweep over ``code`` starting at ``base_address``.

        Yields:
            One DecodeStep per decoded instruction, failed position or
            transparent marker, in ascending address order.
        """
        code_len = len(code)
        offset = 0
        failures = 0
        while self.has_room(code_len, offset):
            address = (base_address + offset) & ADDRESS_MASK

            marker = self.transparent_marker(code, offset)
            if marker:
                yield DecodeStep(offset, address, marker, transparent=True)
                offset += marker
                continue

            instruction = self.decode(code, offset, address)
            if instruction is None:
                failures += 1
                yield DecodeStep(offset, address, self.failure_stride)
                offset += self.failure_stride
                continue

            yield DecodeStep(offset, address, instruction.size, instruction)
            offset += instruction.size

        if failures:
            log.debug(f"{self.arch}: {failures} decode failure(s) over {code_len} bytes "
                      f"at base {base_address:#x}")


class AMD64Decoder(InstructionDecoder):
    """Variable-length x86-64 decoder; resynchronizes one byte at a time."""

    arch = Arch.AMD64

    def _capstone_target(self):
        return capstone.CS_ARCH_X86, capstone.CS_MODE_64

    @property
    def max_length(self) -> int:
        return DetectorConfig.AMD64_MAX_INSN_LEN

    @property
    def failure_stride(self) -> int:
        return 1

    def transparent_marker(self, code: bytes, offset: int) -> int:
        # endbr64/endbr32 sit at CET-protected function entries
        marker = code[offset:offset + 4]
        if len(marker) == 4 and marker in DetectorConfig.CET_MARKERS:
            return 4
        return 0


class ARM64Decoder(InstructionDecoder):
    """Fixed-width A64 decoder; a trailing partial word is never decoded."""

    arch = Arch.ARM64

    def _capstone_target(self):
        return capstone.CS_ARCH_ARM64, capstone.CS_MODE_ARM

    @property
    def max_length(self) -> int:
        return DetectorConfig.ARM64_INSN_LEN

    @property
    def failure_stride(self) -> int:
        return DetectorConfig.ARM64_INSN_LEN

    def has_room(self, code_len: int, offset: int) -> bool:
        return offset + DetectorConfig.ARM64_INSN_LEN <= code_len

    def decode(self, code: bytes, offset: int, address: int) -> Optional[DecodedInstruction]:
        if offset + DetectorConfig.ARM64_INSN_LEN > len(code):
            return None
        return super().decode(code, offset, address)


DECODERS: Dict[Arch, Type[InstructionDecoder]] = {
    Arch.AMD64: AMD64Decoder,
    Arch.ARM64: ARM64Decoder,
}


def get_decoder(arch) -> InstructionDecoder:
    """
    Create a fresh decoder for ``arch``.

    Raises:
        UnsupportedArchitectureError: If no decoder is registered for ``arch``
    """
    decoder_class = DECODERS.get(Arch.parse(arch))
    if decoder_class is None:
        raise UnsupportedArchitectureError(arch, supported=supported_architectures())
    return decoder_class()


def as_code_bytes(code) -> bytes:
    """Normalize bytes-like input (or None) to an immutable bytes object."""
    if code is None:
        return b''
    return bytes(code)
