"""
Architecture support for function boundary detection.

This module defines the closed set of supported architectures and the
callee-saved register sets the push-only prologue pattern is written
against.
"""

from enum import Enum
from typing import List

from .config import DetectorConfig
from .errors import UnsupportedArchitectureError


class Arch(str, Enum):
    """Supported 64-bit architectures."""

    AMD64 = 'amd64'
    ARM64 = 'arm64'

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, value) -> 'Arch':
        """
        Resolve an architecture tag or one of its common aliases.

        Args:
            value: Arch member or name such as 'amd64', 'x86_64', 'aarch64'

        Returns:
            Matching Arch member

        Raises:
            UnsupportedArchitectureError: If the tag is not recognized
        """
        if isinstance(value, cls):
            return value
        name = str(value).strip().lower()
        arch = _ARCH_ALIASES.get(name)
        if arch is None:
            raise UnsupportedArchitectureError(value, supported=supported_architectures())
        return arch


_ARCH_ALIASES = {
    'amd64': Arch.AMD64,
    'x86_64': Arch.AMD64,
    'x86-64': Arch.AMD64,
    'x64': Arch.AMD64,
    'arm64': Arch.ARM64,
    'aarch64': Arch.ARM64,
}


def supported_architectures() -> List[str]:
    return [arch.value for arch in Arch]


def architecture_tags() -> List[str]:
    """Every tag ``Arch.parse`` accepts, canonical names and aliases alike."""
    return sorted(_ARCH_ALIASES)


class ArchitectureInfo:
    """Callee-saved register set of an architecture's standard calling convention."""

    CALLEE_SAVED = {
        Arch.AMD64: frozenset(DetectorConfig.AMD64_CALLEE_SAVED),
        Arch.ARM64: frozenset(f"x{n}" for n in range(19, 31)),
    }

    def __init__(self, arch: Arch):
        self.arch = Arch.parse(arch)
        if self.arch not in self.CALLEE_SAVED:
            raise UnsupportedArchitectureError(self.arch, supported=supported_architectures())
        self.callee_saved = self.CALLEE_SAVED[self.arch]

    def is_callee_saved(self, register: str) -> bool:
        """Check if a register must be preserved by the callee."""
        return register.lower() in self.callee_saved
