"""
ELF container adapter.

Locates the code-bearing section of an ELF image, determines the target
architecture from the header and forwards ``(code, address, arch)`` to the
detectors. Every failure surfaces as a distinct ContainerError subclass.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from elftools.common.exceptions import ELFError
from elftools.elf.constants import SH_FLAGS
from elftools.elf.elffile import ELFFile

from .arch import Arch, supported_architectures
from .config import DetectorConfig
from .detector_factory import analyze, detect_prologues
from .errors import (
    ContainerReadError,
    MalformedContainerError,
    SectionNotFoundError,
    SectionReadError,
    UnsupportedMachineError,
)
from .models import AnalysisResult, Prologue

logger = logging.getLogger(__name__)

ELF_MACHINES = {
    'EM_X86_64': Arch.AMD64,
    'EM_AARCH64': Arch.ARM64,
}


@dataclass(frozen=True)
class CodeSection:
    """Raw bytes of one code section plus where and for what it runs."""

    name: str
    address: int
    data: bytes
    arch: Arch

    @property
    def size(self) -> int:
        return len(self.data)


def load_code_section(stream, section_name: Optional[str] = None) -> CodeSection:
    """
    Extract a code section from an ELF image.

    Args:
        stream: Seekable binary file-like object positioned anywhere
        section_name: Section to extract (defaults to DetectorConfig.DEFAULT_SECTION)

    Returns:
        CodeSection with the section bytes, its virtual address and the arch

    Raises:
        MalformedContainerError: If the stream is not a parseable ELF
        ContainerReadError: If reading the stream fails
        UnsupportedMachineError: If the ELF targets an unsupported machine
        SectionNotFoundError: If the section does not exist
        SectionReadError: If the section body cannot be read in full
    """
    section_name = section_name or DetectorConfig.DEFAULT_SECTION

    try:
        elf = ELFFile(stream)
        machine = elf['e_machine']
    except ELFError as e:
        raise MalformedContainerError(f"failed to parse ELF file: {e}") from e
    except OSError as e:
        raise ContainerReadError(f"failed to read ELF header: {e}") from e

    arch = ELF_MACHINES.get(machine)
    if arch is None:
        raise UnsupportedMachineError(machine, supported=supported_architectures())

    try:
        section = elf.get_section_by_name(section_name)
    except ELFError as e:
        raise MalformedContainerError(f"failed to parse section headers: {e}") from e
    except OSError as e:
        raise ContainerReadError(f"failed to read section headers: {e}") from e
    if section is None:
        raise SectionNotFoundError(section_name)

    if section['sh_type'] == 'SHT_NOBITS':
        raise SectionReadError(f"{section_name} section has no file contents")

    try:
        data = section.data()
    except (ELFError, OSError) as e:
        raise SectionReadError(f"failed to read {section_name} section: {e}") from e

    expected = section['sh_size']
    if not section['sh_flags'] & SH_FLAGS.SHF_COMPRESSED and len(data) != expected:
        raise SectionReadError(f"{section_name} section truncated: "
                               f"read {len(data)} of {expected} bytes")

    logger.info(f"Loaded {section_name}: {len(data)} bytes at {section['sh_addr']:#x} ({arch})")
    return CodeSection(name=section_name, address=section['sh_addr'], data=bytes(data), arch=arch)


def detect_prologues_from_elf(stream, section_name: Optional[str] = None) -> List[Prologue]:
    """Detect prologues in the code section of an ELF image."""
    section = load_code_section(stream, section_name)
    return detect_prologues(section.data, section.address, section.arch)


def analyze_elf(stream, section_name: Optional[str] = None,
                in_region_only: Optional[bool] = None) -> AnalysisResult:
    """
    Run the full analysis over the code section of an ELF image.

    Args:
        stream: Seekable binary file-like object
        section_name: Section to analyze (defaults to .text)
        in_region_only: Drop edges leaving the section before merging
    """
    section = load_code_section(stream, section_name)
    return analyze(section.data, section.address, section.arch, in_region_only=in_region_only)


def analyze_file(path: str, section_name: Optional[str] = None,
                 in_region_only: Optional[bool] = None) -> AnalysisResult:
    """Open ``path`` and analyze it as an ELF image."""
    with open(path, 'rb') as f:
        return analyze_elf(f, section_name, in_region_only)
