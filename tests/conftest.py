import struct

import pytest

EM_X86_64 = 62
EM_AARCH64 = 183
EM_ARM = 40

SHT_PROGBITS = 1
SHT_STRTAB = 3
SHF_ALLOC_EXEC = 0x6


def build_elf(code: bytes, machine: int = EM_X86_64, text_addr: int = 0x401000,
              section_name: str = '.text', declared_size: int = None) -> bytes:
    """Little-endian ELF64 image with a null section, one code section and .shstrtab."""
    shstrtab = b'\x00' + section_name.encode() + b'\x00.shstrtab\x00'
    text_name_off = 1
    shstrtab_name_off = 1 + len(section_name) + 1

    text_off = 64
    shstrtab_off = text_off + len(code)
    shoff = shstrtab_off + len(shstrtab)
    shoff += (-shoff) % 8

    ident = b'\x7fELF' + bytes([2, 1, 1, 0]) + b'\x00' * 8
    header = ident + struct.pack('<HHIQQQIHHHHHH',
                                 2,             # ET_EXEC
                                 machine,
                                 1,             # EV_CURRENT
                                 text_addr,     # e_entry
                                 0,             # e_phoff
                                 shoff,
                                 0,             # e_flags
                                 64,            # e_ehsize
                                 0, 0,          # e_phentsize, e_phnum
                                 64, 3,         # e_shentsize, e_shnum
                                 2)             # e_shstrndx

    def section_header(name, sh_type, flags, addr, offset, size, align):
        return struct.pack('<IIQQQQIIQQ', name, sh_type, flags, addr, offset, size, 0, 0, align, 0)

    sections = (
        section_header(0, 0, 0, 0, 0, 0, 0)
        + section_header(text_name_off, SHT_PROGBITS, SHF_ALLOC_EXEC, text_addr, text_off,
                         len(code) if declared_size is None else declared_size, 16)
        + section_header(shstrtab_name_off, SHT_STRTAB, 0, 0, shstrtab_off, len(shstrtab), 1)
    )

    body = header + code + shstrtab
    body += b'\x00' * (shoff - len(body))
    return body + sections


def arm64_insns(*words: int) -> bytes:
    """Encode A64 instruction words as little-endian bytes."""
    return b''.join(struct.pack('<I', word) for word in words)


@pytest.fixture
def make_elf():
    return build_elf
