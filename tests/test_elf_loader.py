import io

import pytest
from conftest import EM_AARCH64, EM_ARM, arm64_insns

from funcfinder import (
    Arch,
    ContainerError,
    DetectionKind,
    MalformedContainerError,
    PrologueKind,
    SectionNotFoundError,
    SectionReadError,
    UnsupportedArchitectureError,
    UnsupportedMachineError,
    analyze_elf,
    analyze_file,
    detect_prologues_from_elf,
    load_code_section,
)

AMD64_CODE = (
    b'\x55\x48\x89\xe5\xe8\x02\x00\x00\x00\x5d\xc3'   # push rbp; mov rbp, rsp; call +2; pop rbp; ret
    b'\x55\x48\x89\xe5\x5d\xc3'                       # push rbp; mov rbp, rsp; pop rbp; ret
)


def test_load_amd64_text(make_elf):
    section = load_code_section(io.BytesIO(make_elf(AMD64_CODE)))

    assert section.name == '.text'
    assert section.arch is Arch.AMD64
    assert section.address == 0x401000
    assert section.data == AMD64_CODE
    assert section.size == len(AMD64_CODE)


def test_load_arm64_text(make_elf):
    code = arm64_insns(0xa9bf7bfd, 0x910003fd, 0xd65f03c0)
    section = load_code_section(io.BytesIO(make_elf(code, machine=EM_AARCH64, text_addr=0x400000)))

    assert section.arch is Arch.ARM64
    assert section.address == 0x400000
    assert section.data == code


def test_custom_section_name(make_elf):
    image = make_elf(AMD64_CODE, section_name='.init')

    assert load_code_section(io.BytesIO(image), '.init').name == '.init'
    with pytest.raises(SectionNotFoundError):
        load_code_section(io.BytesIO(image))


def test_detect_prologues_from_elf(make_elf):
    prologues = detect_prologues_from_elf(io.BytesIO(make_elf(AMD64_CODE)))

    assert [(p.address, p.kind) for p in prologues] == [
        (0x401000, PrologueKind.PUSH_ONLY),
        (0x401000, PrologueKind.CLASSIC),
        (0x40100b, PrologueKind.PUSH_ONLY),
        (0x40100b, PrologueKind.CLASSIC),
    ]


def test_analyze_elf(make_elf):
    result = analyze_elf(io.BytesIO(make_elf(AMD64_CODE)))

    assert result.base_address == 0x401000
    assert [(c.address, c.detection_kind) for c in result.candidates] == [
        (0x401000, DetectionKind.PROLOGUE_ONLY),
        (0x40100b, DetectionKind.BOTH),
    ]


def test_analyze_file(make_elf, tmp_path):
    path = tmp_path / 'a.out'
    path.write_bytes(make_elf(AMD64_CODE))

    result = analyze_file(str(path))

    assert len(result.candidates) == 2


@pytest.mark.parametrize('data', [
    b'',
    b'\x00\x01\x02\x03',
    b'MZ\x90\x00' + b'\x00' * 60,
    b'\x7fELF\x02\x01',
])
def test_malformed_container(data):
    with pytest.raises(MalformedContainerError):
        load_code_section(io.BytesIO(data))


def test_missing_section(make_elf):
    with pytest.raises(SectionNotFoundError) as excinfo:
        load_code_section(io.BytesIO(make_elf(AMD64_CODE)), '.data')

    assert excinfo.value.section_name == '.data'
    assert isinstance(excinfo.value, ContainerError)


def test_unsupported_machine(make_elf):
    with pytest.raises(UnsupportedMachineError) as excinfo:
        load_code_section(io.BytesIO(make_elf(b'\x00' * 8, machine=EM_ARM)))

    assert isinstance(excinfo.value, ContainerError)
    assert isinstance(excinfo.value, UnsupportedArchitectureError)


def test_truncated_section(make_elf):
    image = make_elf(AMD64_CODE, declared_size=0x10000)

    with pytest.raises(SectionReadError) as excinfo:
        load_code_section(io.BytesIO(image))

    assert 'truncated' in str(excinfo.value)
    assert 'of 65536 bytes' in str(excinfo.value)


def test_image_cut_before_section_headers(make_elf):
    # the three section headers sit at the end of the image
    image = make_elf(AMD64_CODE)[:-3 * 64]

    with pytest.raises(MalformedContainerError):
        load_code_section(io.BytesIO(image))


def test_errors_are_distinct():
    kinds = {MalformedContainerError, SectionNotFoundError, SectionReadError, UnsupportedMachineError}

    assert len(kinds) == 4
    assert all(issubclass(kind, ContainerError) for kind in kinds)
