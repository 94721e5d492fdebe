import logging

import pytest
from colorama import Fore

from funcfinder import Arch, Confidence, PrologueKind, UnsupportedArchitectureError
from funcfinder.arch import ArchitectureInfo, architecture_tags, supported_architectures
from funcfinder.config import DetectorConfig
from funcfinder.utils.LoggingUtil import LevelColorFormatter, LoggingConfig
from funcfinder.utils.serialize import hexify, parse_address


@pytest.mark.parametrize('alias, arch', [
    ('amd64', Arch.AMD64),
    ('AMD64', Arch.AMD64),
    ('x86_64', Arch.AMD64),
    ('x86-64', Arch.AMD64),
    ('arm64', Arch.ARM64),
    ('aarch64', Arch.ARM64),
    (Arch.ARM64, Arch.ARM64),
])
def test_arch_aliases(alias, arch):
    assert Arch.parse(alias) is arch


def test_unknown_arch():
    with pytest.raises(UnsupportedArchitectureError) as excinfo:
        Arch.parse('m68k')

    assert excinfo.value.arch == 'm68k'
    assert excinfo.value.supported == ['amd64', 'arm64']


def test_supported_architectures():
    assert supported_architectures() == ['amd64', 'arm64']


def test_architecture_info():
    amd64 = ArchitectureInfo('amd64')
    arm64 = ArchitectureInfo('aarch64')

    assert amd64.is_callee_saved('R12')
    assert amd64.is_callee_saved('rbp')
    assert not amd64.is_callee_saved('rax')

    assert arm64.is_callee_saved('x19')
    assert arm64.is_callee_saved('x30')
    assert not arm64.is_callee_saved('x18')


def test_architecture_tags_cover_every_alias():
    tags = architecture_tags()

    assert {'amd64', 'arm64', 'x86_64', 'x86-64', 'x64', 'aarch64'} <= set(tags)
    assert all(Arch.parse(tag) in Arch for tag in tags)


def test_every_prologue_kind_is_ranked():
    assert set(DetectorConfig.PROLOGUE_TRUST) == {str(kind) for kind in PrologueKind}
    assert DetectorConfig.HIGH_TRUST_PROLOGUES <= set(DetectorConfig.PROLOGUE_TRUST)


def test_config_summary():
    summary = DetectorConfig.get_config_summary()

    assert summary['default_section'] == '.text'
    assert summary['cet_markers'] == ['f30f1efa', 'f30f1efb']
    assert summary['call_confidence'] == 'high'


def test_confidence_ordering_and_rendering():
    assert Confidence.NONE < Confidence.LOW < Confidence.MEDIUM < Confidence.HIGH
    assert str(Confidence.MEDIUM) == 'medium'
    assert Confidence.parse('low') is Confidence.LOW
    assert Confidence.parse(Confidence.HIGH) is Confidence.HIGH


def test_hexify_and_parse_address():
    assert hexify(0x401000) == '0x401000'
    assert hexify(-1) == '0xffffffffffffffff'
    assert parse_address('0x10') == 16
    assert parse_address('4096') == 4096
    for bad in ('-1', '0x1' + '0' * 16, 'zz'):
        with pytest.raises(ValueError):
            parse_address(bad)


def test_level_color_formatter_paints_a_copy():
    record = logging.LogRecord('funcfinder', logging.WARNING, __file__, 1, 'found %d', (3,), None)

    coloured = LevelColorFormatter('%(levelname)s %(message)s').format(record)
    plain = LevelColorFormatter('%(levelname)s %(message)s', use_color=False).format(record)

    assert 'found 3' in coloured
    assert Fore.YELLOW in coloured
    assert plain == 'WARNING found 3'
    assert record.msg == 'found %d'
    assert record.levelname == 'WARNING'


def test_setup_project_logging(tmp_path):
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    log_file = tmp_path / 'run.log'
    try:
        handlers = LoggingConfig.setup_project_logging('INFO', log_file=str(log_file), use_color=False)
        logging.getLogger('funcfinder.test').info('hello')
        for handler in handlers:
            handler.flush()

        assert len(handlers) == 2
        assert logging.getLogger('funcfinder').level == logging.INFO
        assert 'hello' in log_file.read_text()
    finally:
        for handler in root.handlers:
            if handler not in saved_handlers:
                handler.close()
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)


def test_silence_third_party_loggers():
    LoggingConfig.silence_third_party_loggers(['funcfinder.test.noisy'], logging.ERROR)

    noisy = logging.getLogger('funcfinder.test.noisy')
    assert noisy.level == logging.ERROR
    assert not noisy.propagate
