#!/usr/bin/env python3
"""
Command-line entry point for function boundary detection.
"""

import argparse
import logging
import sys
from typing import List, Optional

from funcfinder.arch import Arch, architecture_tags
from funcfinder.callgraph import build_call_graph, graph_to_dict
from funcfinder.config import DetectorConfig
from funcfinder.detector_factory import analyze
from funcfinder.elf_loader import load_code_section
from funcfinder.errors import ContainerError, UnsupportedArchitectureError
from funcfinder.utils.LoggingUtil import LoggingConfig
from funcfinder.utils.serialize import dump_json, hexify, parse_address, records_to_dicts

logger = logging.getLogger(__name__)

MODES = ['prologues', 'call-sites', 'candidates', 'all']

EXIT_OK = 0
EXIT_CONTAINER_ERROR = 1
EXIT_USAGE_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='funcfinder',
        description='Recover function boundaries from stripped binaries by prologue '
                    'and call-site analysis',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Function candidates in the .text section of an ELF binary
  funcfinder /usr/bin/ls

  # Only prologue matches, pretty-printed
  funcfinder /usr/bin/ls --mode prologues --pretty

  # Raw code dumped from memory, loaded at 0x400000
  funcfinder dump.bin --raw --arch arm64 --base-address 0x400000 --mode all
        """
    )

    parser.add_argument(
        'binary_path',
        help='Path to the binary (ELF) or raw code file to analyze'
    )

    parser.add_argument(
        '--mode', '-m',
        choices=MODES,
        default='candidates',
        help='Which results to report'
    )

    parser.add_argument(
        '--section', '-s',
        default=DetectorConfig.DEFAULT_SECTION,
        help='ELF section holding the code'
    )

    parser.add_argument(
        '--in-section-only',
        action='store_true',
        default=DetectorConfig.IN_REGION_ONLY,
        help='Ignore call/jump edges whose target lies outside the analyzed section'
    )

    parser.add_argument(
        '--callgraph',
        action='store_true',
        help='Also report the direct call graph between candidates'
    )

    parser.add_argument(
        '--raw',
        action='store_true',
        help='Treat the input as raw machine code instead of an ELF file'
    )

    parser.add_argument(
        '--arch', '-a',
        choices=architecture_tags(),
        help='Architecture of raw input (required with --raw)'
    )

    parser.add_argument(
        '--base-address', '-b',
        default='0',
        help='Virtual address of the first byte of raw input (default: 0)'
    )

    parser.add_argument(
        '--output', '-o',
        help='Output file for results (JSON format)'
    )

    parser.add_argument(
        '--pretty',
        action='store_true',
        help='Pretty-print JSON output'
    )

    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        default='WARNING',
        help='Logging level'
    )

    parser.add_argument(
        '--log-file',
        help='Log file path'
    )

    return parser


def _load_input(args):
    """Return (code, base_address, arch, section_name) for the requested input."""
    if args.raw:
        with open(args.binary_path, 'rb') as f:
            code = f.read()
        return code, parse_address(args.base_address), Arch.parse(args.arch), None

    with open(args.binary_path, 'rb') as f:
        section = load_code_section(f, args.section)
    return section.data, section.address, section.arch, section.name


def build_report(result, mode: str, section_name: Optional[str] = None, callgraph: bool = False) -> dict:
    report = {
        'arch': str(result.arch),
        'base_address': hexify(result.base_address),
        'code_size': result.code_size,
    }
    if section_name:
        report['section'] = section_name

    if mode in ('prologues', 'all'):
        report['prologues'] = records_to_dicts(result.prologues)
    if mode in ('call-sites', 'all'):
        report['call_sites'] = records_to_dicts(result.call_sites)
    if mode in ('candidates', 'all'):
        report['candidates'] = records_to_dicts(result.candidates)
    if callgraph:
        report['callgraph'] = graph_to_dict(build_call_graph(result.candidates, result.call_sites))

    report['summary'] = {
        'prologues': len(result.prologues),
        'call_sites': len(result.call_sites),
        'candidates': len(result.candidates),
    }
    return report


def main(argv: Optional[List[str]] = None) -> int:
    """Main function for command-line interface."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.raw and not args.arch:
        parser.error('--arch is required with --raw')
    if args.raw:
        try:
            parse_address(args.base_address)
        except ValueError:
            parser.error(f'invalid --base-address: {args.base_address}')

    LoggingConfig.silence_third_party_loggers()
    LoggingConfig.setup_project_logging(args.log_level, log_file=args.log_file)

    try:
        code, base_address, arch, section_name = _load_input(args)
        result = analyze(code, base_address, arch, in_region_only=args.in_section_only)
    except UnsupportedArchitectureError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_USAGE_ERROR
    except ContainerError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_CONTAINER_ERROR
    except OSError as e:
        print(f"Error: cannot read {args.binary_path}: {e}", file=sys.stderr)
        return EXIT_CONTAINER_ERROR

    report = build_report(result, args.mode, section_name, args.callgraph)
    json_output = dump_json(report, pretty=args.pretty)

    if args.output:
        with open(args.output, 'w') as f:
            f.write(json_output)
        logger.info(f"Results written to: {args.output}")
    else:
        print(json_output)

    return EXIT_OK


def cli():
    sys.exit(main())


if __name__ == '__main__':
    cli()
