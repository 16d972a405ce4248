#!/usr/bin/env python3
"""
Threaded Port Scanner
Multi-threaded TCP connect scanner with optional banner grabbing,
worker identifiers, timing statistics and a results file
"""

import argparse
import ipaddress
import logging
import sys
from typing import Any, Dict, List, Optional

from config_loader import config_loader
from scan_engine import (
    ConfigurationError, ScanConfig, ScanError, ScanReport, open_result_sink, run_scan,
)
from scan_engine.models import MAX_THREADS, MIN_THREADS, MIN_TIMEOUT_MS, validate_port_range

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'


def configure_logging(level: str = 'INFO', log_file: Optional[str] = None):
    """Configure root logging: stderr always, plus an optional diagnostic log file"""
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='port-scanner',
        description="Threaded TCP Port Scanner - connect scan with optional banner grabbing",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s 192.168.1.10
  %(prog)s 192.168.1.10 1 1024 200
  %(prog)s 127.0.0.1 20 3389 500 --fast --timeout 100
  %(prog)s --profile quick-local
        """
    )

    parser.add_argument('target', nargs='?',
                        help='Target IPv4 address (e.g., 192.168.1.1)')
    parser.add_argument('start', nargs='?', type=int,
                        help='First port of the range (default: 1)')
    parser.add_argument('end', nargs='?', type=int,
                        help='Last port of the range (default: 1023)')
    parser.add_argument('threads', nargs='?', type=int,
                        help=f'Number of worker threads, clamped to {MIN_THREADS}-{MAX_THREADS} (default: 50)')

    mode = parser.add_mutually_exclusive_group()
    mode.add_argument('--fast', dest='mode', action='store_const', const='fast',
                      help='Connect only, no banner grabbing')
    mode.add_argument('--full', dest='mode', action='store_const', const='full',
                      help='Connect and read a banner from open ports (default)')

    parser.add_argument('--timeout', dest='timeout_ms', type=int, metavar='MS',
                        help='Connect/read timeout in milliseconds (default: 200)')
    parser.add_argument('--banner-max', dest='banner_max_bytes', type=int, metavar='BYTES',
                        help='Maximum banner bytes captured per port (default: 512)')
    parser.add_argument('-o', '--output', dest='output_file', metavar='PATH',
                        help='Results file (default: scan_results.txt)')
    parser.add_argument('--append', dest='append_output', action='store_true', default=None,
                        help='Append to the results file instead of overwriting it')
    parser.add_argument('--no-color', dest='color', action='store_false', default=None,
                        help='Disable colored console output')
    parser.add_argument('--config', metavar='PATH',
                        help='Configuration file (YAML or JSON)')
    parser.add_argument('--profile', metavar='NAME',
                        help='Apply a named profile from the configuration file')
    parser.add_argument('--list-profiles', action='store_true',
                        help='List profiles from the configuration file and exit')
    parser.add_argument('--create-config', nargs='?', const='config.yaml', metavar='PATH',
                        help='Write a sample configuration file and exit')
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Enable verbose logging')
    return parser


def merge_cli_args(settings: Dict[str, Any], args: argparse.Namespace) -> Dict[str, Any]:
    """Apply explicitly given command-line values over file/profile settings"""
    merged = dict(settings)

    if args.start is not None and args.end is None:
        raise ConfigurationError("An end port is required when a start port is given")

    overrides = {
        'target': args.target,
        'start_port': args.start,
        'end_port': args.end,
        'threads': args.threads,
        'mode': args.mode,
        'timeout_ms': args.timeout_ms,
        'banner_max_bytes': args.banner_max_bytes,
        'output_file': args.output_file,
        'append_output': args.append_output,
        'color': args.color,
    }
    for key, value in overrides.items():
        if value is not None:
            merged[key] = value

    if args.verbose:
        merged['log_level'] = 'DEBUG'
    return merged


def build_scan_config(settings: Dict[str, Any]) -> ScanConfig:
    """Validate settings and build the immutable scan configuration.

    Thread count is clamped and the timeout raised to its minimum; an
    invalid address or port range raises ConfigurationError.
    """
    target = settings.get('target')
    if not target:
        raise ConfigurationError("No target given")
    try:
        address = ipaddress.IPv4Address(str(target).strip())
    except ValueError:
        raise ConfigurationError(f"Invalid IPv4 address: {target}") from None

    try:
        start = int(settings['start_port'])
        end = int(settings['end_port'])
        threads = int(settings['threads'])
        timeout_ms = int(settings['timeout_ms'])
        banner_max = int(settings['banner_max_bytes'])
    except (KeyError, TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid scan setting: {e}") from None
    validate_port_range(start, end)

    clamped = max(MIN_THREADS, min(MAX_THREADS, threads))
    if clamped != threads:
        logger.warning(f"Thread count {threads} clamped to {clamped}")

    return ScanConfig(
        address=address,
        start_port=start,
        end_port=end,
        threads=clamped,
        mode=settings.get('mode', 'full'),
        timeout_ms=max(MIN_TIMEOUT_MS, timeout_ms),
        banner_max_bytes=banner_max,
    )


def print_summary(report: ScanReport):
    """Print final timing statistics"""
    print("Scan complete.")
    print(f"Total scan time: {report.elapsed_s:.2f} seconds")
    print(f"Ports per second: {report.ports_per_second:.2f}")
    print(f"Open ports: {len(report.open_ports)}")


def main(argv: Optional[List[str]] = None) -> int:
    """Main function with CLI interface"""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.create_config:
        configure_logging('DEBUG' if args.verbose else 'INFO')
        path = config_loader.create_default_config_file(args.create_config)
        print(f"Sample configuration written to {path}")
        return 0

    settings = config_loader.load_config(args.config)

    if args.list_profiles:
        profiles = config_loader.list_profiles()
        if not profiles:
            print("No profiles defined")
        for name, description in profiles.items():
            print(f"{name:<20} {description}")
        return 0

    if args.profile:
        if config_loader.get_profile(args.profile) is None:
            configure_logging(settings.get('log_level', 'INFO'))
            logger.error(f"Unknown profile: {args.profile}")
            return 1
        settings = config_loader.get_profile_config(args.profile, settings)

    try:
        settings = merge_cli_args(settings, args)
        configure_logging(settings.get('log_level', 'INFO'), settings.get('log_file'))
    except ConfigurationError as e:
        configure_logging(settings.get('log_level', 'INFO'))
        logger.error(str(e))
        return 1
    except OSError as e:
        configure_logging(settings.get('log_level', 'INFO'))
        logger.error(f"Could not open log file: {e}")
        return 1

    try:
        config = build_scan_config(settings)
    except ConfigurationError as e:
        logger.error(str(e))
        return 1

    print(f"Scanning {config.address} (ports {config.start_port}-{config.end_port}) "
          f"with {config.threads} threads, mode={config.mode.value}, timeout={config.timeout_ms} ms...")

    try:
        sink = open_result_sink(settings.get('output_file'), append=bool(settings.get('append_output')),
                                color=settings.get('color'))
    except OSError as e:
        logger.error(f"Could not open output file: {e}")
        return 1

    try:
        with sink:
            report = run_scan(config, sink)
    except ScanError as e:
        logger.error(f"Scan failed: {e}")
        return 1
    except KeyboardInterrupt:
        logger.info("Scan interrupted by user")
        return 130

    print_summary(report)
    return 0


if __name__ == "__main__":
    sys.exit(main())
