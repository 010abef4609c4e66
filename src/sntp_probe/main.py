#!/usr/bin/env python3
"""
sntp-probe: one-shot SNTP clock offset measurement

Queries a time server several times, keeps the minimum-delay exchange and
reports the local clock offset, round-trip delay and jitter. The offset is
handed to the caller; this program never changes the system clock.

Usage:
    # Print the server's idea of the current time
    sntp-probe time.example.org

    # Verbose, with precision/jitter/delay and the adjustment to apply
    sntp-probe -v time.example.org

    # Machine-readable result
    sntp-probe --json -c /etc/sntp-probe/config.toml time.example.org
"""

import argparse
import copy
import logging
import sys
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Dict, Optional

import toml

from .engine.precision import measure_clock_precision, log2_precision, DEFAULT_REPEATS
from .engine.sampler import RoundTripSampler, NTP_PORT, DEFAULT_TIMEOUT
from .engine.session import SamplingSession, DEFAULT_TARGET_SAMPLES, DEFAULT_MAX_ATTEMPTS
from .engine.statistics import QueryStatistics
from .errors import SNTPError
from .interfaces.query_result import QueryResult

logger = logging.getLogger('sntp-probe')


DEFAULT_CONFIG: Dict[str, Any] = {
    'server': {
        'port': NTP_PORT,
    },
    'sampling': {
        'target_samples': DEFAULT_TARGET_SAMPLES,
        'max_attempts': DEFAULT_MAX_ATTEMPTS,
        'timeout': DEFAULT_TIMEOUT,
    },
    'precision': {
        'repeats': DEFAULT_REPEATS,
    },
}


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load configuration from a TOML file, layered over the defaults.

    Args:
        config_path: Path to TOML file. Missing or None gives the defaults.

    Returns:
        Configuration dictionary with every section present
    """
    config = copy.deepcopy(DEFAULT_CONFIG)
    if config_path and Path(config_path).exists():
        with open(config_path, 'r') as f:
            loaded = toml.load(f)
        for section, values in loaded.items():
            if isinstance(values, dict):
                config.setdefault(section, {}).update(values)
            else:
                config[section] = values
    elif config_path:
        logger.warning(f"Config file {config_path} not found, using defaults")
    return config


def query(
    host: str,
    port: Optional[int] = None,
    config: Optional[Dict[str, Any]] = None,
    sampler: Optional[RoundTripSampler] = None
) -> QueryResult:
    """
    Run one measurement session against a server.

    Args:
        host: Time server host name or address
        port: Server port (default from config, normally 123)
        config: Configuration dictionary (see load_config)
        sampler: Pre-built sampler, mainly for tests

    Returns:
        QueryResult for the downstream consumer

    Raises:
        InsufficientSamples: too few successful exchanges
    """
    config = config or load_config()
    sampling = config.get('sampling', {})
    port = port or config.get('server', {}).get('port', NTP_PORT)

    if sampler is None:
        precision = measure_clock_precision(
            repeats=config.get('precision', {}).get('repeats', DEFAULT_REPEATS)
        )
        sampler = RoundTripSampler(
            precision=precision,
            timeout=sampling.get('timeout', DEFAULT_TIMEOUT),
        )

    session = SamplingSession(
        sampler,
        target_samples=sampling.get('target_samples', DEFAULT_TARGET_SAMPLES),
        max_attempts=sampling.get('max_attempts', DEFAULT_MAX_ATTEMPTS),
    )
    stats = QueryStatistics(session.run(host, port))

    return QueryResult(
        server=host,
        port=port,
        offset_ns=stats.offset,
        delay_ns=stats.delay,
        jitter_s=stats.jitter,
        precision_s=sampler.precision,
        samples=stats.count,
        attempts=session.attempts,
        failures=[f"attempt {f.attempt}: {f.error}" for f in session.failures],
    )


def format_report(result: QueryResult, verbose: int = 0) -> str:
    """Human-readable report: corrected local time, plus details if verbose."""
    lines = []
    if verbose:
        rho = result.precision_s
        lines.append(f"Precision: {rho * 1e6:.3f}μs ({log2_precision(rho)})")
        lines.append(f"Jitter: {result.jitter_s * 1e6:.1f}μs")
        lines.append(f"Delay: {result.delay_ns / 1e6:.3f}ms")

    corrected = datetime.now().astimezone() + timedelta(microseconds=result.offset_ns // 1000)
    lines.append(corrected.strftime('%c'))

    if verbose:
        adj = result.adjustment
        lines.append(
            f"adjust local clock by {result.offset_s:.6f} seconds "
            f"(timeval {adj.seconds}s {adj.microseconds}us)"
        )
    return "\n".join(lines)


def main(argv=None):
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description='sntp-probe: one-shot SNTP (RFC 5905) clock offset measurement',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    sntp-probe time.example.org
    sntp-probe -v -o 1123 localhost
    sntp-probe --json -c config.toml time.example.org
        """
    )
    parser.add_argument(
        'host',
        help='Time server (e.g. time.nist.gov)'
    )
    parser.add_argument(
        '--port', '-o',
        type=int,
        help=f'Server port (default: {NTP_PORT})'
    )
    parser.add_argument(
        '--config', '-c',
        help='Path to TOML configuration file'
    )
    parser.add_argument(
        '--verbose', '-v',
        action='count',
        default=0,
        help='Print precision, jitter, delay and the adjustment'
    )
    parser.add_argument(
        '--json',
        action='store_true',
        help='Print the result as JSON'
    )
    parser.add_argument(
        '--debug',
        action='store_true',
        help='Enable debug logging'
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    config = load_config(args.config)

    try:
        result = query(args.host, port=args.port, config=config)
    except SNTPError as e:
        logger.error(f"Query to {args.host} failed: {e}")
        return 1

    if args.json:
        print(result.to_json())
    else:
        print(format_report(result, args.verbose))
    return 0


if __name__ == '__main__':
    sys.exit(main())
