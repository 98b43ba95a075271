"""Command-line interface for prototester."""

import argparse
import os
import sys
from typing import List, Optional

from rich.console import Console

from . import __version__
from .config import ProtoTesterConfig, parse_duration
from .errors import ConfigError, ProtoTesterError
from .export.console import ConsoleReporter, render_result
from .export.json_exporter import JSONExporter
from .logger import setup_logging
from .models.protocol import Protocol
from .models.result import TestResult
from .models.run_config import TestConfig
from .tester import LatencyTester
from .analysis.comparator import comparison_kind


console = Console()
err_console = Console(stderr=True)

PROTOCOL_COMMANDS = {
    "tcp": Protocol.TCP,
    "udp": Protocol.UDP,
    "icmp": Protocol.ICMP,
    "http": Protocol.HTTP,
    "dns": Protocol.DNS,
}


def duration_arg(value: str) -> float:
    """argparse type for durations such as 1, 0.5, 500ms, 2s or 1m."""
    try:
        return parse_duration(value)
    except ConfigError as e:
        raise argparse.ArgumentTypeError(str(e)) from None


def build_test_config(args, config: ProtoTesterConfig, hostname: str = "") -> TestConfig:
    """Merge command-line flags over the configured defaults."""
    defaults = config.defaults
    ipv4_only = args.ipv4_only
    ipv6_only = args.ipv6_only

    # Overriding only one of the two targets restricts the run to that family
    custom4 = args.target4 is not None and args.target4 != defaults.target4
    custom6 = args.target6 is not None and args.target6 != defaults.target6
    if not hostname:
        if custom4 and not custom6 and not ipv6_only:
            ipv4_only = True
        if custom6 and not custom4 and not ipv4_only:
            ipv6_only = True

    return defaults.to_test_config(
        target4=args.target4,
        target6=args.target6,
        hostname=hostname,
        port=args.port,
        count=args.count,
        interval=args.interval,
        timeout=args.timeout,
        icmp_size=args.size,
        dns_protocol=args.dns_protocol,
        dns_query=args.dns_query,
        ipv4_only=ipv4_only,
        ipv6_only=ipv6_only,
        verbose=args.verbose,
    )


def write_output(result: TestResult, path: str) -> str:
    """Write the JSON report to a file, or a timestamped file inside a directory."""
    if os.path.isdir(path) or path.endswith(os.sep):
        return JSONExporter(output_dir=path).export_result(result)
    directory, filename = os.path.split(path)
    return JSONExporter(output_dir=directory or ".").export_result(result, filename=filename)


def run_test(args) -> int:
    """Run a single-mode or comparison test."""
    config = ProtoTesterConfig.load(args.config)
    setup_logging(
        "DEBUG" if args.verbose else config.logging.level,
        config.logging.file,
        console=err_console,
    )

    hostname = getattr(args, "hostname", "") or ""
    test_config = build_test_config(args, config, hostname)

    json_output = args.json or config.export.format == "json"
    reporter = ConsoleReporter(err_console if json_output else console, verbose=args.verbose)
    tester = LatencyTester(test_config, reporter=reporter)

    if args.command == "compare":
        kind = comparison_kind(PROTOCOL_COMMANDS[args.protocol])
        if not json_output:
            console.print(f"[bold]IPv4/IPv6 Comparison ({kind})[/bold]\n")
        result = tester.run_compare(kind)
    else:
        protocol = PROTOCOL_COMMANDS[args.command]
        if not json_output:
            console.print(f"[bold]IPv4/IPv6 Latency Test ({protocol.value})[/bold]\n")
        result = tester.run(protocol)

    exporter = JSONExporter(output_dir=config.export.output_dir)
    if json_output:
        console.print_json(exporter.dumps(result))
    else:
        console.print()
        console.print(render_result(result))

    if args.output:
        path = write_output(result, args.output)
        err_console.print(f"[green]Results written to {path}[/green]")
    elif args.save:
        path = exporter.export_result(result)
        err_console.print(f"[green]Results written to {path}[/green]")

    return 0


def add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("-4", "--target4", help="IPv4 target (a custom value alone enables IPv4-only)")
    parser.add_argument("-6", "--target6", help="IPv6 target (a custom value alone enables IPv6-only)")
    parser.add_argument("-p", "--port", type=int, help="Port for TCP/UDP/HTTP/DNS (default: 53)")
    parser.add_argument("-c", "--count", type=int, help="Number of probes per family (default: 10)")
    parser.add_argument("-i", "--interval", type=duration_arg, help="Interval between probes, e.g. 1s, 500ms")
    parser.add_argument("--timeout", type=duration_arg, help="Timeout for each probe, e.g. 3s")
    parser.add_argument("-s", "--size", type=int, help="ICMP payload size in bytes (default: 64)")
    parser.add_argument("--4only", dest="ipv4_only", action="store_true", help="Test IPv4 only")
    parser.add_argument("--6only", dest="ipv6_only", action="store_true", help="Test IPv6 only")
    parser.add_argument(
        "--dns-protocol",
        choices=["udp", "tcp", "dot", "doh"],
        help="DNS transport (default: udp)",
    )
    parser.add_argument("--dns-query", help="Domain name to query in DNS mode")
    parser.add_argument("--json", action="store_true", help="Print results as JSON")
    parser.add_argument("-o", "--output", help="Write the JSON report to this file or directory")
    parser.add_argument("--save", action="store_true", help="Write the JSON report to the configured output directory")
    parser.add_argument("--config", help="Path to configuration file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Print every probe and debug logs")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="prototester",
        description="IPv4/IPv6 latency tester over TCP, UDP, ICMP, HTTP and DNS.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    helps = {
        "tcp": "TCP connect latency",
        "udp": "UDP write test",
        "icmp": "ICMP echo (falls back to TCP connect without privileges)",
        "http": "HTTP/HTTPS HEAD request timing (HTTPS on ports 443/8443)",
        "dns": "DNS query timing over UDP, TCP, DoT or DoH",
    }
    for name, help_text in helps.items():
        add_common_arguments(subparsers.add_parser(name, help=help_text))

    compare_parser = subparsers.add_parser("compare", help="Resolve a hostname and compare IPv4 with IPv6")
    compare_parser.add_argument("hostname", help="Dual-stack hostname to compare")
    compare_parser.add_argument(
        "--protocol",
        choices=list(PROTOCOL_COMMANDS),
        default="tcp",
        help="Protocol to compare; tcp and udp both run the weighted TCP/UDP comparison (default: tcp)",
    )
    add_common_arguments(compare_parser)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 2

    try:
        return run_test(args)
    except ConfigError as e:
        err_console.print(f"[red]Configuration error: {e}[/red]")
        return 2
    except ProtoTesterError as e:
        err_console.print(f"[red]Error: {e}[/red]")
        return 1
    except KeyboardInterrupt:
        err_console.print("\n[yellow]Interrupted.[/yellow]")
        return 130


if __name__ == "__main__":
    sys.exit(main())
