"""Rich console rendering of test results and progress."""

import math
from typing import List, Tuple

from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from rich import box

from ..analysis.statistics import assess_quality, percentiles, DEFAULT_PERCENTILES
from ..models.protocol import Protocol, AddressFamily, format_address
from ..models.result import ProbeResult, Statistics, ComparisonResult, TestResult
from ..probes.base import PhaseConfig
from ..tester import Reporter


QUALITY_STYLES = {
    "excellent": "green",
    "good": "green",
    "acceptable": "yellow",
    "poor": "red",
    "critical": "bold red",
}


def format_ms(seconds: float) -> str:
    return f"{seconds * 1000:.3f} ms"


def _rate_style(success_rate: float) -> str:
    if success_rate >= 99.5:
        return "green"
    elif success_rate >= 90:
        return "yellow"
    return "red"


def stats_table(title: str, rows: List[Tuple[str, str, Statistics]]) -> Table:
    """Table with one row per (label, target, statistics)."""
    table = Table(
        title=title,
        box=box.ROUNDED,
        show_header=True,
        header_style="bold cyan",
    )

    table.add_column("Family", style="bold")
    table.add_column("Target")
    table.add_column("Sent", justify="right")
    table.add_column("Recv", justify="right")
    table.add_column("Success", justify="right")
    table.add_column("Min", justify="right")
    table.add_column("Avg", justify="right")
    table.add_column("Max", justify="right")
    table.add_column("StdDev", justify="right")
    table.add_column("Jitter", justify="right")
    for p in DEFAULT_PERCENTILES:
        table.add_column(f"P{p}", justify="right")
    table.add_column("Quality", justify="right")

    for label, target, stats in rows:
        success = Text(f"{stats.success_rate:.1f}%", style=_rate_style(stats.success_rate))
        if stats.received == 0:
            table.add_row(
                label, target, str(stats.sent), str(stats.received), success,
                *(["-"] * (6 + len(DEFAULT_PERCENTILES))),
            )
            continue

        quality = assess_quality(stats.avg_ms)
        table.add_row(
            label,
            target,
            str(stats.sent),
            str(stats.received),
            success,
            format_ms(stats.min),
            format_ms(stats.avg),
            format_ms(stats.max),
            format_ms(stats.stddev),
            format_ms(stats.jitter),
            *(format_ms(value) for value in percentiles(stats)),
            Text(quality, style=QUALITY_STYLES[quality]),
        )

    return table


def family_summary(ipv4: Statistics, ipv6: Statistics) -> Text:
    """IPv6 vs IPv4 summary lines for a single-mode run."""
    lines = [Text("IPv6 vs IPv4", style="bold")]

    if ipv4.received and ipv6.received:
        diff = ipv6.avg_ms - ipv4.avg_ms
        faster = "IPv4" if diff > 0 else "IPv6"
        lines.append(Text(f"Average latency difference: {abs(diff):.3f} ms ({faster} is faster)"))
    else:
        lines.append(Text("Average latency difference: n/a (a family had no successful probes)", style="dim"))

    lines.append(Text(f"Success rate: IPv6={ipv6.success_rate:.1f}% IPv4={ipv4.success_rate:.1f}%"))
    lines.append(Text(f"Packet loss: IPv6={ipv6.loss_rate:.1f}% IPv4={ipv4.loss_rate:.1f}%"))
    return Text("\n").join(lines)


def comparison_panel(comparison: ComparisonResult) -> Panel:
    """Scores, winner and margin of a comparison run."""
    lines = [
        Text(f"{comparison.hostname}  ({comparison.protocol}, port {comparison.port})", style="bold"),
        Text(f"IPv6 (AAAA): {comparison.resolved_ipv6}"),
        Text(f"IPv4 (A):    {comparison.resolved_ipv4}"),
        Text(""),
        Text(f"IPv6 Score: {comparison.ipv6_score:.2f}"),
        Text(f"IPv4 Score: {comparison.ipv4_score:.2f}"),
        Text(""),
    ]

    if comparison.winner == "Tie":
        lines.append(Text("Result: Tie", style="bold yellow"))
    else:
        margin = comparison.percent_better
        margin_text = "no successful probes on the other family" if math.isinf(margin) else f"{margin:.1f}% better"
        lines.append(Text(f"Winner: {comparison.winner} ({margin_text})", style="bold green"))

    lines.append(Text(""))
    if Protocol.TCP in comparison.stats:
        lines.append(Text("Weighting: TCP 60%, UDP 40%", style="dim"))
    if comparison.dns_query:
        lines.append(Text(f"Query: {comparison.dns_query}", style="dim"))
    lines.append(Text("Score: success fraction x 1000 / average latency (ms)", style="dim"))

    return Panel(Text("\n").join(lines), title="IPv4/IPv6 Comparison", border_style="cyan")


def render_result(result: TestResult) -> Group:
    """Everything the CLI prints for a finished run."""
    parts = []

    if result.comparison is not None:
        comparison = result.comparison
        for protocol, pair in comparison.stats.items():
            rows = [
                ("IPv6", format_address(comparison.resolved_ipv6, comparison.port), pair.ipv6),
                ("IPv4", format_address(comparison.resolved_ipv4, comparison.port), pair.ipv4),
            ]
            parts.append(stats_table(f"{protocol.value} Results", rows))
        parts.append(comparison_panel(comparison))
        return Group(*parts)

    rows = []
    if result.ipv6 is not None:
        rows.append(("IPv6", result.targets.get(AddressFamily.IPV6.value, ""), result.ipv6))
    if result.ipv4 is not None:
        rows.append(("IPv4", result.targets.get(AddressFamily.IPV4.value, ""), result.ipv4))
    parts.append(stats_table(f"{result.protocol} Latency Results", rows))

    if result.ipv4 is not None and result.ipv6 is not None:
        parts.append(Panel(family_summary(result.ipv4, result.ipv6), border_style="blue"))

    return Group(*parts)


class ConsoleReporter(Reporter):
    """Prints progress to a rich console; per-probe lines only when verbose."""

    def __init__(self, console: Console, verbose: bool = False):
        self.console = console
        self.verbose = verbose

    def resolved(self, hostname: str, ipv4: str, ipv6: str) -> None:
        self.console.print(f"[bold]Resolved {hostname}:[/bold]")
        self.console.print(f"  IPv4 (A): {ipv4}")
        self.console.print(f"  IPv6 (AAAA): {ipv6}")

    def phase_started(self, phase: PhaseConfig, count: int) -> None:
        if phase.protocol is Protocol.ICMP:
            where = phase.target
        else:
            where = format_address(phase.target, phase.port)
        detail = f" (query: {phase.dns_query})" if phase.protocol is Protocol.DNS else ""
        self.console.print(
            f"[cyan]Testing {phase.protocol.value} {phase.family.label} to {where}{detail}, "
            f"{count} probes...[/cyan]"
        )

    def probe_finished(self, phase: PhaseConfig, sequence: int, result: ProbeResult) -> None:
        if not self.verbose:
            return
        prefix = f"{phase.family.label} test {sequence}"
        if result.success:
            note = " (tcp fallback)" if result.fallback else ""
            self.console.print(f"  {prefix}: [green]{result.latency_ms:.3f} ms[/green]{note}")
        else:
            self.console.print(f"  {prefix}: [red]{result.error}[/red]")
