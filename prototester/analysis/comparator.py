"""IPv4 vs IPv6 scoring."""

import math
from typing import Dict, Tuple

from ..models.protocol import Protocol
from ..models.result import Statistics


# Combined TCP/UDP weighting
TCP_WEIGHT = 0.6
UDP_WEIGHT = 0.4

# Comparison kinds and the protocols each runs, in order
COMPARISON_PROTOCOLS: Dict[str, Tuple[Protocol, ...]] = {
    "TCP/UDP": (Protocol.TCP, Protocol.UDP),
    "ICMP": (Protocol.ICMP,),
    "HTTP": (Protocol.HTTP,),
    "DNS": (Protocol.DNS,),
}

IPV4 = "IPv4"
IPV6 = "IPv6"
TIE = "Tie"


def protocol_score(stats: Statistics) -> float:
    """
    Score one protocol: success fraction times 1000 / average latency (ms).

    Zero successes (or a zero average) score 0.
    """
    if stats.sent == 0 or stats.received == 0 or stats.avg_ms <= 0:
        return 0.0
    return (stats.received / stats.sent) * (1000 / stats.avg_ms)


def decide_winner(ipv4_score: float, ipv6_score: float) -> str:
    """Family with the strictly higher score, or "Tie"."""
    if ipv4_score > ipv6_score:
        return IPV4
    elif ipv6_score > ipv4_score:
        return IPV6
    return TIE


def percent_better(score_a: float, score_b: float) -> float:
    """How much the higher score beats the lower one, relative to the lower."""
    if score_a == score_b:
        return 0.0
    loser = min(score_a, score_b)
    if loser == 0:
        return math.inf
    return abs(score_a - score_b) / loser * 100


class FamilyComparator:
    """
    Turns per-protocol statistics into per-family scores and a winner.
    """

    def __init__(self, tcp_weight: float = TCP_WEIGHT, udp_weight: float = UDP_WEIGHT):
        self.tcp_weight = tcp_weight
        self.udp_weight = udp_weight

    def score_tcp_udp(self, tcp: Statistics, udp: Statistics) -> float:
        """Weighted TCP/UDP score for one family."""
        return self.tcp_weight * protocol_score(tcp) + self.udp_weight * protocol_score(udp)

    def score_single(self, stats: Statistics) -> float:
        return protocol_score(stats)

    def score_family(self, kind: str, stats: Dict[Protocol, Statistics]) -> float:
        """Score one family's statistics for a comparison kind."""
        if kind == "TCP/UDP":
            return self.score_tcp_udp(stats[Protocol.TCP], stats[Protocol.UDP])
        (protocol,) = COMPARISON_PROTOCOLS[kind]
        return self.score_single(stats[protocol])

    def compare(
        self,
        kind: str,
        ipv4_stats: Dict[Protocol, Statistics],
        ipv6_stats: Dict[Protocol, Statistics],
    ) -> Tuple[float, float, str]:
        """Return (ipv4_score, ipv6_score, winner)."""
        ipv4_score = self.score_family(kind, ipv4_stats)
        ipv6_score = self.score_family(kind, ipv6_stats)
        return ipv4_score, ipv6_score, decide_winner(ipv4_score, ipv6_score)


def comparison_kind(protocol: Protocol) -> str:
    """Comparison kind a protocol belongs to (TCP and UDP are scored together)."""
    if protocol in (Protocol.TCP, Protocol.UDP):
        return "TCP/UDP"
    return protocol.value
