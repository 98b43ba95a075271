"""
ProtoTester - IPv4/IPv6 Protocol Latency Tester

Measures reachability and latency over TCP, UDP, ICMP, HTTP and DNS
for both address families, aggregates the probe results into
statistics and scores IPv4 against IPv6.
"""

__version__ = "1.0.0"
__author__ = "Network Team"
