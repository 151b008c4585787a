"""Human-readable statistics report and JSON export."""

from __future__ import annotations

import json
from pathlib import Path

from loadgen.stats import AggregateSnapshot


def format_report(snapshot: AggregateSnapshot, title: str = "LOAD GENERATION STATISTICS") -> str:
    line = "=" * 60
    lines = [
        "",
        title,
        line,
        f"  Runtime:        {snapshot.elapsed_seconds / 60.0:.1f} minutes",
        f"  Request rate:   {snapshot.requests_per_minute:.1f} req/min",
        (
            f"  Success rate:   {snapshot.success_rate * 100:.1f}% "
            f"({snapshot.success_count}/{snapshot.total_requests})"
        ),
        f"  Failed:         {snapshot.failure_count}",
        "",
        "  Response times:",
        f"    Average: {snapshot.average_latency_ms:.0f}ms",
        f"    P50: {snapshot.p50:.0f}ms | P95: {snapshot.p95:.0f}ms | P99: {snapshot.p99:.0f}ms",
    ]

    endpoints = [(key, ep) for key, ep in snapshot.per_endpoint.items() if ep.requests > 0]
    if endpoints:
        lines += ["", f"  {'Endpoint':<28} {'Requests':>9} {'Success':>9} {'Avg (ms)':>9}"]
        lines.append(f"  {'-' * 28} {'-' * 9} {'-' * 9} {'-' * 9}")
        for key, ep in sorted(endpoints):
            lines.append(
                f"  {key:<28} {ep.requests:>9} {ep.success_rate * 100:>8.1f}% "
                f"{ep.avg_latency_ms:>9.0f}"
            )

    if snapshot.error_histogram:
        lines += ["", "  Errors:"]
        for code, count in sorted(snapshot.error_histogram.items(), key=lambda kv: -kv[1]):
            lines.append(f"    {code}: {count} occurrences")

    lines.append(line)
    return "\n".join(lines)


def print_report(snapshot: AggregateSnapshot, final: bool = False) -> None:
    title = "FINAL LOAD GENERATION STATISTICS" if final else "LOAD GENERATION STATISTICS"
    print(format_report(snapshot, title=title), flush=True)


def write_results(snapshot: AggregateSnapshot, path: str | Path, **context: object) -> Path:
    """Write the snapshot summary plus run context as indented JSON."""
    output = Path(path)
    output.parent.mkdir(parents=True, exist_ok=True)
    data = {"run": context, "results": snapshot.to_dict()}
    output.write_text(json.dumps(data, indent=2, default=str))
    return output
