"""Tests for the console report and the JSON results file."""

import json

from loadgen.report import format_report, print_report, write_results
from loadgen.stats import AggregateSnapshot, EndpointStats


def _snapshot(**overrides) -> AggregateSnapshot:
    fields = {
        "total_requests": 10,
        "success_count": 8,
        "failure_count": 2,
        "error_histogram": {"503": 2},
        "per_endpoint": {
            "/api/v1/doctors": EndpointStats(requests=6, successes=6, avg_latency_ms=40.0),
            "/api/v1/appointments": EndpointStats(requests=4, successes=2, avg_latency_ms=120.0),
        },
        "latency_samples": (10.0, 20.0, 30.0, 40.0, 40.0, 50.0, 100.0, 200.0),
        "elapsed_seconds": 120.0,
    }
    fields.update(overrides)
    return AggregateSnapshot(**fields)


class TestFormatReport:
    def test_summary_lines(self):
        text = format_report(_snapshot())
        assert "Runtime:        2.0 minutes" in text
        assert "Request rate:   5.0 req/min" in text
        assert "Success rate:   80.0% (8/10)" in text
        assert "Failed:         2" in text
        assert "P50: 40ms | P95: 200ms | P99: 200ms" in text

    def test_endpoint_table(self):
        text = format_report(_snapshot())
        lines = text.splitlines()
        appointments = next(line for line in lines if "/api/v1/appointments" in line)
        assert "50.0%" in appointments
        assert lines.index(appointments) < next(
            i for i, line in enumerate(lines) if "/api/v1/doctors" in line
        )

    def test_errors_section(self):
        assert "503: 2 occurrences" in format_report(_snapshot())
        clean = _snapshot(failure_count=0, success_count=10, error_histogram={})
        assert "Errors:" not in format_report(clean)

    def test_empty_snapshot(self):
        text = format_report(AggregateSnapshot.empty())
        assert "Success rate:   0.0% (0/0)" in text
        assert "Endpoint" not in text

    def test_final_title(self, capsys):
        print_report(_snapshot(), final=True)
        assert "FINAL LOAD GENERATION STATISTICS" in capsys.readouterr().out


class TestWriteResults:
    def test_writes_run_context_and_summary(self, tmp_path):
        path = write_results(_snapshot(), tmp_path / "nested" / "run.json", scenario="heavy")

        data = json.loads(path.read_text())
        assert data["run"] == {"scenario": "heavy"}
        results = data["results"]
        assert results["total_requests"] == 10
        assert results["errors"] == {"503": 2}
        assert results["latency_ms"]["count"] == 8
        assert results["endpoints"]["/api/v1/appointments"]["success_rate"] == 0.5
