import argparse
import json
import logging
import os
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from statistics import mean

import requests

from lucas_service.settings import setup_logging

logger = logging.getLogger(__name__)

BASE_URL = os.getenv("LUCAS_URL", "http://127.0.0.1:8069")
REPORTS_DIR = Path(os.getenv("LUCAS_REPORTS_DIR", Path(__file__).resolve().parent / "knowledge"))
TIMEOUT_S = 60.0

SWEEP_NS = (20, 22, 24, 26, 28)
SWEEP_TRIALS = 3
BURST_N = 30
BURST_CONCURRENCY = 4


class ProbeError(RuntimeError):
    """The service did not answer a valid request with a usable result."""


@dataclass
class Sample:
    n: int
    result: int
    process_time_ms: float
    round_trip_ms: float

    @property
    def overhead_ms(self) -> float:
        # Queueing, transport and serialization around the compute
        return self.round_trip_ms - self.process_time_ms


def _write(p: Path, s: str) -> None:
    with open(p, "w", encoding="utf-8") as f:
        f.write(s)


def measure(n: int, base_url: str = BASE_URL, timeout: float = TIMEOUT_S) -> Sample:
    start = time.perf_counter()
    try:
        r = requests.post(f"{base_url}/calculate", json={"n": n}, timeout=timeout)
    except requests.RequestException as e:
        raise ProbeError(f"request for n={n} failed: {e}") from e
    round_trip = (time.perf_counter() - start) * 1000
    if r.status_code != 200:
        raise ProbeError(f"n={n} answered with HTTP {r.status_code}")
    try:
        body = r.json()
        return Sample(
            n=n,
            result=int(body["result"]),
            process_time_ms=float(body["process_time"]),
            round_trip_ms=round_trip,
        )
    except (ValueError, KeyError, TypeError) as e:
        raise ProbeError(f"unreadable body for n={n}: {e}") from e


def sweep(ns=SWEEP_NS, trials: int = SWEEP_TRIALS, base_url: str = BASE_URL,
          timeout: float = TIMEOUT_S) -> list[Sample]:
    samples = []
    for n in ns:
        for _ in range(trials):
            s = measure(n, base_url, timeout)
            logger.info("[agent] n=%d process=%.1f ms round-trip=%.1f ms",
                        n, s.process_time_ms, s.round_trip_ms)
            samples.append(s)
    return samples


def burst(n: int = BURST_N, concurrency: int = BURST_CONCURRENCY, base_url: str = BASE_URL,
          timeout: float = TIMEOUT_S) -> list[Sample]:
    """
    Fire `concurrency` identical requests at once.

    With a blocking handler the round trips stretch well past the process
    times once the server's workers are saturated.
    """
    with ThreadPoolExecutor(max_workers=concurrency) as pool:
        futures = [pool.submit(measure, n, base_url, timeout) for _ in range(concurrency)]
        samples = [f.result() for f in futures]
    for s in samples:
        logger.info("[agent] burst n=%d process=%.1f ms round-trip=%.1f ms overhead=%.1f ms",
                    n, s.process_time_ms, s.round_trip_ms, s.overhead_ms)
    return samples


def mean_process_times(samples: list[Sample]) -> dict[int, float]:
    by_n: dict[int, list[float]] = {}
    for s in samples:
        by_n.setdefault(s.n, []).append(s.process_time_ms)
    return {n: mean(times) for n, times in sorted(by_n.items())}


def is_monotonic(means: dict[int, float]) -> bool:
    values = [means[n] for n in sorted(means)]
    return all(a < b for a, b in zip(values, values[1:]))


def write_report(kind: str, samples: list[Sample], reports_dir: Path = REPORTS_DIR) -> Path:
    reports_dir.mkdir(parents=True, exist_ok=True)
    now = datetime.now(timezone.utc)
    report_path = reports_dir / f"latency-report-{kind}-{now.strftime('%Y%m%d-%H%M%S')}.md"

    rows = "\n".join(
        f"| {s.n} | {s.result} | {s.process_time_ms:.3f} | {s.round_trip_ms:.3f} | {s.overhead_ms:.3f} |"
        for s in samples
    )
    means = mean_process_times(samples)
    trend = "\n".join(f"- n={n}: {ms:.3f} ms" for n, ms in means.items())
    verdict = "Process time grows with n" if is_monotonic(means) else "No monotonic growth observed"
    if len(means) < 2:
        verdict = "Single n, no trend"

    _write(report_path, f"""# Lucas Latency Report - {kind.upper()}

**Timestamp (UTC):** {now.isoformat()}
**Samples:** {len(samples)}

## Samples
| n | result | process_time (ms) | round trip (ms) | overhead (ms) |
|---|--------|-------------------|-----------------|---------------|
{rows}

## Mean process time
{trend}

## Result
- {verdict}
""")
    return report_path


def run(kind: str, base_url: str = BASE_URL, ns=SWEEP_NS, trials: int = SWEEP_TRIALS,
        n: int = BURST_N, concurrency: int = BURST_CONCURRENCY, timeout: float = TIMEOUT_S,
        reports_dir: Path = REPORTS_DIR) -> dict:
    logger.info("[agent] Kind=%s | Target=%s", kind, base_url)
    if kind == "sweep":
        samples = sweep(ns, trials, base_url, timeout)
    elif kind == "burst":
        samples = burst(n, concurrency, base_url, timeout)
    else:
        raise ValueError(f"unknown probe kind: {kind!r}")

    report_path = write_report(kind, samples, reports_dir)
    logger.info("[agent] Report written to %s", report_path)
    return {
        "kind": kind,
        "samples": [{**asdict(s), "overhead_ms": s.overhead_ms} for s in samples],
        "monotonic": is_monotonic(mean_process_times(samples)),
        "report_path": str(report_path),
    }


def main(argv=None) -> None:
    parser = argparse.ArgumentParser(description="Measure latency of the Lucas service")
    parser.add_argument("kind", choices=["sweep", "burst"])
    parser.add_argument("--url", default=BASE_URL, help="Base URL of the service")
    parser.add_argument("--n", type=int, nargs="+", default=None,
                        help="n values for a sweep, or the single n for a burst")
    parser.add_argument("--trials", type=int, default=SWEEP_TRIALS)
    parser.add_argument("--concurrency", type=int, default=BURST_CONCURRENCY)
    parser.add_argument("--timeout", type=float, default=TIMEOUT_S)
    parser.add_argument("--reports-dir", type=Path, default=REPORTS_DIR)
    args = parser.parse_args(argv)
    if args.kind == "burst" and args.n and len(args.n) > 1:
        parser.error("burst takes a single --n value")

    setup_logging()

    ns = tuple(args.n) if args.n else SWEEP_NS
    burst_n = args.n[0] if args.n else BURST_N
    try:
        summary = run(args.kind, base_url=args.url, ns=ns, trials=args.trials, n=burst_n,
                      concurrency=args.concurrency, timeout=args.timeout,
                      reports_dir=args.reports_dir)
    except ProbeError as e:
        parser.exit(1, f"[agent] {e}\n")
    print(json.dumps(summary, indent=2))


if __name__ == "__main__":
    main()
