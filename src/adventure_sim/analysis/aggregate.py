"""Aggregate statistics over a batch of run reports.

Works on report dictionaries (Report.to_dict()) so that results coming back
from worker processes, or loaded from disk, can be merged without rebuilding
Report objects. Runs that failed with an error are represented as
{"label": ..., "error": ...} and counted separately.
"""

from __future__ import annotations

import statistics
from collections import Counter, defaultdict
from collections.abc import Iterable


def _rate(count: int, total: int) -> float:
    return round(count / total, 4) if total > 0 else 0.0


def _group_stats(reports: list[dict]) -> dict:
    total = len(reports)
    return {
        "runs": total,
        "completion_rate": _rate(sum(1 for r in reports if r["summary"]["completed"]), total),
        "death_rate": _rate(sum(r["summary"]["deaths"] for r in reports), total),
        "avg_wounds": round(statistics.mean(r["summary"]["wounds"] for r in reports), 2) if reports else 0.0,
        "avg_turns": round(statistics.mean(r["summary"]["turns"] for r in reports), 2) if reports else 0.0,
    }


def aggregate_reports(reports: Iterable[dict]) -> dict:
    """Merge run reports into batch statistics.

    Returns:
        Dictionary with run counts and rates, verdict and termination
        counts, difficulty ratings, issue frequencies (number of runs in
        which each issue type appeared), the most common individual
        findings, breakdowns by dice mode and by player, and critique
        validation status counts.
    """
    reports = list(reports)
    errors = [r for r in reports if "error" in r]
    finished = [r for r in reports if "error" not in r]
    total = len(finished)

    verdicts = Counter(r["verdict"] for r in finished)
    terminations = Counter(r["termination"]["reason"] for r in finished)
    ratings = Counter(r["difficulty"]["rating"] for r in finished)

    issue_runs: Counter = Counter()
    findings: Counter = Counter()
    descriptions: dict[str, str] = {}
    for report in finished:
        seen_types = set()
        for issue in report["issues"]:
            seen_types.add(issue["type"])
            key = f"{issue['type']}:{','.join(issue['scenes'])}"
            findings[key] += 1
            descriptions.setdefault(key, issue["description"])
        issue_runs.update(seen_types)

    by_dice: dict[str, list[dict]] = defaultdict(list)
    by_player: dict[str, list[dict]] = defaultdict(list)
    critique_statuses: Counter = Counter()
    for report in finished:
        by_dice[report["config"]["dice_mode"]].append(report)
        by_player[report["player"]].append(report)
        critique_statuses.update(c["validation"]["status"] for c in report["critiques"])

    return {
        "total_runs": len(reports),
        "finished_runs": total,
        "errored_runs": len(errors),
        "errors": [{"label": r.get("label", ""), "error": r["error"]} for r in errors],
        "completion_rate": _rate(terminations.get("completed", 0), total),
        "death_rate": _rate(terminations.get("player_death", 0), total),
        "dead_end_rate": _rate(terminations.get("dead_end", 0), total),
        "soft_lock_rate": _rate(terminations.get("soft_lock", 0), total),
        "avg_turns": round(statistics.mean(r["summary"]["turns"] for r in finished), 2) if finished else 0.0,
        "avg_wounds": round(statistics.mean(r["summary"]["wounds"] for r in finished), 2) if finished else 0.0,
        "avg_coherence": round(statistics.mean(r["coherence"]["score"] for r in finished), 2) if finished else 0.0,
        "verdicts": dict(sorted(verdicts.items())),
        "terminations": dict(sorted(terminations.items())),
        "difficulty_ratings": dict(sorted(ratings.items())),
        "issue_frequency": dict(sorted(issue_runs.items())),
        "common_findings": [
            {"key": key, "runs": count, "description": descriptions[key]}
            for key, count in sorted(findings.items(), key=lambda kv: (-kv[1], kv[0]))[:10]
        ],
        "by_dice_mode": {mode: _group_stats(group) for mode, group in sorted(by_dice.items())},
        "by_player": {player: _group_stats(group) for player, group in sorted(by_player.items())},
        "critique_statuses": dict(sorted(critique_statuses.items())),
    }


def render_aggregate(aggregate: dict, title: str = "") -> str:
    """Plain-text summary of aggregate_reports output."""
    lines = ["=" * 80, f"BATCH SIMULATION RESULTS{': ' + title if title else ''}", "=" * 80]
    lines.append(f"Runs: {aggregate['finished_runs']} finished, {aggregate['errored_runs']} errored")
    for key in ("completion_rate", "death_rate", "dead_end_rate", "soft_lock_rate"):
        lines.append(f"  {key}: {aggregate[key] * 100:.1f}%")
    for key in ("avg_turns", "avg_wounds", "avg_coherence"):
        lines.append(f"  {key}: {aggregate[key]:.2f}")

    lines += ["", "-" * 80, f"{'Group':<30} {'Runs':>6} {'Complete':>10} {'Death':>8} {'Wounds':>8}", "-" * 80]
    for label, groups in (("dice", aggregate["by_dice_mode"]), ("player", aggregate["by_player"])):
        for name, stats in groups.items():
            lines.append(
                f"{label + ':' + name:<30} {stats['runs']:>6} "
                f"{stats['completion_rate'] * 100:>9.1f}% "
                f"{stats['death_rate'] * 100:>7.1f}% "
                f"{stats['avg_wounds']:>8.2f}"
            )

    lines += ["", "-" * 80, "ISSUE FREQUENCY (runs affected)", "-" * 80]
    if not aggregate["issue_frequency"]:
        lines.append("  (none)")
    for issue_type, count in aggregate["issue_frequency"].items():
        lines.append(f"  {issue_type:<28} {count:>6}")
    for finding in aggregate["common_findings"]:
        lines.append(f"  {finding['runs']:>4}x {finding['description']}")

    if aggregate["critique_statuses"]:
        lines += ["", "-" * 80, "CRITIQUE VALIDATION", "-" * 80]
        for status, count in aggregate["critique_statuses"].items():
            lines.append(f"  {status:<28} {count:>6}")

    if aggregate["errors"]:
        lines += ["", "-" * 80, "ERRORS", "-" * 80]
        for error in aggregate["errors"]:
            lines.append(f"  {error['label']}: {error['error']}")

    lines.append("=" * 80)
    return "\n".join(lines) + "\n"
