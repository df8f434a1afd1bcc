"""
Command-line interface for the referent assignment engine.

Usage examples:
    python -m referent_engine.cli --roster data/roster.json
    python -m referent_engine.cli --roster data/roster.json --out plan.json
    python -m referent_engine.cli --roster data/roster.json --strategy optimal --csv out/

Exit codes:
    0  every student has a referent
    1  bad arguments, unreadable roster, or precheck found blocking errors
    2  some students could not be placed (no free capacity)
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from referent_engine.export import ExportFailure, export_filename, to_csv, to_pdf, write_export
from referent_engine.io_json import ConfigError, load_roster, state_to_dict
from referent_engine.planner.precheck import precheck
from referent_engine.session import PlanningSession


def _export_path(target: str, program_name: str, ext: str) -> Path:
    p = Path(target)
    if p.is_dir() or target.endswith(("/", "\\")):
        return p / export_filename(program_name, ext)
    return p


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Referent assignment engine — auto-assign students from a roster file",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "examples:\n"
            "  referent-plan --roster data/roster.json\n"
            "  referent-plan --roster roster.json --out plan.json --strategy optimal\n"
            "  referent-plan --roster roster.json --csv exports/ --pdf exports/\n"
        ),
    )
    parser.add_argument("--roster", required=True, metavar="FILE",
                        help="path to the roster JSON")
    parser.add_argument("--out", default=None, metavar="FILE",
                        help="write the resulting plan JSON to this path (optional)")
    parser.add_argument("--strategy", default=None, choices=["greedy", "optimal"],
                        help="planner to use (default: settings.planner.strategy, i.e. greedy)")
    parser.add_argument("--csv", default=None, metavar="PATH",
                        help="write a CSV export (file, or directory for the default name)")
    parser.add_argument("--pdf", default=None, metavar="PATH",
                        help="write a PDF export (file, or directory for the default name)")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="debug logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # ── 1. load roster ────────────────────────────────────────────────────────
    try:
        roster = load_roster(args.roster)
    except FileNotFoundError:
        print(f"[ERROR] File not found: {args.roster}", file=sys.stderr)
        sys.exit(1)
    except (ConfigError, ValueError) as e:
        print(f"[ERROR] Could not load roster: {e}", file=sys.stderr)
        sys.exit(1)

    # ── 2. precheck ───────────────────────────────────────────────────────────
    errors, warnings = precheck(roster)
    for w in warnings:
        print(f"[WARNING] {w}")

    if errors:
        print(
            f"\n[ERROR] {len(errors)} precheck error(s) found — "
            "no plan can be produced until these are fixed:\n",
            file=sys.stderr,
        )
        for i, err in enumerate(errors, 1):
            print(f"  {i}. {err}", file=sys.stderr)
        sys.exit(1)

    # ── 3. auto-assign ────────────────────────────────────────────────────────
    session  = PlanningSession.from_roster(roster)
    strategy = args.strategy or roster.settings.planner.strategy
    print(f"Running auto-assign ({strategy})…")
    result = session.auto_assign(strategy)

    # ── 4. print summary ──────────────────────────────────────────────────────
    print(f"\nStatus     : {result.status}")
    print(f"Proposed   : {len(result.assignments)}")
    print(f"Unresolved : {len(result.unresolved)}")
    for d in result.diagnostics:
        print(f"[DIAG] {d}")

    names     = {s.id: s.name for s in roster.students}
    workloads = session.workloads()
    state     = session.state
    for ref in roster.referents:
        w      = workloads[ref.id]
        placed = ", ".join(names.get(sid, sid) for sid in state.get(ref.id, []))
        print(f"  {ref.name:<24} {w.current_students:>3}/{w.max_students:<3} "
              f"[{w.level}]  {placed}")

    # ── 5. write outputs (optional) ───────────────────────────────────────────
    if args.out:
        payload = {
            "program":     {"id": roster.program.id, "name": roster.program.name},
            "assignments": state_to_dict(session.state),
            "plan":        result.to_dict(),
        }
        out = Path(args.out)
        out.parent.mkdir(parents=True, exist_ok=True)
        with out.open("w", encoding="utf-8") as f:
            json.dump(payload, f, ensure_ascii=False, indent=2)
        print(f"\nPlan written to: {out}")

    if args.csv or args.pdf:
        try:
            rows = session.export_rows()
            if args.csv:
                path = _export_path(args.csv, roster.program.name, "csv")
                write_export(path, to_csv(rows))
                print(f"CSV written to: {path}")
            if args.pdf:
                path = _export_path(args.pdf, roster.program.name, "pdf")
                write_export(path, to_pdf(rows, roster.program.name or "Assignments"))
                print(f"PDF written to: {path}")
        except ExportFailure as e:
            print(f"[ERROR] Export failed: {e}", file=sys.stderr)
            sys.exit(1)

    sys.exit(0 if not result.unresolved else 2)


if __name__ == "__main__":
    main()
