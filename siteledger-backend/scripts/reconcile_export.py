from __future__ import annotations

import argparse
import logging
from pathlib import Path

from siteledger.exports import REPORTS, run_report, to_json
from siteledger.models import ReportFilters
from siteledger.services.normalize import parse_datetime


def _date(value: str):
    parsed = parse_datetime(value)
    if parsed is None:
        raise argparse.ArgumentTypeError(f"invalid date: {value!r}")
    return parsed


def main() -> None:
    parser = argparse.ArgumentParser(description="Reconcile ledger backend JSON exports offline.")
    parser.add_argument("report", choices=REPORTS, help="Report to compute.")
    parser.add_argument(
        "--source",
        type=Path,
        default=Path.cwd() / "exports",
        help="Directory holding <collection>.json exports (defaults to ./exports).",
    )
    parser.add_argument("--project-id", dest="project_id")
    parser.add_argument("--material-id", dest="material_id")
    parser.add_argument("--manpower-id", dest="manpower_id")
    parser.add_argument("--from-date", dest="from_date", type=_date)
    parser.add_argument("--to-date", dest="to_date", type=_date)
    parser.add_argument("--year", type=int, help="Calendar year for the monthly series.")
    parser.add_argument("--output", type=Path, help="Write JSON here instead of stdout.")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    filters = ReportFilters(
        project_id=args.project_id,
        material_id=args.material_id,
        manpower_id=args.manpower_id,
        from_date=args.from_date,
        to_date=args.to_date,
    )
    try:
        result = run_report(args.source, args.report, filters, year=args.year)
    except ValueError as exc:
        raise SystemExit(str(exc)) from exc

    payload = to_json(result)
    if args.output:
        args.output.write_text(payload + "\n", encoding="utf-8")
        print(f"Wrote {args.report} report to {args.output}.")
    else:
        print(payload)


if __name__ == "__main__":
    main()
