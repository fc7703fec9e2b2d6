"""Command-line interface for the studio analytics views.

Provides subcommands: `fetch`, `report`, and `executive`. Each command is
implemented as a `cmd_*` function that accepts an argparse namespace.
"""
from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Any, List, Sequence, Tuple

import pandas as pd
from dotenv import load_dotenv

from studio_analytics.aggregate.ranking import rank
from studio_analytics.aggregate.views import VIEWS, executive_summary
from studio_analytics.clean.filters import (
    ClientFilters,
    LeadFilters,
    PayrollFilters,
    SalesFilters,
    apply_filters,
    filters_from_dict,
)
from studio_analytics.config import get_settings
from studio_analytics.formatting import format_number, format_percent
from studio_analytics.ingest.rows import load_records, rows_to_dicts
from studio_analytics.ingest.sheets import SheetsClient
from studio_analytics.logging_config import configure_logging
from studio_analytics.models import MODELS, Record

log = logging.getLogger(__name__)

PERCENT_COLUMNS = frozenset({"avg_retention", "avg_conversion"})

FILTERS = {
    "sales": SalesFilters,
    "clients": ClientFilters,
    "leads": LeadFilters,
    "payroll": PayrollFilters,
}


# --------------------------------------------------
# Helpers
# --------------------------------------------------
def _read_csv_rows(path: Path) -> list[dict[str, Any]]:
    """Read a CSV export as string-valued dict rows (blanks stay blank)."""
    if not path.exists():
        raise SystemExit(f"Input file not found: {path}")
    frame = pd.read_csv(path, dtype=str, keep_default_na=False)
    return frame.to_dict(orient="records")


def _load_domain(domain: str, path: Path | None) -> List[Record]:
    """Load one domain snapshot from a CSV export, or live from Sheets."""
    if path is not None:
        rows = _read_csv_rows(path)
    else:
        client = SheetsClient(get_settings())
        rows = rows_to_dicts(client.fetch_domain(domain))

    records, bad = load_records(rows, domain)
    if bad:
        log.warning("Skipped %d unreadable %s rows", bad, domain)
    return records


def _parse_filters(domain: str, raw: str | None) -> Any:
    if not raw:
        return None
    filters_cls = FILTERS.get(domain)
    if filters_cls is None:
        raise SystemExit(f"Filters are not supported for domain {domain!r}")
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise SystemExit(f"--filters is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise SystemExit("--filters must be a JSON object")
    return filters_from_dict(filters_cls, data)


def _tables(result: Any, title: str) -> List[Tuple[str, pd.DataFrame]]:
    """Split a view result into named tables (nested row lists become their own)."""
    if isinstance(result, list):
        return [(title, pd.DataFrame(result))]

    scalars = {k: v for k, v in result.items() if not isinstance(v, list)}
    tables = [(title, pd.DataFrame([scalars]))]
    for key, value in result.items():
        if isinstance(value, list):
            tables.append((f"{title} / {key}", pd.DataFrame(value)))
    return tables


def _display(frame: pd.DataFrame) -> pd.DataFrame:
    """Round and format a table for the terminal (exports stay raw)."""
    out = frame.copy()
    for col in out.columns:
        if col in PERCENT_COLUMNS or col.endswith(("_rate", "_growth")):
            out[col] = out[col].map(format_percent)
        elif pd.api.types.is_float_dtype(out[col]):
            out[col] = out[col].map(lambda v: format_number(v, 2))
    return out


def _emit(tables: Sequence[Tuple[str, pd.DataFrame]], out: Path | None) -> None:
    if out is not None:
        out.parent.mkdir(parents=True, exist_ok=True)
        for i, (_, frame) in enumerate(tables):
            target = out if i == 0 else out.with_name(f"{out.stem}_{i}{out.suffix}")
            frame.to_csv(target, index=False)
            log.info("Wrote %d rows to %s", len(frame), target)
        return

    for title, frame in tables:
        print(f"\n== {title} ==")
        print("(no rows)" if frame.empty else _display(frame).to_string(index=False))


# --------------------------------------------------
# FETCH
# --------------------------------------------------
def cmd_fetch(args: argparse.Namespace) -> None:
    """Export one sheet tab to CSV.

    Args:
        args: argparse namespace with `domain` and optional `out`.
    """
    s = get_settings()
    values = SheetsClient(s).fetch_domain(args.domain)
    rows = rows_to_dicts(values)

    out = args.out or s.data_dir / f"{args.domain}.csv"
    out.parent.mkdir(parents=True, exist_ok=True)
    pd.DataFrame(rows).to_csv(out, index=False)
    log.info("Exported %d %s rows to %s", len(rows), args.domain, out)


# --------------------------------------------------
# REPORT
# --------------------------------------------------
def cmd_report(args: argparse.Namespace) -> None:
    """Run one dashboard view over a domain snapshot and print or export it.

    Args:
        args: argparse namespace with `domain`, `view`, `input`, `filters`,
            `sort_by`, `top_n`, `out`.
    """
    views = VIEWS[args.domain]
    if args.view not in views:
        raise SystemExit(
            f"Unknown view {args.view!r} for {args.domain}; choose from {', '.join(sorted(views))}"
        )

    records = _load_domain(args.domain, args.input)
    filters = _parse_filters(args.domain, args.filters)
    if filters is not None:
        records = apply_filters(records, filters)
        log.info("%d %s records after filters", len(records), args.domain)

    result = views[args.view](records)
    if isinstance(result, list):
        if args.sort_by:
            result = rank(result, args.sort_by, args.top_n)
        elif args.top_n is not None:
            result = result[: max(0, args.top_n)]

    _emit(_tables(result, f"{args.domain}:{args.view}"), args.out)


# --------------------------------------------------
# EXECUTIVE
# --------------------------------------------------
def cmd_executive(args: argparse.Namespace) -> None:
    """Cross-domain executive summary from up to four snapshots."""
    sales = _load_domain("sales", args.sales)
    sessions = _load_domain("sessions", args.sessions) if args.sessions else []
    leads = _load_domain("leads", args.leads) if args.leads else []
    payroll = _load_domain("payroll", args.payroll) if args.payroll else []

    summary = executive_summary(sales, sessions, leads, payroll)
    _emit(_tables(summary, "executive"), args.out)


# --------------------------------------------------
# CLI
# --------------------------------------------------
def build_parser() -> argparse.ArgumentParser:
    """Build and return the top-level argument parser for the CLI.

    Returns:
        Configured argparse.ArgumentParser instance.
    """
    p = argparse.ArgumentParser(prog="studio-analytics")
    p.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    sub = p.add_subparsers(dest="cmd", required=True)

    p_fetch = sub.add_parser("fetch")
    p_fetch.add_argument("--domain", choices=sorted(MODELS), required=True)
    p_fetch.add_argument("--out", type=Path, default=None)

    p_report = sub.add_parser("report")
    p_report.add_argument("--domain", choices=sorted(VIEWS), required=True)
    p_report.add_argument("--view", required=True)
    p_report.add_argument("--input", type=Path, default=None, help="CSV export; omit to read Sheets")
    p_report.add_argument("--filters", default=None, help="JSON object of filter values")
    p_report.add_argument("--sort-by", default=None)
    p_report.add_argument("--top-n", type=int, default=None)
    p_report.add_argument("--out", type=Path, default=None)

    p_exec = sub.add_parser("executive")
    p_exec.add_argument("--sales", type=Path, required=True)
    p_exec.add_argument("--sessions", type=Path, default=None)
    p_exec.add_argument("--leads", type=Path, default=None)
    p_exec.add_argument("--payroll", type=Path, default=None)
    p_exec.add_argument("--out", type=Path, default=None)

    return p


def main(argv: Sequence[str] | None = None) -> None:
    """CLI entry point: parse args, configure logging and dispatch commands."""
    load_dotenv()
    args = build_parser().parse_args(argv)
    configure_logging(
        get_settings(require_credentials=False).log_path,
        level=getattr(logging, args.log_level),
    )

    if args.cmd == "fetch":
        cmd_fetch(args)
    elif args.cmd == "report":
        cmd_report(args)
    elif args.cmd == "executive":
        cmd_executive(args)
    else:
        raise SystemExit(2)


if __name__ == "__main__":
    main()
