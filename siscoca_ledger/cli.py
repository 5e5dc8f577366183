from __future__ import annotations

import argparse

from siscoca_core.config import load_app_config
from siscoca_core.settings import get_settings

from .change_log import ChangeLog
from .evolution import MODES
from .persistence import DuckDBPersistence
from .service import CampaignService


def _fmt_money(v) -> str:
    return "-" if v is None else f"${v:,.2f}"


def _service(args: argparse.Namespace) -> CampaignService:
    settings = get_settings()
    db_path = args.db or settings.db_path
    svc = CampaignService(
        persistence=DuckDBPersistence(db_path),
        change_log=ChangeLog(db_path),
        config=load_app_config(args.config or settings.config_path),
        evolution_mode=settings.evolution_mode,
    )
    svc.load()
    return svc


def cmd_evolution(args: argparse.Namespace) -> int:
    svc = _service(args)
    campaign = svc.get_campaign(args.campaign_id)
    if campaign is None:
        print(f"[SISCOCA] Unknown campaign: {args.campaign_id}")
        return 1

    buckets = svc.evolution(args.campaign_id, weeks=args.weeks, mode=args.mode)
    print(f"[SISCOCA] {campaign.name} ({campaign.state.value})")
    print(f"{'Semana':>7} {'Inicio':>6} {'Alcance':>9} {'Clics':>7} {'Leads':>6} {'Costo':>12} {'CPL':>10} {'Reg.':>5} {'1er V.':>6}  Fuentes")
    for b in buckets:
        print(
            f"{b.iso_week:>7} {b.label:>6} {b.reach:>9} {b.clicks:>7} {b.leads:>6} "
            f"{_fmt_money(b.weekly_cost):>12} {_fmt_money(b.cost_per_lead):>10} "
            f"{b.drivers_registered:>5} {b.drivers_first_trip:>6}  {','.join(b.sources) or '-'}"
        )
    return 0


def cmd_import_historico(args: argparse.Namespace) -> int:
    svc = _service(args)
    result = svc.import_history_csv(args.csv)
    svc.persist()

    report = result.record
    print(f"[SISCOCA] {result.message}")
    for line, reason in report.errors:
        print(f"  line {line}: {reason}")
    return 0 if not report.errors else 2


def cmd_summary(args: argparse.Namespace) -> int:
    svc = _service(args)
    for state, count in svc.stats().items():
        print(f"{state:>18}: {count}")

    campaigns = svc.list_campaigns()
    leads = sum(c.leads or 0 for c in campaigns)
    cost = sum(c.weekly_cost or 0.0 for c in campaigns)
    drivers = sum(c.drivers_registered or 0 for c in campaigns)
    print(f"{'leads':>18}: {leads}")
    print(f"{'costo':>18}: {_fmt_money(cost)}")
    print(f"{'conductores':>18}: {drivers}")
    print(f"{'histórico':>18}: {len(svc.history)}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="siscoca_ledger", description="SISCOCA campaign ledger tools"
    )
    p.add_argument("--db", default=None, help="DuckDB path (default: SISCOCA_DB_PATH)")
    p.add_argument("--config", default=None, help="YAML config (default: SISCOCA_CONFIG)")
    sub = p.add_subparsers(dest="cmd", required=True)

    e = sub.add_parser("evolution", help="Weekly evolution table for one campaign.")
    e.add_argument("campaign_id", help="Campaign id, e.g. 007")
    e.add_argument("--weeks", type=int, default=None, help="Window size (default from config, 5)")
    e.add_argument("--mode", choices=MODES, default=None, help="Source combination mode")
    e.set_defaults(func=cmd_evolution)

    i = sub.add_parser("import-historico", help="Import a Google Sheets CSV into the history.")
    i.add_argument("csv", help="Path to the CSV export")
    i.set_defaults(func=cmd_import_historico)

    s = sub.add_parser("summary", help="Campaign counts per state and totals.")
    s.set_defaults(func=cmd_summary)

    return p


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())
