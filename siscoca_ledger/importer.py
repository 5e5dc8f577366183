"""
Historic import from a Google Sheets CSV export.

Expected header (extra columns are ignored):
ID_CAMPANIA, NOMBRE_CAMPANIA, SEMANA_ISO, FECHA_ARCHIVO, VERTICAL, SEGMENTO,
OBJETIVO, BENEFICIO_PROGRAMA, DESCRIPCION, ALCANCE, CLICKS, LEADS,
COSTO_SEMANAL, COSTO_LEAD, CONDUCTORES_REGISTRADOS, CONDUCTORES_PRIMER_VIAJE,
COSTO_CONDUCTOR_REGISTRADO, COSTO_CONDUCTOR_PRIMER_VIAJE, ESTADO_ACTIVIDAD,
ESTADO_METRICAS, MENSAJE

Money columns may carry "$" and thousands separators. FECHA_ARCHIVO is
dd/mm/yyyy with an optional hh:mm. Rows that cannot be parsed are reported
back with their line number; they never abort the import.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

import pandas as pd

from siscoca_core.catalog import Country, Platform, Segment, Vertical
from siscoca_core.logging_config import setup_logging
from siscoca_core.models import ACTIVITY_ACTIVE, METRICS_COMPLETE, ArchiveRecord

logger = setup_logging(__name__)

REQUIRED_COLUMNS = ("ID_CAMPANIA", "NOMBRE_CAMPANIA", "SEMANA_ISO", "FECHA_ARCHIVO")

DEFAULT_COUNTRY = Country.PE
DEFAULT_PLATFORM = Platform.FB
DEFAULT_VERTICAL = Vertical.MOTOPER
DEFAULT_SEGMENT = Segment.ACQUISITION
IMPORTED_OWNER = "Importado"
IMPORTED_MESSAGE = "Importado desde Google Sheets"

# CSV column -> (ArchiveRecord field, int?)
_METRIC_COLUMNS = {
    "ALCANCE": ("reach", True),
    "CLICKS": ("clicks", True),
    "LEADS": ("leads", True),
    "COSTO_SEMANAL": ("weekly_cost", False),
    "COSTO_LEAD": ("cost_per_lead", False),
    "CONDUCTORES_REGISTRADOS": ("drivers_registered", True),
    "CONDUCTORES_PRIMER_VIAJE": ("drivers_first_trip", True),
    "COSTO_CONDUCTOR_REGISTRADO": ("cost_per_driver_registered", False),
    "COSTO_CONDUCTOR_PRIMER_VIAJE": ("cost_per_driver_first_trip", False),
}


@dataclass
class ImportReport:
    records: List[ArchiveRecord] = field(default_factory=list)
    errors: List[Tuple[int, str]] = field(default_factory=list)  # (line number, reason)

    @property
    def imported(self) -> int:
        return len(self.records)


def _text(row: Dict[str, Any], column: str) -> str:
    value = row.get(column)
    if value is None:
        return ""
    if isinstance(value, float) and pd.isna(value):
        return ""
    return str(value).strip()


def parse_number(raw: str) -> Optional[float]:
    """'$1,234.50' -> 1234.5; blank -> None. Rejects inf and nan."""
    cleaned = raw.replace("$", "").replace(",", "").strip()
    if not cleaned:
        return None
    value = float(cleaned)
    if not math.isfinite(value):
        raise ValueError(f"not a finite number: '{raw}'")
    return value


def parse_week(raw: str) -> int:
    value = parse_number(raw)
    if value is None:
        raise ValueError("Falta SEMANA_ISO")
    week = int(value)
    if not 1 <= week <= 53:
        raise ValueError(f"SEMANA_ISO fuera de rango: {week}")
    return week


def parse_archive_date(raw: str) -> datetime:
    """dd/mm/yyyy or dd/mm/yyyy hh:mm"""
    for fmt in ("%d/%m/%Y %H:%M", "%d/%m/%Y"):
        try:
            return datetime.strptime(raw.strip(), fmt)
        except ValueError:
            continue
    raise ValueError(f"FECHA_ARCHIVO inválida: '{raw}'")


def _enum_or_default(enum_cls, raw: str, default):
    if not raw:
        return default
    try:
        return enum_cls(raw)
    except ValueError:
        return default


def parse_history_row(row: Dict[str, Any]) -> ArchiveRecord:
    """
    Build an ArchiveRecord from one sheet row.

    Raises:
        ValueError: missing identity columns, bad week, bad date or bad number
    """
    for column in REQUIRED_COLUMNS:
        if not _text(row, column):
            raise ValueError(f"Falta {column}")

    campaign_id = _text(row, "ID_CAMPANIA")
    week = parse_week(_text(row, "SEMANA_ISO"))

    metrics: Dict[str, Any] = {}
    for column, (name, as_int) in _METRIC_COLUMNS.items():
        raw = _text(row, column)
        try:
            value = parse_number(raw)
        except ValueError:
            raise ValueError(f"{column} no es numérico: '{raw}'")
        if value is not None and as_int:
            value = int(value)
        metrics[name] = value

    return ArchiveRecord(
        id=f"{campaign_id}-{week}",
        campaign_id=campaign_id,
        name=_text(row, "NOMBRE_CAMPANIA"),
        iso_week=week,
        archived_at=parse_archive_date(_text(row, "FECHA_ARCHIVO")),
        country=DEFAULT_COUNTRY,
        vertical=_enum_or_default(Vertical, _text(row, "VERTICAL"), DEFAULT_VERTICAL),
        platform=DEFAULT_PLATFORM,
        segment=_enum_or_default(Segment, _text(row, "SEGMENTO"), DEFAULT_SEGMENT),
        objective=_text(row, "OBJETIVO"),
        benefit=_text(row, "BENEFICIO_PROGRAMA"),
        description=_text(row, "DESCRIPCION"),
        owner_name=IMPORTED_OWNER,
        activity_status=_text(row, "ESTADO_ACTIVIDAD") or ACTIVITY_ACTIVE,
        metrics_status=_text(row, "ESTADO_METRICAS") or METRICS_COMPLETE,
        message=_text(row, "MENSAJE") or IMPORTED_MESSAGE,
        **metrics,
    )


def parse_history_rows(rows: Iterable[Dict[str, Any]], first_line: int = 2) -> ImportReport:
    """Parse sheet rows; line numbers start at 2 because line 1 is the header."""
    report = ImportReport()
    for offset, row in enumerate(rows):
        line = first_line + offset
        try:
            report.records.append(parse_history_row(row))
        except ValueError as e:
            logger.warning(f"Skipping line {line}: {e}")
            report.errors.append((line, str(e)))
    return report


def read_history_csv(path: str) -> ImportReport:
    """Read a CSV export and parse every row."""
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"CSV not found: {path}")

    df = pd.read_csv(p, dtype=str, keep_default_na=False, encoding="utf-8")
    df.columns = [c.strip().replace('"', "") for c in df.columns]

    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"CSV is missing columns: {', '.join(missing)}")

    report = parse_history_rows(df.to_dict(orient="records"))
    logger.info(f"Parsed {report.imported} history rows from {p.name} ({len(report.errors)} skipped)")
    return report
