"""
Ideal-metric evaluation.

Compares a campaign's live metrics against configured ideal values.

Bands (actual / ideal x 100):
- >= 90  EXCELENTE
- >= 70  BUENO
- >= 50  REGULAR
- >= 30  MALO
- else   CRITICO

A metric with no value, or with no active ideal for its category, is skipped.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from pydantic import BaseModel, field_validator

from .catalog import Country, Platform, Segment, Vertical
from .metrics import _ratio, cost_per_driver
from .models import Campaign


class MetricCategory(str, Enum):
    REACH = "ALCANCE"
    LEADS = "LEADS"
    COST = "COSTO"
    DRIVERS = "CONDUCTORES"
    CONVERSION = "CONVERSION"


class IdealMetric(BaseModel):
    """Target value for one metric category, optionally scoped to a campaign classification."""
    name: str
    category: MetricCategory
    ideal: float
    min_value: Optional[float] = None
    max_value: Optional[float] = None
    unit: str = ""
    vertical: Optional[Vertical] = None
    country: Optional[Country] = None
    platform: Optional[Platform] = None
    segment: Optional[Segment] = None
    active: bool = True

    @field_validator("ideal")
    @classmethod
    def ideal_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("ideal must be > 0")
        return v

    def applies_to(self, campaign: Campaign) -> bool:
        if not self.active:
            return False
        scope = (
            (self.vertical, campaign.vertical),
            (self.country, campaign.country),
            (self.platform, campaign.platform),
            (self.segment, campaign.segment),
        )
        return all(wanted is None or wanted == actual for wanted, actual in scope)


@dataclass(frozen=True)
class Band:
    status: str
    color: str
    recommendation: str


# (lower bound, band), checked top-down
BANDS = [
    (90.0, Band("EXCELENTE", "#10b981", "Excelente rendimiento")),
    (70.0, Band("BUENO", "#f59e0b", "Buen rendimiento, hay margen de mejora")),
    (50.0, Band("REGULAR", "#f97316", "Rendimiento regular, necesita optimización")),
    (30.0, Band("MALO", "#ef4444", "Rendimiento bajo, requiere atención inmediata")),
]
CRITICAL_BAND = Band("CRITICO", "#7f1d1d", "Rendimiento crítico, revisar estrategia")


def band_for(percentage: float) -> Band:
    for lower, band in BANDS:
        if percentage >= lower:
            return band
    return CRITICAL_BAND


@dataclass
class MetricEvaluation:
    """One metric compared against its ideal."""

    metric: str
    actual: float
    ideal: float
    percentage: float  # actual / ideal * 100
    status: str  # EXCELENTE | BUENO | REGULAR | MALO | CRITICO
    color: str
    recommendation: str


@dataclass
class GlobalMetrics:
    total_cost: float
    total_reach: int
    total_leads: int
    total_drivers: int
    avg_cost_per_lead: Optional[float]
    avg_cost_per_driver: Optional[float]
    roi: Optional[float]  # drivers * 100 / cost
    evaluations: List[MetricEvaluation] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_cost": self.total_cost,
            "total_reach": self.total_reach,
            "total_leads": self.total_leads,
            "total_drivers": self.total_drivers,
            "avg_cost_per_lead": self.avg_cost_per_lead,
            "avg_cost_per_driver": self.avg_cost_per_driver,
            "roi": self.roi,
            "evaluations": [e.__dict__ for e in self.evaluations],
        }


def evaluate_metric(
    name: str,
    actual: Optional[float],
    ideals: Sequence[IdealMetric],
    category: MetricCategory,
) -> Optional[MetricEvaluation]:
    """
    Evaluate one metric value against the first ideal of its category.

    Returns:
        MetricEvaluation, or None when there is no value or no ideal
    """
    if actual is None:
        return None

    ideal = next((m for m in ideals if m.category == category), None)
    if ideal is None:
        return None

    percentage = float(actual) / ideal.ideal * 100
    band = band_for(percentage)

    return MetricEvaluation(
        metric=name,
        actual=float(actual),
        ideal=ideal.ideal,
        percentage=percentage,
        status=band.status,
        color=band.color,
        recommendation=band.recommendation,
    )


def evaluate_campaign(campaign: Campaign, ideals: Sequence[IdealMetric]) -> List[MetricEvaluation]:
    """Evaluate reach, leads, weekly cost, drivers and cost per first-trip driver."""
    applicable = [m for m in ideals if m.applies_to(campaign)]

    candidates = [
        ("Alcance", campaign.reach, MetricCategory.REACH),
        ("Leads", campaign.leads, MetricCategory.LEADS),
        ("Costo Semanal", campaign.weekly_cost, MetricCategory.COST),
        ("Conductores", campaign.drivers_registered, MetricCategory.DRIVERS),
        (
            "Costo por Conductor",
            cost_per_driver(campaign.weekly_cost, campaign.drivers_first_trip),
            MetricCategory.COST,
        ),
    ]

    evaluations = []
    for name, value, category in candidates:
        ev = evaluate_metric(name, value, applicable, category)
        if ev is not None:
            evaluations.append(ev)
    return evaluations


def global_metrics(campaign: Campaign, ideals: Sequence[IdealMetric] = ()) -> GlobalMetrics:
    """Totals, averages and simplified ROI for one campaign, plus its evaluations."""
    total_cost = float(campaign.weekly_cost or 0.0)
    total_leads = int(campaign.leads or 0)
    total_drivers = int(campaign.drivers_registered or 0)

    return GlobalMetrics(
        total_cost=total_cost,
        total_reach=int(campaign.reach or 0),
        total_leads=total_leads,
        total_drivers=total_drivers,
        avg_cost_per_lead=_ratio(total_cost, total_leads),
        avg_cost_per_driver=_ratio(total_cost, total_drivers),
        roi=_ratio(total_drivers * 100.0, total_cost),
        evaluations=evaluate_campaign(campaign, ideals),
    )
