"""
Application config (YAML).

Example (configs/siscoca.yaml):

    owners:
      - {name: "Ariana de la Cruz", initials: "AC"}
      - {name: "Otro", initials: ""}
    assignees:
      Marketing: "Ariana de la Cruz"
      Trafficker: "Rayedel Ortega"
    evolution:
      detail_weeks: 5
      dashboard_weeks: 4
    max_active_creatives: 5
    ideal_metrics:
      - {name: "Alcance Ideal", category: ALCANCE, ideal: 1000, unit: personas}
"""
from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional, Tuple

import yaml
from pydantic import BaseModel, Field, field_validator

from .catalog import DEFAULT_OWNERS
from .evaluation import IdealMetric


class OwnerEntry(BaseModel):
    name: str
    initials: str = ""

    @field_validator("initials")
    @classmethod
    def initials_upper(cls, v: str) -> str:
        return v.strip().upper()


class EvolutionWindow(BaseModel):
    detail_weeks: int = 5
    dashboard_weeks: int = 4

    @field_validator("detail_weeks", "dashboard_weeks")
    @classmethod
    def at_least_one(cls, v: int) -> int:
        if v < 1:
            raise ValueError("evolution window must be >= 1 week")
        return v


def _default_owners() -> List[OwnerEntry]:
    return [OwnerEntry(name=n, initials=i) for n, i in DEFAULT_OWNERS]


def _default_assignees() -> Dict[str, str]:
    return {
        "Marketing": "Ariana de la Cruz",
        "Trafficker": "Rayedel Ortega",
    }


class AppConfig(BaseModel):
    owners: List[OwnerEntry] = Field(default_factory=_default_owners)
    # Role value -> person who receives that role's tasks; owner tasks go to the campaign owner
    assignees: Dict[str, str] = Field(default_factory=_default_assignees)
    evolution: EvolutionWindow = EvolutionWindow()
    max_active_creatives: int = 5
    ideal_metrics: List[IdealMetric] = Field(default_factory=list)

    @field_validator("max_active_creatives")
    @classmethod
    def cap_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("max_active_creatives must be >= 1")
        return v

    def owner_table(self) -> List[Tuple[str, str]]:
        return [(o.name, o.initials) for o in self.owners]

    def assignee_for(self, role: str) -> Optional[str]:
        return self.assignees.get(role)


def default_app_config() -> AppConfig:
    return AppConfig()


def parse_app_config(data: dict) -> AppConfig:
    # Raises ValidationError if invalid
    return AppConfig.model_validate(data)


def load_app_config(path: Optional[str] = None) -> AppConfig:
    """Load YAML config; an empty path means built-in defaults."""
    if not path:
        return default_app_config()

    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"SISCOCA config not found: {path}")

    data = yaml.safe_load(p.read_text(encoding="utf8"))
    if not isinstance(data, dict):
        raise ValueError("SISCOCA config must be a YAML mapping/object")

    return parse_app_config(data)
