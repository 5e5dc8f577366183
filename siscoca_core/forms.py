"""
Input validation for campaign forms and metric submissions.

Validation runs before the lifecycle is touched. Errors come back as
``{field: message}`` so the UI can show them next to each input; nothing here
raises across the core boundary.
"""
from __future__ import annotations

import re
from datetime import datetime
from typing import Any, Dict, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel, Field, ValidationError, ValidationInfo, field_validator

from .catalog import (
    LEGACY_SEGMENTS,
    OTHER_OWNER,
    Country,
    LandingType,
    Platform,
    Segment,
    Vertical,
)

SHORT_DESCRIPTION_RE = re.compile(r"^[a-zA-Z0-9]+$")

NON_NEGATIVE_MESSAGE = "Debe ser un número mayor o igual a 0"

_TYPE_MESSAGES = {
    "missing": "Campo requerido",
    "int_parsing": "Debe ser un número entero",
    "int_type": "Debe ser un número entero",
    "int_from_float": "Debe ser un número entero",
    "float_parsing": "Debe ser un número",
    "float_type": "Debe ser un número",
    "datetime_parsing": "Fecha inválida",
    "datetime_from_date_parsing": "Fecha inválida",
    "datetime_type": "Fecha inválida",
    "string_type": "Debe ser texto",
}

F = TypeVar("F", bound=BaseModel)


def _enum_member(enum_cls, value: Any, message: str):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        raise ValueError(message)


class CampaignForm(BaseModel):
    country: Country
    vertical: Vertical
    platform: Platform
    segment: Segment
    owner_name: str
    owner_initials: str = Field(default="", validate_default=True)
    short_description: str
    objective: str
    benefit: str
    long_description: str
    landing_type: LandingType = LandingType.FORMS
    landing_url: Optional[str] = None
    landing_detail: Optional[str] = None
    platform_name: Optional[str] = None
    external_platform_id: Optional[str] = None

    @field_validator("country", mode="before")
    @classmethod
    def country_known(cls, v: Any) -> Country:
        return _enum_member(Country, v, "Selecciona un país")

    @field_validator("vertical", mode="before")
    @classmethod
    def vertical_known(cls, v: Any) -> Vertical:
        return _enum_member(Vertical, v, "Selecciona una vertical válida")

    @field_validator("platform", mode="before")
    @classmethod
    def platform_known(cls, v: Any) -> Platform:
        return _enum_member(Platform, v, "Selecciona una plataforma")

    @field_validator("segment", mode="before")
    @classmethod
    def segment_known(cls, v: Any) -> Segment:
        return _enum_member(Segment, v, "Selecciona un segmento válido")

    @field_validator("landing_type", mode="before")
    @classmethod
    def landing_type_known(cls, v: Any) -> LandingType:
        if v is None or v == "":
            return LandingType.FORMS
        return _enum_member(LandingType, v, "Selecciona un tipo de aterrizaje")

    @field_validator("owner_name")
    @classmethod
    def owner_selected(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Selecciona un dueño")
        return v

    @field_validator("owner_initials")
    @classmethod
    def initials_for_other_owner(cls, v: str, info: ValidationInfo) -> str:
        v = (v or "").strip().upper()
        if info.data.get("owner_name") == OTHER_OWNER and not v:
            raise ValueError("Ingresa las iniciales del dueño")
        return v

    @field_validator("short_description")
    @classmethod
    def short_description_slug(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 3:
            raise ValueError("Mínimo 3 caracteres")
        if len(v) > 20:
            raise ValueError("Máximo 20 caracteres")
        if not SHORT_DESCRIPTION_RE.match(v):
            raise ValueError("Sin espacios ni caracteres especiales")
        return v

    @field_validator("objective")
    @classmethod
    def objective_length(cls, v: str) -> str:
        if len(v.strip()) < 10:
            raise ValueError("El objetivo debe tener al menos 10 caracteres")
        return v.strip()

    @field_validator("benefit")
    @classmethod
    def benefit_required(cls, v: str) -> str:
        if len(v.strip()) < 2:
            raise ValueError("El beneficio/programa es requerido")
        return v.strip()

    @field_validator("long_description")
    @classmethod
    def description_length(cls, v: str) -> str:
        if len(v.strip()) < 10:
            raise ValueError("La descripción debe tener al menos 10 caracteres")
        return v.strip()


class LegacyCampaignForm(CampaignForm):
    """Creation form of the first release: only three segments."""

    @field_validator("segment", mode="after")
    @classmethod
    def legacy_segment(cls, v: Segment) -> Segment:
        if v not in LEGACY_SEGMENTS:
            raise ValueError("Selecciona un segmento válido")
        return v


class CampaignEditForm(CampaignForm):
    name: str

    @field_validator("name")
    @classmethod
    def name_required(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("El nombre es requerido")
        return v.strip()


class TraffickerMetricsForm(BaseModel):
    campaign_id: str
    reach: int
    clicks: int
    leads: int
    weekly_cost: float
    cost_per_lead: Optional[float] = None
    report_url: Optional[str] = None

    @field_validator("reach", "clicks", "leads", "weekly_cost", "cost_per_lead")
    @classmethod
    def non_negative(cls, v):
        if v is not None and v < 0:
            raise ValueError(NON_NEGATIVE_MESSAGE)
        return v


class OwnerMetricsForm(BaseModel):
    campaign_id: str
    drivers_registered: int
    drivers_first_trip: int

    @field_validator("drivers_registered", "drivers_first_trip")
    @classmethod
    def non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError(NON_NEGATIVE_MESSAGE)
        return v


class WeeklyLedgerForm(BaseModel):
    campaign_id: str
    iso_week: int
    week_date: datetime
    reach: Optional[int] = None
    clicks: Optional[int] = None
    leads: Optional[int] = None
    weekly_cost: Optional[float] = None
    cost_per_lead: Optional[float] = None
    drivers_registered: Optional[int] = None
    drivers_first_trip: Optional[int] = None

    @field_validator("iso_week")
    @classmethod
    def week_in_range(cls, v: int) -> int:
        if not 1 <= v <= 53:
            raise ValueError("La semana ISO debe estar entre 1 y 53")
        return v

    @field_validator(
        "reach", "clicks", "leads", "weekly_cost", "cost_per_lead",
        "drivers_registered", "drivers_first_trip",
    )
    @classmethod
    def non_negative(cls, v):
        if v is not None and v < 0:
            raise ValueError(NON_NEGATIVE_MESSAGE)
        return v


def field_errors(exc: ValidationError) -> Dict[str, str]:
    """First message per field, in Spanish, from a pydantic ValidationError."""
    errors: Dict[str, str] = {}
    for err in exc.errors():
        field_name = ".".join(str(p) for p in err.get("loc", ())) or "__form__"
        if field_name in errors:
            continue
        if err.get("type") == "value_error":
            msg = str(err.get("ctx", {}).get("error", err.get("msg", "")))
        else:
            msg = _TYPE_MESSAGES.get(err.get("type", ""), err.get("msg", "Valor inválido"))
        errors[field_name] = msg
    return errors


def validate_form(form_cls: Type[F], data: Dict[str, Any]) -> Tuple[Optional[F], Dict[str, str]]:
    """
    Validate raw form data.

    Returns:
        (form, {}) when valid, (None, {field: message}) otherwise.
    """
    try:
        return form_cls.model_validate(data), {}
    except ValidationError as e:
        return None, field_errors(e)
