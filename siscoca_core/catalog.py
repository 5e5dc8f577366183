"""
Closed vocabularies for campaign classification.

Values are the strings the backend and the sheets exports use, so a
``Country("PE")`` round-trips through JSON unchanged.
"""
from __future__ import annotations

from enum import Enum
from typing import Dict, List, Optional, Tuple


class Country(str, Enum):
    PE = "PE"
    CO = "CO"


class Vertical(str, Enum):
    MOTOPER = "MOTOPER"
    MOTODEL = "MOTODEL"
    CARGO = "CARGO"
    AUTOPER = "AUTOPER"
    B2B = "B2B"
    PREMIER = "PREMIER"
    CONFORT = "CONFORT"
    YEGOPRO = "YEGOPRO"
    YEGOMIAUTO = "YEGOMIAUTO"
    YEGOMIMOTO = "YEGOMIMOTO"


class Platform(str, Enum):
    FB = "FB"
    TT = "TT"
    IG = "IG"
    GG = "GG"
    LI = "LI"


class Segment(str, Enum):
    ACQUISITION = "Adquisición"
    RETENTION = "Retención"
    RETURN = "Retorno"
    MOST_VIEWS = "Más Vistas"
    MOST_FOLLOWERS = "Más Seguidores"
    MOST_PROFILE_VIEWS = "Más Vistas del Perfil"


class LandingType(str, Enum):
    FORMS = "FORMS"
    WHATSAPP = "WHATSAPP"
    URL = "URL"
    LANDING = "LANDING"
    APP = "APP"
    CALL_CENTER = "CALL_CENTER"
    EMAIL = "EMAIL"
    OTHER = "OTRO"


class CampaignState(str, Enum):
    PENDING = "Pendiente"
    CREATIVE_SUBMITTED = "Creativo Enviado"
    ACTIVE = "Activa"
    ARCHIVED = "Archivada"


# The legacy creation form only offered the first three segments.
LEGACY_SEGMENTS = (Segment.ACQUISITION, Segment.RETENTION, Segment.RETURN)

SEGMENT_ABBREVIATIONS: Dict[str, str] = {
    Segment.ACQUISITION.value: "ADQ",
    Segment.RETENTION.value: "RET",
    Segment.RETURN.value: "RTO",
    Segment.MOST_VIEWS.value: "VST",
    Segment.MOST_FOLLOWERS.value: "SEG",
    Segment.MOST_PROFILE_VIEWS.value: "VDP",
}
UNKNOWN_SEGMENT_ABBREVIATION = "XXX"

VERTICAL_LABELS: Dict[Vertical, str] = {
    Vertical.MOTOPER: "Moto Persona",
    Vertical.MOTODEL: "Moto Delivery",
    Vertical.CARGO: "Cargo",
    Vertical.AUTOPER: "Auto Persona",
    Vertical.B2B: "B2B",
    Vertical.PREMIER: "Premier",
    Vertical.CONFORT: "Confort",
    Vertical.YEGOPRO: "YegoPro",
    Vertical.YEGOMIAUTO: "YegoMiAuto",
    Vertical.YEGOMIMOTO: "YegoMiMoto",
}

PLATFORM_LABELS: Dict[Platform, str] = {
    Platform.FB: "Facebook Ads",
    Platform.TT: "TikTok Ads",
    Platform.IG: "Instagram Ads",
    Platform.GG: "Google Ads",
    Platform.LI: "LinkedIn Ads",
}

COUNTRY_LABELS: Dict[Country, str] = {
    Country.PE: "Perú",
    Country.CO: "Colombia",
}

LANDING_TYPE_LABELS: Dict[LandingType, str] = {
    LandingType.FORMS: "Formulario de Registro",
    LandingType.WHATSAPP: "WhatsApp Business",
    LandingType.URL: "URL Externa",
    LandingType.LANDING: "Landing Page",
    LandingType.APP: "Aplicación Móvil",
    LandingType.CALL_CENTER: "Call Center",
    LandingType.EMAIL: "Correo Electrónico",
    LandingType.OTHER: "Otro",
}

OTHER_OWNER = "Otro"

# (name, initials); "Otro" means initials are typed in by hand
DEFAULT_OWNERS: List[Tuple[str, str]] = [
    ("Ariana de la Cruz", "AC"),
    ("Diego Valdivia", "DV"),
    ("Frank Huarilloclla", "FH"),
    ("Gonzalo Fajardo", "GF"),
    ("Martha Pineda", "MP"),
    ("Paola Jorge", "PJ"),
    (OTHER_OWNER, ""),
]


def segment_abbreviation(segment: Optional[str]) -> str:
    """Abbreviation used in campaign names; unknown segments map to XXX."""
    if segment is None:
        return UNKNOWN_SEGMENT_ABBREVIATION
    value = segment.value if isinstance(segment, Segment) else str(segment)
    return SEGMENT_ABBREVIATIONS.get(value, UNKNOWN_SEGMENT_ABBREVIATION)


def owner_initials(owner_name: str, owners: Optional[List[Tuple[str, str]]] = None) -> Optional[str]:
    """
    Look up initials for a known owner.

    Returns None for "Otro" and for names outside the table, which means the
    caller must take manually entered initials.
    """
    for name, initials in owners or DEFAULT_OWNERS:
        if name == owner_name and initials:
            return initials
    return None
