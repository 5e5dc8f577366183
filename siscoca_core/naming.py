"""
Campaign naming rule.

    {country}-{vertical}-{platform}-{segment_abbrev}-{seq:03}-{INITIALS}-{short_description}

e.g. PE-MOTOPER-FB-ADQ-007-AC-BonoBienvenida
"""
from __future__ import annotations

from typing import Any, Dict, Optional, Union

from .catalog import segment_abbreviation

NAME_FIELDS = (
    "country",
    "vertical",
    "platform",
    "segment",
    "owner_initials",
    "short_description",
)


def _code(value: Any) -> str:
    if value is None:
        return ""
    return str(getattr(value, "value", value)).strip()


def format_sequence(sequence: Union[int, str]) -> str:
    return str(sequence).strip().zfill(3)


def build_campaign_name(
    country: Any,
    vertical: Any,
    platform: Any,
    segment: Any,
    sequence: Union[int, str],
    owner_initials: str,
    short_description: str,
) -> str:
    """
    Build the canonical campaign name.

    Pure function. Returns "" when any part is blank so an edit form can
    show "no suggestion" instead of a half-built name. Unknown segments
    abbreviate to XXX.
    """
    parts = [_code(country), _code(vertical), _code(platform), _code(segment),
             _code(owner_initials), _code(short_description), _code(sequence)]
    if not all(parts):
        return ""

    return "-".join([
        _code(country),
        _code(vertical),
        _code(platform),
        segment_abbreviation(_code(segment)),
        format_sequence(sequence),
        _code(owner_initials).upper(),
        _code(short_description),
    ])


class NameEditSession:
    """
    Name field state for one edit of a campaign.

    While the name tracks the suggestion, editing any naming field refreshes
    it. Once the user types a name by hand, field edits only refresh the
    suggestion; the typed name stays until use_suggested() is called.
    Nothing here is persisted.
    """

    def __init__(self, campaign_id: str, values: Dict[str, Any], current_name: str):
        self.campaign_id = campaign_id
        self.values: Dict[str, Any] = {k: values.get(k) for k in NAME_FIELDS}
        self.name = current_name
        initial = self._suggest()
        self.suggested = initial or current_name
        # A stored name that already differs from the rule counts as a manual override
        self.manual_override = initial != "" and current_name != initial

    def _suggest(self) -> str:
        v = self.values
        return build_campaign_name(
            v["country"], v["vertical"], v["platform"], v["segment"],
            self.campaign_id, v["owner_initials"] or "", v["short_description"] or "",
        )

    def set_field(self, field_name: str, value: Any) -> str:
        """Change a naming field; returns the current name."""
        if field_name not in NAME_FIELDS:
            raise KeyError(f"Not a naming field: {field_name}")
        self.values[field_name] = value
        suggested = self._suggest()
        self.suggested = suggested or self.name
        if not self.manual_override and suggested:
            self.name = suggested
        return self.name

    def set_name(self, name: str) -> None:
        """The user typed into the name field."""
        self.name = name
        self.manual_override = True

    def use_suggested(self) -> str:
        self.manual_override = False
        self.name = self.suggested
        return self.name

    def changes(self) -> Dict[str, Optional[str]]:
        return {"name": self.name, **{k: _code(v) or None for k, v in self.values.items()}}
