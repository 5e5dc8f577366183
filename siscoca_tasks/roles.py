"""
User roles and what each one may do.

Call sites ask ``capabilities(role).can_archive`` instead of comparing role
strings.
"""
from __future__ import annotations

import unicodedata
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Union


class Role(str, Enum):
    ADMIN = "Admin"
    TRAFFICKER = "Trafficker"
    OWNER = "Dueño"
    MARKETING = "Marketing"

    @classmethod
    def from_string(cls, value: Union[str, "Role", None]) -> "Role":
        """Parse a role name; accents, case and the MKT / OWNER aliases are accepted."""
        if isinstance(value, Role):
            return value
        if value is None or not str(value).strip():
            raise ValueError("El rol es obligatorio")

        key = _normalize(str(value))
        role = _ALIASES.get(key)
        if role is None:
            raise ValueError(f"Rol inválido: {value}")
        return role


def _normalize(value: str) -> str:
    decomposed = unicodedata.normalize("NFD", value.strip())
    return "".join(ch for ch in decomposed if unicodedata.category(ch) != "Mn").upper()


_ALIASES: Dict[str, Role] = {
    "ADMIN": Role.ADMIN,
    "ADMINISTRADOR": Role.ADMIN,
    "TRAFFICKER": Role.TRAFFICKER,
    "DUENO": Role.OWNER,
    "OWNER": Role.OWNER,
    "MARKETING": Role.MARKETING,
    "MKT": Role.MARKETING,
}


@dataclass(frozen=True)
class Capabilities:
    can_view_all_tasks: bool = False
    can_derive_task: bool = False
    can_create_campaign: bool = False
    can_upload_creative: bool = False
    can_activate: bool = False
    can_submit_trafficker_metrics: bool = False
    can_submit_owner_metrics: bool = False
    can_archive: bool = False
    can_manage_users: bool = False


_CAPABILITIES: Dict[Role, Capabilities] = {
    Role.ADMIN: Capabilities(
        can_view_all_tasks=True,
        can_derive_task=True,
        can_create_campaign=True,
        can_upload_creative=True,
        can_activate=True,
        can_submit_trafficker_metrics=True,
        can_submit_owner_metrics=True,
        can_archive=True,
        can_manage_users=True,
    ),
    Role.TRAFFICKER: Capabilities(
        can_derive_task=True,
        can_submit_trafficker_metrics=True,
    ),
    Role.OWNER: Capabilities(
        can_derive_task=True,
        can_create_campaign=True,
        can_submit_owner_metrics=True,
        can_archive=True,
    ),
    Role.MARKETING: Capabilities(
        can_derive_task=True,
        can_upload_creative=True,
        can_activate=True,
    ),
}


def capabilities(role: Union[str, Role]) -> Capabilities:
    return _CAPABILITIES[Role.from_string(role)]
