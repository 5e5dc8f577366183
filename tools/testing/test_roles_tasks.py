"""
Test roles, capabilities and task routing.

Tests:
1. Role parsing (accents, case, aliases)
2. Capabilities per role
3. Expected tasks per campaign state
4. Router keeps open tasks in line with the campaign through the lifecycle
5. Task visibility and derivation
6. Deleting a campaign closes its open tasks

Run: python tools/testing/test_roles_tasks.py
"""

import sys
from datetime import datetime
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from siscoca_core.catalog import CampaignState
from siscoca_ledger.persistence import InMemoryPersistence
from siscoca_ledger.service import CampaignService
from siscoca_tasks.roles import Role, capabilities
from siscoca_tasks.routing import (
    InMemoryTaskGateway,
    TaskRouter,
    TaskType,
    expected_tasks,
    task_type_label,
    visible_tasks,
)

NOW = datetime(2026, 10, 19, 9, 0)

FORM = {
    "country": "PE",
    "vertical": "MOTOPER",
    "platform": "FB",
    "segment": "Adquisición",
    "owner_name": "Diego Valdivia",
    "short_description": "BonoBienvenida",
    "objective": "Captar nuevos conductores",
    "benefit": "Bono S/100",
    "long_description": "Campaña de bienvenida para motociclistas",
}


def _open_types(gateway, campaign_id="001"):
    return sorted(t.task_type for t in gateway.open_tasks(campaign_id))


def test_role_parsing():
    print("\n=== TEST 1: Role parsing ===")

    assert Role.from_string("dueño") == Role.OWNER
    assert Role.from_string("DUENO") == Role.OWNER
    assert Role.from_string("owner") == Role.OWNER
    assert Role.from_string("mkt") == Role.MARKETING
    assert Role.from_string(" Admin ") == Role.ADMIN
    assert Role.from_string(Role.TRAFFICKER) == Role.TRAFFICKER

    for bad in ("", None, "jefe"):
        try:
            Role.from_string(bad)
            raise AssertionError(f"{bad!r} should not parse")
        except ValueError:
            pass
    print("✅ PASS: Role parsing")


def test_capabilities():
    print("\n=== TEST 2: Capabilities ===")

    admin = capabilities("Admin")
    assert admin.can_manage_users and admin.can_view_all_tasks and admin.can_archive

    trafficker = capabilities(Role.TRAFFICKER)
    assert trafficker.can_submit_trafficker_metrics
    assert not trafficker.can_archive and not trafficker.can_submit_owner_metrics

    owner = capabilities("Dueño")
    assert owner.can_create_campaign and owner.can_submit_owner_metrics and owner.can_archive
    assert not owner.can_activate

    marketing = capabilities("Marketing")
    assert marketing.can_upload_creative and marketing.can_activate
    assert not marketing.can_view_all_tasks

    assert all(capabilities(r).can_derive_task for r in Role)
    print("✅ PASS: Capabilities")


def test_router_follows_lifecycle():
    """Open tasks move with the campaign from creation to archive."""
    print("\n=== TEST 3: Router through the lifecycle ===")

    gateway = InMemoryTaskGateway()
    router = TaskRouter.from_config(gateway, {"Marketing": "Ana Mkt", "Trafficker": "Tomas Traf"})
    service = CampaignService(InMemoryPersistence())
    service.add_listener(router)

    service.create_campaign(FORM, now=NOW)
    assert _open_types(gateway) == ["ENVIAR_CREATIVO"]
    assert gateway.open_tasks("001")[0].assignee == "Ana Mkt"
    assert gateway.open_tasks("001")[0].description.startswith("Enviar el creativo para: PE-MOTOPER")

    service.attach_creative("001", file_name="banner.png", now=NOW)
    assert _open_types(gateway) == ["ACTIVAR_CAMPANA"]

    service.activate("001", now=NOW)
    assert _open_types(gateway) == ["SUBIR_METRICAS_DUENO", "SUBIR_METRICAS_TRAFFICKER"]
    by_type = {t.task_type: t for t in gateway.open_tasks("001")}
    assert by_type["SUBIR_METRICAS_TRAFFICKER"].assignee == "Tomas Traf"
    assert by_type["SUBIR_METRICAS_DUENO"].assignee == "Diego Valdivia", "Owner tasks go to the campaign owner"

    service.submit_trafficker_metrics(
        {"campaign_id": "001", "reach": 1000, "clicks": 80, "leads": 4, "weekly_cost": 100}, now=NOW,
    )
    assert _open_types(gateway) == ["SUBIR_METRICAS_DUENO"]

    service.submit_owner_metrics({"campaign_id": "001", "drivers_registered": 2, "drivers_first_trip": 1}, now=NOW)
    assert _open_types(gateway) == ["ARCHIVAR_CAMPANA"]
    assert expected_tasks(service.get_campaign("001")) == [TaskType.ARCHIVE_CAMPAIGN]

    service.archive("001", now=NOW)
    assert service.get_campaign("001").state == CampaignState.ARCHIVED
    assert _open_types(gateway) == []
    assert len(gateway.tasks) == 5, "One task per step, each completed"
    assert all(t.completed for t in gateway.tasks.values())
    print("✅ PASS: Tasks follow the campaign")


def test_visibility_and_derivation():
    print("\n=== TEST 4: Visibility and derivation ===")

    gateway = InMemoryTaskGateway()
    router = TaskRouter(gateway)
    service = CampaignService(InMemoryPersistence())
    service.add_listener(router)
    service.create_campaign(FORM, now=NOW)
    service.attach_creative("001", now=NOW)
    service.activate("001", now=NOW)

    tasks = list(gateway.tasks.values())
    assert len(visible_tasks(tasks, "cualquiera", "Admin")) == 2
    trafficker_view = visible_tasks(tasks, "Rayedel Ortega", "Trafficker")
    assert [t.task_type for t in trafficker_view] == ["SUBIR_METRICAS_TRAFFICKER"]
    owner_view = visible_tasks(tasks, "Diego Valdivia", "Dueño")
    assert [t.task_type for t in owner_view] == ["SUBIR_METRICAS_DUENO"]

    task = owner_view[0]
    assert task.label == "Subir Métricas Dueño"
    refused = router.derive(task, "  ", "Dueño")
    assert not refused.success and refused.message == "Selecciona a quién derivar la tarea"

    derived = router.derive(task, "Paola Jorge", "Dueño")
    assert derived.success and derived.message == "Tarea derivada correctamente"
    assert gateway.tasks[task.id].assignee == "Paola Jorge"

    # Derived task shows up by name for someone outside the responsible role
    marketing_view = visible_tasks(gateway.tasks.values(), "Paola Jorge", "Marketing")
    assert task.id in [t.id for t in marketing_view]

    assert task_type_label("TAREA_NUEVA") == "TAREA_NUEVA", "Unknown types shown as-is"
    print("✅ PASS: Visibility and derivation")


def test_delete_closes_open_tasks():
    print("\n=== TEST 5: Deleting a campaign closes its tasks ===")

    gateway = InMemoryTaskGateway()
    service = CampaignService(InMemoryPersistence())
    service.add_listener(TaskRouter(gateway))
    service.create_campaign(FORM, now=NOW)
    service.create_campaign(dict(FORM, short_description="Referidos"), now=NOW)
    service.attach_creative("001", now=NOW)
    service.activate("001", now=NOW)
    assert _open_types(gateway) == ["SUBIR_METRICAS_DUENO", "SUBIR_METRICAS_TRAFFICKER"]

    deleted = service.delete_campaign("001", now=NOW)
    assert deleted.success and deleted.event.trigger == "delete"
    assert _open_types(gateway) == [], "No tasks left for a deleted campaign"
    assert _open_types(gateway, "002") == ["ENVIAR_CREATIVO"], "Other campaigns untouched"
    print("✅ PASS: Delete closes open tasks")


def main():
    tests = [
        test_role_parsing,
        test_capabilities,
        test_router_follows_lifecycle,
        test_visibility_and_derivation,
        test_delete_closes_open_tasks,
    ]

    all_passed = True
    for test in tests:
        try:
            test()
        except AssertionError as e:
            print(f"❌ FAIL: {test.__name__}: {e}")
            all_passed = False

    print("\n" + "=" * 60)
    print("✅ ALL TESTS PASSED" if all_passed else "❌ SOME TESTS FAILED")
    print("=" * 60)
    return 0 if all_passed else 1


if __name__ == "__main__":
    sys.exit(main())
