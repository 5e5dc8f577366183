"""
Campaign service - the one place campaign state is held and mutated.

Holds the campaign list, the generic history, the weekly ledger and the
creatives in memory. Every mutation goes through the lifecycle functions in
siscoca_core; the stored campaign is only replaced when the operation
succeeds. Nothing is written to the persistence port until persist() is
called.

Listeners are called as ``listener(campaign, event)`` after a campaign is
created, changed or deleted; ``event`` is the TransitionEvent when the state
moved (trigger "delete" on deletion), None otherwise. Listeners run after
the change is stored and logged, so a listener that raises is logged and
skipped; it cannot undo or half-apply the operation.
"""
from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional

from siscoca_core import creatives as creative_rules
from siscoca_core import lifecycle
from siscoca_core.catalog import CampaignState, owner_initials
from siscoca_core.config import AppConfig, default_app_config
from siscoca_core.evaluation import GlobalMetrics, global_metrics
from siscoca_core.forms import (
    CampaignEditForm,
    CampaignForm,
    LegacyCampaignForm,
    OwnerMetricsForm,
    TraffickerMetricsForm,
    WeeklyLedgerForm,
    validate_form,
)
from siscoca_core.iso_week import iso_week_number
from siscoca_core.logging_config import setup_logging
from siscoca_core.metrics import cost_per_driver, cost_per_lead
from siscoca_core.models import (
    ArchiveRecord,
    Campaign,
    Creative,
    OperationResult,
    TRIGGER_DELETE,
    TransitionEvent,
    WeeklyLedgerEntry,
)
from siscoca_core.naming import build_campaign_name, format_sequence

from .change_log import ChangeLog
from .evolution import MODE_ADDITIVE, DashboardWeek, WeekBucket, dashboard_evolution, weekly_evolution
from .importer import ImportReport, parse_history_rows, read_history_csv
from .persistence import KEY_CAMPAIGNS, KEY_HISTORY, KEY_WEEKLY_LEDGER, PersistencePort

logger = setup_logging(__name__)

Listener = Callable[[Campaign, Optional[TransitionEvent]], None]

MSG_VALIDATION = "Revisa los campos del formulario"
MSG_INITIALS_REQUIRED = "Ingresa las iniciales del dueño"

# Form fields a campaign edit may touch, and their Campaign attribute
_EDITABLE_FIELDS = (
    "country", "vertical", "platform", "segment", "owner_name", "owner_initials",
    "short_description", "objective", "benefit", "long_description", "landing_type",
    "landing_url", "landing_detail", "platform_name", "external_platform_id",
)


def not_found(campaign_id: str) -> OperationResult:
    return OperationResult.fail(f"Campaña no encontrada: {campaign_id}")


def _plain(value: Any) -> Any:
    return getattr(value, "value", value)


class CampaignService:
    """Repository + use cases for campaigns, history and the weekly ledger."""

    def __init__(
        self,
        persistence: PersistencePort,
        change_log: Optional[ChangeLog] = None,
        config: Optional[AppConfig] = None,
        evolution_mode: str = MODE_ADDITIVE,
        legacy_segments: bool = False,
    ):
        self.persistence = persistence
        self.change_log = change_log
        self.config = config or default_app_config()
        self.evolution_mode = evolution_mode
        self.campaign_form = LegacyCampaignForm if legacy_segments else CampaignForm

        self.campaigns: Dict[str, Campaign] = {}
        self.history: List[ArchiveRecord] = []
        self.ledger: List[WeeklyLedgerEntry] = []
        self.creatives: List[Creative] = []
        self._listeners: List[Listener] = []

    # ─────────────────────────────────────────────────────────
    # Plumbing
    # ─────────────────────────────────────────────────────────

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def _notify(self, campaign: Campaign, event: Optional[TransitionEvent] = None) -> None:
        for listener in self._listeners:
            try:
                listener(campaign, event)
            except Exception as e:
                logger.error(f"[{campaign.id}] Listener {getattr(listener, '__name__', type(listener).__name__)} failed: {e}")

    def _log(self, campaign_id: str, change_type: str, description: str, **kwargs: Any) -> None:
        if self.change_log is not None:
            self.change_log.log_change(campaign_id, change_type, description, **kwargs)

    def get_campaign(self, campaign_id: str) -> Optional[Campaign]:
        return self.campaigns.get(campaign_id)

    def list_campaigns(self, state: Optional[CampaignState] = None) -> List[Campaign]:
        items = list(self.campaigns.values())
        if state is not None:
            items = [c for c in items if c.state == state]
        return items

    def next_campaign_id(self) -> str:
        """Highest numeric id + 1, zero-padded to 3 digits."""
        numeric = [int(cid) for cid in self.campaigns if cid.isdigit()]
        return format_sequence(max(numeric, default=0) + 1)

    def _resolve_initials(self, owner_name: str, typed: str) -> str:
        return owner_initials(owner_name, self.config.owner_table()) or typed

    def _apply(
        self,
        result: OperationResult,
        change_type: Optional[str] = None,
        user: Optional[str] = None,
    ) -> OperationResult:
        """Store the result's campaign when the operation succeeded, then log and notify."""
        if self._store(result, change_type, user):
            self._notify(result.campaign, result.event)
        return result

    def _store(
        self,
        result: OperationResult,
        change_type: Optional[str] = None,
        user: Optional[str] = None,
    ) -> bool:
        if not result.success or result.campaign is None:
            return False

        campaign = result.campaign
        self.campaigns[campaign.id] = campaign

        event = result.event
        if event is not None:
            self._log(
                campaign.id, "ESTADO", result.message,
                field="state", old_value=event.from_state.value, new_value=event.to_state.value,
                changed_by=user, changed_at=event.occurred_at,
            )
        elif change_type:
            self._log(campaign.id, change_type, result.message, changed_by=user, changed_at=campaign.updated_at)
        return True

    # ─────────────────────────────────────────────────────────
    # Campaign CRUD
    # ─────────────────────────────────────────────────────────

    def create_campaign(
        self,
        form_data: Dict[str, Any],
        custom_id: Optional[str] = None,
        created_by: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> OperationResult:
        form, errors = validate_form(self.campaign_form, form_data)
        if form is None:
            return OperationResult.fail(MSG_VALIDATION, errors=errors)

        initials = self._resolve_initials(form.owner_name, form.owner_initials)
        if not initials:
            return OperationResult.fail(MSG_VALIDATION, errors={"owner_initials": MSG_INITIALS_REQUIRED})

        campaign_id = custom_id.strip() if custom_id else self.next_campaign_id()
        if campaign_id in self.campaigns:
            return OperationResult.fail(f"Ya existe una campaña con el ID {campaign_id}")

        ts = now or datetime.now()
        name = build_campaign_name(
            form.country, form.vertical, form.platform, form.segment,
            campaign_id, initials, form.short_description,
        )
        campaign = Campaign(
            id=campaign_id,
            name=name,
            country=form.country,
            vertical=form.vertical,
            platform=form.platform,
            segment=form.segment,
            owner_name=form.owner_name,
            owner_initials=initials,
            short_description=form.short_description,
            objective=form.objective,
            benefit=form.benefit,
            long_description=form.long_description,
            created_at=ts,
            updated_at=ts,
            iso_week=iso_week_number(ts),
            state=CampaignState.PENDING,
            landing_type=form.landing_type,
            landing_url=form.landing_url,
            landing_detail=form.landing_detail,
            platform_name=form.platform_name,
            external_platform_id=form.external_platform_id,
        )
        self.campaigns[campaign_id] = campaign
        logger.info(f"[{campaign_id}] Created {name}")
        self._log(campaign_id, "CREACION", f"Campaña {name} creada", changed_by=created_by, changed_at=ts)
        self._notify(campaign, None)
        return OperationResult.ok(f"Campaña {name} creada exitosamente", campaign=campaign)

    def update_campaign(
        self,
        campaign_id: str,
        changes: Dict[str, Any],
        changed_by: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> OperationResult:
        """Validated form edit; last write wins."""
        current = self.get_campaign(campaign_id)
        if current is None:
            return not_found(campaign_id)

        data = {f: _plain(getattr(current, f)) for f in _EDITABLE_FIELDS}
        data["name"] = current.name
        data.update({k: v for k, v in changes.items() if k in data})

        form, errors = validate_form(CampaignEditForm, data)
        if form is None:
            return OperationResult.fail(MSG_VALIDATION, errors=errors)

        if form.owner_name != current.owner_name or "owner_initials" in changes:
            initials = self._resolve_initials(form.owner_name, form.owner_initials)
        else:
            initials = current.owner_initials
        if not initials:
            return OperationResult.fail(MSG_VALIDATION, errors={"owner_initials": MSG_INITIALS_REQUIRED})

        values = {f: getattr(form, f) for f in _EDITABLE_FIELDS}
        values["owner_initials"] = initials
        values["name"] = form.name

        diffs = [
            (f, getattr(current, f), v) for f, v in values.items()
            if _plain(getattr(current, f)) != _plain(v)
        ]
        if not diffs:
            return OperationResult.ok("Sin cambios", campaign=current)

        ts = now or datetime.now()
        updated = replace(current, updated_at=ts, **values)
        self.campaigns[campaign_id] = updated
        for field_name, old, new in diffs:
            self._log(
                campaign_id, "EDICION", f"{field_name} actualizado",
                field=field_name, old_value=_plain(old), new_value=_plain(new),
                changed_by=changed_by, changed_at=ts,
            )
        logger.info(f"[{campaign_id}] Edited {len(diffs)} field(s)")
        self._notify(updated, None)
        return OperationResult.ok(f"Campaña {updated.name} actualizada", campaign=updated)

    def delete_campaign(self, campaign_id: str, now: Optional[datetime] = None) -> OperationResult:
        campaign = self.campaigns.pop(campaign_id, None)
        if campaign is None:
            return not_found(campaign_id)
        self.creatives = [c for c in self.creatives if c.campaign_id != campaign_id]
        logger.info(f"[{campaign_id}] Deleted")

        event = TransitionEvent(
            campaign_id=campaign_id,
            from_state=campaign.state,
            to_state=campaign.state,
            occurred_at=now or datetime.now(),
            trigger=TRIGGER_DELETE,
        )
        self._notify(campaign, event)
        return OperationResult.ok(f"Campaña {campaign.name} eliminada", campaign=campaign, event=event)

    # ─────────────────────────────────────────────────────────
    # Creatives
    # ─────────────────────────────────────────────────────────

    def creatives_for(self, campaign_id: str, include_discarded: bool = False) -> List[Creative]:
        items = [c for c in self.creatives if c.campaign_id == campaign_id]
        if not include_discarded:
            items = [c for c in items if c.active]
        return sorted(items, key=lambda c: c.order)

    def attach_creative(
        self,
        campaign_id: str,
        file_name: Optional[str] = None,
        external_url: Optional[str] = None,
        user: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> OperationResult:
        campaign = self.get_campaign(campaign_id)
        if campaign is None:
            return not_found(campaign_id)

        creative_id = f"{campaign_id}-C{len(self.creatives_for(campaign_id, True)) + 1}"
        added = creative_rules.add_creative(
            campaign, self.creatives, creative_id,
            file_name=file_name, external_url=external_url, now=now,
            limit=self.config.max_active_creatives,
        )
        if not added.success:
            return added

        result = lifecycle.attach_creative(campaign, now)
        if not result.success:
            return result

        self.creatives.append(added.record)
        result.record = added.record
        return self._apply(result, user=user)

    def discard_creative(
        self,
        creative_id: str,
        user: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> OperationResult:
        idx = next((i for i, c in enumerate(self.creatives) if c.id == creative_id), None)
        if idx is None:
            return OperationResult.fail(f"Creativo no encontrado: {creative_id}")

        discarded = creative_rules.discard_creative(self.creatives[idx], now)
        if not discarded.success:
            return discarded
        self.creatives[idx] = discarded.record

        campaign_id = discarded.record.campaign_id
        campaign = self.get_campaign(campaign_id)
        if campaign is None:
            return discarded

        synced = creative_rules.sync_state_with_creatives(
            campaign, len(self.creatives_for(campaign_id)), now,
        )
        synced.record = discarded.record
        synced.message = discarded.message
        return self._apply(synced, user=user)

    # ─────────────────────────────────────────────────────────
    # Lifecycle
    # ─────────────────────────────────────────────────────────

    def activate(self, campaign_id: str, user: Optional[str] = None, now: Optional[datetime] = None) -> OperationResult:
        campaign = self.get_campaign(campaign_id)
        if campaign is None:
            return not_found(campaign_id)
        return self._apply(lifecycle.activate(campaign, now), user=user)

    def reactivate(self, campaign_id: str, user: Optional[str] = None, now: Optional[datetime] = None) -> OperationResult:
        campaign = self.get_campaign(campaign_id)
        if campaign is None:
            return not_found(campaign_id)
        return self._apply(lifecycle.reactivate(campaign, now), user=user)

    def submit_trafficker_metrics(
        self,
        data: Dict[str, Any],
        user: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> OperationResult:
        form, errors = validate_form(TraffickerMetricsForm, data)
        if form is None:
            return OperationResult.fail(MSG_VALIDATION, errors=errors)

        campaign = self.get_campaign(form.campaign_id)
        if campaign is None:
            return not_found(form.campaign_id)

        result = lifecycle.submit_trafficker_metrics(
            campaign,
            reach=form.reach,
            clicks=form.clicks,
            leads=form.leads,
            weekly_cost=form.weekly_cost,
            cost_per_lead_override=form.cost_per_lead,
            report_url=form.report_url,
            now=now,
        )
        return self._apply(result, change_type="METRICAS", user=user)

    def submit_owner_metrics(
        self,
        data: Dict[str, Any],
        user: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> OperationResult:
        form, errors = validate_form(OwnerMetricsForm, data)
        if form is None:
            return OperationResult.fail(MSG_VALIDATION, errors=errors)

        campaign = self.get_campaign(form.campaign_id)
        if campaign is None:
            return not_found(form.campaign_id)

        result = lifecycle.submit_owner_metrics(
            campaign, form.drivers_registered, form.drivers_first_trip, now,
        )
        return self._apply(result, change_type="METRICAS", user=user)

    def archive(self, campaign_id: str, user: Optional[str] = None, now: Optional[datetime] = None) -> OperationResult:
        campaign = self.get_campaign(campaign_id)
        if campaign is None:
            return not_found(campaign_id)

        result = lifecycle.archive(campaign, now)
        if not result.success:
            return result

        self.history.append(result.record)
        self._store(result, user=user)
        self._log(
            campaign_id, "ARCHIVADO", result.record.message,
            changed_by=user, changed_at=result.record.archived_at,
        )
        self._notify(result.campaign, result.event)
        return result

    # ─────────────────────────────────────────────────────────
    # Weekly ledger
    # ─────────────────────────────────────────────────────────

    def save_weekly_entry(
        self,
        data: Dict[str, Any],
        registered_by: str = "Usuario",
        now: Optional[datetime] = None,
    ) -> OperationResult:
        """Upsert by (campaign_id, iso_week): a second save for the same week replaces the first."""
        form, errors = validate_form(WeeklyLedgerForm, data)
        if form is None:
            return OperationResult.fail(MSG_VALIDATION, errors=errors)
        if form.campaign_id not in self.campaigns:
            return not_found(form.campaign_id)

        ts = now or datetime.now()
        entry = WeeklyLedgerEntry(
            id=f"{form.campaign_id}-{form.iso_week}-{int(ts.timestamp() * 1000)}",
            campaign_id=form.campaign_id,
            iso_week=form.iso_week,
            week_date=form.week_date,
            registered_at=ts,
            registered_by=registered_by,
            reach=form.reach,
            clicks=form.clicks,
            leads=form.leads,
            weekly_cost=form.weekly_cost,
            cost_per_lead=cost_per_lead(form.weekly_cost, form.leads, form.cost_per_lead),
            drivers_registered=form.drivers_registered,
            drivers_first_trip=form.drivers_first_trip,
            cost_per_driver_registered=cost_per_driver(form.weekly_cost, form.drivers_registered),
            cost_per_driver_first_trip=cost_per_driver(form.weekly_cost, form.drivers_first_trip),
        )

        idx = next((i for i, e in enumerate(self.ledger) if e.key == entry.key), None)
        if idx is None:
            self.ledger.append(entry)
        else:
            self.ledger[idx] = entry
        logger.info(f"[{entry.campaign_id}] Ledger week {entry.iso_week} {'updated' if idx is not None else 'added'}")

        self._log(
            entry.campaign_id, "METRICAS", f"Métricas de la semana {entry.iso_week}",
            changed_by=registered_by, changed_at=ts,
        )
        return OperationResult.ok(
            f"Métricas de la semana {form.iso_week} guardadas exitosamente", record=entry,
        )

    def weekly_entries(self, campaign_id: str) -> List[WeeklyLedgerEntry]:
        return [e for e in self.ledger if e.campaign_id == campaign_id]

    def delete_weekly_entry(self, entry_id: str) -> OperationResult:
        before = len(self.ledger)
        self.ledger = [e for e in self.ledger if e.id != entry_id]
        if len(self.ledger) == before:
            return OperationResult.fail(f"Registro no encontrado: {entry_id}")
        return OperationResult.ok("Registro histórico eliminado exitosamente")

    # ─────────────────────────────────────────────────────────
    # History
    # ─────────────────────────────────────────────────────────

    def import_history(self, rows: Iterable[Dict[str, Any]]) -> OperationResult:
        """Append sheet rows to the generic history; bad rows are reported in ``record.errors``."""
        return self._add_history(parse_history_rows(rows))

    def import_history_csv(self, path: str) -> OperationResult:
        """Same as import_history, reading a CSV export. Raises on a missing file or header."""
        return self._add_history(read_history_csv(path))

    def _add_history(self, report: ImportReport) -> OperationResult:
        self.history.extend(report.records)
        logger.info(f"Imported {report.imported} history rows ({len(report.errors)} skipped)")
        return OperationResult.ok(
            f"{report.imported} registros históricos importados exitosamente", record=report,
        )

    def history_for(self, campaign_id: str) -> List[ArchiveRecord]:
        return [r for r in self.history if r.campaign_id == campaign_id]

    def evolution(
        self,
        campaign_id: str,
        weeks: Optional[int] = None,
        now: Optional[datetime] = None,
        mode: Optional[str] = None,
    ) -> List[WeekBucket]:
        campaign = self.get_campaign(campaign_id)
        if campaign is None:
            raise KeyError(f"Unknown campaign: {campaign_id}")
        return weekly_evolution(
            campaign, self.history, self.ledger,
            weeks=weeks or self.config.evolution.detail_weeks,
            now=now,
            mode=mode or self.evolution_mode,
        )

    def dashboard(self, weeks: Optional[int] = None, now: Optional[datetime] = None) -> List[DashboardWeek]:
        """Cross-campaign weekly totals over the configured dashboard window."""
        return dashboard_evolution(self.history, weeks=weeks or self.config.evolution.dashboard_weeks, now=now)

    def evaluate(self, campaign_id: str) -> GlobalMetrics:
        """Totals, ROI and evaluations against the configured ideal metrics."""
        campaign = self.get_campaign(campaign_id)
        if campaign is None:
            raise KeyError(f"Unknown campaign: {campaign_id}")
        return global_metrics(campaign, self.config.ideal_metrics)

    def stats(self) -> Dict[str, int]:
        counts = {state.value: 0 for state in CampaignState}
        for c in self.campaigns.values():
            counts[c.state.value] += 1
        counts["total"] = len(self.campaigns)
        return counts

    # ─────────────────────────────────────────────────────────
    # Persistence
    # ─────────────────────────────────────────────────────────

    def load(self) -> None:
        """Replace in-memory state with what the persistence port holds."""
        self.campaigns = {
            c.id: c for c in (Campaign.from_dict(r) for r in self.persistence.load(KEY_CAMPAIGNS))
        }
        self.history = [ArchiveRecord.from_dict(r) for r in self.persistence.load(KEY_HISTORY)]
        self.ledger = [WeeklyLedgerEntry.from_dict(r) for r in self.persistence.load(KEY_WEEKLY_LEDGER)]
        logger.info(
            f"Loaded {len(self.campaigns)} campaigns, {len(self.history)} history rows, "
            f"{len(self.ledger)} ledger rows"
        )

    def persist(self) -> None:
        self.persistence.save(KEY_CAMPAIGNS, [c.to_dict() for c in self.campaigns.values()])
        self.persistence.save(KEY_HISTORY, [r.to_dict() for r in self.history])
        self.persistence.save(KEY_WEEKLY_LEDGER, [e.to_dict() for e in self.ledger])
