"""
Task routing - which work item each campaign is waiting on, and for whom.

The backend owns the tasks; this side only reads the open ones and, after a
campaign changes, reconciles them against what the campaign now needs:

    Pendiente         -> ENVIAR_CREATIVO (Marketing)
    Creativo Enviado  -> ACTIVAR_CAMPANA (Marketing)
    Activa            -> SUBIR_METRICAS_TRAFFICKER (Trafficker) while trafficker metrics are missing
                         SUBIR_METRICAS_DUENO (Dueño) while owner metrics are missing
                         ARCHIVAR_CAMPANA (Dueño) once both are in
    Archivada         -> nothing

Task types travel as plain strings; unknown ones are shown as-is.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from itertools import count
from typing import Dict, Iterable, List, Optional, Protocol, Tuple, Union

from siscoca_core.catalog import CampaignState
from siscoca_core.logging_config import setup_logging
from siscoca_core.metrics import has_owner_metrics, has_trafficker_metrics
from siscoca_core.models import TRIGGER_DELETE, Campaign, OperationResult, TransitionEvent

from .roles import Role, capabilities

logger = setup_logging(__name__)


class TaskType(str, Enum):
    CREATE_CAMPAIGN = "CREAR_CAMPANA"
    SEND_CREATIVE = "ENVIAR_CREATIVO"
    ACTIVATE_CAMPAIGN = "ACTIVAR_CAMPANA"
    UPLOAD_TRAFFICKER_METRICS = "SUBIR_METRICAS_TRAFFICKER"
    UPLOAD_OWNER_METRICS = "SUBIR_METRICAS_DUENO"
    ARCHIVE_CAMPAIGN = "ARCHIVAR_CAMPANA"


@dataclass(frozen=True)
class TaskTypeInfo:
    display_name: str
    responsible: Role
    campaign_state: Optional[CampaignState]
    description: str  # formatted with the campaign name


TASK_TYPES: Dict[TaskType, TaskTypeInfo] = {
    TaskType.CREATE_CAMPAIGN: TaskTypeInfo(
        "Crear Campaña", Role.OWNER, None, "Crear nueva campaña"),
    TaskType.SEND_CREATIVE: TaskTypeInfo(
        "Enviar Creativo", Role.MARKETING, CampaignState.PENDING,
        "Enviar el creativo para: {name}"),
    TaskType.ACTIVATE_CAMPAIGN: TaskTypeInfo(
        "Activar Campaña", Role.MARKETING, CampaignState.CREATIVE_SUBMITTED,
        "Activar la campaña: {name} - El creativo ya está disponible"),
    TaskType.UPLOAD_TRAFFICKER_METRICS: TaskTypeInfo(
        "Subir Métricas Trafficker", Role.TRAFFICKER, CampaignState.ACTIVE,
        "Subir métricas de trafficker para: {name} (Alcance, Clics, Leads, Costo)"),
    TaskType.UPLOAD_OWNER_METRICS: TaskTypeInfo(
        "Subir Métricas Dueño", Role.OWNER, CampaignState.ACTIVE,
        "Subir métricas de conductores para: {name} (Registrados, Primer Viaje)"),
    TaskType.ARCHIVE_CAMPAIGN: TaskTypeInfo(
        "Archivar Campaña", Role.OWNER, CampaignState.ACTIVE,
        "Archivar la campaña: {name} - Las métricas están completas"),
}

DEFAULT_ASSIGNEES: Dict[Role, str] = {
    Role.MARKETING: "Ariana de la Cruz",
    Role.TRAFFICKER: "Rayedel Ortega",
}


def task_type_label(task_type: Union[str, TaskType]) -> str:
    """Display name for a task type; unknown types are returned unchanged."""
    try:
        return TASK_TYPES[TaskType(task_type)].display_name
    except ValueError:
        return str(task_type)


@dataclass(frozen=True)
class Task:
    id: str
    task_type: str
    campaign_id: str
    campaign_name: str
    assignee: str
    responsible_role: Role
    description: str
    created_at: datetime
    completed: bool = False
    urgent: bool = False
    completed_at: Optional[datetime] = None

    @property
    def label(self) -> str:
        return task_type_label(self.task_type)


def expected_tasks(campaign: Campaign) -> List[TaskType]:
    """Task types the campaign is waiting on in its current state."""
    state = campaign.state
    if state == CampaignState.PENDING:
        return [TaskType.SEND_CREATIVE]
    if state == CampaignState.CREATIVE_SUBMITTED:
        return [TaskType.ACTIVATE_CAMPAIGN]
    if state == CampaignState.ACTIVE:
        trafficker = has_trafficker_metrics(campaign)
        owner = has_owner_metrics(campaign)
        if trafficker and owner:
            return [TaskType.ARCHIVE_CAMPAIGN]
        missing = []
        if not trafficker:
            missing.append(TaskType.UPLOAD_TRAFFICKER_METRICS)
        if not owner:
            missing.append(TaskType.UPLOAD_OWNER_METRICS)
        return missing
    return []


def assignee_for(
    campaign: Campaign,
    task_type: TaskType,
    assignees: Optional[Dict[Role, str]] = None,
) -> str:
    """Marketing and trafficker tasks go to fixed people; owner tasks go to the campaign owner."""
    role = TASK_TYPES[task_type].responsible
    table = DEFAULT_ASSIGNEES if assignees is None else assignees
    return table.get(role) or campaign.owner_name


def describe_task(campaign: Campaign, task_type: TaskType) -> str:
    return TASK_TYPES[task_type].description.format(name=campaign.name)


class TaskGateway(Protocol):
    """Backend side of tasks."""

    def open_tasks(self, campaign_id: Optional[str] = None) -> List[Task]: ...

    def create_task(self, task: Task) -> Task: ...

    def complete_task(self, task_id: str) -> None: ...

    def reassign_task(self, task_id: str, assignee: str) -> None: ...


class InMemoryTaskGateway:
    """Task store for local mode and tests."""

    def __init__(self) -> None:
        self.tasks: Dict[str, Task] = {}
        self._ids = count(1)

    def open_tasks(self, campaign_id: Optional[str] = None) -> List[Task]:
        return [
            t for t in self.tasks.values()
            if not t.completed and (campaign_id is None or t.campaign_id == campaign_id)
        ]

    def create_task(self, task: Task) -> Task:
        stored = task if task.id else replace(task, id=str(next(self._ids)))
        self.tasks[stored.id] = stored
        return stored

    def complete_task(self, task_id: str) -> None:
        task = self.tasks.get(task_id)
        if task is None:
            raise KeyError(f"Tarea no encontrada: {task_id}")
        self.tasks[task_id] = replace(task, completed=True, completed_at=datetime.now())

    def reassign_task(self, task_id: str, assignee: str) -> None:
        task = self.tasks.get(task_id)
        if task is None:
            raise KeyError(f"Tarea no encontrada: {task_id}")
        self.tasks[task_id] = replace(task, assignee=assignee)


class TaskRouter:
    """
    Campaign listener that keeps open tasks in line with expected_tasks().

    Register with ``CampaignService.add_listener(router)``.
    """

    def __init__(self, gateway: TaskGateway, assignees: Optional[Dict[Role, str]] = None):
        self.gateway = gateway
        self.assignees = assignees

    @classmethod
    def from_config(cls, gateway: TaskGateway, assignees: Dict[str, str]) -> "TaskRouter":
        """Build from AppConfig.assignees (role name -> person)."""
        return cls(gateway, {Role.from_string(k): v for k, v in assignees.items()})

    def __call__(self, campaign: Campaign, event: Optional[TransitionEvent] = None) -> None:
        if event is not None and event.trigger == TRIGGER_DELETE:
            self.close_all(campaign.id)
            return
        if event is not None:
            logger.info(
                f"[{campaign.id}] Routing after {event.from_state.value} -> {event.to_state.value}"
            )
        self.sync(campaign)

    def close_all(self, campaign_id: str) -> List[Task]:
        """Complete every open task of a campaign that no longer exists."""
        closed = self.gateway.open_tasks(campaign_id)
        for task in closed:
            self.gateway.complete_task(task.id)
        if closed:
            logger.info(f"[{campaign_id}] Campaign deleted, closed {len(closed)} task(s)")
        return closed

    def sync(self, campaign: Campaign, now: Optional[datetime] = None) -> Tuple[List[Task], List[Task]]:
        """
        Close open tasks the campaign no longer needs and open the missing ones.

        Returns:
            (opened, closed)
        """
        wanted = {t.value for t in expected_tasks(campaign)}
        open_now = self.gateway.open_tasks(campaign.id)

        closed = [t for t in open_now if t.task_type not in wanted]
        for task in closed:
            self.gateway.complete_task(task.id)

        present = {t.task_type for t in open_now}
        opened = []
        for task_type in expected_tasks(campaign):
            if task_type.value in present:
                continue
            info = TASK_TYPES[task_type]
            opened.append(self.gateway.create_task(Task(
                id="",
                task_type=task_type.value,
                campaign_id=campaign.id,
                campaign_name=campaign.name,
                assignee=assignee_for(campaign, task_type, self.assignees),
                responsible_role=info.responsible,
                description=describe_task(campaign, task_type),
                created_at=now or datetime.now(),
            )))

        if opened or closed:
            logger.info(f"[{campaign.id}] Tasks opened={len(opened)} closed={len(closed)}")
        return opened, closed

    def derive(self, task: Task, new_assignee: str, role: Union[str, Role]) -> OperationResult:
        """Hand a task over to someone else."""
        if not capabilities(role).can_derive_task:
            return OperationResult.fail("No tienes permiso para derivar tareas")
        if not new_assignee.strip():
            return OperationResult.fail("Selecciona a quién derivar la tarea")
        self.gateway.reassign_task(task.id, new_assignee.strip())
        logger.info(f"Task {task.id} derived from {task.assignee} to {new_assignee.strip()}")
        return OperationResult.ok("Tarea derivada correctamente")


def visible_tasks(tasks: Iterable[Task], username: str, role: Union[str, Role]) -> List[Task]:
    """Open tasks a user should see: everything for Admin, else own role or own name."""
    role = Role.from_string(role)
    open_tasks = [t for t in tasks if not t.completed]
    if capabilities(role).can_view_all_tasks:
        return open_tasks
    return [t for t in open_tasks if t.responsible_role == role or t.assignee == username]
