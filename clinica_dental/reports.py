"""Operational reports over appointments and services.

Two sources produce the same ``Report``: local aggregation of the raw
appointment list, or the backend's report endpoint. Either way per-service
rows are ordered by attended count (descending) and per-month rows
chronologically.
"""
import json
import math
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from pydantic import Field

from clinica_dental.config import MAIN_BRANCH
from clinica_dental.errors import GatewayError
from clinica_dental.loaders import fetch_all
from clinica_dental.logging_config import get_logger
from clinica_dental.models import Appointment, AppointmentStatus, Service, WireModel
from clinica_dental.specialty import classify_service, specialties

logger = get_logger(__name__)

MONTH_NAMES = (
    "enero", "febrero", "marzo", "abril", "mayo", "junio",
    "julio", "agosto", "septiembre", "octubre", "noviembre", "diciembre",
)


class Audience(str, Enum):
    """Audience guessed from the appointment hour (not a patient attribute)."""
    ADULTS = "adultos"
    CHILDREN = "niños"


# inclusive hour windows
AUDIENCE_HOURS = {
    Audience.ADULTS: (9, 17),
    Audience.CHILDREN: (15, 18),
}


class ReportFilters(WireModel):
    sucursal: Optional[str] = None
    tipo_servicio: Optional[str] = Field(default=None, alias="tipoServicio")
    publico_objetivo: Optional[Audience] = Field(default=None, alias="publicoObjetivo")
    fecha_inicio: Optional[date] = Field(default=None, alias="fechaInicio")
    fecha_fin: Optional[date] = Field(default=None, alias="fechaFin")


class AppointmentStats(WireModel):
    atendidas: int = 0
    canceladas: int = 0
    total: int = 0
    porcentaje_atendidas: int = Field(default=0, alias="porcentajeAtendidas")


class ServiceStats(WireModel):
    servicio: str
    especializacion: str = ""
    cantidad: int = 0
    ingresos: float = 0


class MonthlyStats(WireModel):
    clave: str = Field(..., description="YYYY-MM")
    mes: str = ""
    atendidas: int = 0
    canceladas: int = 0
    ingresos: float = 0


class Report(WireModel):
    citas: AppointmentStats = Field(default_factory=AppointmentStats)
    servicios: List[ServiceStats] = Field(default_factory=list)
    mensuales: List[MonthlyStats] = Field(default_factory=list)


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def month_label(year: int, month: int) -> str:
    """Spanish month label, e.g. ``mayo de 2025``."""
    return f"{MONTH_NAMES[month - 1]} de {year}"


def _hour(appt: Appointment) -> int:
    return int(appt.hora.split(":")[0])


def apply_filters(
    appointments: Iterable[Appointment],
    services: Iterable[Service],
    filters: ReportFilters,
) -> List[Appointment]:
    """
    Appointments matching every filter that is set.

    - sucursal: all appointments belong to the main branch
    - tipo_servicio: the service's name or its specialty label
    - publico_objetivo: appointment hour inside the audience window
    - fecha_inicio / fecha_fin: inclusive date range
    """
    by_id = {s.id: s for s in services}
    kept = []

    for appt in appointments:
        if filters.sucursal and filters.sucursal != MAIN_BRANCH:
            continue

        if filters.tipo_servicio:
            service = by_id.get(appt.servicio_id)
            if service is None:
                continue
            label = service.especialidad or classify_service(service.nombre)
            if filters.tipo_servicio not in (service.nombre, label):
                continue

        if filters.publico_objetivo:
            low, high = AUDIENCE_HOURS[filters.publico_objetivo]
            if not low <= _hour(appt) <= high:
                continue

        if filters.fecha_inicio and appt.fecha < filters.fecha_inicio:
            continue
        if filters.fecha_fin and appt.fecha > filters.fecha_fin:
            continue

        kept.append(appt)

    return kept


def aggregate_report(
    appointments: Iterable[Appointment],
    services: Iterable[Service],
    filters: Optional[ReportFilters] = None,
) -> Report:
    """
    Fold appointments into summary, per-service and per-month statistics.

    Only attended (completed) appointments whose service is known count
    towards per-service rows and revenue.
    """
    services = list(services)
    by_id = {s.id: s for s in services}
    selected = apply_filters(appointments, services, filters or ReportFilters())

    attended = [a for a in selected if a.estado == AppointmentStatus.COMPLETED]
    cancelled = [a for a in selected if a.estado == AppointmentStatus.CANCELLED]
    total = len(selected)
    stats = AppointmentStats(
        atendidas=len(attended),
        canceladas=len(cancelled),
        total=total,
        porcentaje_atendidas=round_half_up(len(attended) / total * 100) if total else 0,
    )

    per_service: Dict[str, ServiceStats] = {}
    for appt in attended:
        service = by_id.get(appt.servicio_id)
        if service is None:
            continue
        row = per_service.setdefault(service.nombre, ServiceStats(
            servicio=service.nombre,
            especializacion=service.especialidad or classify_service(service.nombre),
        ))
        row.cantidad += 1
        row.ingresos += service.precio

    per_month: Dict[str, MonthlyStats] = {}
    for appt in selected:
        key = f"{appt.fecha.year}-{appt.fecha.month:02d}"
        row = per_month.setdefault(key, MonthlyStats(
            clave=key,
            mes=month_label(appt.fecha.year, appt.fecha.month),
        ))
        if appt.estado == AppointmentStatus.COMPLETED:
            service = by_id.get(appt.servicio_id)
            row.atendidas += 1
            row.ingresos += service.precio if service else 0
        elif appt.estado == AppointmentStatus.CANCELLED:
            row.canceladas += 1

    return _ordered(Report(
        citas=stats,
        servicios=list(per_service.values()),
        mensuales=list(per_month.values()),
    ))


def _ordered(report: Report) -> Report:
    # sorted() is stable: equal counts keep first-seen order
    report.servicios = sorted(report.servicios, key=lambda r: r.cantidad, reverse=True)
    report.mensuales = sorted(report.mensuales, key=lambda r: r.clave)
    return report


def export_report(
    report: Report,
    filters: ReportFilters,
    directory: str = ".",
    now: Optional[datetime] = None,
) -> Path:
    """
    Write the report as ``reporte-clinica-YYYY-MM-DD.json`` in ``directory``.

    Returns:
        Path of the written file
    """
    now = now or datetime.now()
    path = Path(directory) / f"reporte-clinica-{now.date().isoformat()}.json"
    path.parent.mkdir(parents=True, exist_ok=True)

    filtros = filters.model_dump(mode="json", by_alias=True)
    snapshot = {
        "filtros": {k: (v if v is not None else "") for k, v in filtros.items()},
        "estadisticas": {
            "citas": report.citas.to_wire(),
            "servicios": [row.to_wire() for row in report.servicios],
            "mensuales": [row.to_wire() for row in report.mensuales],
        },
        "fechaGeneracion": now.isoformat(),
    }

    with open(path, "w", encoding="utf-8") as f:
        json.dump(snapshot, f, indent=2, ensure_ascii=False)

    logger.info("report_exported", path=str(path))
    return path


class ReportService:
    """Build reports from the configured source."""

    def __init__(self, gateway, config):
        self.gateway = gateway
        self.config = config

    def load_filter_options(self) -> Dict[str, List[str]]:
        """Branch names, service names and specialty labels for the filter pickers."""
        data = fetch_all({
            "branches": self.gateway.list_branches,
            "services": self.gateway.list_services,
        })
        return {
            "sucursales": [b.nombre for b in data["branches"]],
            "servicios": [s.nombre for s in data["services"]],
            "especialidades": specialties(data["services"]),
        }

    def build(self, filters: Optional[ReportFilters] = None) -> Report:
        """
        Report for ``filters``; a failed load yields an empty report.
        """
        filters = filters or ReportFilters()

        if self.config.report_source == "backend":
            try:
                return _ordered(self.gateway.get_report(filters))
            except GatewayError as e:
                logger.error("report_load_failed", source="backend", error=str(e))
                return Report()

        data = fetch_all({
            "appointments": self.gateway.list_appointments,
            "services": self.gateway.list_services,
        })
        return aggregate_report(data["appointments"], data["services"], filters)
