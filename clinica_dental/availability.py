"""Availability of a doctor's slots on a given date.

Available slots are always the doctor's full slot list minus the hours
already held by active appointments, in the full list's order.
"""
import threading
from datetime import date
from typing import Iterable, List, Optional, Tuple

from clinica_dental.errors import GatewayError
from clinica_dental.logging_config import get_logger
from clinica_dental.models import Appointment, AvailabilitySnapshot, Doctor

logger = get_logger(__name__)


def compute_available(full: Iterable[str], occupied: Iterable[str]) -> List[str]:
    """
    Slots of ``full`` not present in ``occupied``, order preserved.

    Example:
        >>> compute_available(["08:00", "08:30", "09:00"], ["08:30"])
        ['08:00', '09:00']
    """
    taken = set(occupied)
    return [slot for slot in full if slot not in taken]


def build_snapshot(
    doctor: Doctor,
    fecha: date,
    appointments: Iterable[Appointment],
) -> AvailabilitySnapshot:
    """Snapshot for ``doctor`` on ``fecha`` from the day's appointments."""
    occupied = []
    for appt in appointments:
        if appt.doctor_id != doctor.id or appt.fecha != fecha or not appt.is_active:
            continue
        if appt.hora in doctor.horario and appt.hora not in occupied:
            occupied.append(appt.hora)

    return AvailabilitySnapshot(
        doctor_id=doctor.id,
        fecha=fecha,
        doctor_nombre=doctor.nombre,
        especialidad=doctor.especialidad,
        horario_completo=list(doctor.horario),
        horas_ocupadas=occupied,
        horarios_disponibles=compute_available(doctor.horario, occupied),
    )


def offerable_slots(snapshot: AvailabilitySnapshot) -> List[str]:
    """
    Slots to offer from a backend snapshot.

    Recomputed from the full and occupied lists whenever the full list is
    present; ``horariosDisponibles`` is only used when it is not.
    """
    if snapshot.horario_completo:
        return compute_available(snapshot.horario_completo, snapshot.horas_ocupadas)
    return list(snapshot.horarios_disponibles)


class AvailabilityResolver:
    """
    Resolve offerable slots for the currently selected doctor and date.

    Every ``begin`` supersedes earlier resolutions: a result arriving for an
    older token is discarded, so a slow answer for a previous doctor or date
    never replaces the newer one.
    """

    def __init__(self, gateway):
        self.gateway = gateway
        self._lock = threading.Lock()
        self._generation = 0
        self.key: Optional[Tuple[str, str]] = None
        # None while a resolution is in flight
        self.slots: Optional[List[str]] = None

    @property
    def loading(self) -> bool:
        return self.key is not None and self.slots is None

    def begin(self, doctor_id: str, fecha: str) -> int:
        with self._lock:
            self._generation += 1
            self.key = (doctor_id, fecha)
            self.slots = None
            return self._generation

    def complete(self, token: int, slots: List[str]) -> bool:
        """Publish ``slots`` if ``token`` is still the newest; report whether it was."""
        with self._lock:
            if token != self._generation:
                logger.debug("stale_availability_discarded", token=token, current=self._generation)
                return False
            self.slots = list(slots)
            return True

    def invalidate(self):
        with self._lock:
            self._generation += 1
            self.key = None
            self.slots = None

    def fetch(self, doctor_id: str, fecha: str) -> List[str]:
        """Ask the backend; any failure degrades to no slots."""
        try:
            snapshot = self.gateway.get_availability(doctor_id, fecha)
        except GatewayError as e:
            logger.error("availability_load_failed", doctor_id=doctor_id, fecha=fecha, error=str(e))
            return []
        return offerable_slots(snapshot)

    def resolve(self, doctor_id: str, fecha: str) -> Optional[List[str]]:
        """
        Start a fresh resolution and wait for it.

        Returns:
            The slots, or None if a newer resolution superseded this one
        """
        token = self.begin(doctor_id, fecha)
        slots = self.fetch(doctor_id, fecha)
        if self.complete(token, slots):
            return slots
        return None
