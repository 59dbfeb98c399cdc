"""Appointment list with staff actions (attend, cancel)."""
from datetime import date
from typing import List, Optional, Union

from clinica_dental.booking import Notifier, log_notifier
from clinica_dental.config import CANCELLATION_REASONS
from clinica_dental.errors import GatewayError
from clinica_dental.logging_config import get_logger
from clinica_dental.models import Appointment, AppointmentStatus

logger = get_logger(__name__)

_UNSET = object()


class AppointmentBoard:
    """
    Snapshot of the appointment list for a date (and optionally a doctor).

    Status changes always go through the backend and are followed by a
    reload; the local list is never edited in place.
    """

    def __init__(self, gateway, notifier: Notifier = log_notifier):
        self.gateway = gateway
        self.notify = notifier
        self.appointments: List[Appointment] = []
        self.fecha: Optional[str] = date.today().isoformat()
        self.doctor_id: Optional[str] = None
        self.loading = False

    def reload(self, fecha: Union[date, str, None] = _UNSET, doctor_id: Optional[str] = _UNSET) -> List[Appointment]:
        """
        Reload the list, optionally changing the filters.

        Pass ``fecha=None`` to list every date. A failed load leaves an
        empty list.
        """
        if fecha is not _UNSET:
            self.fecha = fecha.isoformat() if isinstance(fecha, date) else fecha
        if doctor_id is not _UNSET:
            self.doctor_id = doctor_id

        try:
            self.appointments = self.gateway.list_appointments(fecha=self.fecha, doctor_id=self.doctor_id)
        except GatewayError as e:
            logger.error("appointments_load_failed", fecha=self.fecha, error=str(e))
            self.appointments = []
        return self.appointments

    def search(self, term: str) -> List[Appointment]:
        """Case-insensitive match on patient, doctor or service name."""
        needle = (term or "").lower()
        return [
            a for a in self.appointments
            if needle in a.paciente_nombre.lower()
            or needle in a.doctor_nombre.lower()
            or needle in a.servicio_nombre.lower()
        ]

    def get(self, appointment_id: str) -> Optional[Appointment]:
        return next((a for a in self.appointments if a.id == appointment_id), None)

    def _change_status(
        self,
        appointment_id: str,
        status: AppointmentStatus,
        reason: Optional[str],
        success_message: str,
        failure_message: str,
    ) -> bool:
        if self.loading:
            logger.warning("status_change_refused_busy", appointment_id=appointment_id)
            return False

        self.loading = True
        try:
            try:
                self.gateway.update_appointment_status(appointment_id, status, reason)
            except GatewayError as e:
                logger.error(
                    "status_change_failed",
                    appointment_id=appointment_id,
                    estado=status.value,
                    error=str(e),
                )
                self.notify("error", failure_message)
                return False

            self.reload()
            self.notify("success", success_message)
            return True
        finally:
            self.loading = False

    def cancel(self, appointment_id: str, reason: Optional[str] = None) -> bool:
        return self._change_status(
            appointment_id,
            AppointmentStatus.CANCELLED,
            reason or None,
            "Cita cancelada exitosamente",
            "Error al cancelar la cita",
        )

    def attend(self, appointment_id: str) -> bool:
        return self._change_status(
            appointment_id,
            AppointmentStatus.COMPLETED,
            None,
            "Cita marcada como atendida",
            "Error al marcar la cita como atendida",
        )


class CancellationDialog:
    """Confirm-cancel dialog: pick an optional reason, then confirm."""

    def __init__(self, board: AppointmentBoard, reasons: Optional[List[str]] = None):
        self.board = board
        self.reasons = list(reasons if reasons is not None else CANCELLATION_REASONS)
        self.appointment: Optional[Appointment] = None
        self.reason = ""

    @property
    def is_open(self) -> bool:
        return self.appointment is not None

    def open(self, appointment: Appointment):
        self.appointment = appointment
        self.reason = ""

    def choose_reason(self, reason: str):
        self.reason = reason or ""

    def close(self):
        self.appointment = None
        self.reason = ""

    def confirm(self) -> bool:
        """Cancel the appointment; the dialog closes only on success."""
        if self.appointment is None:
            return False
        if self.board.cancel(self.appointment.id, self.reason or None):
            self.close()
            return True
        return False
