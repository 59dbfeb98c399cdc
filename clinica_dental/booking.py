"""Appointment booking form as an explicit state machine.

The form is an immutable value; ``transition(form, event, value)`` returns
the next form. Rules:

- changing the doctor or the date drops the chosen slot and the slots
  resolved for the previous doctor/date
- a slot can only be chosen once both doctor and date are set, and only
  among the slots resolved for that pair
- submission needs patient name, doctor, service, date and slot
- the date must be a weekday (Mon-Fri) no earlier than today
- notes are optional and capped at NOTES_MAX_LENGTH characters
"""
from dataclasses import dataclass, field, replace
from datetime import date
from enum import Enum
from typing import Callable, Optional, Tuple

from clinica_dental.availability import AvailabilityResolver
from clinica_dental.config import NOTES_MAX_LENGTH, WORKDAYS
from clinica_dental.errors import BookingValidationError, GatewayError
from clinica_dental.loaders import fetch_all
from clinica_dental.logging_config import get_logger
from clinica_dental.models import Appointment, BookingRequest

logger = get_logger(__name__)

# notifier(level, message) with level in {"success", "error", "info"}
Notifier = Callable[[str, str], None]


def log_notifier(level: str, message: str) -> None:
    """Default notifier: write the user-facing message to the log."""
    if level == "error":
        logger.error("notify", message=message)
    else:
        logger.info("notify", level=level, message=message)


class BookingStep(str, Enum):
    """How far along the dependent selections the form is."""
    PATIENT_NAME_ENTRY = "patient_name_entry"
    DOCTOR_SELECTED = "doctor_selected"
    DATE_SELECTED = "date_selected"
    SLOTS_RESOLVED = "slots_resolved"
    SERVICE_SELECTED = "service_selected"
    SLOT_SELECTED = "slot_selected"
    READY_TO_SUBMIT = "ready_to_submit"


class SlotView(str, Enum):
    """What the slot picker shows."""
    HIDDEN = "hidden"        # doctor or date missing
    LOADING = "loading"      # resolution in flight
    EMPTY = "empty"          # resolved, nothing offerable
    AVAILABLE = "available"


class FormEvent(str, Enum):
    SET_PATIENT = "set_patient"
    SELECT_DOCTOR = "select_doctor"
    SELECT_DATE = "select_date"
    SLOTS_RESOLVED = "slots_resolved"
    SELECT_SERVICE = "select_service"
    SELECT_SLOT = "select_slot"
    SET_NOTES = "set_notes"
    CLEAR = "clear"


@dataclass(frozen=True)
class BookingForm:
    paciente_nombre: str = ""
    doctor_id: str = ""
    servicio_id: str = ""
    fecha: str = ""  # YYYY-MM-DD
    hora: str = ""
    notas: str = ""
    # None until resolved for the current doctor/date
    slots: Optional[Tuple[str, ...]] = field(default=None)


EMPTY_FORM = BookingForm()


def slot_selection_enabled(form: BookingForm) -> bool:
    return bool(form.doctor_id and form.fecha)


def slot_view(form: BookingForm) -> SlotView:
    if not slot_selection_enabled(form):
        return SlotView.HIDDEN
    if form.slots is None:
        return SlotView.LOADING
    return SlotView.AVAILABLE if form.slots else SlotView.EMPTY


def can_submit(form: BookingForm) -> bool:
    """True iff every required field is non-empty."""
    return all((
        form.paciente_nombre.strip(),
        form.doctor_id,
        form.servicio_id,
        form.fecha,
        form.hora,
    ))


def current_step(form: BookingForm) -> BookingStep:
    if can_submit(form):
        return BookingStep.READY_TO_SUBMIT
    if form.hora:
        return BookingStep.SLOT_SELECTED
    if form.servicio_id:
        return BookingStep.SERVICE_SELECTED
    if slot_selection_enabled(form) and form.slots is not None:
        return BookingStep.SLOTS_RESOLVED
    if form.fecha and form.doctor_id:
        return BookingStep.DATE_SELECTED
    if form.doctor_id:
        return BookingStep.DOCTOR_SELECTED
    return BookingStep.PATIENT_NAME_ENTRY


def _validate_date(value: str, today: Optional[date] = None) -> str:
    if not value:
        return ""
    try:
        day = date.fromisoformat(value)
    except ValueError as e:
        raise BookingValidationError(f"Invalid date: {value!r} (use YYYY-MM-DD)") from e
    if day < (today or date.today()):
        raise BookingValidationError(f"Date {value} is in the past")
    if day.weekday() not in WORKDAYS:
        raise BookingValidationError(f"Date {value} is not a working day (Monday to Friday)")
    return day.isoformat()


def transition(
    form: BookingForm,
    event: FormEvent,
    value=None,
    today: Optional[date] = None,
) -> BookingForm:
    """
    Apply ``event`` to ``form`` and return the resulting form.

    ``SLOTS_RESOLVED`` takes ``(doctor_id, fecha, slots)`` and is ignored
    when the doctor or date changed since the resolution started.
    ``today`` is the reference date for rejecting past dates (defaults to
    the current date).

    Raises:
        BookingValidationError: Slot chosen while the picker is disabled or
            not among the resolved slots, or a malformed date, a past date
            or a weekend date
    """
    if event == FormEvent.CLEAR:
        return EMPTY_FORM

    if event == FormEvent.SET_PATIENT:
        return replace(form, paciente_nombre=value or "")

    if event == FormEvent.SELECT_DOCTOR:
        value = value or ""
        if value == form.doctor_id:
            return form
        return replace(form, doctor_id=value, hora="", slots=None)

    if event == FormEvent.SELECT_DATE:
        value = _validate_date(value or "", today)
        if value == form.fecha:
            return form
        return replace(form, fecha=value, hora="", slots=None)

    if event == FormEvent.SLOTS_RESOLVED:
        doctor_id, fecha, slots = value
        if (doctor_id, fecha) != (form.doctor_id, form.fecha):
            return form
        slots = tuple(slots)
        hora = form.hora if form.hora in slots else ""
        return replace(form, slots=slots, hora=hora)

    if event == FormEvent.SELECT_SERVICE:
        return replace(form, servicio_id=value or "")

    if event == FormEvent.SELECT_SLOT:
        value = value or ""
        if value and not slot_selection_enabled(form):
            raise BookingValidationError("Select a doctor and a date before choosing a time")
        if value and form.slots is not None and value not in form.slots:
            raise BookingValidationError(f"Time {value} is not available")
        return replace(form, hora=value)

    if event == FormEvent.SET_NOTES:
        return replace(form, notas=(value or "")[:NOTES_MAX_LENGTH])

    raise ValueError(f"Unknown form event: {event}")


def to_request(form: BookingForm) -> BookingRequest:
    """Booking request from a complete form."""
    if not can_submit(form):
        raise BookingValidationError(
            "Patient name, doctor, service, date and time are required"
        )
    return BookingRequest(
        paciente_nombre=form.paciente_nombre.strip(),
        doctor_id=form.doctor_id,
        servicio_id=form.servicio_id,
        fecha=date.fromisoformat(form.fecha),
        hora=form.hora,
        notas=form.notas or None,
    )


class BookingController:
    """
    Drives a ``BookingForm`` against the backend.

    Owns the form, the doctor/service pick lists and the availability
    resolver. Reference-data failures degrade to empty lists; a failed
    submit leaves the form as the user left it.
    """

    def __init__(
        self,
        gateway,
        notifier: Notifier = log_notifier,
        clock: Callable[[], date] = date.today,
    ):
        self.gateway = gateway
        self.notify = notifier
        self.clock = clock
        self.resolver = AvailabilityResolver(gateway)
        self.form = EMPTY_FORM
        self.doctors = []
        self.services = []
        self.loading = False

    # ------------------------------------------------------------ reference data

    def load_reference_data(self):
        data = fetch_all({
            "doctors": self.gateway.list_doctors,
            "services": self.gateway.list_services,
        })
        self.doctors = [d for d in data["doctors"] if d.activo]
        self.services = [s for s in data["services"] if s.activo]

    @property
    def selected_doctor(self):
        return next((d for d in self.doctors if d.id == self.form.doctor_id), None)

    @property
    def slot_view(self) -> SlotView:
        return slot_view(self.form)

    @property
    def can_submit(self) -> bool:
        return can_submit(self.form) and not self.loading

    @property
    def step(self) -> BookingStep:
        return current_step(self.form)

    # ------------------------------------------------------------ field changes

    def dispatch(self, event: FormEvent, value=None) -> BookingForm:
        self.form = transition(self.form, event, value, today=self.clock())
        return self.form

    def set_patient_name(self, name: str):
        self.dispatch(FormEvent.SET_PATIENT, name)

    def select_doctor(self, doctor_id: str):
        self.dispatch(FormEvent.SELECT_DOCTOR, doctor_id)
        self.refresh_availability()

    def select_date(self, fecha):
        if isinstance(fecha, date):
            fecha = fecha.isoformat()
        self.dispatch(FormEvent.SELECT_DATE, fecha)
        self.refresh_availability()

    def select_service(self, servicio_id: str):
        self.dispatch(FormEvent.SELECT_SERVICE, servicio_id)

    def select_slot(self, hora: str):
        self.dispatch(FormEvent.SELECT_SLOT, hora)

    def set_notes(self, notas: str):
        self.dispatch(FormEvent.SET_NOTES, notas)

    def refresh_availability(self):
        """Re-resolve slots for the current doctor and date (if both are set)."""
        if not slot_selection_enabled(self.form):
            self.resolver.invalidate()
            return

        doctor_id, fecha = self.form.doctor_id, self.form.fecha
        slots = self.resolver.resolve(doctor_id, fecha)
        if slots is not None:
            self.dispatch(FormEvent.SLOTS_RESOLVED, (doctor_id, fecha, slots))

    # ------------------------------------------------------------ submit / clear

    def clear(self):
        self.form = EMPTY_FORM
        self.resolver.invalidate()

    def submit(self) -> Optional[Appointment]:
        """
        Create the appointment.

        Returns:
            The created appointment, or None when validation or the backend
            call failed (the form is left untouched in that case)
        """
        try:
            booking = to_request(self.form)
        except BookingValidationError as e:
            self.notify("error", str(e))
            return None

        self.loading = True
        try:
            created = self.gateway.create_appointment(booking)
        except GatewayError as e:
            logger.error("appointment_create_failed", status=e.status, error=str(e))
            self.notify("error", "Error al agendar la cita")
            return None
        finally:
            self.loading = False

        self.clear()
        self.notify("success", "Cita agendada exitosamente")
        return created
