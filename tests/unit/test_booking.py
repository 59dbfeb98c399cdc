"""Tests for the booking form state machine and its controller."""
from datetime import date

import pytest

from clinica_dental.booking import (
    EMPTY_FORM,
    BookingController,
    BookingStep,
    FormEvent,
    SlotView,
    can_submit,
    current_step,
    slot_view,
    to_request,
    transition,
)
from clinica_dental.errors import BookingValidationError, GatewayError
from clinica_dental.models import AvailabilitySnapshot

# Thursday; 2025-05-12 is the following Monday
TODAY = date(2025, 5, 8)


def step(form, event, value=None):
    return transition(form, event, value, today=TODAY)


def _resolved(form, slots):
    return step(form, FormEvent.SLOTS_RESOLVED, (form.doctor_id, form.fecha, slots))


@pytest.fixture
def ready_form():
    form = step(EMPTY_FORM, FormEvent.SET_PATIENT, "Juan Pérez")
    form = step(form, FormEvent.SELECT_DOCTOR, "doc-1")
    form = step(form, FormEvent.SELECT_DATE, "2025-05-12")
    form = _resolved(form, ["08:00", "08:30"])
    form = step(form, FormEvent.SELECT_SERVICE, "srv-1")
    return step(form, FormEvent.SELECT_SLOT, "08:30")


class TestTransitions:

    def test_slot_picker_hidden_until_doctor_and_date(self):
        form = step(EMPTY_FORM, FormEvent.SELECT_DOCTOR, "doc-1")
        assert slot_view(form) == SlotView.HIDDEN

        form = step(form, FormEvent.SELECT_DATE, "2025-05-12")
        assert slot_view(form) == SlotView.LOADING

    def test_choosing_slot_without_doctor_is_rejected(self):
        form = step(EMPTY_FORM, FormEvent.SELECT_DATE, "2025-05-12")
        with pytest.raises(BookingValidationError):
            step(form, FormEvent.SELECT_SLOT, "08:00")

    def test_slot_must_be_among_resolved(self):
        form = step(EMPTY_FORM, FormEvent.SELECT_DOCTOR, "doc-1")
        form = _resolved(step(form, FormEvent.SELECT_DATE, "2025-05-12"), ["08:00"])

        with pytest.raises(BookingValidationError):
            step(form, FormEvent.SELECT_SLOT, "09:00")

    def test_changing_doctor_clears_slot(self, ready_form):
        form = step(ready_form, FormEvent.SELECT_DOCTOR, "doc-2")

        assert form.hora == ""
        assert form.slots is None
        assert form.servicio_id == "srv-1"
        assert form.paciente_nombre == "Juan Pérez"

    def test_changing_date_clears_slot(self, ready_form):
        form = step(ready_form, FormEvent.SELECT_DATE, "2025-05-13")
        assert form.hora == ""
        assert slot_view(form) == SlotView.LOADING

    def test_reselecting_same_doctor_keeps_slot(self, ready_form):
        assert step(ready_form, FormEvent.SELECT_DOCTOR, "doc-1") is ready_form

    def test_stale_slots_are_ignored(self):
        form = step(EMPTY_FORM, FormEvent.SELECT_DOCTOR, "doc-2")
        form = step(form, FormEvent.SELECT_DATE, "2025-05-12")

        stale = step(form, FormEvent.SLOTS_RESOLVED, ("doc-1", "2025-05-12", ["08:00"]))

        assert stale is form
        assert stale.slots is None

    def test_empty_resolution(self):
        form = step(EMPTY_FORM, FormEvent.SELECT_DOCTOR, "doc-1")
        form = _resolved(step(form, FormEvent.SELECT_DATE, "2025-05-12"), [])
        assert slot_view(form) == SlotView.EMPTY

    def test_notes_are_capped(self):
        form = step(EMPTY_FORM, FormEvent.SET_NOTES, "x" * 600)
        assert len(form.notas) == 500

    def test_invalid_date(self):
        with pytest.raises(BookingValidationError):
            step(EMPTY_FORM, FormEvent.SELECT_DATE, "12/05/2025")

    def test_today_is_accepted(self):
        form = step(EMPTY_FORM, FormEvent.SELECT_DATE, "2025-05-08")
        assert form.fecha == "2025-05-08"

    def test_past_date_is_rejected(self):
        with pytest.raises(BookingValidationError):
            step(EMPTY_FORM, FormEvent.SELECT_DATE, "2025-05-07")

    @pytest.mark.parametrize("weekend", ["2025-05-10", "2025-05-11"])
    def test_weekend_is_rejected(self, weekend):
        with pytest.raises(BookingValidationError):
            step(EMPTY_FORM, FormEvent.SELECT_DATE, weekend)

    def test_rejected_date_leaves_form_unchanged(self, ready_form):
        with pytest.raises(BookingValidationError):
            step(ready_form, FormEvent.SELECT_DATE, "2025-05-10")
        assert ready_form.fecha == "2025-05-12"
        assert ready_form.hora == "08:30"

    def test_clear_returns_empty_form(self, ready_form):
        assert step(ready_form, FormEvent.CLEAR) == EMPTY_FORM


class TestSubmitGuard:

    def test_complete_form_can_submit(self, ready_form):
        assert can_submit(ready_form)
        assert current_step(ready_form) == BookingStep.READY_TO_SUBMIT

    @pytest.mark.parametrize("event, value", [
        (FormEvent.SET_PATIENT, "   "),
        (FormEvent.SELECT_SERVICE, ""),
        (FormEvent.SELECT_SLOT, ""),
    ])
    def test_missing_field_blocks_submit(self, ready_form, event, value):
        assert not can_submit(step(ready_form, event, value))

    def test_steps_follow_dependent_selections(self):
        form = EMPTY_FORM
        assert current_step(form) == BookingStep.PATIENT_NAME_ENTRY
        form = step(form, FormEvent.SELECT_DOCTOR, "doc-1")
        assert current_step(form) == BookingStep.DOCTOR_SELECTED
        form = step(form, FormEvent.SELECT_DATE, "2025-05-12")
        assert current_step(form) == BookingStep.DATE_SELECTED
        form = _resolved(form, ["08:00"])
        assert current_step(form) == BookingStep.SLOTS_RESOLVED

    def test_to_request_builds_payload(self, ready_form):
        request = to_request(ready_form)

        assert request.to_wire() == {
            "pacienteNombre": "Juan Pérez",
            "doctorId": "doc-1",
            "servicioId": "srv-1",
            "fecha": "2025-05-12",
            "hora": "08:30",
        }

    def test_to_request_rejects_incomplete(self):
        with pytest.raises(BookingValidationError):
            to_request(EMPTY_FORM)


class TestBookingController:

    @pytest.fixture
    def controller(self, gateway, notifier):
        gateway.get_availability.return_value = AvailabilitySnapshot(
            doctor_id="doc-1",
            fecha=date(2025, 5, 12),
            horario_completo=["08:00", "08:30", "09:00"],
            horas_ocupadas=["08:30"],
        )
        return BookingController(gateway, notifier, clock=lambda: TODAY)

    def _fill(self, controller):
        controller.set_patient_name("Juan Pérez")
        controller.select_doctor("doc-1")
        controller.select_date(date(2025, 5, 12))
        controller.select_service("srv-1")
        controller.select_slot("09:00")

    def test_selecting_doctor_and_date_resolves_slots(self, controller, gateway):
        controller.select_doctor("doc-1")
        gateway.get_availability.assert_not_called()

        controller.select_date("2025-05-12")

        gateway.get_availability.assert_called_once_with("doc-1", "2025-05-12")
        assert controller.form.slots == ("08:00", "09:00")
        assert controller.slot_view == SlotView.AVAILABLE

    def test_occupied_slot_cannot_be_chosen(self, controller):
        controller.select_doctor("doc-1")
        controller.select_date("2025-05-12")

        with pytest.raises(BookingValidationError):
            controller.select_slot("08:30")

    def test_successful_submit_clears_form(self, controller, gateway, notifier):
        self._fill(controller)
        created = gateway.create_appointment.return_value

        assert controller.submit() is created
        assert controller.form == EMPTY_FORM
        notifier.assert_called_with("success", "Cita agendada exitosamente")

    def test_failed_submit_keeps_form(self, controller, gateway, notifier):
        self._fill(controller)
        before = controller.form
        gateway.create_appointment.side_effect = GatewayError("conflict", status=409)

        assert controller.submit() is None
        assert controller.form == before
        assert not controller.loading
        notifier.assert_called_with("error", "Error al agendar la cita")

    def test_past_weekend_date_never_reaches_backend(self, controller, gateway):
        controller.set_patient_name("Juan Pérez")
        controller.select_doctor("doc-1")

        # 2020-01-04 was a Saturday
        with pytest.raises(BookingValidationError):
            controller.select_date("2020-01-04")

        assert controller.form.fecha == ""
        assert controller.submit() is None
        gateway.get_availability.assert_not_called()
        gateway.create_appointment.assert_not_called()

    def test_clear_twice_is_idempotent(self, controller):
        self._fill(controller)

        for _ in range(2):
            controller.clear()
            assert controller.form == EMPTY_FORM
            assert controller.slot_view == SlotView.HIDDEN
            assert controller.step == BookingStep.PATIENT_NAME_ENTRY
            assert controller.resolver.key is None
            assert not controller.resolver.loading

    def test_incomplete_submit_never_calls_backend(self, controller, gateway, notifier):
        controller.set_patient_name("Juan Pérez")

        assert controller.submit() is None
        gateway.create_appointment.assert_not_called()
        assert notifier.call_args[0][0] == "error"

    def test_reference_data_keeps_active_entries(self, controller, gateway, doctor, services):
        inactive = doctor.model_copy(update={"id": "doc-2", "activo": False})
        gateway.list_doctors.return_value = [doctor, inactive]
        gateway.list_services.return_value = services

        controller.load_reference_data()

        assert [d.id for d in controller.doctors] == ["doc-1"]
        assert len(controller.services) == 2

    def test_reference_data_failure_degrades_per_list(self, controller, gateway, services):
        gateway.list_doctors.side_effect = GatewayError("down", status=503)
        gateway.list_services.return_value = services

        controller.load_reference_data()

        assert controller.doctors == []
        assert len(controller.services) == 2
