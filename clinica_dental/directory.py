"""Doctor, service and patient management screens.

Each directory keeps a list snapshot, reloads it after every mutation and
reports write failures through the notifier without touching local state.
"""
from datetime import date
from typing import Any, Dict, List, Optional

from clinica_dental.booking import Notifier, log_notifier
from clinica_dental.errors import GatewayError, PatientValidationError
from clinica_dental.loaders import fetch_all
from clinica_dental.logging_config import get_logger
from clinica_dental.models import (
    City,
    Country,
    Doctor,
    DoctorForm,
    Patient,
    PatientForm,
    Service,
    ServiceForm,
    birth_date_problem,
)
from clinica_dental.specialty import specialties

logger = get_logger(__name__)

REQUIRED_PATIENT_FIELDS = (
    ("nombre", "nombre"),
    ("apellido", "apellido"),
    ("correo_electronico", "correo electrónico"),
    ("numero_telefono", "teléfono"),
    ("direccion", "dirección"),
)


class _Directory:
    """Shared load/notify plumbing."""

    entity = "record"

    def __init__(self, gateway, notifier: Notifier = log_notifier):
        self.gateway = gateway
        self.notify = notifier
        self.items: List[Any] = []

    def _fetch(self) -> List[Any]:
        raise NotImplementedError

    def load(self) -> List[Any]:
        try:
            self.items = self._fetch()
        except GatewayError as e:
            logger.error("directory_load_failed", entity=self.entity, error=str(e))
            self.items = []
        return self.items

    def _write(self, action, success_message: str, failure_message: str) -> bool:
        try:
            action()
        except GatewayError as e:
            logger.error("directory_write_failed", entity=self.entity, status=e.status, error=str(e))
            self.notify("error", failure_message)
            return False
        self.load()
        self.notify("success", success_message)
        return True


class DoctorDirectory(_Directory):
    entity = "doctor"

    def _fetch(self) -> List[Doctor]:
        return self.gateway.list_doctors()

    def search(self, term: str) -> List[Doctor]:
        needle = (term or "").lower()
        return [
            d for d in self.items
            if needle in d.nombre.lower() or needle in d.especialidad.lower()
        ]

    def save(self, form: DoctorForm, doctor_id: Optional[str] = None) -> bool:
        """Create a doctor, or update ``doctor_id`` with every field of ``form``."""
        if doctor_id:
            action = lambda: self.gateway.update_doctor(doctor_id, form.to_wire())
            return self._write(action, "Doctor actualizado", "Error al actualizar el doctor")
        action = lambda: self.gateway.create_doctor(form)
        return self._write(action, "Doctor creado", "Error al crear el doctor")

    def set_active(self, doctor_id: str, active: bool) -> bool:
        action = lambda: self.gateway.update_doctor(doctor_id, {"activo": active})
        return self._write(action, "Estado del doctor actualizado", "Error al cambiar el estado del doctor")

    def delete(self, doctor_id: str) -> bool:
        action = lambda: self.gateway.delete_doctor(doctor_id)
        return self._write(action, "Doctor eliminado", "Error al eliminar el doctor")


class ServiceCatalog(_Directory):
    entity = "service"

    def _fetch(self) -> List[Service]:
        return self.gateway.list_services()

    def search(self, term: str) -> List[Service]:
        needle = (term or "").lower()
        return [s for s in self.items if needle in s.nombre.lower()]

    @property
    def specialties(self) -> List[str]:
        return specialties(self.items)

    def create(self, form: ServiceForm) -> bool:
        action = lambda: self.gateway.create_service(form)
        return self._write(action, "Servicio creado", "Error al crear el servicio")

    def set_active(self, service_id: str, active: bool) -> bool:
        action = lambda: self.gateway.update_service(service_id, {"activo": active})
        return self._write(action, "Estado del servicio actualizado", "Error al cambiar el estado del servicio")


class PatientDirectory(_Directory):
    """
    Patients plus the country/city pickers of the patient form.

    Country and city lists come only from the backend: when that call
    fails the picker stays empty so the failure is visible.
    """

    entity = "patient"

    def __init__(self, gateway, notifier: Notifier = log_notifier):
        super().__init__(gateway, notifier)
        self.countries: List[Country] = []
        self.cities: List[City] = []

    def _fetch(self) -> List[Patient]:
        return self.gateway.list_patients()

    def load_initial(self):
        data = fetch_all({
            "countries": self.gateway.list_countries,
            "patients": self.gateway.list_patients,
        })
        self.countries = data["countries"]
        self.items = data["patients"]
        if not self.countries:
            logger.error("countries_empty")

    def select_country(self, form: PatientForm, country_code: str) -> PatientForm:
        """New form with ``country_code`` chosen and the city reset; reloads cities."""
        form = form.model_copy(update={"pais": country_code or "", "ciudad": ""})
        if not country_code:
            self.cities = []
            return form
        try:
            self.cities = self.gateway.list_cities(country_code)
        except GatewayError as e:
            logger.error("cities_load_failed", pais=country_code, error=str(e))
            self.cities = []
        return form

    def search(self, term: str) -> List[Patient]:
        needle = (term or "").lower()
        return [
            p for p in self.items
            if needle in p.nombre.lower()
            or needle in p.apellido.lower()
            or needle in p.correo_electronico.lower()
        ]

    @staticmethod
    def validate(form: PatientForm, today: Optional[date] = None):
        """
        Check the form again before sending; ``model_copy`` updates skip
        pydantic validation.

        Raises:
            PatientValidationError: A required field is blank, the birth date
                is in the future or before 1900, or the privacy policy was not
                accepted
        """
        for field, label in REQUIRED_PATIENT_FIELDS:
            if not (getattr(form, field) or "").strip():
                raise PatientValidationError(f"El campo {label} es obligatorio")
        problem = birth_date_problem(form.fecha_nacimiento, today)
        if problem:
            raise PatientValidationError(problem)
        if not form.acepta_politicas:
            raise PatientValidationError("Debe aceptar las políticas de privacidad")

    def save(self, form: PatientForm, patient_id: Optional[str] = None) -> bool:
        """Create or update a patient; the form is validated before any remote call."""
        try:
            self.validate(form)
        except PatientValidationError as e:
            self.notify("error", str(e))
            return False

        if patient_id:
            action = lambda: self.gateway.update_patient(patient_id, form)
            return self._write(
                action,
                "Paciente actualizado exitosamente",
                "Error al actualizar el paciente. Por favor, verifique los datos e inténtelo de nuevo.",
            )
        action = lambda: self.gateway.create_patient(form)
        return self._write(
            action,
            "Paciente creado exitosamente",
            "Error al crear el paciente. Por favor, verifique los datos e inténtelo de nuevo.",
        )

    def set_active(self, patient_id: str, active: bool) -> bool:
        action = lambda: self.gateway.update_patient(patient_id, {"activo": active})
        return self._write(action, "Estado del paciente actualizado", "Error al cambiar el estado del paciente")

    def delete(self, patient_id: str) -> bool:
        action = lambda: self.gateway.delete_patient(patient_id)
        return self._write(action, "Paciente eliminado", "Error al eliminar el paciente")

    @staticmethod
    def form_from(patient: Patient) -> PatientForm:
        """Prefill the edit form from an existing patient."""
        data: Dict[str, Any] = patient.model_dump(by_alias=True)
        return PatientForm.model_validate(data)
