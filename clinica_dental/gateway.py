"""Remote data gateway: the only component that talks to the clinic backend.

Every operation returns parsed models or raises ``GatewayError``; callers
decide whether a failure degrades (reads) or is reported (writes).
"""
from datetime import date
from typing import Any, Dict, List, Optional, Type, TypeVar, Union

import requests
from pydantic import ValidationError

from clinica_dental.circuit_breaker import CircuitBreaker, CircuitBreakerOpen
from clinica_dental.config import ClientConfig
from clinica_dental.errors import GatewayError
from clinica_dental.http_client import create_http_session
from clinica_dental.logging_config import generate_request_id, get_logger
from clinica_dental.models import (
    Appointment,
    AppointmentStatus,
    AvailabilitySnapshot,
    BookingRequest,
    Branch,
    City,
    Country,
    Doctor,
    DoctorForm,
    Patient,
    PatientForm,
    Service,
    ServiceForm,
    StatusUpdate,
    WireModel,
)
from clinica_dental.reports import Report, ReportFilters
from clinica_dental.specialty import classify_service
from clinica_dental.time_slots import generate_slots, seed_calendar

logger = get_logger(__name__)

M = TypeVar("M", bound=WireModel)

DateLike = Union[date, str]


def _iso(value: DateLike) -> str:
    return value.isoformat() if isinstance(value, date) else value


def _error_detail(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(body, dict):
        return str(body.get("error") or body.get("message") or body)
    return str(body)


class ClinicGateway:
    """Typed wrappers over the clinic backend's REST endpoints."""

    def __init__(
        self,
        config: ClientConfig,
        session: Optional[requests.Session] = None,
        circuit_breaker: Optional[CircuitBreaker] = None,
    ):
        self.config = config
        self.session = session or create_http_session(
            max_retries=config.max_retries,
            backoff_factor=config.backoff_factor,
            timeout=config.request_timeout,
        )
        self.circuit_breaker = circuit_breaker or CircuitBreaker(
            failure_threshold=config.circuit_failure_threshold,
            timeout=config.circuit_timeout,
            name="clinic-backend",
        )

    # ------------------------------------------------------------ transport

    def _request(self, method: str, path: str, **kwargs) -> Any:
        url = f"{self.config.api_base_url}{path}"
        request_id = generate_request_id()
        headers = kwargs.pop("headers", {})
        headers["X-Request-ID"] = request_id
        log = logger.bind(method=method, path=path, request_id=request_id)
        send = getattr(self.session, method.lower())

        def attempt():
            try:
                return send(url, headers=headers, **kwargs)
            except requests.exceptions.HTTPError as e:
                # a 4xx means the backend is up; don't count it against the circuit
                if e.response is not None and e.response.status_code < 500:
                    return e.response
                raise

        log.debug("api_request")
        try:
            response = self.circuit_breaker.call(attempt)
        except CircuitBreakerOpen as e:
            log.error("api_circuit_open", retry_after=e.retry_after)
            raise GatewayError(str(e)) from e
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            detail = _error_detail(e.response) if e.response is not None else str(e)
            log.error("api_http_error", status=status, detail=detail)
            raise GatewayError(f"{method} {path} failed ({status}): {detail}", status=status) from e
        except requests.exceptions.RequestException as e:
            log.error("api_transport_error", error=str(e))
            raise GatewayError(f"{method} {path} failed: {e}") from e

        if not response.ok:
            detail = _error_detail(response)
            log.error("api_http_error", status=response.status_code, detail=detail)
            raise GatewayError(
                f"{method} {path} failed ({response.status_code}): {detail}",
                status=response.status_code,
            )

        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            log.error("api_bad_payload")
            raise GatewayError(f"{method} {path} returned invalid JSON") from e

    def _one(self, model: Type[M], payload: Any) -> M:
        try:
            return model.model_validate(payload)
        except ValidationError as e:
            raise GatewayError(f"Unexpected {model.__name__} payload: {e}") from e

    def _many(self, model: Type[M], payload: Any) -> List[M]:
        if payload is None:
            return []
        if not isinstance(payload, list):
            raise GatewayError(f"Expected a list of {model.__name__}, got {type(payload).__name__}")
        return [self._one(model, item) for item in payload]

    # ------------------------------------------------------------ doctors

    def list_doctors(self) -> List[Doctor]:
        return self._many(Doctor, self._request("GET", "/doctors"))

    def create_doctor(self, form: DoctorForm) -> Doctor:
        """
        Create a doctor; the slot list (and, when enabled, a default
        weekday calendar) is derived from the working hours before sending.
        """
        slots = generate_slots(form.horario_inicio, form.horario_fin)
        payload = form.to_wire()
        payload.update({"horario": slots, "type": "doctor", "activo": True})
        if self.config.calendar_seed_days:
            payload["disponibilidades"] = seed_calendar(slots, days=self.config.calendar_seed_days)

        logger.info("doctor_create", nombre=form.nombre, slots=len(slots))
        return self._one(Doctor, self._request("POST", "/doctors", json=payload))

    def update_doctor(self, doctor_id: str, changes: Dict[str, Any]) -> Doctor:
        """
        Partial update. ``changes`` uses backend field names; the slot list
        is re-derived when both ``horarioInicio`` and ``horarioFin`` are given.
        """
        payload = dict(changes)
        if payload.get("horarioInicio") and payload.get("horarioFin"):
            payload["horario"] = generate_slots(payload["horarioInicio"], payload["horarioFin"])
        return self._one(Doctor, self._request("PUT", f"/doctors/{doctor_id}", json=payload))

    def delete_doctor(self, doctor_id: str) -> None:
        self._request("DELETE", f"/doctors/{doctor_id}")

    # ------------------------------------------------------------ services

    def _with_specialty(self, service: Service) -> Service:
        if not service.especialidad:
            service.especialidad = classify_service(service.nombre)
        return service

    def list_services(self) -> List[Service]:
        services = self._many(Service, self._request("GET", "/services"))
        return [self._with_specialty(s) for s in services]

    def create_service(self, form: ServiceForm) -> Service:
        payload = form.to_wire()
        payload["especialidad"] = classify_service(form.nombre)
        created = self._one(Service, self._request("POST", "/services", json=payload))
        return self._with_specialty(created)

    def update_service(self, service_id: str, changes: Dict[str, Any]) -> Service:
        payload = dict(changes)
        if payload.get("nombre"):
            payload["especialidad"] = classify_service(payload["nombre"])
        updated = self._one(Service, self._request("PUT", f"/services/{service_id}", json=payload))
        return self._with_specialty(updated)

    # ------------------------------------------------------------ appointments

    def list_appointments(
        self,
        fecha: Optional[DateLike] = None,
        doctor_id: Optional[str] = None,
    ) -> List[Appointment]:
        params = {}
        if fecha:
            params["fecha"] = _iso(fecha)
        if doctor_id:
            params["doctorId"] = doctor_id
        return self._many(Appointment, self._request("GET", "/appointments", params=params))

    def create_appointment(self, booking: BookingRequest) -> Appointment:
        logger.info(
            "appointment_create",
            doctor_id=booking.doctor_id,
            fecha=booking.fecha.isoformat(),
            hora=booking.hora,
        )
        return self._one(Appointment, self._request("POST", "/appointments", json=booking.to_wire()))

    def update_appointment_status(
        self,
        appointment_id: str,
        status: AppointmentStatus,
        reason: Optional[str] = None,
    ) -> Appointment:
        """Change an appointment's status; ``reason`` is only sent when cancelling."""
        update = StatusUpdate(
            estado=status,
            motivo=reason if status == AppointmentStatus.CANCELLED else None,
        )
        logger.info("appointment_status", appointment_id=appointment_id, estado=status.value)
        return self._one(
            Appointment,
            self._request("PATCH", f"/appointments/{appointment_id}/status", json=update.to_wire()),
        )

    # ------------------------------------------------------------ patients

    def list_patients(self) -> List[Patient]:
        return self._many(Patient, self._request("GET", "/patients"))

    def get_patient(self, patient_id: str) -> Patient:
        return self._one(Patient, self._request("GET", f"/patients/{patient_id}"))

    def create_patient(self, form: PatientForm) -> Patient:
        return self._one(Patient, self._request("POST", "/patients", json=form.to_wire()))

    def update_patient(self, patient_id: str, changes: Union[PatientForm, Dict[str, Any]]) -> Patient:
        payload = changes.to_wire() if isinstance(changes, PatientForm) else dict(changes)
        return self._one(Patient, self._request("PUT", f"/patients/{patient_id}", json=payload))

    def delete_patient(self, patient_id: str) -> None:
        self._request("DELETE", f"/patients/{patient_id}")

    # ------------------------------------------------------------ availability

    def get_availability(self, doctor_id: str, fecha: DateLike) -> AvailabilitySnapshot:
        payload = self._request(
            "GET", "/availability", params={"doctorId": doctor_id, "fecha": _iso(fecha)}
        )
        return self._one(AvailabilitySnapshot, payload)

    # ------------------------------------------------------------ reference data

    def list_countries(self) -> List[Country]:
        return self._many(Country, self._request("GET", "/countries"))

    def list_cities(self, country_code: str) -> List[City]:
        return self._many(City, self._request("GET", f"/countries/{country_code}/cities"))

    def list_branches(self) -> List[Branch]:
        return self._many(Branch, self._request("GET", "/branches"))

    # ------------------------------------------------------------ reports

    def get_report(self, filters: ReportFilters) -> Report:
        return self._one(Report, self._request("GET", "/reports", params=filters.to_wire()))
