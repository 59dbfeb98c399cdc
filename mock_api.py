"""Mock clinic backend for local development.

Flask server with in-memory storage implementing every endpoint the
console's gateway calls. Availability is computed from real occupancy and
reports use the same aggregation as the console.

Run with: python mock_api.py
"""
import uuid
from datetime import date, datetime

from flask import Blueprint, Flask, jsonify, request
from flask_cors import CORS
from pydantic import ValidationError

from clinica_dental.availability import build_snapshot
from clinica_dental.logging_config import RequestIDMiddleware, get_logger, setup_structured_logging
from clinica_dental.models import (
    Appointment,
    AppointmentStatus,
    BookingRequest,
    Doctor,
    PatientForm,
    Service,
    ServiceForm,
    StatusUpdate,
)
from clinica_dental.reports import ReportFilters, aggregate_report
from clinica_dental.specialty import classify_service
from clinica_dental.time_slots import generate_slots

logger = get_logger(__name__)

SEED_DOCTORS = [
    {"nombre": "Dra. Lucía Fernández", "especialidad": "Ortodoncia",
     "telefono": "987654321", "email": "lucia@clinica.pe",
     "horarioInicio": "08:00", "horarioFin": "13:00"},
    {"nombre": "Dr. Martín Quispe", "especialidad": "Endodoncia",
     "telefono": "987111222", "email": "martin@clinica.pe",
     "horarioInicio": "14:00", "horarioFin": "19:00"},
]

SEED_SERVICES = [
    {"nombre": "Limpieza profunda", "duracion": 60, "precio": 150},
    {"nombre": "Tratamiento de conducto", "duracion": 90, "precio": 450},
    {"nombre": "Brakers transparente", "duracion": 30, "precio": 1000},
    {"nombre": "Consulta general", "duracion": 30, "precio": 80},
]

SEED_COUNTRIES = [{"codigo": "PE", "nombre": "Perú"}, {"codigo": "CL", "nombre": "Chile"}]

SEED_CITIES = {
    "PE": [{"codigo": "LIM", "nombre": "Lima", "pais": "PE"},
           {"codigo": "AQP", "nombre": "Arequipa", "pais": "PE"}],
    "CL": [{"codigo": "SCL", "nombre": "Santiago", "pais": "CL"}],
}

SEED_BRANCHES = [{"id": "principal", "nombre": "principal", "direccion": "Av. Larco 123, Miraflores"}]


def _new_id() -> str:
    return str(uuid.uuid4())


def _now() -> str:
    return datetime.now().isoformat(timespec="seconds")


def _error(message: str, status: int):
    return jsonify({"success": False, "error": message}), status


class Store:
    """In-memory tables keyed by id, holding wire-format dicts."""

    def __init__(self, seed: bool = True):
        self.doctors = {}
        self.services = {}
        self.appointments = {}
        self.patients = {}
        self.countries = []
        self.cities = {}
        self.branches = []
        if seed:
            self.seed()

    def seed(self):
        for data in SEED_DOCTORS:
            self.add_doctor(dict(data))
        for data in SEED_SERVICES:
            self.add_service(dict(data))
        self.countries = list(SEED_COUNTRIES)
        self.cities = {k: list(v) for k, v in SEED_CITIES.items()}
        self.branches = list(SEED_BRANCHES)

    def add_doctor(self, data: dict) -> dict:
        data.setdefault("horario", generate_slots(data["horarioInicio"], data["horarioFin"]))
        data.pop("disponibilidades", None)
        data.update({"id": _new_id(), "type": "doctor", "activo": data.get("activo", True), "createdAt": _now()})
        self.doctors[data["id"]] = data
        return data

    def add_service(self, data: dict) -> dict:
        data.setdefault("especialidad", classify_service(data["nombre"]))
        data.update({"id": _new_id(), "type": "service", "activo": data.get("activo", True), "createdAt": _now()})
        self.services[data["id"]] = data
        return data

    def appointment_models(self):
        return [Appointment.model_validate(a) for a in self.appointments.values()]

    def service_models(self):
        return [Service.model_validate(s) for s in self.services.values()]


def create_app(seed: bool = True) -> Flask:
    """Build the mock backend with a fresh store."""
    app = Flask(__name__)
    CORS(app)
    store = Store(seed=seed)
    app.config["STORE"] = store
    api = Blueprint("api", __name__, url_prefix="/api")

    # ------------------------------------------------------------ doctors

    @api.route("/doctors", methods=["GET"])
    def list_doctors():
        return jsonify(list(store.doctors.values()))

    @api.route("/doctors", methods=["POST"])
    def create_doctor():
        data = request.get_json(silent=True) or {}
        for field in ("nombre", "especialidad", "horarioInicio", "horarioFin"):
            if not data.get(field):
                return _error(f"Missing required field: {field}", 400)
        doctor = store.add_doctor(data)
        logger.info("mock_doctor_created", doctor_id=doctor["id"])
        return jsonify(doctor), 201

    @api.route("/doctors/<doctor_id>", methods=["PUT"])
    def update_doctor(doctor_id):
        doctor = store.doctors.get(doctor_id)
        if doctor is None:
            return _error(f"Doctor '{doctor_id}' not found", 404)
        doctor.update(request.get_json(silent=True) or {})
        doctor["id"] = doctor_id
        return jsonify(doctor)

    @api.route("/doctors/<doctor_id>", methods=["DELETE"])
    def delete_doctor(doctor_id):
        if store.doctors.pop(doctor_id, None) is None:
            return _error(f"Doctor '{doctor_id}' not found", 404)
        return "", 204

    # ------------------------------------------------------------ services

    @api.route("/services", methods=["GET"])
    def list_services():
        return jsonify(list(store.services.values()))

    @api.route("/services", methods=["POST"])
    def create_service():
        data = request.get_json(silent=True) or {}
        try:
            form = ServiceForm.model_validate(data)
        except ValidationError as e:
            return _error(str(e), 400)
        service = form.to_wire()
        if data.get("especialidad"):
            service["especialidad"] = data["especialidad"]
        return jsonify(store.add_service(service)), 201

    @api.route("/services/<service_id>", methods=["PUT"])
    def update_service(service_id):
        service = store.services.get(service_id)
        if service is None:
            return _error(f"Service '{service_id}' not found", 404)
        service.update(request.get_json(silent=True) or {})
        service["id"] = service_id
        return jsonify(service)

    # ------------------------------------------------------------ appointments

    @api.route("/appointments", methods=["GET"])
    def list_appointments():
        fecha = request.args.get("fecha")
        doctor_id = request.args.get("doctorId")
        result = [
            a for a in store.appointments.values()
            if (not fecha or a["fecha"] == fecha)
            and (not doctor_id or a["doctorId"] == doctor_id)
        ]
        result.sort(key=lambda a: (a["fecha"], a["hora"]))
        return jsonify(result)

    @api.route("/appointments", methods=["POST"])
    def create_appointment():
        try:
            booking = BookingRequest.model_validate(request.get_json(silent=True) or {})
        except ValidationError as e:
            return _error(str(e), 400)

        doctor = store.doctors.get(booking.doctor_id)
        if doctor is None:
            return _error(f"Doctor '{booking.doctor_id}' not found", 404)
        service = store.services.get(booking.servicio_id)
        if service is None:
            return _error(f"Service '{booking.servicio_id}' not found", 404)
        if booking.hora not in doctor["horario"]:
            return _error(f"{booking.hora} is outside the doctor's hours", 400)

        snapshot = build_snapshot(Doctor.model_validate(doctor), booking.fecha, store.appointment_models())
        if booking.hora in snapshot.horas_ocupadas:
            return _error(f"Slot {booking.fecha} {booking.hora} is already booked", 409)

        appointment = booking.to_wire()
        appointment.update({
            "id": _new_id(),
            "type": "appointment",
            "doctorNombre": doctor["nombre"],
            "especialidad": doctor["especialidad"],
            "servicioNombre": service["nombre"],
            "estado": AppointmentStatus.PENDING.value,
            "createdAt": _now(),
        })
        store.appointments[appointment["id"]] = appointment
        logger.info("mock_appointment_created", appointment_id=appointment["id"])
        return jsonify(appointment), 201

    @api.route("/appointments/<appointment_id>/status", methods=["PATCH"])
    def update_appointment_status(appointment_id):
        appointment = store.appointments.get(appointment_id)
        if appointment is None:
            return _error(f"Appointment '{appointment_id}' not found", 404)
        try:
            update = StatusUpdate.model_validate(request.get_json(silent=True) or {})
        except ValidationError as e:
            return _error(str(e), 400)
        if appointment["estado"] == AppointmentStatus.CANCELLED.value:
            return _error("Appointment already cancelled", 400)

        appointment["estado"] = update.estado.value
        if update.estado == AppointmentStatus.CANCELLED and update.motivo:
            appointment["motivoCancelacion"] = update.motivo
        return jsonify(appointment)

    # ------------------------------------------------------------ patients

    @api.route("/patients", methods=["GET"])
    def list_patients():
        return jsonify(list(store.patients.values()))

    @api.route("/patients", methods=["POST"])
    def create_patient():
        try:
            form = PatientForm.model_validate(request.get_json(silent=True) or {})
        except ValidationError as e:
            return _error(str(e), 400)
        if not form.acepta_politicas:
            return _error("Privacy policy must be accepted", 400)
        patient = form.to_wire()
        patient.update({"id": _new_id(), "activo": True, "fechaRegistro": _now()})
        store.patients[patient["id"]] = patient
        return jsonify(patient), 201

    @api.route("/patients/<patient_id>", methods=["GET"])
    def get_patient(patient_id):
        patient = store.patients.get(patient_id)
        if patient is None:
            return _error(f"Patient '{patient_id}' not found", 404)
        return jsonify(patient)

    @api.route("/patients/<patient_id>", methods=["PUT"])
    def update_patient(patient_id):
        patient = store.patients.get(patient_id)
        if patient is None:
            return _error(f"Patient '{patient_id}' not found", 404)
        patient.update(request.get_json(silent=True) or {})
        patient["id"] = patient_id
        return jsonify(patient)

    @api.route("/patients/<patient_id>", methods=["DELETE"])
    def delete_patient(patient_id):
        if store.patients.pop(patient_id, None) is None:
            return _error(f"Patient '{patient_id}' not found", 404)
        return "", 204

    # ------------------------------------------------------------ availability

    @api.route("/availability", methods=["GET"])
    def get_availability():
        doctor_id = request.args.get("doctorId")
        fecha = request.args.get("fecha")
        if not doctor_id or not fecha:
            return _error("doctorId and fecha parameters are required", 400)
        doctor = store.doctors.get(doctor_id)
        if doctor is None:
            return _error(f"Doctor '{doctor_id}' not found", 404)
        try:
            day = date.fromisoformat(fecha)
        except ValueError:
            return _error("Invalid date format. Use YYYY-MM-DD", 400)

        snapshot = build_snapshot(Doctor.model_validate(doctor), day, store.appointment_models())
        return jsonify(snapshot.to_wire())

    # ------------------------------------------------------------ reference data

    @api.route("/countries", methods=["GET"])
    def list_countries():
        return jsonify(store.countries)

    @api.route("/countries/<code>/cities", methods=["GET"])
    def list_cities(code):
        return jsonify(store.cities.get(code.upper(), []))

    @api.route("/branches", methods=["GET"])
    def list_branches():
        return jsonify(store.branches)

    # ------------------------------------------------------------ reports

    @api.route("/reports", methods=["GET"])
    def get_report():
        try:
            filters = ReportFilters.model_validate(request.args.to_dict())
        except ValidationError as e:
            return _error(str(e), 400)
        report = aggregate_report(store.appointment_models(), store.service_models(), filters)
        return jsonify(report.to_wire())

    app.register_blueprint(api)
    app.wsgi_app = RequestIDMiddleware(app.wsgi_app)
    return app


app = create_app()


if __name__ == "__main__":
    setup_structured_logging("INFO")
    print("Mock clinic API running on http://localhost:5000/api")
    app.run(host="0.0.0.0", port=5000, debug=False)
