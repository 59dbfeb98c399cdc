"""Pydantic models for the clinic backend's request/response payloads.

The backend speaks Spanish camelCase (``nombre``, ``horarioInicio``...);
those names are the field aliases and Python code uses snake_case.
"""
from datetime import date, datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class AppointmentStatus(str, Enum):
    """Appointment lifecycle states as stored by the backend."""
    PENDING = "pendiente"
    CONFIRMED = "confirmada"
    COMPLETED = "completada"
    CANCELLED = "cancelada"


class WireModel(BaseModel):
    """Base for payloads: populate by alias or name, ignore unknown keys."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    def to_wire(self) -> dict:
        """Serialize with backend field names, dropping unset optionals."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


MIN_BIRTH_YEAR = 1900


def birth_date_problem(value: Optional[date], today: Optional[date] = None) -> Optional[str]:
    """Why ``value`` is not an acceptable birth date, or None if it is."""
    if value is None:
        return None
    if value > (today or date.today()):
        return "La fecha de nacimiento no puede ser futura"
    if value.year < MIN_BIRTH_YEAR:
        return f"La fecha de nacimiento no puede ser anterior a {MIN_BIRTH_YEAR}"
    return None


def _trim_hour(v):
    # backend sometimes answers "09:00:00"
    if isinstance(v, str) and len(v) > 5:
        return v[:5]
    return v


class Doctor(WireModel):
    id: str
    nombre: str
    especialidad: str = ""
    telefono: str = ""
    email: str = ""
    horario_inicio: Optional[str] = Field(default=None, alias="horarioInicio")
    horario_fin: Optional[str] = Field(default=None, alias="horarioFin")
    horario: List[str] = Field(default_factory=list)
    activo: bool = True
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")

    @field_validator("horario", mode="before")
    @classmethod
    def trim_slots(cls, v):
        if v is None:
            return []
        return [_trim_hour(h) for h in v]


class Service(WireModel):
    id: str
    nombre: str
    duracion: int = Field(..., gt=0, description="Duration in minutes")
    precio: float = Field(..., ge=0)
    especialidad: Optional[str] = None
    activo: bool = True
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")


class Appointment(WireModel):
    id: str
    paciente_nombre: str = Field(..., alias="pacienteNombre")
    doctor_id: str = Field(..., alias="doctorId")
    servicio_id: str = Field(..., alias="servicioId")
    doctor_nombre: str = Field(default="", alias="doctorNombre")
    servicio_nombre: str = Field(default="", alias="servicioNombre")
    especialidad: str = ""
    fecha: date
    hora: str
    estado: AppointmentStatus = AppointmentStatus.PENDING
    notas: Optional[str] = None
    motivo_cancelacion: Optional[str] = Field(default=None, alias="motivoCancelacion")
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")

    @field_validator("hora", mode="before")
    @classmethod
    def trim_hour(cls, v):
        return _trim_hour(v)

    @property
    def is_active(self) -> bool:
        return self.estado != AppointmentStatus.CANCELLED


class Patient(WireModel):
    id: str
    nombre: str
    apellido: str = ""
    fecha_nacimiento: Optional[date] = Field(default=None, alias="fechaNacimiento")
    correo_electronico: str = Field(default="", alias="correoElectronico")
    numero_telefono: str = Field(default="", alias="numeroTelefono")
    pais: str = ""
    ciudad: str = ""
    direccion: str = ""
    acepta_politicas: bool = Field(default=False, alias="aceptaPoliticas")
    fecha_registro: Optional[datetime] = Field(default=None, alias="fechaRegistro")
    activo: bool = True

    @property
    def full_name(self) -> str:
        return f"{self.nombre} {self.apellido}".strip()


class AvailabilitySnapshot(WireModel):
    """Slots of one doctor on one date; never persisted by the client."""
    doctor_id: str = Field(..., alias="doctorId")
    fecha: date
    doctor_nombre: str = Field(default="", alias="doctorNombre")
    especialidad: str = ""
    horario_completo: List[str] = Field(default_factory=list, alias="horarioCompleto")
    horas_ocupadas: List[str] = Field(default_factory=list, alias="horasOcupadas")
    horarios_disponibles: List[str] = Field(default_factory=list, alias="horariosDisponibles")


class Country(WireModel):
    codigo: str
    nombre: str


class City(WireModel):
    codigo: str
    nombre: str
    pais: str = ""


class Branch(WireModel):
    id: str
    nombre: str
    direccion: str = ""


# ---------------------------------------------------------------- write forms

class DoctorForm(WireModel):
    nombre: str = Field(..., min_length=1)
    especialidad: str = Field(..., min_length=1)
    telefono: str = ""
    email: str = ""
    horario_inicio: str = Field(default="08:00", alias="horarioInicio")
    horario_fin: str = Field(default="17:00", alias="horarioFin")


class ServiceForm(WireModel):
    nombre: str = Field(..., min_length=1)
    duracion: int = Field(default=30, gt=0)
    precio: float = Field(default=0, ge=0)


class BookingRequest(WireModel):
    paciente_nombre: str = Field(..., min_length=1, alias="pacienteNombre")
    doctor_id: str = Field(..., min_length=1, alias="doctorId")
    servicio_id: str = Field(..., min_length=1, alias="servicioId")
    fecha: date
    hora: str = Field(..., pattern=r"^\d{2}:\d{2}$")
    notas: Optional[str] = None


class PatientForm(WireModel):
    nombre: str = Field(..., min_length=1)
    apellido: str = Field(..., min_length=1)
    fecha_nacimiento: Optional[date] = Field(default=None, alias="fechaNacimiento")
    correo_electronico: str = Field(..., min_length=1, alias="correoElectronico")
    numero_telefono: str = Field(..., min_length=1, alias="numeroTelefono")
    pais: str = ""
    ciudad: str = ""
    direccion: str = Field(..., min_length=1)
    acepta_politicas: bool = Field(default=False, alias="aceptaPoliticas")

    @field_validator("fecha_nacimiento")
    @classmethod
    def check_birth_date(cls, v: Optional[date]) -> Optional[date]:
        problem = birth_date_problem(v)
        if problem:
            raise ValueError(problem)
        return v


class StatusUpdate(WireModel):
    estado: AppointmentStatus
    motivo: Optional[str] = None
