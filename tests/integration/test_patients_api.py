"""Patient management and reference data against the mock backend."""
from datetime import date, timedelta

import pytest

from clinica_dental.directory import PatientDirectory
from clinica_dental.errors import GatewayError
from clinica_dental.models import PatientForm

pytestmark = pytest.mark.integration


@pytest.fixture
def form():
    return PatientForm(
        nombre="Lucía",
        apellido="Ramos",
        correo_electronico="lucia@example.com",
        numero_telefono="987654321",
        direccion="Jr. Cusco 200",
        acepta_politicas=True,
    )


def test_country_and_city_pickers(live_gateway, form):
    directory = PatientDirectory(live_gateway)
    directory.load_initial()

    assert "PE" in [c.codigo for c in directory.countries]

    form = directory.select_country(form, "PE")

    assert form.pais == "PE"
    assert "Lima" in [c.nombre for c in directory.cities]


def test_create_update_delete(live_gateway, form, notifier):
    directory = PatientDirectory(live_gateway, notifier)

    assert directory.save(form) is True
    patient = directory.items[0]
    assert patient.full_name == "Lucía Ramos"

    edited = PatientDirectory.form_from(patient).model_copy(update={"direccion": "Av. Arequipa 100"})
    assert directory.save(edited, patient_id=patient.id) is True
    assert live_gateway.get_patient(patient.id).direccion == "Av. Arequipa 100"

    assert directory.delete(patient.id) is True
    assert directory.items == []


def test_backend_also_requires_consent(live_gateway, form):
    with pytest.raises(GatewayError) as exc_info:
        live_gateway.create_patient(form.model_copy(update={"acepta_politicas": False}))
    assert exc_info.value.status == 400


def test_backend_rejects_future_birth_date(live_gateway, form):
    future = form.model_copy(update={"fecha_nacimiento": date.today() + timedelta(days=400)})
    with pytest.raises(GatewayError) as exc_info:
        live_gateway.create_patient(future)
    assert exc_info.value.status == 400


def test_missing_patient(live_gateway):
    with pytest.raises(GatewayError) as exc_info:
        live_gateway.get_patient("nope")
    assert exc_info.value.status == 404


def test_branches(live_gateway):
    assert [b.nombre for b in live_gateway.list_branches()] == ["principal"]


def test_request_id_is_echoed(mock_backend):
    response = mock_backend.test_client().get("/api/branches", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"
