"""Shared test fixtures."""
from unittest.mock import Mock
from urllib.parse import urlsplit

import pytest
import requests
from requests.adapters import BaseAdapter
from requests.structures import CaseInsensitiveDict

from clinica_dental.config import ClientConfig, get_config
from clinica_dental.gateway import ClinicGateway
from clinica_dental.http_client import create_http_session
from clinica_dental.models import Appointment, Doctor, Service
from clinica_dental.time_slots import generate_slots

TEST_BASE_URL = "http://testserver/api"


class FlaskTestAdapter(BaseAdapter):
    """Route requests made through a Session into a Flask test client."""

    def __init__(self, app):
        super().__init__()
        self.client = app.test_client()

    def send(self, request, **kwargs):
        parts = urlsplit(request.url)
        path = parts.path + (f"?{parts.query}" if parts.query else "")
        headers = {
            k: v for k, v in request.headers.items()
            if k.lower() not in ("content-length", "content-type")
        }
        body = request.body
        if isinstance(body, str):
            body = body.encode("utf-8")

        result = self.client.open(
            path,
            method=request.method,
            headers=headers,
            data=body,
            content_type=request.headers.get("Content-Type"),
        )

        response = requests.Response()
        response.status_code = result.status_code
        response.reason = result.status.split(" ", 1)[-1]
        response.headers = CaseInsensitiveDict(result.headers)
        response._content = result.get_data()
        response.encoding = "utf-8"
        response.url = request.url
        response.request = request
        return response

    def close(self):
        pass


@pytest.fixture(autouse=True)
def clear_config_cache():
    """Each test resolves configuration from its own environment."""
    get_config.cache_clear()
    yield
    get_config.cache_clear()


@pytest.fixture
def client_config() -> ClientConfig:
    return ClientConfig(
        api_base_url=TEST_BASE_URL,
        max_retries=1,
        backoff_factor=0,
        calendar_seed_days=0,
    )


@pytest.fixture
def mock_backend():
    """Fresh in-memory backend per test."""
    from mock_api import create_app
    return create_app()


@pytest.fixture
def live_gateway(mock_backend, client_config) -> ClinicGateway:
    """Gateway wired to the in-process mock backend."""
    session = create_http_session(
        max_retries=client_config.max_retries,
        backoff_factor=client_config.backoff_factor,
    )
    session.mount("http://testserver", FlaskTestAdapter(mock_backend))
    return ClinicGateway(client_config, session=session)


@pytest.fixture
def gateway() -> Mock:
    """Gateway double for component tests."""
    return Mock(spec=ClinicGateway)


@pytest.fixture
def notifier() -> Mock:
    return Mock()


@pytest.fixture
def doctor() -> Doctor:
    return Doctor(
        id="doc-1",
        nombre="Dra. Ana Torres",
        especialidad="Ortodoncia",
        horario_inicio="08:00",
        horario_fin="10:00",
        horario=generate_slots("08:00", "10:00"),
    )


@pytest.fixture
def make_appointment():
    """Factory for appointments with sensible defaults."""
    def _create(**overrides) -> Appointment:
        data = {
            "id": "cita-1",
            "pacienteNombre": "Juan Pérez",
            "doctorId": "doc-1",
            "servicioId": "srv-1",
            "fecha": "2025-05-12",
            "hora": "08:30",
            "estado": "pendiente",
        }
        data.update(overrides)
        return Appointment.model_validate(data)
    return _create


@pytest.fixture
def services():
    return [
        Service(id="srv-1", nombre="Limpieza dental", duracion=30, precio=100),
        Service(id="srv-2", nombre="Brakers metálicos", duracion=60, precio=1500),
    ]
