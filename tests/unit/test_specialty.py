"""Tests for service specialty classification."""
import pytest

from clinica_dental.models import Service
from clinica_dental.specialty import DEFAULT_SPECIALTY, classify_service, specialties


@pytest.mark.parametrize("name, expected", [
    ("Limpieza profunda", "Higiene Dental"),
    ("Profilaxis infantil", "Higiene Dental"),
    ("Extracción de muela", "Cirugía Oral"),
    ("Cirugía de cordales", "Cirugía Oral"),
    ("Endodoncia molar", "Endodoncia"),
    ("Tratamiento de conducto", "Endodoncia"),
    ("Blanqueamiento LED", "Estética Dental"),
    ("Carillas estética", "Estética Dental"),
    ("Ortodoncia invisible", "Ortodoncia"),
    ("Brackets metálicos", "Ortodoncia"),
    ("Brakers transparente", "Ortodoncia"),
    ("Implante unitario", "Implantología"),
    ("Prótesis removible", "Implantología"),
    ("Periodoncia avanzada", "Periodoncia"),
    ("Tratamiento de encías", "Periodoncia"),
])
def test_keyword_maps_to_specialty(name, expected):
    assert classify_service(name) == expected


def test_unknown_name_gets_default():
    assert classify_service("Consulta inicial") == DEFAULT_SPECIALTY


def test_empty_name_gets_default():
    assert classify_service("") == DEFAULT_SPECIALTY


def test_matching_ignores_case_and_accents():
    assert classify_service("EXTRACCION simple") == "Cirugía Oral"
    assert classify_service("protesis fija") == "Implantología"


def test_first_rule_wins():
    # "limpieza" rule comes before "ortodoncia"
    assert classify_service("Limpieza de ortodoncia") == "Higiene Dental"


def test_specialties_are_distinct_in_first_seen_order():
    items = [
        Service(id="1", nombre="Brakers", duracion=30, precio=10),
        Service(id="2", nombre="Limpieza", duracion=30, precio=10),
        Service(id="3", nombre="Ortodoncia", duracion=30, precio=10),
        Service(id="4", nombre="Otro", duracion=30, precio=10, especialidad="Pediatría"),
    ]

    assert specialties(items) == ["Ortodoncia", "Higiene Dental", "Pediatría"]
