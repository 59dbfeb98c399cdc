"""Service category classification by keyword.

Rules are checked in order; the first rule with a keyword contained in the
service name wins. Matching ignores case and accents, so "extraccion" and
"Extracción" land in the same category.
"""
import unicodedata
from typing import Iterable, List, Tuple

DEFAULT_SPECIALTY = "Odontología General"

SPECIALTY_RULES: Tuple[Tuple[Tuple[str, ...], str], ...] = (
    (("limpieza", "profilaxis"), "Higiene Dental"),
    (("extracción", "cirugía"), "Cirugía Oral"),
    (("endodoncia", "conducto"), "Endodoncia"),
    (("blanqueamiento", "estética"), "Estética Dental"),
    # "brakers" is how staff actually type it in service names
    (("ortodoncia", "brackets", "brakers"), "Ortodoncia"),
    (("implante", "prótesis"), "Implantología"),
    (("periodoncia", "encías"), "Periodoncia"),
)


def _fold(text: str) -> str:
    """Lowercase and strip diacritics."""
    decomposed = unicodedata.normalize("NFKD", text.lower())
    return "".join(c for c in decomposed if not unicodedata.combining(c))


def classify_service(name: str) -> str:
    """
    Map a service name to its specialty label.

    Example:
        >>> classify_service("Limpieza profunda")
        'Higiene Dental'
        >>> classify_service("Consulta inicial")
        'Odontología General'
    """
    folded = _fold(name or "")
    for keywords, specialty in SPECIALTY_RULES:
        if any(_fold(keyword) in folded for keyword in keywords):
            return specialty
    return DEFAULT_SPECIALTY


def specialties(services: Iterable) -> List[str]:
    """Distinct specialty labels of ``services`` in first-seen order."""
    seen = []
    for service in services:
        label = service.especialidad or classify_service(service.nombre)
        if label not in seen:
            seen.append(label)
    return seen
