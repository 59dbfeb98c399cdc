"""Concurrent loading of the reference data a screen needs."""
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict

from clinica_dental.errors import GatewayError
from clinica_dental.logging_config import get_logger

logger = get_logger(__name__)


def fetch_all(calls: Dict[str, Callable[[], Any]], max_workers: int = 4) -> Dict[str, Any]:
    """
    Run independent gateway reads concurrently and join them.

    Each failing read degrades to an empty list on its own, so the rest
    of the screen still renders.

    Example:
        >>> data = fetch_all({"doctors": gw.list_doctors, "services": gw.list_services})
        >>> data["doctors"]
    """
    if not calls:
        return {}

    results: Dict[str, Any] = {}
    with ThreadPoolExecutor(max_workers=min(max_workers, len(calls))) as pool:
        futures = {name: pool.submit(call) for name, call in calls.items()}
        for name, future in futures.items():
            try:
                results[name] = future.result()
            except GatewayError as e:
                logger.error("reference_load_failed", source=name, status=e.status, error=str(e))
                results[name] = []
    return results
