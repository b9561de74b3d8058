import time
from typing import Any, Callable, Dict, Tuple, Union

CheckResult = Union[bool, Tuple[bool, Dict[str, Any]]]


class HealthChecker:
    """Aggregates component probes (cache bounds, metrics, ...) into one report."""

    def __init__(self, version: str = "1.0.0"):
        self._start_time = time.time()
        self.version = version
        self._components: Dict[str, Callable[[], CheckResult]] = {}

    def register_component(self, name: str, checker_fn: Callable[[], CheckResult]) -> None:
        """
        Register a zero-argument probe.

        The probe returns either a bool or a ``(healthy, details)`` tuple whose
        details are copied into the report.
        """
        self._components[name] = checker_fn

    def _run_probe(self, fn: Callable[[], CheckResult]) -> Dict[str, Any]:
        try:
            result = fn()
        except Exception as exc:
            return {"healthy": False, "error": f"{type(exc).__name__}: {exc}"}
        if isinstance(result, tuple):
            healthy, details = result
            return {"healthy": bool(healthy), **details}
        return {"healthy": bool(result)}

    def check_health(self) -> dict:
        components = {name: self._run_probe(fn) for name, fn in self._components.items()}
        return {
            "healthy": all(c["healthy"] for c in components.values()),
            "version": self.version,
            "uptime_seconds": time.time() - self._start_time,
            "components": components,
        }

    def is_healthy(self) -> bool:
        return self.check_health()["healthy"]


def cache_size_check(cache) -> Callable[[], CheckResult]:
    """Probe that holds while both cache mappings respect max_entries."""

    def _check() -> CheckResult:
        sizes = cache.size()
        ok = all(count <= cache.max_entries for count in sizes.values())
        return ok, {"sizes": sizes, "max_entries": cache.max_entries}

    return _check
