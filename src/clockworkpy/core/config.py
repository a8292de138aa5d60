"""Configuration loaded from CLOCKWORK_* environment variables."""

import os
from dataclasses import dataclass, field

from clockworkpy.core.serializer import DEFAULT_SENSITIVE_KEYS


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_list(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return tuple(item.strip() for item in raw.split(",") if item.strip())


@dataclass(frozen=True)
class ClockworkConfig:
    enabled: bool = True
    storage_path: str = ""
    storage_max_requests: int = 100
    api_path: str = "/__clockwork"
    headers: bool = True
    except_paths: tuple[str, ...] = ()
    only_paths: tuple[str, ...] = ()
    except_preflight: bool = True
    errors_only: bool = False
    slow_threshold_ms: float = 0
    sensitive_keys: tuple[str, ...] = field(default=DEFAULT_SENSITIVE_KEYS)
    authentication_password: str | None = None

    def collect_rules(self) -> dict[str, object]:
        return {
            "except_paths": list(self.except_paths),
            "only_paths": list(self.only_paths),
            "except_preflight": self.except_preflight,
        }

    def record_rules(self) -> dict[str, object]:
        return {"errors_only": self.errors_only, "slow_only": self.slow_threshold_ms}


def load_config() -> ClockworkConfig:
    """Build ClockworkConfig from CLOCKWORK_* environment variables."""
    defaults = ClockworkConfig()
    return ClockworkConfig(
        enabled=_env_bool("CLOCKWORK_ENABLE", defaults.enabled),
        storage_path=os.environ.get("CLOCKWORK_STORAGE_PATH", defaults.storage_path),
        storage_max_requests=int(
            os.environ.get("CLOCKWORK_STORAGE_MAX_REQUESTS", defaults.storage_max_requests)
        ),
        api_path=os.environ.get("CLOCKWORK_API_PATH", defaults.api_path),
        headers=_env_bool("CLOCKWORK_HEADERS", defaults.headers),
        except_paths=_env_list("CLOCKWORK_EXCEPT_PATHS", defaults.except_paths),
        only_paths=_env_list("CLOCKWORK_ONLY_PATHS", defaults.only_paths),
        except_preflight=_env_bool("CLOCKWORK_EXCEPT_PREFLIGHT", defaults.except_preflight),
        errors_only=_env_bool("CLOCKWORK_ERRORS_ONLY", defaults.errors_only),
        slow_threshold_ms=float(
            os.environ.get("CLOCKWORK_SLOW_THRESHOLD", defaults.slow_threshold_ms)
        ),
        sensitive_keys=_env_list("CLOCKWORK_SENSITIVE_KEYS", defaults.sensitive_keys),
        authentication_password=os.environ.get(
            "CLOCKWORK_AUTHENTICATION_PASSWORD", defaults.authentication_password
        ),
    )
