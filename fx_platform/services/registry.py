"""Central registry mapping (flag, implementation name) to concrete class paths.

Paths are strings so importing the registry pulls in neither ``redis`` nor
``prometheus_client`` unless that implementation is selected.
"""

import importlib
from typing import Any

REGISTRY: dict[str, dict[str, str]] = {
    "kv": {
        "memory": "fx_platform.services.kv_store.memory_kv_store.MemoryKeyValueStore",
        "local": "fx_platform.services.kv_store.local_kv_store.LocalKeyValueStore",
        "redis": "fx_platform.services.kv_store.redis_kv_store.RedisKeyValueStore",
    },
    "settings": {
        "memory": "fx_platform.services.settings.memory_settings.MemorySettingsProvider",
        "env": "fx_platform.services.settings.env_settings.EnvSettingsProvider",
        "kv": "fx_platform.services.settings.kv_settings.KeyValueSettingsProvider",
    },
    "fs": {
        "memory": "fx_platform.services.filesystem.memory_filesystem.MemoryFileSystem",
        "local": "fx_platform.services.filesystem.local_filesystem.LocalFileSystem",
    },
    "metrics": {
        "noop": "fx_platform.services.metrics.noop_metrics.NoopMetrics",
        "memory": "fx_platform.services.metrics.memory_metrics.MemoryMetrics",
        "prometheus": "fx_platform.services.metrics.prometheus_metrics.PrometheusMetrics",
    },
    "secrets": {
        "env": "fx_platform.services.secrets.env_secrets.EnvSecrets",
    },
}

# Maps flag name -> interface ABC for DI container registration
INTERFACE_TYPES: dict[str, str] = {
    "kv": "fx_platform.services.kv_store.interface.KeyValueStore",
    "settings": "fx_platform.services.settings.interface.SettingsProvider",
    "fs": "fx_platform.services.filesystem.interface.FileSystemInterface",
    "metrics": "fx_platform.services.metrics.interface.MetricsInterface",
    "secrets": "fx_platform.services.secrets.interface.SecretsInterface",
}


def resolve_class(dotted_path: str) -> type[Any]:
    """Import and return a class from a dotted ``module.ClassName`` path."""
    module_path, class_name = dotted_path.rsplit(".", 1)
    module = importlib.import_module(module_path)
    return getattr(module, class_name)


def resolve_implementation(flag_name: str, impl_name: str) -> type[Any]:
    impls = REGISTRY.get(flag_name)
    if impls is None:
        raise ValueError(f"Unknown interface flag: --{flag_name}")
    dotted = impls.get(impl_name)
    if dotted is None:
        available = ", ".join(impls.keys())
        raise ValueError(
            f"Unknown implementation '{impl_name}' for --{flag_name} (available: {available})"
        )
    return resolve_class(dotted)


def resolve_interface_type(flag_name: str) -> type[Any]:
    dotted = INTERFACE_TYPES.get(flag_name)
    if dotted is None:
        raise ValueError(f"Unknown interface flag: --{flag_name}")
    return resolve_class(dotted)
