from __future__ import annotations

import asyncio
import importlib
import json
import sys
from pathlib import Path
from typing import Any

from fx_platform.config.container import Container
from fx_platform.config.context import ModuleConfig
from fx_platform.config.env_loader import load_env_file
from fx_platform.modules.base import AsyncModule
from fx_platform.services.logger.factory import LoggerFactory
from fx_platform.services.registry import resolve_implementation, resolve_interface_type
from fx_platform.services.secrets.env_secrets import EnvSecrets
from fx_platform.services.secrets.interface import SecretsInterface

MODULES_DIR = Path(__file__).resolve().parent.parent / "modules"

_USAGE = "Usage: python -m fx_platform run <module_name> [flags] [module args]"

# Global flags that select interface implementations: flag -> (default, help).
# Registration follows this order, so a flag may depend on any flag above it
# (the kv-backed settings provider needs the key-value store).
_GLOBAL_FLAGS: dict[str, tuple[str, str]] = {
    "kv": ("memory", "Key-value store: memory, local, redis"),
    "settings": ("env", "Settings: memory, env, kv"),
    "fs": ("local", "File system: memory, local"),
    "metrics": ("noop", "Metrics: noop, memory, prometheus"),
    "log": ("pretty", "Logging format: pretty, memory"),
}


def load_module_descriptor(module_name: str) -> dict[str, Any]:
    module_json = MODULES_DIR / module_name / "module.json"
    if not module_json.exists():
        raise FileNotFoundError(f"module '{module_name}' not found at {module_json}")
    with open(module_json) as f:
        return json.load(f)


def parse_module_args(descriptor: dict[str, Any], raw_args: list[str]) -> dict[str, Any]:
    """Parse CLI args against the module.json arg definitions."""
    arg_defs: list[dict[str, Any]] = descriptor.get("args", [])
    known = {arg_def["name"] for arg_def in arg_defs}
    parsed: dict[str, str] = {}

    i = 0
    while i < len(raw_args):
        arg = raw_args[i]
        if not arg.startswith("--"):
            raise ValueError(f"Unexpected argument: {arg}")
        key = arg[2:]
        if key not in known:
            raise ValueError(f"Unknown argument: --{key}")
        if i + 1 < len(raw_args) and not raw_args[i + 1].startswith("--"):
            parsed[key] = raw_args[i + 1]
            i += 2
        else:
            parsed[key] = "true"
            i += 1

    result: dict[str, Any] = {}
    errors: list[str] = []
    for arg_def in arg_defs:
        name = arg_def["name"]
        if name in parsed:
            try:
                result[name] = _cast_value(parsed[name], arg_def.get("type", "string"))
            except ValueError:
                errors.append(f"Invalid {arg_def.get('type')} for --{name}: '{parsed[name]}'")
        elif "default" in arg_def:
            result[name] = arg_def["default"]
        elif arg_def.get("required", False):
            errors.append(f"Missing required argument: --{name}")

        if name in result and "choices" in arg_def and result[name] not in arg_def["choices"]:
            errors.append(
                f"Invalid value for --{name}: '{result[name]}' "
                f"(choices: {', '.join(str(c) for c in arg_def['choices'])})"
            )

    if errors:
        raise ValueError("; ".join(errors))
    return result


def _cast_value(value: str, type_name: str) -> Any:
    match type_name:
        case "integer":
            return int(value)
        case "float":
            return float(value)
        case "boolean":
            return value.lower() in ("true", "1", "yes")
        case _:
            return value


def _parse_env_overrides(raw: str) -> dict[str, str]:
    """Parse a JSON object of string keys and string values."""
    data = json.loads(raw)
    if not isinstance(data, dict):
        raise ValueError("--env value must be a JSON object")
    for k, v in data.items():
        if not isinstance(k, str) or not isinstance(v, str):
            raise ValueError("--env JSON must have string keys and string values")
    return data


def _extract_global_flags(remaining: list[str]) -> tuple[dict[str, str], dict[str, str], list[str]]:
    """Split global flags from module args.

    Returns (impl_flags, env_overrides, module_args). ``impl_flags`` holds
    every flag in ``_GLOBAL_FLAGS``, defaulted where not given. Variables
    from ``--env-file`` lose to those given with ``--env``.
    """
    impl_flags = {name: default for name, (default, _) in _GLOBAL_FLAGS.items()}
    env_overrides: dict[str, str] = {}
    env_file: str | None = None
    filtered_args: list[str] = []

    all_flag_names = set(_GLOBAL_FLAGS) | {"env", "env-file"}

    i = 0
    while i < len(remaining):
        flag = remaining[i]
        if flag.startswith("--") and flag[2:] in all_flag_names and i + 1 < len(remaining):
            name = flag[2:]
            value = remaining[i + 1]
            if name == "env":
                env_overrides.update(_parse_env_overrides(value))
            elif name == "env-file":
                env_file = value
            else:
                impl_flags[name] = value
            i += 2
        else:
            filtered_args.append(flag)
            i += 1

    if env_file:
        merged = load_env_file(env_file)
        merged.update(env_overrides)
        env_overrides = merged

    if "--log" not in remaining and "LOG_IMPL" in env_overrides:
        impl_flags["log"] = env_overrides["LOG_IMPL"]

    return impl_flags, env_overrides, filtered_args


def print_module_help(descriptor: dict[str, Any]) -> None:
    version = descriptor.get("version", "")
    version_suffix = f" v{version}" if version else ""
    print(f"\n  {descriptor['display_name']}{version_suffix}")
    print(f"  {descriptor['description']}\n")
    module_type = descriptor.get("type")
    if module_type:
        print(f"  Type: {module_type}")
        print()

    args = descriptor.get("args", [])
    if args:
        print("  Module arguments:")
        for arg in args:
            required = " (required)" if arg.get("required") else ""
            default = f" [default: {arg['default']}]" if "default" in arg else ""
            print(f"    --{arg['name']:20s} {arg['description']}{required}{default}")
        print()

    print("  Global flags:")
    for name, (default, text) in _GLOBAL_FLAGS.items():
        print(f"    --{name:20s} {text} [default: {default}]")
    print(f"    --{'env':20s} JSON string of env var overrides")
    print(f"    --{'env-file':20s} Environment file name (loads .env/<name>.env)")
    print()


def _build_container(
    impl_flags: dict[str, str],
    env_overrides: dict[str, str],
    module_args: dict[str, Any],
) -> Container:
    """Build the DI container with every selected service registered."""
    container = Container()
    container.register_instance(Container, container)

    secrets = EnvSecrets(overrides=env_overrides)
    container.register_instance(SecretsInterface, secrets)
    container.register_instance(ModuleConfig, ModuleConfig(module_args))
    container.register_instance(LoggerFactory, LoggerFactory(default_impl=impl_flags.get("log", "pretty")))

    for flag_name in _GLOBAL_FLAGS:
        if flag_name == "log":
            continue
        impl_cls = resolve_implementation(flag_name, impl_flags[flag_name])
        container.register_instance(resolve_interface_type(flag_name), container.resolve(impl_cls))

    return container


def run_module(argv: list[str]) -> tuple[int, AsyncModule | None]:
    """Parse args, build the container, run the module; returns (exit_code, module)."""
    if len(argv) < 2 or argv[0] != "run":
        raise ValueError(_USAGE)

    module_name = argv[1]
    remaining = argv[2:]
    descriptor = load_module_descriptor(module_name)

    if "--help" in remaining or "-h" in remaining:
        print_module_help(descriptor)
        return 0, None

    impl_flags, env_overrides, filtered_args = _extract_global_flags(remaining)
    module_args = parse_module_args(descriptor, filtered_args)
    container = _build_container(impl_flags, env_overrides, module_args)

    mod = importlib.import_module(f"fx_platform.modules.{module_name}.main")
    if not hasattr(mod, "module_class"):
        raise AttributeError(
            f"Module 'fx_platform.modules.{module_name}.main' must define a 'module_class' attribute"
        )

    module_instance = container.resolve(mod.module_class)
    exit_code = asyncio.run(module_instance.run())
    return exit_code, module_instance


def run_cli(argv: list[str] | None = None) -> None:
    args = argv if argv is not None else sys.argv[1:]
    try:
        exit_code, _ = run_module(args)
        sys.exit(exit_code)
    except (ValueError, FileNotFoundError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
