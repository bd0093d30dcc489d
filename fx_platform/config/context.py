from typing import Any


class ModuleConfig:
    """Parsed module arguments (from ``module.json`` definitions) with dict-style access."""

    def __init__(self, args: dict[str, Any]) -> None:
        self._args = args

    def get(self, key: str, default: Any = None) -> Any:
        return self._args.get(key, default)

    def require(self, key: str) -> Any:
        if key not in self._args:
            raise KeyError(f"Module argument '{key}' is not set")
        return self._args[key]

    def __contains__(self, key: str) -> bool:
        return key in self._args

    def __repr__(self) -> str:
        return f"ModuleConfig({self._args})"
