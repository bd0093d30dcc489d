"""Loads ``.env/<name>.env`` files of ``KEY=VALUE`` lines.

Blank lines and ``#`` comments are skipped, an optional ``export`` prefix is
dropped, and one layer of matching single or double quotes is stripped.
Inline ``#`` after a value is kept as part of the value.
"""

from pathlib import Path

# Two levels up from fx_platform/config/
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent


def load_env_file(env_name: str = "local", project_root: Path | None = None) -> dict[str, str]:
    """Return the variables in ``.env/<env_name>.env``, or ``{}`` if the file is missing.

    *env_name* may also be a path to an existing file.
    """
    candidate = Path(env_name)
    if candidate.suffix == ".env" and candidate.is_file():
        return _parse_env_file(candidate)
    env_file = (project_root or _PROJECT_ROOT) / ".env" / f"{env_name}.env"
    if not env_file.exists():
        return {}
    return _parse_env_file(env_file)


def _parse_env_file(path: Path) -> dict[str, str]:
    result: dict[str, str] = {}
    for line in path.read_text().splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        if line.startswith("export "):
            line = line[len("export "):]
        key, _, value = line.partition("=")
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in ('"', "'"):
            value = value[1:-1]
        result[key.strip()] = value
    return result
