# Tests for packaging and dependency sanity.
#
# The console script must resolve, and every third-party import in the
# package must be declared in pyproject.toml.

import re
import tomllib
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
PYPROJECT = ROOT / "pyproject.toml"
PACKAGE = ROOT / "src" / "product_helper"

# import name -> distribution name
_DISTRIBUTIONS = {
    "anthropic": "anthropic",
    "fastapi": "fastapi",
    "httpx": "httpx",
    "pydantic": "pydantic",
    "pydantic_settings": "pydantic-settings",
    "rich": "rich",
    "uvicorn": "uvicorn",
}


def _load_pyproject() -> dict:
    return tomllib.loads(PYPROJECT.read_text())


def _declared() -> set[str]:
    deps = _load_pyproject()["project"]["dependencies"]
    return {re.split(r"[<>=!~\[ ]", d, maxsplit=1)[0].lower() for d in deps}


def test_third_party_imports_declared():
    imported: set[str] = set()
    for path in PACKAGE.rglob("*.py"):
        for match in re.finditer(r"^\s*(?:from|import)\s+(\w+)", path.read_text(), re.M):
            imported.add(match.group(1))

    declared = _declared()
    for module, dist in _DISTRIBUTIONS.items():
        if module in imported:
            assert dist in declared, f"{module} is imported but {dist} is not a dependency"


def test_console_script():
    scripts = _load_pyproject()["project"]["scripts"]
    assert scripts["product-helper"] == "product_helper.__main__:main"


def test_test_tools_in_dev_extra():
    dev = " ".join(_load_pyproject()["project"]["optional-dependencies"]["dev"])
    assert "pytest" in dev
    assert "pytest-asyncio" in dev
