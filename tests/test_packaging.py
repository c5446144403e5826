import ast
import re
from pathlib import Path

import pytest
import yaml

tomllib = pytest.importorskip("tomllib")

ROOT = Path(__file__).resolve().parent.parent

# import name -> distribution name where they differ
_DISTRIBUTIONS = {"yaml": "pyyaml"}


def _declared() -> set[str]:
    data = tomllib.loads((ROOT / "pyproject.toml").read_text(encoding="utf-8"))
    names = set()
    for req in data["project"]["dependencies"]:
        names.add(re.split(r"[<>=!~\[; ]", req, maxsplit=1)[0].lower())
    return names


def _third_party_imports() -> set[str]:
    found = set()
    for path in (ROOT / "helloci").glob("*.py"):
        tree = ast.parse(path.read_text(encoding="utf-8"))
        for node in ast.walk(tree):
            if isinstance(node, ast.Import):
                found.update(alias.name.split(".")[0] for alias in node.names)
            elif isinstance(node, ast.ImportFrom) and node.level == 0 and node.module:
                found.add(node.module.split(".")[0])
    stdlib = set(getattr(__import__("sys"), "stdlib_module_names", ()))
    return {name for name in found if name not in stdlib and name != "helloci"}


def test_every_imported_library_is_declared():
    declared = _declared()
    for name in _third_party_imports():
        assert _DISTRIBUTIONS.get(name, name) in declared, name


def test_starlette_is_declared():
    assert "starlette" in _declared()


def test_ci_render_step_runs_validate_and_render():
    workflow = yaml.safe_load((ROOT / ".github" / "workflows" / "ci.yml").read_text(encoding="utf-8"))
    steps = {s.get("name"): s for s in workflow["jobs"]["test"]["steps"] if s.get("name")}
    step = steps["Validate and render descriptor"]
    assert "helloci validate deploy/descriptor.yaml" in step["run"]
    assert "helloci render deploy/descriptor.yaml" in step["run"]
