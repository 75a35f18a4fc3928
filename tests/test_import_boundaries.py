from __future__ import annotations

import importlib.util
from pathlib import Path
from types import ModuleType

ROOT = Path(__file__).resolve().parents[1]


def _load_checker_module() -> ModuleType:
    module_path = ROOT / "tools" / "check_imports.py"
    spec = importlib.util.spec_from_file_location("check_imports_tool", module_path)
    assert spec is not None
    loader = spec.loader
    assert loader is not None
    module = importlib.util.module_from_spec(spec)
    loader.exec_module(module)
    return module


def _write(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def test_application_may_import_domain(tmp_path: Path) -> None:
    checker = _load_checker_module()
    source_root = tmp_path / "src" / "inkora"
    module = source_root / "application" / "story_detail.py"
    _write(module, "from inkora.domain.query import table\nfrom . import pagination\n")
    assert checker.check_file(module, source_root) == []


def test_application_must_not_import_adapters(tmp_path: Path) -> None:
    checker = _load_checker_module()
    source_root = tmp_path / "src" / "inkora"
    module = source_root / "application" / "story_detail.py"
    _write(module, "from inkora.adapters.sqlite_baas import SQLiteBaas\n")
    violations = checker.check_file(module, source_root)
    assert len(violations) == 1
    assert "application must not import inkora.adapters" in violations[0]


def test_domain_relative_and_package_root_imports_are_checked(tmp_path: Path) -> None:
    checker = _load_checker_module()
    source_root = tmp_path / "src" / "inkora"
    module = source_root / "domain" / "models.py"
    _write(module, "from ..api import contracts\nfrom inkora import application\n")
    violations = checker.check_file(module, source_root)
    assert len(violations) == 2
    assert any("domain must not import inkora.api" in violation for violation in violations)
    assert any("domain must not import inkora.application" in violation for violation in violations)


def test_api_layer_is_unrestricted(tmp_path: Path) -> None:
    checker = _load_checker_module()
    source_root = tmp_path / "src" / "inkora"
    module = source_root / "api" / "app.py"
    _write(module, "from inkora.adapters.baas_factory import create_baas_client\n")
    assert checker.check_file(module, source_root) == []


def test_repository_sources_respect_boundaries() -> None:
    checker = _load_checker_module()
    assert checker.check_import_boundaries() == []
