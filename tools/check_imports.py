"""Validate Python layer import boundaries for inkora."""

from __future__ import annotations

import ast
from pathlib import Path

PACKAGE = "inkora"
PROJECT_ROOT = Path(__file__).resolve().parents[1]
DEFAULT_SOURCE_ROOT = PROJECT_ROOT / "src" / PACKAGE
KNOWN_LAYERS = {"api", "adapters", "application", "cli", "domain"}
RULES: dict[str, set[str]] = {
    "domain": {"api", "adapters", "application", "cli"},
    "application": {"api", "adapters", "cli"},
    "adapters": {"api", "application", "cli"},
}


def _layer_for_path(path: Path, source_root: Path) -> str | None:
    try:
        relative = path.relative_to(source_root)
    except ValueError:
        return None
    if len(relative.parts) < 2:
        return None
    return relative.parts[0]


def _layer_of_module(module_name: str, names: list[str]) -> set[str]:
    """Layers referenced by `module_name`, or by `names` imported from the package root."""
    parts = module_name.split(".")
    if parts[0] != PACKAGE:
        return set()
    if len(parts) >= 2:
        return {parts[1]} if parts[1] in KNOWN_LAYERS else set()
    return {name for name in names if name in KNOWN_LAYERS}


def _absolute_module(node: ast.ImportFrom, path: Path, source_root: Path) -> str | None:
    if node.level == 0:
        return node.module
    relative = path.relative_to(source_root)
    package_parts = [PACKAGE, *relative.parts[:-1]]
    if node.level > len(package_parts):
        return None
    base = package_parts[: len(package_parts) - node.level + 1]
    if node.module:
        base = [*base, *node.module.split(".")]
    return ".".join(base)


def imported_layers(
    node: ast.Import | ast.ImportFrom, path: Path, source_root: Path
) -> set[str]:
    if isinstance(node, ast.Import):
        layers: set[str] = set()
        for alias in node.names:
            layers |= _layer_of_module(alias.name, [])
        return layers
    module_name = _absolute_module(node, path, source_root)
    if not module_name:
        return set()
    return _layer_of_module(module_name, [alias.name for alias in node.names])


def check_file(path: Path, source_root: Path = DEFAULT_SOURCE_ROOT) -> list[str]:
    layer = _layer_for_path(path, source_root)
    banned_layers = RULES.get(layer or "", set())
    if not banned_layers:
        return []

    tree = ast.parse(path.read_text(encoding="utf-8"), filename=str(path))
    violations: list[str] = []
    for node in ast.walk(tree):
        if not isinstance(node, (ast.Import, ast.ImportFrom)):
            continue
        for imported_layer in sorted(imported_layers(node, path, source_root) & banned_layers):
            violations.append(f"{path}: {layer} must not import {PACKAGE}.{imported_layer}")
    return violations


def check_import_boundaries(source_root: Path = DEFAULT_SOURCE_ROOT) -> list[str]:
    violations: list[str] = []
    for path in sorted(source_root.rglob("*.py")):
        violations.extend(check_file(path, source_root))
    return violations


def main() -> None:
    violations = check_import_boundaries()
    if violations:
        raise SystemExit("\n".join(violations))
    print("import boundary checks passed")


if __name__ == "__main__":
    main()
