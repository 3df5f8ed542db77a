from __future__ import annotations

from typing import Dict

from protoc_gen_23convert.config import RewriteRules


def _replace_first_prefix(name: str, match_on: str, table: Dict[str, str]) -> str:
    for source, target in table.items():
        if match_on.startswith(source):
            return name.replace(source, target, 1)
    return name


def rewrite_import_path(path: str, rules: RewriteRules) -> str:
    """Rewrite an import path (or output file name) by the first matching prefix rule."""
    if not path:
        return ""
    return _replace_first_prefix(path, path, rules.import_replace)


def rewrite_package(name: str, rules: RewriteRules) -> str:
    """Rewrite a package or fully qualified type name by the first matching prefix rule.

    A leading '.' is ignored while matching but kept in the result, so
    '.foo.Bar' with rule foo -> baz becomes '.baz.Bar'.
    """
    if not name:
        return ""
    match_on = name[1:] if name.startswith(".") else name
    return _replace_first_prefix(name, match_on, rules.package_replace)
