from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict

import yaml

from protoc_gen_23convert.models import SYNTAX_PROTO2, SYNTAX_PROTO3


VALIDATE_IMPORT = "validate/validate.proto"


class ConfigurationError(Exception):
    """Raised when the rewrite rule file is missing or malformed."""


@dataclass(frozen=True)
class RewriteRules:
    """Rewrite rules loaded once per plugin invocation.

    Rule tables keep their declaration order: the first prefix that
    matches wins, even when a longer prefix further down would too.
    """

    package_replace: Dict[str, str] = field(default_factory=dict)
    import_replace: Dict[str, str] = field(default_factory=dict)
    delete_validate: bool = False
    target_syntax: str = SYNTAX_PROTO2


def _rule_table(raw: dict, key: str) -> Dict[str, str]:
    table = raw.get(key)
    if table is None:
        return {}
    if not isinstance(table, dict):
        raise ConfigurationError(f"'{key}' must be a mapping, got {type(table).__name__}")
    return {str(source): str(target) for source, target in table.items()}


def parse_rules(raw) -> RewriteRules:
    """Build RewriteRules from an already deserialized YAML document."""
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigurationError(f"rule file must contain a mapping, got {type(raw).__name__}")

    target_syntax = raw.get("TargetSyntax") or SYNTAX_PROTO2
    if target_syntax not in (SYNTAX_PROTO2, SYNTAX_PROTO3):
        raise ConfigurationError(
            f"unsupported TargetSyntax '{target_syntax}', expected '{SYNTAX_PROTO2}' or '{SYNTAX_PROTO3}'"
        )

    delete_validate = raw.get("DeleteValidate")
    if delete_validate is None:
        delete_validate = False
    if not isinstance(delete_validate, bool):
        raise ConfigurationError(
            f"'DeleteValidate' must be true or false, got {type(delete_validate).__name__} {delete_validate!r}"
        )

    return RewriteRules(
        package_replace=_rule_table(raw, "PackageReplace"),
        import_replace=_rule_table(raw, "ImportReplace"),
        delete_validate=delete_validate,
        target_syntax=target_syntax,
    )


def load_rules(path: str) -> RewriteRules:
    """Load the YAML rule file named by the plugin parameter."""
    if not path:
        raise ConfigurationError("no rule file given, pass one with --23convert_opt=<rules.yaml>")
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(f"cannot read rule file '{path}': {e}") from e
    try:
        raw = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"invalid YAML in rule file '{path}': {e}") from e
    return parse_rules(raw)
