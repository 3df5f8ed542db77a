from __future__ import annotations

import functools
from pathlib import Path
from typing import List

from jinja2 import Environment, FileSystemLoader

from protoc_gen_23convert.config import RewriteRules
from protoc_gen_23convert.generator.comments import attach_comments, indent
from protoc_gen_23convert.models import Comments, Enum, Field, Message, Method, Service
from protoc_gen_23convert.rewriter import rewrite_package
from protoc_gen_23convert.type_mapper import DialectMismatchError, label_text, type_text

INDENT_WIDTH = 4


@functools.lru_cache(maxsize=None)
def get_template_env() -> Environment:
    template_dir = Path(__file__).parent.parent / "templates"
    return Environment(
        loader=FileSystemLoader(str(template_dir)),
        keep_trailing_newline=True,
        trim_blocks=True,
    )


def _nested(text: str, comments: Comments) -> str:
    return indent(attach_comments(text, comments), INDENT_WIDTH)


def render_field(field: Field, rules: RewriteRules) -> str:
    """Render a single field line, e.g. 'optional string name = 1;'."""
    try:
        label = label_text(field.label, rules.target_syntax)
    except DialectMismatchError as e:
        raise DialectMismatchError(f"field '{field.name}': {e}") from e
    tokens = [label, rewrite_package(type_text(field), rules), field.name]
    return " ".join(t for t in tokens if t) + f" = {field.number};\n"


def render_enum(enum: Enum) -> str:
    lines: List[str] = [f"enum {enum.name} {{\n"]
    for value in enum.values:
        lines.append(_nested(f"{value.name} = {value.number};\n", value.comments))
    lines.append("}\n")
    return "".join(lines)


def render_message(message: Message, rules: RewriteRules) -> str:
    """Render a message definition with everything nested inside it.

    Nested messages come first, then nested enums, then fields. Each
    group keeps its declaration order.
    """
    lines: List[str] = [f"message {message.name} {{\n"]
    for nested in message.nested_messages:
        lines.append(_nested(render_message(nested, rules), nested.comments))
    for nested_enum in message.nested_enums:
        lines.append(_nested(render_enum(nested_enum), nested_enum.comments))
    for field in message.fields:
        lines.append(_nested(render_field(field, rules), field.comments))
    lines.append("}\n")
    return "".join(lines)


def render_method(method: Method, rules: RewriteRules) -> str:
    """Render an rpc block. Options are emitted sorted by name."""
    template = get_template_env().get_template("method.proto.j2")
    return template.render(
        name=method.name,
        input_type=rewrite_package(method.input_type, rules),
        output_type=rewrite_package(method.output_type, rules),
        options=sorted(method.options, key=lambda option: option[0]),
    )


def render_service(service: Service, rules: RewriteRules) -> str:
    lines: List[str] = [f"service {service.name} {{\n"]
    for method in service.methods:
        lines.append(_nested(render_method(method, rules), method.comments))
    lines.append("}\n")
    return "".join(lines)
