from __future__ import annotations

import logging
from typing import List, Optional

from protoc_gen_23convert.config import VALIDATE_IMPORT, RewriteRules
from protoc_gen_23convert.generator.comments import attach_comments
from protoc_gen_23convert.generator.proto_renderer import (
    get_template_env,
    render_enum,
    render_message,
    render_service,
)
from protoc_gen_23convert.models import SYNTAX_PROTO2, ProtoFile, RenderedFile
from protoc_gen_23convert.rewriter import rewrite_import_path, rewrite_package

logger = logging.getLogger(__name__)


def _imports(proto_file: ProtoFile, rules: RewriteRules) -> List[str]:
    imports: List[str] = []
    for dep in proto_file.dependencies:
        if rules.delete_validate and dep == VALIDATE_IMPORT:
            logger.debug("%s: dropping import %s", proto_file.name, dep)
            continue
        imports.append(rewrite_import_path(dep, rules))
    return imports


def _definitions(proto_file: ProtoFile, rules: RewriteRules) -> List[str]:
    definitions: List[str] = []
    for enum in proto_file.enums:
        definitions.append(attach_comments(render_enum(enum), enum.comments))
    for message in proto_file.messages:
        definitions.append(attach_comments(render_message(message, rules), message.comments))
    for service in proto_file.services:
        definitions.append(attach_comments(render_service(service, rules), service.comments))
    return definitions


def render_file(proto_file: ProtoFile, rules: RewriteRules) -> str:
    """Render the full .proto source of a file in the target syntax."""
    env = get_template_env()
    template = env.get_template("proto_file.proto.j2")

    syntax_line = attach_comments(f'syntax = "{rules.target_syntax}";\n', proto_file.syntax_comments)
    package_line = ""
    if proto_file.package:
        package_line = attach_comments(
            f"package {rewrite_package(proto_file.package, rules)};\n",
            proto_file.package_comments,
        )

    return template.render(
        syntax_line=syntax_line,
        package_line=package_line,
        imports=_imports(proto_file, rules),
        cc_generic_services=proto_file.cc_generic_services,
        definitions=_definitions(proto_file, rules),
    )


def translate_file(proto_file: ProtoFile, rules: RewriteRules) -> Optional[RenderedFile]:
    """Translate one schema file.

    Returns None for files already declared as proto2; only proto3
    sources are translated.
    """
    if proto_file.syntax == SYNTAX_PROTO2:
        logger.info("skipping %s: source syntax is proto2", proto_file.name)
        return None

    name = rewrite_import_path(proto_file.name, rules)
    logger.debug("translating %s -> %s", proto_file.name, name)
    return RenderedFile(name=name, content=render_file(proto_file, rules))
