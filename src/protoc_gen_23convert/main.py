from __future__ import annotations

import logging
import os
import sys
from typing import List

from google.protobuf import message
from google.protobuf.compiler import plugin_pb2

from protoc_gen_23convert.config import ConfigurationError, RewriteRules, load_rules
from protoc_gen_23convert.generator.file_translator import translate_file
from protoc_gen_23convert.models import RenderedFile
from protoc_gen_23convert.parser.descriptor_parser import UpstreamParseError, parse_request_files
from protoc_gen_23convert.type_mapper import DialectMismatchError

logger = logging.getLogger(__name__)

LOG_LEVEL_ENV = "PROTOC_GEN_23CONVERT_LOG"
LOG_FORMAT = "%(asctime)s %(filename)s:%(lineno)d: %(message)s"


def run(
    request: plugin_pb2.CodeGeneratorRequest,
    rules: RewriteRules,
) -> plugin_pb2.CodeGeneratorResponse:
    """Translate every file protoc asked for and build the plugin response.

    Any error aborts the whole run; a partial response is never returned.
    """
    response = plugin_pb2.CodeGeneratorResponse(
        supported_features=plugin_pb2.CodeGeneratorResponse.FEATURE_PROTO3_OPTIONAL,
    )

    proto_files = parse_request_files(request.proto_file, request.file_to_generate)
    rendered: List[RenderedFile] = []
    for proto_file in proto_files:
        result = translate_file(proto_file, rules)
        if result is not None:
            rendered.append(result)

    for rf in rendered:
        response.file.add(name=rf.name, content=rf.content)
    logger.info("translated %d of %d requested file(s)", len(rendered), len(proto_files))
    return response


def read_request(data: bytes) -> plugin_pb2.CodeGeneratorRequest:
    try:
        return plugin_pb2.CodeGeneratorRequest.FromString(data)
    except message.DecodeError as e:
        raise UpstreamParseError(f"cannot decode CodeGeneratorRequest: {e}") from e


def _configure_logging() -> None:
    level = os.environ.get(LOG_LEVEL_ENV, "WARNING").upper()
    logging.basicConfig(
        stream=sys.stderr,
        level=getattr(logging, level, logging.WARNING),
        format=LOG_FORMAT,
    )


def main():
    _configure_logging()

    data = sys.stdin.buffer.read()
    try:
        request = read_request(data)
        rules = load_rules(request.parameter)
        response = run(request, rules)
    except (ConfigurationError, DialectMismatchError, UpstreamParseError) as e:
        print(f"FATAL: {e}", file=sys.stderr)
        sys.exit(1)

    sys.stdout.buffer.write(response.SerializeToString())
    sys.stdout.buffer.flush()


if __name__ == "__main__":
    main()
