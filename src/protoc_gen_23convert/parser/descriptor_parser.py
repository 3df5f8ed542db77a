"""Build the rendering model from protoc's FileDescriptorProto.

Comments are looked up in SourceCodeInfo by descriptor path, the same
index path protoc uses: field numbers of the repeated descriptor fields
interleaved with element indices.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Tuple

from google.protobuf import descriptor_pb2 as d2
from google.protobuf import descriptor_pool, message_factory, text_encoding, text_format

from protoc_gen_23convert.models import (
    SYNTAX_PROTO2,
    Comments,
    Enum,
    EnumValue,
    Field,
    Message,
    Method,
    ProtoFile,
    Service,
)

logger = logging.getLogger(__name__)

DESCRIPTOR_PROTO = "google/protobuf/descriptor.proto"
METHOD_OPTIONS_TYPE = "google.protobuf.MethodOptions"

# FileDescriptorProto field numbers
_FILE_PACKAGE = 2
_FILE_MESSAGE = 4
_FILE_ENUM = 5
_FILE_SERVICE = 6
_FILE_SYNTAX = 12
# DescriptorProto field numbers
_MESSAGE_FIELD = 2
_MESSAGE_NESTED = 3
_MESSAGE_ENUM = 4
# EnumDescriptorProto / ServiceDescriptorProto field numbers
_ENUM_VALUE = 2
_SERVICE_METHOD = 2

NodePath = Tuple[int, ...]


class UpstreamParseError(Exception):
    """Raised when the request's descriptors cannot be turned into a schema tree."""


def _comment_index(file_proto: d2.FileDescriptorProto) -> Dict[NodePath, Comments]:
    index: Dict[NodePath, Comments] = {}
    for loc in file_proto.source_code_info.location:
        if not (loc.leading_comments or loc.trailing_comments or loc.leading_detached_comments):
            continue
        index[tuple(loc.path)] = Comments(
            detached=[c.strip() for c in loc.leading_detached_comments],
            leading=loc.leading_comments.strip(),
            trailing=loc.trailing_comments.strip(),
        )
    return index


class _Builder:
    def __init__(self, file_proto: d2.FileDescriptorProto, options_cls=None):
        self.file_proto = file_proto
        self.comments = _comment_index(file_proto)
        self.options_cls = options_cls

    def comments_at(self, path: NodePath) -> Comments:
        return self.comments.get(path, Comments())

    def build(self) -> ProtoFile:
        fp = self.file_proto
        return ProtoFile(
            name=fp.name,
            syntax=fp.syntax or SYNTAX_PROTO2,
            package=fp.package,
            dependencies=list(fp.dependency),
            enums=[self.enum(e, (_FILE_ENUM, i)) for i, e in enumerate(fp.enum_type)],
            messages=[self.message(m, (_FILE_MESSAGE, i)) for i, m in enumerate(fp.message_type)],
            services=[self.service(s, (_FILE_SERVICE, i)) for i, s in enumerate(fp.service)],
            cc_generic_services=fp.options.cc_generic_services,
            syntax_comments=self.comments_at((_FILE_SYNTAX,)),
            package_comments=self.comments_at((_FILE_PACKAGE,)),
        )

    def message(self, desc: d2.DescriptorProto, path: NodePath) -> Message:
        return Message(
            name=desc.name,
            nested_messages=[
                self.message(m, path + (_MESSAGE_NESTED, i)) for i, m in enumerate(desc.nested_type)
            ],
            nested_enums=[self.enum(e, path + (_MESSAGE_ENUM, i)) for i, e in enumerate(desc.enum_type)],
            fields=[
                Field(
                    name=f.name,
                    number=f.number,
                    type=f.type,
                    label=f.label,
                    type_name=f.type_name,
                    comments=self.comments_at(path + (_MESSAGE_FIELD, i)),
                )
                for i, f in enumerate(desc.field)
            ],
            comments=self.comments_at(path),
        )

    def enum(self, desc: d2.EnumDescriptorProto, path: NodePath) -> Enum:
        return Enum(
            name=desc.name,
            values=[
                EnumValue(name=v.name, number=v.number, comments=self.comments_at(path + (_ENUM_VALUE, i)))
                for i, v in enumerate(desc.value)
            ],
            comments=self.comments_at(path),
        )

    def service(self, desc: d2.ServiceDescriptorProto, path: NodePath) -> Service:
        methods: List[Method] = []
        for i, m in enumerate(desc.method):
            methods.append(Method(
                name=m.name,
                input_type=m.input_type,
                output_type=m.output_type,
                options=self.method_options(m),
                comments=self.comments_at(path + (_SERVICE_METHOD, i)),
            ))
        return Service(name=desc.name, methods=methods, comments=self.comments_at(path))

    def method_options(self, method: d2.MethodDescriptorProto) -> List[Tuple[str, str]]:
        """Collect custom (extension) options of an rpc as (name, literal) pairs."""
        if self.options_cls is None or not method.HasField("options"):
            return []
        options = self.options_cls.FromString(method.options.SerializeToString())
        result: List[Tuple[str, str]] = []
        for fd, value in options.ListFields():
            if not fd.is_extension:
                continue
            values = value if _is_repeated(fd) else [value]
            result.extend((fd.full_name, option_literal(fd, v)) for v in values)
        return result


def _is_repeated(fd) -> bool:
    # protobuf 7 dropped FieldDescriptor.label; releases before 5.29 lack is_repeated.
    is_repeated = getattr(fd, "is_repeated", None)
    if is_repeated is None:
        return fd.label == fd.LABEL_REPEATED
    return bool(is_repeated)


def option_literal(fd, value) -> str:
    """Format one option value as it must appear after 'option (name) ='."""
    if fd.type in (fd.TYPE_MESSAGE, fd.TYPE_GROUP):
        body = text_format.MessageToString(value, as_one_line=True).strip()
        return f"{{ {body} }}" if body else "{}"
    if fd.type == fd.TYPE_ENUM:
        enum_value = fd.enum_type.values_by_number.get(value)
        return enum_value.name if enum_value is not None else str(value)
    if fd.type == fd.TYPE_BOOL:
        return "true" if value else "false"
    if fd.type == fd.TYPE_STRING:
        return f'"{text_encoding.CEscape(value, as_utf8=True)}"'
    if fd.type == fd.TYPE_BYTES:
        return f'"{text_encoding.CEscape(value, as_utf8=False)}"'
    return str(value)


def build_options_pool(file_protos: Iterable[d2.FileDescriptorProto]) -> Optional[descriptor_pool.DescriptorPool]:
    """Load every file of a request into a fresh DescriptorPool.

    Returns None when descriptor.proto is not among them, since no
    custom option can be defined without it.
    """
    file_by_name = {fp.name: fp for fp in file_protos}
    if DESCRIPTOR_PROTO not in file_by_name:
        return None

    pool = descriptor_pool.DescriptorPool()
    names = list(file_by_name)

    # Dependencies are added before their dependents.
    def add_file(fp: d2.FileDescriptorProto) -> None:
        for dep in fp.dependency:
            if dep in file_by_name:
                add_file(file_by_name.pop(dep))
        pool.Add(fp)

    try:
        while file_by_name:
            add_file(file_by_name.popitem()[1])
        # Registers the request's extensions with their extended classes.
        message_factory.GetMessageClassesForFiles(names, pool)
    except (TypeError, ValueError, KeyError) as e:
        raise UpstreamParseError(f"cannot load request descriptors: {e}") from e
    return pool


def _method_options_class(pool: Optional[descriptor_pool.DescriptorPool]):
    if pool is None:
        return None
    try:
        desc = pool.FindMessageTypeByName(METHOD_OPTIONS_TYPE)
    except KeyError:
        return None
    return message_factory.GetMessageClass(desc)


def parse_file(
    file_proto: d2.FileDescriptorProto,
    options_pool: Optional[descriptor_pool.DescriptorPool] = None,
) -> ProtoFile:
    """Turn a FileDescriptorProto into a ProtoFile with comments attached."""
    if not file_proto.name:
        raise UpstreamParseError("file descriptor without a name")
    logger.debug("parsing %s", file_proto.name)
    return _Builder(file_proto, _method_options_class(options_pool)).build()


def parse_request_files(
    file_protos: Iterable[d2.FileDescriptorProto],
    files_to_generate: Iterable[str],
) -> List[ProtoFile]:
    """Parse the files protoc asked to generate, in request order."""
    file_protos = list(file_protos)
    wanted = set(files_to_generate)
    known = {fp.name for fp in file_protos}
    missing = sorted(wanted - known)
    if missing:
        raise UpstreamParseError(f"files to generate not present in request: {', '.join(missing)}")

    pool = build_options_pool(file_protos)
    return [parse_file(fp, pool) for fp in file_protos if fp.name in wanted]
