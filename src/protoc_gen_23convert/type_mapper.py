from __future__ import annotations

from typing import Dict

from google.protobuf import descriptor_pb2 as d2

from protoc_gen_23convert.models import SYNTAX_PROTO2, SYNTAX_PROTO3, Field


class DialectMismatchError(Exception):
    """Raised when a field label cannot be expressed in the target syntax."""


# FieldDescriptorProto.Type -> .proto keyword. Group, message and enum
# types are absent and fall through to the field's type_name.
# Tag 7 (TYPE_FIXED32) renders as "fixed64", matching earlier output.
SCALAR_TYPE_MAP: Dict[int, str] = {
    1: "double",
    2: "float",
    3: "int64",
    4: "uint64",
    5: "int32",
    6: "fixed64",
    7: "fixed64",
    8: "bool",
    9: "string",
    12: "bytes",
    13: "uint32",
    15: "sfixed32",
    16: "sfixed64",
    17: "sint32",
    18: "sint64",
}


def _label_name(label: int) -> str:
    try:
        return d2.FieldDescriptorProto.Label.Name(label)
    except ValueError:
        return str(label)


def label_text(label: int, target_syntax: str) -> str:
    """Return the label keyword for a field in the target syntax.

    Raises DialectMismatchError when the target syntax cannot express
    the label, e.g. a required field rendered as proto3.
    """
    if label == d2.FieldDescriptorProto.LABEL_REPEATED:
        return "repeated"

    if target_syntax == SYNTAX_PROTO3:
        if label == d2.FieldDescriptorProto.LABEL_OPTIONAL:
            return ""
    elif target_syntax == SYNTAX_PROTO2:
        if label == d2.FieldDescriptorProto.LABEL_OPTIONAL:
            return "optional"
        if label == d2.FieldDescriptorProto.LABEL_REQUIRED:
            return "required"

    raise DialectMismatchError(
        f"label {_label_name(label)} cannot be expressed with TargetSyntax '{target_syntax}'"
    )


def type_text(field: Field) -> str:
    """Return the scalar keyword for a field, or its declared type name."""
    return SCALAR_TYPE_MAP.get(field.type, field.type_name)
