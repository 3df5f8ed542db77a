from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Tuple


SYNTAX_PROTO2 = "proto2"
SYNTAX_PROTO3 = "proto3"


@dataclass
class Comments:
    """Comments attached to a schema node by protoc's SourceCodeInfo."""

    detached: List[str] = field(default_factory=list)
    leading: str = ""
    trailing: str = ""


@dataclass
class Field:
    name: str
    number: int
    type: int
    label: int
    type_name: str = ""
    comments: Comments = field(default_factory=Comments)


@dataclass
class EnumValue:
    name: str
    number: int
    comments: Comments = field(default_factory=Comments)


@dataclass
class Enum:
    name: str
    values: List[EnumValue] = field(default_factory=list)
    comments: Comments = field(default_factory=Comments)


@dataclass
class Message:
    name: str
    nested_messages: List[Message] = field(default_factory=list)
    nested_enums: List[Enum] = field(default_factory=list)
    fields: List[Field] = field(default_factory=list)
    comments: Comments = field(default_factory=Comments)


@dataclass
class Method:
    name: str
    input_type: str
    output_type: str
    # (option full name, .proto literal) pairs; repeated options appear once per value
    options: List[Tuple[str, str]] = field(default_factory=list)
    comments: Comments = field(default_factory=Comments)


@dataclass
class Service:
    name: str
    methods: List[Method] = field(default_factory=list)
    comments: Comments = field(default_factory=Comments)


@dataclass
class ProtoFile:
    name: str
    syntax: str
    package: str = ""
    dependencies: List[str] = field(default_factory=list)
    enums: List[Enum] = field(default_factory=list)
    messages: List[Message] = field(default_factory=list)
    services: List[Service] = field(default_factory=list)
    cc_generic_services: bool = False
    syntax_comments: Comments = field(default_factory=Comments)
    package_comments: Comments = field(default_factory=Comments)


@dataclass
class RenderedFile:
    name: str
    content: str
