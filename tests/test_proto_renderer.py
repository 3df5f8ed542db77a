import pytest
from google.protobuf import descriptor_pb2 as d2

from protoc_gen_23convert.config import RewriteRules
from protoc_gen_23convert.generator.proto_renderer import (
    get_template_env,
    render_enum,
    render_field,
    render_message,
    render_method,
    render_service,
)
from protoc_gen_23convert.models import Comments, Enum, EnumValue, Field, Message, Method, Service
from protoc_gen_23convert.type_mapper import DialectMismatchError

FDP = d2.FieldDescriptorProto

PROTO2 = RewriteRules(target_syntax="proto2")
PROTO3 = RewriteRules(target_syntax="proto3")


def _make_field(name: str, number: int, type_=FDP.TYPE_INT32, label=FDP.LABEL_OPTIONAL,
                type_name: str = "", comments: Comments = None) -> Field:
    return Field(
        name=name,
        number=number,
        type=type_,
        label=label,
        type_name=type_name,
        comments=comments or Comments(),
    )


class TestRenderField:
    def test_proto2_optional(self):
        field = _make_field("name", 1, FDP.TYPE_STRING)
        assert render_field(field, PROTO2) == "optional string name = 1;\n"

    def test_proto3_optional_has_no_label(self):
        field = _make_field("name", 1, FDP.TYPE_STRING)
        assert render_field(field, PROTO3) == "string name = 1;\n"

    def test_repeated_message_type_is_rewritten(self):
        rules = RewriteRules(package_replace={"a.b": "x.y"})
        field = _make_field("items", 2, FDP.TYPE_MESSAGE, FDP.LABEL_REPEATED, ".a.b.Item")
        assert render_field(field, rules) == "repeated .x.y.Item items = 2;\n"

    def test_field_number_kept_verbatim(self):
        field = _make_field("big", 536870911, FDP.TYPE_UINT64)
        assert render_field(field, PROTO2) == "optional uint64 big = 536870911;\n"

    def test_required_under_proto3_names_field(self):
        field = _make_field("id", 1, label=FDP.LABEL_REQUIRED)
        with pytest.raises(DialectMismatchError, match="field 'id'"):
            render_field(field, PROTO3)


class TestRenderEnum:
    def test_values_in_order(self):
        enum = Enum("Color", [EnumValue("RED", 0), EnumValue("GREEN", 1), EnumValue("BLUE", -1)])
        assert render_enum(enum) == (
            "enum Color {\n"
            "    RED = 0;\n"
            "    GREEN = 1;\n"
            "    BLUE = -1;\n"
            "}\n"
        )

    def test_value_comments(self):
        enum = Enum("Color", [
            EnumValue("RED", 0, Comments(trailing="primary")),
            EnumValue("GREEN", 1, Comments(leading="second")),
        ])
        assert render_enum(enum) == (
            "enum Color {\n"
            "    RED = 0;/* primary */\n"
            "\n"
            "\n"
            "    /*\n"
            "      second\n"
            "      */\n"
            "    GREEN = 1;\n"
            "}\n"
        )


class TestRenderMessage:
    def test_empty_message(self):
        assert render_message(Message("Empty"), PROTO2) == "message Empty {\n}\n"

    def test_groups_messages_then_enums_then_fields(self):
        message = Message(
            name="M",
            nested_messages=[Message("A"), Message("B")],
            nested_enums=[Enum("E", [EnumValue("E0", 0)])],
            fields=[
                _make_field("f1", 1),
                _make_field("f2", 2),
                _make_field("f3", 3),
            ],
        )
        assert render_message(message, PROTO2) == (
            "message M {\n"
            "    message A {\n"
            "    }\n"
            "    message B {\n"
            "    }\n"
            "    enum E {\n"
            "        E0 = 0;\n"
            "    }\n"
            "    optional int32 f1 = 1;\n"
            "    optional int32 f2 = 2;\n"
            "    optional int32 f3 = 3;\n"
            "}\n"
        )

    def test_deep_nesting_indents_each_level(self):
        inner = Message("Inner", fields=[_make_field("x", 1)])
        middle = Message("Middle", nested_messages=[inner])
        outer = Message("Outer", nested_messages=[middle])
        result = render_message(outer, PROTO3)
        assert "        message Inner {\n            int32 x = 1;\n        }\n" in result

    def test_nested_comments_are_indented(self):
        nested = Message("A", comments=Comments(leading="Inner doc"))
        result = render_message(Message("M", nested_messages=[nested]), PROTO2)
        assert result == (
            "message M {\n"
            "\n"
            "\n"
            "    /*\n"
            "      Inner doc\n"
            "      */\n"
            "    message A {\n"
            "    }\n"
            "}\n"
        )

    def test_field_trailing_comment(self):
        field = _make_field("id", 1, comments=Comments(trailing="primary key"))
        result = render_message(Message("M", fields=[field]), PROTO2)
        assert "    optional int32 id = 1;/* primary key */\n" in result

    def test_required_field_fails_under_proto3(self):
        message = Message("M", fields=[_make_field("id", 1, label=FDP.LABEL_REQUIRED)])
        with pytest.raises(DialectMismatchError):
            render_message(message, PROTO3)


class TestRenderMethod:
    def test_without_options(self):
        method = Method("Get", ".a.Req", ".a.Resp")
        assert render_method(method, PROTO2) == "rpc Get(.a.Req) returns (.a.Resp) {\n}\n"

    def test_types_are_rewritten(self):
        rules = RewriteRules(package_replace={"a": "z"})
        method = Method("Get", ".a.Req", ".a.Resp")
        assert render_method(method, rules).startswith("rpc Get(.z.Req) returns (.z.Resp) {\n")

    def test_options_sorted_by_name(self):
        method = Method("Get", ".a.Req", ".a.Resp", options=[("z.opt", '"2"'), ("a.opt", '"1"')])
        assert render_method(method, PROTO2) == (
            "rpc Get(.a.Req) returns (.a.Resp) {\n"
            '    option (a.opt) = "1";\n'
            '    option (z.opt) = "2";\n'
            "}\n"
        )

    def test_option_literals_emitted_verbatim(self):
        method = Method("Get", ".a.Req", ".a.Resp", options=[
            ("o.flag", "true"),
            ("o.level", "LEVEL_HIGH"),
            ("o.http", '{ get: "/v1/x" }'),
            ("o.limit", "-3"),
        ])
        assert render_method(method, PROTO2) == (
            "rpc Get(.a.Req) returns (.a.Resp) {\n"
            "    option (o.flag) = true;\n"
            '    option (o.http) = { get: "/v1/x" };\n'
            "    option (o.level) = LEVEL_HIGH;\n"
            "    option (o.limit) = -3;\n"
            "}\n"
        )

    def test_repeated_option_keeps_value_order(self):
        method = Method("Get", ".a.Req", ".a.Resp", options=[
            ("o.tag", '"b"'), ("a.opt", "1"), ("o.tag", '"a"'),
        ])
        assert render_method(method, PROTO2) == (
            "rpc Get(.a.Req) returns (.a.Resp) {\n"
            "    option (a.opt) = 1;\n"
            '    option (o.tag) = "b";\n'
            '    option (o.tag) = "a";\n'
            "}\n"
        )


class TestTemplateEnv:
    def test_env_built_once(self):
        assert get_template_env() is get_template_env()

    def test_rendering_many_methods_reuses_env(self):
        service = Service("S", [Method(f"M{i}", ".a.Req", ".a.Resp") for i in range(50)])
        get_template_env.cache_clear()
        render_service(service, PROTO2)
        assert get_template_env.cache_info().misses == 1


class TestRenderService:
    def test_methods_indented(self):
        service = Service("Greeter", [Method("Hello", ".a.Req", ".a.Resp")])
        assert render_service(service, PROTO2) == (
            "service Greeter {\n"
            "    rpc Hello(.a.Req) returns (.a.Resp) {\n"
            "    }\n"
            "}\n"
        )

    def test_method_comments(self):
        service = Service("Greeter", [
            Method("Hello", ".a.Req", ".a.Resp", comments=Comments(detached=["section"])),
        ])
        assert render_service(service, PROTO2) == (
            "service Greeter {\n"
            "    /*\n"
            "      section\n"
            "      */\n"
            "\n"
            "    rpc Hello(.a.Req) returns (.a.Resp) {\n"
            "    }\n"
            "}\n"
        )

    def test_empty_service(self):
        assert render_service(Service("Empty"), PROTO2) == "service Empty {\n}\n"
