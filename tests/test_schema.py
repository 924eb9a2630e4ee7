"""Tests for beeswag.schema -- Go types to Swagger definitions."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest

from beeswag.models import ControllerKey
from beeswag.schema import (
    INTERFACE,
    MAP,
    OBJECT,
    STRUCT,
    ModelResolver,
    classify_field,
    parse_struct_tag,
)
from beeswag.session import AnalysisSession
from beeswag.syntax import (
    ArrayType,
    Ident,
    InterfaceType,
    MapType,
    Pointer,
    Selector,
    SourceFile,
    StructType,
)

from conftest import MODULE, write_go


@pytest.fixture
def models(session: AnalysisSession) -> ModelResolver:
    return ModelResolver(session)


@pytest.fixture
def controller_file(session: AnalysisSession, shop_project: Path) -> SourceFile:
    return session.parser.parse_file(shop_project / "controllers" / "user.go")


def _write_models(shop_project: Path, source: str) -> None:
    write_go(shop_project, "models/extra.go", source)


class TestStructTag:
    def test_parse(self) -> None:
        tags = parse_struct_tag('json:"name,omitempty" required:"true" description:"a \\"b\\""')
        assert tags == {"json": "name,omitempty", "required": "true", "description": 'a "b"'}

    def test_first_key_wins(self) -> None:
        assert parse_struct_tag('json:"a" json:"b"') == {"json": "a"}

    def test_empty(self) -> None:
        assert parse_struct_tag(None) == {}


class TestClassifyField:
    def test_basic(self) -> None:
        shape = classify_field(Ident("int32"))
        assert shape.builtin == ("integer", "int32")
        assert shape.is_scalar

    def test_array_of_pointers(self) -> None:
        shape = classify_field(ArrayType(Pointer(Selector(Ident("models"), "User"))))
        assert shape.is_array
        assert shape.type_ref == "models.User"
        assert shape.builtin == OBJECT

    def test_markers(self) -> None:
        assert classify_field(MapType(Ident("string"), Ident("int"))).builtin == MAP
        assert classify_field(InterfaceType()).builtin == INTERFACE
        assert classify_field(Selector(Ident("time"), "Time")).builtin == ("string", "datetime")

    def test_inline_struct(self) -> None:
        assert classify_field(StructType()).builtin == STRUCT


class TestResolveUser:
    def test_definitions_written(
        self, models: ModelResolver, controller_file: SourceFile, session: AnalysisSession, user_key
    ) -> None:
        qualified, _ = models.resolve(controller_file, "models.User", user_key)
        assert qualified == "models.User"
        assert set(session.document.definitions) == {
            "models.User",
            "models.Status",
            "models.Profile",
        }

    def test_struct_properties(
        self, models: ModelResolver, controller_file: SourceFile, user_key
    ) -> None:
        _, schema = models.resolve(controller_file, "models.User", user_key)
        props = schema.properties

        assert schema.title == "User"
        assert schema.type == "object"
        assert list(props) == [
            "id",
            "name",
            "Age",
            "status",
            "profile",
            "tags",
            "created",
            "friends",
        ]
        assert "Password" not in props
        assert (props["id"].type, props["id"].format) == ("integer", "int64")
        assert schema.required == ["id"]
        assert props["name"].description == "display name"
        assert props["name"].example == "alice"
        assert props["Age"].default == 18
        assert props["status"].ref == "#/definitions/models.Status"
        assert props["profile"].ref == "#/definitions/models.Profile"
        assert props["tags"].type == "array"
        assert props["tags"].items.type == "string"
        assert (props["created"].type, props["created"].format) == ("string", "datetime")
        assert props["friends"].items.ref == "#/definitions/models.User"

    def test_typed_constant_enum(
        self, models: ModelResolver, controller_file: SourceFile, session: AnalysisSession, user_key
    ) -> None:
        models.resolve(controller_file, "models.User", user_key)
        status = session.document.definitions["models.Status"]
        assert status.type == "integer"
        assert status.enum == ["Active = 1", "Banned = 2"]
        assert status.example == 1

    def test_mutual_references_terminate(
        self, models: ModelResolver, controller_file: SourceFile, session: AnalysisSession, user_key
    ) -> None:
        models.resolve(controller_file, "models.User", user_key)
        profile = session.document.definitions["models.Profile"]
        assert profile.properties["owner"].ref == "#/definitions/models.User"

    def test_memoized_per_controller(
        self, models: ModelResolver, controller_file: SourceFile, user_key
    ) -> None:
        with patch.object(models, "analyse", wraps=models.analyse) as analyse:
            models.resolve(controller_file, "models.User", user_key)
            first = analyse.call_count
            models.resolve(controller_file, "models.User", user_key)
            assert analyse.call_count == first

            other = ControllerKey(package_path=f"{MODULE}/controllers", name="OrderController")
            models.resolve(controller_file, "models.User", other)
            assert analyse.call_count == first * 2

        analysed = [c.args[1] for c in analyse.call_args_list[:first]]
        assert len(analysed) == len(set(analysed))

    def test_resolve_ref(self, models: ModelResolver, controller_file: SourceFile, user_key) -> None:
        assert models.resolve_ref(controller_file, "models.User", user_key) == (
            "#/definitions/models.User"
        )


class TestStructRules:
    def _resolve(self, session: AnalysisSession, shop_project: Path, source: str, name: str):
        _write_models(shop_project, source)
        controller = session.parser.parse_file(shop_project / "controllers" / "user.go")
        key = ControllerKey(package_path=f"{MODULE}/controllers", name="UserController")
        _, schema = ModelResolver(session).resolve(controller, f"models.{name}", key)
        return schema

    def test_json_rename_and_omitempty(self, session, shop_project) -> None:
        schema = self._resolve(
            session,
            shop_project,
            """
            package models

            type Renamed struct {
            	A string `json:"alpha,omitempty"`
            	B string `json:",omitempty"`
            	C string `json:"-"`
            	D string `thrift:"delta,1"`
            }
            """,
            "Renamed",
        )
        assert list(schema.properties) == ["alpha", "B", "delta"]

    def test_ignore_and_required(self, session, shop_project) -> None:
        schema = self._resolve(
            session,
            shop_project,
            """
            package models

            type Flags struct {
            	Skip  string `ignore:"true"`
            	Must  string `required:"true"`
            	Maybe string `required:"false"`
            	Odd   string `required:"sure"`
            }
            """,
            "Flags",
        )
        assert list(schema.properties) == ["Must", "Maybe", "Odd"]
        assert schema.required == ["Must", "Odd"]

    def test_required_unless_false_spelling(self, session, shop_project) -> None:
        schema = self._resolve(
            session,
            shop_project,
            """
            package models

            type Answers struct {
            	Yes  string `required:"yes"`
            	One  string `required:"1"`
            	Zero string `required:"0"`
            	No   string `required:"F"`
            }
            """,
            "Answers",
        )
        assert schema.required == ["Yes", "One"]

    def test_octal_enum_constants(self, session, shop_project) -> None:
        schema = self._resolve(
            session,
            shop_project,
            """
            package models

            type Mode int

            const (
            	Read  Mode = 04
            	Write Mode = 010
            	Exec  Mode = 0o1
            )
            """,
            "Mode",
        )
        assert schema.enum == ["Read = 04", "Write = 010", "Exec = 0o1"]
        assert schema.example == 4
        assert not any("Cannot convert enum value" in w for w in session.warnings)

    def test_defaults_and_examples(self, session, shop_project) -> None:
        schema = self._resolve(
            session,
            shop_project,
            """
            package models

            type Defaults struct {
            	Count  int     `doc:"default(5)"`
            	Ratio  float64 `default:"0.5" example:"0.25"`
            	Active bool    `default:"true"`
            	Bad    int     `default:"many"`
            	List   []int   `example:"1"`
            }
            """,
            "Defaults",
        )
        props = schema.properties
        assert props["Count"].default == 5
        assert props["Ratio"].default == 0.5
        assert props["Ratio"].example == 0.25
        assert props["Active"].default is True
        assert props["Bad"].default == "many"
        assert props["List"].example is None
        assert any("many" in w for w in session.warnings)

    def test_multiple_names_in_one_field(self, session, shop_project) -> None:
        schema = self._resolve(
            session,
            shop_project,
            """
            package models

            type Point struct {
            	X, Y int `json:"ignored"`
            }
            """,
            "Point",
        )
        assert list(schema.properties) == ["X", "Y"]

    def test_embedded_struct_becomes_all_of(self, session, shop_project) -> None:
        schema = self._resolve(
            session,
            shop_project,
            """
            package models

            type Base struct {
            	ID int `json:"id"`
            }

            type Hidden struct{}

            type Named struct{}

            type Child struct {
            	Base
            	*Hidden
            	Named `json:"named"`
            	Extra string `json:"extra"`
            }
            """,
            "Child",
        )
        assert schema.title == "Child"
        assert schema.all_of[0].ref == "#/definitions/models.Base"
        assert list(schema.all_of[1].properties) == ["named", "extra"]
        assert "models.Hidden" not in session.document.definitions
        assert "models.Base" in session.document.definitions

    def test_inline_struct_warns(self, session, shop_project) -> None:
        schema = self._resolve(
            session,
            shop_project,
            """
            package models

            type Wrapper struct {
            	Inner struct {
            		X int
            	} `json:"inner"`
            }
            """,
            "Wrapper",
        )
        assert schema.properties["inner"].type == "object"
        assert any("Temporary structure is not supported" in w for w in session.warnings)

    def test_maps_interfaces_and_named_shapes(self, session, shop_project) -> None:
        _write_models(
            shop_project,
            """
            package models

            type Labels map[string]string

            type IDs []int64

            type Alias Profile

            type Any interface{}

            type Bag struct {
            	Labels Labels                 `json:"labels"`
            	Counts map[string][]int       `json:"counts"`
            	Value  interface{}            `json:"value"`
            	IDs    IDs                    `json:"ids"`
            	Alias  Alias                  `json:"alias"`
            	Any    Any                    `json:"any"`
            }
            """,
        )
        controller = session.parser.parse_file(shop_project / "controllers" / "user.go")
        key = ControllerKey(package_path=f"{MODULE}/controllers", name="UserController")
        _, bag = ModelResolver(session).resolve(controller, "models.Bag", key)
        definitions = session.document.definitions

        assert bag.properties["counts"].additional_properties.items.type == "integer"
        assert bag.properties["value"].type == "object"
        assert definitions["models.Labels"].additional_properties.type == "string"
        assert definitions["models.IDs"].type == "array"
        assert definitions["models.IDs"].items.format == "int64"
        assert definitions["models.Alias"].all_of[0].ref == "#/definitions/models.Profile"
        assert definitions["models.Any"].type == "object"


class TestUnresolved:
    def test_unknown_type_gets_placeholder(
        self, models: ModelResolver, controller_file: SourceFile, session: AnalysisSession, user_key
    ) -> None:
        qualified, schema = models.resolve(controller_file, "models.Ghost", user_key)
        assert qualified == "models.Ghost"
        assert schema.title == "Ghost"
        assert schema.type == "object"
        assert session.document.definitions["models.Ghost"] is schema
        assert any("Cannot find the object: models.Ghost" in w for w in session.warnings)

    def test_missing_nested_package_is_tolerated(
        self, session: AnalysisSession, shop_project: Path
    ) -> None:
        _write_models(
            shop_project,
            """
            package models

            import "example.com/nowhere/extern"

            type Order struct {
            	Item extern.Thing `json:"item"`
            }
            """,
        )
        controller = session.parser.parse_file(shop_project / "controllers" / "order.go")
        key = ControllerKey(package_path=f"{MODULE}/controllers", name="OrderController")
        _, order = ModelResolver(session).resolve(controller, "models.Order", key)

        assert order.properties["item"].ref == "#/definitions/extern.Thing"
        placeholder = session.document.definitions["extern.Thing"]
        assert placeholder.title == "Thing"
        assert any("Cannot find the object" in w for w in session.warnings)

    def test_import_alias_uses_real_package_name(
        self, session: AnalysisSession, shop_project: Path
    ) -> None:
        source = session.parser.parse_source(
            'package controllers\n\nimport m "example.com/shop/models"\n',
            shop_project / "controllers" / "alias.go",
        )
        key = ControllerKey(package_path=f"{MODULE}/controllers", name="UserController")
        qualified, schema = ModelResolver(session).resolve(source, "m.Profile", key)
        assert qualified == "models.Profile"
        assert schema.properties["email"].type == "string"

    def test_basic_type(self, models: ModelResolver, controller_file: SourceFile, user_key) -> None:
        qualified, schema = models.resolve(controller_file, "time.Time", user_key)
        assert qualified == "time.Time"
        assert (schema.type, schema.format, schema.title) == ("string", "datetime", "Time")
