"""Tests for beeswag.assembler -- path normalization and the path table."""

from __future__ import annotations

import pytest

from beeswag.assembler import DocumentAssembler, namespace_tag, normalize_path
from beeswag.models import ControllerKey, Item, Operation, Schema
from beeswag.session import AnalysisSession


KEY = ControllerKey(package_path="example.com/shop/controllers", name="UserController")


@pytest.fixture
def assembler(session: AnalysisSession) -> DocumentAssembler:
    routes = session.routes_of(KEY)
    routes["/"] = Item(get=Operation(operation_id="UserController.GetAll"))
    routes["/:uid"] = Item(
        get=Operation(operation_id="UserController.Get"),
        delete=Operation(operation_id="UserController.Delete"),
    )
    return DocumentAssembler(session)


class TestNormalizePath:
    @pytest.mark.parametrize(
        "template, expected",
        [
            ("/user/:uid", "/user/{uid}"),
            ("/user/?:page", "/user/{page}"),
            ("/static/:id([0-9]+)", "/static/{id}"),
            ("/file/:path:string", "/file/{path}"),
            ("/a/:x/b/:y", "/a/{x}/b/{y}"),
            ("/plain/path/", "/plain/path/"),
            ("", ""),
        ],
    )
    def test_normalize(self, template: str, expected: str) -> None:
        assert normalize_path(template) == expected

    @pytest.mark.parametrize(
        "template",
        ["/user/:uid", "/static/:id([0-9]+)", "/user/?:page", "/x/{y}"],
    )
    def test_idempotent(self, template: str) -> None:
        once = normalize_path(template)
        assert normalize_path(once) == once


class TestNamespaceTag:
    def test_trims_slashes(self) -> None:
        assert namespace_tag("/v1/user/") == "v1/user"

    def test_empty_namespace_is_root(self) -> None:
        assert namespace_tag("") == "/"
        assert namespace_tag("/") == "/"


class TestBindController:
    def test_paths_and_tags(self, assembler: DocumentAssembler, session: AnalysisSession) -> None:
        assert assembler.bind_controller(KEY, "/user") == 2
        paths = session.document.paths

        assert set(paths) == {"/user/", "/user/{uid}"}
        assert paths["/user/{uid}"].delete.operation_id == "UserController.Delete"
        assert paths["/user/{uid}"].get.tags == ["user"]

    def test_route_is_appended_to_namespace(
        self, assembler: DocumentAssembler, session: AnalysisSession
    ) -> None:
        assembler.bind_controller(KEY, "/v1", "/people")
        assert set(session.document.paths) == {"/v1/people/", "/v1/people/{uid}"}
        assert session.document.paths["/v1/people/"].get.tags == ["v1"]

    def test_root_namespace_tag(self, assembler: DocumentAssembler, session: AnalysisSession) -> None:
        assembler.bind_controller(KEY, "", "/health")
        assert session.document.paths["/health/"].get.tags == ["/"]

    def test_no_prefix_tags_with_controller_key(
        self, assembler: DocumentAssembler, session: AnalysisSession
    ) -> None:
        assembler.bind_controller(KEY, "")
        assert session.document.paths["/{uid}"].get.tags == [str(KEY)]

    def test_mounts_are_independent_copies(
        self, assembler: DocumentAssembler, session: AnalysisSession
    ) -> None:
        assembler.bind_controller(KEY, "/a")
        assembler.bind_controller(KEY, "/b")
        paths = session.document.paths

        assert paths["/a/"].get.tags == ["a"]
        assert paths["/b/"].get.tags == ["b"]
        assert paths["/a/"].get is not session.controller_routes[KEY]["/"].get
        assert session.controller_routes[KEY]["/"].get.tags == []

    def test_last_write_wins(self, assembler: DocumentAssembler, session: AnalysisSession) -> None:
        other = ControllerKey(package_path="example.com/shop/controllers", name="AdminController")
        session.routes_of(other)["/"] = Item(post=Operation(operation_id="AdminController.Post"))

        assembler.bind_controller(KEY, "/user")
        assembler.bind_controller(other, "/user")

        item = session.document.paths["/user/"]
        assert item.post.operation_id == "AdminController.Post"
        assert item.get is None

    def test_unknown_controller_binds_nothing(
        self, assembler: DocumentAssembler, session: AnalysisSession
    ) -> None:
        missing = ControllerKey(package_path="example.com/shop/controllers", name="Missing")
        assert assembler.bind_controller(missing, "/x") == 0
        assert session.document.paths == {}


class TestTags:
    def test_added_once_per_controller(
        self, assembler: DocumentAssembler, session: AnalysisSession
    ) -> None:
        session.controller_docs[KEY] = "Operations about Users"
        assembler.add_controller_tag(KEY, "/user/")
        assembler.add_controller_tag(KEY, "/again")

        assert [(t.name, t.description) for t in session.document.tags] == [
            ("user", "Operations about Users")
        ]

    def test_undocumented_controller_has_no_tag(
        self, assembler: DocumentAssembler, session: AnalysisSession
    ) -> None:
        assembler.add_controller_tag(KEY, "/user")
        assert session.document.tags == []


class TestFinalize:
    def test_sorts_paths_and_definitions(
        self, assembler: DocumentAssembler, session: AnalysisSession
    ) -> None:
        session.document.definitions["models.Zebra"] = Schema(type="object")
        session.document.definitions["models.Ant"] = Schema(type="object")
        assembler.bind_controller(KEY, "/z")
        assembler.bind_controller(KEY, "/a")

        assembler.finalize()

        assert list(session.document.paths) == ["/a/", "/a/{uid}", "/z/", "/z/{uid}"]
        assert list(session.document.definitions) == ["models.Ant", "models.Zebra"]
