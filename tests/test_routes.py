"""Tests for beeswag.routes -- namespace expressions of the router file."""

from __future__ import annotations

import textwrap

import pytest

from beeswag.assembler import DocumentAssembler
from beeswag.models import ControllerKey, Item, Operation
from beeswag.routes import RouteWalker, call_name, namespace_args
from beeswag.session import AnalysisSession
from beeswag.syntax import BasicLit, Call, Ident, Selector


PKG = "example.com/shop/controllers"
USER = ControllerKey(package_path=PKG, name="UserController")
ORDER = ControllerKey(package_path=PKG, name="OrderController")


@pytest.fixture
def walker(session: AnalysisSession) -> RouteWalker:
    session.import_aliases["controllers"] = PKG
    session.routes_of(USER)["/:uid"] = Item(get=Operation(operation_id="UserController.Get"))
    session.routes_of(ORDER)["/"] = Item(post=Operation(operation_id="OrderController.Post"))
    return RouteWalker(session, DocumentAssembler(session))


def walk(session: AnalysisSession, walker: RouteWalker, body: str) -> int:
    """Walk a router whose ``init`` function has *body*."""
    source = (
        "package routers\n\n"
        'import "github.com/astaxie/beego"\n\n'
        "func init() {\n" + textwrap.indent(textwrap.dedent(body).strip(), "\t") + "\n}\n"
    )
    router = session.parser.parse_source(source)
    return walker.walk(router)


NESTED = """
ns := beego.NewNamespace("/v1",
    beego.NSNamespace("/user",
        beego.NSInclude(&controllers.UserController{}),
    ),
    beego.NSNamespace("/order",
        beego.NSInclude(&controllers.OrderController{}),
    ),
)
beego.AddNamespace(ns)
"""


class TestHelpers:
    def test_call_name(self) -> None:
        assert call_name(Call(Selector(Ident("beego"), "NSRouter"))) == "NSRouter"
        assert call_name(Call(Ident("NSInclude"))) == "NSInclude"
        assert call_name(Ident("NSInclude")) is None

    def test_namespace_args(self) -> None:
        call = Call(Ident("NewNamespace"), [BasicLit("STRING", '"/v1"'), Ident("x")])
        assert namespace_args(call) == ("/v1", [Ident("x")])
        assert namespace_args(Call(Ident("NewNamespace"))) == ("", [])


class TestWalk:
    def test_root_prefix_becomes_base_path(self, session: AnalysisSession, walker: RouteWalker) -> None:
        assert walk(session, walker, NESTED) == 1
        assert session.document.base_path == "/v1"
        assert set(session.document.paths) == {"/user/{uid}", "/order/"}
        assert session.document.paths["/order/"].post.tags == ["order"]

    def test_only_new_namespace_assignments(self, session: AnalysisSession, walker: RouteWalker) -> None:
        assert walk(session, walker, "beego.Router(\"/\", nil)\nx := beego.Other(\"/v1\")") == 0
        assert session.document.paths == {}

    def test_exact_base_path_anchor(self, session: AnalysisSession, walker: RouteWalker) -> None:
        session.document.base_path = "/v1/user"
        walk(session, walker, NESTED)

        assert set(session.document.paths) == {"/{uid}"}
        assert session.document.base_path == "/v1/user"
        assert session.warnings == []

    def test_base_path_matches_root(self, session: AnalysisSession, walker: RouteWalker) -> None:
        session.document.base_path = "/v1/"
        walk(session, walker, NESTED)
        assert set(session.document.paths) == {"/user/{uid}", "/order/"}

    def test_anchor_is_segment_aware(self, session: AnalysisSession, walker: RouteWalker) -> None:
        session.document.base_path = "/api"
        walk(
            session,
            walker,
            """
            ns := beego.NewNamespace("/apikeys",
                beego.NSNamespace("/user",
                    beego.NSInclude(&controllers.UserController{}),
                ),
            )
            """,
        )
        assert set(session.document.paths) == {"/apikeys/user/{uid}"}
        assert any("matches no namespace" in w for w in session.warnings)

    def test_deepest_partial_anchor(self, session: AnalysisSession, walker: RouteWalker) -> None:
        session.document.base_path = "/v1/user/admin"
        walk(session, walker, NESTED)

        assert set(session.document.paths) == {"/{uid}"}
        assert any("anchoring on /v1/user" in w for w in session.warnings)

    def test_ns_router_trims_trailing_slash(self, session: AnalysisSession, walker: RouteWalker) -> None:
        walk(
            session,
            walker,
            """
            ns := beego.NewNamespace("/v1",
                beego.NSRouter("/people/", &controllers.UserController{}),
            )
            """,
        )
        assert set(session.document.paths) == {"/people/{uid}"}
        assert session.document.paths["/people/{uid}"].get.tags == ["/"]

    def test_local_variable_indirection(self, session: AnalysisSession, walker: RouteWalker) -> None:
        walk(
            session,
            walker,
            """
            orders := &controllers.OrderController{}
            ns := beego.NewNamespace("/v1",
                beego.NSNamespace("/order", beego.NSInclude(orders)),
                beego.NSRouter("/o", orders),
            )
            """,
        )
        assert set(session.document.paths) == {"/order/", "/o/"}

    def test_unrecognised_controller_expression(
        self, session: AnalysisSession, walker: RouteWalker
    ) -> None:
        walk(
            session,
            walker,
            """
            ns := beego.NewNamespace("/v1",
                beego.NSInclude(makeController(), &controllers.UserController{}),
            )
            """,
        )
        assert set(session.document.paths) == {"/{uid}"}
        assert any("Couldn't determine controller type" in w for w in session.warnings)

    def test_controller_from_unimported_package(
        self, session: AnalysisSession, walker: RouteWalker
    ) -> None:
        walk(
            session,
            walker,
            """
            ns := beego.NewNamespace("/v1",
                beego.NSInclude(&admin.PanelController{}),
            )
            """,
        )
        assert session.document.paths == {}
        assert any("admin is not imported" in w for w in session.warnings)

    def test_tags_once_per_controller(self, session: AnalysisSession, walker: RouteWalker) -> None:
        session.controller_docs[USER] = "Operations about Users"
        walk(
            session,
            walker,
            """
            ns := beego.NewNamespace("/v1",
                beego.NSNamespace("/user", beego.NSInclude(&controllers.UserController{})),
                beego.NSNamespace("/people", beego.NSInclude(&controllers.UserController{})),
            )
            """,
        )
        assert [t.name for t in session.document.tags] == ["user"]
        assert set(session.document.paths) == {"/user/{uid}", "/people/{uid}"}
