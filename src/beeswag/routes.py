"""Namespace/route walker over the router file.

Recognises the namespace DSL of the web framework::

    ns := beego.NewNamespace("/v1",
        beego.NSNamespace("/user",
            beego.NSInclude(&controllers.UserController{}),
        ),
        beego.NSRouter("/health", &controllers.HealthController{}),
    )

and binds every referenced controller's annotated routes through the
:class:`~beeswag.assembler.DocumentAssembler`.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from beeswag.assembler import DocumentAssembler
from beeswag.models import ControllerKey
from beeswag.syntax import (
    Assign,
    Call,
    CompositeLit,
    Expr,
    FuncDecl,
    Ident,
    Selector,
    SourceFile,
    Unary,
    string_value,
    type_string,
)

if TYPE_CHECKING:
    from beeswag.session import AnalysisSession

NEW_NAMESPACE = "NewNamespace"
NS_NAMESPACE = "NSNamespace"
NS_ROUTER = "NSRouter"
NS_INCLUDE = "NSInclude"


def call_name(expr: Expr) -> Optional[str]:
    """``NSRouter`` for ``beego.NSRouter(...)`` or a dot-imported ``NSRouter(...)``."""
    if not isinstance(expr, Call):
        return None
    if isinstance(expr.func, Selector):
        return expr.func.name
    if isinstance(expr.func, Ident):
        return expr.func.name
    return None


def namespace_args(call: Call) -> tuple[str, list[Expr]]:
    """Split a namespace call into its literal prefix and its child parameters."""
    if not call.args:
        return "", []
    return string_value(call.args[0]) or "", list(call.args[1:])


def _segments(path: str) -> list[str]:
    return [segment for segment in path.split("/") if segment]


class RouteWalker:
    """Interprets namespace expressions of the router file."""

    def __init__(self, session: AnalysisSession, assembler: DocumentAssembler) -> None:
        self.session = session
        self.assembler = assembler
        self.document = session.document

    def walk(self, router: SourceFile) -> int:
        """Traverse every ``NewNamespace`` assignment of *router*.

        Returns:
            Number of namespace trees traversed.
        """
        count = 0
        for func in router.funcs:
            for stmt in func.body:
                if not isinstance(stmt, Assign):
                    continue
                for value in stmt.values:
                    if call_name(value) != NEW_NAMESPACE:
                        continue
                    self._walk_root(value, func)
                    count += 1
        return count

    def _walk_root(self, root: Call, func: FuncDecl) -> None:
        if not self.document.base_path:
            self.traverse(root, "", func)
            return

        found = self.find_base_namespace(root)
        if found is None:
            prefix, _ = namespace_args(root)
            self.session.warn(
                f"Base path {self.document.base_path} matches no namespace; "
                f"keeping the {prefix or '/'} prefix in paths"
            )
            self.traverse(root, prefix, func)
            return
        anchor, anchor_prefix, exact = found
        if not exact:
            self.session.warn(
                f"Base path {self.document.base_path} matches no namespace exactly; "
                f"anchoring on {anchor_prefix or '/'}"
            )
        self.traverse(anchor, "", func)

    def find_base_namespace(
        self, call: Call, parent: str = ""
    ) -> Optional[tuple[Call, str, bool]]:
        """Find the namespace node the document base path points at.

        Matching compares whole path segments, so ``/api`` never anchors on
        ``/apikeys``. The first exact match wins; failing that, the deepest
        namespace whose prefix is a leading run of the base path is
        returned.

        Returns:
            ``(node, accumulated prefix, exact)``, or ``None`` when the base
            path does not start with this namespace's prefix.
        """
        prefix, params = namespace_args(call)
        current = parent + prefix
        own = _segments(current)
        base = _segments(self.document.base_path or "")
        if own == base:
            return call, current, True
        if base[: len(own)] != own:
            return None

        best: tuple[Call, str, bool] = (call, current, False)
        for param in params:
            if call_name(param) != NS_NAMESPACE:
                continue
            found = self.find_base_namespace(param, current)
            if found is None:
                continue
            if found[2]:
                return found
            if len(_segments(found[1])) > len(_segments(best[1])):
                best = found
        return best

    def traverse(self, call: Call, base_url: str, func: FuncDecl) -> None:
        """Bind the routers and includes of one namespace node, recursively."""
        prefix, params = namespace_args(call)
        if not base_url and not self.document.base_path:
            self.document.base_path = prefix or None

        for param in params:
            name = call_name(param)
            if name == NS_NAMESPACE:
                child_prefix, _ = namespace_args(param)
                self.traverse(param, base_url + child_prefix, func)
            elif name == NS_ROUTER:
                self._router(param, base_url, func)
            elif name == NS_INCLUDE:
                for arg in param.args:
                    key = self.controller_key(arg, func)
                    if key is None:
                        continue
                    self.assembler.bind_controller(key, base_url)
                    self.assembler.add_controller_tag(key, base_url)

    def _router(self, call: Call, base_url: str, func: FuncDecl) -> None:
        if len(call.args) < 2:
            self.session.warn(f"{NS_ROUTER} needs a route and a controller")
            return
        route = (string_value(call.args[0]) or "").rstrip("/")
        key = self.controller_key(call.args[1], func)
        if key is None:
            return
        self.assembler.bind_controller(key, base_url, route)
        self.assembler.add_controller_tag(key, base_url)

    def controller_key(self, expr: Expr, func: FuncDecl) -> Optional[ControllerKey]:
        """Identify the controller in ``&pkg.Type{}``.

        A plain identifier is looked up once among the local assignments of
        *func*. Unrecognised expressions are warned about and yield ``None``.
        """
        if isinstance(expr, Ident) and expr.name in func.locals:
            expr = func.locals[expr.name]
        if (
            isinstance(expr, Unary)
            and expr.op == "&"
            and isinstance(expr.operand, CompositeLit)
            and isinstance(expr.operand.type, Selector)
            and isinstance(expr.operand.type.operand, Ident)
        ):
            selector = expr.operand.type
            package = selector.operand.name
            import_path = self.session.import_aliases.get(package)
            if import_path is None:
                self.session.warn(f"Controller package {package} is not imported by the router")
                return None
            return ControllerKey(package_path=import_path, name=selector.name)
        self.session.warn(f"Couldn't determine controller type of {type_string(expr)}")
        return None
