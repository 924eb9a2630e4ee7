"""Drive one documentation run from the router file to a finished document.

**Pipeline**

1. Check that there is somewhere to look for packages (``go.mod`` or
   ``GOPATH``).
2. Parse the router file and apply its document-level header tags.
3. Walk the project tree and index every package for type lookup.
4. Expand each package imported by the router, parsing the comment
   block of every controller method into per-controller route tables.
5. Walk the namespace expressions of the router and mount controller
   routes into the path table.
6. Sort paths and definitions.

Nothing is written to disk here; see :mod:`beeswag.writer`.
"""

from __future__ import annotations

from typing import Optional

from beeswag.annotations import DocumentTagParser, parse_controller_method
from beeswag.assembler import DocumentAssembler
from beeswag.exceptions import SourceParseError
from beeswag.models import ControllerKey, Document, GeneratorConfig
from beeswag.packages import walk_project
from beeswag.routes import RouteWalker
from beeswag.schema import ModelResolver
from beeswag.session import AnalysisSession
from beeswag.syntax import FuncDecl, SourceFile


def generate_docs(config: GeneratorConfig, *, session: Optional[AnalysisSession] = None) -> Document:
    """Build the Swagger document for the project described by *config*.

    Args:
        config: Effective generator settings.
        session: Session to run in. A fresh one is created when omitted;
            pass one in to inspect warnings or caches afterwards.

    Returns:
        The finalized document (also available as ``session.document``).

    Raises:
        EnvironmentError_: No module root and no GOPATH.
        SourceParseError: The router file or a controller package is unreadable.
        PackageNotFoundError: A package imported by the router cannot be found.
        AnnotationError: A mandatory annotation is malformed.
    """
    if session is None:
        session = AnalysisSession(config)
    session.resolver.ensure_environment()

    router_path = config.router_path
    if not router_path.is_file():
        raise SourceParseError(f"Router file not found: {router_path}")
    router = session.parser.parse_file(router_path)
    if router.has_error:
        session.warn(f"Syntax errors in {router_path}; results may be incomplete")

    DocumentTagParser(session).apply_comments(router.comments)

    session.debug(f"Indexing packages under {config.project_root}")
    for package in walk_project(
        config.project_root, session.parser, config.exclude, on_error=session.warn
    ):
        session.index.add(package)
    session.debug(f"Indexed {len(session.index)} packages")

    models = ModelResolver(session)

    def on_method(source: SourceFile, func: FuncDecl, key: ControllerKey) -> None:
        parse_controller_method(session, models, source, func, key)

    for spec in router.imports:
        session.resolver.expand_controller_package(spec, on_method)

    assembler = DocumentAssembler(session)
    RouteWalker(session, assembler).walk(router)
    assembler.finalize()
    return session.document
