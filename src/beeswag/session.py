"""Per-run analysis state.

Every cache the generator consults lives on one :class:`AnalysisSession`,
created fresh for each run and passed to every component. Nothing in the
package keeps module-level mutable state, so repeated runs (and tests)
never leak into each other.
"""

from __future__ import annotations

from typing import Optional, Union

from beeswag import output
from beeswag.models import ControllerKey, Document, GeneratorConfig, Item, Schema
from beeswag.packages import PackageIndex, PackageResolver
from beeswag.syntax import GoParser


class InProgress:
    """Cache marker for a model whose structural analysis has not finished.

    Lookups that hit the marker get a bare reference instead of re-entering
    analysis, which is what stops self-referential types from recursing.
    """

    __slots__ = ()

    def __repr__(self) -> str:
        return "IN_PROGRESS"


IN_PROGRESS = InProgress()

ModelCacheEntry = Union[Schema, InProgress]


class AnalysisSession:
    """Owns the document under construction and every lookup table of one run.

    Attributes:
        config: Effective generator settings.
        parser: Shared Go front-end.
        document: The Swagger document being assembled.
        index: Every parsed package, searchable by package name.
        resolver: Import path resolution against vendor, module and GOPATH.
        visited: Import paths already expanded for controller discovery.
        import_aliases: Router-local package name to import path.
        controller_docs: Struct doc comments of controller packages.
        controller_routes: Annotated route template to :class:`Item`, per
            controller.
        tagged: Controllers whose doc comment already produced a tag.
        warnings: Every recoverable problem reported through :meth:`warn`.
    """

    def __init__(self, config: GeneratorConfig, parser: Optional[GoParser] = None) -> None:
        self.config = config
        self.parser = parser or GoParser()
        self.document = Document()
        self.index = PackageIndex()
        self.resolver = PackageResolver(self)
        self.visited: set[str] = set()
        self.import_aliases: dict[str, str] = {}
        self.controller_docs: dict[ControllerKey, str] = {}
        self.controller_routes: dict[ControllerKey, dict[str, Item]] = {}
        self.tagged: set[ControllerKey] = set()
        self.warnings: list[str] = []
        self._models: dict[ControllerKey, dict[str, ModelCacheEntry]] = {}

    def warn(self, message: str) -> None:
        """Record a recoverable problem and report it on stderr."""
        self.warnings.append(message)
        output.warning(message)

    def debug(self, message: str) -> None:
        output.debug(message)

    def model_cache(self, key: ControllerKey) -> dict[str, ModelCacheEntry]:
        """The per-controller model cache, created on first use."""
        return self._models.setdefault(key, {})

    def routes_of(self, key: ControllerKey) -> dict[str, Item]:
        return self.controller_routes.setdefault(key, {})
