"""Path table and tag bookkeeping for the document under construction."""

from __future__ import annotations

from typing import TYPE_CHECKING

from beeswag.models import ControllerKey, Tag

if TYPE_CHECKING:
    from beeswag.session import AnalysisSession


def normalize_path(template: str) -> str:
    """Rewrite a router path template into Swagger form.

    ``:name`` and ``?:name`` segments become ``{name}``, and inside a brace
    segment anything from the first ``:`` or ``(`` on is dropped, so regex
    and type constraints disappear::

        >>> normalize_path("/user/:uid/?:page")
        '/user/{uid}/{page}'
        >>> normalize_path("/static/:id([0-9]+)")
        '/static/{id}'

    Already normalized templates are returned unchanged.
    """
    segments = template.split("/")
    for index, segment in enumerate(segments):
        if not segment:
            continue
        if segment.startswith(":"):
            segment = "{" + segment[1:] + "}"
        elif segment.startswith("?:"):
            segment = "{" + segment[2:] + "}"
        if segment.startswith("{"):
            for stop in (":", "("):
                position = segment.find(stop)
                if position != -1:
                    segment = segment[:position] + "}"
                    break
        segments[index] = segment
    return "/".join(segments)


def namespace_tag(namespace: str) -> str:
    """Tag name for a namespace prefix: trimmed of slashes, or ``/``."""
    return namespace.strip("/") or "/"


class DocumentAssembler:
    """Writes controller routes and tags into the session's document."""

    def __init__(self, session: AnalysisSession) -> None:
        self.session = session
        self.document = session.document

    def bind_controller(self, key: ControllerKey, namespace: str, route: str = "") -> int:
        """Mount every annotated route of *key* under ``namespace + route``.

        Each operation is tagged with the namespace tag, or with the
        controller key when there is no prefix at all. The path table gets a
        deep copy of each item so a controller mounted twice does not share
        state between mounts; a later write to the same path replaces the
        earlier one.

        Returns:
            Number of paths written.
        """
        routes = self.session.controller_routes.get(key)
        if not routes:
            self.session.debug(f"No annotated routes for controller {key}")
            return 0

        prefix = namespace + route
        tag = namespace_tag(namespace) if prefix else str(key)
        for template, item in routes.items():
            mounted = item.model_copy(deep=True)
            for _, operation in mounted.operations():
                operation.tags = [tag]
            path = normalize_path(prefix + template)
            if path in self.document.paths:
                self.session.debug(f"Path {path} redefined by {key}")
            self.document.paths[path] = mounted
        return len(routes)

    def add_controller_tag(self, key: ControllerKey, namespace: str) -> None:
        """Add a tag described by the controller's doc comment, once per controller."""
        description = self.session.controller_docs.get(key)
        if description is None or key in self.session.tagged:
            return
        self.session.tagged.add(key)
        self.document.tags.append(Tag(name=namespace_tag(namespace), description=description))

    def finalize(self) -> None:
        """Sort paths and definitions by key for deterministic output."""
        self.document.paths = dict(sorted(self.document.paths.items()))
        self.document.definitions = dict(sorted(self.document.definitions.items()))
