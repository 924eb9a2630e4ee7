"""Canonical Pydantic models shared across all beeswag modules.

This is the single source of truth for data shapes in the project. Every other
module imports from here rather than defining its own models. The models fall
into two groups:

**Configuration models** -- read from ``beeswag.json`` and the environment:
    :class:`ProjectConfig` and :class:`GeneratorConfig`, plus the
    :class:`ControllerKey` used to key per-controller state.

**Document models** -- the Swagger 2.0 document assembled during a run:
    :class:`HTTPMethod`, :class:`ParameterLocation`, :class:`Contact`,
    :class:`License`, :class:`Information`, :class:`Tag`,
    :class:`SecurityDefinition`, :class:`Property`, :class:`Schema`,
    :class:`ParameterItems`, :class:`Parameter`, :class:`Response`,
    :class:`Operation`, :class:`Item`, and :class:`Document`.

Document models use Python attribute names and declare the Swagger field
names as aliases (``populate_by_name`` lets callers use either), so
:meth:`Document.to_dict` can emit the wire format directly.
"""

from __future__ import annotations

import enum
from pathlib import Path
from typing import Any, Iterator, Optional

from pydantic import BaseModel, ConfigDict, Field


# --- Configuration ---


DEFAULT_FRAMEWORK_PACKAGES = [
    "github.com/astaxie/beego",
    "github.com/beego/beego/v2/server/web",
]


class ProjectConfig(BaseModel):
    """Project-local settings read from ``<project root>/beeswag.json``.

    Every field is optional; unset fields fall back to environment variables
    and then to the defaults on :class:`GeneratorConfig`. See
    :func:`~beeswag.config.resolve_config` for the precedence chain.
    """

    model_config = ConfigDict(extra="forbid")

    router_file: Optional[str] = None
    output_dir: Optional[str] = None
    vendor_dir: Optional[str] = None
    gopath: Optional[list[str]] = None
    goroot: Optional[str] = None
    framework_packages: Optional[list[str]] = None
    exclude: Optional[list[str]] = None


class GeneratorConfig(BaseModel):
    """Effective settings for one generation run.

    Built by :func:`~beeswag.config.resolve_config`; the analysis session
    and every component read their settings from here.
    """

    project_root: Path
    router_file: str = Field(
        default="routers/router.go",
        description="Entry router file, relative to the project root",
    )
    vendor_dir: str = Field(default="vendor", description="Vendor directory name")
    output_dir: Optional[Path] = Field(
        default=None, description="Where swagger.json/swagger.yml are written"
    )
    gopath: list[Path] = Field(
        default_factory=list, description="GOPATH roots searched for <root>/src/<import>"
    )
    goroot: Optional[Path] = Field(
        default=None, description="Go installation used to detect standard packages"
    )
    module_path: Optional[str] = Field(
        default=None, description="Module path declared in the project's go.mod"
    )
    framework_packages: list[str] = Field(
        default_factory=lambda: list(DEFAULT_FRAMEWORK_PACKAGES),
        description="Import paths never expanded for controller discovery",
    )
    exclude: list[str] = Field(
        default_factory=list,
        description="Extra gitignore-style patterns skipped by the project walk",
    )
    json_filename: str = "swagger.json"
    yaml_filename: str = "swagger.yml"

    @property
    def router_path(self) -> Path:
        """Absolute path to the router file."""
        return self.project_root / self.router_file

    @property
    def resolved_output_dir(self) -> Path:
        """Output directory, defaulting to ``<project root>/swagger``."""
        return self.output_dir or self.project_root / "swagger"


class ControllerKey(BaseModel):
    """Identifies a controller type by import path and type name.

    Hashable, so it keys the per-controller tables of
    :class:`~beeswag.session.AnalysisSession`.
    """

    model_config = ConfigDict(frozen=True)

    package_path: str
    name: str

    def __str__(self) -> str:
        return f"{self.package_path}.{self.name}"


# --- Document models ---


class HTTPMethod(str, enum.Enum):
    """HTTP methods that have an operation slot on a Swagger path item."""

    GET = "get"
    POST = "post"
    PUT = "put"
    PATCH = "patch"
    DELETE = "delete"
    HEAD = "head"
    OPTIONS = "options"


class ParameterLocation(str, enum.Enum):
    """Valid values for a Swagger 2.0 parameter's ``in`` field."""

    QUERY = "query"
    HEADER = "header"
    PATH = "path"
    FORM_DATA = "formData"
    BODY = "body"


class Contact(BaseModel):
    """Contact block of the document ``info`` object."""

    name: Optional[str] = None
    url: Optional[str] = None
    email: Optional[str] = None


class License(BaseModel):
    """License block of the document ``info`` object."""

    name: Optional[str] = None
    url: Optional[str] = None


class Information(BaseModel):
    """The document ``info`` object, filled from router-file header tags."""

    title: Optional[str] = None
    description: Optional[str] = None
    version: Optional[str] = None
    terms_of_service: Optional[str] = Field(default=None, alias="termsOfService")
    contact: Optional[Contact] = None
    license: Optional[License] = None

    model_config = {"populate_by_name": True}


class Tag(BaseModel):
    """A document-level tag; descriptions come from controller doc comments."""

    name: str
    description: Optional[str] = None


class SecurityDefinition(BaseModel):
    """A Swagger 2.0 *Security Scheme Object* declared by ``@SecurityDefinition``.

    Only the fields relevant to ``type`` are populated: ``name``/``in`` for
    ``apiKey``, ``flow``/``authorizationUrl``/``scopes`` for ``oauth2``.
    """

    type: str  # basic, apiKey, oauth2
    description: Optional[str] = None
    name: Optional[str] = None
    location: Optional[str] = Field(default=None, alias="in")
    flow: Optional[str] = None
    authorization_url: Optional[str] = Field(default=None, alias="authorizationUrl")
    token_url: Optional[str] = Field(default=None, alias="tokenUrl")
    scopes: Optional[dict[str, str]] = None

    model_config = {"populate_by_name": True}


class Property(BaseModel):
    """One entry of a schema's ``properties`` map."""

    ref: Optional[str] = Field(default=None, alias="$ref")
    title: Optional[str] = None
    description: Optional[str] = None
    default: Any = None
    type: Optional[str] = None
    example: Any = None
    format: Optional[str] = None
    items: Optional[Property] = None
    additional_properties: Optional[Property] = Field(
        default=None, alias="additionalProperties"
    )

    model_config = {"populate_by_name": True}


class Schema(BaseModel):
    """A named or inline data shape (Swagger *Schema Object*).

    Named schemas live in :attr:`Document.definitions` under their
    qualified type name and are referenced with ``#/definitions/<name>``.
    """

    ref: Optional[str] = Field(default=None, alias="$ref")
    title: Optional[str] = None
    description: Optional[str] = None
    type: Optional[str] = None
    format: Optional[str] = None
    required: list[str] = Field(default_factory=list)
    properties: dict[str, Property] = Field(default_factory=dict)
    items: Optional[Schema] = None
    additional_properties: Optional[Property] = Field(
        default=None, alias="additionalProperties"
    )
    all_of: list[Schema] = Field(default_factory=list, alias="allOf")
    enum: list[Any] = Field(default_factory=list)
    example: Any = None

    model_config = {"populate_by_name": True}


class ParameterItems(BaseModel):
    """Element type of a non-body array parameter."""

    type: Optional[str] = None
    format: Optional[str] = None
    ref: Optional[str] = Field(default=None, alias="$ref")

    model_config = {"populate_by_name": True}


class Parameter(BaseModel):
    """A single operation parameter built from ``@Param`` or a Go signature.

    ``location`` is kept as a plain string: unknown locations are warned
    about and passed through unchanged.
    """

    name: str
    location: Optional[str] = Field(default=None, alias="in")
    description: Optional[str] = None
    required: bool = False
    allow_empty_value: bool = Field(default=False, alias="allowEmptyValue")
    type: Optional[str] = None
    format: Optional[str] = None
    schema_: Optional[Schema] = Field(default=None, alias="schema")
    items: Optional[ParameterItems] = None
    default: Any = None
    enum: list[Any] = Field(default_factory=list)

    model_config = {"populate_by_name": True}


class Response(BaseModel):
    """One entry of an operation's ``responses`` table."""

    description: str
    schema_: Optional[Schema] = Field(default=None, alias="schema")

    model_config = {"populate_by_name": True}


class Operation(BaseModel):
    """The documented contract of one controller method.

    Built incrementally by :class:`~beeswag.annotations.OperationBuilder`
    while it scans the method's comment block.
    """

    tags: list[str] = Field(default_factory=list)
    summary: Optional[str] = None
    description: Optional[str] = None
    operation_id: Optional[str] = Field(default=None, alias="operationId")
    consumes: list[str] = Field(default_factory=list)
    produces: list[str] = Field(default_factory=list)
    parameters: list[Parameter] = Field(default_factory=list)
    responses: dict[str, Response] = Field(default_factory=dict)
    security: Optional[list[dict[str, list[str]]]] = None
    deprecated: bool = False

    model_config = {"populate_by_name": True}


class Item(BaseModel):
    """Per-method operation slots of one path template."""

    get: Optional[Operation] = None
    put: Optional[Operation] = None
    post: Optional[Operation] = None
    delete: Optional[Operation] = None
    options: Optional[Operation] = None
    head: Optional[Operation] = None
    patch: Optional[Operation] = None

    def set_operation(self, method: HTTPMethod, operation: Operation) -> None:
        """Bind *operation* to the slot for *method*."""
        setattr(self, method.value, operation)

    def operations(self) -> Iterator[tuple[HTTPMethod, Operation]]:
        """Yield ``(method, operation)`` for every filled slot, in method order."""
        for method in HTTPMethod:
            operation = getattr(self, method.value)
            if operation is not None:
                yield method, operation


class Document(BaseModel):
    """The Swagger 2.0 root document produced by one generation run.

    See Also:
        :func:`~beeswag.generator.generate_docs`: Builds and returns it.
        :func:`~beeswag.writer.write_documents`: Serialises it to disk.
    """

    swagger: str = "2.0"
    info: Information = Field(default_factory=Information)
    host: Optional[str] = None
    base_path: Optional[str] = Field(default=None, alias="basePath")
    schemes: list[str] = Field(default_factory=list)
    paths: dict[str, Item] = Field(default_factory=dict)
    tags: list[Tag] = Field(default_factory=list)
    security_definitions: dict[str, SecurityDefinition] = Field(
        default_factory=dict, alias="securityDefinitions"
    )
    security: Optional[list[dict[str, list[str]]]] = None
    definitions: dict[str, Schema] = Field(default_factory=dict)

    model_config = {"populate_by_name": True}

    def to_dict(self) -> dict[str, Any]:
        """Return the wire-format dict with unset fields and empty containers dropped.

        ``swagger`` and ``info`` lead the output and ``paths`` is always
        present, as Swagger 2.0 requires them.
        """
        data = _prune(
            self.model_dump(by_alias=True, exclude_none=True, exclude_defaults=True, mode="json")
        )
        result: dict[str, Any] = {"swagger": self.swagger, "info": data.pop("info", {})}
        data.pop("swagger", None)
        result.update(data)
        result.setdefault("paths", {})
        return result


def _prune(value: Any) -> Any:
    """Recursively drop empty dicts and lists, mimicking ``omitempty``.

    Security requirement maps are kept verbatim: ``{"api_key": []}`` is a
    requirement with no scopes, not an empty value.
    """
    if isinstance(value, dict):
        pruned: dict[str, Any] = {}
        for key, item in value.items():
            if key == "security":
                pruned[key] = item
                continue
            item = _prune(item)
            if item == {} or item == []:
                continue
            pruned[key] = item
        return pruned
    if isinstance(value, list):
        return [_prune(item) for item in value]
    return value
