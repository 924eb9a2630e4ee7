"""Annotation grammar for controller methods and the router file.

Every comment line starting with a known ``@Keyword`` is dispatched
through a table to a handler; unknown keywords are ignored so new tags
never break older generators.

Operation tags (controller method doc comments)::

    // @Title Get
    // @Description get user by uid
    // @Param   uid     path    string  true    "The key for staticblock"
    // @Success 200 {object} models.User
    // @Failure 403 :uid is empty
    // @router /:uid [get]

Document tags (any comment of the router file)::

    // @APIVersion 1.0.0
    // @Title beego Test API
    // @SecurityDefinition api_key apiKey X-API-Key header "API key"
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable, Optional

from beeswag.exceptions import AnnotationError
from beeswag.literals import convert_literal, parse_bool, peek_field, split_fields
from beeswag.models import (
    Contact,
    ControllerKey,
    HTTPMethod,
    Item,
    License,
    Operation,
    Parameter,
    ParameterItems,
    ParameterLocation,
    Response,
    Schema,
    SecurityDefinition,
)
from beeswag.schema import BASIC_TYPES, ModelResolver, basic_schema
from beeswag.syntax import (
    ArrayType,
    Comment,
    Expr,
    FuncDecl,
    Ident,
    Param,
    Pointer,
    Selector,
    SourceFile,
    comment_lines,
)

if TYPE_CHECKING:
    from beeswag.session import AnalysisSession

MIME_TYPES = {
    "json": "application/json",
    "xml": "application/xml",
    "plain": "text/plain",
    "html": "text/html",
    "form": "multipart/form-data",
}
_CONSUMES_ONLY = frozenset({"form"})

_PARAM_LOCATIONS = frozenset(location.value for location in ParameterLocation)
_SWAGGER_PARAM_TYPES = frozenset({"string", "number", "integer", "boolean", "array", "file"})
_OAUTH2_FLOWS = ("implicit", "password", "application", "accessCode")
_API_KEY_LOCATIONS = ("header", "query")


def param_in_path(name: str, route: str) -> bool:
    """True when *route* has a ``:name`` segment."""
    return route.endswith(":" + name) or (":" + name + "/") in route


def _param_type_name(expr: Expr) -> str:
    """Render a Go parameter type the way ``@Param ... auto`` expects it."""
    if isinstance(expr, Ident):
        return expr.name
    if isinstance(expr, ArrayType):
        return "[]" + _param_type_name(expr.elem)
    if isinstance(expr, Pointer):
        return _param_type_name(expr.elem)
    if isinstance(expr, Selector):
        return _param_type_name(expr.operand) + "." + expr.name
    return ""


def build_param_map(params: list[Param]) -> dict[str, str]:
    """Map each function parameter name to its type name, in signature order.

    Unnamed parameters are keyed by their position among unnamed ones.
    """
    result: dict[str, str] = {}
    unnamed = 0
    for param in params:
        type_name = _param_type_name(param.type)
        if param.variadic:
            type_name = "[]" + type_name
        if not param.names:
            result[str(unnamed)] = type_name
            unnamed += 1
            continue
        for name in param.names:
            result[name] = type_name
    return result


def _trim(text: str) -> str:
    return text.strip().strip('"').strip()


# ------------------------------------------------------------------ #
# Operation tags
# ------------------------------------------------------------------ #


class OperationBuilder:
    """Builds the :class:`~beeswag.models.Operation` of one controller method.

    Feed it comment lines with :meth:`apply`, then call :meth:`finish` to
    add the unannotated function parameters and register the operation in
    the controller's route table.

    Args:
        session: The running analysis session.
        models: Resolver for type references in ``@Param``/``@Success``.
        source: File declaring the method, used to resolve type names.
        func: The method declaration.
        key: The controller owning the method.
    """

    def __init__(
        self,
        session: AnalysisSession,
        models: ModelResolver,
        source: SourceFile,
        func: FuncDecl,
        key: ControllerKey,
    ) -> None:
        self.session = session
        self.models = models
        self.source = source
        self.func = func
        self.key = key
        self.operation = Operation()
        self.route = ""
        self.methods: list[str] = []
        self._descriptions: list[str] = []
        self._func_params = build_param_map(func.params)
        if func.name.upper() in HTTPMethod.__members__:
            self.methods = [func.name.upper()]

    @property
    def where(self) -> str:
        return f"{self.key.name}.{self.func.name}"

    def apply(self, line: str) -> None:
        """Dispatch one stripped comment line."""
        keyword, rest = peek_field(line)
        handler = _OPERATION_TAGS.get(keyword)
        if handler is not None:
            handler(self, rest)

    def finish(self) -> None:
        """Register the operation under its route, if it has an HTTP method."""
        if not self.methods:
            return
        for name, type_name in self._func_params.items():
            param = Parameter(name=name)
            param.location = "path" if param_in_path(name, self.route) else "query"
            self._set_param_type(param, type_name)
            self.operation.parameters.append(param)

        routes = self.session.routes_of(self.key)
        item = routes.get(self.route)
        if item is None:
            item = routes[self.route] = Item()
        for method in self.methods:
            try:
                item.set_operation(HTTPMethod(method.lower()), self.operation)
            except ValueError:
                self.session.warn(f"[{self.where}] Unknown HTTP method: {method}")

    # --- handlers ---

    def _router(self, rest: str) -> None:
        route, methods = peek_field(rest)
        if not route:
            self.session.warn(f"[{self.where}] @router has no path")
        self.route = route
        if methods:
            token, _ = peek_field(methods)
            self.methods = [m.strip() for m in token.strip("[]").upper().split(",") if m.strip()]
        else:
            self.methods = ["GET"]

    def _title(self, rest: str) -> None:
        self.operation.operation_id = f"{self.key.name}.{rest.strip()}"

    def _description(self, rest: str) -> None:
        self._descriptions.append(_trim(rest))
        self.operation.description = "\n\n".join(self._descriptions)

    def _summary(self, rest: str) -> None:
        self.operation.summary = rest.strip()

    def _response(self, rest: str) -> None:
        code, rest = peek_field(rest)
        kind, remainder = peek_field(rest)
        response = Response(description=_trim(rest))
        if kind in ("{object}", "{array}"):
            is_array = kind == "{array}"
            schema_name, remainder = peek_field(remainder)
            if not schema_name:
                raise AnnotationError(
                    f"[{self.where}] Schema must follow {{object}} or {{array}}"
                )
            if schema_name.startswith("[]"):
                schema_name = schema_name[2:]
                is_array = True
            schema = self._schema_for(schema_name)
            response.schema_ = Schema(type="array", items=schema) if is_array else schema
            response.description = _trim(remainder)
        self.operation.responses[code] = response

    def _param(self, rest: str) -> None:
        fields = split_fields(rest)
        if len(fields) < 4:
            raise AnnotationError(
                f"{self.key.name}_{self.func.name}'s comments @Param should have at least 4 params"
            )
        names = fields[0].split("=>", 1)
        param = Parameter(name=names[0])
        func_param = names[1] if len(names) > 1 else names[0]
        declared_type = self._func_params.pop(func_param, None)

        location = fields[1]
        if location not in _PARAM_LOCATIONS:
            self.session.warn(
                f"[{self.where}] Unknown param location: {location}. Possible values are "
                "`query`, `header`, `path`, `formData` or `body`."
            )
        param.location = location

        type_name = fields[2]
        if "." in type_name and type_name.lstrip("[]") not in BASIC_TYPES:
            is_array = type_name.startswith("[]")
            ref = self.models.resolve_ref(self.source, type_name.lstrip("[]"), self.key)
            if is_array:
                param.schema_ = Schema(type="array", items=Schema(ref=ref))
            else:
                param.schema_ = Schema(ref=ref)
        else:
            if type_name == "auto":
                if declared_type is None:
                    self.session.warn(
                        f"[{self.where}] @Param {param.name} is auto but the function "
                        f"has no parameter {func_param}"
                    )
                type_name = declared_type or "string"
            self._set_param_type(param, type_name)

        try:
            param.required = parse_bool(fields[3])
        except ValueError:
            self.session.warn(f"[{self.where}] Invalid required flag for {param.name}: {fields[3]}")
        param.allow_empty_value = not param.required

        if len(fields) > 4:
            param.description = "\n".join(fields[4].strip('" ').split("\\n"))
        literal_type = param.items.type if param.items is not None else param.type
        if len(fields) > 5:
            param.default = self._typed(fields[5], literal_type)
        if len(fields) > 6:
            param.enum = [self._typed(value, literal_type) for value in fields[6].split(":")]
        self.operation.parameters.append(param)

    def _accept(self, rest: str) -> None:
        for alias in rest.strip().split(","):
            alias = alias.strip()
            mime = MIME_TYPES.get(alias)
            if mime is None:
                self.session.warn(f"[{self.where}] Unknown @Accept media alias: {alias}")
                mime = alias
            self.operation.consumes.append(mime)
            if alias not in _CONSUMES_ONLY:
                self.operation.produces.append(mime)

    def _security(self, rest: str) -> None:
        requirement = parse_security_requirement(rest)
        if self.operation.security is None:
            self.operation.security = []
        self.operation.security.append(requirement)

    def _deprecated(self, rest: str) -> None:
        try:
            self.operation.deprecated = parse_bool(rest.strip())
        except ValueError:
            self.session.warn(f"[{self.where}] Invalid @Deprecated value: {rest.strip()}")

    # --- helpers ---

    def _schema_for(self, type_name: str) -> Schema:
        if type_name in BASIC_TYPES:
            return basic_schema(type_name)
        return Schema(ref=self.models.resolve_ref(self.source, type_name, self.key))

    def _set_param_type(self, param: Parameter, type_name: str) -> None:
        is_array = type_name.startswith("[]")
        if is_array:
            type_name = type_name[2:]

        ref: Optional[str] = None
        param_type: Optional[str] = None
        param_format: Optional[str] = None
        if type_name in _SWAGGER_PARAM_TYPES:
            param_type = type_name
        elif type_name in BASIC_TYPES:
            param_type, param_format = BASIC_TYPES[type_name]
        elif type_name:
            ref = self.models.resolve_ref(self.source, type_name, self.key)
        else:
            param_type = "string"

        if is_array:
            if param.location == ParameterLocation.BODY.value:
                items = Schema(ref=ref) if ref else Schema(type=param_type, format=param_format)
                param.schema_ = Schema(type="array", items=items)
            else:
                param.type = "array"
                param.items = ParameterItems(type=param_type, format=param_format, ref=ref)
        elif ref is not None:
            param.schema_ = Schema(ref=ref)
        else:
            param.type = param_type
            param.format = param_format

    def _typed(self, value: str, type_name: Optional[str]):
        try:
            return convert_literal(value, type_name)
        except ValueError:
            self.session.warn(f"[{self.where}] Invalid value for type '{type_name}': {value}")
            return value


OperationHandler = Callable[[OperationBuilder, str], None]

_OPERATION_TAGS: dict[str, OperationHandler] = {
    "@router": OperationBuilder._router,
    "@Router": OperationBuilder._router,
    "@Title": OperationBuilder._title,
    "@Description": OperationBuilder._description,
    "@Summary": OperationBuilder._summary,
    "@Success": OperationBuilder._response,
    "@Failure": OperationBuilder._response,
    "@Param": OperationBuilder._param,
    "@Accept": OperationBuilder._accept,
    "@Security": OperationBuilder._security,
    "@Deprecated": OperationBuilder._deprecated,
}


def parse_controller_method(
    session: AnalysisSession,
    models: ModelResolver,
    source: SourceFile,
    func: FuncDecl,
    key: ControllerKey,
) -> Optional[Operation]:
    """Parse one controller method's doc comment into its route table.

    Methods without a doc comment are skipped.

    Returns:
        The built operation, or ``None`` when the method had no comments.
    """
    if not func.doc:
        return None
    builder = OperationBuilder(session, models, source, func, key)
    for comment in func.doc:
        for line in comment_lines(comment):
            builder.apply(line)
    builder.finish()
    return builder.operation


# ------------------------------------------------------------------ #
# Document tags
# ------------------------------------------------------------------ #


def parse_security_requirement(text: str) -> dict[str, list[str]]:
    """Parse ``scheme [scope...]`` into a security requirement.

    Raises:
        AnnotationError: If no scheme name is given.
    """
    fields = split_fields(text.strip())
    if not fields:
        raise AnnotationError("No params for security specified")
    return {fields[0]: fields[1:]}


def parse_security_definition(text: str) -> tuple[str, SecurityDefinition]:
    """Parse the fields of a ``@SecurityDefinition`` tag.

    Accepted forms::

        name basic ["description"]
        name apiKey <param name> <header|query> ["description"]
        name oauth2 <authorizationUrl> <flow> [scope "description"]... ["description"]

    Raises:
        AnnotationError: On missing fields, an unknown scheme type, an
            unknown OAuth2 flow or an unknown API key location.
    """
    fields = split_fields(text.strip())
    if len(fields) < 2:
        raise AnnotationError(f"Not enough params for security: {len(fields)}")
    name, scheme = fields[0], fields[1]
    definition = SecurityDefinition(type=scheme)

    if scheme == "oauth2":
        if len(fields) < 6:
            raise AnnotationError(f"Not enough params for oauth2: {len(fields)}")
        if fields[3] not in _OAUTH2_FLOWS:
            raise AnnotationError(
                f"Unknown flow type: {fields[3]}. Possible values are `implicit`, "
                "`password`, `application` or `accessCode`."
            )
        definition.authorization_url = fields[2]
        definition.flow = fields[3]
        if len(fields) % 2 != 0:
            definition.description = fields[-1].strip('" ')
        definition.scopes = {}
        for index in range(4, len(fields) - 1, 2):
            definition.scopes[fields[index]] = fields[index + 1].strip('" ')
    elif scheme == "apiKey":
        if len(fields) < 4:
            raise AnnotationError(f"Not enough params for apiKey: {len(fields)}")
        if fields[3] not in _API_KEY_LOCATIONS:
            raise AnnotationError(
                f"Unknown in type: {fields[3]}. Possible values are `query` or `header`."
            )
        definition.name = fields[2]
        definition.location = fields[3]
        if len(fields) > 4:
            definition.description = fields[4].strip('" ')
    elif scheme == "basic":
        if len(fields) > 2:
            definition.description = fields[2].strip('" ')
    else:
        raise AnnotationError(
            f"Unknown security type: {scheme}. Possible values are `oauth2`, `apiKey` or `basic`."
        )
    return name, definition


class DocumentTagParser:
    """Applies router-file header tags to the session's document."""

    def __init__(self, session: AnalysisSession) -> None:
        self.session = session
        self.document = session.document
        self._descriptions: list[str] = []

    def apply_comments(self, comments: list[Comment]) -> None:
        for comment in comments:
            for line in comment_lines(comment.text):
                self.apply(line)

    def apply(self, line: str) -> None:
        keyword, rest = peek_field(line)
        handler = _DOCUMENT_TAGS.get(keyword)
        if handler is not None:
            handler(self, rest.strip())

    def _contact(self) -> Contact:
        if self.document.info.contact is None:
            self.document.info.contact = Contact()
        return self.document.info.contact

    def _license(self) -> License:
        if self.document.info.license is None:
            self.document.info.license = License()
        return self.document.info.license

    def _version(self, rest: str) -> None:
        self.document.info.version = rest

    def _title(self, rest: str) -> None:
        self.document.info.title = rest

    def _description(self, rest: str) -> None:
        self._descriptions.append(rest)
        self.document.info.description = "\n\n".join(self._descriptions)

    def _terms(self, rest: str) -> None:
        self.document.info.terms_of_service = rest

    def _email(self, rest: str) -> None:
        self._contact().email = rest

    def _contact_name(self, rest: str) -> None:
        self._contact().name = rest

    def _contact_url(self, rest: str) -> None:
        self._contact().url = rest

    def _license_name(self, rest: str) -> None:
        self._license().name = rest

    def _license_url(self, rest: str) -> None:
        self._license().url = rest

    def _schemes(self, rest: str) -> None:
        self.document.schemes = [s.strip() for s in rest.split(",") if s.strip()]

    def _host(self, rest: str) -> None:
        self.document.host = rest

    def _base_path(self, rest: str) -> None:
        self.document.base_path = rest

    def _security_definition(self, rest: str) -> None:
        name, definition = parse_security_definition(rest)
        self.document.security_definitions[name] = definition

    def _security(self, rest: str) -> None:
        if self.document.security is None:
            self.document.security = []
        self.document.security.append(parse_security_requirement(rest))


DocumentHandler = Callable[[DocumentTagParser, str], None]

_DOCUMENT_TAGS: dict[str, DocumentHandler] = {
    "@APIVersion": DocumentTagParser._version,
    "@Title": DocumentTagParser._title,
    "@Description": DocumentTagParser._description,
    "@TermsOfServiceUrl": DocumentTagParser._terms,
    "@Contact": DocumentTagParser._email,
    "@Name": DocumentTagParser._contact_name,
    "@URL": DocumentTagParser._contact_url,
    "@License": DocumentTagParser._license_name,
    "@LicenseUrl": DocumentTagParser._license_url,
    "@Schemes": DocumentTagParser._schemes,
    "@Host": DocumentTagParser._host,
    "@Base": DocumentTagParser._base_path,
    "@BasePath": DocumentTagParser._base_path,
    "@SecurityDefinition": DocumentTagParser._security_definition,
    "@Security": DocumentTagParser._security,
}
