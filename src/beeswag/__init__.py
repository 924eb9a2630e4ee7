"""beeswag -- Generate Swagger 2.0 documents from annotated Beego controllers.

The generator reads a project's router file, follows the controller
packages it imports, and turns the ``@Title``/``@Param``/``@Success``
comment annotations on controller methods into a Swagger 2.0 document.
Go struct types referenced by annotations become ``definitions``.

Typical workflow::

    beeswag generate ./myapi           # writes ./myapi/swagger/swagger.{json,yml}
    beeswag routes ./myapi             # list documented operations

Modules:
    app: Typer application and CLI entry point.
    generator: One documentation run, from router file to document.
    annotations: Comment annotation grammar.
    schema: Go type to Swagger schema resolution.
    routes: Namespace walker over the router file.
    assembler: Path table and tag bookkeeping.
    packages: Package location, indexing and project walking.
    syntax: tree-sitter based Go front-end.
    models: Pydantic models shared across the entire package.
    config: Configuration precedence and Go environment discovery.
    exceptions: Exception hierarchy with exit-code mapping.
    output: stdout/stderr formatting system with Rich support.
"""

__version__ = "0.1.0"
