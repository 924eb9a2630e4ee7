"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~beeswag.exceptions.BeeswagError` subclass.
CI scripts and Makefile targets can inspect the exit code to tell a
broken annotation apart from a misconfigured environment without parsing
stderr.

Example::

    $ beeswag generate ./myapp
    $ echo $?
    7   # EXIT_ANNOTATION_ERROR -- a @SecurityDefinition is malformed
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments."""

EXIT_ENVIRONMENT_ERROR = 3
"""No Go module root or GOPATH is available to locate packages."""

EXIT_PACKAGE_NOT_FOUND = 4
"""A package imported by the router file could not be located."""

EXIT_SOURCE_ERROR = 6
"""The router file or a controller package could not be read."""

EXIT_ANNOTATION_ERROR = 7
"""A mandatory annotation is malformed (wrong arity or unknown variant)."""
