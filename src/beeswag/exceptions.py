"""Exception hierarchy for beeswag.

All exceptions inherit from :class:`BeeswagError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`beeswag.exit_codes`.
The top-level error handler in :func:`beeswag.app.main` catches
``BeeswagError`` and exits with the appropriate code.

Only fatal conditions are modelled as exceptions. Recoverable problems
(an unresolved nested type, an unknown parameter location, a directory
that fails to parse) are recorded as warnings on the
:class:`~beeswag.session.AnalysisSession` instead.

Subclass hierarchy::

    BeeswagError (exit 1)
    +-- ConfigError            (exit 1)
    +-- EnvironmentError_      (exit 3)
    +-- PackageNotFoundError   (exit 4)
    +-- SourceParseError       (exit 6)
    +-- AnnotationError        (exit 7)
"""

from beeswag.exit_codes import (
    EXIT_ANNOTATION_ERROR,
    EXIT_ENVIRONMENT_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_PACKAGE_NOT_FOUND,
    EXIT_SOURCE_ERROR,
)


class BeeswagError(Exception):
    """Base exception for all beeswag errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`beeswag.exit_codes`. The entry point catches
    this exception type and calls ``sys.exit(exc.exit_code)``.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class ConfigError(BeeswagError):
    """Raised for configuration problems (invalid ``beeswag.json``, bad values)."""

    exit_code = EXIT_GENERIC_FAILURE


class EnvironmentError_(BeeswagError):
    """Raised when no module root is available to locate Go packages.

    Named with a trailing underscore to avoid shadowing the built-in
    ``EnvironmentError`` alias of ``OSError``.
    """

    exit_code = EXIT_ENVIRONMENT_ERROR


class PackageNotFoundError(BeeswagError):
    """Raised when a package imported directly by the router file cannot be located."""

    exit_code = EXIT_PACKAGE_NOT_FOUND


class SourceParseError(BeeswagError):
    """Raised when the router file or a controller package cannot be read."""

    exit_code = EXIT_SOURCE_ERROR


class AnnotationError(BeeswagError):
    """Raised for malformed mandatory annotations (``@SecurityDefinition``, ``@Param`` arity)."""

    exit_code = EXIT_ANNOTATION_ERROR
