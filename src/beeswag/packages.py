"""Package location, indexing and project discovery.

Three pieces live here:

* :class:`PackageIndex` -- every parsed package of a run, searchable by
  package name and type name.
* :class:`PackageResolver` -- maps import paths to directories (vendor,
  then the project's own ``go.mod`` module, then each ``GOPATH`` root),
  tells standard library packages apart, and expands controller packages.
* :func:`walk_project` -- parses every package under the project root on
  a producer thread, streaming results and per-directory errors back
  through a queue.
"""

from __future__ import annotations

import os
import queue
import threading
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Iterable, Iterator, NamedTuple, Optional

import pathspec

from beeswag.exceptions import EnvironmentError_, PackageNotFoundError, SourceParseError
from beeswag.models import ControllerKey
from beeswag.syntax import FuncDecl, GoParser, ImportSpec, Package, SourceFile, StructType, TypeSpec

if TYPE_CHECKING:
    from beeswag.session import AnalysisSession

DEFAULT_EXCLUDES = ["/vendor/", "*tests*/", ".*/"]

MethodHandler = Callable[[SourceFile, FuncDecl, ControllerKey], None]


class Declaration(NamedTuple):
    """Where a type declaration was found."""

    package: Package
    source: SourceFile
    spec: TypeSpec


class PackageIndex:
    """Parsed packages of one run, indexed by package name.

    A package directory is added at most once; lookups iterate packages in
    insertion order so the first declaration found wins.
    """

    def __init__(self) -> None:
        self._by_name: dict[str, list[Package]] = {}
        self._seen: set[tuple[Path, str]] = set()

    def __len__(self) -> int:
        return len(self._seen)

    def add(self, package: Package) -> bool:
        """Index *package*. Returns ``False`` if it was already present."""
        key = (package.directory.resolve(), package.name)
        if key in self._seen:
            return False
        self._seen.add(key)
        self._by_name.setdefault(package.name, []).append(package)
        return True

    def find_packages(self, name: str) -> Iterator[Package]:
        yield from self._by_name.get(name, ())

    def find_type(self, package_name: str, type_name: str) -> Optional[Declaration]:
        for package in self.find_packages(package_name):
            found = package.find_type(type_name)
            if found is not None:
                return Declaration(package, *found)
        return None


class PackageResolver:
    """Resolves import paths for one :class:`~beeswag.session.AnalysisSession`."""

    def __init__(self, session: AnalysisSession) -> None:
        self._session = session
        self._loaded: dict[str, list[Package]] = {}
        self._names: dict[Path, Optional[str]] = {}

    @property
    def _config(self):
        return self._session.config

    def ensure_environment(self) -> None:
        """Fail fast when there is nowhere to look for project packages.

        Raises:
            EnvironmentError_: If neither a ``go.mod`` module nor any
                ``GOPATH`` root is configured.
        """
        if not self._config.module_path and not self._config.gopath:
            raise EnvironmentError_(
                "GOPATH environment variable is not set or empty and no go.mod "
                f"module was found in {self._config.project_root}"
            )

    def _in_module(self, import_path: str) -> bool:
        module = self._config.module_path
        return bool(module) and (import_path == module or import_path.startswith(module + "/"))

    def resolve(self, import_path: str) -> Optional[Path]:
        """Map *import_path* to a package directory, following symlinks.

        Looks in ``<root>/<vendor>/<path>``, then inside the project when the
        path belongs to its own module, then ``<gopath>/src/<path>`` for each
        GOPATH root. The first existing directory wins.
        """
        root = self._config.project_root
        candidates = [root / self._config.vendor_dir / import_path]
        if self._in_module(import_path):
            relative = import_path[len(self._config.module_path):].lstrip("/")
            candidates.append(root / relative if relative else root)
        candidates.extend(gopath / "src" / import_path for gopath in self._config.gopath)
        for candidate in candidates:
            if candidate.is_dir():
                return candidate.resolve()
        return None

    def is_system_package(self, import_path: str) -> bool:
        """True for packages of the Go standard distribution.

        Checks ``GOROOT/src/pkg`` (pre-1.4 layout) and ``GOROOT/src``. Without
        a known GOROOT, falls back to the Go convention that standard
        packages have no dot in their first path element.
        """
        if self._in_module(import_path):
            return False
        goroot = self._config.goroot
        if goroot is None:
            return "." not in import_path.split("/", 1)[0]
        return (goroot / "src" / "pkg" / import_path).exists() or (
            goroot / "src" / import_path
        ).exists()

    def is_framework_package(self, import_path: str) -> bool:
        """True for the web framework itself and its sub-packages."""
        return any(
            import_path == framework or import_path.startswith(framework + "/")
            for framework in self._config.framework_packages
        )

    def real_package_name(self, directory: Path) -> Optional[str]:
        if directory not in self._names:
            self._names[directory] = self._session.parser.package_name(directory)
        return self._names[directory]

    def local_name(self, spec: ImportSpec, directory: Optional[Path] = None) -> str:
        """The name an import binds in the importing file."""
        if spec.name:
            return spec.name
        if directory is not None:
            name = self.real_package_name(directory)
            if name:
                return name
        return spec.path.rsplit("/", 1)[-1]

    def expand_controller_package(self, spec: ImportSpec, on_method: MethodHandler) -> bool:
        """Parse a package imported by the router file for controllers.

        Every pointer-receiver method is handed to *on_method*, and doc
        comments of struct types are recorded for later tag descriptions.
        System and framework packages are skipped; a package is expanded
        at most once per session.

        Returns:
            ``True`` if the package was parsed by this call.

        Raises:
            PackageNotFoundError: If the import path cannot be resolved.
            SourceParseError: If the package directory cannot be read.
        """
        session = self._session
        import_path = spec.path
        if self.is_system_package(import_path):
            return False
        if self.is_framework_package(import_path):
            return False

        directory = self.resolve(import_path)
        if directory is None:
            raise PackageNotFoundError(
                f"Package '{import_path}' does not exist in the vendor path, "
                "module root or GOPATH"
            )
        session.import_aliases[self.local_name(spec, directory)] = import_path
        if import_path in session.visited:
            return False
        session.visited.add(import_path)

        session.debug(f"Expanding controller package {import_path} ({directory})")
        packages = session.parser.parse_directory(directory)
        for package in packages:
            session.index.add(package)
            for source in package.files:
                if source.has_error:
                    session.warn(f"Syntax errors in {source.path}; results may be incomplete")
                for type_spec in source.types:
                    if isinstance(type_spec.type, StructType) and type_spec.doc:
                        key = ControllerKey(package_path=import_path, name=type_spec.name)
                        session.controller_docs[key] = type_spec.doc
                for func in source.methods():
                    receiver = func.receiver_type
                    if receiver is None:
                        continue
                    on_method(source, func, ControllerKey(package_path=import_path, name=receiver))
        return True

    def load_package(self, import_path: str) -> list[Package]:
        """Parse a package needed for type lookup, tolerating failure.

        Unresolvable or unreadable packages yield an empty list and are not
        retried. Parsed packages are added to the session index.
        """
        if import_path in self._loaded:
            return self._loaded[import_path]
        packages: list[Package] = []
        self._loaded[import_path] = packages
        if self.is_system_package(import_path):
            return packages
        directory = self.resolve(import_path)
        if directory is None:
            self._session.debug(f"Package {import_path} not found; skipping")
            return packages
        try:
            packages.extend(self._session.parser.parse_directory(directory))
        except SourceParseError as exc:
            self._session.warn(str(exc))
            return packages
        for package in packages:
            self._session.index.add(package)
        return packages

    def load_imports(self, source: SourceFile) -> None:
        """Make every package imported by *source* available for type lookup."""
        for spec in source.imports:
            self.load_package(spec.path)


_DONE = object()


def walk_project(
    root: Path,
    parser: GoParser,
    exclude: Iterable[str] = (),
    on_error: Optional[Callable[[str], None]] = None,
) -> list[Package]:
    """Parse every package directory under *root*.

    The walk runs on a single producer thread. Parsed packages and
    per-directory errors are streamed back through a queue; errors are
    passed to *on_error* and never abort the walk. The queue is drained
    until the producer posts its completion sentinel.

    Args:
        root: Project root.
        parser: Front-end used for every directory.
        exclude: Extra gitignore-style patterns, relative to *root*, added to
            :data:`DEFAULT_EXCLUDES`.
        on_error: Receives one message per failed directory.

    Returns:
        Parsed packages in walk order.
    """
    spec = pathspec.PathSpec.from_lines("gitignore", [*DEFAULT_EXCLUDES, *exclude])
    results: queue.Queue = queue.Queue()

    def produce() -> None:
        def walk_error(exc: OSError) -> None:
            results.put(("error", f"error while walking directory: {exc}"))

        try:
            for dirpath, dirnames, _ in os.walk(str(root), onerror=walk_error):
                rel_dir = os.path.relpath(dirpath, str(root))
                dirnames[:] = sorted(
                    d
                    for d in dirnames
                    if not spec.match_file(
                        (os.path.join(rel_dir, d) if rel_dir != "." else d) + "/"
                    )
                )
                try:
                    for package in parser.parse_directory(Path(dirpath)):
                        results.put(("package", package))
                except SourceParseError as exc:
                    results.put(("error", f"error while parsing directory: {exc}"))
        except Exception as exc:
            results.put(("fatal", exc))
        finally:
            results.put(_DONE)

    producer = threading.Thread(target=produce, name="beeswag-walk", daemon=True)
    producer.start()

    packages: list[Package] = []
    while True:
        item = results.get()
        if item is _DONE:
            break
        kind, payload = item
        if kind == "package":
            packages.append(payload)
        elif kind == "fatal":
            producer.join()
            raise payload
        elif on_error is not None:
            on_error(payload)
    producer.join()
    return packages
