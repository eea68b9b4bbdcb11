"""
Python import resolver.

Produces module records for the files around a set of seed files. It never
builds a whole-project graph: it expands in layers from the seeds, parsing a
frontier file's imports (downward) and scanning the project for files that
import the frontier (upward). The upward scan reads each candidate once per
layer and only parses those whose text mentions a frontier module.
"""

from __future__ import annotations

import ast
import os
import re
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from pathlib import Path

from loguru import logger

from tools.dependencies.graph import DependencyRecord, ModuleRecord, normalize_path


@dataclass
class ImportInfo:
    """A single import statement."""

    module: str  # dotted module, '' for `from . import x`
    names: list[str] = field(default_factory=list)
    level: int = 0  # relative import depth
    line_number: int = 0


class ImportVisitor(ast.NodeVisitor):
    """Collects every import statement, including function-local ones."""

    def __init__(self) -> None:
        self.imports: list[ImportInfo] = []

    def visit_Import(self, node: ast.Import) -> None:
        for alias in node.names:
            self.imports.append(
                ImportInfo(module=alias.name, line_number=node.lineno)
            )

    def visit_ImportFrom(self, node: ast.ImportFrom) -> None:
        self.imports.append(
            ImportInfo(
                module=node.module or "",
                names=[alias.name for alias in node.names if alias.name != "*"],
                level=node.level,
                line_number=node.lineno,
            )
        )


class ImportResolver:
    """Resolves Python imports to project files.

    Args:
        root: Project root; every path in and out is relative to it.
        source_roots: Directories that act as import roots (e.g. ``src``).
        exclude_patterns: Regular expressions matched against relative paths.
        extensions: File suffixes treated as Python modules.
    """

    def __init__(
        self,
        root: str | Path = ".",
        source_roots: Iterable[str] | None = None,
        exclude_patterns: Iterable[str] | None = None,
        extensions: Iterable[str] | None = None,
    ) -> None:
        self.root = Path(root)
        roots = [normalize_path(r).rstrip("/") for r in source_roots or ["."]]
        # Longest first so `src/pkg` wins over `.` for files under it.
        self.source_roots = sorted(
            {"" if r in (".", "") else r for r in roots}, key=len, reverse=True
        )
        patterns = [p for p in exclude_patterns or [] if p]
        self._exclude = re.compile("|".join(patterns)) if patterns else None
        self.extensions = list(extensions or [".py"])
        self._project_files: list[str] | None = None
        self._deleted: set[str] = set()

    def resolve(self, seeds: Iterable[str], max_depth: int) -> list[ModuleRecord]:
        """Parse the modules within `max_depth` import hops of the seeds.

        Seeds that no longer exist (deleted files) are not parsed but are
        still used to find the files that import them.

        Raises:
            FileNotFoundError: The project root does not exist.
        """
        if not self.root.is_dir():
            raise FileNotFoundError(f"Project root not found: {self.root}")

        records: dict[str, ModuleRecord] = {}
        expanded: set[str] = set()
        frontier = {
            path for path in map(normalize_path, seeds) if self.is_included(path)
        }
        # Deleted seeds still resolve as import targets so their importers are found.
        self._deleted = {path for path in frontier if not (self.root / path).is_file()}

        for layer in range(max_depth):
            if not frontier:
                break

            discovered: set[str] = set()
            for path in sorted(frontier):
                record = self._record_for(path, records)
                if record is not None:
                    discovered.update(dep.resolved for dep in record.dependencies)

            discovered |= self._find_importers(frontier, records)
            expanded |= frontier
            frontier = discovered - expanded
            logger.debug(
                "Resolver layer {}: {} module(s) parsed, {} new file(s)",
                layer + 1,
                len(records),
                len(frontier),
            )

        return list(records.values())

    def is_included(self, path: str) -> bool:
        if not any(path.endswith(ext) for ext in self.extensions):
            return False
        return not self._is_excluded(path)

    def _is_excluded(self, path: str) -> bool:
        return bool(self._exclude and self._exclude.search(path))

    def project_files(self) -> list[str]:
        """All included files under the root, relative and normalized."""
        if self._project_files is None:
            files: list[str] = []
            for dirpath, dirnames, filenames in os.walk(self.root):
                rel_dir = Path(dirpath).relative_to(self.root).as_posix()
                prefix = "" if rel_dir == "." else f"{rel_dir}/"
                dirnames[:] = sorted(
                    d for d in dirnames if not self._is_excluded(f"{prefix}{d}/")
                )
                for name in sorted(filenames):
                    rel_path = f"{prefix}{name}"
                    if self.is_included(rel_path):
                        files.append(rel_path)
            self._project_files = files
        return self._project_files

    def module_name(self, path: str) -> str | None:
        """Dotted module name of a file, relative to its source root."""
        for root in self.source_roots:
            if root and not path.startswith(f"{root}/"):
                continue
            rel = path[len(root) + 1 :] if root else path
            for ext in self.extensions:
                if rel.endswith(ext):
                    rel = rel[: -len(ext)]
                    break
            parts = [p for p in rel.split("/") if p]
            if parts and parts[-1] == "__init__":
                parts = parts[:-1]
            return ".".join(parts) or None
        return None

    def _record_for(
        self, path: str, records: dict[str, ModuleRecord], text: str | None = None
    ) -> ModuleRecord | None:
        if path in records:
            return records[path]

        file_path = self.root / path
        if text is None:
            if not file_path.is_file():
                return None
            try:
                text = file_path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                logger.debug("Skipping unreadable module {}: {}", path, e)
                text = ""

        record = ModuleRecord(source=path, dependencies=self._parse_imports(path, text))
        records[path] = record
        return record

    def _parse_imports(self, path: str, text: str) -> list[DependencyRecord]:
        try:
            tree = ast.parse(text, filename=path)
        except (SyntaxError, ValueError) as e:
            logger.debug("Skipping unparsable module {}: {}", path, e)
            return []

        visitor = ImportVisitor()
        visitor.visit(tree)

        dependencies: list[DependencyRecord] = []
        seen: set[str] = {path}
        for info in visitor.imports:
            for resolved, module_name in self._resolve_import(path, info):
                if resolved in seen:
                    continue
                seen.add(resolved)
                dependencies.append(
                    DependencyRecord(
                        resolved=resolved,
                        module_name=module_name,
                        line_number=info.line_number,
                    )
                )
        return dependencies

    def _resolve_import(
        self, path: str, info: ImportInfo
    ) -> Iterator[tuple[str, str]]:
        """Yield (file, module name) for each project file an import names."""
        if info.level:
            base = Path(path).parent
            for _ in range(info.level - 1):
                base = base.parent
            base_dir = "" if base.as_posix() == "." else base.as_posix()
            if info.module:
                base_dir = "/".join(
                    p for p in [base_dir, info.module.replace(".", "/")] if p
                )
            label = "." * info.level + info.module
            yield from self._resolve_from(
                [base_dir], info.names, label, relative=True
            )
            return

        if info.names:
            bases = [self._join(root, info.module) for root in self.source_roots]
            yield from self._resolve_from(bases, info.names, info.module)
            return

        # `import a.b.c` binds `a`; keep the most specific module that exists.
        parts = info.module.split(".")
        for end in range(len(parts), 0, -1):
            dotted = ".".join(parts[:end])
            found = self._find_module(
                [self._join(root, dotted) for root in self.source_roots]
            )
            if found:
                yield found, dotted
                return

    def _resolve_from(
        self, bases: list[str], names: list[str], label: str, relative: bool = False
    ) -> Iterator[tuple[str, str]]:
        needs_package = not names
        for name in names:
            submodule = self._find_module(
                ["/".join(p for p in [base, name] if p) for base in bases]
            )
            if submodule:
                sep = "" if label.endswith(".") else "."
                yield submodule, f"{label}{sep}{name}"
            else:
                needs_package = True

        if needs_package:
            package = self._find_module(bases, allow_root_package=relative)
            if package:
                yield package, label

    def _find_module(
        self, bases: list[str], allow_root_package: bool = False
    ) -> str | None:
        for base in bases:
            if not base and not allow_root_package:
                continue
            prefix = f"{base}/" if base else ""
            for ext in self.extensions:
                candidates = [f"{prefix}__init__{ext}"]
                if base:
                    candidates.insert(0, f"{base}{ext}")
                for candidate in candidates:
                    if not self.is_included(candidate):
                        continue
                    if candidate in self._deleted or (self.root / candidate).is_file():
                        return candidate
        return None

    @staticmethod
    def _join(root: str, dotted: str) -> str:
        rel = dotted.replace(".", "/")
        return f"{root}/{rel}" if root else rel

    def _find_importers(
        self, targets: set[str], records: dict[str, ModuleRecord]
    ) -> set[str]:
        """Project files that import any of `targets`."""
        tails = set()
        for target in targets:
            name = self.module_name(target)
            if name:
                tails.add(name.rsplit(".", 1)[-1])
        if not tails:
            return set()

        mention = re.compile(
            r"\bfrom\s+\.|\b(?:" + "|".join(map(re.escape, sorted(tails))) + r")\b"
        )

        importers: set[str] = set()
        for candidate in self.project_files():
            if candidate in targets:
                continue

            record = records.get(candidate)
            if record is None:
                try:
                    text = (self.root / candidate).read_text(encoding="utf-8")
                except (OSError, UnicodeDecodeError):
                    continue
                if not mention.search(text):
                    continue
                record = self._record_for(candidate, records, text)

            if record and any(dep.resolved in targets for dep in record.dependencies):
                importers.add(candidate)
        return importers
