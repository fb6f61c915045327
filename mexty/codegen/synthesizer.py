"""Export synthesizer — registry snapshot to generated TypeScript modules.

Synthesis runs in two steps:

1. **Plan**: validate every name in the snapshot and build a
   :class:`ModulePlan` per output file (bindings + metadata records).
   Nothing is rendered until the whole snapshot has been validated, so an
   invalid name aborts the run before any text exists.
2. **Render**: one function per module kind turns a plan into source
   text. All escaping happens here, through :mod:`mexty.codegen.sanitizer`.

Entries are emitted in the iteration order of the input maps. Nothing is
sorted or deduplicated; the only volatile output is ``generated_at``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Union

from mexty.codegen.sanitizer import (
    comment_text,
    property_key,
    quote,
    string_list,
    validate_identifier,
    validate_namespace,
)
from mexty.config import DEFAULT_PACKAGE_NAME
from mexty.registry.models import Registry, RegistryEntry, RegistrySnapshot

GLOBAL_FACTORY = "createNamedBlock"
GLOBAL_FACTORY_MODULE = "./components/NamedBlock"
AUTHOR_FACTORY = "createAuthorBlock"
AUTHOR_FACTORY_MODULE = "../../components/AuthorBlock"

MetadataValue = Union[str, int, list]


class ModuleKind(Enum):
    GLOBAL = "global"
    AUTHOR = "author"


@dataclass
class BindingDecl:
    """``export const <name> = <factory>(<args>);`` plus its doc comment."""

    name: str
    factory: str
    args: list[str]
    comments: list[str] = field(default_factory=list)


@dataclass
class MetadataRecord:
    """One component's entry in a metadata object."""

    name: str
    fields: list[tuple[str, MetadataValue]] = field(default_factory=list)


@dataclass
class ModulePlan:
    """Everything needed to render one generated module."""

    kind: ModuleKind
    generated_at: str
    factory: str
    factory_module: str
    bindings: list[BindingDecl] = field(default_factory=list)
    metadata: list[MetadataRecord] = field(default_factory=list)
    author: str | None = None

    # Global module only
    author_names: list[str] = field(default_factory=list)
    author_metadata: list[tuple[str, list[MetadataRecord]]] = field(default_factory=list)
    package_name: str = DEFAULT_PACKAGE_NAME

    @property
    def total_components(self) -> int:
        return len(self.bindings)


@dataclass
class SynthesisResult:
    """Rendered text for every generated module of one snapshot."""

    global_module: str
    author_modules: dict[str, str] = field(default_factory=dict)
    generated_at: str = ""


def timestamp_now() -> str:
    """UTC timestamp in the ``2024-01-31T12:00:00.000Z`` form."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class ExportSynthesizer:
    """Builds and renders the global and per-author export modules."""

    def __init__(self, package_name: str = DEFAULT_PACKAGE_NAME):
        self.package_name = package_name

    def synthesize(
        self, snapshot: RegistrySnapshot, generated_at: str | None = None
    ) -> SynthesisResult:
        """Validate ``snapshot`` and render all modules.

        Raises:
            ValidationError: If any component or author name is unusable.
                Raised before any module is rendered.
        """
        generated_at = generated_at or timestamp_now()

        global_plan = self.plan_global(snapshot, generated_at)
        author_plans = [
            self.plan_author(author, components, generated_at)
            for author, components in snapshot.author_registry.items()
        ]

        return SynthesisResult(
            global_module=render_global_module(global_plan),
            author_modules={
                plan.author: render_author_module(plan) for plan in author_plans
            },
            generated_at=generated_at,
        )

    def plan_global(self, snapshot: RegistrySnapshot, generated_at: str) -> ModulePlan:
        plan = ModulePlan(
            kind=ModuleKind.GLOBAL,
            generated_at=generated_at,
            factory=GLOBAL_FACTORY,
            factory_module=GLOBAL_FACTORY_MODULE,
            package_name=self.package_name,
        )

        for name, entry in snapshot.registry.items():
            validate_identifier(name, f"registry.{name}")
            heading = entry.title + (f" (by {entry.author})" if entry.author else "")
            plan.bindings.append(
                BindingDecl(
                    name=name,
                    factory=GLOBAL_FACTORY,
                    args=[name],
                    comments=[heading, *_entry_comments(entry)],
                )
            )
            plan.metadata.append(_metadata_record(entry, include_author=True))

        for author, components in snapshot.author_registry.items():
            validate_namespace(author, f"authorRegistry.{author}")
            records = []
            for name, entry in components.items():
                validate_identifier(name, f"authorRegistry.{author}.{name}")
                records.append(_metadata_record(entry, include_author=False))
            plan.author_names.append(author)
            plan.author_metadata.append((author, records))

        return plan

    def plan_author(self, author: str, components: Registry, generated_at: str) -> ModulePlan:
        validate_namespace(author, f"authorRegistry.{author}")
        plan = ModulePlan(
            kind=ModuleKind.AUTHOR,
            generated_at=generated_at,
            factory=AUTHOR_FACTORY,
            factory_module=AUTHOR_FACTORY_MODULE,
            author=author,
            package_name=self.package_name,
        )

        for name, entry in components.items():
            validate_identifier(name, f"authorRegistry.{author}.{name}")
            plan.bindings.append(
                BindingDecl(
                    name=name,
                    factory=AUTHOR_FACTORY,
                    args=[author, name],
                    comments=[entry.title, *_entry_comments(entry)],
                )
            )
            plan.metadata.append(_metadata_record(entry, include_author=False))

        return plan


def _entry_comments(entry: RegistryEntry) -> list[str]:
    return [
        f"Block ID: {entry.block_id}",
        f"Description: {entry.description}",
        f"Tags: {', '.join(entry.tags) if entry.tags else 'none'}",
    ]


def _metadata_record(entry: RegistryEntry, include_author: bool) -> MetadataRecord:
    fields: list[tuple[str, MetadataValue]] = [
        ("blockId", entry.block_id),
        ("title", entry.title),
        ("description", entry.description),
    ]
    if include_author:
        fields.append(("author", entry.author or ""))
    fields += [
        ("tags", list(entry.tags)),
        ("lastUpdated", entry.last_updated),
    ]
    return MetadataRecord(name=entry.component_name, fields=fields)


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def _literal(value: MetadataValue) -> str:
    if isinstance(value, list):
        return string_list(value)
    if isinstance(value, int):
        return str(value)
    return quote(value)


def _render_binding(binding: BindingDecl) -> list[str]:
    lines = [f"// {comment_text(c)}" for c in binding.comments]
    args = ", ".join(quote(a) for a in binding.args)
    lines.append(f"export const {binding.name} = {binding.factory}({args});")
    return lines


def _render_bindings(bindings: list[BindingDecl]) -> list[str]:
    lines: list[str] = []
    for i, binding in enumerate(bindings):
        if i:
            lines.append("")
        lines += _render_binding(binding)
    return lines


def _render_aggregate(opening: str, names: list[str]) -> list[str]:
    if not names:
        return [opening + "};"]
    return [opening, *(f"  {name}," for name in names), "};"]


def _render_records(records: list[MetadataRecord], indent: int) -> list[str]:
    pad = " " * indent
    lines = []
    for record in records:
        lines.append(f"{pad}{property_key(record.name)}: {{")
        lines += [f"{pad}  {key}: {_literal(value)}," for key, value in record.fields]
        lines.append(f"{pad}}},")
    return lines


def render_global_module(plan: ModulePlan) -> str:
    """Render the ``namedExports`` module for the global namespace."""
    authors = ", ".join(comment_text(a) for a in plan.author_names) or "none"
    lines = [
        "// Auto-generated file - DO NOT EDIT MANUALLY",
        f"// Generated on: {comment_text(plan.generated_at)}",
        f"// Total components: {plan.total_components}",
        f"// Total authors: {len(plan.author_names)}",
        "",
        f"import {{ {plan.factory} }} from {quote(plan.factory_module)};",
        "",
        "// ===== GLOBAL NAMESPACE COMPONENTS =====",
        *_render_bindings(plan.bindings),
        "",
        "// Export all global components as an object for convenience",
        *_render_aggregate("export const NamedComponents = {", [b.name for b in plan.bindings]),
        "",
        "// Author-specific components are available via direct imports:",
        f"// import {{ ComponentName }} from '{plan.package_name}/<author>'",
        f"// Available authors: {authors}",
        "",
        "// Registry metadata",
        "export const registryMetadata = {",
        f"  totalComponents: {plan.total_components},",
        f"  totalAuthors: {len(plan.author_names)},",
        f"  lastGenerated: {quote(plan.generated_at)},",
        "  components: {",
        *_render_records(plan.metadata, indent=4),
        "  },",
        "  authors: {",
    ]
    for author, records in plan.author_metadata:
        lines.append(f"    {property_key(author)}: {{")
        lines += _render_records(records, indent=6)
        lines.append("    },")
    lines += ["  },", "};", ""]
    return "\n".join(lines)


def render_author_module(plan: ModulePlan) -> str:
    """Render ``authors/<author>/index.ts`` for one author namespace."""
    lines = [
        f"// Auto-generated author entry file for {comment_text(plan.author or '')}",
        f"// Generated on: {comment_text(plan.generated_at)}",
        f"// Total components: {plan.total_components}",
        "",
        f"import {{ {plan.factory} }} from {quote(plan.factory_module)};",
        "",
        *_render_bindings(plan.bindings),
        "",
        "// Export all components as default for convenience",
        *_render_aggregate("export default {", [b.name for b in plan.bindings]),
        "",
        "// Author metadata",
        "export const authorMetadata = {",
        f"  author: {quote(plan.author or '')},",
        f"  totalComponents: {plan.total_components},",
        f"  lastGenerated: {quote(plan.generated_at)},",
        "  components: {",
        *_render_records(plan.metadata, indent=4),
        "  },",
        "};",
        "",
    ]
    return "\n".join(lines)
