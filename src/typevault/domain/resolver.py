"""Schema resolution: raw type declarations to a merged, queryable model.

Resolution runs once per schema load and is a pure function of the
:class:`~typevault.domain.schema.SchemaDocument`. Either every type resolves
or :class:`SchemaResolutionError` is raised; a partial model is never
returned.

The extends relation is held in a NetworkX ``DiGraph`` with one edge per
type pointing at its parent. Every type without a declared parent hangs off
the implicit root type ``meta``.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

import networkx as nx

from typevault.domain.matching import close_matches
from typevault.domain.schema import (
    ANY_SOURCE,
    ROOT_TYPE,
    BodySection,
    FieldDef,
    FieldPrompt,
    LinkFormat,
    SchemaAuditConfig,
    SchemaDocument,
    TypeDef,
)

PARENT_FIELD = "parent"

_CONSONANT_Y = re.compile(r"[^aeiou]y$")


class SchemaResolutionError(ValueError):
    """A fatal structural defect in the schema document."""

    def __init__(self, message: str, *, type_name: str | None = None) -> None:
        super().__init__(message)
        self.type_name = type_name


@dataclass(frozen=True)
class OwnerInfo:
    """A type that may own instances of some child type."""

    owner_type: str
    field_name: str
    multiple: bool


@dataclass(frozen=True)
class OwnedFieldInfo:
    """A field through which an owner type owns child notes."""

    field_name: str
    child_type: str
    multiple: bool


@dataclass(frozen=True)
class OwnershipMap:
    """Owner/child relationships declared through ``owned`` relation fields."""

    can_be_owned_by: Mapping[str, tuple[OwnerInfo, ...]] = field(default_factory=dict)
    owns: Mapping[str, tuple[OwnedFieldInfo, ...]] = field(default_factory=dict)


@dataclass(frozen=True)
class ResolvedType:
    """A type after inheritance merging."""

    name: str
    parent: str | None
    children: tuple[str, ...]
    fields: Mapping[str, FieldDef]
    field_order: tuple[str, ...]
    body_sections: tuple[BodySection, ...]
    recursive: bool
    output_dir: str
    filename: str | None
    plural: str
    ancestors: tuple[str, ...]
    field_origins: Mapping[str, str]
    # Nearest output_dir declared on this type or an ancestor.
    declared_output_dir: str | None = None

    def get_field(self, name: str) -> FieldDef | None:
        return self.fields.get(name)

    @property
    def ordered_fields(self) -> list[tuple[str, FieldDef]]:
        """Fields in display order; fields missing from the order come last."""
        ordered = [(n, self.fields[n]) for n in self.field_order if n in self.fields]
        seen = {n for n, _ in ordered}
        ordered.extend((n, f) for n, f in self.fields.items() if n not in seen)
        return ordered

    @property
    def required_fields(self) -> list[str]:
        return [n for n, f in self.ordered_fields if f.required]


def auto_pluralise(name: str) -> str:
    """English pluralisation for type names (``task`` -> ``tasks``)."""
    if name.endswith(("s", "x", "z", "ch", "sh")):
        return f"{name}es"
    if _CONSONANT_Y.search(name):
        return f"{name[:-1]}ies"
    return f"{name}s"


# ---------------------------------------------------------------------------
# Structural validation
# ---------------------------------------------------------------------------


def _declared_types(document: SchemaDocument) -> dict[str, TypeDef]:
    """Declared types with the implicit root prepended when absent."""
    types: dict[str, TypeDef] = {}
    if ROOT_TYPE not in document.types:
        types[ROOT_TYPE] = TypeDef()
    types.update(document.types)
    return types


def _parent_of(name: str, type_def: TypeDef) -> str | None:
    if type_def.extends:
        return type_def.extends
    return None if name == ROOT_TYPE else ROOT_TYPE


def _build_extends_graph(types: Mapping[str, TypeDef]) -> nx.DiGraph:
    graph: nx.DiGraph = nx.DiGraph()
    graph.add_nodes_from(types)
    for name, type_def in types.items():
        parent = _parent_of(name, type_def)
        if parent is not None:
            graph.add_edge(name, parent)
    return graph


def _unknown_type_message(kind: str, name: str, target: str, known: list[str]) -> str:
    msg = f"Type '{name}' {kind} unknown type '{target}'."
    suggestions = close_matches(target, known)
    if suggestions:
        msg += f" Did you mean: {', '.join(suggestions)}?"
    else:
        msg += f" Available types: {', '.join(known)}"
    return msg


def validate_structure(document: SchemaDocument) -> nx.DiGraph:
    """Check cross-references in *document* and return its extends graph.

    Raises:
        SchemaResolutionError: on an unknown extends target, an extends
            cycle, a relation source naming an unknown type, or an owned
            field without a concrete source type.
    """
    types = _declared_types(document)
    known = list(types)

    for name, type_def in types.items():
        if type_def.extends and type_def.extends not in types:
            raise SchemaResolutionError(
                _unknown_type_message("extends", name, type_def.extends, known),
                type_name=name,
            )

    graph = _build_extends_graph(types)
    for name in types:
        try:
            cycle = nx.find_cycle(graph, source=name)
        except nx.NetworkXNoCycle:
            continue
        path = [edge[0] for edge in cycle] + [cycle[0][0]]
        raise SchemaResolutionError(
            f"Circular inheritance detected: {' -> '.join(path)}",
            type_name=path[0],
        )

    for name, type_def in types.items():
        for field_name, field_def in type_def.fields.items():
            sources = field_def.sources
            for source in sources:
                if source != ANY_SOURCE and source not in types:
                    raise SchemaResolutionError(
                        _unknown_type_message(
                            f"field '{field_name}' references", name, source, known
                        ),
                        type_name=name,
                    )
            if field_def.owned and (not sources or ANY_SOURCE in sources):
                raise SchemaResolutionError(
                    f"Type '{name}' field '{field_name}' is owned but declares no concrete source type.",
                    type_name=name,
                )
    return graph


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------


def _merge_field(inherited: FieldDef, own: FieldDef) -> FieldDef:
    """Overlay the properties *own* sets explicitly onto *inherited*."""
    update = {key: getattr(own, key) for key in own.model_fields_set}
    return inherited.model_copy(update=update)


def _implied_parent_field(name: str, parent: str | None) -> FieldDef:
    source: str | list[str] = name
    if parent and parent != ROOT_TYPE:
        source = [parent, name]
    return FieldDef(prompt=FieldPrompt.RELATION, source=source)


def _resolve_one(
    name: str,
    type_def: TypeDef,
    parent: ResolvedType | None,
    children: tuple[str, ...],
) -> ResolvedType:
    fields: dict[str, FieldDef] = dict(parent.fields) if parent else {}
    origins: dict[str, str] = dict(parent.field_origins) if parent else {}
    for field_name, own in type_def.fields.items():
        inherited = fields.get(field_name)
        fields[field_name] = _merge_field(inherited, own) if inherited else own
        origins[field_name] = name

    if type_def.field_order:
        order = list(type_def.field_order)
    else:
        order = list(parent.field_order) if parent else []
        order.extend(n for n in type_def.fields if n not in order)
        order.extend(n for n in fields if n not in order)

    if type_def.recursive and PARENT_FIELD not in fields:
        fields[PARENT_FIELD] = _implied_parent_field(name, parent.name if parent else None)
        origins[PARENT_FIELD] = name
    if type_def.recursive and PARENT_FIELD not in order:
        order.append(PARENT_FIELD)

    ancestors = ((parent.name,) + parent.ancestors) if parent else ()
    plural = type_def.plural or (ROOT_TYPE if name == ROOT_TYPE else auto_pluralise(name))

    declared_dir = (type_def.output_dir or "").strip("/") or (parent.declared_output_dir if parent else None)
    if declared_dir:
        output_dir = declared_dir
    elif name == ROOT_TYPE:
        output_dir = ""
    elif parent and parent.output_dir:
        # No declared directory anywhere up the chain: parent.output_dir is
        # itself the pluralised chain below the root.
        output_dir = f"{parent.output_dir}/{plural}"
    else:
        output_dir = plural

    if type_def.body_sections is not None:
        sections = tuple(type_def.body_sections)
    else:
        sections = parent.body_sections if parent else ()

    return ResolvedType(
        name=name,
        parent=parent.name if parent else None,
        children=children,
        fields=MappingProxyType(fields),
        field_order=tuple(order),
        body_sections=sections,
        recursive=type_def.recursive,
        output_dir=output_dir,
        filename=type_def.filename,
        plural=plural,
        ancestors=ancestors,
        field_origins=MappingProxyType(origins),
        declared_output_dir=declared_dir or None,
    )


def _build_ownership(types: Mapping[str, ResolvedType]) -> OwnershipMap:
    can_be_owned_by: dict[str, list[OwnerInfo]] = {}
    owns: dict[str, list[OwnedFieldInfo]] = {}
    for owner, resolved in types.items():
        for field_name, field_def in resolved.ordered_fields:
            if not field_def.owned or not field_def.sources:
                continue
            # Only the first source names the owned child type.
            child = field_def.sources[0]
            can_be_owned_by.setdefault(child, []).append(
                OwnerInfo(owner_type=owner, field_name=field_name, multiple=field_def.multiple)
            )
            owns.setdefault(owner, []).append(
                OwnedFieldInfo(field_name=field_name, child_type=child, multiple=field_def.multiple)
            )
    return OwnershipMap(
        can_be_owned_by=MappingProxyType({k: tuple(v) for k, v in can_be_owned_by.items()}),
        owns=MappingProxyType({k: tuple(v) for k, v in owns.items()}),
    )


def resolve_schema(document: SchemaDocument) -> ResolvedSchema:
    """Resolve every declared type of *document*.

    Raises:
        SchemaResolutionError: when :func:`validate_structure` fails.
    """
    graph = validate_structure(document)
    declared = _declared_types(document)

    resolved: dict[str, ResolvedType] = {}
    # Edges point child -> parent, so the reversed topological order visits
    # every parent before its children.
    for name in reversed(list(nx.topological_sort(graph))):
        type_def = declared[name]
        parent_name = _parent_of(name, type_def)
        children = tuple(c for c in declared if c != name and _parent_of(c, declared[c]) == name)
        resolved[name] = _resolve_one(
            name,
            type_def,
            resolved[parent_name] if parent_name else None,
            children,
        )

    ordered = {name: resolved[name] for name in declared}
    return ResolvedSchema(document, ordered, graph, _build_ownership(ordered))


class ResolvedSchema:
    """The resolved type model plus ownership map and query helpers.

    Instances are immutable after construction.
    """

    def __init__(
        self,
        document: SchemaDocument,
        types: Mapping[str, ResolvedType],
        graph: nx.DiGraph,
        ownership: OwnershipMap,
    ) -> None:
        self._document = document
        self._types = MappingProxyType(dict(types))
        self._graph = nx.freeze(graph)
        self._ownership = ownership

    @property
    def document(self) -> SchemaDocument:
        return self._document

    @property
    def types(self) -> Mapping[str, ResolvedType]:
        return self._types

    @property
    def ownership(self) -> OwnershipMap:
        return self._ownership

    @property
    def link_format(self) -> LinkFormat:
        return self._document.config.link_format

    @property
    def audit_config(self) -> SchemaAuditConfig:
        return self._document.audit

    @property
    def schema_version(self) -> str | None:
        return self._document.schema_version

    def __contains__(self, name: object) -> bool:
        return name in self._types

    def get_type(self, name: str) -> ResolvedType | None:
        return self._types.get(name)

    def type_names(self) -> list[str]:
        """All type names in declaration order, root first."""
        return list(self._types)

    def concrete_type_names(self) -> list[str]:
        """Type names a document may declare (everything but the root)."""
        return [n for n in self._types if n != ROOT_TYPE]

    def descendants(self, name: str) -> set[str]:
        """All transitive subtypes of *name* (excluding *name*)."""
        if name not in self._graph:
            return set()
        return set(nx.ancestors(self._graph, name))

    def is_descendant_of(self, name: str, ancestor: str) -> bool:
        """True when *name* is *ancestor* or inherits from it."""
        resolved = self._types.get(name)
        if resolved is None:
            return False
        return name == ancestor or ancestor in resolved.ancestors

    def valid_source_types(self, sources: list[str]) -> frozenset[str] | None:
        """Types acceptable as relation targets, or None for ``any``."""
        if not sources or ANY_SOURCE in sources:
            return None
        valid: set[str] = set()
        for source in sources:
            valid.add(source)
            valid |= self.descendants(source)
        return frozenset(valid)

    def type_for_frontmatter(self, frontmatter: Mapping[str, Any]) -> ResolvedType | None:
        """Resolve a document's type through its ``type`` discriminator."""
        value = frontmatter.get("type")
        if not isinstance(value, str) or not value.strip():
            return None
        return self._types.get(value.strip())

    def type_for_directory(self, directory: str) -> str | None:
        """The most specific type whose storage directory contains *directory*."""
        best: str | None = None
        best_len = -1
        for name, resolved in self._types.items():
            out = resolved.output_dir
            if name == ROOT_TYPE or not out:
                continue
            if (directory == out or directory.startswith(f"{out}/")) and len(out) > best_len:
                best, best_len = name, len(out)
        return best

    # --- ownership queries ---

    def owner_types(self, child_type: str) -> list[OwnerInfo]:
        """Owners of *child_type*, sorted by owner type name."""
        owners = self._ownership.can_be_owned_by.get(child_type, ())
        return sorted(owners, key=lambda o: (o.owner_type, o.field_name))

    def owned_fields(self, owner_type: str) -> tuple[OwnedFieldInfo, ...]:
        return self._ownership.owns.get(owner_type, ())

    def can_be_owned(self, child_type: str) -> bool:
        return bool(self._ownership.can_be_owned_by.get(child_type))

    def owns_children(self, owner_type: str) -> bool:
        return bool(self._ownership.owns.get(owner_type))
