"""
Per-document index of CSS custom properties.

Every parse builds a complete, immutable :class:`DocumentIndex` off to the
side and then swaps it in with a single assignment, so readers never see a
half-built document. Queries walk the documents in the order they were first
added.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field

from .document import TextDocument
from .extractor import extract, is_host_language
from .indexer import INLINE_STYLE_CONTEXT, index
from .models import VariableDefinition, VariableReference, VariableUsage
from .parser import DOMTree
from .tokens import ParseError

logger = logging.getLogger(__name__)

ROOT_SELECTOR = ":root"


@dataclass(frozen=True)
class DocumentIndex:
    """Everything indexed for one version of one document."""

    uri: str
    version: int
    language_id: str
    definitions: tuple[VariableDefinition, ...]
    usages: tuple[VariableUsage, ...]
    dom_tree: DOMTree | None = field(default=None, compare=False, repr=False)
    errors: tuple[ParseError, ...] = field(default=(), compare=False, repr=False)


class CssVariableManager:
    """
    Tracks custom property definitions and usages across documents.

    Only ``parse_document``, ``parse_content`` and ``remove_document`` change
    state. Each of them replaces or drops one immutable entry while holding
    the writer lock; queries read a snapshot of the entries.
    """

    def __init__(self, *, inline_styles: bool = True, collect_errors: bool = False):
        self.inline_styles = inline_styles
        self.collect_errors = collect_errors
        self._documents: dict[str, DocumentIndex] = {}
        self._lock = threading.Lock()

    # Mutation ----------------------------------------------------------------

    def parse_document(self, document: TextDocument) -> DocumentIndex | None:
        """Index ``document`` and replace any previous entry for its URI.

        If indexing fails the previous entry is kept, the failure is logged
        and None is returned.
        """
        try:
            entry = self._build_index(document)
        except Exception:
            logger.error(f"Failed to parse {document.uri} (version {document.version})", exc_info=True)
            return None

        with self._lock:
            self._documents[document.uri] = entry

        logger.debug(
            f"Parsed {document.uri} v{document.version} as {document.language_id}: "
            f"{len(entry.definitions)} definitions, {len(entry.usages)} usages"
        )
        return entry

    def parse_content(self, text: str, uri: str, language_id: str = "css", version: int = 0) -> DocumentIndex | None:
        return self.parse_document(TextDocument(uri, language_id, version, text))

    def remove_document(self, uri: str) -> bool:
        """Drop the entry for ``uri``. Returns False if there was none."""
        with self._lock:
            removed = self._documents.pop(uri, None)
        if removed is not None:
            logger.debug(f"Removed {uri}")
        return removed is not None

    def _build_index(self, document: TextDocument) -> DocumentIndex:
        text = document.text
        line_index = document.line_index
        errors: list[ParseError] | None = [] if self.collect_errors else None

        dom_tree = None
        if is_host_language(document.language_id):
            dom_tree = DOMTree(text, collect_errors=self.collect_errors)
            if errors is not None:
                errors.extend(dom_tree.errors)

        segments = extract(text, document.language_id, inline_styles=self.inline_styles, dom_tree=dom_tree)

        definitions: list[VariableDefinition] = []
        usages: list[VariableUsage] = []
        for segment in segments:
            if segment.kind == "inline":
                found = index(
                    segment.text,
                    segment.offset_map,
                    document.uri,
                    line_index=line_index,
                    usage_context=INLINE_STYLE_CONTEXT,
                    dom_node=segment.node,
                    errors=errors,
                )
            else:
                found = index(segment.text, segment.offset_map, document.uri, line_index=line_index, errors=errors)
            definitions.extend(found[0])
            usages.extend(found[1])

        return DocumentIndex(
            uri=document.uri,
            version=document.version,
            language_id=document.language_id,
            definitions=tuple(definitions),
            usages=tuple(usages),
            dom_tree=dom_tree,
            errors=tuple(errors or ()),
        )

    # Queries -----------------------------------------------------------------

    def _snapshot(self) -> list[DocumentIndex]:
        with self._lock:
            return list(self._documents.values())

    def get_document(self, uri: str) -> DocumentIndex | None:
        with self._lock:
            return self._documents.get(uri)

    def get_document_uris(self) -> list[str]:
        with self._lock:
            return list(self._documents)

    def get_all_variables(self) -> list[VariableDefinition]:
        return [definition for entry in self._snapshot() for definition in entry.definitions]

    def get_variables(self, name: str) -> list[VariableDefinition]:
        return [d for entry in self._snapshot() for d in entry.definitions if d.name == name]

    def get_variable_usages(self, name: str) -> list[VariableUsage]:
        return [u for entry in self._snapshot() for u in entry.usages if u.name == name]

    def get_references(self, name: str) -> list[VariableReference]:
        references: list[VariableReference] = []
        references.extend(self.get_variables(name))
        references.extend(self.get_variable_usages(name))
        return references

    def get_document_definitions(self, uri: str) -> list[VariableDefinition]:
        entry = self.get_document(uri)
        return list(entry.definitions) if entry is not None else []

    def get_document_usages(self, uri: str) -> list[VariableUsage]:
        entry = self.get_document(uri)
        return list(entry.usages) if entry is not None else []

    def get_document_errors(self, uri: str) -> list[ParseError]:
        entry = self.get_document(uri)
        return list(entry.errors) if entry is not None else []

    def get_dom_tree(self, uri: str) -> DOMTree | None:
        entry = self.get_document(uri)
        return entry.dom_tree if entry is not None else None

    def resolve_definition(self, usage: VariableUsage) -> VariableDefinition | None:
        """Pick the definition a usage most likely refers to.

        Candidates are tried in tiers: definitions whose selector equals the
        usage context, then ``:root`` definitions, then any definition of the
        name. Within a tier ``!important`` wins, then the latest document,
        then the latest declaration in source order.
        """
        ranked: list[tuple[bool, int, int, VariableDefinition]] = []
        for rank, entry in enumerate(self._snapshot()):
            for definition in entry.definitions:
                if definition.name == usage.name:
                    ranked.append((definition.important, rank, definition.source_position, definition))
        if not ranked:
            return None

        for wanted in (usage.usage_context, ROOT_SELECTOR, None):
            tier = [item for item in ranked if wanted is None or item[3].selector == wanted]
            if tier:
                return max(tier, key=lambda item: item[:3])[3]
        return None
