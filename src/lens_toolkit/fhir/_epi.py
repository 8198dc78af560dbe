"""
ePI (electronic Product Information) section index and matcher.

An ePI Composition carries its clinical annotations as a two-level
extension tree.  Each top-level block pairs a category label with the
codes the category is relevant to::

    {"extension": [
        {"url": "elementClass", "valueString": "contra-indication-pregnancy"},
        {"url": "concept",
         "valueCodeableReference": {"concept": {"coding": [...]}}}
    ]}

``get_annotated_sections()`` flattens that tree into
:class:`AnnotatedSection` records and ``find_sections_by_code()``
selects the categories relevant to a patient's codes.  The remaining
helpers cover document targeting (identifiers, language) and the
AdditionalInformation extensions lenses attach to sections.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Optional, Sequence

from lens_toolkit.fhir._codes import codes_match, extract_codes
from lens_toolkit.fhir._constants import (
    ADDITIONAL_INFORMATION_URL,
    ATTACHMENT_CONTENT_TYPES,
    CONCEPT_EXTENSION_URL,
    CONCEPT_TYPES,
    INAPP_AUDIO,
    INAPP_IMAGE,
    INAPP_VIDEO,
    TYPE_OF_DATA_CODE_SYSTEM,
)
from lens_toolkit.fhir._index import bundle_entries, get_resources_by_type, iter_resources
from lens_toolkit.fhir._types import AnnotatedSection, Code, ResourceType, ValidationResult

logger = logging.getLogger(__name__)


# ── Section index ─────────────────────────────────────────────────


def _section_from_block(block: Any) -> Optional[AnnotatedSection]:
    """Read one top-level annotation block, or ``None`` if malformed.

    The block must hold at least two child extensions, the second of
    which has ``url == "concept"``.  The category is the first child's
    ``valueString``.
    """
    if not isinstance(block, dict):
        return None
    children = block.get("extension")
    if not isinstance(children, list) or len(children) < 2:
        return None
    label, concept_ext = children[0], children[1]
    if not isinstance(concept_ext, dict) or concept_ext.get("url") != CONCEPT_EXTENSION_URL:
        return None

    category = label.get("valueString") if isinstance(label, dict) else None
    reference = concept_ext.get("valueCodeableReference")
    concept = reference.get("concept") if isinstance(reference, dict) else None
    if not category or not isinstance(concept, dict) or not isinstance(concept.get("coding"), list):
        return None

    return AnnotatedSection(category=category, codes=extract_codes(concept))


def get_annotated_sections(bundle: Any) -> list[AnnotatedSection]:
    """All (category, codes) annotations of every Composition in *bundle*.

    Blocks that break the extension contract are skipped.  Blocks that
    share a category produce separate records.
    """
    sections: list[AnnotatedSection] = []
    for composition in get_resources_by_type(bundle, ResourceType.COMPOSITION):
        blocks = composition.get("extension")
        if not isinstance(blocks, list):
            continue
        for i, block in enumerate(blocks):
            section = _section_from_block(block)
            if section is None:
                logger.debug(
                    "Composition %s: skipping extension [%d], not a concept annotation",
                    composition.get("id"), i,
                )
                continue
            sections.append(section)
    return sections


# ── Section matcher ───────────────────────────────────────────────


def _search_code_matches(code: Code, search_code: Any, match_system: bool) -> bool:
    # Bare strings compare code values only, whatever match_system says.
    if isinstance(search_code, str):
        return code.code == search_code
    if isinstance(search_code, (Code, Mapping)):
        return codes_match(code, search_code, match_system)
    return False


def find_sections_by_code(
    bundle: Any,
    search_codes: Sequence[Any],
    match_system: bool = True,
) -> list[str]:
    """Categories whose annotation codes intersect *search_codes*.

    Args:
        bundle:       ePI Bundle.
        search_codes: Bare code strings and/or :class:`Code` objects
                      (or ``{"code", "system"}`` mappings), freely mixed.
        match_system: Compare the terminology system of code objects
                      as well as the code value.

    Returns:
        Distinct matching categories in first-occurrence order.  ``[]``
        for a malformed bundle or a non-list *search_codes*.
    """
    if not bundle_entries(bundle) or not isinstance(search_codes, (list, tuple)):
        return []

    categories: list[str] = []
    for section in get_annotated_sections(bundle):
        if section.category in categories:
            continue
        if any(
            _search_code_matches(code, search, match_system)
            for code in section.codes
            for search in search_codes
        ):
            categories.append(section.category)
    return categories


def match_bundle_identifier(bundle: Any, identifiers: Sequence[Any]) -> bool:
    """True if the Bundle's own ``identifier.value`` is in *identifiers*."""
    if not isinstance(bundle, dict) or not isinstance(identifiers, (list, tuple)):
        return False
    identifier = bundle.get("identifier")
    if not isinstance(identifier, dict):
        return False
    return identifier.get("value") in identifiers


def match_product_identifier(bundle: Any, identifiers: Sequence[Any]) -> bool:
    """True if any MedicinalProductDefinition identifier is in *identifiers*."""
    if not isinstance(identifiers, (list, tuple)):
        return False
    for product in get_resources_by_type(bundle, ResourceType.MEDICINAL_PRODUCT_DEFINITION):
        ids = product.get("identifier")
        if not isinstance(ids, list):
            continue
        for ident in ids:
            if isinstance(ident, dict) and ident.get("value") in identifiers:
                return True
    return False


# ── Document helpers ──────────────────────────────────────────────


def get_composition(bundle: Any) -> Optional[dict[str, Any]]:
    compositions = get_resources_by_type(bundle, ResourceType.COMPOSITION)
    return compositions[0] if compositions else None


def get_medicinal_product_id(bundle: Any) -> Optional[str]:
    products = get_resources_by_type(bundle, ResourceType.MEDICINAL_PRODUCT_DEFINITION)
    return products[0].get("id") if products else None


def get_language(bundle: Any) -> Optional[str]:
    """Document language: Composition.language, then Bundle.language."""
    composition = get_composition(bundle)
    if composition is not None and composition.get("language"):
        return composition["language"]
    if isinstance(bundle, dict) and bundle.get("language"):
        return bundle["language"]
    return None


def validate_epi(bundle: Any) -> ValidationResult:
    """Check that *bundle* has entries and a Composition."""
    if bundle is None:
        return ValidationResult(False, ["ePI bundle is null or undefined"])
    if not isinstance(bundle, dict) or not isinstance(bundle.get("entry"), list):
        return ValidationResult(False, ["ePI bundle has no entries array"])
    if not bundle["entry"]:
        return ValidationResult(False, ["ePI bundle entries array is empty"])

    errors: list[str] = []
    if get_composition(bundle) is None:
        errors.append("No Composition resource found in ePI bundle")
    return ValidationResult(not errors, errors)


# ── AdditionalInformation extensions ──────────────────────────────


def add_extension_to_section(
    bundle: Any,
    section_index: int,
    extension: dict[str, Any],
    *,
    check_duplicates: bool = True,
) -> bool:
    """Append *extension* to ``entry[0].resource.section[section_index]``.

    This is the one helper that mutates its input.

    Returns:
        ``True`` if the extension was added; ``False`` when the section
        does not exist, its ``extension`` is not a list, or an equal
        extension is already present.  A null ``extension`` is replaced
        by a new list.
    """
    if not isinstance(section_index, int) or isinstance(section_index, bool):
        return False
    resources = list(iter_resources(bundle_entries(bundle)[:1]))
    if not resources:
        return False
    sections = resources[0].get("section")
    if not isinstance(sections, list) or not 0 <= section_index < len(sections):
        return False
    section = sections[section_index]
    if not isinstance(section, dict):
        return False

    existing = section.get("extension")
    if existing is None:
        existing = section["extension"] = []
    elif not isinstance(existing, list):
        logger.debug("Section %d: extension is not a list, not appending", section_index)
        return False
    if check_duplicates and extension in existing:
        return False
    existing.append(extension)
    return True


def create_additional_info_extension(
    code: str,
    display: str,
    concept_value: str,
    concept_type: str = "url",
) -> dict[str, Any]:
    """Build an AdditionalInformation extension.

    Args:
        code:          type-of-data code (e.g. ``"video"``).
        display:       Display for that code.
        concept_value: The link or base64 payload.
        concept_type:  ``"url"`` or ``"base64"``.

    Raises:
        ValueError: If *concept_type* is not supported.
    """
    if concept_type not in CONCEPT_TYPES:
        raise ValueError(
            f"Unsupported concept_type '{concept_type}'. "
            f"Supported: {', '.join(sorted(CONCEPT_TYPES))}"
        )
    return {
        "extension": [
            {
                "url": "type",
                "valueCodeableConcept": {
                    "coding": [{
                        "system": TYPE_OF_DATA_CODE_SYSTEM,
                        "code": code,
                        "display": display,
                    }],
                },
            },
            {
                "url": CONCEPT_EXTENSION_URL,
                CONCEPT_TYPES[concept_type]: concept_value,
            },
        ],
        "url": ADDITIONAL_INFORMATION_URL,
    }


def parse_attachment_type(attachment: Any) -> Optional[dict[str, str]]:
    """Map a FHIR Attachment to its type-of-data ``{code, display}``."""
    if not isinstance(attachment, dict):
        return None
    content_type = attachment.get("contentType")
    if content_type == "text/html":
        if not attachment.get("duration"):
            return dict(INAPP_IMAGE)
        if "youtube" in (attachment.get("url") or ""):
            return dict(INAPP_VIDEO)
        return dict(INAPP_AUDIO)
    mapped = ATTACHMENT_CONTENT_TYPES.get(content_type) if isinstance(content_type, str) else None
    return dict(mapped) if mapped else None
