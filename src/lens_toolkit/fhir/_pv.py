"""
Persona Vector (PV) dimension reader.

A Persona Vector is a ``collection`` Bundle of Observations, each one
describing a patient preference or context "dimension" (health
literacy, employment, ...).  The dimension is named by the coding whose
system is :data:`PD_CODE_SYSTEM`.

Value extraction probes the typed ``value[x]`` slots in a fixed order:

    valueCodeableConcept → valueString → valueInteger → valueBoolean
    → valueQuantity

Only the first populated slot is read.  The order is part of the
contract: changing it reclassifies any Observation that fills more than
one slot.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Callable, Optional, Sequence

from lens_toolkit.fhir._codes import extract_codes
from lens_toolkit.fhir._constants import DIMENSION_CODES, PD_CODE_SYSTEM, UNKNOWN_SUBJECT
from lens_toolkit.fhir._index import get_resources_by_type
from lens_toolkit.fhir._types import (
    DimensionsSummary,
    PersonaDimension,
    ResourceType,
    ValidationResult,
    ValueType,
)

logger = logging.getLogger(__name__)

ValuePredicate = Callable[[Any, PersonaDimension], bool]


class _Unset:
    def __repr__(self) -> str:
        return "UNSET"


UNSET: Any = _Unset()
"""Sentinel for "no value criterion"; ``None`` is a real value to match."""


# ── Typed value probe ─────────────────────────────────────────────


def _read_codeable_concept(obs: dict[str, Any], dim: PersonaDimension) -> bool:
    concept = obs.get("valueCodeableConcept")
    if not isinstance(concept, dict):
        return False
    dim.value = concept
    dim.value_codes = extract_codes(concept)
    return True


def _read_scalar(key: str) -> Callable[[dict[str, Any], PersonaDimension], bool]:
    def read(obs: dict[str, Any], dim: PersonaDimension) -> bool:
        if key not in obs:
            return False
        dim.value = obs[key]
        return True
    return read


def _read_quantity(obs: dict[str, Any], dim: PersonaDimension) -> bool:
    quantity = obs.get("valueQuantity")
    if not isinstance(quantity, dict):
        return False
    dim.value = quantity.get("value")
    dim.unit = quantity.get("unit")
    return True


_VALUE_PROBES: tuple[tuple[ValueType, Callable[[dict[str, Any], PersonaDimension], bool]], ...] = (
    (ValueType.CODEABLE_CONCEPT, _read_codeable_concept),
    (ValueType.STRING, _read_scalar("valueString")),
    (ValueType.INTEGER, _read_scalar("valueInteger")),
    (ValueType.BOOLEAN, _read_scalar("valueBoolean")),
    (ValueType.QUANTITY, _read_quantity),
)


def _subject_of(obs: dict[str, Any]) -> Optional[str]:
    subject = obs.get("subject")
    if not isinstance(subject, dict):
        return None
    return subject.get("display") or subject.get("reference") or None


def _to_dimension(obs: dict[str, Any]) -> PersonaDimension:
    dim = PersonaDimension(
        id=obs.get("id"),
        status=obs.get("status"),
        subject=_subject_of(obs),
        effective_date_time=obs.get("effectiveDateTime") or None,
    )

    dim.codes = extract_codes(obs.get("code"))
    for code in dim.codes:
        if code.system == PD_CODE_SYSTEM:
            dim.dimension_code = code.code
            dim.dimension_display = code.display or None
            break

    for value_type, probe in _VALUE_PROBES:
        if probe(obs, dim):
            dim.value_type = value_type
            break
    else:
        logger.debug("Observation %s has no typed value", obs.get("id"))

    return dim


# ── Validation ────────────────────────────────────────────────────


def validate_persona_vector(bundle: Any) -> ValidationResult:
    """Check the Bundle/collection shape and that Observations are present."""
    if bundle is None:
        return ValidationResult(False, ["Persona Vector bundle is null or undefined"])
    if not isinstance(bundle, dict) or bundle.get("resourceType") != "Bundle":
        return ValidationResult(False, ["Resource is not a Bundle"])

    errors: list[str] = []
    if bundle.get("type") != "collection":
        errors.append("Bundle type must be 'collection'")

    if not isinstance(bundle.get("entry"), list):
        errors.append("Bundle has no entries array")
        return ValidationResult(False, errors)

    if not get_resources_by_type(bundle, ResourceType.OBSERVATION):
        errors.append("No Observation resources found in bundle")

    return ValidationResult(not errors, errors)


# ── Core readers ──────────────────────────────────────────────────


def get_all_dimensions(bundle: Any) -> list[PersonaDimension]:
    """Every Observation in the bundle as a :class:`PersonaDimension`."""
    return [
        _to_dimension(obs)
        for obs in get_resources_by_type(bundle, ResourceType.OBSERVATION)
    ]


def get_dimension_by_code(bundle: Any, dimension_code: str) -> Optional[PersonaDimension]:
    """First dimension with *dimension_code*, or ``None``."""
    for dim in get_all_dimensions(bundle):
        if dim.dimension_code == dimension_code:
            return dim
    return None


def get_dimensions_by_codes(
    bundle: Any,
    dimension_codes: Sequence[str],
) -> list[PersonaDimension]:
    """Dimensions whose code is in *dimension_codes*, in bundle order."""
    if not isinstance(dimension_codes, (list, tuple, set, frozenset)):
        return []
    wanted = list(dimension_codes)
    return [d for d in get_all_dimensions(bundle) if d.dimension_code in wanted]


def get_health_literacy(bundle: Any) -> Optional[PersonaDimension]:
    return get_dimension_by_code(bundle, DIMENSION_CODES["HEALTH_LITERACY"])


def get_digital_literacy(bundle: Any) -> Optional[PersonaDimension]:
    return get_dimension_by_code(bundle, DIMENSION_CODES["DIGITAL_LITERACY"])


def get_employment(bundle: Any) -> Optional[PersonaDimension]:
    return get_dimension_by_code(bundle, DIMENSION_CODES["EMPLOYMENT"])


# ── Filtering & search ────────────────────────────────────────────


def get_dimensions_by_value_type(bundle: Any, value_type: Any) -> list[PersonaDimension]:
    """Dimensions whose value came from *value_type* (name or enum)."""
    return [d for d in get_all_dimensions(bundle) if d.value_type is not None and d.value_type == value_type]


def find_dimensions_by_value(bundle: Any, predicate: ValuePredicate) -> list[PersonaDimension]:
    """Dimensions for which ``predicate(value, dimension)`` is truthy."""
    if not callable(predicate):
        return []
    return [d for d in get_all_dimensions(bundle) if predicate(d.value, d)]


def _same_value(a: Any, b: Any) -> bool:
    # Booleans never equal numbers, so True does not match valueInteger 1.
    if isinstance(a, bool) or isinstance(b, bool):
        return type(a) is type(b) and a == b
    return a == b


def match_dimensions(
    bundle: Any,
    *,
    dimension_code: Optional[str] = None,
    value: Any = UNSET,
    value_type: Any = None,
    value_predicate: Optional[ValuePredicate] = None,
) -> list[PersonaDimension]:
    """Dimensions satisfying every supplied criterion.

    Unset criteria are ignored, so ``match_dimensions(bundle)`` returns
    every dimension.  ``value`` is compared with ``==``, except that
    booleans only equal booleans; pass ``value=None`` to match
    dimensions without a value.
    """
    def accept(dim: PersonaDimension) -> bool:
        if dimension_code and dim.dimension_code != dimension_code:
            return False
        if value is not UNSET and not _same_value(dim.value, value):
            return False
        if value_type and dim.value_type != value_type:
            return False
        if callable(value_predicate) and not value_predicate(dim.value, dim):
            return False
        return True

    return [d for d in get_all_dimensions(bundle) if accept(d)]


# ── Summaries ─────────────────────────────────────────────────────


def get_subject(bundle: Any) -> Optional[str]:
    """Subject of the first dimension."""
    dimensions = get_all_dimensions(bundle)
    return dimensions[0].subject if dimensions else None


def group_dimensions_by_subject(bundle: Any) -> dict[str, list[PersonaDimension]]:
    """Dimensions keyed by subject; subject-less ones go under ``"unknown"``."""
    grouped: dict[str, list[PersonaDimension]] = defaultdict(list)
    for dim in get_all_dimensions(bundle):
        grouped[dim.subject or UNKNOWN_SUBJECT].append(dim)
    return dict(grouped)


def get_available_dimension_codes(bundle: Any) -> list[str]:
    """Distinct dimension codes in first-occurrence order."""
    codes: list[str] = []
    for dim in get_all_dimensions(bundle):
        if dim.dimension_code and dim.dimension_code not in codes:
            codes.append(dim.dimension_code)
    return codes


def has_dimension(bundle: Any, dimension_code: str) -> bool:
    return get_dimension_by_code(bundle, dimension_code) is not None


def get_dimensions_summary(bundle: Any) -> DimensionsSummary:
    """Counts of dimensions and value types plus bundle identity."""
    dimensions = get_all_dimensions(bundle)
    value_types: dict[Optional[str], int] = defaultdict(int)
    for dim in dimensions:
        key = dim.value_type.value if dim.value_type else None
        value_types[key] += 1

    bundle_id = identifier = None
    if isinstance(bundle, dict):
        bundle_id = bundle.get("id")
        ident = bundle.get("identifier")
        if isinstance(ident, dict):
            identifier = ident.get("value")

    return DimensionsSummary(
        total_dimensions=len(dimensions),
        dimension_codes=get_available_dimension_codes(bundle),
        value_types=dict(value_types),
        subject=dimensions[0].subject if dimensions else None,
        bundle_id=bundle_id,
        identifier=identifier,
    )

