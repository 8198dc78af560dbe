"""
Clinical fact extraction from IPS (International Patient Summary) bundles.

Each extractor projects one resource kind into a flat record carrying a
normalised code list.  Malformed input never raises: "find many"
extractors return ``[]`` and "find one" extractors return ``None``.

Medications are the awkward case.  A medication activity may carry its
drug inline (``medicationCodeableConcept``) or point at a separate
Medication resource (``medicationReference``) whose own code and
ingredient codes must be merged in.  References resolve against the
same bundle only.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional, Sequence

from lens_toolkit.fhir._codes import extract_codes
from lens_toolkit.fhir._constants import (
    CONTACT_RESOURCE_TYPES,
    CONTACT_TELECOM_SYSTEMS,
    INGREDIENT_CODE_SOURCE,
    MEDICATION_ACTIVITY_TYPES,
    MEDICATION_CODE_SOURCE,
    OCCUPATION_EXTENSION_URL,
)
from lens_toolkit.fhir._index import ResourceIndex, get_resources_by_type
from lens_toolkit.fhir._temporal import DateLike, calculate_age
from lens_toolkit.fhir._types import (
    AllergyFact,
    Code,
    ConditionFact,
    MedicationFact,
    ObservationFact,
    PatientContact,
    ResourceType,
)

logger = logging.getLogger(__name__)


def _first_coding_code(concept: Any) -> Optional[str]:
    """``concept.coding[0].code`` or ``None``."""
    codes = extract_codes(concept)
    return codes[0].code if codes else None


def _concept_text(concept: Any) -> str:
    if isinstance(concept, dict):
        return concept.get("text") or ""
    return ""


# ── Patient ───────────────────────────────────────────────────────


def get_patient_info(
    bundle: Any,
    *,
    reference_date: Optional[DateLike] = None,
) -> Optional[dict[str, Any]]:
    """First Patient in the bundle plus a computed ``age``.

    Later Patient resources are ignored.  The returned dict is a
    shallow copy; the bundle is left untouched.

    Args:
        bundle:         IPS Bundle.
        reference_date: Date to compute the age at (default: now).

    Returns:
        The patient fields with ``age`` (``None`` for an absent or
        unparsable ``birthDate``), or ``None`` if there is no Patient.
    """
    patients = get_resources_by_type(bundle, ResourceType.PATIENT)
    if not patients:
        return None
    patient = patients[0]
    return {
        **patient,
        "age": calculate_age(patient.get("birthDate"), reference_date=reference_date),
    }


def get_patient_extensions(bundle: Any, extension_url: str) -> list[dict[str, Any]]:
    """Extensions of the first Patient whose ``url`` equals *extension_url*."""
    patients = get_resources_by_type(bundle, ResourceType.PATIENT)
    if not patients:
        return []
    extensions = patients[0].get("extension")
    if not isinstance(extensions, list):
        return []
    return [
        ext for ext in extensions
        if isinstance(ext, dict) and ext.get("url") == extension_url
    ]


def has_occupation(bundle: Any, occupation_code: str) -> bool:
    """True if the patient's occupation extension carries *occupation_code*."""
    for ext in get_patient_extensions(bundle, OCCUPATION_EXTENSION_URL):
        for code in extract_codes(ext.get("valueCodeableConcept")):
            if code.code == occupation_code:
                return True
    return False


def get_patient_contacts(bundle: Any) -> list[PatientContact]:
    """Phone and email contacts of the patient's general practitioners.

    Only ``generalPractitioner`` references that resolve, within the
    bundle, to a Practitioner or Organization are followed, and only
    telecom entries whose system is ``phone`` or ``email`` are kept.
    """
    index = ResourceIndex.from_bundle(bundle)
    patient = index.first(ResourceType.PATIENT)
    if patient is None:
        return []

    practitioners = patient.get("generalPractitioner")
    if not isinstance(practitioners, list):
        return []

    contacts: list[PatientContact] = []
    for ref in practitioners:
        if not isinstance(ref, dict):
            continue
        target = index.resolve(ref.get("reference"))
        if target is None or target.get("resourceType") not in CONTACT_RESOURCE_TYPES:
            continue
        telecoms = target.get("telecom")
        if not isinstance(telecoms, list):
            continue
        for telecom in telecoms:
            if not isinstance(telecom, dict):
                continue
            if telecom.get("system") not in CONTACT_TELECOM_SYSTEMS:
                continue
            contacts.append(PatientContact(
                type=telecom["system"],
                value=telecom.get("value"),
                resource_type=target["resourceType"],
                id=target.get("id"),
            ))
    return contacts


# ── Conditions & allergies ────────────────────────────────────────


def get_conditions(bundle: Any) -> list[ConditionFact]:
    """One :class:`ConditionFact` per Condition, even when uncoded."""
    return [
        ConditionFact(
            id=cond.get("id"),
            codes=extract_codes(cond.get("code")),
            text=_concept_text(cond.get("code")),
            clinical_status=_first_coding_code(cond.get("clinicalStatus")),
            verification_status=_first_coding_code(cond.get("verificationStatus")),
        )
        for cond in get_resources_by_type(bundle, ResourceType.CONDITION)
    ]


def get_allergies(bundle: Any) -> list[AllergyFact]:
    """One :class:`AllergyFact` per AllergyIntolerance, even when uncoded."""
    return [
        AllergyFact(
            id=allergy.get("id"),
            codes=extract_codes(allergy.get("code")),
            text=_concept_text(allergy.get("code")),
            criticality=allergy.get("criticality"),
            type=allergy.get("type"),
        )
        for allergy in get_resources_by_type(bundle, ResourceType.ALLERGY_INTOLERANCE)
    ]


# ── Medications ───────────────────────────────────────────────────


def _referenced_medication_codes(medication: dict[str, Any]) -> list[Code]:
    """The Medication's own codes followed by its ingredient codes."""
    codes = extract_codes(medication.get("code"), source=MEDICATION_CODE_SOURCE)
    ingredients = medication.get("ingredient")
    if isinstance(ingredients, list):
        for ingredient in ingredients:
            if not isinstance(ingredient, dict):
                continue
            codes.extend(extract_codes(
                ingredient.get("itemCodeableConcept"),
                source=INGREDIENT_CODE_SOURCE,
            ))
    return codes


def get_medications(bundle: Any) -> list[MedicationFact]:
    """Every medication activity with its merged code list.

    Codes are gathered from, in order:

      1. ``medicationCodeableConcept``, untagged.
      2. The Medication named by ``medicationReference``: its ``code``
         tagged ``"medication-code"``, then each
         ``ingredient[].itemCodeableConcept`` tagged ``"ingredient"``.

    An activity that ends up with no codes at all (nothing inline and
    no resolvable reference) is left out of the result.
    """
    index = ResourceIndex.from_bundle(bundle)
    medications: list[MedicationFact] = []

    for resource in index.resources:
        resource_type = resource.get("resourceType")
        if resource_type not in MEDICATION_ACTIVITY_TYPES:
            continue

        codes = extract_codes(resource.get("medicationCodeableConcept"))

        med_ref = resource.get("medicationReference")
        if isinstance(med_ref, dict) and med_ref.get("reference"):
            medication = index.resolve(med_ref["reference"])
            if medication is not None:
                codes.extend(_referenced_medication_codes(medication))

        if not codes:
            logger.debug(
                "Dropping %s/%s: no medication codes",
                resource_type, resource.get("id"),
            )
            continue

        medications.append(MedicationFact(
            resource_type=resource_type,
            id=resource.get("id"),
            codes=codes,
        ))

    return medications


# ── Observations ──────────────────────────────────────────────────


def _observation_matches(
    codings: list[Any],
    codes: Sequence[Any],
    include_display: Optional[str],
) -> bool:
    needle = include_display.lower() if include_display else None
    for coding in codings:
        if not isinstance(coding, dict):
            continue
        if coding.get("code") in codes:
            return True
        display = coding.get("display")
        if needle and isinstance(display, str) and needle in display.lower():
            return True
    return False


def get_observations_by_code(
    bundle: Any,
    codes: Sequence[Any],
    *,
    include_display: Optional[str] = None,
    value_filter: Optional[Callable[[ObservationFact], bool]] = None,
) -> list[ObservationFact]:
    """Observations whose code matches one of *codes*.

    Matching compares bare code strings and ignores the terminology
    system, so LOINC and SNOMED codes can be searched together.

    Args:
        bundle:          IPS Bundle.
        codes:           Code strings to look for.
        include_display: Also match codings whose display contains
                         this text (case-insensitive).
        value_filter:    Called with each candidate
                         :class:`ObservationFact`; a falsy return
                         drops it.

    Returns:
        Matching observations in bundle order.
    """
    codes = list(codes) if isinstance(codes, (list, tuple, set, frozenset)) else []

    results: list[ObservationFact] = []
    for obs in get_resources_by_type(bundle, ResourceType.OBSERVATION):
        concept = obs.get("code")
        codings = concept.get("coding") if isinstance(concept, dict) else None
        if not isinstance(codings, list):
            continue
        if not _observation_matches(codings, codes, include_display):
            continue

        quantity = obs.get("valueQuantity")
        if not isinstance(quantity, dict):
            quantity = {}

        fact = ObservationFact(
            id=obs.get("id"),
            codes=extract_codes(concept),
            value=quantity.get("value"),
            unit=quantity.get("unit"),
            value_codeable_concept=obs.get("valueCodeableConcept"),
            value_date_time=obs.get("valueDateTime"),
            effective_date_time=obs.get("effectiveDateTime"),
        )
        if value_filter is None or value_filter(fact):
            results.append(fact)

    return results
