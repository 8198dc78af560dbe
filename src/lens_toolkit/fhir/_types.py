"""
Value records produced by the FHIR extractors.

Every record is a plain dataclass built fresh per extraction call.
``to_dict()`` renders the camelCase shape lens code serialises to JSON.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class ResourceType(str, Enum):
    """Resource kinds the toolkit knows how to read.

    ``UNKNOWN`` stands in for any other (or missing) ``resourceType``.
    It never matches a lookup, so unrecognised resources are ignored
    rather than rejected.
    """

    PATIENT = "Patient"
    CONDITION = "Condition"
    ALLERGY_INTOLERANCE = "AllergyIntolerance"
    MEDICATION_STATEMENT = "MedicationStatement"
    MEDICATION_DISPENSE = "MedicationDispense"
    MEDICATION_ADMINISTRATION = "MedicationAdministration"
    MEDICATION_REQUEST = "MedicationRequest"
    MEDICATION = "Medication"
    OBSERVATION = "Observation"
    COMPOSITION = "Composition"
    MEDICINAL_PRODUCT_DEFINITION = "MedicinalProductDefinition"
    PRACTITIONER = "Practitioner"
    ORGANIZATION = "Organization"
    BUNDLE = "Bundle"
    UNKNOWN = "__unknown__"

    @classmethod
    def of(cls, resource: Any) -> "ResourceType":
        """Classify a resource dict; anything unrecognised is UNKNOWN."""
        if not isinstance(resource, dict):
            return cls.UNKNOWN
        try:
            return cls(resource.get("resourceType"))
        except (ValueError, TypeError):
            return cls.UNKNOWN


class ValueType(str, Enum):
    """Typed value slot an Observation used, in probe priority order."""

    CODEABLE_CONCEPT = "CodeableConcept"
    STRING = "String"
    INTEGER = "Integer"
    BOOLEAN = "Boolean"
    QUANTITY = "Quantity"


@dataclass(frozen=True)
class Code:
    """A single normalised coding.

    Attributes:
        code:    The code value.
        system:  Terminology URI, ``""`` when absent.
        display: Human-readable label, ``""`` when absent.
        source:  Provenance tag for codes pulled in through a
                 medication reference (``"medication-code"`` or
                 ``"ingredient"``); ``None`` for inline codes.
    """

    code: Any
    system: str = ""
    display: str = ""
    source: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "code": self.code,
            "system": self.system,
            "display": self.display,
        }
        if self.source is not None:
            d["source"] = self.source
        return d


def _codes_to_dicts(codes: list[Code]) -> list[dict[str, Any]]:
    return [c.to_dict() for c in codes]


@dataclass
class ConditionFact:
    id: Optional[str]
    codes: list[Code] = field(default_factory=list)
    text: str = ""
    clinical_status: Optional[str] = None
    verification_status: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "codes": _codes_to_dicts(self.codes),
            "text": self.text,
            "clinicalStatus": self.clinical_status,
            "verificationStatus": self.verification_status,
        }


@dataclass
class AllergyFact:
    id: Optional[str]
    codes: list[Code] = field(default_factory=list)
    text: str = ""
    criticality: Optional[str] = None
    type: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "codes": _codes_to_dicts(self.codes),
            "text": self.text,
            "criticality": self.criticality,
            "type": self.type,
        }


@dataclass
class MedicationFact:
    """A medication activity with every code it could be matched on.

    ``codes`` holds inline codes first, then the referenced Medication's
    own codes, then its ingredient codes.
    """

    resource_type: str
    id: Optional[str]
    codes: list[Code] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "resourceType": self.resource_type,
            "id": self.id,
            "codes": _codes_to_dicts(self.codes),
        }


@dataclass
class ObservationFact:
    id: Optional[str]
    codes: list[Code] = field(default_factory=list)
    value: Any = None
    unit: Optional[str] = None
    value_codeable_concept: Optional[dict[str, Any]] = None
    value_date_time: Optional[str] = None
    effective_date_time: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "codes": _codes_to_dicts(self.codes),
            "value": self.value,
            "unit": self.unit,
            "valueCodeableConcept": self.value_codeable_concept,
            "valueDateTime": self.value_date_time,
            "effectiveDateTime": self.effective_date_time,
        }


@dataclass
class PatientContact:
    """A phone or email reachable through the patient's practitioner."""

    type: str
    value: Optional[str]
    resource_type: str
    id: Optional[str]

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "value": self.value,
            "resourceType": self.resource_type,
            "id": self.id,
        }


@dataclass
class AnnotatedSection:
    """One ePI category label and the codes it was annotated with.

    A document may produce several sections with the same category;
    they are kept apart here and only collapsed by the section matcher.
    """

    category: str
    codes: list[Code] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"category": self.category, "codes": _codes_to_dicts(self.codes)}


@dataclass
class PersonaDimension:
    """A single Persona Vector observation.

    Attributes:
        id:                  Observation id.
        status:              Observation status.
        dimension_code:      Code from the persona-dimension code system.
        dimension_display:   Display of that coding.
        subject:             ``subject.display`` or ``subject.reference``.
        effective_date_time: When the dimension was recorded.
        value:               The typed value (the whole CodeableConcept
                             for coded values, the number for quantities).
        value_type:          Which typed slot supplied ``value``.
        codes:               All codings of ``Observation.code``.
        value_codes:         Codings of a coded value, else ``None``.
        unit:                Unit of a quantity value, else ``None``.
    """

    id: Optional[str]
    status: Optional[str] = None
    dimension_code: Optional[str] = None
    dimension_display: Optional[str] = None
    subject: Optional[str] = None
    effective_date_time: Optional[str] = None
    value: Any = None
    value_type: Optional[ValueType] = None
    codes: list[Code] = field(default_factory=list)
    value_codes: Optional[list[Code]] = None
    unit: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "id": self.id,
            "status": self.status,
            "dimensionCode": self.dimension_code,
            "dimensionDisplay": self.dimension_display,
            "subject": self.subject,
            "effectiveDateTime": self.effective_date_time,
            "value": self.value,
            "valueType": self.value_type.value if self.value_type else None,
            "codes": _codes_to_dicts(self.codes),
        }
        if self.value_codes is not None:
            d["valueCodes"] = _codes_to_dicts(self.value_codes)
        if self.unit is not None:
            d["unit"] = self.unit
        return d


@dataclass
class DimensionsSummary:
    total_dimensions: int = 0
    dimension_codes: list[str] = field(default_factory=list)
    value_types: dict[Optional[str], int] = field(default_factory=dict)
    subject: Optional[str] = None
    bundle_id: Optional[str] = None
    identifier: Optional[str] = None


@dataclass
class ValidationResult:
    """Outcome of a structural check; callers decide whether to abort."""

    valid: bool
    errors: list[str] = field(default_factory=list)
