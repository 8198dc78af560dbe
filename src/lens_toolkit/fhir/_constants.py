"""
Shared constants for the FHIR sub-package.

Code systems, extension URLs, and resource-type tables used across the
extractors are centralised here to avoid circular imports and keep the
IPS, ePI and Persona Vector readers consistent.
"""

from __future__ import annotations

# ── Code systems & extension URLs ─────────────────────────────────

PD_CODE_SYSTEM = "http://hl7.eu/fhir/ig/gravitate-health/CodeSystem/pd-type-cs"
"""Code system that identifies Persona Vector dimension observations."""

OCCUPATION_EXTENSION_URL = (
    "http://hl7.org/fhir/StructureDefinition/individual-occupation"
)

TYPE_OF_DATA_CODE_SYSTEM = (
    "http://hl7.eu/fhir/ig/gravitate-health/CodeSystem/type-of-data-cs"
)

ADDITIONAL_INFORMATION_URL = (
    "http://hl7.eu/fhir/ig/gravitate-health/StructureDefinition/AdditionalInformation"
)

# ── Persona dimensions ────────────────────────────────────────────

DIMENSION_CODES: dict[str, str] = {
    "EMPLOYMENT": "EMP",
    "SHARE_WILLINGLY": "SHW",
    "WORK_LIFE": "WKL",
    "EXTROVERT_INTROVERT": "EVI",
    "EMOTIONAL_RATIONAL": "ER",
    "HEALTH_LITERACY": "HL",
    "DIGITAL_LITERACY": "DL",
    "TOOL_SUPPORT_INTEREST": "TSI",
}

UNKNOWN_SUBJECT = "unknown"
"""Bucket name for dimensions without a subject."""

# ── IPS extraction tables ─────────────────────────────────────────

MEDICATION_ACTIVITY_TYPES: tuple[str, ...] = (
    "MedicationStatement",
    "MedicationDispense",
    "MedicationAdministration",
    "MedicationRequest",
)
"""Resource kinds that record a medication being taken or ordered."""

CONTACT_RESOURCE_TYPES: tuple[str, ...] = ("Practitioner", "Organization")

CONTACT_TELECOM_SYSTEMS: tuple[str, ...] = ("phone", "email")

MEDICATION_CODE_SOURCE = "medication-code"
INGREDIENT_CODE_SOURCE = "ingredient"

# Age is a calendar-unaware approximation: elapsed time divided by an
# average Julian year.
AVERAGE_YEAR_SECONDS = 365.25 * 24 * 60 * 60

# ── ePI tables ────────────────────────────────────────────────────

CONCEPT_EXTENSION_URL = "concept"

ATTACHMENT_CONTENT_TYPES: dict[str, dict[str, str]] = {
    "video/mp4": {"code": "video", "display": "VIDEO"},
    "application/pdf": {"code": "pdf", "display": "PDF"},
    "audio/mpeg": {"code": "audio", "display": "AUDIO"},
    "image/jpg": {"code": "image", "display": "IMG"},
    "image/jpeg": {"code": "image", "display": "IMG"},
}

# text/html attachments are embedded players; the kind is inferred from
# the duration and url.
INAPP_VIDEO = {"code": "video-inapp", "display": "VIDEO"}
INAPP_AUDIO = {"code": "audio-inapp", "display": "AUDIO"}
INAPP_IMAGE = {"code": "image-inapp", "display": "IMG"}

CONCEPT_TYPES = {"url": "valueUrl", "base64": "valueBase64Binary"}
"""Supported AdditionalInformation concept encodings → FHIR value key."""
