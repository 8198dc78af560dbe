"""
FHIR extraction and matching for lens development.

Reads three kinds of FHIR R4 Bundle, all as JSON-parsed dicts:

  - IPS (International Patient Summary) — the patient's conditions,
    allergies, medications, observations and demographics.
  - ePI (electronic Product Information) — a leaflet whose Composition
    annotates each section with the clinical codes it concerns.
  - Persona Vector — a collection of Observations describing patient
    preferences such as health literacy.

Lens code extracts facts from the IPS, matches their codes against the
ePI annotations with ``find_sections_by_code()``, and hands the
matching categories to an HTML annotator to highlight or collapse.

Conventions:
  - Nothing here raises on malformed input.  "Find many" operations
    return ``[]``, "find one" operations return ``None``, validators
    return a :class:`ValidationResult`.  Only the ``require_*`` guards
    raise, with :class:`LensContextError`.
  - Every call works on its own input; no state is kept between calls.
  - Code comparison is strict (code + system) unless asked otherwise.
"""

from lens_toolkit.fhir._constants import (
    PD_CODE_SYSTEM,
    DIMENSION_CODES,
    OCCUPATION_EXTENSION_URL,
    MEDICATION_ACTIVITY_TYPES,
    MEDICATION_CODE_SOURCE,
    INGREDIENT_CODE_SOURCE,
)
from lens_toolkit.fhir._types import (
    ResourceType,
    ValueType,
    Code,
    ConditionFact,
    AllergyFact,
    MedicationFact,
    ObservationFact,
    PatientContact,
    AnnotatedSection,
    PersonaDimension,
    DimensionsSummary,
    ValidationResult,
)
from lens_toolkit.fhir._index import (
    ResourceIndex,
    get_resources_by_type,
    resolve_reference,
)
from lens_toolkit.fhir._codes import (
    extract_codes,
    codes_match,
    match_codes,
    is_valid_code,
    are_valid_codes,
)
from lens_toolkit.fhir._temporal import (
    calculate_age,
    parse_fhir_datetime,
)
from lens_toolkit.fhir._ips import (
    get_patient_info,
    get_conditions,
    get_allergies,
    get_medications,
    get_observations_by_code,
    get_patient_contacts,
    get_patient_extensions,
    has_occupation,
)
from lens_toolkit.fhir._epi import (
    get_annotated_sections,
    find_sections_by_code,
    match_bundle_identifier,
    match_product_identifier,
    get_composition,
    get_language,
    get_medicinal_product_id,
    validate_epi,
    add_extension_to_section,
    create_additional_info_extension,
    parse_attachment_type,
)
from lens_toolkit.fhir._pv import (
    UNSET,
    validate_persona_vector,
    get_all_dimensions,
    get_dimension_by_code,
    get_dimensions_by_codes,
    get_health_literacy,
    get_digital_literacy,
    get_employment,
    get_dimensions_by_value_type,
    find_dimensions_by_value,
    match_dimensions,
    get_subject,
    group_dimensions_by_subject,
    get_dimensions_summary,
    has_dimension,
    get_available_dimension_codes,
)
from lens_toolkit.fhir._validation import (
    LensContextError,
    validate_bundle,
    validate_required_fields,
    validate_lens_context,
    has_composition,
    has_patient,
    ensure_list,
    safe_get,
    require_ips,
    require_epi,
    require_html,
    require_composition,
    require_patient,
)

__all__ = [
    # Constants
    "PD_CODE_SYSTEM",
    "DIMENSION_CODES",
    "OCCUPATION_EXTENSION_URL",
    "MEDICATION_ACTIVITY_TYPES",
    "MEDICATION_CODE_SOURCE",
    "INGREDIENT_CODE_SOURCE",
    # Records
    "ResourceType",
    "ValueType",
    "Code",
    "ConditionFact",
    "AllergyFact",
    "MedicationFact",
    "ObservationFact",
    "PatientContact",
    "AnnotatedSection",
    "PersonaDimension",
    "DimensionsSummary",
    "ValidationResult",
    # Resource index
    "ResourceIndex",
    "get_resources_by_type",
    "resolve_reference",
    # Codes
    "extract_codes",
    "codes_match",
    "match_codes",
    "is_valid_code",
    "are_valid_codes",
    "calculate_age",
    "parse_fhir_datetime",
    # IPS
    "get_patient_info",
    "get_conditions",
    "get_allergies",
    "get_medications",
    "get_observations_by_code",
    "get_patient_contacts",
    "get_patient_extensions",
    "has_occupation",
    # ePI
    "get_annotated_sections",
    "find_sections_by_code",
    "match_bundle_identifier",
    "match_product_identifier",
    "get_composition",
    "get_language",
    "get_medicinal_product_id",
    "validate_epi",
    "add_extension_to_section",
    "create_additional_info_extension",
    "parse_attachment_type",
    # Persona Vector
    "UNSET",
    "validate_persona_vector",
    "get_all_dimensions",
    "get_dimension_by_code",
    "get_dimensions_by_codes",
    "get_health_literacy",
    "get_digital_literacy",
    "get_employment",
    "get_dimensions_by_value_type",
    "find_dimensions_by_value",
    "match_dimensions",
    "get_subject",
    "group_dimensions_by_subject",
    "get_dimensions_summary",
    "has_dimension",
    "get_available_dimension_codes",
    # Validation
    "LensContextError",
    "validate_bundle",
    "validate_required_fields",
    "validate_lens_context",
    "has_composition",
    "has_patient",
    "ensure_list",
    "safe_get",
    "require_ips",
    "require_epi",
    "require_html",
    "require_composition",
    "require_patient",
]
