"""Tests for IPS clinical fact extraction.

Covers patient demographics, conditions, allergies, medications (inline
and by reference), observations and practitioner contacts.
"""

from datetime import date, datetime, timezone

import pytest

from lens_toolkit.fhir import (
    AllergyFact,
    Code,
    ConditionFact,
    MedicationFact,
    calculate_age,
    get_allergies,
    get_conditions,
    get_medications,
    get_observations_by_code,
    get_patient_contacts,
    get_patient_extensions,
    get_patient_info,
    has_occupation,
    parse_fhir_datetime,
)
from lens_toolkit.fhir._constants import OCCUPATION_EXTENSION_URL


SNOMED = "http://snomed.info/sct"
ATC = "http://www.whocc.no/atc"
LOINC = "http://loinc.org"

MALFORMED = [None, {}, {"entry": None}, {"entry": "x"}, []]


# ── Test helpers ──────────────────────────────────────────────────


def _bundle(*resources):
    return {
        "resourceType": "Bundle",
        "type": "document",
        "entry": [{"fullUrl": f"urn:uuid:{i}", "resource": r} for i, r in enumerate(resources)],
    }


def _concept(*codings, text=None):
    concept = {"coding": [
        {"system": system, "code": code, "display": display}
        for system, code, display in codings
    ]}
    if text is not None:
        concept["text"] = text
    return concept


def _patient(pid="p1", **fields):
    return {"resourceType": "Patient", "id": pid, **fields}


# ═══════════════════════════════════════════════════════════════════
# Dates & age
# ═══════════════════════════════════════════════════════════════════


class TestParseFhirDatetime:

    def test_full_date(self):
        assert parse_fhir_datetime("1990-01-01") == datetime(1990, 1, 1, tzinfo=timezone.utc)

    def test_partial_dates(self):
        assert parse_fhir_datetime("1990") == datetime(1990, 1, 1, tzinfo=timezone.utc)
        assert parse_fhir_datetime("1990-07") == datetime(1990, 7, 1, tzinfo=timezone.utc)

    def test_zulu_datetime(self):
        dt = parse_fhir_datetime("2024-06-01T12:00:00Z")
        assert dt == datetime(2024, 6, 1, 12, tzinfo=timezone.utc)

    def test_date_and_datetime_objects(self):
        assert parse_fhir_datetime(date(2020, 2, 29)).year == 2020
        assert parse_fhir_datetime(datetime(2020, 2, 29)).tzinfo is not None

    @pytest.mark.parametrize("value", [None, "", "yesterday", "1990-13", "1990-02-30", 1990])
    def test_unparsable(self, value):
        assert parse_fhir_datetime(value) is None


class TestCalculateAge:

    def test_whole_years(self):
        assert calculate_age("1990-01-01", reference_date="2024-06-01") == 34

    def test_before_tenth_birthday(self):
        assert calculate_age("2000-06-15", reference_date="2010-06-01") == 9

    def test_absent_or_unparsable(self):
        assert calculate_age(None, reference_date="2024-01-01") is None
        assert calculate_age("not-a-date", reference_date="2024-01-01") is None
        assert calculate_age("1990-01-01", reference_date="garbage") is None

    def test_defaults_to_now(self):
        age = calculate_age("1990-01-01")
        assert age is not None and age >= 34


# ═══════════════════════════════════════════════════════════════════
# Patient
# ═══════════════════════════════════════════════════════════════════


class TestGetPatientInfo:

    def test_adds_age(self):
        bundle = _bundle(_patient(birthDate="1990-01-01", gender="female"))
        info = get_patient_info(bundle, reference_date=date(2024, 6, 1))
        assert info["age"] == 34
        assert info["gender"] == "female"
        assert info["id"] == "p1"

    def test_does_not_mutate_bundle(self):
        patient = _patient(birthDate="1990-01-01")
        get_patient_info(_bundle(patient), reference_date="2024-06-01")
        assert "age" not in patient

    def test_unparsable_birth_date_gives_null_age(self):
        info = get_patient_info(_bundle(_patient(birthDate="someday")))
        assert info is not None
        assert info["age"] is None

    def test_missing_birth_date(self):
        assert get_patient_info(_bundle(_patient()))["age"] is None

    def test_first_patient_wins(self):
        bundle = _bundle(_patient("first"), _patient("second"))
        assert get_patient_info(bundle)["id"] == "first"

    @pytest.mark.parametrize("bundle", MALFORMED)
    def test_no_patient(self, bundle):
        assert get_patient_info(bundle) is None


class TestPatientExtensions:

    def _bundle_with_occupation(self, code):
        return _bundle(_patient(extension=[
            {"url": "http://example.org/other", "valueString": "x"},
            {
                "url": OCCUPATION_EXTENSION_URL,
                "valueCodeableConcept": _concept(("urn:oid:2.16.840.1.113883.2.9.6.2.7", code, "")),
            },
        ]))

    def test_filters_by_url(self):
        bundle = self._bundle_with_occupation("2211")
        exts = get_patient_extensions(bundle, OCCUPATION_EXTENSION_URL)
        assert len(exts) == 1
        assert get_patient_extensions(bundle, "http://nope") == []

    def test_has_occupation(self):
        bundle = self._bundle_with_occupation("2211")
        assert has_occupation(bundle, "2211") is True
        assert has_occupation(bundle, "9999") is False

    def test_no_extensions(self):
        assert get_patient_extensions(_bundle(_patient()), OCCUPATION_EXTENSION_URL) == []
        assert has_occupation(None, "2211") is False


class TestGetPatientContacts:

    def test_follows_practitioner_references(self):
        bundle = _bundle(
            _patient(generalPractitioner=[
                {"reference": "Practitioner/dr1"},
                {"reference": "Organization/org1"},
                {"reference": "Practitioner/missing"},
                {"reference": "Patient/p1"},
            ]),
            {
                "resourceType": "Practitioner", "id": "dr1",
                "telecom": [
                    {"system": "phone", "value": "+351 000"},
                    {"system": "fax", "value": "+351 111"},
                    {"system": "email", "value": "dr@example.org"},
                ],
            },
            {
                "resourceType": "Organization", "id": "org1",
                "telecom": [{"system": "email", "value": "clinic@example.org"}],
            },
        )
        contacts = get_patient_contacts(bundle)
        assert [(c.type, c.value, c.resource_type, c.id) for c in contacts] == [
            ("phone", "+351 000", "Practitioner", "dr1"),
            ("email", "dr@example.org", "Practitioner", "dr1"),
            ("email", "clinic@example.org", "Organization", "org1"),
        ]

    def test_to_dict(self):
        bundle = _bundle(
            _patient(generalPractitioner=[{"reference": "Practitioner/dr1"}]),
            {"resourceType": "Practitioner", "id": "dr1",
             "telecom": [{"system": "phone", "value": "1"}]},
        )
        assert get_patient_contacts(bundle)[0].to_dict() == {
            "type": "phone", "value": "1", "resourceType": "Practitioner", "id": "dr1",
        }

    def test_no_practitioners(self):
        assert get_patient_contacts(_bundle(_patient())) == []
        assert get_patient_contacts(None) == []


# ═══════════════════════════════════════════════════════════════════
# Conditions & allergies
# ═══════════════════════════════════════════════════════════════════


class TestGetConditions:

    def test_extracts_codes_and_statuses(self):
        bundle = _bundle({
            "resourceType": "Condition", "id": "c1",
            "code": _concept((SNOMED, "77386006", "Pregnancy"), text="Pregnant"),
            "clinicalStatus": _concept(("http://terminology.hl7.org/CodeSystem/condition-clinical", "active", "")),
            "verificationStatus": _concept(("http://terminology.hl7.org/CodeSystem/condition-ver-status", "confirmed", "")),
        })
        (cond,) = get_conditions(bundle)
        assert isinstance(cond, ConditionFact)
        assert cond.codes == [Code("77386006", SNOMED, "Pregnancy")]
        assert cond.text == "Pregnant"
        assert cond.clinical_status == "active"
        assert cond.verification_status == "confirmed"

    def test_uncoded_condition_still_reported(self):
        bundle = _bundle({"resourceType": "Condition", "id": "c2"})
        (cond,) = get_conditions(bundle)
        assert cond.codes == []
        assert cond.text == ""
        assert cond.clinical_status is None

    def test_to_dict_is_camel_case(self):
        bundle = _bundle({"resourceType": "Condition", "id": "c1", "code": _concept((SNOMED, "1", "x"))})
        d = get_conditions(bundle)[0].to_dict()
        assert set(d) == {"id", "codes", "text", "clinicalStatus", "verificationStatus"}
        assert d["codes"] == [{"code": "1", "system": SNOMED, "display": "x"}]

    @pytest.mark.parametrize("bundle", MALFORMED)
    def test_malformed(self, bundle):
        assert get_conditions(bundle) == []


class TestGetAllergies:

    def test_extracts_allergy(self):
        bundle = _bundle({
            "resourceType": "AllergyIntolerance", "id": "a1",
            "code": _concept((SNOMED, "91936005", "Penicillin allergy")),
            "criticality": "high",
            "type": "allergy",
        })
        (allergy,) = get_allergies(bundle)
        assert isinstance(allergy, AllergyFact)
        assert allergy.codes[0].code == "91936005"
        assert (allergy.criticality, allergy.type) == ("high", "allergy")

    def test_uncoded_allergy_kept(self):
        (allergy,) = get_allergies(_bundle({"resourceType": "AllergyIntolerance", "id": "a2"}))
        assert allergy.codes == []
        assert allergy.criticality is None


# ═══════════════════════════════════════════════════════════════════
# Medications
# ═══════════════════════════════════════════════════════════════════


class TestGetMedications:

    def test_inline_codes_are_untagged(self):
        bundle = _bundle({
            "resourceType": "MedicationStatement", "id": "ms1",
            "medicationCodeableConcept": _concept((ATC, "N02BE01", "Paracetamol")),
        })
        (med,) = get_medications(bundle)
        assert isinstance(med, MedicationFact)
        assert med.resource_type == "MedicationStatement"
        assert med.codes == [Code("N02BE01", ATC, "Paracetamol")]

    def test_reference_merges_code_then_ingredients(self):
        bundle = _bundle(
            {
                "resourceType": "MedicationStatement", "id": "ms1",
                "medicationReference": {"reference": "Medication/med1"},
            },
            {
                "resourceType": "Medication", "id": "med1",
                "code": _concept((ATC, "C09AA", "ACE inhibitor")),
                "ingredient": [
                    {"itemCodeableConcept": _concept((SNOMED, "386873009", "Lisinopril"))},
                    {"itemCodeableConcept": _concept((SNOMED, "387525002", "Hydrochlorothiazide"))},
                ],
            },
        )
        (med,) = get_medications(bundle)
        assert [(c.code, c.source) for c in med.codes] == [
            ("C09AA", "medication-code"),
            ("386873009", "ingredient"),
            ("387525002", "ingredient"),
        ]

    def test_inline_codes_come_first(self):
        bundle = _bundle(
            {
                "resourceType": "MedicationRequest", "id": "mr1",
                "medicationCodeableConcept": _concept((ATC, "INLINE", "")),
                "medicationReference": {"reference": "Medication/med1"},
            },
            {"resourceType": "Medication", "id": "med1", "code": _concept((ATC, "REF", ""))},
        )
        (med,) = get_medications(bundle)
        assert [c.code for c in med.codes] == ["INLINE", "REF"]
        assert [c.source for c in med.codes] == [None, "medication-code"]

    def test_dangling_reference_without_inline_is_dropped(self):
        bundle = _bundle({
            "resourceType": "MedicationStatement", "id": "ms1",
            "medicationReference": {"reference": "Medication/missing"},
        })
        assert get_medications(bundle) == []

    def test_drop_shortens_the_result(self):
        bundle = _bundle(
            {"resourceType": "MedicationStatement", "id": "kept",
             "medicationCodeableConcept": _concept((ATC, "A", ""))},
            {"resourceType": "MedicationStatement", "id": "dropped"},
        )
        assert [m.id for m in get_medications(bundle)] == ["kept"]

    def test_ingredient_only_medication_is_kept(self):
        bundle = _bundle(
            {
                "resourceType": "MedicationDispense", "id": "md1",
                "medicationReference": {"reference": "Medication/med1"},
            },
            {
                "resourceType": "Medication", "id": "med1",
                "ingredient": [{"itemCodeableConcept": _concept((SNOMED, "I1", ""))}],
            },
        )
        (med,) = get_medications(bundle)
        assert med.codes == [Code("I1", SNOMED, "", "ingredient")]

    def test_all_activity_kinds_in_bundle_order(self):
        kinds = [
            "MedicationAdministration",
            "MedicationStatement",
            "MedicationRequest",
            "MedicationDispense",
        ]
        bundle = _bundle(*[
            {"resourceType": kind, "id": kind, "medicationCodeableConcept": _concept((ATC, "X", ""))}
            for kind in kinds
        ])
        assert [m.resource_type for m in get_medications(bundle)] == kinds

    def test_medication_resource_itself_is_not_an_activity(self):
        bundle = _bundle({"resourceType": "Medication", "id": "m1", "code": _concept((ATC, "X", ""))})
        assert get_medications(bundle) == []

    def test_to_dict_includes_source_only_when_tagged(self):
        bundle = _bundle(
            {
                "resourceType": "MedicationStatement", "id": "ms1",
                "medicationCodeableConcept": _concept((ATC, "A", "")),
                "medicationReference": {"reference": "Medication/m"},
            },
            {"resourceType": "Medication", "id": "m", "code": _concept((ATC, "B", ""))},
        )
        codes = get_medications(bundle)[0].to_dict()["codes"]
        assert "source" not in codes[0]
        assert codes[1]["source"] == "medication-code"

    @pytest.mark.parametrize("bundle", MALFORMED)
    def test_malformed(self, bundle):
        assert get_medications(bundle) == []


# ═══════════════════════════════════════════════════════════════════
# Observations
# ═══════════════════════════════════════════════════════════════════


class TestGetObservationsByCode:

    def setup_method(self):
        self.bundle = _bundle(
            {
                "resourceType": "Observation", "id": "egfr",
                "code": _concept((LOINC, "33914-3", "Glomerular filtration rate")),
                "valueQuantity": {"value": 42, "unit": "mL/min"},
                "effectiveDateTime": "2024-01-01",
            },
            {
                "resourceType": "Observation", "id": "preg",
                "code": _concept((SNOMED, "82810-3", "Pregnancy status")),
                "valueCodeableConcept": _concept((SNOMED, "77386006", "Pregnant")),
            },
            {"resourceType": "Observation", "id": "nocode"},
        )

    def test_matches_code_regardless_of_system(self):
        found = get_observations_by_code(self.bundle, ["33914-3"])
        assert [o.id for o in found] == ["egfr"]
        assert found[0].value == 42
        assert found[0].unit == "mL/min"
        assert found[0].effective_date_time == "2024-01-01"

    def test_display_substring_is_case_insensitive(self):
        found = get_observations_by_code(self.bundle, [], include_display="PREGNANCY")
        assert [o.id for o in found] == ["preg"]
        assert found[0].value is None
        assert found[0].value_codeable_concept["coding"][0]["code"] == "77386006"

    def test_value_filter(self):
        low = get_observations_by_code(
            self.bundle, ["33914-3"], value_filter=lambda o: o.value is not None and o.value < 30,
        )
        assert low == []
        high = get_observations_by_code(
            self.bundle, ["33914-3"], value_filter=lambda o: o.value >= 30,
        )
        assert len(high) == 1

    def test_non_list_codes(self):
        assert get_observations_by_code(self.bundle, "33914-3") == []

    def test_set_of_codes(self):
        found = get_observations_by_code(self.bundle, {"33914-3", "82810-3"})
        assert [o.id for o in found] == ["egfr", "preg"]
