"""
Structural validation of lens inputs.

Two flavours are provided:

  - ``validate_*`` functions return a :class:`ValidationResult` and
    never raise, so callers can decide whether to proceed, log, or
    abort.
  - ``require_*`` guards raise :class:`LensContextError` and are meant
    for the entry point of a lens, where running on an empty IPS or
    ePI would silently produce wrong output.
"""

from __future__ import annotations

from typing import Any, Optional, Sequence

from lens_toolkit.fhir._index import get_resources_by_type
from lens_toolkit.fhir._types import ResourceType, ValidationResult


class LensContextError(ValueError):
    """A required lens input is missing or structurally unusable."""


# ── Non-raising checks ────────────────────────────────────────────


def validate_bundle(bundle: Any, label: str = "Bundle") -> ValidationResult:
    """Check ``resourceType == "Bundle"`` and a non-empty entry list."""
    if bundle is None:
        return ValidationResult(False, [f"{label} is null or undefined"])

    errors: list[str] = []
    if not isinstance(bundle, dict) or bundle.get("resourceType") != "Bundle":
        errors.append(f'{label} resourceType is not "Bundle"')

    entries = bundle.get("entry") if isinstance(bundle, dict) else None
    if not isinstance(entries, list):
        errors.append(f"{label} has no entries array")
    elif not entries:
        errors.append(f"{label} entries array is empty")

    return ValidationResult(not errors, errors)


def validate_required_fields(
    obj: Any,
    required_fields: Sequence[str],
    label: str = "Object",
) -> ValidationResult:
    """Report every field of *required_fields* that is missing or ``None``."""
    if not isinstance(obj, dict):
        return ValidationResult(False, [f"{label} is null or undefined"])
    errors = [
        f"{label} is missing required field: {name}"
        for name in required_fields
        if obj.get(name) is None
    ]
    return ValidationResult(not errors, errors)


def validate_lens_context(
    *,
    ips: Any = None,
    epi: Any = None,
    html: Optional[str] = None,
) -> ValidationResult:
    """Validate the IPS, ePI and HTML a lens is invoked with."""
    errors: list[str] = []

    if ips is None:
        errors.append("IPS is missing from context")
    else:
        errors.extend(validate_bundle(ips, "IPS").errors)

    if epi is None:
        errors.append("ePI is missing from context")
    else:
        errors.extend(validate_bundle(epi, "ePI").errors)

    if not html:
        errors.append("HTML is missing or empty in context")

    return ValidationResult(not errors, errors)


def has_composition(bundle: Any) -> bool:
    return bool(get_resources_by_type(bundle, ResourceType.COMPOSITION))


def has_patient(bundle: Any) -> bool:
    return bool(get_resources_by_type(bundle, ResourceType.PATIENT))


def ensure_list(value: Any) -> list[Any]:
    """*value* if it is a list, else ``[]``."""
    return value if isinstance(value, list) else []


def safe_get(obj: Any, path: str, default: Any = None) -> Any:
    """Follow a dotted *path* through nested dicts.

    Returns *default* as soon as a step is missing, or when the final
    value is ``None``.
    """
    if obj is None or not path:
        return default
    current = obj
    for key in path.split("."):
        if isinstance(current, dict) and key in current:
            current = current[key]
        else:
            return default
    return default if current is None else current


# ── Raising guards ────────────────────────────────────────────────


def _require_entries(bundle: Any, label: str) -> None:
    if bundle is None or bundle == "":
        raise LensContextError(
            f"Failed to load {label}: the lens is getting an empty {label}"
        )
    entries = bundle.get("entry") if isinstance(bundle, dict) else None
    if not isinstance(entries, list):
        raise LensContextError(f"{label} has no entries array")
    if not entries:
        raise LensContextError(f"{label} entries array is empty")


def require_ips(ips: Any) -> None:
    """Raise :class:`LensContextError` unless *ips* has entries."""
    _require_entries(ips, "IPS")


def require_epi(epi: Any) -> None:
    """Raise :class:`LensContextError` unless *epi* has entries."""
    _require_entries(epi, "ePI")


def require_html(html: Any) -> None:
    if not html:
        raise LensContextError("HTML data is empty or null")


def require_composition(epi: Any) -> None:
    if not has_composition(epi):
        raise LensContextError('Bad ePI: no "Composition" resource found')


def require_patient(ips: Any) -> None:
    if not has_patient(ips):
        raise LensContextError('Bad IPS: no "Patient" resource found')
