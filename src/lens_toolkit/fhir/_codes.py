"""
Code normalisation and comparison.

Two equality modes are supported:

  - strict: ``code`` and ``system`` both equal.  Identical code values
    from unrelated terminologies stay distinct.
  - loose:  ``code`` equal only.  Tolerates inputs whose system is
    missing or spelled differently.

Strict equality implies loose equality; both are symmetric.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Optional, Sequence, Union

from lens_toolkit.fhir._types import Code

CodeLike = Union[Code, Mapping]


def _coding_to_code(coding: Mapping, source: Optional[str] = None) -> Code:
    return Code(
        code=coding.get("code"),
        system=coding.get("system") or "",
        display=coding.get("display") or "",
        source=source,
    )


def extract_codes(concept: Any, *, source: Optional[str] = None) -> list[Code]:
    """Normalise a CodeableConcept's ``coding`` list.

    Args:
        concept: A FHIR CodeableConcept dict.
        source:  Optional provenance tag stamped on every code.

    Returns:
        One :class:`Code` per coding entry, ``[]`` when the concept is
        absent or its ``coding`` is not a list.  Non-dict coding entries
        are skipped.
    """
    if not isinstance(concept, Mapping):
        return []
    codings = concept.get("coding")
    if not isinstance(codings, list):
        return []
    return [
        _coding_to_code(coding, source)
        for coding in codings
        if isinstance(coding, Mapping)
    ]


def _field(code: Any, name: str) -> Any:
    if isinstance(code, Code):
        return getattr(code, name)
    if isinstance(code, Mapping):
        value = code.get(name)
        # Mappings follow the normalised default for a missing system.
        if name == "system" and value is None:
            return ""
        return value
    return None


def _is_code_like(code: Any) -> bool:
    return isinstance(code, (Code, Mapping))


def codes_match(a: Any, b: Any, strict: bool = True) -> bool:
    """Compare two codes.

    Accepts :class:`Code` instances or mappings with ``code`` and
    ``system`` keys.  Returns ``False`` if either side is absent.
    """
    if not _is_code_like(a) or not _is_code_like(b):
        return False
    if _field(a, "code") != _field(b, "code"):
        return False
    if strict:
        return _field(a, "system") == _field(b, "system")
    return True


def match_codes(
    codes: Sequence[CodeLike],
    search_code: Any,
    strict: bool = True,
) -> bool:
    """True if any code in *codes* matches *search_code*."""
    if not isinstance(codes, (list, tuple)) or not _is_code_like(search_code):
        return False
    return any(codes_match(c, search_code, strict) for c in codes)


def is_valid_code(code: Any) -> bool:
    """A code object is valid when it carries a non-null ``code``."""
    if isinstance(code, Code):
        return code.code is not None
    if isinstance(code, Mapping):
        return code.get("code") is not None
    return False


def are_valid_codes(codes: Any) -> bool:
    """True for a non-empty list whose every element is a valid code."""
    if not isinstance(codes, (list, tuple)) or not codes:
        return False
    return all(is_valid_code(c) for c in codes)
