"""
lens-toolkit: FHIR extraction and section matching for ePI lenses

Shared core for lenses that personalise electronic Product Information:
clinical fact extraction from IPS bundles, ePI section matching,
Persona Vector reading, input validation and message translation.
"""

import logging

__version__ = "1.0.0"

from lens_toolkit.fhir import *  # noqa: F401,F403
from lens_toolkit.fhir import __all__ as _fhir_all
from lens_toolkit.i18n import (
    DEFAULT_LANGUAGE,
    STANDARD_MESSAGES,
    PREGNANCY_MESSAGES,
    CONDITION_MESSAGES,
    QUESTIONNAIRE_MESSAGES,
    get_lang_key,
    translate,
    get_standard_messages,
    get_pregnancy_messages,
    get_condition_messages,
    get_questionnaire_messages,
    detect_language,
)

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "__version__",
    *_fhir_all,
    "DEFAULT_LANGUAGE",
    "STANDARD_MESSAGES",
    "PREGNANCY_MESSAGES",
    "CONDITION_MESSAGES",
    "QUESTIONNAIRE_MESSAGES",
    "get_lang_key",
    "translate",
    "get_standard_messages",
    "get_pregnancy_messages",
    "get_condition_messages",
    "get_questionnaire_messages",
    "detect_language",
]
