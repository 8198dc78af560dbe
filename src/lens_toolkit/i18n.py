"""
Language keys and message lookup for lens explanations.

Lens dictionaries are nested ``{lang_key: {message_key: text}}`` dicts.
``translate()`` falls back from the document language to a fallback
language and finally echoes the key, so a missing translation shows up
as its key rather than as an empty string.
"""

from __future__ import annotations

from typing import Any, Callable, Mapping, Optional, Sequence

from lens_toolkit.fhir._epi import get_language

DEFAULT_LANGUAGE = "en"

SUPPORTED_LANGUAGES: tuple[str, ...] = ("pt", "es", "da", "fr", "de", "it", "nl")
"""Language keys recognised by prefix; anything else maps to English."""

STANDARD_MESSAGES: dict[str, dict[str, str]] = {
    "en": {
        "noDataFound": "No relevant data found.",
        "dataDetected": "Relevant information detected.",
        "highlighting": "Highlighting relevant sections.",
        "warningBanner": "⚠️ Warning",
        "information": "ℹ️ Information",
        "contactDoctor": "Contact your doctor for more information.",
    },
    "es": {
        "noDataFound": "No se encontraron datos relevantes.",
        "dataDetected": "Se detectó información relevante.",
        "highlighting": "Resaltando secciones relevantes.",
        "warningBanner": "⚠️ Advertencia",
        "information": "ℹ️ Información",
        "contactDoctor": "Contacte a su médico para más información.",
    },
    "pt": {
        "noDataFound": "Nenhum dado relevante encontrado.",
        "dataDetected": "Informação relevante detectada.",
        "highlighting": "Destacando seções relevantes.",
        "warningBanner": "⚠️ Aviso",
        "information": "ℹ️ Informação",
        "contactDoctor": "Contacte o seu médico para mais informações.",
    },
    "da": {
        "noDataFound": "Ingen relevante data fundet.",
        "dataDetected": "Relevant information fundet.",
        "highlighting": "Fremhævning af relevante sektioner.",
        "warningBanner": "⚠️ Advarsel",
        "information": "ℹ️ Information",
        "contactDoctor": "Kontakt din læge for mere information.",
    },
    "fr": {
        "noDataFound": "Aucune donnée pertinente trouvée.",
        "dataDetected": "Informations pertinentes détectées.",
        "highlighting": "Mise en évidence des sections pertinentes.",
        "warningBanner": "⚠️ Avertissement",
        "information": "ℹ️ Information",
        "contactDoctor": "Contactez votre médecin pour plus d'informations.",
    },
    "de": {
        "noDataFound": "Keine relevanten Daten gefunden.",
        "dataDetected": "Relevante Informationen erkannt.",
        "highlighting": "Hervorhebung relevanter Abschnitte.",
        "warningBanner": "⚠️ Warnung",
        "information": "ℹ️ Information",
        "contactDoctor": "Kontaktieren Sie Ihren Arzt für weitere Informationen.",
    },
    "it": {
        "noDataFound": "Nessun dato rilevante trovato.",
        "dataDetected": "Informazioni rilevanti rilevate.",
        "highlighting": "Evidenziazione delle sezioni rilevanti.",
        "warningBanner": "⚠️ Avviso",
        "information": "ℹ️ Informazione",
        "contactDoctor": "Contatta il tuo medico per ulteriori informazioni.",
    },
    "nl": {
        "noDataFound": "Geen relevante gegevens gevonden.",
        "dataDetected": "Relevante informatie gedetecteerd.",
        "highlighting": "Relevante secties markeren.",
        "warningBanner": "⚠️ Waarschuwing",
        "information": "ℹ️ Informatie",
        "contactDoctor": "Neem contact op met uw arts voor meer informatie.",
    },
}


PREGNANCY_MESSAGES: dict[str, dict[str, str]] = {
    "en": {
        "childbearingAge": "You are seeing this because you are of childbearing age.",
        "pregnant": "You are seeing this because you are pregnant.",
        "breastfeeding": "You are seeing this because you are breastfeeding.",
        "notRelevant": "This information is not relevant to you.",
    },
    "es": {
        "childbearingAge": "Ves esto porque estás en edad fértil.",
        "pregnant": "Ves esto porque estás embarazada.",
        "breastfeeding": "Ves esto porque estás amamantando.",
        "notRelevant": "Esta información no es relevante para ti.",
    },
    "pt": {
        "childbearingAge": "Você está vendo isso porque está em idade fértil.",
        "pregnant": "Você está vendo isso porque está grávida.",
        "breastfeeding": "Você está vendo isso porque está amamentando.",
        "notRelevant": "Esta informação não é relevante para você.",
    },
    "da": {
        "childbearingAge": "Du ser dette, fordi du er i den fødedygtige alder.",
        "pregnant": "Du ser dette, fordi du er gravid.",
        "breastfeeding": "Du ser dette, fordi du ammer.",
        "notRelevant": "Denne information er ikke relevant for dig.",
    },
}


def _condition_formatter(template: str, empty: str) -> Callable[[Sequence[str]], str]:
    """Build a message function over a list of condition names.

    *template* receives the names joined with ``", "`` as ``{conditions}``;
    *empty* is returned for an empty list.
    """
    def format_conditions(conditions: Sequence[str]) -> str:
        if not conditions:
            return empty
        return template.format(conditions=", ".join(str(c) for c in conditions))
    return format_conditions


CONDITION_MESSAGES: dict[str, dict[str, Callable[[Sequence[str]], str]]] = {
    "en": {
        "report": _condition_formatter(
            "You are seeing this because you have: {conditions}.",
            "No relevant conditions detected.",
        ),
        "explanation": _condition_formatter(
            "The following conditions were detected and highlighted: {conditions}.",
            "No conditions found in your health record.",
        ),
    },
    "es": {
        "report": _condition_formatter(
            "Ves esto porque tienes: {conditions}.",
            "No se detectaron condiciones relevantes.",
        ),
        "explanation": _condition_formatter(
            "Se detectaron y resaltaron las siguientes condiciones: {conditions}.",
            "No se encontraron condiciones en su historial de salud.",
        ),
    },
    "pt": {
        "report": _condition_formatter(
            "Você está vendo isso porque tem: {conditions}.",
            "Nenhuma condição relevante detectada.",
        ),
        "explanation": _condition_formatter(
            "As seguintes condições foram detectadas e destacadas: {conditions}.",
            "Nenhuma condição encontrada no seu histórico de saúde.",
        ),
    },
    "da": {
        "report": _condition_formatter(
            "Du ser dette, fordi du har: {conditions}.",
            "Ingen relevante tilstande fundet.",
        ),
        "explanation": _condition_formatter(
            "Følgende tilstande blev fundet og fremhævet: {conditions}.",
            "Ingen tilstande fundet i din journal.",
        ),
    },
}
"""Message functions taking the list of detected condition names."""

QUESTIONNAIRE_MESSAGES: dict[str, dict[str, str]] = {
    "en": {
        "bannerWarning": "⚠️ This medication may cause high-risk side effects.",
        "questionnaireLink": "Fill out safety questionnaire",
        "fillQuestionnaire": "📝 Fill out safety questionnaire",
        "linkAdded": "A link to a safety questionnaire has been added to help you assess if this medication is safe for you.",
        "linkNotAdded": "Your profile does not match the conditions to add a questionnaire link.",
    },
    "es": {
        "bannerWarning": "⚠️ Este medicamento puede causar efectos secundarios de alto riesgo.",
        "questionnaireLink": "Rellenar cuestionario de seguridad",
        "fillQuestionnaire": "📝 Rellenar cuestionario de seguridad",
        "linkAdded": "Se ha añadido un enlace a un cuestionario de seguridad para ayudarle a evaluar si este medicamento es seguro para usted.",
        "linkNotAdded": "Su perfil no coincide con las condiciones para añadir un enlace al cuestionario.",
    },
    "pt": {
        "bannerWarning": "⚠️ Este medicamento pode causar efeitos secundários de alto risco.",
        "questionnaireLink": "Preencher questionário de segurança",
        "fillQuestionnaire": "📝 Preencher questionário de segurança",
        "linkAdded": "Foi adicionado um link para um questionário de segurança para ajudá-lo a avaliar se este medicamento é seguro para você.",
        "linkNotAdded": "Seu perfil não corresponde às condições para adicionar um link para o questionário.",
    },
    "da": {
        "bannerWarning": "⚠️ Denne medicin kan forårsage alvorlige bivirkninger.",
        "questionnaireLink": "Udfyld sikkerhedsspørgeskema",
        "fillQuestionnaire": "📝 Udfyld sikkerhedsspørgeskema",
        "linkAdded": "Der er tilføjet et link til et sikkerhedsspørgeskema for at hjælpe dig med at vurdere, om denne medicin er sikker for dig.",
        "linkNotAdded": "Din profil matcher ikke betingelserne for at tilføje et spørgeskemalink.",
    },
}


def get_lang_key(language_code: Optional[str], default: str = DEFAULT_LANGUAGE) -> str:
    """Reduce a BCP-47 code such as ``"pt-PT"`` to a dictionary key."""
    if not isinstance(language_code, str) or not language_code:
        return default
    for key in SUPPORTED_LANGUAGES:
        if language_code.startswith(key):
            return key
    return default


def translate(
    key: str,
    lang: Optional[str],
    dictionary: Optional[Mapping[str, Mapping[str, Any]]],
    fallback: str = DEFAULT_LANGUAGE,
) -> Any:
    """Look up *key* for *lang*, then for *fallback*, else return *key*.

    Empty translations count as missing.
    """
    if not isinstance(dictionary, Mapping):
        return key
    for lang_key in (get_lang_key(lang), fallback):
        messages = dictionary.get(lang_key)
        if isinstance(messages, Mapping) and messages.get(key):
            return messages[key]
    return key


def _messages_for(table: Mapping[str, Any], lang: Optional[str]) -> Any:
    return table.get(get_lang_key(lang)) or table[DEFAULT_LANGUAGE]


def get_standard_messages(lang: Optional[str]) -> dict[str, str]:
    """The built-in message set for *lang* (English if unsupported)."""
    return _messages_for(STANDARD_MESSAGES, lang)


def get_pregnancy_messages(lang: Optional[str]) -> dict[str, str]:
    return _messages_for(PREGNANCY_MESSAGES, lang)


def get_condition_messages(lang: Optional[str]) -> dict[str, Callable[[Sequence[str]], str]]:
    """``report`` and ``explanation`` functions for *lang*.

    >>> get_condition_messages("en")["report"](["Asthma"])
    'You are seeing this because you have: Asthma.'
    """
    return _messages_for(CONDITION_MESSAGES, lang)


def get_questionnaire_messages(lang: Optional[str]) -> dict[str, str]:
    return _messages_for(QUESTIONNAIRE_MESSAGES, lang)



def detect_language(epi_bundle: Any) -> Optional[str]:
    """Language of an ePI: Composition.language, then Bundle.language."""
    return get_language(epi_bundle)
