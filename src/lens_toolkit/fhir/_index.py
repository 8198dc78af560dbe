"""
Resource lookup over FHIR Bundle entries.

``get_resources_by_type()`` and ``resolve_reference()`` are the
one-shot forms.  ``ResourceIndex`` builds the same lookups once per
extraction call so that resolving many references does not rescan the
entry list each time.  Indexes are never cached across calls: a bundle
may change between invocations.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Iterator, Optional, Union

from lens_toolkit.fhir._types import ResourceType

logger = logging.getLogger(__name__)

TypeKey = Union[str, ResourceType]


def _type_name(resource_type: TypeKey) -> Optional[str]:
    if isinstance(resource_type, ResourceType):
        if resource_type is ResourceType.UNKNOWN:
            return None
        return resource_type.value
    if isinstance(resource_type, str) and resource_type:
        return resource_type
    return None


def bundle_entries(bundle: Any) -> list[Any]:
    """Return ``bundle.entry`` when it is a list, else ``[]``."""
    if not isinstance(bundle, dict):
        return []
    entries = bundle.get("entry")
    if not isinstance(entries, list):
        return []
    return entries


def iter_resources(entries: Any) -> Iterator[dict[str, Any]]:
    """Yield each entry's resource, skipping entries without a dict resource."""
    if not isinstance(entries, list):
        return
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        resource = entry.get("resource")
        if isinstance(resource, dict):
            yield resource


def parse_reference(reference: Any) -> Optional[tuple[str, str]]:
    """Split ``"<Type>/<id>"`` on the first ``/``.

    Returns ``None`` for non-strings, a missing separator, or an empty
    type or id.
    """
    if not isinstance(reference, str):
        return None
    type_name, sep, res_id = reference.partition("/")
    if not sep or not type_name or not res_id:
        return None
    return type_name, res_id


def get_resources_by_type(
    bundle: Any,
    resource_type: TypeKey,
) -> list[dict[str, Any]]:
    """All resources of *resource_type* in entry order.

    Args:
        bundle:        A FHIR Bundle (JSON-parsed dict).  Anything else
                       yields ``[]``.
        resource_type: A type name such as ``"Condition"`` or a
                       :class:`ResourceType` member.

    Returns:
        The matching resources; ``[]`` when the bundle is absent,
        malformed, or has no matches.
    """
    name = _type_name(resource_type)
    if name is None:
        return []
    return [
        res for res in iter_resources(bundle_entries(bundle))
        if res.get("resourceType") == name
    ]


def resolve_reference(reference: Any, entries: Any) -> Optional[dict[str, Any]]:
    """Resolve a ``"<Type>/<id>"`` reference against bundle entries.

    Returns the first resource whose ``resourceType`` and ``id`` both
    match exactly, or ``None`` when the reference is malformed or
    dangling.
    """
    parsed = parse_reference(reference)
    if parsed is None:
        return None
    type_name, res_id = parsed
    for res in iter_resources(entries):
        if res.get("resourceType") == type_name and res.get("id") == res_id:
            return res
    return None


class ResourceIndex:
    """Type and ``(type, id)`` lookups built once from a list of entries.

    Lookup results are identical to :func:`get_resources_by_type` and
    :func:`resolve_reference`: entry order is kept, and the first
    resource with a given ``(type, id)`` wins.
    """

    def __init__(self, entries: Any) -> None:
        self._resources: list[dict[str, Any]] = list(iter_resources(entries))
        self._by_type: dict[str, list[dict[str, Any]]] = defaultdict(list)
        self._by_key: dict[tuple[str, str], dict[str, Any]] = {}

        for res in self._resources:
            type_name = res.get("resourceType")
            if not isinstance(type_name, str):
                continue
            self._by_type[type_name].append(res)
            res_id = res.get("id")
            if isinstance(res_id, str):
                self._by_key.setdefault((type_name, res_id), res)

    @classmethod
    def from_bundle(cls, bundle: Any) -> "ResourceIndex":
        return cls(bundle_entries(bundle))

    @property
    def resources(self) -> list[dict[str, Any]]:
        return list(self._resources)

    def by_type(self, resource_type: TypeKey) -> list[dict[str, Any]]:
        name = _type_name(resource_type)
        if name is None:
            return []
        return list(self._by_type.get(name, ()))

    def first(self, resource_type: TypeKey) -> Optional[dict[str, Any]]:
        matches = self._by_type.get(_type_name(resource_type) or "", ())
        return matches[0] if matches else None

    def resolve(self, reference: Any) -> Optional[dict[str, Any]]:
        parsed = parse_reference(reference)
        if parsed is None:
            if reference is not None:
                logger.debug("Malformed reference %r", reference)
            return None
        resolved = self._by_key.get(parsed)
        if resolved is None:
            logger.debug("Dangling reference %r", reference)
        return resolved

    def __len__(self) -> int:
        return len(self._resources)
