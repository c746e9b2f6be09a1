"""Heuristic tag extraction shared by every scanner.

AWS services disagree on where tags live in a listing payload: EC2 uses a
``Tags`` list, RDS a ``TagList``, S3 a ``TagSet``, EKS and MSK a lowercase
``tags`` mapping. :func:`extract_tags` probes the known locations in a fixed
order so one predicate can be applied to all of them. Only tag presence is
checked, never values.
"""
from __future__ import annotations

from typing import Any, Iterator, List, Mapping, Sequence

TAG_FIELDS = ("Tags", "TagSet", "TagList", "ResourceTags", "tags")


def _candidates(resource: Mapping[str, Any]) -> Iterator[Any]:
    for name in TAG_FIELDS:
        value = resource.get(name)
        # {"Tags": {"TagSet": [...]}} wraps the real tag list; an empty
        # wrapped TagSet means untagged, not a tag named "TagSet"
        if name == "Tags" and isinstance(value, Mapping) and "TagSet" in value:
            value = value["TagSet"]
        yield value


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, (Mapping, Sequence)) and not isinstance(value, (str, bytes)):
        return len(value) == 0
    return not value


def extract_tags(resource: Any) -> List[Any]:
    """Return the tag-like values found on *resource*.

    The first candidate field that is present and non-empty wins. Sequences are
    returned as a list, mappings as their keys and anything else as ``[]``.
    """

    if not isinstance(resource, Mapping):
        return []

    for candidate in _candidates(resource):
        if _is_empty(candidate):
            continue
        if isinstance(candidate, Mapping):
            return list(candidate.keys())
        if isinstance(candidate, Sequence) and not isinstance(candidate, (str, bytes)):
            return list(candidate)
        return []
    return []


def has_no_tags(resource: Any) -> bool:
    """Return ``True`` when :func:`extract_tags` finds nothing on *resource*."""

    return not extract_tags(resource)


__all__ = ["TAG_FIELDS", "extract_tags", "has_no_tags"]
