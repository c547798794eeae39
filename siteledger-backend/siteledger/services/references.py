"""Foreign-key resolution for weakly typed backend records.

A reference field on a raw record may hold a bare identifier, a populated
object carrying its own identifier and name, or nothing. ``as_reference``
turns that into an explicit ``IdReference`` / ``EmbeddedReference`` and
``resolve_reference`` is the one place that produces ``(id, name)`` for it.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, NamedTuple, Optional

from ..models import DataQualityIssue, EmbeddedReference, IdReference, Reference

PROJECT = "Project"
MATERIAL = "Material"
MANPOWER = "Manpower"
CLIENT = "Client"

ID_FIELDS = ("_id", "id")
NAME_FIELDS = ("name", "projectName", "materialNames", "materialName", "clientName", "manpowerName", "title")


class ResolvedReference(NamedTuple):
    id: Optional[str]
    name: str
    matched: bool


def unknown_label(entity: str) -> str:
    return f"Unknown {entity}"


def _identifier_text(value: Any) -> Optional[str]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, dict):
        # Extended JSON ObjectId
        return _identifier_text(value.get("$oid"))
    text = str(value).strip()
    return text or None


def record_identifier(raw: Dict[str, Any]) -> Optional[str]:
    for key in ID_FIELDS:
        ident = _identifier_text(raw.get(key))
        if ident:
            return ident
    return None


def _embedded_name(value: Dict[str, Any]) -> Optional[str]:
    for key in NAME_FIELDS:
        candidate = value.get(key)
        if isinstance(candidate, (list, tuple)):
            candidate = next((item for item in candidate if isinstance(item, str) and item.strip()), None)
        if isinstance(candidate, str) and candidate.strip():
            return candidate.strip()
    return None


def as_reference(raw: Any) -> Optional[Reference]:
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, dict):
        if not raw:
            return None
        if set(raw) == {"$oid"}:
            ident = _identifier_text(raw)
            return IdReference(value=ident) if ident else None
        return EmbeddedReference(value=dict(raw))
    if isinstance(raw, (str, int)):
        ident = _identifier_text(raw)
        return IdReference(value=ident) if ident else None
    return None


def reference_id(ref: Optional[Reference]) -> Optional[str]:
    if ref is None:
        return None
    if isinstance(ref, IdReference):
        return ref.value
    return record_identifier(ref.value)


class LookupIndex:
    """Identifier -> record map for one collection, built once per run."""

    def __init__(self, entity: str, records: Dict[str, Any]):
        self.entity = entity
        self._records = records

    @classmethod
    def build(cls, entity: str, records: Iterable[Any]) -> "LookupIndex":
        by_id: Dict[str, Any] = {}
        for record in records:
            record_id = getattr(record, "id", None)
            if record_id and record_id not in by_id:
                by_id[record_id] = record
        return cls(entity, by_id)

    def get(self, record_id: Optional[str]) -> Optional[Any]:
        if record_id is None:
            return None
        return self._records.get(record_id)

    def name_for(self, record_id: Optional[str]) -> Optional[str]:
        record = self.get(record_id)
        if record is None:
            return None
        return getattr(record, "display_name", None)

    def __contains__(self, record_id: object) -> bool:
        return record_id in self._records

    def __len__(self) -> int:
        return len(self._records)


def resolve_reference(
    ref: Optional[Reference],
    index: LookupIndex,
    *,
    fallback_name: Optional[str] = None,
) -> ResolvedReference:
    """Return ``(id, name, matched)`` for a reference.

    Embedded objects supply their own name; bare identifiers are looked up in
    ``index``. A miss keeps the identifier and labels the name
    ``"Unknown <Entity>"`` (or ``fallback_name`` when the record carried a
    denormalized copy), with ``matched`` False.
    """
    ref_id = reference_id(ref)
    if isinstance(ref, EmbeddedReference):
        name = _embedded_name(ref.value)
        if name:
            return ResolvedReference(ref_id, name, True)

    indexed_name = index.name_for(ref_id)
    if indexed_name:
        return ResolvedReference(ref_id, indexed_name, True)

    return ResolvedReference(ref_id, fallback_name or unknown_label(index.entity), False)


def unresolved_issue(entity: str, record_id: Optional[str], field: str, ref_id: Optional[str]) -> DataQualityIssue:
    if ref_id is None:
        message = f"{entity} reference is missing"
    else:
        message = f"{entity} {ref_id} not found"
    return DataQualityIssue(
        kind="unresolved_reference",
        entity=entity,
        record_id=record_id,
        field=field,
        message=message,
    )
