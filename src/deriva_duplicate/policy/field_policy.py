"""Declarative field-inclusion policy for record duplication.

A :class:`CloneSpec` describes, for one record type, which fields of an original
record are copied onto its clone. The policy is a table of :class:`FieldRule`
entries rather than runtime introspection of the record type, so the exclusion
rules for a type can be read, audited, and tested on their own.

Resolution order for every field of the original record:

1. Identity fields are always dropped.
2. Read-only fields, and fields outside ``writable_fields`` when that set is given, are dropped.
3. Fields on the allow-list are copied when non-null. The allow-list carries context
   references (customer, owner, currency, price list...) that keep the clone valid in
   the same business context even though their names look like identity fields.
4. The first rule matching the field name decides.
5. Otherwise the field is copied when non-null.

After field selection the spec's transform runs, e.g. prefixing the display name so
that users can tell the duplicate from the original.

Example:
    >>> spec = CloneSpec(
    ...     entity="opportunity",
    ...     identity_fields=["opportunityid"],
    ...     allow_list=["customerid", "ownerid"],
    ...     rules=standard_rules(),
    ...     transform=NamePrefix(field="name"),
    ... )
    >>> clone = FieldPolicy().apply(original, spec)
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Iterable, Literal

from pydantic import BaseModel, Field

from deriva_duplicate.core.constants import AUDIT_PREFIXES, CLONE_PREFIX, SYSTEM_STATUS_FIELDS, DerivaSystemColumns
from deriva_duplicate.core.logging_config import LoggerMixin
from deriva_duplicate.core.records import Record
from deriva_duplicate.core.validation import STRICT_VALIDATION_CONFIG


class FieldAction(str, Enum):
    """What happens to a field matched by a rule."""

    exclude = "exclude"
    include = "include"
    include_if_non_null = "include_if_non_null"


class FieldRule(BaseModel):
    """Maps a field-name pattern to a :class:`FieldAction`.

    Attributes:
        pattern: Exact name, prefix, or suffix to match.
        match: How ``pattern`` is compared to the field name.
        action: Fate of a matching field.
        case_sensitive: Compare names exactly rather than case-folded.
    """

    model_config = STRICT_VALIDATION_CONFIG

    pattern: str
    match: Literal["exact", "prefix", "suffix"] = "exact"
    action: FieldAction = FieldAction.exclude
    case_sensitive: bool = False

    def matches(self, name: str) -> bool:
        pattern, candidate = (self.pattern, name) if self.case_sensitive else (self.pattern.lower(), name.lower())
        if self.match == "prefix":
            return candidate.startswith(pattern)
        if self.match == "suffix":
            return candidate.endswith(pattern)
        return candidate == pattern


class NamePrefix(BaseModel):
    """Post-processing transform that prefixes a display-name field."""

    model_config = STRICT_VALIDATION_CONFIG

    field: str = "name"
    prefix: str = CLONE_PREFIX

    def __call__(self, original: Record, clone: Record) -> None:
        # A missing original name still yields the bare prefix.
        clone[self.field] = f"{self.prefix}{original.get(self.field) or ''}"


def _listed(name: str, fields: list[str]) -> bool:
    return name.lower() in {f.lower() for f in fields}


class CloneSpec(BaseModel):
    """Field policy for one record type.

    Attributes:
        entity: Record type the spec applies to.
        identity_fields: Fields holding the record identity. Always excluded.
        allow_list: Fields copied (when non-null) even if a rule would exclude them.
        rules: Ordered rules, first match wins.
        read_only_fields: Fields the store computes and never accepts on create.
        writable_fields: If given, only these fields are candidates for copying.
        transform: Post-processing applied to the clone.
    """

    model_config = STRICT_VALIDATION_CONFIG

    entity: str
    identity_fields: list[str] = Field(default_factory=list)
    allow_list: list[str] = Field(default_factory=list)
    rules: list[FieldRule] = Field(default_factory=list)
    read_only_fields: list[str] = Field(default_factory=list)
    writable_fields: list[str] | None = None
    transform: NamePrefix | None = None

    def is_allowed(self, name: str) -> bool:
        return _listed(name, self.allow_list)

    def decide(self, name: str) -> FieldAction:
        """Return the action for field ``name`` following the resolution order.

        Field lists are matched case-insensitively.
        """
        if _listed(name, self.identity_fields) or _listed(name, self.read_only_fields):
            return FieldAction.exclude
        if self.writable_fields is not None and not _listed(name, self.writable_fields):
            return FieldAction.exclude
        if self.is_allowed(name):
            return FieldAction.include_if_non_null
        for rule in self.rules:
            if rule.matches(name):
                return rule.action
        return FieldAction.include_if_non_null


def standard_rules(
    identity_suffix: str = "id",
    audit_prefixes: Iterable[str] = AUDIT_PREFIXES,
    system_fields: Iterable[str] = SYSTEM_STATUS_FIELDS,
) -> list[FieldRule]:
    """Default rules for business records.

    Drops fields whose names denote an identity (``...id``), created/modified audit
    metadata, and lifecycle status bookkeeping so the clone starts in its default
    initial status.

    Args:
        identity_suffix: Suffix that marks identity and foreign key fields.
        audit_prefixes: Prefixes of audit metadata fields.
        system_fields: Names of status bookkeeping fields.

    Returns:
        list[FieldRule]: Rules in evaluation order.
    """
    rules = [FieldRule(pattern=f, match="exact") for f in system_fields]
    rules += [FieldRule(pattern=p, match="prefix") for p in audit_prefixes]
    rules.append(FieldRule(pattern=identity_suffix, match="suffix"))
    return rules


def deriva_system_rules() -> list[FieldRule]:
    """Rules dropping the ERMrest system columns (RID, RCT, RMT, RCB, RMB)."""
    return [FieldRule(pattern=c, match="exact", case_sensitive=True) for c in DerivaSystemColumns]


class FieldPolicy(LoggerMixin):
    """Applies a :class:`CloneSpec` to an original record."""

    def select(self, original: Record, spec: CloneSpec) -> dict[str, Any]:
        """Return the fields of ``original`` that ``spec`` copies, without the transform."""
        selected = {}
        for name, value in original.fields.items():
            action = spec.decide(name)
            if action == FieldAction.exclude:
                continue
            if action == FieldAction.include_if_non_null and value is None:
                continue
            selected[name] = value
        return selected

    def apply(self, original: Record, spec: CloneSpec) -> Record:
        """Build the unsaved clone of ``original``.

        The clone has no identity and holds only the copied fields. A clone with no
        copied fields is valid.

        Args:
            original: Full image of the record being duplicated.
            spec: Field policy for the record's type.

        Returns:
            Record: Unsaved clone.
        """
        clone = Record(type=original.type, fields=self.select(original, spec))
        if spec.transform is not None:
            spec.transform(original, clone)
        self._logger.debug(
            "Selected %d of %d fields of %s %s", len(clone.fields), len(original.fields), original.type, original.id
        )
        return clone
