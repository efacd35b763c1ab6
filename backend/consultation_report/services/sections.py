# backend/consultation_report/services/sections.py

from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from pydantic import BaseModel, ConfigDict, model_validator

from consultation_report.models.consultation import ConsultationItem, SectionId, parse_section_id
from consultation_report.models.report import ReportSection


def _item_text(section_id: SectionId, item: ConsultationItem) -> str:
    if section_id is SectionId.PRESCRIPTIONS:
        parts = [item.text, item.dosage, item.duration]
        return " - ".join(part.strip() for part in parts if part and part.strip())
    return item.text


def build_sections(items_by_category: Optional[Mapping[Any, Iterable[ConsultationItem]]]) -> List[ReportSection]:
    """
    Build one ReportSection per category, in canonical order.

    Categories missing from ``items_by_category`` produce empty sections and
    unknown keys are ignored. Nothing is filtered here: visibility and
    ordering are applied by the report assembler.
    """
    grouped: Dict[SectionId, List[ConsultationItem]] = {}
    for key, items in (items_by_category or {}).items():
        section_id = parse_section_id(key)
        if section_id is None:
            continue
        grouped.setdefault(section_id, []).extend(items or [])

    return [
        ReportSection(
            id=section_id,
            title=section_id.label,
            items=tuple(_item_text(section_id, item) for item in grouped.get(section_id, [])),
        )
        for section_id in SectionId
    ]


class SectionPreference(BaseModel):
    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    order: int


class SectionConfig(BaseModel):
    """
    Per-section visibility and position chosen by the doctor.

    The key set is always exactly SectionId; every change returns a new
    config with the same keys.
    """

    model_config = ConfigDict(frozen=True)

    entries: Dict[SectionId, SectionPreference]

    @model_validator(mode="after")
    def _covers_every_section(self) -> "SectionConfig":
        if set(self.entries) != set(SectionId):
            missing = sorted(s.value for s in set(SectionId) - set(self.entries))
            raise ValueError(f"Section config must cover every section, missing: {missing}")
        return self

    # ── construction ──────────────────────────────────────────────────────────

    @classmethod
    def build(cls, ordered: Sequence[SectionId], enabled: Mapping[SectionId, bool]) -> "SectionConfig":
        remaining = [s for s in SectionId if s not in ordered]
        return cls(entries={
            section_id: SectionPreference(enabled=enabled.get(section_id, True), order=position)
            for position, section_id in enumerate(list(ordered) + remaining)
        })

    @classmethod
    def default(cls) -> "SectionConfig":
        return cls.build(list(SectionId), {})

    @classmethod
    def from_settings(cls, raw: Optional[Mapping[str, Any]]) -> "SectionConfig":
        """
        Read the persisted settings document.

        ``sections_sequence`` gives the order; unknown keys in it are skipped
        and sections it does not mention follow in canonical order. A section
        is disabled only when its own key is explicitly ``False``.
        """
        raw = raw or {}
        sequence = raw.get("sections_sequence")
        if not isinstance(sequence, (list, tuple)):
            sequence = [s.value for s in SectionId]

        ordered: List[SectionId] = []
        for key in sequence:
            section_id = parse_section_id(key)
            if section_id is not None and section_id not in ordered:
                ordered.append(section_id)

        enabled = {s: raw.get(s.value) is not False for s in SectionId}
        return cls.build(ordered, enabled)

    def to_settings(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"sections_sequence": [s.value for s in self.ordered_ids()]}
        for section_id, pref in self.entries.items():
            payload[section_id.value] = pref.enabled
        return payload

    # ── queries ───────────────────────────────────────────────────────────────

    def ordered_ids(self) -> List[SectionId]:
        return sorted(self.entries, key=lambda s: self.entries[s].order)

    def enabled_ids(self) -> List[SectionId]:
        return [s for s in self.ordered_ids() if self.entries[s].enabled]

    def is_enabled(self, section_id: SectionId) -> bool:
        return self.entries[section_id].enabled

    # ── changes ───────────────────────────────────────────────────────────────

    def _flags(self) -> Dict[SectionId, bool]:
        return {s: pref.enabled for s, pref in self.entries.items()}

    @staticmethod
    def _resolve(key: Any) -> SectionId:
        section_id = parse_section_id(key)
        if section_id is None:
            raise ValueError(f"Unknown section: {key!r}")
        return section_id

    def set_enabled(self, section_id: SectionId, enabled: bool) -> "SectionConfig":
        flags = self._flags()
        flags[self._resolve(section_id)] = enabled
        return self.build(self.ordered_ids(), flags)

    def toggle(self, section_id: SectionId) -> "SectionConfig":
        section_id = self._resolve(section_id)
        return self.set_enabled(section_id, not self.is_enabled(section_id))

    def move(self, section_id: SectionId, position: int) -> "SectionConfig":
        section_id = self._resolve(section_id)
        ordered = [s for s in self.ordered_ids() if s is not section_id]
        position = max(0, min(position, len(ordered)))
        ordered.insert(position, section_id)
        return self.build(ordered, self._flags())

    def reorder(self, section_ids: Iterable[Any]) -> "SectionConfig":
        """Put ``section_ids`` first, in the given order; the rest keep their relative order."""
        ordered: List[SectionId] = []
        for key in section_ids:
            section_id = self._resolve(key)
            if section_id not in ordered:
                ordered.append(section_id)
        ordered.extend(s for s in self.ordered_ids() if s not in ordered)
        return self.build(ordered, self._flags())
