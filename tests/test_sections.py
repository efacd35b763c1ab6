"""
Tests for section building and the section visibility/order config.
"""
import pytest
from pydantic import ValidationError

from consultation_report.models.consultation import ConsultationItem, SectionId
from consultation_report.services.sections import SectionConfig, SectionPreference, build_sections


def items(*texts):
    return [ConsultationItem(id=f"item-{i}", text=text) for i, text in enumerate(texts)]


class TestBuildSections:
    def test_one_section_per_category_in_canonical_order(self):
        sections = build_sections({
            "notes": items("Review in two weeks"),
            "prescriptions": items("Doxycycline"),
        })

        assert [s.id for s in sections] == list(SectionId)
        by_id = {s.id: s for s in sections}
        assert by_id[SectionId.PRESCRIPTIONS].items == ("Doxycycline",)
        assert by_id[SectionId.NOTES].items == ("Review in two weeks",)
        for section_id in SectionId:
            if section_id not in (SectionId.PRESCRIPTIONS, SectionId.NOTES):
                assert by_id[section_id].items == ()

    def test_no_input_gives_all_empty_sections(self):
        sections = build_sections(None)
        assert len(sections) == len(SectionId)
        assert all(s.is_empty for s in sections)

    def test_titles(self):
        titles = {s.id: s.title for s in build_sections({})}
        assert titles[SectionId.PROCEDURE] == "Procedures"
        assert titles[SectionId.INSTRUCTION] == "Instructions"

    def test_item_order_is_kept(self):
        sections = build_sections({SectionId.COMPLAINTS: items("Itching", "Rash", "Fever")})
        assert sections[0].items == ("Itching", "Rash", "Fever")

    def test_plural_aliases_are_accepted(self):
        sections = build_sections({"diagnoses": items("Acne vulgaris"), "instructions": items("Avoid sun")})
        by_id = {s.id: s for s in sections}
        assert by_id[SectionId.DIAGNOSIS].items == ("Acne vulgaris",)
        assert by_id[SectionId.INSTRUCTION].items == ("Avoid sun",)

    def test_unknown_categories_are_ignored(self):
        sections = build_sections({"vitals": items("BP 120/80")})
        assert [s.id for s in sections] == list(SectionId)
        assert all(s.is_empty for s in sections)

    def test_prescription_text_includes_dosage_and_duration(self):
        rx = [
            ConsultationItem(id="1", text="Doxycycline", dosage="100 mg", duration="15 Days"),
            ConsultationItem(id="2", text="Sunscreen", dosage="  "),
        ]
        by_id = {s.id: s for s in build_sections({"prescriptions": rx})}
        assert by_id[SectionId.PRESCRIPTIONS].items == ("Doxycycline - 100 mg - 15 Days", "Sunscreen")

    def test_dosage_ignored_outside_prescriptions(self):
        sections = build_sections({"notes": [ConsultationItem(id="1", text="Note", dosage="x")]})
        assert sections[-1].items == ("Note",)


class TestSectionConfig:
    def test_default_covers_every_section_enabled(self):
        config = SectionConfig.default()
        assert config.ordered_ids() == list(SectionId)
        assert config.enabled_ids() == list(SectionId)

    def test_missing_keys_are_rejected(self):
        with pytest.raises(ValidationError):
            SectionConfig(entries={SectionId.NOTES: SectionPreference(order=0)})

    def test_toggle_flips_only_the_flag(self):
        config = SectionConfig.default().toggle(SectionId.EXAMINATION)
        assert not config.is_enabled(SectionId.EXAMINATION)
        assert set(config.entries) == set(SectionId)
        assert config.ordered_ids() == list(SectionId)
        assert config.toggle(SectionId.EXAMINATION).is_enabled(SectionId.EXAMINATION)

    def test_changes_return_new_configs(self):
        original = SectionConfig.default()
        original.toggle("notes")
        original.move("notes", 0)
        assert original == SectionConfig.default()

    def test_move(self):
        config = SectionConfig.default().move(SectionId.NOTES, 0)
        assert config.ordered_ids()[0] is SectionId.NOTES
        assert config.ordered_ids()[1] is SectionId.COMPLAINTS

    def test_move_clamps_position(self):
        config = SectionConfig.default().move(SectionId.COMPLAINTS, 99)
        assert config.ordered_ids()[-1] is SectionId.COMPLAINTS

    def test_reorder_puts_given_ids_first(self):
        config = SectionConfig.default().reorder(["prescriptions", "diagnosis"])
        assert config.ordered_ids()[:3] == [SectionId.PRESCRIPTIONS, SectionId.DIAGNOSIS, SectionId.COMPLAINTS]
        assert set(config.entries) == set(SectionId)

    def test_reorder_rejects_unknown_section(self):
        with pytest.raises(ValueError):
            SectionConfig.default().reorder(["vitals"])

    def test_single_section_changes_accept_plural_aliases(self):
        config = SectionConfig.default()
        assert not config.toggle("diagnoses").is_enabled(SectionId.DIAGNOSIS)
        assert not config.set_enabled("procedures", False).is_enabled(SectionId.PROCEDURE)
        assert config.move("instructions", 0).ordered_ids()[0] is SectionId.INSTRUCTION

    @pytest.mark.parametrize("change", [
        lambda c: c.toggle("vitals"),
        lambda c: c.set_enabled("vitals", False),
        lambda c: c.move("vitals", 0),
    ])
    def test_single_section_changes_reject_unknown_section(self, change):
        with pytest.raises(ValueError, match="Unknown section"):
            change(SectionConfig.default())

    def test_reorder_keeps_flags(self):
        config = SectionConfig.default().toggle("notes").reorder(["notes"])
        assert config.ordered_ids()[0] is SectionId.NOTES
        assert not config.is_enabled(SectionId.NOTES)

    def test_enabled_ids_follow_order(self):
        config = SectionConfig.default().reorder(["notes", "complaints"]).toggle("complaints")
        assert config.enabled_ids()[0] is SectionId.NOTES
        assert SectionId.COMPLAINTS not in config.enabled_ids()


class TestSettingsMapping:
    def test_from_settings_reads_sequence_and_flags(self):
        config = SectionConfig.from_settings({
            "sections_sequence": ["notes", "vitals", "complaints", "notes"],
            "complaints": False,
            "diagnosis": True,
        })
        ordered = config.ordered_ids()
        assert ordered[:2] == [SectionId.NOTES, SectionId.COMPLAINTS]
        assert ordered[2:] == [s for s in SectionId if s not in (SectionId.NOTES, SectionId.COMPLAINTS)]
        assert not config.is_enabled(SectionId.COMPLAINTS)
        assert config.is_enabled(SectionId.DIAGNOSIS)

    def test_missing_flags_fail_open(self):
        config = SectionConfig.from_settings({"examination": None})
        assert config.enabled_ids() == list(SectionId)

    def test_bad_sequence_falls_back_to_canonical(self):
        assert SectionConfig.from_settings({"sections_sequence": "notes"}).ordered_ids() == list(SectionId)

    def test_round_trip_through_settings(self):
        config = SectionConfig.default().reorder(["instruction"]).toggle("procedure")
        payload = config.to_settings()
        assert payload["sections_sequence"][0] == "instruction"
        assert payload["procedure"] is False
        assert SectionConfig.from_settings(payload) == config
