"""Tests for the shared category / field tables and request models."""

import pytest
from pydantic import ValidationError

from schemas import (
    CATEGORY_OF_FIELD,
    FIELDS_BY_CATEGORY,
    SkillCategory,
    SpecializedField,
    VolunteerAssignmentPatch,
    field_belongs_to,
)


class TestFieldTable:
    def test_every_field_has_exactly_one_category(self) -> None:
        grouped = [f for fields in FIELDS_BY_CATEGORY.values() for f in fields]
        assert len(grouped) == len(SpecializedField) == 24
        assert set(grouped) == set(SpecializedField)
        assert set(CATEGORY_OF_FIELD) == set(SpecializedField)

    def test_every_category_has_four_fields(self) -> None:
        assert set(FIELDS_BY_CATEGORY) == set(SkillCategory)
        assert all(len(fields) == 4 for fields in FIELDS_BY_CATEGORY.values())

    @pytest.mark.parametrize("field,category,expected", [
        (SpecializedField.WIRING_REPAIR, SkillCategory.ELECTRICAL, True),
        (SpecializedField.WATER_SUPPLY, SkillCategory.PLUMBING, True),
        (SpecializedField.WATER_SUPPLY, SkillCategory.ROAD_REPAIR, False),
        (SpecializedField.CABINET_WORK, SkillCategory.CARPENTRY, True),
        (SpecializedField.WASTE_DISPOSAL, SkillCategory.CONSTRUCTION, False),
    ])
    def test_field_belongs_to(self, field, category, expected) -> None:
        assert field_belongs_to(field, category) is expected


class TestAssignmentPatch:
    def test_only_supplied_fields_are_set(self) -> None:
        patch = VolunteerAssignmentPatch(subVolunteersCount=2)
        assert patch.model_dump(exclude_unset=True) == {"subVolunteersCount": 2}

    def test_identifiers_cannot_be_patched(self) -> None:
        with pytest.raises(ValidationError):
            VolunteerAssignmentPatch(issueId="0" * 24)
        with pytest.raises(ValidationError):
            VolunteerAssignmentPatch(updatedAt="2020-01-01")

    def test_negative_count_rejected(self) -> None:
        with pytest.raises(ValidationError):
            VolunteerAssignmentPatch(subVolunteersCount=-1)
