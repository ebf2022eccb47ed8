import pytest

from compliance.configuration import (
    add_equipment_instance,
    bulk_set_section_toggles,
    deactivate_equipment,
    get_section_toggles,
    list_equipment_instances,
    seed_default_equipment,
    set_section_toggle,
    set_threshold_override,
)
from compliance.errors import ValidationError
from compliance.thresholds import DEFAULT_THRESHOLDS, EquipmentClass, ThresholdSpec, resolve_threshold
from db.models import Organization


class TestEquipment:
    @pytest.mark.asyncio
    async def test_seed_defaults_once(self, test_db, org_id):
        assert await seed_default_equipment(test_db, org_id) == 16
        assert await seed_default_equipment(test_db, org_id) == 0

        am = await list_equipment_instances(test_db, org_id, "AM")
        assert [i.name for i in am] == [
            "Fridge 1",
            "Fridge 2",
            "Fridge 3",
            "Fridge 4",
            "Freezer 1",
            "Freezer 2",
            "Hot Hold 1",
            "Hot Hold 2",
        ]
        assert len(await list_equipment_instances(test_db, org_id)) == 16

    @pytest.mark.asyncio
    async def test_add_validates_input(self, test_db, org_id):
        with pytest.raises(ValidationError) as exc:
            await add_equipment_instance(test_db, org_id, name=" ", equipment_class="fridge", shift="AM")
        assert exc.value.field == "name"

        with pytest.raises(ValidationError) as exc:
            await add_equipment_instance(test_db, org_id, name="Milk", equipment_class="dairy", shift="AM")
        assert exc.value.field == "equipment_class"

        with pytest.raises(ValidationError) as exc:
            await add_equipment_instance(
                test_db, org_id, name="Bad", equipment_class="fridge", shift="AM", custom_pass_min=5, custom_pass_max=1
            )
        assert exc.value.field == "custom_thresholds"

    @pytest.mark.asyncio
    async def test_override_replaced_and_cleared(self, test_db, org_id):
        instance = await add_equipment_instance(test_db, org_id, name="Wine", equipment_class="fridge", shift="PM")

        await set_threshold_override(test_db, org_id, instance.equipment_id, pass_min=8, pass_max=12, warn_max=14)
        assert resolve_threshold(instance, instance.equipment_class) == ThresholdSpec(8, 12, 8, 14)

        await set_threshold_override(test_db, org_id, instance.equipment_id, pass_min=None, pass_max=None, warn_max=14)
        assert instance.custom_warn_max is None
        assert resolve_threshold(instance, instance.equipment_class) == DEFAULT_THRESHOLDS[EquipmentClass.FRIDGE]

    @pytest.mark.asyncio
    async def test_override_needs_both_pass_bounds(self, test_db, org_id):
        instance = await add_equipment_instance(test_db, org_id, name="Wine", equipment_class="fridge", shift="PM")
        with pytest.raises(ValidationError):
            await set_threshold_override(test_db, org_id, instance.equipment_id, pass_min=8, pass_max=None)

    @pytest.mark.asyncio
    async def test_deactivated_equipment_is_hidden(self, test_db, org_id):
        instance = await add_equipment_instance(test_db, org_id, name="Old", equipment_class="freezer", shift="AM")
        await deactivate_equipment(test_db, org_id, instance.equipment_id)
        assert await list_equipment_instances(test_db, org_id) == []

    @pytest.mark.asyncio
    async def test_other_org_equipment_cannot_be_edited(self, test_db, org_id):
        other = Organization(name="Quayside Bistro")
        test_db.add(other)
        await test_db.flush()
        theirs = await add_equipment_instance(
            test_db, other.org_id, name="Their Fridge", equipment_class="fridge", shift="AM"
        )

        with pytest.raises(ValidationError) as exc:
            await set_threshold_override(test_db, org_id, theirs.equipment_id, pass_min=-100, pass_max=100)
        assert exc.value.field == "equipment_id"

        with pytest.raises(ValidationError):
            await deactivate_equipment(test_db, org_id, theirs.equipment_id)

        assert theirs.custom_pass_max is None
        assert theirs.is_active is True


class TestSectionToggles:
    @pytest.mark.asyncio
    async def test_defaults_when_nothing_saved(self, test_db, org_id, ruleset):
        toggles = await get_section_toggles(test_db, org_id, ruleset)
        assert toggles["fridge_temps"] is True
        assert toggles["display_monitoring"] is False

        home = await get_section_toggles(test_db, org_id, ruleset, home_cook=True)
        assert home["haccp"] is False

    @pytest.mark.asyncio
    async def test_saved_toggles_overlay_defaults(self, test_db, org_id, ruleset):
        await set_section_toggle(test_db, org_id, "display_monitoring", True, ruleset)
        await bulk_set_section_toggles(test_db, org_id, {"pest_check": False, "display_monitoring": False}, ruleset)
        await set_section_toggle(test_db, org_id, "display_monitoring", True, ruleset)

        toggles = await get_section_toggles(test_db, org_id, ruleset)
        assert toggles["display_monitoring"] is True
        assert toggles["pest_check"] is False
        assert toggles["fridge_temps"] is True

    @pytest.mark.asyncio
    async def test_unknown_section_rejected(self, test_db, org_id, ruleset):
        with pytest.raises(ValidationError) as exc:
            await bulk_set_section_toggles(test_db, org_id, {"walk_in_temps": True}, ruleset)
        assert exc.value.field == "section_key"
