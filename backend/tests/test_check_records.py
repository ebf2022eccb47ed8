"""
Tests for check-record logging.

Covers:
  - Classification per check kind
  - Corrective-action gate on save
  - Duplicate guard (pre-check and unique constraint)
  - Shift and history queries
"""

from datetime import date

import pytest
from sqlalchemy import func, select

from compliance.configuration import add_equipment_instance
from compliance.errors import DuplicateError, ValidationError
from compliance.records import CheckSubmission, list_check_history, list_check_records, log_check
from core.identity import IdentityContext
from db.models import CheckRecord

DAY = date(2024, 1, 1)


async def _record_count(db):
    return (await db.execute(select(func.count()).select_from(CheckRecord))).scalar_one()


@pytest.fixture
async def fridge(test_db, org_id):
    instance = await add_equipment_instance(test_db, org_id, name="Fridge 1", equipment_class="fridge", shift="AM")
    await test_db.commit()
    return instance


# ── Classification ─────────────────────────────────────────────────────


class TestClassification:
    @pytest.mark.asyncio
    async def test_fridge_reading_passes(self, test_db, identity, ruleset, fridge):
        record = await log_check(
            test_db,
            identity,
            CheckSubmission("fridge", DAY, "AM", measurement=3.5, equipment_instance_id=fridge.equipment_id),
            ruleset,
        )
        assert record.status == "pass"
        assert record.subject_key == str(fridge.equipment_id)
        assert record.logged_by == "auth0|chef-1"
        assert record.logged_by_name == "Sam Rivera"

    @pytest.mark.asyncio
    async def test_instance_override_applies(self, test_db, org_id, identity, ruleset):
        """Override without warn bounds: just outside pass is a fail."""
        instance = await add_equipment_instance(
            test_db,
            org_id,
            name="Dessert Fridge",
            equipment_class="fridge",
            shift="PM",
            custom_pass_min=1,
            custom_pass_max=4,
        )
        await test_db.commit()

        submission = CheckSubmission("fridge", DAY, "PM", measurement=4.5, equipment_instance_id=instance.equipment_id)
        with pytest.raises(ValidationError) as exc:
            await log_check(test_db, identity, submission, ruleset)
        assert exc.value.field == "corrective_action"

    @pytest.mark.asyncio
    async def test_cooking_temperature(self, test_db, identity, ruleset):
        cooked = await log_check(test_db, identity, CheckSubmission("cooking", DAY, "AM", measurement=80), ruleset)
        reheated = await log_check(test_db, identity, CheckSubmission("reheating", DAY, "AM", measurement=70), ruleset)
        assert cooked.status == "pass"
        assert reheated.status == "warning"

    @pytest.mark.asyncio
    async def test_receiving_uses_category_range(self, test_db, identity, ruleset):
        submission = CheckSubmission(
            "receiving", DAY, "AM", measurement=7, receiving_category="dairy", corrective_action="Rejected delivery"
        )
        record = await log_check(test_db, identity, submission, ruleset)
        assert record.status == "fail"
        assert record.corrective_action == "Rejected delivery"

    @pytest.mark.asyncio
    async def test_receiving_dry_goods_is_visual(self, test_db, identity, ruleset):
        submission = CheckSubmission("receiving", DAY, "PM", passed=True, receiving_category="dry_goods")
        record = await log_check(test_db, identity, submission, ruleset)
        assert record.status == "pass"
        assert record.measurement is None

    @pytest.mark.asyncio
    async def test_visual_check_needs_result(self, test_db, identity, ruleset):
        with pytest.raises(ValidationError) as exc:
            await log_check(test_db, identity, CheckSubmission("staff_health", DAY, "AM"), ruleset)
        assert exc.value.field == "passed"

    @pytest.mark.asyncio
    async def test_equipment_check_needs_instance(self, test_db, identity, ruleset):
        with pytest.raises(ValidationError) as exc:
            await log_check(test_db, identity, CheckSubmission("fridge", DAY, "AM", measurement=3), ruleset)
        assert exc.value.field == "equipment_instance_id"

    @pytest.mark.asyncio
    async def test_instance_shift_must_match(self, test_db, identity, ruleset, fridge):
        submission = CheckSubmission("fridge", DAY, "PM", measurement=3, equipment_instance_id=fridge.equipment_id)
        with pytest.raises(ValidationError) as exc:
            await log_check(test_db, identity, submission, ruleset)
        assert exc.value.field == "shift"

    @pytest.mark.asyncio
    async def test_instance_class_must_match(self, test_db, identity, ruleset, fridge):
        submission = CheckSubmission("freezer", DAY, "AM", measurement=-20, equipment_instance_id=fridge.equipment_id)
        with pytest.raises(ValidationError):
            await log_check(test_db, identity, submission, ruleset)

    @pytest.mark.asyncio
    async def test_instance_only_on_equipment_checks(self, test_db, org_id, identity, ruleset, fridge):
        second = await add_equipment_instance(test_db, org_id, name="Fridge 2", equipment_class="fridge", shift="AM")
        await test_db.commit()

        for instance in (fridge, second):
            submission = CheckSubmission(
                "cooking", DAY, "AM", measurement=80, equipment_instance_id=instance.equipment_id
            )
            with pytest.raises(ValidationError) as exc:
                await log_check(test_db, identity, submission, ruleset)
            assert exc.value.field == "equipment_instance_id"

        pest = CheckSubmission("pest", DAY, "AM", passed=True, equipment_instance_id=fridge.equipment_id)
        with pytest.raises(ValidationError):
            await log_check(test_db, identity, pest, ruleset)
        assert await _record_count(test_db) == 0

    @pytest.mark.asyncio
    async def test_category_only_on_receiving(self, test_db, identity, ruleset):
        submission = CheckSubmission("pest", DAY, "AM", passed=True, receiving_category="meat")
        with pytest.raises(ValidationError) as exc:
            await log_check(test_db, identity, submission, ruleset)
        assert exc.value.field == "receiving_category"

    @pytest.mark.asyncio
    async def test_unknown_check(self, test_db, identity, ruleset):
        with pytest.raises(ValidationError) as exc:
            await log_check(test_db, identity, CheckSubmission("walk_in", DAY, "AM", passed=True), ruleset)
        assert exc.value.field == "check_key"


# ── Corrective-Action Gate ─────────────────────────────────────────────


class TestCorrectiveAction:
    @pytest.mark.asyncio
    async def test_fail_without_note_is_not_saved(self, test_db, identity, ruleset, fridge):
        submission = CheckSubmission("fridge", DAY, "AM", measurement=12, equipment_instance_id=fridge.equipment_id)
        with pytest.raises(ValidationError):
            await log_check(test_db, identity, submission, ruleset)
        assert await _record_count(test_db) == 0

    @pytest.mark.asyncio
    async def test_fail_with_note_is_saved(self, test_db, identity, ruleset, fridge):
        submission = CheckSubmission(
            "fridge",
            DAY,
            "AM",
            measurement=12,
            equipment_instance_id=fridge.equipment_id,
            corrective_action="Moved stock, called technician",
        )
        record = await log_check(test_db, identity, submission, ruleset)
        assert record.status == "fail"
        assert record.corrective_action == "Moved stock, called technician"

    @pytest.mark.asyncio
    async def test_warning_without_note_is_saved(self, test_db, identity, ruleset, fridge):
        submission = CheckSubmission("fridge", DAY, "AM", measurement=6.5, equipment_instance_id=fridge.equipment_id)
        record = await log_check(test_db, identity, submission, ruleset)
        assert record.status == "warning"
        assert record.corrective_action is None


# ── Duplicate Guard ────────────────────────────────────────────────────


class TestDuplicateGuard:
    @pytest.mark.asyncio
    async def test_second_fridge_reading_rejected(self, test_db, identity, ruleset, fridge):
        submission = CheckSubmission("fridge", DAY, "AM", measurement=3, equipment_instance_id=fridge.equipment_id)
        await log_check(test_db, identity, submission, ruleset)

        with pytest.raises(DuplicateError) as exc:
            await log_check(test_db, identity, submission, ruleset)
        assert exc.value.check_key == "fridge"
        assert exc.value.shift == "AM"
        assert str(exc.value) == "Fridge 1 has already been logged for this AM shift"
        assert await _record_count(test_db) == 1

    @pytest.mark.asyncio
    async def test_duplicate_is_not_a_validation_error(self, test_db, identity, ruleset):
        await log_check(test_db, identity, CheckSubmission("staff_health", DAY, "AM", passed=True), ruleset)
        retry = CheckSubmission("staff_health", DAY, "AM", passed=False, corrective_action="Sent home")
        with pytest.raises(DuplicateError) as exc:
            await log_check(test_db, identity, retry, ruleset)
        assert not isinstance(exc.value, ValidationError)
        assert str(exc.value) == "Staff Health has already been logged for this AM shift"

    @pytest.mark.asyncio
    async def test_duplicate_reported_before_missing_note(self, test_db, identity, ruleset, fridge):
        logged = CheckSubmission(
            "fridge",
            DAY,
            "AM",
            measurement=12,
            equipment_instance_id=fridge.equipment_id,
            corrective_action="Moved stock",
        )
        await log_check(test_db, identity, logged, ruleset)

        resubmitted = CheckSubmission("fridge", DAY, "AM", measurement=12, equipment_instance_id=fridge.equipment_id)
        with pytest.raises(DuplicateError):
            await log_check(test_db, identity, resubmitted, ruleset)
        assert await _record_count(test_db) == 1

    @pytest.mark.asyncio
    async def test_other_shift_and_other_instance_allowed(self, test_db, org_id, identity, ruleset, fridge):
        second = await add_equipment_instance(test_db, org_id, name="Fridge 2", equipment_class="fridge", shift="AM")
        await test_db.commit()
        await log_check(test_db, identity, CheckSubmission("handwash", DAY, "AM", passed=True), ruleset)
        await log_check(test_db, identity, CheckSubmission("handwash", DAY, "PM", passed=True), ruleset)
        for instance in (fridge, second):
            await log_check(
                test_db,
                identity,
                CheckSubmission("fridge", DAY, "AM", measurement=2, equipment_instance_id=instance.equipment_id),
                ruleset,
            )
        assert await _record_count(test_db) == 4

    @pytest.mark.asyncio
    async def test_unique_constraint_catches_race(self, test_db, session_factory, identity, ruleset, monkeypatch):
        """A submission that slips past the pre-check still hits the constraint."""
        async with session_factory() as other:
            await log_check(other, identity, CheckSubmission("pest", DAY, "AM", passed=True), ruleset)

        async def _stale_lookup(*args, **kwargs):
            return None

        monkeypatch.setattr("compliance.records.find_existing_record", _stale_lookup)
        with pytest.raises(DuplicateError):
            await log_check(test_db, identity, CheckSubmission("pest", DAY, "AM", passed=True), ruleset)
        assert await _record_count(test_db) == 1


# ── Queries ────────────────────────────────────────────────────────────


class TestQueries:
    @pytest.mark.asyncio
    async def test_list_by_shift(self, test_db, org_id, identity, ruleset):
        await log_check(test_db, identity, CheckSubmission("pest", DAY, "AM", passed=True), ruleset)
        await log_check(test_db, identity, CheckSubmission("pest", DAY, "PM", passed=True), ruleset)
        await log_check(test_db, identity, CheckSubmission("sanitiser", DAY, "AM", passed=True), ruleset)

        am = await list_check_records(test_db, org_id, DAY, "AM")
        assert sorted(r.check_key for r in am) == ["pest", "sanitiser"]

    @pytest.mark.asyncio
    async def test_history_filters_and_order(self, test_db, org_id, identity, ruleset):
        other_cook = IdentityContext(org_id=org_id, user_id="auth0|chef-2", display_name="Alex Chen")
        await log_check(test_db, identity, CheckSubmission("pest", date(2024, 1, 1), "AM", passed=True), ruleset)
        await log_check(test_db, identity, CheckSubmission("pest", date(2024, 1, 2), "AM", passed=True), ruleset)
        await log_check(test_db, other_cook, CheckSubmission("pest", date(2024, 1, 3), "AM", passed=True), ruleset)
        await log_check(test_db, identity, CheckSubmission("haccp", date(2024, 1, 3), "AM", passed=True), ruleset)

        history = await list_check_history(test_db, org_id, check_key="pest")
        assert [r.log_date.day for r in history] == [3, 2, 1]

        ranged = await list_check_history(test_db, org_id, date_from=date(2024, 1, 2), date_to=date(2024, 1, 2))
        assert [r.log_date.day for r in ranged] == [2]

        by_name = await list_check_history(test_db, org_id, logged_by_name="chen")
        assert [r.logged_by_name for r in by_name] == ["Alex Chen"]

        limited = await list_check_history(test_db, org_id, limit=2)
        assert len(limited) == 2
