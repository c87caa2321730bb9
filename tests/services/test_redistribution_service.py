"""
Tests for RedistributionService and the snapshot payload helpers.
"""

import json
import logging
from decimal import Decimal

import pytest

from tender_config.schema import EngineSettings, RoundingSettings
from tender_engines.positions import CommercialPosition
from tender_engines.result_rows import ClientPosition
from tender_engines.rule_validation import RuleErrorCode
from tender_kernel.domain import SourceRule, TargetCost
from tender_kernel.exceptions import (
    EmptySnapshotError,
    MissingSnapshotKeyError,
    SnapshotError,
)
from tender_services import (
    NO_ITEMS_ERROR,
    RedistributionService,
    restore_from_records,
    snapshot_records,
)
from tests.factories import CAT_CONCRETE, CAT_FINISHING, DET_PAINT, DET_REBAR

TENDER_ID = "tender-001"
TACTIC_ID = "tactic-standard"


@pytest.fixture
def service(settings):
    return RedistributionService(settings)


@pytest.fixture
def rules():
    return [SourceRule.category(CAT_CONCRETE, 10, category_name="Concrete works")]


@pytest.fixture
def targets():
    return [TargetCost.category(CAT_FINISHING, category_name="Finishing")]


class TestRun:
    def test_valid_run(self, service, items, rules, targets, hierarchy):
        outcome = service.run(items, rules, targets, hierarchy)

        assert outcome.success
        assert outcome.errors == ()
        assert outcome.calculation.total_deducted == Decimal("40")
        assert outcome.calculation.is_balanced

    def test_invalid_rules_are_reported_not_raised(self, service, items, hierarchy):
        outcome = service.run(
            items,
            [SourceRule.detail(DET_REBAR, 120)],
            [TargetCost.detail(DET_REBAR)],
            hierarchy,
        )

        assert not outcome.success
        assert outcome.calculation is None
        assert [e.code for e in outcome.errors] == [RuleErrorCode.PERCENTAGE_TOO_LARGE]

    def test_no_items(self, service, rules, targets, hierarchy):
        outcome = service.run([], rules, targets, hierarchy)

        assert not outcome.success
        assert outcome.errors == (NO_ITEMS_ERROR,)
        assert outcome.errors[0].field == "items"

    def test_balance_tolerance_from_settings(self, items, hierarchy):
        service = RedistributionService(EngineSettings(balance_tolerance=Decimal("100")))

        outcome = service.run(items, [SourceRule.detail(DET_REBAR, 10)], [TargetCost.detail("det-none")], hierarchy)

        assert outcome.calculation.total_added == 0
        assert outcome.calculation.is_balanced

    def test_log_context_bound_during_run(self, service, items, rules, targets, hierarchy, caplog):
        caplog.set_level(logging.INFO, logger="tender_kernel")

        service.run(items, rules, targets, hierarchy, tender_id=TENDER_ID, markup_tactic_id=TACTIC_ID)

        messages = [r.getMessage() for r in caplog.records]
        assert "redistribution_started" in messages

    def test_default_settings_loaded(self):
        assert RedistributionService().settings.rounding.step == Decimal("5")


class TestRounding:
    def test_result_rows_rounded_with_configured_step(self, items, rules, targets, hierarchy):
        service = RedistributionService(EngineSettings(rounding=RoundingSettings(step=Decimal("10"))))
        calc = service.run(items, rules, targets, hierarchy).calculation
        positions = [ClientPosition(id="pos-1", volume=1), ClientPosition(id="pos-3", volume=1)]

        rows = service.build_result_rows(positions, items, calc.results)

        assert [r.rounded_work_unit_price_after for r in rows] == [Decimal("90"), Decimal("840")]

    def test_unrounded_rows(self, service, items, rules, targets, hierarchy):
        calc = service.run(items, rules, targets, hierarchy).calculation
        rows = service.build_result_rows([ClientPosition(id="pos-1")], items, calc.results, rounded=False)
        assert rows[0].rounded_work_unit_price_after is None

    def test_round_positions(self, service):
        rounded = service.round_positions([CommercialPosition(id="a", manual_volume=1, work_cost_total=33)])
        assert rounded[0].rounded_work_unit_price == Decimal("35")


class TestSnapshots:
    def _snapshot(self, service, items, rules, targets, hierarchy):
        calc = service.run(items, rules, targets, hierarchy).calculation
        return service.build_snapshot(TENDER_ID, TACTIC_ID, rules, targets, calc.results), calc

    def test_payload_shape(self, service, items, rules, targets, hierarchy):
        snapshot, _ = self._snapshot(service, items, rules, targets, hierarchy)

        assert snapshot["tender_id"] == TENDER_ID
        assert snapshot["markup_tactic_id"] == TACTIC_ID
        assert snapshot["redistribution_rules"]["deductions"] == [r.to_dict() for r in rules]
        assert snapshot["redistribution_rules"]["targets"] == [t.to_dict() for t in targets]
        assert len(snapshot["results"]) == len(items)

    def test_restore_reproduces_configuration(self, service, items, rules, targets, hierarchy):
        snapshot, calc = self._snapshot(service, items, rules, targets, hierarchy)

        restored = service.restore_snapshot(snapshot)

        assert restored.tender_id == TENDER_ID
        assert restored.rules == tuple(rules)
        assert restored.targets == tuple(targets)
        assert restored.calculation == calc
        assert restored.results == calc.results

    def test_json_text_round_trip(self, service, items, rules, targets, hierarchy):
        snapshot, calc = self._snapshot(service, items, rules, targets, hierarchy)

        text = service.dumps_snapshot(snapshot)
        restored = service.loads_snapshot(text)

        assert json.loads(text)["results"][0]["boq_item_id"] == "i-form"
        assert restored.calculation.total_deducted == calc.total_deducted
        assert restored.rules[0].percentage == Decimal("10")

    def test_records_round_trip(self, service, items, rules, targets, hierarchy):
        snapshot, calc = self._snapshot(service, items, rules, targets, hierarchy)

        records = snapshot_records(snapshot, created_by="estimator-1")
        restored = restore_from_records(records)

        assert len(records) == len(items)
        assert all(r["redistribution_rules"] == snapshot["redistribution_rules"] for r in records)
        assert records[0]["created_by"] == "estimator-1"
        assert restored.calculation == calc
        assert restored.targets == tuple(targets)

    def test_restore_from_no_records(self):
        assert restore_from_records([]) is None

    @pytest.mark.parametrize("tender_id,tactic_id", [("", TACTIC_ID), (TENDER_ID, None)])
    def test_missing_keys(self, service, rules, targets, tender_id, tactic_id):
        with pytest.raises(MissingSnapshotKeyError):
            service.build_snapshot(tender_id, tactic_id, rules, targets, [object()])

    def test_empty_results(self, service, rules, targets):
        with pytest.raises(EmptySnapshotError) as exc_info:
            service.build_snapshot(TENDER_ID, TACTIC_ID, rules, targets, [])
        assert exc_info.value.code == "EMPTY_SNAPSHOT"

    @pytest.mark.parametrize(
        "payload",
        [
            {},
            {"tender_id": "t", "markup_tactic_id": "m", "results": []},
            {"tender_id": "t", "markup_tactic_id": "m", "redistribution_rules": [], "results": []},
            {
                "tender_id": "t",
                "markup_tactic_id": "m",
                "redistribution_rules": {"deductions": [{"level": "bogus"}]},
                "results": [],
            },
            {
                "tender_id": "t",
                "markup_tactic_id": "m",
                "redistribution_rules": {},
                "results": [{"original_work_cost": "1"}],
            },
            {
                "tender_id": "t",
                "markup_tactic_id": "m",
                "redistribution_rules": {},
                "results": [{"boq_item_id": "a", "deducted_amount": "lots"}],
            },
        ],
    )
    def test_malformed_payloads(self, service, payload):
        with pytest.raises(SnapshotError):
            service.restore_snapshot(payload)

    @pytest.mark.parametrize(
        "rules_data,results",
        [
            ({}, ["garbage"]),
            ({"deductions": ["x"]}, []),
            ({"targets": [42]}, []),
        ],
    )
    def test_non_mapping_entries(self, service, rules_data, results):
        payload = {
            "tender_id": "t",
            "markup_tactic_id": "m",
            "redistribution_rules": rules_data,
            "results": results,
        }
        with pytest.raises(SnapshotError, match="entries must be mappings"):
            service.restore_snapshot(payload)

    def test_invalid_json_text(self, service):
        with pytest.raises(SnapshotError, match="not valid JSON"):
            service.loads_snapshot("{not json")
