import logging

import pytest

from core.cost_control import (
    calculate_budget_vs_actual,
    calculate_variance_analysis,
    generate_cost_alerts,
)
from core.evm_engine import compute_evm
from models.records import WBSCostLine


class TestBudgetVsActual:

    def test_line_statuses(self, wbs_lines):
        statuses = calculate_budget_vs_actual(wbs_lines)

        assert [line.status for line in statuses] == [
            'over_budget', 'near_limit', 'depleted', 'within_budget',
        ]

    def test_variance_and_remaining_budget(self, wbs_lines):
        foundation, structure, finishing, site_works = calculate_budget_vs_actual(wbs_lines)

        assert foundation.variance == -50_000
        assert foundation.variance_percent == pytest.approx(-25.0)
        assert structure.remaining_budget == 20_000
        assert finishing.remaining_budget == 0
        assert site_works.remaining_budget == 50_000
        assert site_works.to_dict()['category_name'] == 'Site Works'

    def test_zero_budget_line_does_not_divide(self):
        status, = calculate_budget_vs_actual([WBSCostLine(wbs_code='9', wbs_name='Contingency', budget=0)])

        assert status.variance_percent == 0.0
        assert status.status == 'depleted'


class TestVarianceAnalysis:

    def test_overall_status(self, wbs_lines):
        lines = calculate_variance_analysis(wbs_lines)

        assert [line.overall_status for line in lines] == ['critical', 'critical', 'critical', 'on_track']

    def test_at_risk_between_thresholds(self):
        line, = calculate_variance_analysis([
            WBSCostLine(wbs_code='2.1', wbs_name='Roofing', budget=100, planned=90, earned=90, actual=100),
        ])

        assert line.cpi == pytest.approx(0.9)
        assert line.spi == pytest.approx(1.0)
        assert line.overall_status == 'at_risk'

    def test_variances_and_directions(self, wbs_lines):
        foundation, _, finishing, site_works = calculate_variance_analysis(wbs_lines)

        assert foundation.cost_variance == -50_000
        assert foundation.cost_variance_percent == pytest.approx(-20.0)
        assert foundation.cost_status == 'unfavorable'
        assert foundation.schedule_status == 'neutral'
        assert site_works.cost_status == 'favorable'
        assert site_works.cpi == pytest.approx(1.25)

        assert finishing.cpi == 0.0
        assert finishing.spi == 0.0
        assert finishing.cost_variance_percent == 0.0


class TestCostAlerts:

    def test_alerts_for_struggling_project(self, wbs_lines, caplog):
        result = compute_evm(1000, 500, 400, 300)

        with caplog.at_level(logging.INFO, logger='core.cost_control'):
            alerts = generate_cost_alerts(result, calculate_budget_vs_actual(wbs_lines))

        assert [alert.alert_type for alert in alerts] == [
            'budget_overrun', 'budget_near_limit', 'low_cpi', 'low_spi', 'eac_exceeds_bac',
        ]
        assert "Generated 5 cost alert(s)" in caplog.text

    def test_overrun_severity_and_message(self, wbs_lines):
        alerts = generate_cost_alerts(compute_evm(0, 0, 0, 0), calculate_budget_vs_actual(wbs_lines))

        overrun = alerts[0]
        assert overrun.severity == 'critical'
        assert overrun.message == "Foundation has exceeded budget by 25.0%"
        assert overrun.category == '1.1'
        assert alerts[1].severity == 'medium'
        assert alerts[1].message == "Structure has used 93.3% of its budget"

    def test_small_overrun_is_high(self):
        lines = calculate_budget_vs_actual([
            WBSCostLine(wbs_code='3.1', wbs_name='Painting', budget=100, actual=110),
        ])

        alert, = generate_cost_alerts(compute_evm(0, 0, 0, 0), lines)
        assert alert.severity == 'high'

    def test_indices_without_data_raise_no_alert(self):
        assert generate_cost_alerts(compute_evm(1000, 0, 0, 0), []) == []

    def test_spi_alert_only_with_planned_value(self):
        alerts = generate_cost_alerts(compute_evm(1000, 0, 400, 0), [])

        assert [alert.alert_type for alert in alerts] == ['low_spi']
        assert alerts[0].severity == 'critical'

    def test_index_alerts_turn_critical_below_alert_index(self):
        weak = generate_cost_alerts(compute_evm(1000, 100, 100, 82), [])
        failing = generate_cost_alerts(compute_evm(1000, 100, 100, 79), [])

        assert [(alert.alert_type, alert.severity) for alert in weak[:2]] == [
            ('low_cpi', 'high'), ('low_spi', 'high'),
        ]
        assert [(alert.alert_type, alert.severity) for alert in failing[:2]] == [
            ('low_cpi', 'critical'), ('low_spi', 'critical'),
        ]

    def test_custom_index_threshold(self):
        result = compute_evm(1000, 100, 100, 95)

        default_alerts = generate_cost_alerts(result, [])
        strict_alerts = generate_cost_alerts(result, [], index_threshold=0.97)

        assert [alert.alert_type for alert in default_alerts] == ['eac_exceeds_bac']
        assert [alert.alert_type for alert in strict_alerts] == ['low_cpi', 'low_spi', 'eac_exceeds_bac']
        assert strict_alerts[0].severity == 'high'
