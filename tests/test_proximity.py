import pytest

from apostles.core.assignments import ManualAssignmentStore, effective_classify
from apostles.core.config import ProximityRules, make_config
from apostles.core.models import (
    Outlook,
    ProximityRelationship as R,
    QuadrantType,
    RelationshipKind,
    Respondent,
    RiskLevel,
)
from apostles.core.proximity import (
    RELATIONSHIPS,
    ProximityAnalyzer,
    active_relationships,
    analyze_proximity,
    describe,
    is_opportunity,
    is_warning,
    relationships_from,
    score_risk,
)
from apostles.core.quadrant_classifier import build_layout


def make_respondents(*positions, excluded=()):
    return [
        Respondent(id=f"r{i}", name=f"Customer {i}", satisfaction=sat, loyalty=loy, excluded=i in excluded)
        for i, (sat, loy) in enumerate(positions)
    ]


def run(points, config=None, premium=False, threshold=None, store=None, rules=None):
    config = config or make_config(midpoint=(3, 3))
    analyzer = ProximityAnalyzer(config, rules)
    return analyzer.analyze(
        points,
        lambda p: effective_classify(p, config, store),
        premium_enabled=premium,
        threshold=threshold,
    )


# Relationship table

def test_relationship_table_is_complete():
    assert set(RELATIONSHIPS) == set(R)

    kinds = [rel.kind for rel in RELATIONSHIPS.values()]
    assert kinds.count(RelationshipKind.LATERAL) == 8
    assert kinds.count(RelationshipKind.DIAGONAL) == 4
    assert kinds.count(RelationshipKind.SPECIAL) == 4


def test_warning_and_opportunity_lists():
    warnings = {key for key in R if is_warning(key)}
    opportunities = {key for key in R if is_opportunity(key)}

    assert warnings == {
        R.LOYALISTS_CLOSE_TO_MERCENARIES,
        R.LOYALISTS_CLOSE_TO_HOSTAGES,
        R.MERCENARIES_CLOSE_TO_DEFECTORS,
        R.HOSTAGES_CLOSE_TO_DEFECTORS,
        R.DEFECTORS_CLOSE_TO_TERRORISTS,
        R.LOYALISTS_CLOSE_TO_DEFECTORS,
        R.MERCENARIES_CLOSE_TO_HOSTAGES,
    }
    assert opportunities == set(R) - warnings
    assert R.LOYALISTS_CLOSE_TO_APOSTLES in opportunities
    assert R.HOSTAGES_CLOSE_TO_MERCENARIES in opportunities


def test_lateral_relationships_cross_one_axis():
    targets = {rel.target for rel in relationships_from(QuadrantType.LOYALISTS)
               if rel.kind == RelationshipKind.LATERAL}
    assert targets == {QuadrantType.MERCENARIES, QuadrantType.HOSTAGES}

    diagonal = [rel for rel in relationships_from(QuadrantType.MERCENARIES)
                if rel.kind == RelationshipKind.DIAGONAL]
    assert [rel.target for rel in diagonal] == [QuadrantType.HOSTAGES]


def test_describe():
    assert describe(R.LOYALISTS_CLOSE_TO_MERCENARIES) == "Loyalists Nearly Mercenaries"
    assert describe("loyalists_close_to_near_apostles") == "Loyalists Nearly Near Apostles"
    assert describe(R.LOYALISTS_CLOSE_TO_HOSTAGES, classic=True) == "Champions Nearly At Risk"


def test_active_relationship_gating():
    lateral_only = active_relationships(premium_enabled=False, show_special_zones=True, show_near_apostles=True)
    assert {rel.kind for rel in lateral_only} == {RelationshipKind.LATERAL}
    assert len(lateral_only) == 8

    premium = {rel.key for rel in active_relationships(True, False, False)}
    assert R.LOYALISTS_CLOSE_TO_DEFECTORS in premium
    assert R.DEFECTORS_CLOSE_TO_TERRORISTS not in premium

    special = {rel.key for rel in active_relationships(True, True, False)}
    assert R.LOYALISTS_CLOSE_TO_APOSTLES in special
    assert R.LOYALISTS_CLOSE_TO_NEAR_APOSTLES not in special

    ring = {rel.key for rel in active_relationships(True, True, True)}
    assert R.LOYALISTS_CLOSE_TO_APOSTLES not in ring
    assert {R.LOYALISTS_CLOSE_TO_NEAR_APOSTLES, R.NEAR_APOSTLES_CLOSE_TO_APOSTLES} <= ring


def test_active_relationships_skip_missing_zones():
    config = make_config(apostles_zone_size=0, show_special_zones=True, show_near_apostles=True)
    keys = {rel.key for rel in active_relationships(True, True, True, build_layout(config))}

    assert R.DEFECTORS_CLOSE_TO_TERRORISTS in keys
    assert R.LOYALISTS_CLOSE_TO_APOSTLES not in keys
    assert R.LOYALISTS_CLOSE_TO_NEAR_APOSTLES not in keys


def test_no_ring_space_falls_back_to_apostles_relationship():
    config = make_config(midpoint=(4.5, 4.5), show_special_zones=True, show_near_apostles=True)
    keys = {rel.key for rel in active_relationships(True, True, True, build_layout(config))}

    assert R.LOYALISTS_CLOSE_TO_APOSTLES in keys
    assert R.NEAR_APOSTLES_CLOSE_TO_APOSTLES not in keys


# Risk scoring

def test_score_risk():
    rules = ProximityRules()

    assert score_risk(0, 1, Outlook.WARNING, rules) == (100.0, RiskLevel.HIGH)
    assert score_risk(1, 1, Outlook.WARNING, rules) == (50.0, RiskLevel.MODERATE)
    assert score_risk(1, 1, Outlook.OPPORTUNITY, rules) == (25.0, RiskLevel.LOW)
    assert score_risk(0, 1, Outlook.OPPORTUNITY, rules) == (50.0, RiskLevel.MODERATE)


def test_opportunities_are_capped_at_moderate():
    rules = ProximityRules(opportunity_weight=1.0)
    assert score_risk(0, 1, Outlook.OPPORTUNITY, rules) == (100.0, RiskLevel.MODERATE)


# Analysis

def test_report_lists_every_relationship():
    report = run(make_respondents((5, 5)))

    assert set(report.analysis) == set(R)
    assert report.settings.is_available is True
    assert report.settings.threshold == pytest.approx(1.0)


def test_loyalist_one_unit_from_satisfaction_boundary():
    report = run(make_respondents((4, 5)), threshold=1)

    detail = report.get(R.LOYALISTS_CLOSE_TO_HOSTAGES)
    assert detail.customer_count == 1
    customer = detail.customers[0]
    assert customer.id == "r0"
    assert customer.distance_from_boundary == pytest.approx(1.0)
    assert customer.current_quadrant == QuadrantType.LOYALISTS
    assert customer.proximity_targets == [QuadrantType.HOSTAGES]

    # The loyalty boundary is two units away
    assert report.get(R.LOYALISTS_CLOSE_TO_MERCENARIES).customer_count == 0


def test_loyalist_one_unit_from_loyalty_boundary():
    report = run(make_respondents((5, 4)), threshold=1)

    detail = report.get(R.LOYALISTS_CLOSE_TO_MERCENARIES)
    assert detail.customer_count == 1
    assert detail.customers[0].distance_from_boundary == pytest.approx(1.0)
    assert detail.customers[0].risk_level == RiskLevel.MODERATE
    assert detail.customers[0].risk_score == pytest.approx(50.0)


def test_respondent_on_the_midpoint_is_close_to_both_neighbours():
    report = run(make_respondents((3, 3)))

    for key in (R.LOYALISTS_CLOSE_TO_MERCENARIES, R.LOYALISTS_CLOSE_TO_HOSTAGES):
        detail = report.get(key)
        assert detail.customer_count == 1
        assert detail.customers[0].distance_from_boundary == pytest.approx(0.0)
        assert detail.risk_level == RiskLevel.HIGH

    customer = report.get(R.LOYALISTS_CLOSE_TO_HOSTAGES).customers[0]
    assert set(customer.proximity_targets) == {QuadrantType.MERCENARIES, QuadrantType.HOSTAGES}

    assert report.summary.total_proximity_customers == 1
    assert report.summary.warning_customers == 1
    assert report.summary.opportunity_customers == 0


def test_far_respondents_are_not_recorded():
    report = run(make_respondents((5, 5), (1, 1)))

    assert report.non_empty() == {}
    assert report.summary.total_customers == 2
    assert report.summary.total_proximity_customers == 0


def test_lower_side_quadrants():
    # Hostage at (2, 4): one unit from loyalists (sat) and from defectors (loy)
    report = run(make_respondents((2, 4)))

    opportunity = report.get(R.HOSTAGES_CLOSE_TO_LOYALISTS)
    warning = report.get(R.HOSTAGES_CLOSE_TO_DEFECTORS)
    assert opportunity.customers[0].distance_from_boundary == pytest.approx(1.0)
    assert opportunity.risk_level == RiskLevel.LOW
    assert warning.customers[0].distance_from_boundary == pytest.approx(1.0)
    assert warning.risk_level == RiskLevel.MODERATE

    assert report.summary.opportunity_customers == 1
    assert report.summary.warning_customers == 1


def test_relationship_aggregates():
    report = run(make_respondents((3, 3), (5, 4), (5, 4)))
    detail = report.get(R.LOYALISTS_CLOSE_TO_MERCENARIES)

    assert detail.customer_count == 3
    assert detail.position_count == 2
    assert detail.average_distance == pytest.approx(2 / 3)
    assert detail.risk_level == RiskLevel.HIGH
    # Closest first
    assert detail.customers[0].id == "r0"

    assert report.summary.total_proximity_customers == 3
    assert report.summary.total_proximity_positions == 2


def test_threshold_widens_the_band():
    config = make_config("1-7", "1-7")
    points = make_respondents((6, 6))

    assert run(points, config, threshold=1).non_empty() == {}
    report = run(points, config, threshold=2)
    assert report.get(R.LOYALISTS_CLOSE_TO_MERCENARIES).customer_count == 1
    assert report.get(R.LOYALISTS_CLOSE_TO_HOSTAGES).customer_count == 1


def test_diagonal_relationships_need_premium():
    points = make_respondents((3, 3), (4, 4), (5, 4))

    basic = run(points, premium=False)
    assert basic.get(R.LOYALISTS_CLOSE_TO_DEFECTORS).customer_count == 0

    premium = run(points, premium=True)
    detail = premium.get(R.LOYALISTS_CLOSE_TO_DEFECTORS)
    assert [c.id for c in detail.customers] == ["r0", "r1"]
    assert [c.distance_from_boundary for c in detail.customers] == pytest.approx([0.0, 1.0])
    assert premium.settings.premium_enabled is True


def test_special_zone_relationships():
    config = make_config(midpoint=(3, 3), show_special_zones=True)
    points = make_respondents((4, 4), (2, 2), (3, 5))

    basic = run(points, config, premium=False)
    assert basic.get(R.LOYALISTS_CLOSE_TO_APOSTLES).customer_count == 0

    report = run(points, config, premium=True)
    apostles = report.get(R.LOYALISTS_CLOSE_TO_APOSTLES)
    assert [c.id for c in apostles.customers] == ["r0"]
    assert apostles.customers[0].distance_from_boundary == pytest.approx(1.0)

    terrorists = report.get(R.DEFECTORS_CLOSE_TO_TERRORISTS)
    assert [c.id for c in terrorists.customers] == ["r1"]
    assert terrorists.risk_level == RiskLevel.MODERATE


def test_near_apostles_relationships():
    config = make_config(midpoint=(3, 3), show_special_zones=True, show_near_apostles=True)
    points = make_respondents((3, 3), (4, 5))

    report = run(points, config, premium=True)

    ring = report.get(R.LOYALISTS_CLOSE_TO_NEAR_APOSTLES)
    assert [c.id for c in ring.customers] == ["r0"]
    assert ring.customers[0].distance_from_boundary == pytest.approx(1.0)

    inner = report.get(R.NEAR_APOSTLES_CLOSE_TO_APOSTLES)
    assert [c.id for c in inner.customers] == ["r1"]
    assert inner.customers[0].current_quadrant == QuadrantType.NEAR_APOSTLES

    assert report.get(R.LOYALISTS_CLOSE_TO_APOSTLES).customer_count == 0


def test_excluded_and_out_of_range_respondents_are_skipped():
    points = make_respondents((3, 3), (4, 5), (9, 3), excluded={0})
    report = run(points)

    ids = {c.id for detail in report.analysis.values() for c in detail.customers}
    assert ids == {"r1"}
    assert report.settings.total_customers == 1


def test_override_changes_the_source_segment():
    config = make_config(midpoint=(3, 3))
    store = ManualAssignmentStore()
    points = make_respondents((4, 5))

    store.set_override("r0", QuadrantType.APOSTLES)
    report = run(points, config, store=store)

    assert report.get(R.LOYALISTS_CLOSE_TO_HOSTAGES).customer_count == 0
    assert report.summary.total_proximity_customers == 0


def test_coarse_scale_is_unavailable():
    config = make_config("1-3", "1-5")
    report = run(make_respondents((2, 2), (3, 5)), config)

    assert report.settings.is_available is False
    assert report.settings.unavailability_reason
    assert "1-3" in report.settings.unavailability_reason
    assert set(report.analysis) == set(R)
    assert report.non_empty() == {}
    assert report.summary.total_customers == 2


def test_total_customers_skips_out_of_range_when_unavailable():
    config = make_config("1-3", "1-5")
    report = run(make_respondents((2, 2), (3, 5), (9, 3)), config)

    assert report.settings.is_available is False
    assert report.settings.total_customers == 2
    assert report.summary.total_customers == 2


def test_negative_threshold_is_rejected():
    with pytest.raises(ValueError, match="negative"):
        run(make_respondents((3, 3)), threshold=-1)


def test_rules_threshold_is_the_default():
    rules = ProximityRules(threshold=2)
    report = run(make_respondents((6, 6)), make_config("1-7", "1-7"), rules=rules)

    assert report.settings.threshold == pytest.approx(2.0)
    assert report.get(R.LOYALISTS_CLOSE_TO_HOSTAGES).customer_count == 1


def test_analyze_proximity_function():
    config = make_config(midpoint=(3, 3))
    report = analyze_proximity(make_respondents((4, 5)), None, False, 1.0, config=config)

    assert report.get(R.LOYALISTS_CLOSE_TO_HOSTAGES).customer_count == 1


def test_report_serializes_with_camel_case_keys():
    report = run(make_respondents((3, 3)))
    data = report.model_dump(mode="json", by_alias=True)

    assert data["settings"]["isAvailable"] is True
    assert "totalProximityCustomers" in data["summary"]
    detail = data["analysis"]["loyalists_close_to_hostages"]
    assert detail["customerCount"] == 1
    assert detail["riskLevel"] == "HIGH"
    assert detail["customers"][0]["distanceFromBoundary"] == 0.0
    assert detail["customers"][0]["currentQuadrant"] == "loyalists"
