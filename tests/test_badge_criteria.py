from smart_rewards_api.services.badges import BADGE_DEFINITIONS, CustomerStats, evaluate_criteria


def _stats(**overrides) -> CustomerStats:
    return CustomerStats(customer_id="c-1", **overrides)


def test_threshold_criteria_compare_camel_case_fields() -> None:
    criteria = {"type": "threshold", "conditions": {"field": "totalTransactions", "operator": "gte", "value": 10}}

    assert evaluate_criteria(criteria, _stats(total_transactions=10)) is True
    assert evaluate_criteria(criteria, _stats(total_transactions=9)) is False


def test_threshold_supports_each_operator() -> None:
    stats = _stats(offers_redeemed=5)
    for operator, expected in {"gte": True, "lte": True, "gt": False, "lt": False, "eq": True}.items():
        criteria = {"type": "threshold", "conditions": {"field": "offersRedeemed", "operator": operator, "value": 5}}
        assert evaluate_criteria(criteria, stats) is expected, operator


def test_unknown_fields_operators_and_types_never_match() -> None:
    stats = _stats(total_transactions=100)

    assert evaluate_criteria({"type": "threshold", "conditions": {"field": "nope", "operator": "gte", "value": 1}}, stats) is False
    assert (
        evaluate_criteria(
            {"type": "threshold", "conditions": {"field": "totalTransactions", "operator": "between", "value": 1}},
            stats,
        )
        is False
    )
    assert evaluate_criteria({"type": "mystery", "conditions": {}}, stats) is False
    assert evaluate_criteria({}, stats) is False
    assert evaluate_criteria(None, stats) is False


def test_achievement_criteria() -> None:
    assert evaluate_criteria({"type": "achievement", "conditions": {"field": "account_created"}}, _stats()) is True

    silver = {"type": "achievement", "conditions": {"field": "loyaltyTier", "value": "Silver"}}
    assert evaluate_criteria(silver, _stats(loyalty_tier="Silver")) is True
    assert evaluate_criteria(silver, _stats(loyalty_tier="Gold")) is False


def test_combination_requires_every_sub_criterion() -> None:
    criteria = {
        "type": "combination",
        "conditions": {
            "subCriteria": [
                {"type": "threshold", "conditions": {"field": "businessesFollowed", "operator": "gte", "value": 5}},
                {"type": "threshold", "conditions": {"field": "mukandoGroupsJoined", "operator": "gte", "value": 1}},
            ]
        },
    }

    assert evaluate_criteria(criteria, _stats(businesses_followed=5, mukando_groups_joined=1)) is True
    assert evaluate_criteria(criteria, _stats(businesses_followed=5)) is False
    assert evaluate_criteria({"type": "combination", "conditions": {"subCriteria": []}}, _stats()) is True
    assert evaluate_criteria({"type": "combination", "conditions": {}}, _stats()) is False


def test_evaluate_accepts_plain_field_mappings() -> None:
    criteria = {"type": "threshold", "conditions": {"field": "accountAge", "operator": "gte", "value": 30}}

    assert evaluate_criteria(criteria, {"accountAge": 45}) is True


def test_catalogue_names_are_unique_and_rewarded() -> None:
    names = [definition.name for definition in BADGE_DEFINITIONS]

    assert len(names) == len(set(names))
    assert "Welcome Aboard" in names
    assert all(definition.points_reward > 0 for definition in BADGE_DEFINITIONS)
