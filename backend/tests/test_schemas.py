"""Tests for ORM-backed response schemas."""

import warnings
from datetime import datetime

import pytest

from tally.models.rule import CategorizationRule, RuleMatchType, RuleApplyScope
from tally.schemas.budget import BudgetResponse
from tally.schemas.recurring import RecurringResponse
from tally.schemas.rule import RuleResponse

from factories import USER_ID


@pytest.mark.parametrize("schema", [BudgetResponse, RecurringResponse, RuleResponse])
def test_reads_from_attributes(schema):
    assert schema.model_config.get("from_attributes") is True
    assert "Config" not in vars(schema)


def test_rule_response_from_orm_without_warnings():
    rule = CategorizationRule(
        id="rule-1",
        user_id=USER_ID,
        priority=10,
        match_type=RuleMatchType.merchant,
        match_value="coffee",
        action_category_id="cat-dining",
        action_tags=["cafe"],
        apply_scope=RuleApplyScope.new_only,
        enabled=True,
        created_at=datetime(2024, 1, 1),
    )
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        response = RuleResponse.model_validate(rule)
    assert response.action_tags == ["cafe"]
    assert response.updated_at is None
