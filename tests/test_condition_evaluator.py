# Copyright 2017 Google Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Tests for rc_evaluator._condition_evaluator."""
import hashlib

import pytest

from rc_evaluator import _condition_evaluator
from rc_evaluator._condition_evaluator import ConditionEvaluator, EvaluationContext
from rc_evaluator._template import (
    AndCondition,
    CustomSignalCondition,
    CustomSignalOperator,
    FalseCondition,
    MicroPercentRange,
    NamedCondition,
    OrCondition,
    PercentCondition,
    PercentConditionOperator,
    TrueCondition,
    UnknownCondition,
)


EVALUATOR = ConditionEvaluator()
EMPTY_CONTEXT = EvaluationContext()


def _nest(condition_type, condition, depth):
    for _ in range(depth):
        condition = condition_type((condition,))
    return condition


def _between(lower, upper, seed='seed'):
    return PercentCondition(
        percent_operator=PercentConditionOperator.BETWEEN,
        seed=seed,
        micro_percent_range=MicroPercentRange(lower, upper))


class TestEvaluateCondition:

    @pytest.mark.parametrize('condition, expected', [
        (TrueCondition(), True),
        (FalseCondition(), False),
        (AndCondition(()), True),
        (OrCondition(()), False),
        (AndCondition((TrueCondition(), TrueCondition())), True),
        (AndCondition((TrueCondition(), FalseCondition())), False),
        (OrCondition((FalseCondition(), TrueCondition())), True),
        (OrCondition((FalseCondition(), FalseCondition())), False),
        (OrCondition((AndCondition((FalseCondition(),)), AndCondition(()))), True),
        (UnknownCondition({'appInstallDate': {}}), False),
        (None, False),
        ({'true': {}}, False),
    ])
    def test_evaluate_condition(self, condition, expected):
        assert EVALUATOR.evaluate_condition(condition, EMPTY_CONTEXT) is expected

    @pytest.mark.parametrize('condition_type', [AndCondition, OrCondition])
    def test_max_nesting_depth(self, condition_type):
        condition = _nest(condition_type, TrueCondition(), 10)
        assert EVALUATOR.evaluate_condition(condition, EMPTY_CONTEXT) is True

    @pytest.mark.parametrize('condition_type', [AndCondition, OrCondition])
    def test_exceeding_nesting_depth_to_false(self, condition_type):
        condition = _nest(condition_type, TrueCondition(), 11)
        assert EVALUATOR.evaluate_condition(condition, EMPTY_CONTEXT) is False

    def test_exceeding_nesting_depth_in_or_branch(self):
        too_deep = _nest(AndCondition, TrueCondition(), 11)
        condition = OrCondition((too_deep, TrueCondition()))
        assert EVALUATOR.evaluate_condition(condition, EMPTY_CONTEXT) is True

    def test_and_short_circuits(self):
        calls = []

        class RecordingEvaluator(ConditionEvaluator):
            def evaluate_custom_signal_condition(self, custom_signal_condition, context):
                calls.append(custom_signal_condition)
                return True

        condition = AndCondition((FalseCondition(), CustomSignalCondition()))
        assert RecordingEvaluator().evaluate_condition(condition, EMPTY_CONTEXT) is False
        assert calls == []

    def test_or_short_circuits(self):
        calls = []

        class RecordingEvaluator(ConditionEvaluator):
            def evaluate_custom_signal_condition(self, custom_signal_condition, context):
                calls.append(custom_signal_condition)
                return False

        condition = OrCondition((TrueCondition(), CustomSignalCondition()))
        assert RecordingEvaluator().evaluate_condition(condition, EMPTY_CONTEXT) is True
        assert calls == []

    def test_custom_signal_condition(self):
        condition = CustomSignalCondition(
            custom_signal_operator=CustomSignalOperator.STRING_EXACTLY_MATCHES,
            custom_signal_key='country',
            target_custom_signal_values=('DE', 'FR'))
        assert EVALUATOR.evaluate_condition(
            condition, EvaluationContext(signals={'country': ' FR '})) is True
        assert EVALUATOR.evaluate_condition(
            condition, EvaluationContext(signals={'country': 'US'})) is False
        assert EVALUATOR.evaluate_condition(condition, EMPTY_CONTEXT) is False


class TestEvaluateConditions:

    def test_preserves_declaration_order(self):
        named_conditions = [
            NamedCondition('z', TrueCondition()),
            NamedCondition('a', FalseCondition()),
            NamedCondition('m', AndCondition(())),
        ]
        results = EVALUATOR.evaluate_conditions(named_conditions, EMPTY_CONTEXT)
        assert list(results.items()) == [('z', True), ('a', False), ('m', True)]

    def test_empty(self):
        assert EVALUATOR.evaluate_conditions([], EMPTY_CONTEXT) == {}


class TestPercentCondition:

    def test_missing_randomization_id(self):
        condition = PercentCondition(
            percent_operator=PercentConditionOperator.LESS_OR_EQUAL, micro_percent=100_000_000)
        assert EVALUATOR.evaluate_percent_condition(condition, EMPTY_CONTEXT) is False
        assert EVALUATOR.evaluate_percent_condition(
            condition, EvaluationContext(randomization_id='')) is False

    @pytest.mark.parametrize('operator', [None, PercentConditionOperator.UNKNOWN])
    def test_missing_or_unknown_operator(self, operator):
        condition = PercentCondition(percent_operator=operator, micro_percent=100_000_000)
        context = EvaluationContext(randomization_id='123')
        assert EVALUATOR.evaluate_percent_condition(condition, context) is False

    def test_less_or_equal_and_greater_than_are_complementary(self):
        for index in range(200):
            context = EvaluationContext(randomization_id=f'user-{index}')
            micro_percent = index * 500_000
            less_or_equal = PercentCondition(
                percent_operator=PercentConditionOperator.LESS_OR_EQUAL,
                micro_percent=micro_percent, seed='exp')
            greater_than = PercentCondition(
                percent_operator=PercentConditionOperator.GREATER_THAN,
                micro_percent=micro_percent, seed='exp')
            assert (EVALUATOR.evaluate_percent_condition(less_or_equal, context)
                    != EVALUATOR.evaluate_percent_condition(greater_than, context))

    def test_less_or_equal_matches_bucket(self):
        context = EvaluationContext(randomization_id='user-42')
        instance_bucket = _condition_evaluator.bucket('exp', 'user-42')
        at_bucket = PercentCondition(
            percent_operator=PercentConditionOperator.LESS_OR_EQUAL,
            micro_percent=instance_bucket, seed='exp')
        below_bucket = PercentCondition(
            percent_operator=PercentConditionOperator.LESS_OR_EQUAL,
            micro_percent=instance_bucket - 1, seed='exp')
        assert EVALUATOR.evaluate_percent_condition(at_bucket, context) is True
        assert EVALUATOR.evaluate_percent_condition(below_bucket, context) is False

    def test_between_bounds(self):
        context = EvaluationContext(randomization_id='user-42')
        instance_bucket = _condition_evaluator.bucket('seed', 'user-42')
        assert EVALUATOR.evaluate_percent_condition(
            _between(instance_bucket - 1, instance_bucket), context) is True
        assert EVALUATOR.evaluate_percent_condition(
            _between(instance_bucket, instance_bucket + 1), context) is False

    def test_between_missing_bounds(self):
        condition = PercentCondition(percent_operator=PercentConditionOperator.BETWEEN)
        context = EvaluationContext(randomization_id='123')
        assert EVALUATOR.evaluate_percent_condition(condition, context) is False

    def test_between_partitions(self):
        lower_half = _between(0, 50_000_000)
        upper_half = _between(50_000_000, 100_000_000)
        for index in range(1000):
            context = EvaluationContext(randomization_id=f'id-{index}')
            results = [
                EVALUATOR.evaluate_percent_condition(lower_half, context),
                EVALUATOR.evaluate_percent_condition(upper_half, context),
            ]
            assert results.count(True) == 1

    def test_seed_changes_assignment(self):
        ids = [f'id-{index}' for index in range(100)]
        with_seed = [_condition_evaluator.bucket('a', rid) for rid in ids]
        other_seed = [_condition_evaluator.bucket('b', rid) for rid in ids]
        assert with_seed != other_seed


class TestBucket:

    def test_deterministic(self):
        assert _condition_evaluator.bucket('seed', 'id') == _condition_evaluator.bucket(
            'seed', 'id')

    def test_range(self):
        for index in range(1000):
            instance_bucket = _condition_evaluator.bucket(None, str(index))
            assert 0 <= instance_bucket < 100_000_000

    def test_sha256_of_seeded_id(self):
        digest = hashlib.sha256('seed.id'.encode('utf-8')).hexdigest()
        assert _condition_evaluator.hash_seeded_randomization_id('seed.id') == int(digest, 16)
        assert _condition_evaluator.bucket('seed', 'id') == int(digest, 16) % 100_000_000

    @pytest.mark.parametrize('seed', [None, ''])
    def test_no_seed_prefix(self, seed):
        digest = hashlib.sha256('id'.encode('utf-8')).hexdigest()
        assert _condition_evaluator.bucket(seed, 'id') == int(digest, 16) % 100_000_000


class TestEvaluationContext:

    def test_from_dict(self):
        context = EvaluationContext.from_dict({'randomization_id': 'abc', 'country': 'DE'})
        assert context.randomization_id == 'abc'
        assert context.get('country') == 'DE'
        assert context.get('randomization_id') == 'abc'
        assert context.get('missing') is None

    def test_from_none(self):
        context = EvaluationContext.from_dict(None)
        assert context.randomization_id is None
        assert context.signals == {}

    def test_randomization_id_readable_as_signal(self):
        context = EvaluationContext(randomization_id='abc')
        assert context.get('randomization_id') == 'abc'

    def test_numeric_randomization_id(self):
        assert EvaluationContext(randomization_id=123).randomization_id == '123'

    def test_signals_are_copied(self):
        signals = {'country': 'DE'}
        context = EvaluationContext(signals=signals)
        signals['country'] = 'FR'
        context.signals['country'] = 'US'
        assert context.get('country') == 'DE'
