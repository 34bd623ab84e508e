# Copyright 2024 Google Inc.
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

"""Internal condition evaluation logic for Remote Config server templates."""

import hashlib
import logging
from typing import Dict, Mapping, Optional, Sequence, Union

from rc_evaluator import _signals
from rc_evaluator._template import (
    AndCondition,
    CustomSignalCondition,
    FalseCondition,
    NamedCondition,
    OrCondition,
    PercentCondition,
    PercentConditionOperator,
    TrueCondition,
)


logger = logging.getLogger(__name__)

MAX_CONDITION_RECURSION_DEPTH = 10
MICRO_PERCENT_RANGE = 100 * 1000000
RANDOMIZATION_ID_KEY = 'randomization_id'

SignalValue = Union[str, int, float]


class EvaluationContext:
    """Represents template evaluation input signals.

    Args:
        randomization_id: Identifier used when splitting a population, for example by percent
            conditions (optional).
        signals: A mapping of developer-defined custom signal keys to string or numeric values
            (optional).
    """

    def __init__(self, randomization_id: Optional[str] = None,
                 signals: Optional[Mapping[str, SignalValue]] = None):
        self._randomization_id = str(randomization_id) if randomization_id is not None else None
        self._signals = dict(signals or {})

    @classmethod
    def from_dict(cls, context: Optional[Mapping[str, SignalValue]]) -> 'EvaluationContext':
        """Creates a context from a flat dictionary, reading ``randomization_id`` from its
        reserved key."""
        context = dict(context or {})
        return cls(randomization_id=context.get(RANDOMIZATION_ID_KEY), signals=context)

    @property
    def randomization_id(self) -> Optional[str]:
        return self._randomization_id

    @property
    def signals(self) -> Dict[str, SignalValue]:
        return dict(self._signals)

    def get(self, key: str) -> Optional[SignalValue]:
        """Returns the value of the given signal, or None if the context does not define it."""
        if key in self._signals:
            return self._signals[key]
        if key == RANDOMIZATION_ID_KEY:
            return self._randomization_id
        return None


def hash_seeded_randomization_id(seeded_randomization_id: str) -> int:
    """Hashes a seeded randomization ID.

    The SHA-256 digest of the UTF-8 encoded input, read as an unsigned integer. Changing this
    function reassigns clients to different percentiles, so it must stay stable.

    Args:
      seeded_randomization_id: The seeded randomization ID to hash.

    Returns:
      The hashed value.
    """
    hash_object = hashlib.sha256()
    hash_object.update(seeded_randomization_id.encode('utf-8'))
    return int(hash_object.hexdigest(), 16)


def bucket(seed: Optional[str], randomization_id: str) -> int:
    """Returns the micro-percentile of a randomization ID, in ``[0, 100_000_000)``."""
    seed_prefix = f'{seed}.' if seed else ''
    return hash_seeded_randomization_id(f'{seed_prefix}{randomization_id}') % MICRO_PERCENT_RANGE


class ConditionEvaluator:
    """Encapsulates condition evaluation logic for server templates.

    Evaluation is a pure function of the conditions and the context. Nothing is cached
    between calls and inputs are never mutated, so one instance can be shared across threads.
    """

    def evaluate_conditions(self, conditions: Sequence[NamedCondition],
                            context) -> Dict[str, bool]:
        """Evaluates a list of conditions and returns a dictionary of results.

        Args:
          conditions: A list of NamedCondition objects.
          context: An EvaluationContext object.

        Returns:
          A dictionary that maps condition names to boolean evaluation results, in the order
          the conditions were declared.
        """
        evaluated_conditions = {}
        for condition in conditions:
            evaluated_conditions[condition.name] = self.evaluate_condition(
                condition.condition, context)
        return evaluated_conditions

    def evaluate_condition(self, condition, context, nesting_level: int = 0) -> bool:
        """Recursively evaluates a condition.

        Args:
          condition: The condition to evaluate.
          context: An EvaluationContext object.
          nesting_level: The number of AND/OR conditions enclosing this one.

        Returns:
          The boolean result of the condition evaluation.
        """
        if isinstance(condition, (OrCondition, AndCondition)):
            if nesting_level >= MAX_CONDITION_RECURSION_DEPTH:
                logger.warning('Maximum condition recursion depth exceeded.')
                return False
            if isinstance(condition, OrCondition):
                return self.evaluate_or_condition(condition, context, nesting_level)
            return self.evaluate_and_condition(condition, context, nesting_level)
        if isinstance(condition, TrueCondition):
            return True
        if isinstance(condition, FalseCondition):
            return False
        if isinstance(condition, PercentCondition):
            return self.evaluate_percent_condition(condition, context)
        if isinstance(condition, CustomSignalCondition):
            return self.evaluate_custom_signal_condition(condition, context)
        logger.warning('Unknown condition type encountered.')
        return False

    def evaluate_or_condition(self, or_condition: OrCondition, context,
                              nesting_level: int = 0) -> bool:
        """Evaluates an OR condition.

        Returns:
          True if any of the subconditions are true, False otherwise.
        """
        for sub_condition in or_condition.conditions:
            if self.evaluate_condition(sub_condition, context, nesting_level + 1):
                return True
        return False

    def evaluate_and_condition(self, and_condition: AndCondition, context,
                               nesting_level: int = 0) -> bool:
        """Evaluates an AND condition.

        Returns:
          True if all of the subconditions are met, False otherwise. An AND condition without
          subconditions is met.
        """
        for sub_condition in and_condition.conditions:
            if not self.evaluate_condition(sub_condition, context, nesting_level + 1):
                return False
        return True

    def evaluate_percent_condition(self, percent_condition: PercentCondition, context) -> bool:
        """Evaluates a percent condition.

        Args:
          percent_condition: The percent condition to evaluate.
          context: An EvaluationContext object.

        Returns:
          True if the condition is met, False otherwise.
        """
        randomization_id = context.randomization_id
        if not randomization_id:
            logger.warning('Missing randomization_id in context for evaluating percent condition.')
            return False

        percent_operator = percent_condition.percent_operator
        if not percent_operator:
            logger.warning('Missing percent operator for percent condition.')
            return False

        micro_percent = percent_condition.micro_percent or 0
        micro_percent_range = percent_condition.micro_percent_range
        if micro_percent_range:
            upper_bound = micro_percent_range.micro_percent_upper_bound or 0
            lower_bound = micro_percent_range.micro_percent_lower_bound or 0
        else:
            upper_bound = 0
            lower_bound = 0

        instance_micro_percentile = bucket(percent_condition.seed, randomization_id)
        if percent_operator == PercentConditionOperator.LESS_OR_EQUAL:
            return instance_micro_percentile <= micro_percent
        if percent_operator == PercentConditionOperator.GREATER_THAN:
            return instance_micro_percentile > micro_percent
        if percent_operator == PercentConditionOperator.BETWEEN:
            return lower_bound < instance_micro_percentile <= upper_bound
        logger.warning('Unknown percent operator: %s', percent_operator)
        return False

    def evaluate_custom_signal_condition(self, custom_signal_condition: CustomSignalCondition,
                                         context) -> bool:
        return _signals.compare(custom_signal_condition.custom_signal_operator,
                                custom_signal_condition.custom_signal_key,
                                custom_signal_condition.target_custom_signal_values,
                                context)
