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

"""Internal comparison logic for custom signal conditions."""

import logging
import math
import re
from typing import Callable, Optional, Sequence

from rc_evaluator._template import CustomSignalOperator


logger = logging.getLogger(__name__)

# Max number of segments a numeric version can have. This is enforced by the server as well.
MAX_SEMANTIC_VERSION_LENGTH = 5

_SEGMENT_PATTERN = re.compile(r'[0-9]+')

_NUMERIC_OPERATORS = {
    CustomSignalOperator.NUMERIC_LESS_THAN: lambda r: r < 0,
    CustomSignalOperator.NUMERIC_LESS_EQUAL: lambda r: r <= 0,
    CustomSignalOperator.NUMERIC_EQUAL: lambda r: r == 0,
    CustomSignalOperator.NUMERIC_NOT_EQUAL: lambda r: r != 0,
    CustomSignalOperator.NUMERIC_GREATER_THAN: lambda r: r > 0,
    CustomSignalOperator.NUMERIC_GREATER_EQUAL: lambda r: r >= 0,
}

_SEMANTIC_VERSION_OPERATORS = {
    CustomSignalOperator.SEMANTIC_VERSION_LESS_THAN: lambda r: r < 0,
    CustomSignalOperator.SEMANTIC_VERSION_LESS_EQUAL: lambda r: r <= 0,
    CustomSignalOperator.SEMANTIC_VERSION_EQUAL: lambda r: r == 0,
    CustomSignalOperator.SEMANTIC_VERSION_NOT_EQUAL: lambda r: r != 0,
    CustomSignalOperator.SEMANTIC_VERSION_GREATER_THAN: lambda r: r > 0,
    CustomSignalOperator.SEMANTIC_VERSION_GREATER_EQUAL: lambda r: r >= 0,
}


def compare(custom_signal_operator: Optional[CustomSignalOperator],
            custom_signal_key: Optional[str],
            target_custom_signal_values: Sequence[str],
            context) -> bool:
    """Compares the value of a custom signal in the context against a list of target values.

    Args:
        custom_signal_operator: The ``CustomSignalOperator`` to apply.
        custom_signal_key: The key of the signal to look up in the context.
        target_custom_signal_values: The target values. String operators match if any target
            matches. Numeric and semantic version operators only consider the first target.
        context: An ``EvaluationContext``, or any object with a dict-like ``get()`` method.

    Returns:
        bool: True if the signal matches, False otherwise. Missing or unrecognized inputs never
        raise, they simply do not match.
    """
    if not all([custom_signal_operator, custom_signal_key, target_custom_signal_values]):
        logger.warning('Missing operator, key, or target values for custom signal condition.')
        return False
    if not isinstance(custom_signal_key, str):
        logger.warning('Custom signal key must be a string: %s', custom_signal_key)
        return False

    actual_custom_signal_value = context.get(custom_signal_key)
    if actual_custom_signal_value is None:
        logger.debug('Custom signal value not found in context: %s', custom_signal_key)
        return False

    if custom_signal_operator == CustomSignalOperator.STRING_CONTAINS:
        return _compare_strings(target_custom_signal_values, actual_custom_signal_value,
                                lambda target, actual: target in actual)
    if custom_signal_operator == CustomSignalOperator.STRING_DOES_NOT_CONTAIN:
        return not _compare_strings(target_custom_signal_values, actual_custom_signal_value,
                                    lambda target, actual: target in actual)
    if custom_signal_operator == CustomSignalOperator.STRING_EXACTLY_MATCHES:
        return _compare_strings(target_custom_signal_values, actual_custom_signal_value,
                                lambda target, actual: target.strip() == actual.strip())
    if custom_signal_operator == CustomSignalOperator.STRING_CONTAINS_REGEX:
        return _compare_strings(target_custom_signal_values, actual_custom_signal_value,
                                _regex_search)

    # For numeric and semantic operators only one target value is allowed.
    if custom_signal_operator in _NUMERIC_OPERATORS:
        return compare_numbers(custom_signal_key,
                               target_custom_signal_values[0],
                               actual_custom_signal_value,
                               _NUMERIC_OPERATORS[custom_signal_operator])
    if custom_signal_operator in _SEMANTIC_VERSION_OPERATORS:
        return compare_semantic_versions(custom_signal_key,
                                         target_custom_signal_values[0],
                                         actual_custom_signal_value,
                                         _SEMANTIC_VERSION_OPERATORS[custom_signal_operator])
    logger.warning('Unknown custom signal operator: %s', custom_signal_operator)
    return False


def _compare_strings(target_values, actual_value, predicate_fn) -> bool:
    """Returns True if the predicate holds for the stringified actual value and any target."""
    actual = str(actual_value)
    return any(predicate_fn(str(target), actual) for target in target_values)


def _regex_search(pattern, actual) -> bool:
    try:
        return re.search(pattern, actual) is not None
    except re.error:
        logger.warning('Invalid regular expression in custom signal condition: %s', pattern)
        return False


def _parse_number(value) -> Optional[float]:
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return None if math.isnan(number) else number


def compare_numbers(custom_signal_key, target_value, actual_value,
                    predicate_fn: Callable[[int], bool]) -> bool:
    """Compares two numbers, calling the predicate with -1, 0 or 1 as actual is less than, equal
    to, or greater than target."""
    target = _parse_number(target_value)
    actual = _parse_number(actual_value)
    if target is None or actual is None:
        logger.warning('Invalid numeric value for comparison for custom signal key %s.',
                       custom_signal_key)
        return False
    return predicate_fn(-1 if actual < target else 1 if actual > target else 0)


def compare_semantic_versions(custom_signal_key, target_value, actual_value,
                              predicate_fn: Callable[[int], bool]) -> bool:
    """Compares the actual semantic version value of a signal against a target value.

    Calls the predicate function with -1, 0, 1 if actual is less than, equal to, or greater than
    target. Versions are dot-separated non-negative integers with at most
    ``MAX_SEMANTIC_VERSION_LENGTH`` segments; missing trailing segments count as zero.

    Args:
        custom_signal_key: The custom signal for which the evaluation is being performed.
        target_value: The target version string.
        actual_value: The actual value to compare, which can be a string or number.
        predicate_fn: A function that takes an integer (-1, 0, or 1) and returns a boolean.

    Returns:
        bool: The result of the predicate function, or False if either version is invalid.
    """
    actual_parts = _parse_semantic_version(str(actual_value))
    target_parts = _parse_semantic_version(str(target_value))
    if actual_parts is None or target_parts is None:
        logger.warning(
            'Invalid semantic version format for comparison for custom signal key %s.',
            custom_signal_key)
        return False

    for actual, target in zip(actual_parts, target_parts):
        if actual < target:
            return predicate_fn(-1)
        if actual > target:
            return predicate_fn(1)
    return predicate_fn(0)


def _parse_semantic_version(version: str):
    segments = version.split('.')
    if len(segments) > MAX_SEMANTIC_VERSION_LENGTH:
        return None
    if not all(_SEGMENT_PATTERN.fullmatch(segment) for segment in segments):
        return None
    parts = [int(segment) for segment in segments]
    parts.extend([0] * (MAX_SEMANTIC_VERSION_LENGTH - len(parts)))
    return parts
