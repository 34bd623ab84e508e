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

"""Internal data model for Remote Config server templates.

Converts the Remote Config REST representation of a server template into immutable, typed
objects. Condition expressions are modelled as a closed set of classes, exactly one per
``OneOfCondition`` variant, plus :class:`UnknownCondition` for variants this package does not
recognize.
"""

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union

from rc_evaluator import exceptions


logger = logging.getLogger(__name__)


class PercentConditionOperator(Enum):
    """Enum representing the available operators for percent conditions.
    """
    LESS_OR_EQUAL = "LESS_OR_EQUAL"
    GREATER_THAN = "GREATER_THAN"
    BETWEEN = "BETWEEN"
    UNKNOWN = "UNKNOWN"


class CustomSignalOperator(Enum):
    """Enum representing the available operators for custom signal conditions.
    """
    STRING_CONTAINS = "STRING_CONTAINS"
    STRING_DOES_NOT_CONTAIN = "STRING_DOES_NOT_CONTAIN"
    STRING_EXACTLY_MATCHES = "STRING_EXACTLY_MATCHES"
    STRING_CONTAINS_REGEX = "STRING_CONTAINS_REGEX"
    NUMERIC_LESS_THAN = "NUMERIC_LESS_THAN"
    NUMERIC_LESS_EQUAL = "NUMERIC_LESS_EQUAL"
    NUMERIC_EQUAL = "NUMERIC_EQUAL"
    NUMERIC_NOT_EQUAL = "NUMERIC_NOT_EQUAL"
    NUMERIC_GREATER_THAN = "NUMERIC_GREATER_THAN"
    NUMERIC_GREATER_EQUAL = "NUMERIC_GREATER_EQUAL"
    SEMANTIC_VERSION_LESS_THAN = "SEMANTIC_VERSION_LESS_THAN"
    SEMANTIC_VERSION_LESS_EQUAL = "SEMANTIC_VERSION_LESS_EQUAL"
    SEMANTIC_VERSION_EQUAL = "SEMANTIC_VERSION_EQUAL"
    SEMANTIC_VERSION_NOT_EQUAL = "SEMANTIC_VERSION_NOT_EQUAL"
    SEMANTIC_VERSION_GREATER_THAN = "SEMANTIC_VERSION_GREATER_THAN"
    SEMANTIC_VERSION_GREATER_EQUAL = "SEMANTIC_VERSION_GREATER_EQUAL"
    UNKNOWN = "UNKNOWN"


class ParameterValueType(Enum):
    """Enum representing the declared data type of a parameter.

    The evaluator does not interpret this value. Every resolved value is a string and is
    converted on read by the typed getters of ``Value``.
    """
    STRING = "STRING"
    BOOLEAN = "BOOLEAN"
    NUMBER = "NUMBER"
    JSON = "JSON"
    PARAMETER_VALUE_TYPE_UNSPECIFIED = "PARAMETER_VALUE_TYPE_UNSPECIFIED"


@dataclass(frozen=True)
class ExplicitParameterValue:
    """A parameter value set to an explicit string."""
    value: str


@dataclass(frozen=True)
class InAppDefaultValue:
    """A parameter value that defers to the in-app default of the consuming application."""


ParameterValue = Union[ExplicitParameterValue, InAppDefaultValue]


@dataclass(frozen=True)
class OrCondition:
    conditions: Tuple['OneOfCondition', ...] = ()


@dataclass(frozen=True)
class AndCondition:
    conditions: Tuple['OneOfCondition', ...] = ()


@dataclass(frozen=True)
class TrueCondition:
    pass


@dataclass(frozen=True)
class FalseCondition:
    pass


@dataclass(frozen=True)
class MicroPercentRange:
    """Lower (exclusive) and upper (inclusive) bounds of a ``BETWEEN`` percent condition."""
    micro_percent_lower_bound: Optional[int] = None
    micro_percent_upper_bound: Optional[int] = None


@dataclass(frozen=True)
class PercentCondition:
    """Represents a condition that compares the instance percentile against a target.

    Args:
        percent_operator: The comparison to apply. ``None`` when the template omits it.
        micro_percent: Target percentile in millionths of a percent, for ``LESS_OR_EQUAL`` and
            ``GREATER_THAN``.
        seed: Seed mixed into the randomization ID before hashing (optional).
        micro_percent_range: Target range for ``BETWEEN``.
    """
    percent_operator: Optional[PercentConditionOperator] = None
    micro_percent: Optional[int] = None
    seed: Optional[str] = None
    micro_percent_range: Optional[MicroPercentRange] = None


@dataclass(frozen=True)
class CustomSignalCondition:
    """Represents a condition that compares a custom signal in the context against targets."""
    custom_signal_operator: Optional[CustomSignalOperator] = None
    custom_signal_key: Optional[str] = None
    target_custom_signal_values: Tuple[str, ...] = ()


@dataclass(frozen=True)
class UnknownCondition:
    """A condition variant that is not recognized. Always evaluates to ``False``."""
    raw: Any = None


OneOfCondition = Union[OrCondition, AndCondition, TrueCondition, FalseCondition,
                       PercentCondition, CustomSignalCondition, UnknownCondition]


@dataclass(frozen=True)
class NamedCondition:
    name: str
    condition: OneOfCondition


@dataclass(frozen=True)
class Parameter:
    """A Remote Config parameter with an optional default value and conditional values.

    ``conditional_values`` maps condition names to values. Its iteration order carries no
    meaning; priority is defined by the order of the template's conditions.
    """
    default_value: Optional[ParameterValue] = None
    conditional_values: Dict[str, ParameterValue] = field(default_factory=dict)
    value_type: ParameterValueType = ParameterValueType.PARAMETER_VALUE_TYPE_UNSPECIFIED
    description: Optional[str] = None


class ServerTemplateData:
    """Parses, validates and encapsulates template data and metadata."""
    def __init__(self, template_data):
        """Initializes a new ServerTemplateData instance.

        Args:
            template_data: The data to be parsed for getting the parameters and conditions.

        Raises:
            InvalidArgumentError: If the template data is not valid.
        """
        if not isinstance(template_data, dict):
            raise exceptions.InvalidArgumentError(
                'Remote Config template data must be a non-null object')

        if 'parameters' in template_data:
            if template_data['parameters'] is not None:
                self._parameters = _parse_parameters(template_data['parameters'])
            else:
                raise exceptions.InvalidArgumentError(
                    'Remote Config parameters must be a non-null object')
        else:
            self._parameters = {}

        if 'conditions' in template_data:
            if template_data['conditions'] is not None:
                self._conditions = _parse_named_conditions(template_data['conditions'])
            else:
                raise exceptions.InvalidArgumentError(
                    'Remote Config conditions must be a non-null object')
        else:
            self._conditions = ()

        self._parameter_groups = template_data.get('parameterGroups') or {}

        self._version = ''
        if 'version' in template_data:
            self._version = template_data['version']

        self._etag = ''
        if 'etag' in template_data and isinstance(template_data['etag'], str):
            self._etag = template_data['etag']

        self._template_data_json = json.dumps(template_data)

    @classmethod
    def from_json(cls, template_data_json: str) -> 'ServerTemplateData':
        try:
            template_data = json.loads(template_data_json)
        except (TypeError, ValueError) as error:
            raise exceptions.InvalidArgumentError(
                f'Invalid Remote Config template JSON: {error}', cause=error)
        return cls(template_data)

    @property
    def parameters(self) -> Dict[str, Parameter]:
        return self._parameters

    @property
    def parameter_groups(self):
        return self._parameter_groups

    @property
    def etag(self):
        return self._etag

    @property
    def version(self):
        return self._version

    @property
    def conditions(self) -> Tuple[NamedCondition, ...]:
        return self._conditions

    @property
    def template_data_json(self):
        return self._template_data_json


def parse_condition(condition) -> OneOfCondition:
    """Converts a ``OneOfCondition`` object from the REST representation into a typed condition.

    Exactly one key is expected to be set. Anything unrecognized becomes an
    :class:`UnknownCondition`, so that templates produced by newer backends still parse.
    """
    if not isinstance(condition, dict):
        return UnknownCondition(condition)
    if condition.get('orCondition') is not None:
        return OrCondition(_parse_sub_conditions(condition['orCondition']))
    if condition.get('andCondition') is not None:
        return AndCondition(_parse_sub_conditions(condition['andCondition']))
    if condition.get('true') is not None:
        return TrueCondition()
    if condition.get('false') is not None:
        return FalseCondition()
    if condition.get('percent') is not None:
        return _parse_percent_condition(condition['percent'])
    if condition.get('customSignal') is not None:
        return _parse_custom_signal_condition(condition['customSignal'])
    logger.debug('Unrecognized condition type in template: %s', list(condition))
    return UnknownCondition(condition)


def _parse_sub_conditions(composite):
    sub_conditions = composite.get('conditions') if isinstance(composite, dict) else None
    if not isinstance(sub_conditions, list):
        return ()
    return tuple(parse_condition(sub) for sub in sub_conditions)


def _parse_percent_condition(percent):
    if not isinstance(percent, dict):
        return UnknownCondition({'percent': percent})
    micro_percent_range = percent.get('microPercentRange')
    if isinstance(micro_percent_range, dict):
        micro_percent_range = MicroPercentRange(
            micro_percent_lower_bound=_parse_int(micro_percent_range.get('microPercentLowerBound')),
            micro_percent_upper_bound=_parse_int(micro_percent_range.get('microPercentUpperBound')))
    else:
        micro_percent_range = None
    return PercentCondition(
        percent_operator=_parse_enum(PercentConditionOperator, percent.get('percentOperator')),
        micro_percent=_parse_int(percent.get('microPercent')),
        seed=percent.get('seed'),
        micro_percent_range=micro_percent_range)


def _parse_int(value):
    if isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _parse_custom_signal_condition(custom_signal):
    if not isinstance(custom_signal, dict):
        return UnknownCondition({'customSignal': custom_signal})
    target_values = custom_signal.get('targetCustomSignalValues') or []
    if isinstance(target_values, str):
        target_values = [target_values]
    if not isinstance(target_values, list):
        logger.debug('Unrecognized targetCustomSignalValues in template: %s', target_values)
        return UnknownCondition({'customSignal': custom_signal})
    key = custom_signal.get('customSignalKey')
    return CustomSignalCondition(
        custom_signal_operator=_parse_enum(
            CustomSignalOperator, custom_signal.get('customSignalOperator')),
        custom_signal_key=key if isinstance(key, str) else None,
        target_custom_signal_values=tuple(str(target) for target in target_values))


def _parse_enum(enum_type, value, unknown=None):
    if not value:
        return None
    try:
        return enum_type(value)
    except ValueError:
        logger.debug('Unrecognized %s: %s', enum_type.__name__, value)
        return unknown if unknown is not None else enum_type.UNKNOWN


def _parse_named_conditions(conditions):
    if not isinstance(conditions, list):
        raise exceptions.InvalidArgumentError('Remote Config conditions must be an array')
    named_conditions = []
    for condition in conditions:
        if not isinstance(condition, dict) or not isinstance(condition.get('name'), str):
            raise exceptions.InvalidArgumentError(
                f'Remote Config condition must have a string name: {condition}')
        named_conditions.append(
            NamedCondition(condition['name'], parse_condition(condition.get('condition'))))
    return tuple(named_conditions)


def _parse_parameters(parameters):
    if not isinstance(parameters, dict):
        raise exceptions.InvalidArgumentError('Remote Config parameters must be a non-null object')
    return {key: _parse_parameter(key, parameter) for key, parameter in parameters.items()}


def _parse_parameter(key, parameter):
    if not isinstance(parameter, dict):
        raise exceptions.InvalidArgumentError(
            f'Remote Config parameter "{key}" must be a non-null object')
    raw_conditional_values = parameter.get('conditionalValues') or {}
    if not isinstance(raw_conditional_values, dict):
        raise exceptions.InvalidArgumentError(
            f'Remote Config parameter "{key}" conditionalValues must be an object')
    conditional_values = {}
    for name, value in raw_conditional_values.items():
        parsed = parse_parameter_value(value)
        if parsed is not None:
            conditional_values[name] = parsed
    unspecified = ParameterValueType.PARAMETER_VALUE_TYPE_UNSPECIFIED
    value_type = _parse_enum(ParameterValueType, parameter.get('valueType'), unspecified)
    return Parameter(
        default_value=parse_parameter_value(parameter.get('defaultValue')),
        conditional_values=conditional_values,
        value_type=value_type or unspecified,
        description=parameter.get('description'))


def parse_parameter_value(value) -> Optional[ParameterValue]:
    """Converts a ``RemoteConfigParameterValue`` object into a typed parameter value.

    Returns ``None`` for missing or empty value objects.
    """
    if not isinstance(value, dict):
        return None
    use_in_app_default = value.get('useInAppDefault')
    if use_in_app_default is True or str(use_in_app_default).lower() == 'true':
        return InAppDefaultValue()
    if value.get('value') is not None:
        return ExplicitParameterValue(str(value['value']))
    return None
