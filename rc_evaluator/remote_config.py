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

"""Remote Config server template module.

This module has the APIs used to evaluate Remote Config server templates with python. A server
template is evaluated against an evaluation context to produce a :class:`ServerConfig`, which
exposes type-safe getters for every parameter.

Fetching templates from the Remote Config backend is left to the application. Templates can be
set directly as parsed data or JSON, or produced by a loader callable supplied by the
application.
"""

import asyncio
import logging
import random
import threading
from typing import Any, Callable, Dict, Mapping, Optional, Union

from rc_evaluator import exceptions
from rc_evaluator._condition_evaluator import (
    ConditionEvaluator,
    EvaluationContext,
    MAX_CONDITION_RECURSION_DEPTH,
)
from rc_evaluator._template import (
    CustomSignalOperator,
    ExplicitParameterValue,
    InAppDefaultValue,
    ParameterValueType,
    PercentConditionOperator,
    ServerTemplateData,
)
from rc_evaluator._value import Value, ValueSource


logger = logging.getLogger(__name__)

__all__ = [
    'CustomSignalOperator',
    'EvaluationContext',
    'FetchResponse',
    'MAX_CONDITION_RECURSION_DEPTH',
    'ParameterValueType',
    'PercentConditionOperator',
    'ServerConfig',
    'ServerTemplate',
    'ServerTemplateData',
    'Value',
    'ValueSource',

    'get_server_template',
    'init_server_template',
]

DefaultConfig = Mapping[str, Union[str, int, float, bool]]
ServerTemplateDataType = Union[ServerTemplateData, Dict[str, Any], str]
TemplateLoader = Callable[[], ServerTemplateDataType]


class ServerTemplate:
    """Represents a Server Template with implementations for loading and evaluating the template.

    The cached template is replaced wholesale by ``set()`` and ``load()``. ``evaluate()`` reads a
    single snapshot of it, so it is safe to evaluate from multiple threads while the template
    is being refreshed.
    """
    def __init__(self, default_config: Optional[DefaultConfig] = None,
                 template_data: Optional[ServerTemplateDataType] = None,
                 loader: Optional[TemplateLoader] = None):
        """Initializes a ServerTemplate instance.

        Args:
          default_config: The default config to be used in the evaluated config.
          template_data: An optional template to be cached on initialization.
          loader: An optional callable that returns template data. Called by ``load()``.
        """
        self._loader = loader
        # This gets set when the template is
        # loaded via the load API, or via the set API.
        self._cache: Optional[ServerTemplateData] = None
        self._stringified_default_config: Dict[str, str] = {}
        self._evaluator = ConditionEvaluator()
        self._lock = threading.RLock()

        # RC stores all remote values as string, but it's more intuitive
        # to declare default values with specific types, so this converts
        # the external declaration to an internal string representation.
        if default_config is not None:
            for key, value in default_config.items():
                self._stringified_default_config[key] = _stringify(value)

        if template_data is not None:
            self.set(template_data)

    async def load(self):
        """Calls the configured loader and caches the template it returns.

        Raises:
          FailedPreconditionError: If the template was created without a loader.
          InvalidArgumentError: If the loader returns invalid template data.
          UnknownError: If the loader raises an unexpected error.
        """
        if self._loader is None:
            raise exceptions.FailedPreconditionError(
                'No template loader configured. Pass a loader when creating the template, '
                'or call set() instead.')
        loop = asyncio.get_running_loop()
        try:
            template_data = await loop.run_in_executor(None, self._loader)
        except exceptions.RemoteConfigError:
            raise
        except Exception as error:
            raise exceptions.UnknownError(
                f'Failed to load Remote Config server template: {error}', cause=error)
        self.set(template_data)

    def set(self, template_data: ServerTemplateDataType):
        """Updates the cache to store the given template.

        Args:
          template_data: A ``ServerTemplateData``, a dictionary in the Remote Config REST
              format, or a JSON string representing either.

        Raises:
          InvalidArgumentError: If the template data is not valid.
        """
        if isinstance(template_data, ServerTemplateData):
            parsed = template_data
        elif isinstance(template_data, str):
            parsed = ServerTemplateData.from_json(template_data)
        else:
            parsed = ServerTemplateData(template_data)

        with self._lock:
            self._cache = parsed

    def evaluate(self, context: Union[EvaluationContext, Mapping[str, Any], None] = None
                 ) -> 'ServerConfig':
        """Evaluates the cached server template to produce a ServerConfig.

        Args:
          context: An ``EvaluationContext``, or a dictionary of signal values in which the
              ``randomization_id`` key holds the randomization ID.

        Returns:
          A ServerConfig object.

        Raises:
          FailedPreconditionError: If no template has been loaded or set.
        """
        with self._lock:
            template = self._cache
        if template is None:
            raise exceptions.FailedPreconditionError(
                'No Remote Config Server template in cache. '
                'Call load() or set() before calling evaluate().')
        if not isinstance(context, EvaluationContext):
            context = EvaluationContext.from_dict(context)

        # Initializes config Value objects with default values.
        config_values = {
            key: Value('default', value)
            for key, value in self._stringified_default_config.items()
        }
        evaluated_conditions = self._evaluator.evaluate_conditions(template.conditions, context)
        _resolve_parameters(template, evaluated_conditions, config_values)
        return ServerConfig(config_values=config_values)

    def to_json(self) -> str:
        """Provides the server template in a JSON format to be used for initialization later."""
        with self._lock:
            template = self._cache
        if template is None:
            raise exceptions.FailedPreconditionError(
                'No Remote Config Server template in cache. '
                'Call load() or set() before calling to_json().')
        return template.template_data_json


def _resolve_parameters(template: ServerTemplateData, evaluated_conditions: Dict[str, bool],
                        config_values: Dict[str, Value]):
    """Overlays config Value objects derived by evaluating the template."""
    for key, parameter in template.parameters.items():
        parameter_value = None
        # Iterates in order over the declared conditions. The first true condition that has a
        # value for this parameter wins.
        for condition in template.conditions:
            if (evaluated_conditions.get(condition.name)
                    and condition.name in parameter.conditional_values):
                parameter_value = parameter.conditional_values[condition.name]
                break

        if parameter_value is None:
            parameter_value = parameter.default_value
        if parameter_value is None:
            logger.debug("No default value found for key '%s'", key)
            continue
        if isinstance(parameter_value, InAppDefaultValue):
            logger.debug("Using in-app default value for key '%s'", key)
            continue
        if isinstance(parameter_value, ExplicitParameterValue):
            config_values[key] = Value('remote', parameter_value.value)


def _stringify(value) -> str:
    if isinstance(value, bool):
        return 'true' if value else 'false'
    return str(value)


class ServerConfig:
    """Represents a Remote Config Server Side Config."""
    def __init__(self, config_values: Dict[str, Value]):
        self._config_values = config_values # dictionary of param key to values

    def get_boolean(self, key: str) -> bool:
        """Returns the value as a boolean."""
        return self.get_value(key).as_boolean()

    def get_string(self, key: str) -> str:
        """Returns the value as a string."""
        return self.get_value(key).as_string()

    def get_number(self, key: str) -> float:
        """Returns the value as a number."""
        return self.get_value(key).as_number()

    def get_int(self, key: str) -> int:
        """Returns the value as an integer."""
        return self.get_value(key).as_int()

    def get_float(self, key: str) -> float:
        """Returns the value as a float."""
        return self.get_value(key).as_float()

    def get_value_source(self, key: str) -> ValueSource:
        """Returns the source of the value."""
        return self.get_value(key).get_source()

    def get_value(self, key: str) -> Value:
        """Returns the ``Value`` for the given key.

        Keys that are not in the config yield a static, empty value instead of an error, so
        application logic keeps working when a parameter is removed remotely.
        """
        return self._config_values.get(key, Value('static'))

    def get_all(self) -> Dict[str, Value]:
        """Returns a copy of all the values in this config, keyed by parameter name."""
        return dict(self._config_values)

    def serialize_for_client(self) -> Dict[str, Any]:
        """Returns a JSON-serializable representation of this config, in the fetch response
        format consumed by the Remote Config web client SDKs."""
        return FetchResponse.from_config(self).to_dict()


class FetchResponse:
    """JSON-serializable representation of evaluated config values.

    The ``etag`` is a randomly generated token that differs between serializations. It is not
    the etag of the evaluated template.
    """
    STATUS_OK = 200

    def __init__(self, config: Dict[str, str], etag: Optional[str] = None,
                 status: int = STATUS_OK):
        self.status = status
        self.etag = etag if etag is not None else _generate_etag()
        self.config = config

    @classmethod
    def from_config(cls, server_config: ServerConfig) -> 'FetchResponse':
        config = {
            key: value.as_string() for key, value in server_config.get_all().items()
        }
        return cls(config)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'status': self.status,
            'e_tag': self.etag,
            'config': dict(self.config),
        }


def _generate_etag() -> str:
    return f'etag-{random.randrange(10 ** 14)}'


async def get_server_template(loader: TemplateLoader,
                              default_config: Optional[DefaultConfig] = None) -> ServerTemplate:
    """Initializes a new ServerTemplate instance and loads the server template.

    Args:
        loader: A callable that returns template data.
        default_config: The default config to be used in the evaluated config.

    Returns:
        ServerTemplate: An object having the cached server template to be used for evaluation.
    """
    template = init_server_template(default_config=default_config, loader=loader)
    await template.load()
    return template


def init_server_template(default_config: Optional[DefaultConfig] = None,
                         template_data_json: Optional[ServerTemplateDataType] = None,
                         loader: Optional[TemplateLoader] = None) -> ServerTemplate:
    """Initializes a new ServerTemplate instance.

    Args:
        default_config: The default config to be used in the evaluated config.
        template_data_json: An optional template data JSON to be set on initialization. Parsed
            template data is accepted as well.
        loader: An optional callable that returns template data, used by ``load()``.

    Returns:
        ServerTemplate: A new ServerTemplate instance initialized with an optional
        template and config.
    """
    return ServerTemplate(default_config=default_config, template_data=template_data_json,
                          loader=loader)
