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

"""Internal representation of a single resolved Remote Config value."""

import math
from typing import Literal

ValueSource = Literal['default', 'remote', 'static']


class Value:
    """Represents a value fetched from Remote Config.

    Wraps the string representation of a parameter value together with its source, and
    provides type-safe getters that never raise.
    """
    DEFAULT_VALUE_FOR_BOOLEAN = False
    DEFAULT_VALUE_FOR_STRING = ''
    DEFAULT_VALUE_FOR_NUMBER = 0
    DEFAULT_VALUE_FOR_INTEGER = 0
    DEFAULT_VALUE_FOR_FLOAT_NUMBER = 0.0
    BOOLEAN_TRUTHY_VALUES = frozenset(['1', 'true', 't', 'yes', 'y', 'on'])

    def __init__(self, source: ValueSource, value: str = DEFAULT_VALUE_FOR_STRING):
        """Initializes a Value instance.

        Args:
          source: The source of the value (e.g., 'default', 'remote', 'static').
          "static" indicates the value was defined by a static constant.
          "default" indicates the value was defined by default config.
          "remote" indicates the value was defined by config produced by evaluating a template.
          value: The string value.
        """
        self._source = source
        self._value = value

    def as_string(self) -> str:
        """Returns the value as a string."""
        return str(self._value)

    def as_boolean(self) -> bool:
        """Returns the value as a boolean.

        The values "1", "true", "t", "yes", "y" and "on" (case insensitive) are true, all other
        values are false.
        """
        return str(self._value).lower() in self.BOOLEAN_TRUTHY_VALUES

    def as_number(self) -> float:
        """Returns the value as a number, or 0 if the value is not numeric."""
        try:
            number = float(self._value)
        except (TypeError, ValueError):
            return self.DEFAULT_VALUE_FOR_NUMBER
        if math.isnan(number):
            return self.DEFAULT_VALUE_FOR_NUMBER
        return number

    def as_int(self) -> int:
        """Returns the value as an integer, or 0 if the value is not an integer."""
        try:
            return int(self._value)
        except (TypeError, ValueError):
            return self.DEFAULT_VALUE_FOR_INTEGER

    def as_float(self) -> float:
        """Returns the value as a float, or 0.0 if the value is not numeric."""
        number = self.as_number()
        return float(number) if number else self.DEFAULT_VALUE_FOR_FLOAT_NUMBER

    def get_source(self) -> ValueSource:
        """Returns the source of the value."""
        return self._source

    def __repr__(self):
        return f'Value(source={self._source!r}, value={self._value!r})'
