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

"""Tests for rc_evaluator._value."""
import pytest

from rc_evaluator._value import Value


class TestValue:

    @pytest.mark.parametrize('raw', ['1', 'true', 'TRUE', 't', 'Yes', 'y', 'On'])
    def test_as_boolean_true(self, raw):
        assert Value('remote', raw).as_boolean() is True

    @pytest.mark.parametrize('raw', ['nope', '0', 'false', '', ' true', '2'])
    def test_as_boolean_false(self, raw):
        assert Value('remote', raw).as_boolean() is False

    def test_unset_defaults(self):
        value = Value('static')
        assert value.as_string() == ''
        assert value.as_boolean() is False
        assert value.as_number() == 0
        assert value.as_int() == 0
        assert value.as_float() == 0.0
        assert value.get_source() == 'static'

    @pytest.mark.parametrize('raw, expected', [
        ('12', 12),
        ('-3.5', -3.5),
        ('1e3', 1000),
        (' 7 ', 7),
        ('abc', 0),
        ('nan', 0),
        ('', 0),
    ])
    def test_as_number(self, raw, expected):
        assert Value('remote', raw).as_number() == expected

    @pytest.mark.parametrize('raw, expected', [
        ('12', 12),
        ('12.5', 0),
        ('abc', 0),
    ])
    def test_as_int(self, raw, expected):
        assert Value('default', raw).as_int() == expected

    def test_as_float(self):
        assert Value('default', '2.5').as_float() == 2.5
        assert isinstance(Value('default', '2').as_float(), float)

    def test_as_string(self):
        assert Value('default', 'corgi').as_string() == 'corgi'
        assert Value('remote', '{"a": 1}').as_string() == '{"a": 1}'

    def test_get_source(self):
        assert Value('default', 'x').get_source() == 'default'
        assert Value('remote', 'x').get_source() == 'remote'
