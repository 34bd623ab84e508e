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

"""Remote Config evaluator exceptions module.

This module defines the exception types raised by the evaluator, and the error codes they carry.
The codes follow the platform-wide error codes outlined in
https://cloud.google.com/apis/design/errors.

:class:`RemoteConfigError` is the parent class of all exceptions raised by this package. It
contains the ``code`` and ``cause`` properties common to all exception types. Each exception also
carries a message that outlines what went wrong.

Condition evaluation itself never raises. Malformed or unrecognized conditions evaluate to
``False``, and values that cannot be coerced to the requested type fall back to a default. The
exceptions below signal incorrect usage of the API (for example evaluating a template before one
has been loaded) or template data that cannot be parsed at all.
"""


INVALID_ARGUMENT = 'INVALID_ARGUMENT'

FAILED_PRECONDITION = 'FAILED_PRECONDITION'

UNKNOWN = 'UNKNOWN'


class RemoteConfigError(Exception):
    """Base class for all errors raised by the Remote Config evaluator.

    Args:
        code: A string error code that represents the type of the exception.
        message: A human-readable error message string.
        cause: The exception that caused this error (optional).
    """

    def __init__(self, code, message, cause=None):
        Exception.__init__(self, message)
        self._code = code
        self._cause = cause

    @property
    def code(self):
        return self._code

    @property
    def cause(self):
        return self._cause


class InvalidArgumentError(RemoteConfigError, ValueError):
    """Client specified an invalid argument, such as malformed template data."""

    def __init__(self, message, cause=None):
        RemoteConfigError.__init__(self, INVALID_ARGUMENT, message, cause)


class FailedPreconditionError(RemoteConfigError, ValueError):
    """Operation can not be executed in the current state, such as evaluating a server template
    before a template has been loaded or set."""

    def __init__(self, message, cause=None):
        RemoteConfigError.__init__(self, FAILED_PRECONDITION, message, cause)


class UnknownError(RemoteConfigError):
    """Unknown error, such as an unexpected failure raised by a template loader."""

    def __init__(self, message, cause=None):
        RemoteConfigError.__init__(self, UNKNOWN, message, cause)
