# Copyright 2024 inuex35
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

"""Hierarchical, string-keyed configuration store with live value handles"""

import logging
from typing import Any, Callable, Optional

from .exceptions import ConfigurationError, ConsistencyError

logger = logging.getLogger(__name__)

_MISSING = object()

_TRUE_STRINGS = ('true', '1', 'yes', 'on')
_FALSE_STRINGS = ('false', '0', 'no', 'off')


def _split_path(key: str) -> tuple:
    return tuple(part for part in key.strip().split('/') if part)


def _to_bool(value, key: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    text = str(value).strip().lower()
    if text in _TRUE_STRINGS:
        return True
    if text in _FALSE_STRINGS:
        return False
    raise ConfigurationError(f"Value '{value}' of '{key}' is not a bool")


def _to_float(value, key: str) -> float:
    if isinstance(value, bool):
        return float(value)
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"Value '{value}' of '{key}' is not a number") from None


def _to_int(value, key: str) -> int:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError:
        raise ConfigurationError(f"Value '{value}' of '{key}' is not an integer") from None


def _to_str(value, key: str) -> str:
    if isinstance(value, bool):
        return 'true' if value else 'false'
    return str(value)


_CONVERTERS = {
    bool: _to_bool,
    float: _to_float,
    int: _to_int,
    str: _to_str,
}


class ValueHandle:
    """Live reference to a single configuration value.

    A handle reads its value on every ``get`` and, if it is updateable,
    writes through to the store it was created from. Handles created from
    a default value are constant and not updateable.
    """

    def __init__(self, key: str, getter: Callable[[], Any],
                 setter: Optional[Callable[[Any], None]] = None):
        self.key = key
        self._getter = getter
        self._setter = setter

    def get(self):
        return self._getter()

    def is_updateable(self) -> bool:
        return self._setter is not None

    def update(self, value):
        if self._setter is None:
            raise ConsistencyError(f"Value handle '{self.key}' is not updateable")
        self._setter(value)

    @classmethod
    def constant(cls, key: str, value) -> 'ValueHandle':
        return cls(key, lambda: value)

    def __repr__(self):
        return f"ValueHandle({self.key}={self.get()!r}, updateable={self.is_updateable()})"


class ValueStore:
    """
    Hierarchical configuration source backed by nested dictionaries.

    Keys are names or ``/`` separated paths. Children returned by
    ``get_child`` are views sharing the same underlying data, so updates
    through value handles are visible from every view.

    Parameters
    ----------
    data : dict, optional
        Nested configuration dictionary (used by reference)
    read_only : bool
        If True, no value handle of this store is updateable

    Examples
    --------
    >>> vs = ValueStore.from_string("a{used=true,translation{x=0,y=5,z=0}}")
    >>> vs.get_child("a").get_double("translation/y")
    5.0
    """

    def __init__(self, data: Optional[dict] = None, read_only: bool = False,
                 _prefix: tuple = ()):
        self._root = data if data is not None else {}
        self._prefix = _prefix
        self.read_only = read_only

    @classmethod
    def from_dict(cls, data: dict, read_only: bool = False) -> 'ValueStore':
        return cls(data, read_only=read_only)

    @classmethod
    def from_string(cls, text: str, read_only: bool = False) -> 'ValueStore':
        """Parse the compact ``name{key=value,child/key=value}`` notation"""
        return cls(_Parser(text).parse(), read_only=read_only)

    @property
    def path(self) -> str:
        return '/'.join(self._prefix)

    def _full_key(self, key: str) -> str:
        return '/'.join(self._prefix + _split_path(key))

    def _lookup(self, key: str):
        node = self._root
        for part in self._prefix + _split_path(key):
            if not isinstance(node, dict) or part not in node:
                return _MISSING
            node = node[part]
        return node

    def _assign(self, key: str, value):
        parts = self._prefix + _split_path(key)
        node = self._root
        for part in parts[:-1]:
            node = node[part]
        node[parts[-1]] = value

    def has_key(self, key: str) -> bool:
        return self._lookup(key) is not _MISSING

    def get_child(self, name: str) -> 'ValueStore':
        return ValueStore(self._root, self.read_only, self._prefix + _split_path(name))

    def keys(self) -> list:
        node = self._lookup('')
        return list(node.keys()) if isinstance(node, dict) else []

    def _get(self, key: str, kind, default):
        value = self._lookup(key)
        if value is _MISSING:
            if default is _MISSING:
                raise ConfigurationError(f"Missing configuration key '{self._full_key(key)}'")
            return default
        if isinstance(value, dict):
            raise ConfigurationError(f"Configuration key '{self._full_key(key)}' is not a value")
        return _CONVERTERS[kind](value, self._full_key(key))

    def get_bool(self, key: str, default=_MISSING) -> bool:
        return self._get(key, bool, default)

    def get_double(self, key: str, default=_MISSING) -> float:
        return self._get(key, float, default)

    def get_int(self, key: str, default=_MISSING) -> int:
        return self._get(key, int, default)

    def get_string(self, key: str, default=_MISSING) -> str:
        return self._get(key, str, default)

    def get_handle(self, key: str, kind=float, default=_MISSING) -> ValueHandle:
        """
        Get a live handle to a value.

        Parameters
        ----------
        key : str
            Key or path relative to this store
        kind : type
            One of bool, float, int, str
        default : optional
            Value of a constant handle used if the key is missing

        Returns
        -------
        ValueHandle
            Updateable if the key exists and the store is writable

        Raises
        ------
        ConfigurationError
            If the key is missing and no default is given
        """
        full_key = self._full_key(key)
        if not self.has_key(key):
            if default is _MISSING:
                raise ConfigurationError(f"Missing configuration key '{full_key}'")
            return ValueHandle.constant(full_key, default)

        def getter():
            return self._get(key, kind, _MISSING)

        setter = None if self.read_only else (lambda value: self._assign(key, value))
        return ValueHandle(full_key, getter, setter)

    def to_dict(self) -> dict:
        node = self._lookup('')
        return dict(node) if isinstance(node, dict) else {}

    def __repr__(self):
        return f"ValueStore(path='{self.path}', read_only={self.read_only})"


def _merge_into(target: dict, path: tuple, value):
    node = target
    for part in path[:-1]:
        child = node.get(part)
        if not isinstance(child, dict):
            child = node[part] = {}
        node = child
    last = path[-1]
    if isinstance(value, dict) and isinstance(node.get(last), dict):
        for key, sub in value.items():
            _merge_into(node[last], (key,), sub)
    else:
        node[last] = value


class _Parser:
    """Recursive descent parser for the compact configuration notation"""

    SEPARATORS = ',;\n\r\t '
    NAME_END = '={},;\n\r'
    VALUE_END = '{},;\n\r'

    def __init__(self, text: str):
        self.text = text
        self.pos = 0

    def _peek(self) -> str:
        return self.text[self.pos] if self.pos < len(self.text) else ''

    def _error(self, message: str):
        raise ConfigurationError(f"{message} at position {self.pos} of '{self.text}'")

    def parse(self) -> dict:
        result = self._parse_items()
        if self.pos < len(self.text):
            self._error("Unexpected '}'")
        return result

    def _parse_items(self) -> dict:
        items = {}
        while True:
            while self._peek() and self._peek() in self.SEPARATORS:
                self.pos += 1
            char = self._peek()
            if not char or char == '}':
                return items
            name = self._read_until(self.NAME_END).strip()
            path = _split_path(name)
            if not path:
                self._error("Expected a name")
            char = self._peek()
            if char == '=':
                self.pos += 1
                _merge_into(items, path, self._read_value())
            elif char == '{':
                self.pos += 1
                child = self._parse_items()
                if self._peek() != '}':
                    self._error("Missing '}'")
                self.pos += 1
                _merge_into(items, path, child)
            else:
                self._error(f"Expected '=' or '{{' after '{name}'")

    def _read_until(self, stops: str) -> str:
        start = self.pos
        while self._peek() and self._peek() not in stops:
            self.pos += 1
        return self.text[start:self.pos]

    def _read_value(self) -> str:
        while self._peek() in (' ', '\t'):
            self.pos += 1
        if self._peek() == '"':
            end = self.text.find('"', self.pos + 1)
            if end < 0:
                self._error("Unterminated quoted value")
            value = self.text[self.pos + 1:end]
            self.pos = end + 1
            return value
        return self._read_until(self.VALUE_END).strip()
