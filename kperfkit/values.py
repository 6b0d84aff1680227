"""Chart values: merging, copying and overriding by path or YAML."""

from __future__ import annotations

import copy
import json
import re
from typing import Any, Callable

import yaml

ValuesApplier = Callable[[dict], None]

_MAX_INDEX = 65536
_INT_RE = re.compile(r"[+-]?[0-9]+")


def apply_values(to: dict, source: dict) -> None:
    """Merge source into to; nested mappings merge, anything else replaces."""
    for key, value in source.items():
        if key not in to:
            to[key] = value
            continue
        current = to[key]
        if isinstance(value, dict) and isinstance(current, dict):
            apply_values(current, value)
        else:
            to[key] = value


def copy_values(values: dict) -> dict:
    """Return an independent copy of values through a JSON round trip."""
    try:
        data = json.dumps(values)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"failed to encode original values: {exc}") from exc
    copied = json.loads(data)
    if copied is None:
        return {}
    if not isinstance(copied, dict):
        raise ValueError("failed to copy values: not a mapping")
    return copied


def _typed(text: str) -> Any:
    lowered = text.lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    if lowered == "null":
        return None
    if len(text) > 1 and text[0] == "0":
        return text
    if _INT_RE.fullmatch(text):
        number = int(text)
        if -(2**63) <= number < 2**63:
            return number
    return text


class _Scanner:
    def __init__(self, text: str) -> None:
        self._text = text
        self._pos = 0

    def peek(self) -> str | None:
        return self._text[self._pos] if self._pos < len(self._text) else None

    def advance(self) -> None:
        self._pos += 1

    def at_end(self) -> bool:
        return self._pos >= len(self._text)

    def read_until(self, stops: str) -> tuple[str, str | None]:
        chars: list[str] = []
        while self._pos < len(self._text):
            ch = self._text[self._pos]
            self._pos += 1
            if ch == "\\" and self._pos < len(self._text):
                chars.append(self._text[self._pos])
                self._pos += 1
                continue
            if ch in stops:
                return "".join(chars), ch
            chars.append(ch)
        return "".join(chars), None


def _set_item(items: list, idx: int, value: Any) -> None:
    if idx >= len(items):
        items.extend([None] * (idx + 1 - len(items)))
    items[idx] = value


class _StringPathParser:
    def __init__(self, text: str) -> None:
        self._scan = _Scanner(text)

    def parse_into(self, target: dict) -> None:
        while self._assign(target):
            pass

    def _assign(self, data: dict) -> bool:
        key, stop = self._scan.read_until("=[,.")
        if stop is None:
            if key:
                raise ValueError(f"key {key!r} has no value")
            return False
        if stop == ",":
            raise ValueError(f"key {key!r} has no value (cannot end with ,)")
        if not key:
            raise ValueError(f"key is missing before {stop!r}")
        if stop == "=":
            value, more = self._value()
            data[key] = value
            return more
        if self._scan.at_end():
            raise ValueError(f"key {key!r} has no value")
        if stop == ".":
            child = data.get(key)
            if not isinstance(child, dict):
                child = {}
                data[key] = child
            return self._assign(child)
        existing = data.get(key)
        items = existing if isinstance(existing, list) else []
        data[key] = items
        return self._list_item(items, self._index())

    def _index(self) -> int:
        text, stop = self._scan.read_until("]")
        if stop is None:
            raise ValueError(f"missing ']' after index {text!r}")
        try:
            idx = int(text)
        except ValueError as exc:
            raise ValueError(f"invalid list index {text!r}") from exc
        if idx < 0:
            raise ValueError(f"negative {idx} index not allowed")
        if idx > _MAX_INDEX:
            raise ValueError(
                f"index of {idx} is greater than maximum supported index {_MAX_INDEX}"
            )
        return idx

    def _list_item(self, items: list, idx: int) -> bool:
        ch = self._scan.peek()
        if ch is None:
            raise ValueError(f"list item {idx} has no value")
        self._scan.advance()
        current = items[idx] if idx < len(items) else None
        if ch == "=":
            value, more = self._value()
            _set_item(items, idx, value)
            return more
        if ch == ".":
            child = current if isinstance(current, dict) else {}
            _set_item(items, idx, child)
            return self._assign(child)
        if ch == "[":
            inner = current if isinstance(current, list) else []
            _set_item(items, idx, inner)
            return self._list_item(inner, self._index())
        raise ValueError(f"unexpected {ch!r} after list index {idx}")

    def _value(self) -> tuple[Any, bool]:
        if self._scan.peek() != "{":
            text, stop = self._scan.read_until(",")
            return _typed(text), stop == ","
        self._scan.advance()
        values: list[Any] = []
        if self._scan.peek() == "}":
            self._scan.advance()
        else:
            while True:
                text, stop = self._scan.read_until(",}")
                if stop is None:
                    raise ValueError("list value is missing '}'")
                values.append(_typed(text))
                if stop == "}":
                    break
        following = self._scan.peek()
        if following is None:
            return values, False
        if following == ",":
            self._scan.advance()
            return values, True
        raise ValueError(f"unexpected {following!r} after list value")


def parse_string_path_into(assignment: str, target: dict) -> None:
    """Parse assignments like ``a.b=1,c[0]=x,d={y,z}`` into target."""
    _StringPathParser(assignment).parse_into(target)


def string_path_values_applier(*args: str) -> ValuesApplier:
    """Return an applier that sets each path assignment in turn."""

    def apply(to: dict) -> None:
        for assignment in args:
            try:
                parse_string_path_into(assignment, to)
            except ValueError as exc:
                raise ValueError(f"failed to parse ({assignment}) into values: {exc}") from exc

    return apply


def yaml_values_applier(yaml_values: str) -> ValuesApplier:
    """Return an applier that merges the given YAML mapping."""
    try:
        loaded = yaml.safe_load(yaml_values)
    except yaml.YAMLError as exc:
        raise ValueError(f"invalid YAML values: {exc}") from exc
    if loaded is None:
        loaded = {}
    if not isinstance(loaded, dict):
        raise ValueError(f"YAML values must be a mapping, got {type(loaded).__name__}")

    def apply(to: dict) -> None:
        apply_values(to, copy.deepcopy(loaded))

    return apply


def build_values(defaults: dict, *args: ValuesApplier) -> dict:
    """Apply the appliers to a copy of defaults and return it."""
    values = copy_values(defaults)
    for applier in args:
        try:
            applier(values)
        except ValueError as exc:
            raise ValueError(f"failed to apply: {exc}") from exc
    return values