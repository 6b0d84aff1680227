"""Helpers behind the command-line flags: key/value lists, flow control, batches."""

from __future__ import annotations

import os
import re
from pathlib import Path

from .requests import ValidationError

_SERVICE_ACCOUNT_TOKEN = Path("/var/run/secrets/kubernetes.io/serviceaccount/token")
_DECIMAL_RE = re.compile(r"[+-]?[0-9]+")


def _atoi(text: str) -> int:
    if not _DECIMAL_RE.fullmatch(text):
        raise ValueError(f"invalid syntax: {text!r}")
    return int(text)


def key_values_map(items: list[str]) -> dict[str, list[str]]:
    """Turn ``key=value[,value]`` items into a mapping of key to values."""
    result: dict[str, list[str]] = {}
    for item in items:
        key, sep, values = item.partition("=")
        if not sep:
            raise ValidationError(f"expected key=value[,value] format, but got {item}")
        result[key] = values.split(",")
    return result


def key_value_map(items: list[str]) -> dict[str, str]:
    """Turn ``key=value`` items into a mapping of key to value."""
    result: dict[str, str] = {}
    for item in items:
        key, sep, value = item.partition("=")
        if not sep:
            raise ValidationError(f"expected key=value format, but got {item}")
        result[key] = value
    return result


def in_cluster() -> bool:
    """Return True when running inside a pod with a service account token."""
    try:
        if not _SERVICE_ACCOUNT_TOKEN.exists() or _SERVICE_ACCOUNT_TOKEN.is_dir():
            return False
    except OSError:
        return False
    return bool(os.environ.get("KUBERNETES_SERVICE_HOST")) and bool(
        os.environ.get("KUBERNETES_SERVICE_PORT")
    )


def _home_dir() -> str:
    home = os.environ.get("HOME", "")
    if home:
        return home
    if os.name == "nt":
        profile = os.environ.get("USERPROFILE", "")
        if profile:
            return profile
        drive, path = os.environ.get("HOMEDRIVE", ""), os.environ.get("HOMEPATH", "")
        if drive and path:
            return drive + path
    return ""


def default_kubeconfig_path() -> str:
    """Return ~/.kube/config outside a cluster, or an empty string."""
    if in_cluster():
        return ""
    home = _home_dir()
    if not home:
        return ""
    return os.path.join(home, ".kube", "config")


def parse_flow_control(value: str) -> tuple[str, int]:
    """Split ``PriorityLevel:MatchingPrecedence`` into a name and an integer."""
    level, sep, precedence = value.partition(":")
    if not sep or not level or not precedence:
        raise ValidationError(
            f"expected PriorityLevel:MatchingPrecedence format, but got {value}"
        )
    try:
        return level, _atoi(precedence)
    except ValueError as exc:
        raise ValidationError(
            f"failed to parse matchingPrecedence into int: {exc}"
        ) from exc


def parse_verbosity(value: str) -> int:
    """Return the log level given to -v; it must be a non-negative integer."""
    try:
        level = _atoi(value)
    except ValueError:
        level = -1
    if level < 0:
        raise ValidationError(
            f'invalid value "{value}" for flag -v: value must be a non-negative integer'
        )
    return level


def plan_nodepool_batches(
    prefix: str, total_nodes: int, batch_size: int
) -> list[tuple[str, int]]:
    """Split total_nodes into named node pools of at most batch_size nodes each."""
    name = prefix.strip()
    if not name:
        raise ValidationError("nodepool name prefix should not be empty")
    if batch_size <= 0:
        raise ValidationError("batch-size must be greater than zero")
    return [
        (f"{name}-{start // batch_size}", min(batch_size, total_nodes - start))
        for start in range(0, total_nodes, batch_size)
    ]