"""Request kinds that make up a weighted load profile, with validation."""

from __future__ import annotations

import json
from dataclasses import dataclass, field, fields
from typing import Any, Mapping


class ValidationError(ValueError):
    """Raised when a profile value is missing, malformed or out of range."""


class ContentType(str):
    """Format of the responses requested from the API server."""

    JSON: "ContentType"
    PROTOBUF: "ContentType"

    def validate(self) -> None:
        """Raise ValidationError unless this is a supported content type."""
        if self not in _CONTENT_TYPES:
            raise ValidationError(f"unsupported content type {self}")


ContentType.JSON = ContentType("json")
ContentType.PROTOBUF = ContentType("protobuf")
_CONTENT_TYPES = frozenset({ContentType.JSON, ContentType.PROTOBUF})

_PATCH_TYPES = {
    "json": "application/json-patch+json",
    "merge": "application/merge-patch+json",
    "strategic-merge": "application/strategic-merge-patch+json",
}


def get_patch_type(patch_type: str) -> str | None:
    """Return the media type for a patch type name, or None if it is unknown."""
    return _PATCH_TYPES.get(patch_type)


def _opt(default: Any, *, key: str | None = None, kind: type = str) -> Any:
    return field(default=default, metadata={"key": key, "kind": kind})


def _coerce(value: Any, kind: type, where: str) -> Any:
    if kind is bool:
        if isinstance(value, bool):
            return value
    elif isinstance(value, bool):
        if kind is str:
            return "true" if value else "false"
    elif kind is int:
        if isinstance(value, int):
            return value
        if isinstance(value, float) and value.is_integer():
            return int(value)
    elif kind is float:
        if isinstance(value, (int, float)):
            return float(value)
    elif kind is str:
        if isinstance(value, str):
            return value
        if isinstance(value, (int, float)):
            return str(value)
    raise ValidationError(f"{where}: cannot use {value!r} as {kind.__name__}")


def _from_mapping(cls: type, data: Any, where: str) -> Any:
    if not isinstance(data, Mapping):
        raise ValidationError(f"{where}: expected a mapping, got {type(data).__name__}")
    kwargs = {}
    for f in fields(cls):
        key = f.metadata.get("key") or f.name
        value = data.get(key)
        if value is None:
            continue
        kwargs[f.name] = _coerce(value, f.metadata.get("kind", str), f"{where}.{key}")
    return cls(**kwargs)


def _is_valid_json(text: str) -> bool:
    def reject(constant: str) -> None:
        raise ValueError(constant)

    try:
        json.loads(text, parse_constant=reject)
    except ValueError:
        return False
    return True


@dataclass
class KubeGroupVersionResource:
    """Identifies a resource URI by group, version and resource."""

    group: str = ""
    version: str = ""
    resource: str = ""

    def validate(self) -> None:
        """Require version and resource to be set."""
        if not self.version:
            raise ValidationError("version is required")
        if not self.resource:
            raise ValidationError("resource is required")

    def _validate_metadata(self) -> None:
        try:
            KubeGroupVersionResource.validate(self)
        except ValidationError as exc:
            raise ValidationError(f"kube metadata: {exc}") from exc


@dataclass
class RequestGet(KubeGroupVersionResource):
    """GET request for one object."""

    namespace: str = ""
    name: str = ""

    def validate(self) -> None:
        self._validate_metadata()
        if not self.name:
            raise ValidationError("name is required")


@dataclass
class RequestList(KubeGroupVersionResource):
    """LIST request for a set of objects."""

    namespace: str = ""
    limit: int = _opt(0, kind=int)
    selector: str = ""
    field_selector: str = _opt("", key="fieldSelector")

    def validate(self, stale: bool) -> None:
        """Validate; a stale list must not ask for pagination."""
        self._validate_metadata()
        if self.limit < 0:
            raise ValidationError("limit must >= 0")
        if stale and self.limit != 0:
            raise ValidationError("stale list doesn't support pagination option")


@dataclass
class RequestWatchList(KubeGroupVersionResource):
    """Streaming list of objects through the watch-list feature."""

    namespace: str = ""
    selector: str = ""
    field_selector: str = _opt("", key="fieldSelector")

    def validate(self) -> None:
        self._validate_metadata()


@dataclass
class RequestPut(KubeGroupVersionResource):
    """PUT request writing randomly named objects of a given size."""

    namespace: str = ""
    name: str = ""
    key_space_size: int = _opt(0, key="keySpaceSize", kind=int)
    value_size: int = _opt(0, key="valueSize", kind=int)

    def validate(self) -> None:
        self._validate_metadata()
        if not self.name:
            raise ValidationError("name pattern is required")
        if self.key_space_size <= 0:
            raise ValidationError("keySpaceSize must > 0")
        if self.value_size <= 0:
            raise ValidationError("valueSize must > 0")


@dataclass
class RequestPatch(KubeGroupVersionResource):
    """PATCH request updating randomly chosen objects."""

    namespace: str = ""
    name: str = ""
    key_space_size: int = _opt(0, key="keySpaceSize", kind=int)
    patch_type: str = _opt("", key="patchType")
    body: str = ""

    def validate(self) -> None:
        """Validate and store the body with surrounding whitespace removed."""
        self._validate_metadata()
        if not self.name:
            raise ValidationError("name is required")
        if not self.body:
            raise ValidationError("body is required")
        if get_patch_type(self.patch_type) is None:
            raise ValidationError(
                f"unknown patch type: {self.patch_type} "
                "(valid types: json, merge, strategic-merge)"
            )
        trimmed = self.body.strip()
        if not _is_valid_json(trimmed):
            raise ValidationError(f"invalid JSON in patch body: {json.dumps(self.body)}")
        self.body = trimmed


@dataclass
class RequestGetPodLog:
    """Request streaming the log of one pod."""

    namespace: str = ""
    name: str = ""
    container: str = ""
    tail_lines: int | None = _opt(None, key="tailLines", kind=int)
    limit_bytes: int | None = _opt(None, key="limitBytes", kind=int)

    def validate(self) -> None:
        if not self.namespace:
            raise ValidationError("namespace is required")
        if not self.name:
            raise ValidationError("name is required")


@dataclass
class RequestPostDel(KubeGroupVersionResource):
    """Create objects and delete a share of them afterwards."""

    namespace: str = ""
    delete_ratio: float = _opt(0.0, key="deleteRatio", kind=float)

    def validate(self) -> None:
        self._validate_metadata()
        if self.delete_ratio < 0 or self.delete_ratio > 0.5:
            raise ValidationError(
                f"delete ratio must be between 0 and 0.5: {self.delete_ratio}, "
                "create proportion should be greater than delete"
            )


_REQUEST_KINDS = (
    ("staleList", "stale_list", RequestList),
    ("quorumList", "quorum_list", RequestList),
    ("watchList", "watch_list", RequestWatchList),
    ("staleGet", "stale_get", RequestGet),
    ("quorumGet", "quorum_get", RequestGet),
    ("put", "put", RequestPut),
    ("patch", "patch", RequestPatch),
    ("getPodLog", "get_pod_log", RequestGetPodLog),
    ("postDel", "post_del", RequestPostDel),
)


@dataclass
class WeightedRequest:
    """A request with its weight; only one request kind should be set."""

    shares: int = 0
    stale_list: RequestList | None = None
    quorum_list: RequestList | None = None
    watch_list: RequestWatchList | None = None
    stale_get: RequestGet | None = None
    quorum_get: RequestGet | None = None
    put: RequestPut | None = None
    patch: RequestPatch | None = None
    get_pod_log: RequestGetPodLog | None = None
    post_del: RequestPostDel | None = None

    def validate(self) -> None:
        """Validate the shares and the first request kind that is set."""
        if self.shares < 0:
            raise ValidationError(f"shares({self.shares}) requires >= 0")
        if self.stale_list is not None:
            self.stale_list.validate(True)
        elif self.quorum_list is not None:
            self.quorum_list.validate(False)
        elif self.watch_list is not None:
            self.watch_list.validate()
        elif self.stale_get is not None:
            self.stale_get.validate()
        elif self.quorum_get is not None:
            self.quorum_get.validate()
        elif self.put is not None:
            self.put.validate()
        elif self.patch is not None:
            self.patch.validate()
        elif self.get_pod_log is not None:
            self.get_pod_log.validate()
        elif self.post_del is not None:
            self.post_del.validate()
        else:
            raise ValidationError("empty request value")


def parse_weighted_request(data: Any) -> WeightedRequest:
    """Build a WeightedRequest from a decoded YAML or JSON mapping."""
    if not isinstance(data, Mapping):
        raise ValidationError(f"request: expected a mapping, got {type(data).__name__}")
    kwargs: dict[str, Any] = {}
    shares = data.get("shares")
    if shares is not None:
        kwargs["shares"] = _coerce(shares, int, "shares")
    for key, attr, cls in _REQUEST_KINDS:
        value = data.get(key)
        if value is not None:
            kwargs[attr] = _from_mapping(cls, value, key)
    return WeightedRequest(**kwargs)