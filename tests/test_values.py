import pytest

from kperfkit.values import (
    apply_values,
    build_values,
    copy_values,
    parse_string_path_into,
    string_path_values_applier,
    yaml_values_applier,
)


@pytest.mark.parametrize(
    "source, to, expected",
    [
        (
            {"foo": "bar1", "baz": {"name": "alice"}},
            {"foo": "bar2", "baz": {"name": "bob", "age": "18"}},
            {"foo": "bar1", "baz": {"name": "alice", "age": "18"}},
        ),
        (
            {"foo": "bar1", "baz": "profile"},
            {"foo": "bar1", "baz": {"name": "alice"}},
            {"foo": "bar1", "baz": "profile"},
        ),
        (
            {"foo": "bar1", "baz": {"name": "alice"}},
            {"version": "alpha"},
            {"foo": "bar1", "baz": {"name": "alice"}, "version": "alpha"},
        ),
        (
            {"baz": {"name": {"last": "unknown", "first": "bob"}}, "version": "beta"},
            {"foo": "bar2", "baz": {"name": "bob", "age": "18"}},
            {
                "foo": "bar2",
                "baz": {"name": {"last": "unknown", "first": "bob"}, "age": "18"},
                "version": "beta",
            },
        ),
    ],
)
def test_apply_values(source, to, expected):
    apply_values(to, source)
    assert to == expected


@pytest.mark.parametrize(
    "text, expected",
    [
        ("x.y.z=1", {"x": {"y": {"z": 1}}}),
        ("name=value,other=true", {"name": "value", "other": True}),
        ("items={a,b,1}", {"items": ["a", "b", 1]}),
        ("a[1]=x", {"a": [None, "x"]}),
        ("a[0].b=c", {"a": [{"b": "c"}]}),
        ("a[0][1]=z", {"a": [[None, "z"]]}),
        ("num=0123", {"num": "0123"}),
        ("n=null", {"n": None}),
        ("neg=-5", {"neg": -5}),
        ("empty=", {"empty": ""}),
        ("a\\.b=c", {"a.b": "c"}),
        ("v=1\\,2", {"v": "1,2"}),
    ],
)
def test_parse_string_path_into(text, expected):
    target = {}
    parse_string_path_into(text, target)
    assert target == expected


def test_parse_string_path_replaces_non_mapping():
    target = {"x": "s", "keep": 1}
    parse_string_path_into("x.y=1", target)
    assert target == {"x": {"y": 1}, "keep": 1}


@pytest.mark.parametrize("text", ["a", "a,b=c", "a[-1]=x", "a[70000]=x", "a[0", "l={a,b"])
def test_parse_string_path_errors(text):
    with pytest.raises(ValueError):
        parse_string_path_into(text, {})


def test_string_path_values_applier_applies_in_order():
    values = {"x": {"y": 0}}
    string_path_values_applier("x.y=1", "x.y=2,z=ok")(values)
    assert values == {"x": {"y": 2}, "z": "ok"}


def test_string_path_values_applier_reports_assignment():
    with pytest.raises(ValueError, match=r"failed to parse \(bad\) into values"):
        string_path_values_applier("bad")({})


def test_yaml_values_applier_merges():
    applier = yaml_values_applier("baz:\n  name: alice\nfoo: bar1\n")
    values = {"foo": "bar2", "baz": {"name": "bob", "age": "18"}}
    applier(values)
    assert values == {"foo": "bar1", "baz": {"name": "alice", "age": "18"}}


def test_yaml_values_applier_rejects_non_mapping():
    with pytest.raises(ValueError):
        yaml_values_applier("- a\n- b\n")


def test_copy_values_is_independent():
    original = {"a": {"b": [1, 2]}}
    copied = copy_values(original)
    copied["a"]["b"].append(3)
    assert original == {"a": {"b": [1, 2]}}
    assert copied == {"a": {"b": [1, 2, 3]}}


def test_copy_values_rejects_unencodable():
    with pytest.raises(ValueError):
        copy_values({"a": object()})


def test_build_values_keeps_defaults_untouched():
    defaults = {"replicas": 1, "cpu": 8}
    values = build_values(defaults, string_path_values_applier("replicas=3"))
    assert values == {"replicas": 3, "cpu": 8}
    assert defaults == {"replicas": 1, "cpu": 8}


def test_build_values_wraps_applier_error():
    defaults = {"replicas": 1}
    with pytest.raises(ValueError, match="failed to apply"):
        build_values(defaults, string_path_values_applier("replicas"))
    assert defaults == {"replicas": 1}