import json

import pytest

from microfiche.microfiche_datatypes import Store, Handler, Data, Module
from microfiche.microfiche_serialize import (
    serialize, deserialize, detect_format, store_to_dict, store_from_dict, load_data_file,
)


def test_json_roundtrip():
    value = {"a": 1, "b": [1, 2, "x"], "c": {"d": True}}
    s = serialize(value, fmt="json")
    out = deserialize(s)  # JSON is sniffed from leading "{"
    assert out == value


def test_yaml_roundtrip_with_fmt():
    value = {"a": 1, "b": ["x", "y"], "c": {"d": 2}}
    s = serialize(value, fmt="yaml")
    out = deserialize(s, fmt="yaml")
    assert out == value


def test_yaml_declared_as_json_falls_back():
    # YAML payload declared as JSON should still load via fallback to YAML
    yaml_text = "a: 1\nb: [x, y]\n"
    out = deserialize(yaml_text, fmt="json")
    assert out == {"a": 1, "b": ["x", "y"]}


def test_toml_roundtrip_with_fmt():
    value = {"title": "TOML Example", "owner": {"name": "Tom"}}
    s = serialize(value, fmt="toml")
    out = deserialize(s, fmt="toml")
    assert out == value


def test_unknown_format_is_text():
    assert deserialize(b"plain words") == "plain words"
    with pytest.raises(ValueError):
        serialize({}, fmt="xml")


def test_detect_format_sniffs_json_only():
    assert detect_format("  [1, 2]") == "json"
    assert detect_format("{\"a\": 1}") == "json"
    assert detect_format("a = 1") is None
    assert detect_format("a: 1\n") is None


def test_deserialize_has_no_content_type_parameter():
    with pytest.raises(TypeError):
        deserialize("a: 1\n", content_type="application/x-yaml")


def test_bytes_decode_as_utf8():
    assert deserialize("caf\u00e9: 1\n".encode("utf-8"), fmt="yaml") == {"caf\u00e9": 1}


def test_store_to_dict_skips_handlers():
    store = Store({"text": "hi\n", "pkg": Store({"inner": "x"})})
    store.register(Handler("exec", lambda s, a, b: ""))
    assert store_to_dict(store) == {"text": "hi\n", "pkg": {"inner": "x"}}
    assert json.loads(serialize(store, fmt="json")) == {"text": "hi\n", "pkg": {"inner": "x"}}


def test_store_from_dict_stringifies_scalars():
    store = store_from_dict({"n": 3, "flag": True, "none": None, "sub": {"k": "v"}})
    assert store["n"] == Data("3")
    assert store["flag"] == Data("true")
    assert store["none"] == Data("")
    assert isinstance(store["sub"], Module)
    assert store.lookup("sub.k") == Data("v")


@pytest.mark.parametrize("name,content", [
    ("seed.yaml", "greeting: hello\nsub:\n  k: v\n"),
    ("seed.json", '{"greeting": "hello", "sub": {"k": "v"}}'),
    ("seed.toml", 'greeting = "hello"\n[sub]\nk = "v"\n'),
])
def test_load_data_file(tmp_path, name, content):
    p = tmp_path / name
    p.write_text(content, encoding="utf-8")
    store = load_data_file(p)
    assert store_to_dict(store) == {"greeting": "hello", "sub": {"k": "v"}}


def test_load_data_file_rejects_unknown_extension(tmp_path):
    p = tmp_path / "seed.ini"
    p.write_text("[x]\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_data_file(p)


def test_load_data_file_requires_mapping(tmp_path):
    p = tmp_path / "seed.yaml"
    p.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_data_file(p)
