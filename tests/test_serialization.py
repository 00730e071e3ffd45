import collections
import json

from argbind import DecoderRegistry, JsonDecoder, YamlDecoder
from argbind._serialization import clean_decoded


def test_json_before_yaml() -> None:
    registry = DecoderRegistry()
    assert registry.names == ("json", "yaml")
    assert registry.decode("1").value == 1
    assert registry.decode('"x"').value == "x"
    assert registry.decode("x").value == "x"
    assert registry.decode("[1, 2]").value == [1, 2]
    assert registry.decode('{"a": [1, null]}').value == {"a": [1, None]}


def test_yaml_only_values() -> None:
    registry = DecoderRegistry()
    assert registry.decode("{a: 1}").value == {"a": 1}
    assert registry.decode("~").value is None
    assert registry.decode("yes").value is True
    assert registry.decode("- 1\n- two").value == [1, "two"]


def test_yaml_timestamps_stay_strings() -> None:
    result = YamlDecoder().decode("2020-01-02")
    assert result.ok
    assert result.value == "2020-01-02"


def test_both_fail() -> None:
    result = DecoderRegistry().decode("[1")
    assert not result.ok
    assert result.value is None
    assert result.error is not None
    assert result.error.startswith("json: ")
    assert "; yaml: " in result.error


def test_json_rejects_non_finite() -> None:
    decoder = JsonDecoder()
    assert not decoder.decode("NaN").ok
    assert not decoder.decode("[Infinity]").ok
    assert decoder.decode("1.5").value == 1.5


def test_json_custom_decoder_is_cleaned() -> None:
    decoder = JsonDecoder(json.JSONDecoder(object_pairs_hook=collections.OrderedDict))
    value = decoder.decode('{"b": {"c": [1, 2]}, "a": 2}').value
    assert type(value) is dict
    assert type(value["b"]) is dict
    assert list(value.keys()) == ["b", "a"]
    assert value["b"]["c"] == [1, 2]


def test_clean_decoded() -> None:
    assert clean_decoded((1, (2, 3))) == [1, [2, 3]]
    assert clean_decoded({"a": (1,)}) == {"a": [1]}
    assert clean_decoded(True) is True
    assert clean_decoded("x") == "x"


def test_default_registry_is_shared() -> None:
    assert DecoderRegistry.default() is DecoderRegistry.default()


def test_custom_registry() -> None:
    registry = DecoderRegistry(YamlDecoder())
    assert registry.names == ("yaml",)
    assert registry.get("yaml").name == "yaml"
    assert registry.decode('"x"').value == "x"
    assert registry.decode("[1").error.startswith("yaml: ")  # type: ignore
