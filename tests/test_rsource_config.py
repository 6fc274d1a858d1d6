import dataclasses

import pytest
from rsource.rsource_config import SerializerConfig, DEFAULT_CONFIG


def test_defaults():
    config = SerializerConfig()
    assert config.max_depth == 200
    assert config.sort_bindings is True
    assert config.omit_active_parent is False
    assert config.indent == "\t"
    assert config.width_cutoff == 60
    assert DEFAULT_CONFIG == config

def test_config_is_frozen():
    with pytest.raises(dataclasses.FrozenInstanceError):
        DEFAULT_CONFIG.max_depth = 5

@pytest.mark.parametrize("kwargs", [
    {"max_depth": 0},
    {"width_cutoff": 10},
])
def test_invalid_values(kwargs):
    with pytest.raises(ValueError):
        SerializerConfig(**kwargs)

# --- Mappings ---

def test_from_mapping():
    config = SerializerConfig.from_mapping({"max_depth": 10, "sort_bindings": False})
    assert config.max_depth == 10
    assert config.sort_bindings is False
    assert config.indent == "\t"

def test_from_empty_mapping():
    assert SerializerConfig.from_mapping(None) == DEFAULT_CONFIG
    assert SerializerConfig.from_mapping({}) == DEFAULT_CONFIG

def test_from_mapping_rejects_unknown_keys():
    with pytest.raises(ValueError, match="Unknown config keys: colour"):
        SerializerConfig.from_mapping({"colour": "red"})

def test_from_mapping_rejects_mistyped_values():
    with pytest.raises(ValueError, match="max_depth"):
        SerializerConfig.from_mapping({"max_depth": True})
    with pytest.raises(ValueError, match="indent"):
        SerializerConfig.from_mapping({"indent": 4})

# --- YAML ---

def test_from_yaml_text():
    config = SerializerConfig.from_yaml("max_depth: 50\nindent: '  '\n")
    assert config.max_depth == 50
    assert config.indent == "  "

def test_from_yaml_nested_section():
    text = "rsource:\n  omit_active_parent: true\n  width_cutoff: 80\nother: 1\n"
    config = SerializerConfig.from_yaml(text)
    assert config.omit_active_parent is True
    assert config.width_cutoff == 80

def test_from_yaml_file(tmp_path):
    path = tmp_path / "rsource.yaml"
    path.write_text("sort_bindings: false\n", encoding="utf-8")
    assert SerializerConfig.from_yaml(path).sort_bindings is False

def test_from_empty_yaml():
    assert SerializerConfig.from_yaml("") == DEFAULT_CONFIG

def test_from_yaml_rejects_non_mapping():
    with pytest.raises(ValueError, match="mapping"):
        SerializerConfig.from_yaml("- 1\n- 2\n")
