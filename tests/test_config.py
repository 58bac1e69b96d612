"""Tests for compile options, YAML config files and env overrides."""

import pytest

from promptc.config import CompileOptions, load_options, options_from_env, options_from_mapping
from promptc.errors import ConfigError


def test_defaults():
    options = CompileOptions()
    assert options.optimization_level == 2
    assert options.target_tokens is None
    assert options.preserve_quality is True
    assert options.enable_parallelization is True
    assert options.lower_directives is True


@pytest.mark.parametrize("kwargs", [
    {"optimization_level": 4},
    {"optimization_level": -1},
    {"optimization_level": "2"},
    {"optimization_level": True},
    {"target_tokens": 0},
    {"target_tokens": 12.5},
])
def test_invalid_options_raise(kwargs):
    with pytest.raises(ConfigError):
        CompileOptions(**kwargs)


def test_merged_skips_none():
    options = CompileOptions(optimization_level=1).merged(optimization_level=None, target_tokens=50)
    assert options.optimization_level == 1
    assert options.target_tokens == 50


def test_merged_validates():
    with pytest.raises(ConfigError):
        CompileOptions().merged(optimization_level=9)


def test_options_from_mapping_rejects_unknown_keys():
    with pytest.raises(ConfigError) as exc:
        options_from_mapping({"optimization_level": 1, "temperature": 0.2}, source="opts.yaml")
    assert "temperature" in str(exc.value)
    assert str(exc.value).startswith("opts.yaml:")


def test_load_options(tmp_path):
    path = tmp_path / "promptc.yaml"
    path.write_text("optimization_level: 3\npreserve_quality: false\ntarget_tokens: 200\n")
    options = load_options(path)
    assert options == CompileOptions(optimization_level=3, preserve_quality=False, target_tokens=200)


def test_load_options_nested_under_compile(tmp_path):
    path = tmp_path / "promptc.yaml"
    path.write_text("compile:\n  optimization_level: 1\n")
    assert load_options(path).optimization_level == 1


def test_load_options_empty_file(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("")
    assert load_options(path) == CompileOptions()


@pytest.mark.parametrize("text", [
    "- 1\n- 2\n",
    "optimization_level: [unclosed\n",
    "optimization_level: 7\n",
])
def test_load_options_invalid(tmp_path, text):
    path = tmp_path / "bad.yaml"
    path.write_text(text)
    with pytest.raises(ConfigError):
        load_options(path)


def test_load_options_missing(tmp_path):
    with pytest.raises(ConfigError):
        load_options(tmp_path / "missing.yaml")


def test_options_from_env():
    env = {
        "PROMPTC_OPTIMIZATION_LEVEL": "3",
        "PROMPTC_PRESERVE_QUALITY": "no",
        "PROMPTC_TARGET_TOKENS": "",
        "UNRELATED": "1",
    }
    options = options_from_env(CompileOptions(target_tokens=100), environ=env)
    assert options.optimization_level == 3
    assert options.preserve_quality is False
    assert options.target_tokens == 100


@pytest.mark.parametrize("env", [
    {"PROMPTC_OPTIMIZATION_LEVEL": "high"},
    {"PROMPTC_ENABLE_PARALLELIZATION": "maybe"},
    {"PROMPTC_OPTIMIZATION_LEVEL": "5"},
])
def test_options_from_env_invalid(env):
    with pytest.raises(ConfigError):
        options_from_env(environ=env)


def test_env_parse_error_is_not_chained():
    with pytest.raises(ConfigError) as exc:
        options_from_env(environ={"PROMPTC_TARGET_TOKENS": "lots"})
    assert exc.value.__cause__ is None
    assert exc.value.__suppress_context__ is True
