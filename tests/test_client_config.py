# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Tests for client configuration."""

import logging
from pathlib import Path
from unittest.mock import patch

import pytest
import yaml

from mattersync.config import (
    ClientConfig,
    ConfigError,
    _EnvVar,
    _make_loader,
    _raw_resolve,
    _resolve,
)
from mattersync.logging import SecretFilter


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "mattersync.yaml"
    path.write_text(text)
    return path


class TestRawResolve:
    def test_literal(self) -> None:
        assert _raw_resolve(42) == "42"

    def test_none(self) -> None:
        assert _raw_resolve(None) is None

    def test_envvar_set(self) -> None:
        with patch.dict("os.environ", {"MY_VAR": "val"}):
            assert _raw_resolve(_EnvVar("MY_VAR")) == "val"

    def test_envvar_unset(self) -> None:
        with patch.dict("os.environ", {}, clear=True):
            assert _raw_resolve(_EnvVar("MISSING")) is None


class TestResolve:
    def test_int_from_env(self) -> None:
        with patch.dict("os.environ", {"PAGE": "50"}):
            assert _resolve(_EnvVar("PAGE"), int, default=200) == 50

    def test_float_from_int_literal(self) -> None:
        assert _resolve(5, float, default=1.0) == 5.0

    def test_default(self) -> None:
        assert _resolve(None, int, default=200) == 200

    def test_required_missing(self) -> None:
        with pytest.raises(ConfigError, match="'token' is missing"):
            _resolve(None, str, required="token")

    def test_required_env_unset(self) -> None:
        with patch.dict("os.environ", {}, clear=True):
            with pytest.raises(ConfigError, match="MM_TOKEN"):
                _resolve(_EnvVar("MM_TOKEN"), str, required="token")

    def test_bad_number(self) -> None:
        with pytest.raises(ConfigError, match="Cannot convert"):
            _resolve("many", int, default=1)

    def test_yaml_bool_is_not_a_number(self) -> None:
        with pytest.raises(ConfigError, match="Cannot convert 'True' to int"):
            _resolve(True, int, default=1)


class TestYamlLoader:
    def test_env_tag_parsed(self) -> None:
        raw = yaml.load("token: !env MM_TOKEN\n", Loader=_make_loader())
        assert isinstance(raw["token"], _EnvVar)
        assert raw["token"].var_name == "MM_TOKEN"


class TestClientConfig:
    def test_from_yaml(self, tmp_path: Path) -> None:
        path = _write(
            tmp_path,
            "server_url: https://chat.example.com/\n"
            "token: !env MM_TOKEN\n"
            "team: eng\n"
            "sync:\n"
            "  page_size: 100\n"
            "rate_limit:\n"
            "  max_backoff: 10\n",
        )
        with (
            patch.dict("os.environ", {"MM_TOKEN": "secret-token"}),
            patch("mattersync.config.load_dotenv_once"),
        ):
            config = ClientConfig.from_yaml(path)

        assert config.server_url == "https://chat.example.com"
        assert config.token == "secret-token"
        assert config.team == "eng"
        assert config.page_size == 100
        assert config.max_backoff == 10.0
        assert config.default_backoff == 1.0
        assert config.request_timeout == 30.0

    def test_token_registered_for_redaction(self) -> None:
        ClientConfig(
            server_url="https://chat.example.com", token="tok-xyz", team="t"
        )
        record = logging.LogRecord(
            "x", logging.INFO, __file__, 1, "using tok-xyz", None, None
        )
        SecretFilter().filter(record)
        assert record.msg == "using [REDACTED]"

    def test_missing_file(self, tmp_path: Path) -> None:
        with patch("mattersync.config.load_dotenv_once"):
            with pytest.raises(ConfigError, match="not found"):
                ClientConfig.from_yaml(tmp_path / "nope.yaml")

    def test_not_a_mapping(self, tmp_path: Path) -> None:
        path = _write(tmp_path, "- a\n- b\n")
        with patch("mattersync.config.load_dotenv_once"):
            with pytest.raises(ConfigError, match="YAML mapping"):
                ClientConfig.from_yaml(path)

    def test_missing_token(self, tmp_path: Path) -> None:
        path = _write(tmp_path, "server_url: https://x\nteam: eng\n")
        with patch("mattersync.config.load_dotenv_once"):
            with pytest.raises(ConfigError, match="token"):
                ClientConfig.from_yaml(path)

    def test_invalid_page_size(self, tmp_path: Path) -> None:
        path = _write(
            tmp_path,
            "server_url: https://x\ntoken: t\nteam: eng\nsync:\n"
            "  page_size: 500\n",
        )
        with patch("mattersync.config.load_dotenv_once"):
            with pytest.raises(ConfigError, match="Page size"):
                ClientConfig.from_yaml(path)

    def test_invalid_url(self) -> None:
        with pytest.raises(ValueError, match="http"):
            ClientConfig(server_url="chat.example.com", token="t", team="x")

    def test_default_path_is_xdg(self, tmp_path: Path) -> None:
        with (
            patch("mattersync.config.load_dotenv_once"),
            patch(
                "mattersync.config.get_config_path",
                return_value=tmp_path / "missing.yaml",
            ),
        ):
            with pytest.raises(ConfigError, match="missing.yaml"):
                ClientConfig.from_yaml()
