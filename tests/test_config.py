from __future__ import annotations

from pathlib import Path

import pytest

from userservice.config import ServiceConfig, load_config, load_config_file


def test_defaults_without_environment() -> None:
    config = load_config({})
    assert config.port == 3000
    assert config.host == "0.0.0.0"
    assert config.cors_origins == ("*",)
    assert config.database_path.name == "users.sqlite3"


def test_environment_overrides(tmp_path: Path) -> None:
    config = load_config(
        {
            "USER_SERVICE_DB_PATH": str(tmp_path / "env.sqlite3"),
            "PORT": "8080",
            "USER_SERVICE_REQUEST_TIMEOUT": "2.5",
            "USER_SERVICE_CORS_ORIGINS": "http://localhost:5173/, https://users.example.com",
            "USER_SERVICE_LOG_LEVEL": "DEBUG",
        }
    )
    assert config.database_path == (tmp_path / "env.sqlite3").resolve()
    assert config.port == 8080
    assert config.request_timeout == 2.5
    assert config.cors_origins == ("http://localhost:5173", "https://users.example.com")
    assert config.log_level == "debug"


def test_service_port_wins_over_generic_port() -> None:
    config = load_config({"PORT": "8080", "USER_SERVICE_PORT": "9090"})
    assert config.port == 9090


def test_yaml_file_is_loaded_relative_to_its_directory(tmp_path: Path) -> None:
    config_path = tmp_path / "service.yaml"
    config_path.write_text(
        "database:\n"
        "  path: data/users.sqlite3\n"
        "  pool_size: 3\n"
        "server:\n"
        "  port: 4000\n"
        "  request_timeout: 10\n"
        "cors_origins:\n"
        "  - http://localhost:3000\n",
        encoding="utf-8",
    )

    config = load_config_file(config_path)

    assert config.database_path == (tmp_path / "data" / "users.sqlite3").resolve()
    assert config.pool_size == 3
    assert config.port == 4000
    assert config.request_timeout == 10.0
    assert config.cors_origins == ("http://localhost:3000",)


def test_environment_wins_over_yaml(tmp_path: Path) -> None:
    config_path = tmp_path / "service.yaml"
    config_path.write_text("server:\n  port: 4000\n", encoding="utf-8")

    config = load_config({"USER_SERVICE_CONFIG": str(config_path), "PORT": "5000"})

    assert config.port == 5000


def test_missing_config_file_is_an_error(tmp_path: Path) -> None:
    with pytest.raises(ValueError):
        load_config({"USER_SERVICE_CONFIG": str(tmp_path / "absent.yaml")})


@pytest.mark.parametrize(
    "environ",
    [
        {"PORT": "not-a-port"},
        {"USER_SERVICE_DB_POOL_SIZE": "0"},
        {"USER_SERVICE_REQUEST_TIMEOUT": "-1"},
        {"USER_SERVICE_LOG_LEVEL": "verbose"},
    ],
)
def test_invalid_values_are_rejected(environ: dict) -> None:
    with pytest.raises(ValueError):
        load_config(environ)


def test_non_mapping_sections_are_rejected() -> None:
    with pytest.raises(ValueError):
        ServiceConfig.from_dict({"server": ["port", 3000]})
