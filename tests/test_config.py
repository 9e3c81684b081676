"""Tests for settings loading and validation."""

import pytest

from config.lib.load_settings_conf import (
    DEFAULTS, ConfigValidationError, SettingsError, load_settings_conf
)

def write_settings(path, body):
    (path / 'settings.conf').write_text("[DEFAULT]\n" + body)

def test_defaults_without_settings_file(tmp_path):
    settings = load_settings_conf(str(tmp_path), environ={})

    assert settings['rpc_url'] == DEFAULTS['rpc_url']
    assert settings['commitment'] == 'confirmed'
    assert settings['poll_interval'] == 2.0
    assert settings['signature_batch_size'] == 100
    assert settings['rpc_max_tries'] == 5
    assert settings['indexer_key'] == 'fair_swap'
    assert settings['idl_path'] is None

def test_settings_file_overrides_defaults(tmp_path):
    write_settings(tmp_path, "rpc_url = https://api.devnet.solana.com\npoll_interval = 0.5\nlog_level = debug\n")

    settings = load_settings_conf(str(tmp_path), environ={})

    assert settings['rpc_url'] == 'https://api.devnet.solana.com'
    assert settings['poll_interval'] == 0.5
    assert settings['log_level'] == 'DEBUG'

def test_environment_overrides_file(tmp_path):
    write_settings(tmp_path, "db_url = postgresql://file/db\n")

    settings = load_settings_conf(str(tmp_path), environ={
        'DATABASE_URL': 'postgresql://env/db',
        'IDL_PATH': '/opt/idl/fair_swap.json',
    })

    assert settings['db_url'] == 'postgresql://env/db'
    assert settings['idl_path'] == '/opt/idl/fair_swap.json'

def test_missing_required_setting(tmp_path):
    write_settings(tmp_path, "program_id =\n")

    with pytest.raises(SettingsError) as exc_info:
        load_settings_conf(str(tmp_path), environ={})
    assert "program_id" in str(exc_info.value)

def test_invalid_ranges_are_all_reported(tmp_path):
    write_settings(tmp_path, "signature_batch_size = 5000\ncommitment = processed\nrpc_max_tries = 0\n")

    with pytest.raises(SettingsError) as exc_info:
        load_settings_conf(str(tmp_path), environ={})
    message = str(exc_info.value)
    assert "signature_batch_size" in message
    assert "commitment" in message
    assert "rpc_max_tries" in message

def test_non_numeric_setting(tmp_path):
    write_settings(tmp_path, "poll_interval = soon\n")

    with pytest.raises(SettingsError):
        load_settings_conf(str(tmp_path), environ={})

def test_error_report_lists_missing_then_invalid():
    errors = ConfigValidationError()
    assert not errors.has_errors()

    errors.missing.append("program_id")
    errors.invalid.append("commitment: must be one of confirmed, finalized")

    assert errors.has_errors()
    assert errors.format_message().splitlines() == [
        "Missing required settings:",
        "  - program_id",
        "",
        "Invalid settings:",
        "  - commitment: must be one of confirmed, finalized",
    ]
