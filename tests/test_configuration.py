"""Tests for configuration loading and validation."""
from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from settlement.configuration import (
    AppConfig,
    Profile,
    available_profiles,
    build_profile_config,
    load_config,
    parse_overrides,
    profile_metadata,
)


def fixture_path(name: str) -> Path:
    return Path(__file__).parent.parent / "configs" / name


def test_load_default_config() -> None:
    config = load_config(fixture_path("settlement.default.yaml"))
    assert isinstance(config, AppConfig)
    assert config.chain.profile is Profile.TESTNET
    assert config.chain.chain_id == 300
    assert config.chain.zk_porter_available is False
    assert len(config.chain.l2_bootloader_bytecode_hash) == 32
    assert config.limits.public_input_shift == 32


def test_overrides_are_applied(tmp_path: Path) -> None:
    src = fixture_path("settlement.default.yaml")
    tmp = tmp_path / "config.yaml"
    tmp.write_text(src.read_text(), encoding="utf-8")

    overrides = parse_overrides([
        "chain.chain_id=271",
        "limits.commit_timestamp_approximation_delta=60",
        "verifier.recursion_circuits_set_vks_hash=0x" + "ab" * 32,
    ])

    config = load_config(tmp, overrides=overrides)
    assert config.chain.chain_id == 271
    assert config.limits.commit_timestamp_approximation_delta == 60
    assert config.verifier.recursion_circuits_set_vks_hash == bytes.fromhex("ab" * 32)


def test_build_profile_config() -> None:
    config = build_profile_config(Profile.MAINNET)
    assert config.chain.profile is Profile.MAINNET
    metadata = profile_metadata(Profile.MAINNET)
    assert metadata.defaults["chain"]["chain_id"] == 324
    assert config.chain.chain_id == 324


def test_profile_overrides_do_not_mutate_defaults() -> None:
    metadata_before = profile_metadata(Profile.LOCALNET)
    original_chain_id = metadata_before.defaults["chain"]["chain_id"]

    config = build_profile_config(Profile.LOCALNET, overrides={"chain.chain_id": 9})

    assert config.chain.chain_id == 9
    metadata_after = profile_metadata(Profile.LOCALNET)
    assert metadata_after.defaults["chain"]["chain_id"] == original_chain_id


def test_available_profiles_summary() -> None:
    profiles = available_profiles()
    assert set(profiles) == {Profile.MAINNET, Profile.TESTNET, Profile.LOCALNET}
    summary = profiles[Profile.TESTNET].summary()
    assert summary["profile"] == "testnet"
    assert summary["chain_id"] == 300


def test_unquoted_hex_is_accepted(tmp_path: Path) -> None:
    data = build_profile_config(Profile.LOCALNET).to_dict()
    text = yaml.safe_dump(data).replace("'0x0202", "0x0202")
    text = text.replace("0202'", "0202")
    path = tmp_path / "config.yaml"
    path.write_text(text, encoding="utf-8")

    config = load_config(path)
    assert config.chain.l2_default_account_bytecode_hash == bytes([2]) * 32


def test_to_dict_round_trips(tmp_path: Path) -> None:
    config = build_profile_config(Profile.TESTNET)
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump(config.to_dict()), encoding="utf-8")
    assert load_config(path) == config


@pytest.mark.parametrize(
    "key, value",
    [
        ("chain.chain_id", 0),
        ("chain.profile", "devnet"),
        ("chain.l2_bootloader_bytecode_hash", "0x1234"),
        ("chain.zk_porter_available", "maybe"),
        ("limits.public_input_shift", 256),
    ],
)
def test_invalid_values_raise(key: str, value: object) -> None:
    with pytest.raises(ValueError):
        build_profile_config(Profile.TESTNET, overrides={key: value})


def test_missing_section_raises(tmp_path: Path) -> None:
    data = build_profile_config(Profile.TESTNET).to_dict()
    del data["verifier"]
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump(data), encoding="utf-8")

    with pytest.raises(ValueError):
        load_config(path)


def test_missing_file_raises(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "absent.yaml")


def test_parse_overrides_rejects_bad_pairs() -> None:
    with pytest.raises(ValueError):
        parse_overrides(["chain.chain_id"])
    with pytest.raises(ValueError):
        parse_overrides(["=5"])
