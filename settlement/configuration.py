"""Configuration loading and validation for the settlement core."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, MutableMapping

import yaml

from .core.encoding import WORD_SIZE, from_hex, to_hex, uint_to_bytes


class Profile(str, Enum):
    """Built-in network presets."""

    MAINNET = "mainnet"
    TESTNET = "testnet"
    LOCALNET = "localnet"


@dataclass(frozen=True)
class ProfileMetadata:
    """Metadata describing a built-in profile configuration."""

    profile: "Profile"
    description: str
    defaults: Mapping[str, Any]
    settlement_layer: str

    def defaults_dict(self) -> Dict[str, Any]:
        """Return a deep copy of the default configuration mapping."""

        return _deep_copy_mapping(self.defaults)

    def summary(self) -> Dict[str, Any]:
        """Return a serialisable summary of the metadata."""

        return {
            "profile": self.profile.value,
            "description": self.description,
            "settlement_layer": self.settlement_layer,
            "chain_id": self.defaults["chain"]["chain_id"],
        }


@dataclass(frozen=True)
class ChainSection:
    """Chain-wide values folded into every batch commitment's metadata."""

    profile: Profile
    chain_id: int
    zk_porter_available: bool
    l2_bootloader_bytecode_hash: bytes
    l2_default_account_bytecode_hash: bytes

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ChainSection":
        return cls(
            profile=_require_enum(Profile, data, "profile"),
            chain_id=_require_positive_int(data, "chain_id"),
            zk_porter_available=_require_bool(data, "zk_porter_available"),
            l2_bootloader_bytecode_hash=_require_bytes32(data, "l2_bootloader_bytecode_hash"),
            l2_default_account_bytecode_hash=_require_bytes32(data, "l2_default_account_bytecode_hash"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return _section_to_dict(self)


@dataclass(frozen=True)
class VerifierSection:
    """Verification key hashes mixed into each proof public input."""

    recursion_node_level_vk_hash: bytes
    recursion_leaf_level_vk_hash: bytes
    recursion_circuits_set_vks_hash: bytes

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "VerifierSection":
        return cls(
            recursion_node_level_vk_hash=_require_bytes32(data, "recursion_node_level_vk_hash"),
            recursion_leaf_level_vk_hash=_require_bytes32(data, "recursion_leaf_level_vk_hash"),
            recursion_circuits_set_vks_hash=_require_bytes32(data, "recursion_circuits_set_vks_hash"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return _section_to_dict(self)


@dataclass(frozen=True)
class LimitsSection:
    commit_timestamp_not_older: int
    commit_timestamp_approximation_delta: int
    max_system_logs_bytes: int
    public_input_shift: int

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "LimitsSection":
        shift = _require_positive_int(data, "public_input_shift")
        if shift >= 256:
            raise ValueError("public_input_shift must be below 256")
        return cls(
            commit_timestamp_not_older=_require_positive_int(data, "commit_timestamp_not_older"),
            commit_timestamp_approximation_delta=_require_positive_int(
                data, "commit_timestamp_approximation_delta"
            ),
            max_system_logs_bytes=_require_positive_int(data, "max_system_logs_bytes"),
            public_input_shift=shift,
        )

    def to_dict(self) -> Dict[str, Any]:
        return _section_to_dict(self)


@dataclass(frozen=True)
class AppConfig:
    chain: ChainSection
    verifier: VerifierSection
    limits: LimitsSection

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AppConfig":
        for section in ("chain", "verifier", "limits"):
            if section not in data:
                raise ValueError(f"Configuration missing '{section}' section")
        return cls(
            chain=ChainSection.from_dict(_require_mapping(data, "chain")),
            verifier=VerifierSection.from_dict(_require_mapping(data, "verifier")),
            limits=LimitsSection.from_dict(_require_mapping(data, "limits")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "chain": _section_to_dict(self.chain),
            "verifier": _section_to_dict(self.verifier),
            "limits": _section_to_dict(self.limits),
        }


def load_config(path: str | Path, overrides: Mapping[str, Any] | None = None) -> AppConfig:
    """Load an :class:`AppConfig` from ``path`` applying optional overrides."""

    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"configuration file not found: {config_path}")

    raw_data = _load_yaml(config_path)
    if not isinstance(raw_data, MutableMapping):
        raise ValueError("Configuration root must be a mapping")

    merged = dict(raw_data)
    if overrides:
        merged = _apply_overrides(merged, overrides)

    return AppConfig.from_dict(merged)


def build_profile_config(
    profile: Profile, overrides: Mapping[str, Any] | None = None
) -> AppConfig:
    """Construct an :class:`AppConfig` for a built-in profile."""

    metadata = profile_metadata(profile)
    base = metadata.defaults_dict()
    if overrides:
        base = _apply_overrides(base, overrides)
    return AppConfig.from_dict(base)


def available_profiles() -> Dict[Profile, ProfileMetadata]:
    """Return metadata for all built-in profiles."""

    return dict(_PROFILE_REGISTRY)


def profile_metadata(profile: Profile) -> ProfileMetadata:
    """Fetch metadata for ``profile``."""

    try:
        return _PROFILE_REGISTRY[profile]
    except KeyError as exc:  # pragma: no cover - defensive
        raise ValueError(f"Unknown profile: {profile!r}") from exc


def _apply_overrides(base: Dict[str, Any], overrides: Mapping[str, Any]) -> Dict[str, Any]:
    result: Dict[str, Any] = yaml.safe_load(yaml.safe_dump(base))  # deep copy
    for key, value in overrides.items():
        parts = key.split(".")
        if not parts:
            raise ValueError("Override key must not be empty")
        cursor: Dict[str, Any] = result
        for part in parts[:-1]:
            if part not in cursor or not isinstance(cursor[part], dict):
                cursor[part] = {}
            cursor = cursor[part]
        cursor[parts[-1]] = value
    return result


def _load_yaml(path: Path) -> Any:
    with path.open("r", encoding="utf-8") as fh:
        return yaml.safe_load(fh)


def _require_enum(enum_cls: type[Enum], data: Mapping[str, Any], field: str) -> Enum:
    value = _require_value(data, field)
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        normalized = value.strip().lower()
        for member in enum_cls:
            if member.value == normalized:
                return member
    raise ValueError(f"Invalid value '{value}' for {field}; expected one of {[m.value for m in enum_cls]}")


def _require_bool(data: Mapping[str, Any], field: str) -> bool:
    value = _require_value(data, field)
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "1", "yes", "on"}:
            return True
        if lowered in {"false", "0", "no", "off"}:
            return False
    raise ValueError(f"Invalid boolean for {field}: {value!r}")


def _require_positive_int(data: Mapping[str, Any], field: str) -> int:
    value = _require_value(data, field)
    if isinstance(value, bool):
        raise ValueError(f"Boolean is not a valid integer for {field}")
    if isinstance(value, (int, float)) and int(value) == value:
        ivalue = int(value)
    elif isinstance(value, str) and value.strip():
        try:
            ivalue = int(value.replace("_", ""), 10)
        except ValueError as exc:
            raise ValueError(f"Invalid integer for {field}: {value!r}") from exc
    else:
        raise ValueError(f"Invalid integer for {field}: {value!r}")
    if ivalue <= 0:
        raise ValueError(f"{field} must be > 0")
    return ivalue


def _require_bytes32(data: Mapping[str, Any], field: str) -> bytes:
    value = _require_value(data, field)
    # Unquoted 0x... scalars arrive from YAML as integers.
    if isinstance(value, int) and not isinstance(value, bool):
        try:
            return uint_to_bytes(value)
        except ValueError as exc:
            raise ValueError(f"Invalid 32-byte value for {field}: {value!r}") from exc
    decoded = from_hex(value, field)
    if len(decoded) != WORD_SIZE:
        raise ValueError(f"{field} must be 32 bytes, got {len(decoded)}")
    return decoded


def _require_mapping(data: Mapping[str, Any], field: str) -> Mapping[str, Any]:
    value = _require_value(data, field)
    if not isinstance(value, Mapping):
        raise ValueError(f"Field {field} must be a mapping")
    return value


def _require_value(data: Mapping[str, Any], field: str) -> Any:
    if field not in data:
        raise ValueError(f"Missing required field: {field}")
    return data[field]


def _deep_copy_mapping(data: Mapping[str, Any]) -> Dict[str, Any]:
    """Create a deep copy of ``data`` using YAML round-tripping."""

    return yaml.safe_load(yaml.safe_dump(data))


def _section_to_dict(obj: Any) -> Dict[str, Any]:
    result: Dict[str, Any] = {}
    for key, value in obj.__dict__.items():
        if isinstance(value, Enum):
            result[key] = value.value
        elif isinstance(value, bytes):
            result[key] = to_hex(value)
        elif hasattr(value, "__dict__"):
            result[key] = _section_to_dict(value)
        else:
            result[key] = value
    return result


def parse_overrides(items: Iterable[str]) -> Dict[str, Any]:
    """Parse CLI style ``key=value`` override pairs into a mapping."""

    overrides: Dict[str, Any] = {}
    for item in items:
        if "=" not in item:
            raise ValueError(f"Override '{item}' is not in key=value format")
        key, raw_value = item.split("=", 1)
        key = key.strip()
        if not key:
            raise ValueError("Override key must not be empty")
        overrides[key] = _coerce_value(raw_value.strip())
    return overrides


def _coerce_value(value: str) -> Any:
    lowered = value.lower()
    if lowered in {"true", "false", "yes", "no", "on", "off"}:
        return _require_bool({"value": value}, "value")
    try:
        return _require_positive_int({"value": value}, "value")
    except ValueError:
        pass
    return value


_ZERO = "0x" + "00" * 32


def _profile_defaults() -> Dict[Profile, ProfileMetadata]:
    """Construct the built-in profile registry."""

    limits = {
        "commit_timestamp_not_older": 3 * 24 * 60 * 60,
        "commit_timestamp_approximation_delta": 60 * 60,
        "max_system_logs_bytes": 4 + 88 * 512,
        "public_input_shift": 32,
    }

    mainnet_defaults = {
        "chain": {
            "profile": "mainnet",
            "chain_id": 324,
            "zk_porter_available": False,
            "l2_bootloader_bytecode_hash": "0x010008e742608b21bf7eb23c1a9d0602047e3618b464c9b59c0fba3b3d7ab66e",
            "l2_default_account_bytecode_hash": "0x01000563374c277a2c1e34659a2a1e87371bb6d852ce142022d497bfb50b9e32",
        },
        "verifier": {
            "recursion_node_level_vk_hash": "0xf520cd5b37e74e19fdb369c8d676a04dce8a19457497ac6686d2bb95d94109c8",
            "recursion_leaf_level_vk_hash": "0xf9664f4324c1400fa5c3822d667f30e873f53f1b8033180cd15fe41c1e2355c6",
            "recursion_circuits_set_vks_hash": _ZERO,
        },
        "limits": dict(limits),
    }

    testnet_defaults = {
        "chain": {
            "profile": "testnet",
            "chain_id": 300,
            "zk_porter_available": False,
            "l2_bootloader_bytecode_hash": "0x010008e742608b21bf7eb23c1a9d0602047e3618b464c9b59c0fba3b3d7ab66e",
            "l2_default_account_bytecode_hash": "0x01000563374c277a2c1e34659a2a1e87371bb6d852ce142022d497bfb50b9e32",
        },
        "verifier": {
            "recursion_node_level_vk_hash": "0xf520cd5b37e74e19fdb369c8d676a04dce8a19457497ac6686d2bb95d94109c8",
            "recursion_leaf_level_vk_hash": "0xf9664f4324c1400fa5c3822d667f30e873f53f1b8033180cd15fe41c1e2355c6",
            "recursion_circuits_set_vks_hash": _ZERO,
        },
        "limits": dict(limits),
    }

    localnet_defaults = {
        "chain": {
            "profile": "localnet",
            "chain_id": 270,
            "zk_porter_available": False,
            "l2_bootloader_bytecode_hash": "0x" + "01" * 32,
            "l2_default_account_bytecode_hash": "0x" + "02" * 32,
        },
        "verifier": {
            "recursion_node_level_vk_hash": _ZERO,
            "recursion_leaf_level_vk_hash": _ZERO,
            "recursion_circuits_set_vks_hash": _ZERO,
        },
        "limits": dict(limits, commit_timestamp_not_older=365 * 24 * 60 * 60),
    }

    return {
        Profile.MAINNET: ProfileMetadata(
            profile=Profile.MAINNET,
            description="Production chain settling on Ethereum mainnet.",
            defaults=mainnet_defaults,
            settlement_layer="ethereum",
        ),
        Profile.TESTNET: ProfileMetadata(
            profile=Profile.TESTNET,
            description="Public test chain settling on Sepolia.",
            defaults=testnet_defaults,
            settlement_layer="sepolia",
        ),
        Profile.LOCALNET: ProfileMetadata(
            profile=Profile.LOCALNET,
            description="Developer chain with placeholder hashes and a relaxed staleness window.",
            defaults=localnet_defaults,
            settlement_layer="local",
        ),
    }


_PROFILE_REGISTRY = _profile_defaults()


__all__ = [
    "AppConfig",
    "ChainSection",
    "LimitsSection",
    "Profile",
    "ProfileMetadata",
    "VerifierSection",
    "available_profiles",
    "build_profile_config",
    "load_config",
    "profile_metadata",
    "parse_overrides",
]
