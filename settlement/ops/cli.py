"""Command line utilities for the settlement core."""
from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping

import yaml

from ..configuration import (
    AppConfig,
    Profile,
    available_profiles,
    build_profile_config,
    load_config,
    parse_overrides,
)
from ..core.encoding import ZERO_HASH, bytes32_from_hex, to_hex
from ..core.executor import Executor
from ..core.merkle import calculate_root, calculate_root_paths
from ..core.state import SettlementState
from ..core.types import CommitBatchInfo, StoredBatchInfo
from ..errors import SettlementError

DEFAULT_CONFIG_PATH = Path("configs/settlement.default.yaml")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Rollup settlement validation tooling")
    parser.add_argument("--config", type=Path, help="Path to a settlement YAML configuration file")
    parser.add_argument(
        "--profile",
        choices=[profile.value for profile in Profile],
        help="Load a built-in profile instead of reading a configuration file",
    )
    parser.add_argument(
        "--set",
        dest="overrides",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Override configuration values using dotted paths",
    )
    parser.add_argument(
        "--list-profiles",
        action="store_true",
        help="List available built-in profiles and exit",
    )
    parser.add_argument(
        "--format",
        choices=("human", "json", "yaml"),
        default="human",
        help="Output format",
    )
    parser.add_argument(
        "--validate-only",
        action="store_true",
        help="Validate the configuration without printing it",
    )
    parser.add_argument(
        "--commit",
        type=Path,
        metavar="BATCH_FILE",
        help="Dry-run a commit of the batches described in a YAML file",
    )
    parser.add_argument(
        "--now",
        type=int,
        help="Unix timestamp used as the current time for --commit",
    )
    parser.add_argument(
        "--merkle-proof",
        type=Path,
        metavar="PROOF_FILE",
        help="Recompute a Merkle root from a YAML proof description",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        help="Logging verbosity",
    )
    return parser


def format_config(config: AppConfig, output_format: str) -> str:
    if output_format == "json":
        return json.dumps(config.to_dict(), indent=2, sort_keys=True)
    if output_format == "yaml":
        return yaml.safe_dump(config.to_dict(), sort_keys=False)
    return _format_human(config)


def format_report(report: Mapping[str, Any], output_format: str) -> str:
    if output_format == "json":
        return json.dumps(report, indent=2, sort_keys=True)
    if output_format == "yaml":
        return yaml.safe_dump(dict(report), sort_keys=False)
    return _format_report_human(report)


def _format_human(config: AppConfig) -> str:
    lines: List[str] = []
    lines.append("[chain]")
    for key, value in config.chain.to_dict().items():
        lines.append(f"{key:>34}: {value}")
    lines.append("")
    lines.append("[verifier]")
    for key, value in config.verifier.to_dict().items():
        lines.append(f"{key:>34}: {value}")
    lines.append("")
    lines.append("[limits]")
    for key, value in config.limits.to_dict().items():
        lines.append(f"{key:>34}: {value}")
    return "\n".join(lines)


def _format_report_human(report: Mapping[str, Any], indent: int = 0) -> str:
    lines: List[str] = []
    pad = "  " * indent
    for key, value in report.items():
        if isinstance(value, Mapping):
            lines.append(f"{pad}{key}:")
            lines.append(_format_report_human(value, indent + 1))
        elif isinstance(value, list):
            lines.append(f"{pad}{key}:")
            for position, item in enumerate(value):
                if isinstance(item, Mapping):
                    lines.append(f"{pad}  #{position}")
                    lines.append(_format_report_human(item, indent + 2))
                else:
                    lines.append(f"{pad}  - {item}")
        else:
            lines.append(f"{pad}{key}: {value}")
    return "\n".join(lines)


def dry_run_commit(config: AppConfig, batch_file: Path, now: int | None = None) -> Dict[str, Any]:
    """Commit the batches in ``batch_file`` against a fresh state seeded with its ``previous`` record."""

    description = _load_mapping(batch_file)
    previous_data = description.get("previous")
    previous = StoredBatchInfo.from_dict(previous_data) if previous_data else StoredBatchInfo.zero()
    batches = [CommitBatchInfo.from_dict(item) for item in description.get("batches") or []]
    upgrade = description.get("system_upgrade_tx_hash")
    upgrade_hash = bytes32_from_hex(upgrade, "system_upgrade_tx_hash") if upgrade else ZERO_HASH

    state = SettlementState(stored_batch_hashes={previous.batch_number: previous.hash()})
    state.total_committed = state.total_verified = state.total_executed = previous.batch_number
    clock = (lambda: now) if now is not None else None
    executor = Executor(config, clock=clock)
    stored = executor.commit_batches(state, previous, batches, upgrade_hash)
    return {
        "batches": [
            dict(batch.to_dict(), stored_hash=to_hex(batch.hash())) for batch in stored
        ],
        "state": state.summary(),
    }


def recompute_merkle_root(proof_file: Path) -> Dict[str, Any]:
    """Recompute the root described by ``proof_file`` (single leaf or range)."""

    description = _load_mapping(proof_file)
    if "leaves" in description:
        root = calculate_root_paths(
            [bytes32_from_hex(item, "start_path") for item in description["start_path"]],
            [bytes32_from_hex(item, "end_path") for item in description["end_path"]],
            int(description["start_index"]),
            [bytes32_from_hex(item, "leaves") for item in description["leaves"]],
        )
    else:
        root = calculate_root(
            [bytes32_from_hex(item, "path") for item in description["path"]],
            int(description["index"]),
            bytes32_from_hex(description["leaf"], "leaf"),
        )
    report: Dict[str, Any] = {"root": to_hex(root)}
    if "root" in description:
        report["matches"] = root == bytes32_from_hex(description["root"], "root")
    return report


def main(argv: Iterable[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(levelname)s %(name)s: %(message)s")

    if args.list_profiles:
        _print_profiles()
        return 0

    if args.merkle_proof:
        try:
            report = recompute_merkle_root(args.merkle_proof)
        except SettlementError as exc:
            return _reject(exc)
        except (OSError, KeyError, ValueError) as exc:
            parser.error(str(exc))
            return 2
        print(format_report(report, args.format))
        return 0 if report.get("matches", True) else 1

    try:
        overrides = parse_overrides(args.overrides or [])
    except ValueError as exc:
        parser.error(str(exc))
        return 2

    config: AppConfig
    try:
        if args.profile:
            config = build_profile_config(Profile(args.profile), overrides=overrides)
        else:
            config = load_config(args.config or DEFAULT_CONFIG_PATH, overrides=overrides)
    except (OSError, ValueError) as exc:
        parser.error(str(exc))
        return 2

    if args.validate_only:
        return 0

    if args.commit:
        try:
            report = dry_run_commit(config, args.commit, now=args.now)
        except SettlementError as exc:
            return _reject(exc)
        except (OSError, KeyError, ValueError) as exc:
            parser.error(str(exc))
            return 2
        print(format_report(report, args.format))
        return 0

    print(format_config(config, args.format))
    return 0


def _reject(exc: SettlementError) -> int:
    print(f"rejected ({exc.kind}): {type(exc).__name__}: {exc}")
    return 1


def _load_mapping(path: Path) -> Mapping[str, Any]:
    with path.open("r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh)
    if not isinstance(data, Mapping):
        raise ValueError(f"{path} must contain a mapping")
    return data


def _print_profiles() -> None:
    profiles = available_profiles()
    lines: List[str] = []
    for profile in Profile:
        meta = profiles[profile]
        lines.append(
            f"{profile.value:>10}: {meta.description} (chain id={meta.defaults['chain']['chain_id']},"
            f" settles on {meta.settlement_layer})"
        )
    print("\n".join(lines))


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    raise SystemExit(main())
