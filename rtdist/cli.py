from __future__ import annotations

import argparse
import os
from dataclasses import fields
from typing import Any

from .buckets import BucketClassifier, Sample
from .config import Config
from .distribution import SyntheticDistributionConsumer, ticks
from .graph import DEFAULT_GROUP
from .labels import LabelFormatter
from .report import RunLog, format_result


def _is_field_type(field_type, expected: type, expected_name: str) -> bool:
    if field_type is expected:
        return True
    if isinstance(field_type, str) and field_type == expected_name:
        return True
    return False


def _str2bool(value: str | bool) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in {"1", "true", "yes", "y", "on"}:
        return True
    if text in {"0", "false", "no", "n", "off"}:
        return False
    raise argparse.ArgumentTypeError(f"invalid bool: {value}")


def _add_config_args(parser: argparse.ArgumentParser) -> None:
    for field in fields(Config):
        name = field.name.replace("_", "-")
        if _is_field_type(field.type, bool, "bool"):
            group = parser.add_mutually_exclusive_group()
            group.add_argument(
                f"--{name}",
                dest=field.name,
                nargs="?",
                const=True,
                default=None,
                type=_str2bool,
            )
            group.add_argument(f"--no-{name}", dest=field.name, action="store_false", default=None)
        else:
            parser.add_argument(f"--{name}", dest=field.name, default=None)


def _cli_overrides(ns: argparse.Namespace) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    for field in fields(Config):
        value = getattr(ns, field.name, None)
        if value is None:
            continue
        if _is_field_type(field.type, bool, "bool"):
            overrides[field.name] = _str2bool(value)
        elif _is_field_type(field.type, int, "int"):
            overrides[field.name] = int(value)
        else:
            overrides[field.name] = value
    return overrides


def parse_sample_token(token: str) -> Sample:
    """Parse ``ELAPSED[:ok|ko][:tc]`` into a sample.

    ``ko`` marks a failed sample, ``tc`` a transaction controller record.
    """
    parts = [part.strip().lower() for part in str(token).split(":")]
    try:
        elapsed = int(parts[0])
    except ValueError:
        raise ValueError(f"invalid sample: {token}") from None
    success = True
    controller = False
    for flag in parts[1:]:
        if flag == "ok":
            success = True
        elif flag == "ko":
            success = False
        elif flag == "tc":
            controller = True
        else:
            raise ValueError(f"invalid sample: {token}")
    return Sample(elapsed_time=elapsed, success=success, controller=controller)


def build_consumer(config: Config) -> SyntheticDistributionConsumer:
    return SyntheticDistributionConsumer(
        config.satisfied_threshold,
        config.tolerated_threshold,
        templates=config.label_templates(),
    )


def run_ticks(config: Config) -> int:
    formatter = LabelFormatter(config.label_templates())
    payload = {"ticks": [tick.to_list() for tick in ticks(formatter, config.thresholds())]}
    print(format_result(payload, stable=config.stable_output))
    return 0


def run_classify(config: Config, elapsed: int, failed: bool) -> int:
    thresholds = config.thresholds()
    bucket = BucketClassifier(thresholds)(Sample(elapsed_time=elapsed, success=not failed))
    label = LabelFormatter(config.label_templates()).label(bucket, thresholds)
    print(format_result({"bucket": int(bucket), "label": label}, stable=config.stable_output))
    return 0


def run_distribution(config: Config, tokens: list[str], *, write_runlog: bool) -> int:
    samples = [parse_sample_token(token) for token in tokens]
    consumer = build_consumer(config)
    consumer.start()
    for sample in samples:
        consumer.consume(sample)
    results = consumer.produce()
    result = results[DEFAULT_GROUP]
    print(format_result(result, stable=config.stable_output))
    if write_runlog:
        runlog = RunLog.create(config.data_dir)
        runlog.write_header(config)
        runlog.write_distribution(DEFAULT_GROUP, result, len(samples))
        print(f"runlog written to {runlog.path}")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="rtdist")
    subparsers = parser.add_subparsers(dest="command", required=True)

    common = argparse.ArgumentParser(add_help=False)
    _add_config_args(common)

    subparsers.add_parser("ticks", parents=[common])

    classify = subparsers.add_parser("classify", parents=[common])
    classify.add_argument("elapsed", type=int)
    classify.add_argument("--failed", action="store_true")

    distribution = subparsers.add_parser("distribution", parents=[common])
    distribution.add_argument("samples", nargs="*")
    distribution.add_argument("--no-runlog", dest="write_runlog", action="store_false")

    args = parser.parse_args(argv)
    overrides = _cli_overrides(args)
    config = Config.from_env_and_cli(overrides, os.environ)

    if args.command == "ticks":
        return run_ticks(config)
    if args.command == "classify":
        return run_classify(config, args.elapsed, args.failed)
    if args.command == "distribution":
        return run_distribution(config, args.samples, write_runlog=args.write_runlog)
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
