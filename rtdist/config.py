from __future__ import annotations

from dataclasses import dataclass, fields
import types
import typing
from typing import Any, get_args, get_origin

from .buckets import Thresholds
from .labels import LabelTemplates, resolve_templates

ENV_PREFIX = "RTDIST_"


def _parse_bool(value: str) -> bool:
    val = str(value).strip().lower()
    if val in {"1", "true", "yes", "y", "on"}:
        return True
    if val in {"0", "false", "no", "n", "off"}:
        return False
    raise ValueError(f"invalid bool: {value}")


def _unwrap_optional(field_type: Any) -> tuple[Any, bool]:
    if isinstance(field_type, str):
        text = field_type.replace(" ", "")
        if text.endswith("|None"):
            return text[: -len("|None")], True
        return field_type, False
    origin = get_origin(field_type)
    union_type = getattr(types, "UnionType", None)
    if origin not in (typing.Union, union_type):
        return field_type, False
    args = get_args(field_type)
    if args and type(None) in args and len(args) == 2:
        base = args[0] if args[1] is type(None) else args[1]
        return base, True
    return field_type, False


def _is_field_type(field_type: Any, expected: type, expected_name: str) -> bool:
    base_type, _is_optional = _unwrap_optional(field_type)
    if base_type is expected:
        return True
    if isinstance(base_type, str) and base_type == expected_name:
        return True
    return False


def _parse_optional(raw: str) -> str | None:
    text = str(raw).strip()
    if text == "":
        return None
    lower = text.lower()
    if lower in {"none", "null"}:
        return None
    return text


def parse_field_value(field_type: Any, raw: str) -> Any:
    _base_type, is_optional = _unwrap_optional(field_type)
    if is_optional:
        return _parse_optional(raw)
    if _is_field_type(field_type, bool, "bool"):
        return _parse_bool(raw)
    if _is_field_type(field_type, int, "int"):
        return int(raw)
    return raw


@dataclass
class Config:
    satisfied_threshold: int = 500
    tolerated_threshold: int = 1500
    locale: str = "en"
    satisfied_label: str | None = None
    tolerated_label: str | None = None
    untolerated_label: str | None = None
    failed_label: str | None = None
    data_dir: str = "./data"
    stable_output: bool = False

    def thresholds(self) -> Thresholds:
        return Thresholds(
            satisfied=int(self.satisfied_threshold),
            tolerated=int(self.tolerated_threshold),
        )

    def label_templates(self) -> LabelTemplates:
        return resolve_templates(self.locale).with_overrides(
            {
                "satisfied": self.satisfied_label,
                "tolerated": self.tolerated_label,
                "untolerated": self.untolerated_label,
                "failed": self.failed_label,
            }
        )

    def apply_overrides(self, overrides: dict[str, Any]) -> "Config":
        for field in fields(self):
            name = field.name
            if name in overrides:
                value = overrides[name]
                if value is None:
                    continue
                setattr(self, name, value)
        return self

    @classmethod
    def from_env_and_cli(cls, cli_overrides: dict[str, Any], env: typing.Mapping[str, str]) -> "Config":
        cfg = cls().apply_overrides(cli_overrides)
        for field in fields(cfg):
            env_key = ENV_PREFIX + field.name.upper()
            if env_key not in env:
                continue
            setattr(cfg, field.name, parse_field_value(field.type, env[env_key]))
        return cfg
