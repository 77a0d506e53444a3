from __future__ import annotations

import uuid
from collections import OrderedDict
from dataclasses import asdict, is_dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping

import orjson

from .config import Config

RUNLOG_NAME = "runlog.ndjson"

_ORJSON_NDJSON_OPTIONS = orjson.OPT_APPEND_NEWLINE
if hasattr(orjson, "OPT_ESCAPE_NON_ASCII"):
    _ORJSON_NDJSON_OPTIONS |= orjson.OPT_ESCAPE_NON_ASCII


def default_run_id() -> str:
    stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    suffix = uuid.uuid4().hex[:8]
    return f"{stamp}-{suffix}"


def _canonicalize_stable_json(value: object) -> object:
    if isinstance(value, dict):
        items: list[tuple[str, object]] = []
        for key, item in value.items():
            items.append((str(key), _canonicalize_stable_json(item)))
        items.sort(key=lambda pair: pair[0])
        return OrderedDict(items)
    if isinstance(value, list):
        return [_canonicalize_stable_json(item) for item in value]
    return value


def _normalize_orjson(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, Path):
        return str(value)
    if is_dataclass(value) and not isinstance(value, type):
        return _normalize_orjson(asdict(value))
    if isinstance(value, dict):
        return {str(key): _normalize_orjson(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_normalize_orjson(item) for item in value]
    return str(value)


def format_result(result: Mapping[str, object], *, stable: bool) -> str:
    payload: object = _normalize_orjson(dict(result))
    if stable:
        payload = _canonicalize_stable_json(payload)
    return orjson.dumps(payload).decode("utf-8")


class RunLog:
    def __init__(self, run_dir: Path, run_id: str) -> None:
        self.run_dir = run_dir
        self.run_id = run_id

    @property
    def path(self) -> Path:
        return self.run_dir / RUNLOG_NAME

    @classmethod
    def create(cls, data_dir: str, run_id: str | None = None) -> "RunLog":
        run_id = run_id or default_run_id()
        run_dir = Path(data_dir) / "runs" / run_id
        run_dir.mkdir(parents=True, exist_ok=True)
        return cls(run_dir, run_id)

    def append(self, record: dict[str, Any]) -> None:
        line = orjson.dumps(_normalize_orjson(record), option=_ORJSON_NDJSON_OPTIONS)
        with self.path.open("ab") as handle:
            handle.write(line)

    def write_header(self, config: Config) -> None:
        self.append(
            {
                "record_type": "run_header",
                "run_id": self.run_id,
                "satisfied_threshold": int(config.satisfied_threshold),
                "tolerated_threshold": int(config.tolerated_threshold),
                "locale": config.locale,
            }
        )

    def write_distribution(self, group: str, result: Mapping[str, object], samples: int) -> None:
        self.append(
            {
                "record_type": "distribution",
                "run_id": self.run_id,
                "group": group,
                "samples": int(samples),
                "result": dict(result),
            }
        )


def load_runlog(path: Path) -> list[dict[str, Any]]:
    records: list[dict[str, Any]] = []
    with path.open("rb") as handle:
        for line in handle:
            line = line.strip()
            if not line:
                continue
            records.append(orjson.loads(line))
    return records
