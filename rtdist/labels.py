from __future__ import annotations

import string
from dataclasses import dataclass, replace
from typing import Mapping

from .buckets import Bucket, Thresholds

DEFAULT_LOCALE = "en"


@dataclass(frozen=True, slots=True)
class LabelTemplates:
    satisfied: str
    tolerated: str
    untolerated: str
    failed: str
    group_separator: str = ","

    def with_overrides(self, overrides: Mapping[str, str | None]) -> "LabelTemplates":
        changes = {
            name: value
            for name, value in overrides.items()
            if value is not None and name in _TEMPLATE_FIELDS
        }
        if not changes:
            return self
        for name, value in changes.items():
            if name in _TEMPLATE_ARGS:
                check_template(name, value)
        return replace(self, **changes)


_TEMPLATE_FIELDS = ("satisfied", "tolerated", "untolerated", "failed", "group_separator")

# positional fields each template may reference
_TEMPLATE_ARGS = {"satisfied": 1, "tolerated": 2, "untolerated": 1}


def check_template(name: str, template: str) -> str:
    """Reject templates that ``str.format`` would choke on or that reach past ``{0}``/``{1}``."""
    allowed = {str(idx) for idx in range(_TEMPLATE_ARGS.get(name, 0))}
    try:
        parsed = list(string.Formatter().parse(template))
    except ValueError as exc:
        raise ValueError(f"invalid {name} label template: {template!r}: {exc}") from None
    for _literal, field_name, format_spec, conversion in parsed:
        if field_name is None:
            continue
        if field_name not in allowed or format_spec or conversion:
            raise ValueError(f"invalid {name} label template: {template!r}")
    return template


_CATALOGS: dict[str, LabelTemplates] = {
    "en": LabelTemplates(
        satisfied="Requests having response time <= {0}ms",
        tolerated="Requests having response time > {0}ms and <= {1}ms",
        untolerated="Requests having response time > {0}ms",
        failed="Requests in error",
        group_separator=",",
    ),
    "fr": LabelTemplates(
        satisfied="Requêtes ayant un temps de réponse <= {0}ms",
        tolerated="Requêtes ayant un temps de réponse > {0}ms et <= {1}ms",
        untolerated="Requêtes ayant un temps de réponse > {0}ms",
        failed="Requêtes en erreur",
        group_separator="\u00a0",
    ),
}


def available_locales() -> list[str]:
    return sorted(_CATALOGS)


def resolve_templates(locale: str | None = None) -> LabelTemplates:
    """Return the catalog for ``locale``.

    ``fr_FR`` and ``fr-CA`` fall back to ``fr``; anything unknown falls back
    to the default catalog.
    """
    text = str(locale or DEFAULT_LOCALE).strip().lower().replace("-", "_")
    if text in _CATALOGS:
        return _CATALOGS[text]
    language = text.split("_", 1)[0]
    return _CATALOGS.get(language, _CATALOGS[DEFAULT_LOCALE])


def format_threshold(value: int, group_separator: str) -> str:
    text = f"{int(value):,}"
    if group_separator != ",":
        text = text.replace(",", group_separator)
    return text


@dataclass(frozen=True, slots=True)
class LabelFormatter:
    templates: LabelTemplates

    def label(self, bucket: Bucket | int, thresholds: Thresholds) -> str:
        bucket = Bucket(bucket)
        templates = self.templates
        sep = templates.group_separator
        if bucket is Bucket.SATISFIED:
            return templates.satisfied.format(format_threshold(thresholds.satisfied, sep))
        if bucket is Bucket.TOLERATED:
            return templates.tolerated.format(
                format_threshold(thresholds.satisfied, sep),
                format_threshold(thresholds.tolerated, sep),
            )
        if bucket is Bucket.UNTOLERATED:
            return templates.untolerated.format(format_threshold(thresholds.tolerated, sep))
        return templates.failed
