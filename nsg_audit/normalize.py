"""Normalization of raw firewall rules into :class:`RuleRecord` instances.

Providers describe a rule's sources and destination ports either as a single
value or as a list of values.  Normalization collapses both shapes into a
non-empty tuple and keeps only inbound rules.
"""
from __future__ import annotations

from typing import Any, Iterable, Iterator, Mapping, Optional, Tuple

from .errors import InputContractError
from .models import RuleAction, RuleRecord

INBOUND = "inbound"
ALLOW = "allow"


def _text(value: Any) -> str:
    """Return ``value`` as text, unwrapping SDK enum members."""

    if value is None:
        return ""
    return str(getattr(value, "value", value))


def is_inbound(raw: Mapping[str, Any]) -> bool:
    """Return ``True`` when ``raw`` describes an inbound rule."""

    return _text(raw.get("direction")).strip().lower() == INBOUND


def _action(raw: Mapping[str, Any]) -> RuleAction:
    if _text(raw.get("access")).strip().lower() == ALLOW:
        return RuleAction.ALLOW
    return RuleAction.DENY


def _list_or_scalar(raw: Mapping[str, Any], list_key: str, scalar_key: str) -> Tuple[str, ...]:
    values = raw.get(list_key) or []
    if values:
        return tuple(_text(value) for value in values)

    scalar = raw.get(scalar_key)
    if scalar is None or _text(scalar) == "":
        raise InputContractError(
            f"Rule '{raw.get('name', '<unnamed>')}' defines neither "
            f"'{list_key}' nor '{scalar_key}'"
        )
    return (_text(scalar),)


def _priority(raw: Mapping[str, Any]) -> int:
    priority = raw.get("priority")
    try:
        return int(priority)
    except (TypeError, ValueError) as exc:
        raise InputContractError(
            f"Rule '{raw.get('name', '<unnamed>')}' has invalid priority {priority!r}"
        ) from exc


def normalize_rule(raw: Mapping[str, Any]) -> Optional[RuleRecord]:
    """Return a :class:`RuleRecord` for ``raw`` or ``None`` for outbound rules.

    Raises :class:`InputContractError` when the rule lacks both the list and
    scalar form of its sources or destination ports.
    """

    if not is_inbound(raw):
        return None

    return RuleRecord(
        priority=_priority(raw),
        name=_text(raw.get("name")),
        source_addresses=_list_or_scalar(
            raw, "source_address_prefixes", "source_address_prefix"
        ),
        destination_ports=_list_or_scalar(
            raw, "destination_port_ranges", "destination_port_range"
        ),
        action=_action(raw),
    )


def normalize_rules(raws: Iterable[Mapping[str, Any]]) -> Iterator[RuleRecord]:
    """Yield normalized inbound rules from ``raws`` in their original order."""

    for raw in raws:
        record = normalize_rule(raw)
        if record is not None:
            yield record


__all__ = ["is_inbound", "normalize_rule", "normalize_rules"]
