"""
Parameter Parser.

Turns an untyped request parameter map into typed refinement instructions:

    filter[<field>]=<value>            -> RefinementSpec.filters
    scope=<name>                       -> RefinementSpec.scope
    order[field]=<f>&order[direction]=asc|desc, or order=<f>_desc
                                       -> RefinementSpec.order
    page=<n>&per_page=<n>              -> RefinementSpec.page
    batch_action=<name>&id=1,2,3       -> BatchRequest

Every key is optional and nothing here raises: missing or malformed values
map to "no refinement" for that dimension.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Iterable, Mapping

from admin_shared.config.constants import Limits, OrderDirection, Params
from admin_shared.config.logging import get_logger

logger = get_logger(__name__)

_KEY_PATTERN = re.compile(r"^([^\[\]]+)((?:\[[^\[\]]*\])*)$")
_SEGMENT_PATTERN = re.compile(r"\[([^\[\]]*)\]")
_INT_PATTERN = re.compile(r"^[+-]?\d+$")
_ID_PATTERN = re.compile(r"^\d+$")


# =============================================================================
# Parsed values
# =============================================================================


@dataclass(frozen=True)
class OrderSpec:
    """Sort instruction: a field name and a direction."""

    field: str
    direction: OrderDirection = OrderDirection.ASC


@dataclass(frozen=True)
class PageSpec:
    """1-based page number and optional requested page size."""

    number: int = Limits.DEFAULT_PAGE
    per_page: int | None = None


@dataclass(frozen=True)
class RefinementSpec:
    """Per-request bundle of filter/scope/order/page instructions."""

    filters: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    scope: str | None = None
    order: OrderSpec | None = None
    page: PageSpec = field(default_factory=PageSpec)


@dataclass(frozen=True)
class BatchRequest:
    """Batch action name plus the target ids parsed from the id list."""

    action: str | None = None
    ids: tuple[int, ...] = ()

    @property
    def requested(self) -> bool:
        """True when the request asked for a batch action at all."""
        return self.action is not None


# =============================================================================
# Bracket-notation query strings
# =============================================================================


def nest_params(items: Iterable[tuple[str, Any]]) -> dict[str, Any]:
    """
    Build a nested parameter map from flat bracket-notation pairs.

        [("filter[title]", "foo"), ("order[field]", "title"), ("ids[]", "1")]
        -> {"filter": {"title": "foo"}, "order": {"field": "title"}, "ids": ["1"]}

    A repeated plain key keeps the last value; a trailing ``[]`` collects a
    list. Keys that are not valid bracket notation are kept verbatim.
    """
    nested: dict[str, Any] = {}

    for raw_key, value in items:
        match = _KEY_PATTERN.match(raw_key)
        if not match:
            nested[raw_key] = value
            continue

        path = [match.group(1), *_SEGMENT_PATTERN.findall(match.group(2))]
        target = nested
        for position, segment in enumerate(path):
            is_last = position == len(path) - 1
            next_is_list = not is_last and path[position + 1] == ""

            if segment == "":
                # "[]" only makes sense as the last segment
                break

            if is_last:
                target[segment] = value
            elif next_is_list:
                current = target.get(segment)
                if not isinstance(current, list):
                    current = []
                    target[segment] = current
                current.append(value)
                break
            else:
                current = target.get(segment)
                if not isinstance(current, dict):
                    current = {}
                    target[segment] = current
                target = current

    return nested


# =============================================================================
# Scalar helpers
# =============================================================================


def is_blank(value: Any) -> bool:
    """None, empty/whitespace strings and empty containers are blank."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, set, frozenset, dict)):
        return len(value) == 0
    return False


def parse_int(value: Any) -> int | None:
    """Parse an integer from an int or a decimal string; None if malformed."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and _INT_PATTERN.match(value.strip()):
        return int(value.strip())
    return None


def _parse_text(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


# =============================================================================
# Refinement
# =============================================================================


def parse_filters(value: Any) -> Mapping[str, Any]:
    """Non-blank filter values keyed by field name."""
    if not isinstance(value, Mapping):
        if not is_blank(value):
            logger.debug("Ignoring malformed filter parameter", value=value)
        return MappingProxyType({})

    return MappingProxyType(
        {str(name): raw for name, raw in value.items() if not is_blank(raw)}
    )


def parse_order(value: Any) -> OrderSpec | None:
    """
    Parse an order instruction.

    Accepts ``{"field": "title", "direction": "desc"}`` or the compact
    ``"title_desc"`` / ``"title_asc"`` form. A bare field name sorts ascending.
    """
    if isinstance(value, Mapping):
        name = _parse_text(value.get("field"))
        if name is None:
            return None
        return OrderSpec(name, OrderDirection.parse(value.get("direction")))

    text = _parse_text(value)
    if text is None:
        return None

    name, _, suffix = text.rpartition("_")
    if name and suffix.lower() in (OrderDirection.ASC.value, OrderDirection.DESC.value):
        return OrderSpec(name, OrderDirection.parse(suffix))
    return OrderSpec(text, OrderDirection.ASC)


def parse_page(page: Any, per_page: Any = None) -> PageSpec:
    """
    Parse page number and page size.

    A malformed page number means the first page. Zero and negative numbers
    are kept as given (they select an empty page). A page size that is not a
    positive integer is ignored.
    """
    number = parse_int(page)
    if number is None:
        if not is_blank(page):
            logger.debug("Ignoring malformed page parameter", page=page)
        number = Limits.DEFAULT_PAGE

    size = parse_int(per_page)
    if size is not None and size < 1:
        size = None

    return PageSpec(number=number, per_page=size)


def parse_refinement(params: Mapping[str, Any] | None) -> RefinementSpec:
    """
    Build a RefinementSpec from a (possibly nested) parameter map.

    Usage:
        spec = parse_refinement({"scope": "published", "filter": {"title": "foo"}})
        spec = parse_refinement(nest_params(request.query_params.multi_items()))
    """
    if not params:
        return RefinementSpec()

    return RefinementSpec(
        filters=parse_filters(params.get(Params.FILTER)),
        scope=_parse_text(params.get(Params.SCOPE)),
        order=parse_order(params.get(Params.ORDER)),
        page=parse_page(params.get(Params.PAGE), params.get(Params.PER_PAGE)),
    )


# =============================================================================
# Batch actions
# =============================================================================


def parse_batch_ids(value: Any) -> tuple[int, ...]:
    """
    Parse a comma-separated id list ("1,2,3") into positive integer ids.

    The list is rejected as a whole (empty result) if any token is not a
    positive 64-bit integer or if it exceeds Limits.MAX_BATCH_IDS. Duplicates are
    dropped, first occurrence wins.
    """
    if isinstance(value, (list, tuple)):
        tokens = [str(token).strip() for token in value]
    elif isinstance(value, int) and not isinstance(value, bool):
        tokens = [str(value)]
    elif isinstance(value, str):
        tokens = [token.strip() for token in value.split(Limits.LIST_SEPARATOR)]
    else:
        return ()

    if not tokens or tokens == [""]:
        return ()

    ids: list[int] = []
    for token in tokens:
        if not _ID_PATTERN.match(token) or not 0 < int(token) <= Limits.MAX_INTEGER:
            logger.debug("Rejecting malformed batch id list", value=value, token=token)
            return ()
        ids.append(int(token))

    unique = tuple(dict.fromkeys(ids))
    if len(unique) > Limits.MAX_BATCH_IDS:
        logger.debug("Rejecting oversized batch id list", count=len(unique))
        return ()
    return unique


def parse_batch_request(params: Mapping[str, Any] | None) -> BatchRequest:
    """Extract the batch action name and target ids."""
    if not params:
        return BatchRequest()

    action = _parse_text(params.get(Params.BATCH_ACTION))
    if action is None:
        return BatchRequest()

    return BatchRequest(action=action, ids=parse_batch_ids(params.get(Params.ID)))
