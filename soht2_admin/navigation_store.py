"""Remember each view's sort, filters and page between invocations."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from .listing.filters import QueryParams
from .listing.navigation import SORT_PARAM, NavigationState
from .listing.views import VIEWS

logger = logging.getLogger(__name__)


class NavigationStore:
    """JSON file of ``{view name: wire params}``.

    Params are stored in their wire form so a saved history view is exactly
    the query string the server last saw.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path).expanduser()

    def read_all(self) -> dict[str, QueryParams]:
        if not self.path.exists():
            return {}
        raw = self.path.read_text()
        if not raw.strip():
            return {}
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("ignoring unreadable navigation file %s", self.path)
            return {}
        if not isinstance(data, dict):
            return {}
        return {
            str(name): _coerce_params(params)
            for name, params in data.items()
            if isinstance(params, Mapping)
        }

    def load(self, view: str, default: NavigationState | None = None) -> NavigationState:
        spec = VIEWS[view]
        params = self.read_all().get(view)
        if not params:
            return default or spec.default_state
        return spec.parse_query(params, default)

    def save(self, view: str, state: NavigationState) -> None:
        spec = VIEWS[view]
        data = self.read_all()
        params = spec.query(state)
        # An absent sort key loads as the view default; empty means unsorted.
        params.setdefault(SORT_PARAM, "")
        data[view] = params
        self._write(data)

    def clear(self, view: str | None = None) -> None:
        if view is None:
            data: dict[str, QueryParams] = {}
        else:
            data = self.read_all()
            if data.pop(view, None) is None:
                return
        self._write(data)

    def _write(self, data: dict[str, QueryParams]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data, indent=2, sort_keys=True) + "\n")


def _coerce_params(raw: Mapping[str, Any]) -> QueryParams:
    params: QueryParams = {}
    for key, value in raw.items():
        if isinstance(value, list):
            params[str(key)] = [str(v) for v in value]
        elif value is not None:
            params[str(key)] = str(value)
    return params
