from __future__ import annotations

import logging

from respmux.typing import Mapping, ValueT

logger = logging.getLogger("respmux")


def dict_to_flat_list(mapping: Mapping[ValueT, ValueT]) -> list[ValueT]:
    e: list[ValueT] = []
    for k, v in mapping.items():
        e.extend([k, v])
    return e
