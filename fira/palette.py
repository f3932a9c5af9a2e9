"""
Category colors
===============

`category_color` maps a fire category to a display color. It depends only
on the label: known labels take their slot in FIRE_TYPES, unknown labels are
hashed onto the same palette, so colors never shift when the data changes.
"""

from __future__ import annotations
from typing import Dict, Tuple
import zlib

from .models import FIRE_TYPES

# Dark2 + Set1 + Set2 + Set3 + Category10 + Tableau10, in that order.
PALETTE: Tuple[str, ...] = (
    "#1b9e77", "#d95f02", "#7570b3", "#e7298a", "#66a61e", "#e6ab02", "#a6761d", "#666666",
    "#e41a1c", "#377eb8", "#4daf4a", "#984ea3", "#ff7f00", "#ffff33", "#a65628", "#f781bf", "#999999",
    "#66c2a5", "#fc8d62", "#8da0cb", "#e78ac3", "#a6d854", "#ffd92f", "#e5c494", "#b3b3b3",
    "#8dd3c7", "#ffffb3", "#bebada", "#fb8072", "#80b1d3", "#fdb462", "#b3de69", "#fccde5",
    "#d9d9d9", "#bc80bd", "#ccebc5", "#ffed6f",
    "#1f77b4", "#ff7f0e", "#2ca02c", "#d62728", "#9467bd", "#8c564b", "#e377c2", "#7f7f7f",
    "#bcbd22", "#17becf",
    "#4e79a7", "#f28e2c", "#e15759", "#76b7b2", "#59a14f", "#edc949", "#af7aa1", "#ff9da7",
    "#9c755f", "#bab0ab",
)

_SLOTS: Dict[str, int] = {name: i for i, name in enumerate(FIRE_TYPES)}


def category_color(category: str) -> str:
    slot = _SLOTS.get(category)
    if slot is None:
        slot = zlib.crc32(category.encode("utf-8"))
    return PALETTE[slot % len(PALETTE)]
