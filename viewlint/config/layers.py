"""Option layers handed to ``View.setup``."""

from __future__ import annotations

from typing import Any, Iterable

from ..helpers import merge_all, to_list
from ..types import SetupOpts


def to_option_layers(value: SetupOpts | Iterable[SetupOpts] | None) -> list[SetupOpts]:
    return to_list(value)  # type: ignore[arg-type]


def concat_option_layers(*layers: Any) -> list[SetupOpts]:
    """Concatenate single layers and lists of layers, skipping ``None``."""
    result: list[SetupOpts] = []
    for layer in layers:
        result.extend(to_option_layers(layer))
    return result


def merge_option_layers(layers: Iterable[SetupOpts]) -> SetupOpts:
    """Ordered deep merge: later layers win on scalars and lists, mappings merge."""
    return merge_all(layers)


def url_layer(url: str) -> SetupOpts:
    """The option layer a URL target contributes."""
    return {"context": {"base_url": url}}


def with_meta_name(layer: SetupOpts, name: str) -> SetupOpts:
    """Name an anonymous layer after its registry key, for reporting."""
    meta = dict(layer.get("meta") or {})
    if meta.get("name"):
        return layer
    meta["name"] = name
    return {**layer, "meta": meta}
