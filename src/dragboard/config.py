from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from .geometry import CollisionStrategy
from .moves import Axis
from .store import check_namespace

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _parse_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ValueError(f"{name} must be a boolean, got {value!r}")


@dataclass(frozen=True, slots=True)
class EngineConfig:
    """Per-engine settings.

    Attributes:
        namespace: Key under which the snapshot blob is stored.
        strategy: Collision strategy used to pick drop targets.
        axis: Layout axis used for "insert after" decisions.
        activation_distance: Pointer travel (in px) before a pick-up counts as
            a drag. Zero activates immediately.
        strict: Raise ``IndexError`` on bad indices instead of clamping.
        snapshot_dir: Directory for :class:`~dragboard.store.JsonFileStore`.
    """

    namespace: str = "dragboard"
    strategy: CollisionStrategy = CollisionStrategy.CLOSEST_CENTER
    axis: Axis = Axis.VERTICAL
    activation_distance: float = 0.0
    strict: bool = True
    snapshot_dir: Path | None = None

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        *,
        base: "EngineConfig | None" = None,
    ) -> "EngineConfig":
        """Overlay ``DRAGBOARD_*`` environment variables onto ``base``.

        Raises:
            ValueError: If a variable holds an unparseable value.
        """

        env = os.environ if environ is None else environ
        config = base or cls()
        values = {
            "namespace": config.namespace,
            "strategy": config.strategy,
            "axis": config.axis,
            "activation_distance": config.activation_distance,
            "strict": config.strict,
            "snapshot_dir": config.snapshot_dir,
        }

        if "DRAGBOARD_NAMESPACE" in env:
            namespace = env["DRAGBOARD_NAMESPACE"].strip()
            try:
                check_namespace(namespace)
            except ValueError:
                raise ValueError(f"DRAGBOARD_NAMESPACE must be a plain file name, got {namespace!r}") from None
            values["namespace"] = namespace
        if "DRAGBOARD_STRATEGY" in env:
            values["strategy"] = CollisionStrategy.from_any(env["DRAGBOARD_STRATEGY"])
        if "DRAGBOARD_AXIS" in env:
            values["axis"] = Axis.from_any(env["DRAGBOARD_AXIS"])
        if "DRAGBOARD_ACTIVATION_DISTANCE" in env:
            raw = env["DRAGBOARD_ACTIVATION_DISTANCE"]
            try:
                distance = float(raw)
            except ValueError:
                raise ValueError(f"DRAGBOARD_ACTIVATION_DISTANCE must be a number, got {raw!r}") from None
            if distance < 0:
                raise ValueError("DRAGBOARD_ACTIVATION_DISTANCE must not be negative")
            values["activation_distance"] = distance
        if "DRAGBOARD_STRICT" in env:
            values["strict"] = _parse_bool("DRAGBOARD_STRICT", env["DRAGBOARD_STRICT"])
        if "DRAGBOARD_SNAPSHOT_DIR" in env:
            values["snapshot_dir"] = Path(env["DRAGBOARD_SNAPSHOT_DIR"]).expanduser()

        return cls(**values)
