"""Fleet-wide counts derived from a store snapshot."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel, model_validator

from devicedash.telemetry.liveness import Liveness

if TYPE_CHECKING:
    from collections.abc import Mapping

    from devicedash.telemetry.store import DeviceState


class FleetSummary(BaseModel):
    """Total / online / offline device counts."""

    total: int = 0
    online: int = 0
    offline: int = 0

    @model_validator(mode="after")
    def _counts_add_up(self) -> FleetSummary:
        if self.online + self.offline != self.total:
            raise ValueError(
                f"online ({self.online}) + offline ({self.offline}) != total ({self.total})"
            )
        return self


def summarize(snapshot: Mapping[str, DeviceState]) -> FleetSummary:
    """Count tracked devices by current liveness."""
    online = sum(1 for state in snapshot.values() if state.liveness is Liveness.ONLINE)
    total = len(snapshot)
    return FleetSummary(total=total, online=online, offline=total - online)
