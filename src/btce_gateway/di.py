from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .exchanges.protocol import CombinedGateway
from .timers import AsyncioTimeProvider

if TYPE_CHECKING:
    from .settings import Settings


@dataclass(slots=True)
class AppContainer:
    settings: "Settings"
    time_provider: AsyncioTimeProvider = field(default_factory=AsyncioTimeProvider)
    shutdown: asyncio.Event = field(default_factory=asyncio.Event)
    gateways: dict[str, CombinedGateway] = field(default_factory=dict)

    async def close(self) -> None:
        self.time_provider.cancel_all()
        for gateway in self.gateways.values():
            await gateway.close()


def build_container(settings: "Settings", gateways: dict[str, CombinedGateway] | None = None) -> AppContainer:
    """Build application container with exchange gateways."""
    return AppContainer(settings=settings, gateways=gateways or {})
