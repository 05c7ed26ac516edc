"""Update dispatcher running the command and notifying subscribers."""

import structlog

from spook.broadcast.registry import SubscriberRegistry
from spook.command import CommandSpec, run_command
from spook.config import BroadcastConfig

logger = structlog.get_logger()


class UpdateDispatcher:
    """Performs the side effects of one update.

    The control loop is the only caller, so updates never overlap.

    Attributes:
        command: Command run on every update, if any.
        broadcast: Broadcast target, if server events are enabled.
    """

    def __init__(
        self,
        command: CommandSpec | None = None,
        broadcast: BroadcastConfig | None = None,
        registry: SubscriberRegistry | None = None,
    ) -> None:
        """Initialize dispatcher.

        Args:
            command: Command to run, or None.
            broadcast: Broadcast target, or None.
            registry: Subscriber registry; required when broadcasting.
        """
        if broadcast is not None and registry is None:
            raise ValueError("A subscriber registry is required to broadcast")
        self.command = command
        self.broadcast = broadcast
        self._registry = registry
        self._updates = 0

    @property
    def updates(self) -> int:
        """Number of completed updates."""
        return self._updates

    async def update(self) -> None:
        """Run the command, then notify all subscribers.

        Raises:
            LaunchFailure: If the command could not be started.
        """
        if self.broadcast is not None:
            logger.info(
                "triggering_signal",
                event_name=self.broadcast.name,
                port=self.broadcast.port,
            )
        if self.command is not None:
            logger.info("triggering_command", command=str(self.command))
            await run_command(self.command)

        if self._registry is not None and self.broadcast is not None:
            await self._registry.broadcast_and_compact()

        self._updates += 1
