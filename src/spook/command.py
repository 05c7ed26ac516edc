"""External command launcher."""

import asyncio

import structlog
from pydantic import BaseModel, ConfigDict

from spook.errors import LaunchFailure

logger = structlog.get_logger()


class CommandSpec(BaseModel):
    """Immutable external command.

    Attributes:
        program: Executable name or path.
        args: Arguments passed to the executable.
    """

    model_config = ConfigDict(frozen=True)

    program: str
    args: tuple[str, ...] = ()

    def __str__(self) -> str:
        return " ".join((self.program, *self.args))


async def run_command(spec: CommandSpec) -> int:
    """Start the command and wait for it to exit.

    The child inherits the standard streams. Its exit status is returned
    for logging only and is never treated as an error.

    Args:
        spec: Command to run.

    Returns:
        Exit status of the child process.

    Raises:
        LaunchFailure: If the process could not be started.
    """
    try:
        process = await asyncio.create_subprocess_exec(spec.program, *spec.args)
    except OSError as e:
        raise LaunchFailure("Failed to run command") from e

    returncode = await process.wait()
    logger.debug("command_exited", command=str(spec), returncode=returncode)
    return returncode
