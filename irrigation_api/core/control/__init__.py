"""Control layer - Comandos hacia el controlador de campo."""

from .command_publisher import (
    CommandPublisher,
    CommandTransport,
    ControlIntent,
    ControlResult,
    OutboundCommand,
    build_commands,
)

__all__ = [
    "CommandPublisher",
    "CommandTransport",
    "ControlIntent",
    "ControlResult",
    "OutboundCommand",
    "build_commands",
]
