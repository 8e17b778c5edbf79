"""
Message transport for remote trustees.

Each call is one JSON request and one JSON response. Integers travel as
fixed-width big-endian hex, bytes as base64, errors as optional strings.
A message that cannot be delivered or decoded raises TransportError.
"""

import base64
import binascii
import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional

from .errors import TransportError
from .group import GroupContext

logger = logging.getLogger(__name__)

Message = Dict[str, Any]


# ============================================================================
# VALUE CODEC
# ============================================================================


def element_to_wire(group: GroupContext, value: int) -> str:
    return group.element_to_hex(value)


def scalar_to_wire(group: GroupContext, value: int) -> str:
    return format(value, f"0{group.scalar_byte_length * 2}X")


def element_from_wire(group: GroupContext, text: str) -> int:
    if len(text) != group.element_byte_length * 2:
        raise ValueError(f"Element has {len(text)} hex digits, expected {group.element_byte_length * 2}")
    return int(text, 16)


def scalar_from_wire(group: GroupContext, text: str) -> int:
    if len(text) != group.scalar_byte_length * 2:
        raise ValueError(f"Scalar has {len(text)} hex digits, expected {group.scalar_byte_length * 2}")
    return int(text, 16)


def bytes_to_wire(data: Optional[bytes]) -> Optional[str]:
    return None if data is None else base64.b64encode(data).decode("ascii")


def bytes_from_wire(text: Optional[str]) -> Optional[bytes]:
    if text is None:
        return None
    try:
        return base64.b64decode(text.encode("ascii"), validate=True)
    except binascii.Error as e:
        raise ValueError(f"Invalid base64: {e}") from e


# ============================================================================
# CHANNEL AND SERVICE
# ============================================================================


class Channel(ABC):
    """Carries one request to a trustee service and returns its response"""

    @abstractmethod
    def call(self, method: str, request: Message) -> Message:
        ...


class MessageService:
    """Server side: decodes a request message and dispatches it by method name"""

    def __init__(self, name: str):
        self.name = name
        self.handlers: Dict[str, Callable[[Message], Message]] = {}

    def register(self, method: str, handler: Callable[[Message], Message]):
        self.handlers[method] = handler

    def handle(self, message: str) -> str:
        try:
            envelope = json.loads(message)
            method = envelope["method"]
            request = envelope["request"]
        except (ValueError, KeyError, TypeError) as e:
            return json.dumps({"transport_error": f"{self.name}: malformed message: {e}"})

        handler = self.handlers.get(method)
        if handler is None:
            return json.dumps({"transport_error": f"{self.name}: unknown method '{method}'"})

        try:
            response = handler(request)
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            logger.warning(f"{self.name}: bad request for {method}: {e}")
            return json.dumps({"transport_error": f"{self.name}: bad request for {method}: {e}"})
        return json.dumps({"response": response})


class LoopbackChannel(Channel):
    """In-process channel that still round-trips every message through JSON"""

    def __init__(self, service: MessageService):
        self.service = service

    def call(self, method: str, request: Message) -> Message:
        try:
            message = json.dumps({"method": method, "request": request})
        except (TypeError, ValueError) as e:
            raise TransportError(f"Cannot encode {method} request: {e}") from e

        reply = self.service.handle(message)

        try:
            envelope = json.loads(reply)
        except ValueError as e:
            raise TransportError(f"Cannot decode {method} response: {e}") from e
        if "transport_error" in envelope:
            raise TransportError(envelope["transport_error"])
        return envelope["response"]
