"""网络传输层。"""

from chat_core.transport.base import Transport, TransportResponse
from chat_core.transport.http import HttpxResponse, HttpxTransport

__all__ = ["HttpxResponse", "HttpxTransport", "Transport", "TransportResponse"]
