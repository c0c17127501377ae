from chat_core.streaming.decoder import StreamDecoder, iter_lines

__all__ = ["StreamDecoder", "iter_lines"]
