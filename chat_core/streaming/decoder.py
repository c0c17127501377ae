"""响应流解码：字节块 → 完整文本行。

传输层给出的字节块大小任意，可能在多字节字符或一行的中间断开。
这里只保留块与块之间尚未成行的尾部，不会缓存整条响应。
"""

import codecs
from typing import AsyncIterable, AsyncIterator, List


class StreamDecoder:
    """增量行解码器。

    - feed(chunk): 输入一个字节块，返回本次凑齐的完整行（不含换行符）。
    - finish(): 流结束时调用，返回残留的最后一行（若非空）。
    """

    def __init__(self, encoding: str = "utf-8"):
        # 增量解码器自己保存被截断的多字节字符
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._tail = ""
        self._finished = False

    def feed(self, chunk: bytes) -> List[str]:
        if self._finished:
            raise RuntimeError("StreamDecoder already finished")
        text = self._tail + self._decoder.decode(chunk)
        *lines, self._tail = text.split("\n")
        return [_strip_cr(line) for line in lines]

    def finish(self) -> List[str]:
        if self._finished:
            return []
        self._finished = True
        rest = self._tail + self._decoder.decode(b"", final=True)
        self._tail = ""
        rest = _strip_cr(rest)
        return [rest] if rest else []


def _strip_cr(line: str) -> str:
    # SSE 服务端常用 \r\n 分行
    return line[:-1] if line.endswith("\r") else line


async def iter_lines(chunks: AsyncIterable[bytes], encoding: str = "utf-8") -> AsyncIterator[str]:
    """按到达顺序逐行产出，流只能消费一次。"""

    decoder = StreamDecoder(encoding)
    async for chunk in chunks:
        for line in decoder.feed(chunk):
            yield line
    for line in decoder.finish():
        yield line
