"""Minimal demonstration of the streaming chat engine."""

import asyncio

from chat_core.api.service import create_engine


async def main() -> None:
    async with create_engine(system_prompt="你是一个有用的AI助手。") as engine:
        for question in ("你好，请介绍一下自己。", "用一句话总结刚才的回答"):
            print("User:", question)
            print("Agent: ", end="", flush=True)
            await engine.send(question, on_fragment=lambda f: print(f, end="", flush=True))
            print()


if __name__ == "__main__":
    asyncio.run(main())
