from __future__ import annotations


class FakeChatProvider:
    def __init__(self, response: str | None = "This is a fake response.") -> None:
        # Deterministic response keeps tests stable without external calls.
        self._response = response
        self.calls: list[list[dict[str, str]]] = []

    async def complete(self, messages: list[dict[str, str]]) -> str | None:
        # Record prompts so tests can assert on context assembly.
        self.calls.append(messages)
        return self._response
