class Transcript:
    def __init__(self, separator: str = " ") -> None:
        self._separator = separator
        self._tokens: list[str] = []
        self._last_token = ""

    @property
    def tokens(self) -> list[str]:
        return list(self._tokens)

    @property
    def last_token(self) -> str:
        return self._last_token

    @property
    def text(self) -> str:
        return "".join(f"{token}{self._separator}" for token in self._tokens)

    def append(self, token: str) -> bool:
        if not token or token == self._last_token:
            return False
        self._tokens.append(token)
        self._last_token = token
        return True

    def reset_last_token(self) -> None:
        self._last_token = ""

    def clear(self) -> None:
        self._tokens.clear()
        self._last_token = ""

    def __len__(self) -> int:
        return len(self._tokens)
