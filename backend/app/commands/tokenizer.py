from __future__ import annotations

import re
from dataclasses import dataclass

# Either key="quoted value" or a run of characters that are neither space nor quote.
_TOKEN_PATTERN = re.compile(r'([^\s"=]+)="([^"]*)"|[^\s"]+')
_SMART_QUOTES = str.maketrans({"“": '"', "”": '"', "„": '"', "‟": '"'})


def tokenize(text: str) -> list[str]:
    normalized = (text or "").translate(_SMART_QUOTES)
    tokens: list[str] = []
    for match in _TOKEN_PATTERN.finditer(normalized):
        key, quoted = match.group(1), match.group(2)
        if key is not None:
            tokens.append(f"{key}={quoted}")
        else:
            tokens.append(match.group(0))
    return tokens


@dataclass(frozen=True)
class ParsedCommand:
    name: str
    args: tuple[str, ...] = ()


def parse_command(text: str) -> ParsedCommand:
    tokens = tokenize(text)
    if not tokens:
        return ParsedCommand(name="")
    return ParsedCommand(name=tokens[0], args=tuple(tokens[1:]))


@dataclass(frozen=True)
class CommandArguments:
    meeting: str = ""
    message: str = ""
    emoji: str = ""

    @classmethod
    def from_tokens(cls, args: tuple[str, ...] | list[str]) -> CommandArguments:
        values: dict[str, str] = {}
        for arg in args:
            key, separator, value = arg.partition("=")
            key = key.strip().lower()
            if separator and key in cls.__dataclass_fields__:
                values[key] = value.strip()
        return cls(**values)
