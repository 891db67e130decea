"""Split a search keyword expression into tokens."""

from __future__ import annotations

from dataclasses import dataclass, field


class QuerySyntaxError(ValueError):
    """The keyword expression cannot be tokenized."""


@dataclass
class Token:
    """One token: type is field, operator, value, logic or group."""

    type: str
    value: str
    sub_tokens: list[Token] = field(default_factory=list)


_QUOTES = ('"', "'")
_FIELD_OPERATORS = (":", "=", "!=")
_INLINE_OPERATORS = ("!=", ":", "=")


def _is_quoted(part: str) -> bool:
    return any(part.startswith(q) and part.endswith(q) for q in _QUOTES)


def _split_phrases(text: str, tokens: list[Token]) -> list[str]:
    """First pass: cut the text into parts, emitting field:"quoted" triples directly."""
    parts: list[str] = []
    phrase: list[str] = []
    in_quote = False
    quote_char = ""
    escaped = False
    in_field_quote = False
    field_name = ""
    delimiter = ""
    skip_next = False

    def flush_phrase() -> None:
        if phrase:
            if not in_field_quote:
                parts.append("".join(phrase))
            phrase.clear()

    for i, char in enumerate(text):
        if skip_next:
            skip_next = False
            continue
        if escaped:
            phrase.append(char)
            escaped = False
            continue
        if char == "\\":
            phrase.append(char)
            escaped = True
            continue

        if not in_quote and not in_field_quote and char in ":=!":
            if char == "!" and text[i + 1 : i + 2] == "=":
                delimiter = "!="
                rest = text[i + 2 :]
                skip_next = True
            else:
                delimiter = char
                rest = text[i + 1 :]
            field_name = "".join(phrase)
            phrase.clear()
            if not field_name and parts:
                field_name = parts.pop()
            if rest.lstrip(" \t")[:1] in _QUOTES and rest.lstrip(" \t"):
                in_field_quote = True
            if not in_field_quote:
                if field_name:
                    parts.append(field_name)
                parts.append(delimiter)
                field_name = ""
                delimiter = ""
            continue

        if char in _QUOTES:
            if in_quote and char == quote_char:
                phrase.append(char)
                if in_field_quote:
                    tokens.append(Token("field", field_name))
                    tokens.append(Token("operator", delimiter))
                    tokens.append(Token("value", "".join(phrase)))
                    in_field_quote = False
                    field_name = ""
                    delimiter = ""
                else:
                    parts.append("".join(phrase))
                phrase.clear()
                in_quote = False
            elif not in_quote:
                flush_phrase()
                phrase.append(char)
                in_quote = True
                quote_char = char
            else:
                phrase.append(char)
        elif in_quote:
            phrase.append(char)
        elif char in " \t":
            flush_phrase()
        else:
            phrase.append(char)

    if phrase:
        parts.append("".join(phrase))
    return parts


def _split_inline(part: str) -> list[Token] | None:
    for op in _INLINE_OPERATORS:
        if op in part:
            name, value = part.split(op, 1)
            if name:
                return [Token("field", name), Token("operator", op), Token("value", value)]
    return None


def tokenize(text: str) -> list[Token]:
    """Tokenize a keyword expression; raises QuerySyntaxError on unbalanced brackets."""
    if text == "*":
        return [Token("value", "*")]

    tokens: list[Token] = []
    parts = _split_phrases(text, tokens)

    i = 0
    while i < len(parts):
        part = parts[i]

        if part.startswith("("):
            depth = 0
            group: list[str] = []
            for j, current in enumerate(parts[i:], start=i):
                depth += current.count("(") - current.count(")")
                group.append(current)
                if depth == 0:
                    inner = " ".join(group).removeprefix("(").removesuffix(")").strip()
                    tokens.append(Token("group", inner, tokenize(inner)))
                    i = j + 1
                    break
            else:
                raise QuerySyntaxError(f"括号不匹配: {part}")
            continue

        if _is_quoted(part):
            tokens.append(Token("value", part))
            i += 1
            continue

        lowered = part.lower()
        if lowered == "and":
            tokens.append(Token("logic", "and"))
            i += 1
            continue
        if lowered == "or":
            tokens.append(Token("logic", "or"))
            i += 1
            continue
        if lowered == "not":
            tokens.append(Token("operator", "not"))
            i += 1
            continue

        if i + 2 < len(parts) and parts[i + 1] in _FIELD_OPERATORS:
            tokens.append(Token("field", part))
            tokens.append(Token("operator", parts[i + 1]))
            tokens.append(Token("value", parts[i + 2]))
            i += 3
            continue

        inline = _split_inline(part)
        tokens.extend(inline if inline is not None else [Token("value", part)])
        i += 1

    return tokens