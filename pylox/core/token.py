"""Tokens produced by the Lox lexer, together with the source positions they carry."""

import enum
from dataclasses import dataclass, field

PLACEHOLDER_IDENT = "_"    # may be assigned to and declared many times, never read
CONSTRUCTOR_IDENT = "init"
CURRENT_INSTANCE_IDENT = "this"
SUPERCLASS_IDENT = "super"


class TokenType(enum.Enum):
    """Every kind of token the lexer can produce. The value is how the kind is displayed in error messages."""
    ILLEGAL = "illegal"
    EOF = "EOF"

    # keywords
    PRINT = "print"
    VAR = "var"
    TRUE = "true"
    FALSE = "false"
    NIL = "nil"
    IF = "if"
    ELSE = "else"
    AND = "and"
    OR = "or"
    WHILE = "while"
    FOR = "for"
    BREAK = "break"
    CONTINUE = "continue"
    FUN = "fun"
    RETURN = "return"
    CLASS = "class"
    THIS = "this"
    SUPER = "super"
    STATIC = "static"
    GET = "get"
    SET = "set"

    # literals
    IDENT = "identifier"
    STRING = "string"
    NUMBER = "number"

    # symbols
    SEMICOLON = ";"
    COMMA = ","
    DOT = "."
    EQUAL = "="
    PLUS = "+"
    MINUS = "-"
    ASTERISK = "*"
    SLASH = "/"
    PERCENT = "%"
    LESS = "<"
    LESS_EQUAL = "<="
    GREATER = ">"
    GREATER_EQUAL = ">="
    EQUAL_EQUAL = "=="
    BANG_EQUAL = "!="
    BANG = "!"
    QUESTION = "?"
    COLON = ":"
    LEFT_PAREN = "("
    RIGHT_PAREN = ")"
    LEFT_BRACE = "{"
    RIGHT_BRACE = "}"
    LEFT_BRACKET = "["
    RIGHT_BRACKET = "]"

    def __str__(self):
        return self.value


_NON_KEYWORDS = (TokenType.ILLEGAL, TokenType.EOF, TokenType.IDENT, TokenType.STRING, TokenType.NUMBER)
KEYWORDS = {kind.value: kind for kind in TokenType if kind.value.isalpha() and kind not in _NON_KEYWORDS}

SYMBOLS = {kind.value: kind for kind in TokenType if not kind.value.isalnum() and kind is not TokenType.EOF}

# bytes that were not valid UTF-8 are decoded to lone surrogates, and displayed as U+FFFD
ESCAPED_BYTES = {code: "\ufffd" for code in range(0xDC80, 0xDD00)}


class File:
    """A named source file. Keeps its lines around so that diagnostics can quote them."""

    def __init__(self, name, source):
        self.name = name
        self.lines = source.translate(ESCAPED_BYTES).split("\n")

    def line(self, number):
        """Returns the 1-based line number of the file, without its newline."""
        if 1 <= number <= len(self.lines):
            return self.lines[number - 1]
        return ""

    def __repr__(self):
        return f"File({self.name!r})"


@dataclass(frozen=True)
class Position:
    """A position in a source file. line is 1-based and column is a 0-based codepoint offset."""
    file: File = field(compare=False, repr=False)
    line: int
    column: int

    def key(self):
        return self.line, self.column

    def __lt__(self, other):
        return self.key() < other.key()

    def __le__(self, other):
        return self.key() <= other.key()

    def __str__(self):
        location = f"{self.line}:{self.column + 1}"
        if self.file is not None and self.file.name:
            return f"{self.file.name}:{location}"
        return location


@dataclass(frozen=True)
class Token:
    """A lexeme and its kind. end is the position just after the last character."""
    kind: TokenType
    lexeme: str
    start: Position
    end: Position

    def __str__(self):
        return self.lexeme
