"""Lox lexer. Turns source text into Tokens, one at a time.

Formally, the lexical grammar is

```
<token>   ::= <number> | <string> | <ident> | <keyword> | <symbol>
<number>  ::= <digit>+ ("." <digit>+)?        ; "1." is the number 1 followed by "."
<string>  ::= '"' <char except newline>* '"'  ; strings cannot span lines
<ident>   ::= <alpha> (<alpha> | <digit>)*    ; <alpha> includes "_"
<comment> ::= "//" <char except newline>*
            | "/*" (<comment> | <char>)* "*/" ; multi-line comments nest
```

Errors never stop the lexer: they are handed to the caller-supplied error callback, and an ILLEGAL token is produced
in place of the offending characters so that the parser can carry on.
Bytes that are not valid UTF-8 are reported wherever they appear, string literals and comments included.
"""

import string

from pylox.core.token import File, Position, Token, TokenType, KEYWORDS, SYMBOLS
from pylox.lang.error import LoxError

EOF_CHAR = ""
UNTERMINATED_COMMENT = "unterminated multi-line comment"


def is_digit(char):
    return len(char) == 1 and "0" <= char <= "9"


def is_alpha(char):
    return len(char) == 1 and (char in string.ascii_letters or char == "_")


def is_escaped_byte(char):
    """Whether char stands in for a byte that was not valid UTF-8."""
    return len(char) == 1 and "\udc80" <= char <= "\udcff"


class Lexer:
    """Scans a single source file. next_token returns EOF forever once the input is exhausted."""

    def __init__(self, source, filename="", on_error=None):
        if isinstance(source, bytes):
            source = source.decode("utf-8", errors="surrogateescape")

        self.file = File(filename, source)
        self.source = source
        self.on_error = on_error if on_error is not None else self._raise

        self.offset = 0  # index of the current character
        self.line = 1
        self.column = 0

    @staticmethod
    def _raise(error):
        raise error

    @property
    def char(self):
        return self.source[self.offset] if self.offset < len(self.source) else EOF_CHAR

    def peek(self):
        return self.source[self.offset + 1] if self.offset + 1 < len(self.source) else EOF_CHAR

    def position(self):
        return Position(self.file, self.line, self.column)

    def advance(self):
        if self.char == "\n":
            self.line += 1
            self.column = 0
        elif self.char != EOF_CHAR:
            if is_escaped_byte(self.char):
                end = Position(self.file, self.line, self.column + 1)
                self.error(f"invalid UTF-8 byte {ord(self.char) - 0xDC00:#04x}", self.position(), end)
            self.column += 1
        self.offset += 1

    def error(self, msg, start, end=None):
        self.on_error(LoxError(msg, start, end if end is not None else self.position()))

    def next_token(self):
        """Returns the next token in the source."""
        self.skip_whitespace_and_comments()

        start, start_offset = self.position(), self.offset
        char = self.char

        if char == EOF_CHAR:
            return Token(TokenType.EOF, "", start, start)
        elif char == '"':
            kind = self.lex_string(start)
        elif is_digit(char):
            kind = self.lex_number()
        elif is_alpha(char):
            kind = self.lex_ident(start_offset)
        elif self.peek() and char + self.peek() in SYMBOLS:
            self.advance()
            self.advance()
            kind = SYMBOLS[char + self.source[self.offset - 1]]
        elif char in SYMBOLS:
            self.advance()
            kind = SYMBOLS[char]
        else:
            self.advance()
            if not is_escaped_byte(char):  # already reported by advance
                self.error(f"illegal character {char!r}", start)
            kind = TokenType.ILLEGAL

        return Token(kind, self.source[start_offset:self.offset], start, self.position())

    def __iter__(self):
        """Yields every token up to and including EOF."""
        while True:
            token = self.next_token()
            yield token
            if token.kind is TokenType.EOF:
                break

    def skip_whitespace_and_comments(self):
        while True:
            if self.char.isspace():
                self.advance()
            elif self.char == "/" and self.peek() == "/":
                while self.char not in ("\n", EOF_CHAR):
                    self.advance()
            elif self.char == "/" and self.peek() == "*":
                self.skip_multi_line_comment()
            else:
                break

    def skip_multi_line_comment(self):
        start = self.position()
        depth = 0
        while True:
            if self.char == EOF_CHAR:
                self.error(UNTERMINATED_COMMENT, start)
                return
            elif self.char == "/" and self.peek() == "*":
                depth += 1
                self.advance()
            elif self.char == "*" and self.peek() == "/":
                depth -= 1
                self.advance()
                if depth == 0:
                    self.advance()
                    return
            self.advance()

    def lex_string(self, start):
        self.advance()  # opening quote
        while self.char != '"':
            if self.char in ("\n", EOF_CHAR):
                self.error("unterminated string literal", start)
                return TokenType.ILLEGAL
            self.advance()
        self.advance()  # closing quote
        return TokenType.STRING

    def lex_number(self):
        while is_digit(self.char):
            self.advance()
        if self.char == "." and is_digit(self.peek()):
            self.advance()
            while is_digit(self.char):
                self.advance()
        return TokenType.NUMBER

    def lex_ident(self, start_offset):
        while is_alpha(self.char) or is_digit(self.char):
            self.advance()
        return KEYWORDS.get(self.source[start_offset:self.offset], TokenType.IDENT)


def lex(source, filename=""):
    """Lexes all of source. Returns (tokens, errors), where tokens ends with EOF and errors is a list of LoxErrors."""
    errors = []
    tokens = list(Lexer(source, filename, errors.append))
    return tokens, errors
