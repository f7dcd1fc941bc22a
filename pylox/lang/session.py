"""Session control for the Lox interpreter. Runs sources through the whole pipeline (lexing, parsing, resolving and
interpreting), either in command-line mode or file interpretation mode.
"""

import time
from collections import Counter

from pylox.core.interpreter import Interpreter
from pylox.core.lexical import UNTERMINATED_COMMENT, lex
from pylox.core.parser import parse
from pylox.core.printer import fprint
from pylox.core.resolver import resolve
from pylox.core.token import TokenType
from pylox.lang.error import LoxError, LoxErrors


class Session:
    """Governs a Lox session. Everything run in a session shares one interpreter, and so one global scope."""
    SH_FILE = ""  # file name of command-line input and -c programs
    BRACKETS = [(TokenType.LEFT_BRACE, TokenType.RIGHT_BRACE), (TokenType.LEFT_PAREN, TokenType.RIGHT_PAREN),
                (TokenType.LEFT_BRACKET, TokenType.RIGHT_BRACKET)]

    def __init__(self, error_handler, cmd_line=False, print_ast=False, stdout=None, clock=time.time):
        self.error_handler = error_handler

        self.cmd_line = cmd_line    # whether or not in command-line mode
        self.print_ast = print_ast  # print programs instead of running them
        self.stdout = stdout

        self.interpreter = Interpreter(stdout, clock, repl=cmd_line)

        if self.cmd_line:
            self.error_handler.fatal = False

    @staticmethod
    def read(path):
        """Returns the contents of the file at path."""
        try:
            with open(path, "rb") as file:
                return file.read()
        except OSError:
            raise LoxError(f"'{path}' could not be opened")

    @staticmethod
    def preprocess_line(line):
        """Returns whether line leaves a brace, parenthesis, bracket or multi-line comment open, in which case the next
        line continues it. Only real tokens count, so a "{" inside a string or comment does not.
        """
        tokens, errors = lex(line)
        if any(error.msg == UNTERMINATED_COMMENT for error in errors):
            return True

        counts = Counter(token.kind for token in tokens)
        return any(counts[opening] > counts[closing] for opening, closing in Session.BRACKETS)

    def compile(self, source, path=SH_FILE):
        """Parses and resolves source. Raises LoxErrors if either step finds errors."""
        program, errors = parse(source, path)
        if errors:
            raise LoxErrors(errors)

        bindings, errors = resolve(program, repl_mode=self.cmd_line)
        if errors:
            raise LoxErrors(errors)
        return program, bindings

    def run(self, source, path=SH_FILE):
        """Runs source in this session's interpreter. Will raise any errors that are encountered."""
        if self.print_ast:
            program, errors = parse(source, path)
            if errors:
                raise LoxErrors(errors)
            fprint(program, self.stdout)
            return

        program, bindings = self.compile(source, path)
        self.interpreter.interpret(program, bindings)

    def run_file(self, path):
        self.run(Session.read(path), path)
