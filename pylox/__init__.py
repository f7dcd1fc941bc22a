"""A tree-walking interpreter for the Lox language.

Basic program flow:

1. lex: source text is split into Tokens
2. parse: Tokens are parsed into a Program, with IllegalStmts standing in for anything unparseable
3. resolve: the Program is checked, and local variable references are bound to the scopes they refer to
4. interpret: the resolved Program is run

Steps 1-3 collect every error they find and hand them back together; step 4 stops at the first runtime error.
"""

from pylox.core.interpreter import Interpreter, interpret
from pylox.core.lexical import lex
from pylox.core.parser import parse
from pylox.core.resolver import resolve

__all__ = ["Interpreter", "interpret", "lex", "parse", "resolve"]
