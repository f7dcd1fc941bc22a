"""Abstract syntax tree for Lox programs.

```
<program>     ::= <decl>* EOF
<decl>        ::= <var-decl> | <fun-decl> | <class-decl> | <stmt>
<var-decl>    ::= "var" IDENT ("=" <expr>)? ";"
<fun-decl>    ::= "fun" IDENT <function>
<class-decl>  ::= "class" IDENT ("<" IDENT)? "{" <method>* "}"
<method>      ::= "static"? ("get" | "set")? IDENT <function>
<function>    ::= "(" (IDENT ("," IDENT)*)? ")" <block>
<stmt>        ::= <expr> ";" | "print" <expr> ";" | <block> | "if" "(" <expr> ")" <stmt> ("else" <stmt>)?
                | "while" "(" <expr> ")" <stmt> | "for" "(" (<var-decl> | <expr>? ";") <expr>? ";" <expr>? ")" <stmt>
                | "break" ";" | "continue" ";" | "return" <expr>? ";"
<block>       ::= "{" <decl>* "}"
```

Every node knows the source range it was parsed from. Nodes compare by identity so that they can be used as keys in
the resolver's binding map.
"""

from dataclasses import dataclass
from typing import List, Optional

from pylox.core.token import Position, Token, CONSTRUCTOR_IDENT


@dataclass(eq=False)
class Node:
    start: Position
    end: Position


class Stmt(Node):
    pass


class Expr(Node):
    pass


@dataclass(eq=False)
class Program(Node):
    stmts: List[Stmt]


# declarations

@dataclass(eq=False)
class Function(Node):
    """Parameters and body shared by function declarations, methods and function expressions."""
    params: List[Token]
    body: List[Stmt]


@dataclass(eq=False)
class VarDecl(Stmt):
    name: Token
    initialiser: Optional[Expr]


@dataclass(eq=False)
class FunDecl(Stmt):
    name: Token
    function: Function


@dataclass(eq=False)
class MethodDecl(Node):
    name: Token
    function: Function
    is_static: bool = False
    is_getter: bool = False
    is_setter: bool = False

    @property
    def is_constructor(self):
        return self.name.lexeme == CONSTRUCTOR_IDENT and not self.is_static and not self.is_accessor

    @property
    def is_accessor(self):
        return self.is_getter or self.is_setter

    @property
    def modifiers(self):
        """Returns the modifiers as they are written in the source, e.g. "static get"."""
        words = ["static"] if self.is_static else []
        if self.is_getter:
            words.append("get")
        elif self.is_setter:
            words.append("set")
        return " ".join(words)


@dataclass(eq=False)
class ClassDecl(Stmt):
    name: Token
    superclass: Optional["VariableExpr"]
    methods: List[MethodDecl]


# statements

@dataclass(eq=False)
class IllegalStmt(Stmt):
    """Stands in for source that could not be parsed."""


@dataclass(eq=False)
class ExprStmt(Stmt):
    expr: Expr


@dataclass(eq=False)
class PrintStmt(Stmt):
    expr: Expr


@dataclass(eq=False)
class BlockStmt(Stmt):
    stmts: List[Stmt]


@dataclass(eq=False)
class IfStmt(Stmt):
    condition: Expr
    then_branch: Stmt
    else_branch: Optional[Stmt]


@dataclass(eq=False)
class WhileStmt(Stmt):
    condition: Expr
    body: Stmt


@dataclass(eq=False)
class ForStmt(Stmt):
    initialiser: Optional[Stmt]
    condition: Optional[Expr]
    update: Optional[Expr]
    body: Stmt


@dataclass(eq=False)
class BreakStmt(Stmt):
    pass


@dataclass(eq=False)
class ContinueStmt(Stmt):
    pass


@dataclass(eq=False)
class ReturnStmt(Stmt):
    value: Optional[Expr]


# expressions

@dataclass(eq=False)
class LiteralExpr(Expr):
    value: Token


@dataclass(eq=False)
class VariableExpr(Expr):
    name: Token


@dataclass(eq=False)
class AssignmentExpr(Expr):
    name: Token
    value: Expr


@dataclass(eq=False)
class UnaryExpr(Expr):
    op: Token
    right: Expr


@dataclass(eq=False)
class BinaryExpr(Expr):
    """Arithmetic, comparison, logical and comma expressions. left is None when the left operand was missing."""
    left: Optional[Expr]
    op: Token
    right: Expr


@dataclass(eq=False)
class TernaryExpr(Expr):
    condition: Expr
    then_expr: Expr
    else_expr: Expr


@dataclass(eq=False)
class CallExpr(Expr):
    callee: Expr
    args: List[Expr]


@dataclass(eq=False)
class GetExpr(Expr):
    object: Expr
    name: Token


@dataclass(eq=False)
class SetExpr(Expr):
    object: Expr
    name: Token
    value: Expr


@dataclass(eq=False)
class ThisExpr(Expr):
    keyword: Token


@dataclass(eq=False)
class SuperExpr(Expr):
    keyword: Token
    method: Token


@dataclass(eq=False)
class FunctionExpr(Expr):
    function: Function


@dataclass(eq=False)
class GroupExpr(Expr):
    expr: Expr


@dataclass(eq=False)
class ListExpr(Expr):
    elements: List[Expr]


@dataclass(eq=False)
class IndexExpr(Expr):
    object: Expr
    index: Expr


@dataclass(eq=False)
class IndexSetExpr(Expr):
    object: Expr
    index: Expr
    value: Expr
