"""Recursive-descent parser for Lox. See pylox.core.ast for the declaration and statement grammar. Expressions, from
lowest to highest precedence:

```
<expr>           ::= <assignment> ("," <assignment>)*
<assignment>     ::= (<call> ".")? IDENT "=" <assignment> | <call> "[" <expr> "]" "=" <assignment> | <ternary>
<ternary>        ::= <or> ("?" <assignment> ":" <ternary>)?
<or>             ::= <and> ("or" <and>)*
<and>            ::= <equality> ("and" <equality>)*
<equality>       ::= <relational> (("==" | "!=") <relational>)*
<relational>     ::= <additive> (("<" | "<=" | ">" | ">=") <additive>)*
<additive>       ::= <multiplicative> (("+" | "-") <multiplicative>)*
<multiplicative> ::= <unary> (("*" | "/" | "%") <unary>)*
<unary>          ::= ("!" | "-") <unary> | <call>
<call>           ::= <primary> ("(" <arguments>? ")" | "." IDENT | "[" <expr> "]")*
<primary>        ::= NUMBER | STRING | "true" | "false" | "nil" | IDENT | "this" | "super" "." IDENT
                   | "fun" <function> | "(" <expr> ")" | "[" <arguments>? "]"
<arguments>      ::= <assignment> ("," <assignment>)*
```

A binary operator with nothing to its left is parsed anyway (as a BinaryExpr without a left operand) so that the
error message can say what is actually wrong.

Errors never abort the parse. When a declaration cannot be parsed, the parser reports the error, skips ahead to the
next statement boundary and leaves an IllegalStmt in the tree, so that one pass reports every independent error.
"""

from pylox.core import ast
from pylox.core.lexical import Lexer
from pylox.core.token import TokenType
from pylox.lang.error import LoxError


class _Unwind(Exception):
    """Raised to abandon the declaration being parsed after an error has been reported."""


class Parser:
    """Parses the tokens of a single Lexer into a Program."""
    LITERALS = (TokenType.NUMBER, TokenType.STRING, TokenType.TRUE, TokenType.FALSE, TokenType.NIL)
    SYNC_KINDS = (TokenType.PRINT, TokenType.VAR, TokenType.IF, TokenType.LEFT_BRACE, TokenType.WHILE, TokenType.FOR,
                  TokenType.BREAK, TokenType.CONTINUE, TokenType.RETURN, TokenType.FUN, TokenType.CLASS)

    def __init__(self, source, filename="", on_error=None):
        self.on_error = on_error if on_error is not None else self._raise
        self.reported = set()  # start positions which already have an error

        self.lexer = Lexer(source, filename, self.report)
        self.prev = None  # last token consumed
        self.token = self.lexer.next_token()
        self.lookahead = self.lexer.next_token()

        # binary operators that are allowed to start an expression (as an error), mapped to the parser of their operand
        self.operand_parsers = {
            TokenType.EQUAL_EQUAL: self.parse_relational,
            TokenType.BANG_EQUAL: self.parse_relational,
            TokenType.LESS: self.parse_additive,
            TokenType.LESS_EQUAL: self.parse_additive,
            TokenType.GREATER: self.parse_additive,
            TokenType.GREATER_EQUAL: self.parse_additive,
            TokenType.PLUS: self.parse_multiplicative,
            TokenType.ASTERISK: self.parse_unary,
            TokenType.SLASH: self.parse_unary,
            TokenType.PERCENT: self.parse_unary,
        }

    @staticmethod
    def _raise(error):
        raise error

    @property
    def file(self):
        return self.lexer.file

    # token handling

    def advance(self):
        self.prev = self.token
        self.token = self.lookahead
        self.lookahead = self.lexer.next_token()
        return self.prev

    def check(self, *kinds):
        return self.token.kind in kinds

    def match(self, *kinds):
        if self.check(*kinds):
            self.advance()
            return True
        return False

    def expect(self, kind, msg=None):
        """Consumes and returns the current token if it is of kind. Otherwise reports an error and unwinds."""
        if self.check(kind):
            return self.advance()
        self.error(msg if msg is not None else f"expected '{kind}'", self.token)
        raise _Unwind()

    def report(self, error):
        """Passes error on unless another error was already reported at the same place."""
        if error.start in self.reported:
            return
        self.reported.add(error.start)
        self.on_error(error)

    def error(self, msg, node):
        self.report(LoxError.at(msg, node))

    def sync(self):
        """Skips tokens until just after a ";" or just before a token that starts a statement."""
        while not self.check(TokenType.EOF):
            if self.match(TokenType.SEMICOLON) or self.check(*Parser.SYNC_KINDS):
                return
            self.advance()

    # declarations

    def parse_program(self):
        start = self.token.start
        stmts = self.parse_decls_until(TokenType.EOF)
        return ast.Program(start, self.token.end, stmts)

    def parse_decls_until(self, kind):
        stmts = []
        while not self.check(kind, TokenType.EOF):
            stmts.append(self.safely_parse_decl())
        return stmts

    def safely_parse_decl(self):
        start = self.token
        try:
            return self.parse_decl()
        except _Unwind:
            self.sync()
            if self.token is start:
                self.advance()  # always make progress
            end = self.prev.end if self.prev.end > start.start else start.end
            return ast.IllegalStmt(start.start, end)

    def parse_decl(self):
        if self.check(TokenType.VAR):
            return self.parse_var_decl()
        elif self.check(TokenType.FUN) and self.lookahead.kind is TokenType.IDENT:
            start = self.advance().start
            name = self.advance()
            function = self.parse_function(name.start)
            return ast.FunDecl(start, function.end, name, function)
        elif self.check(TokenType.CLASS):
            return self.parse_class_decl()
        return self.parse_stmt()

    def parse_var_decl(self):
        start = self.expect(TokenType.VAR).start
        name = self.expect(TokenType.IDENT, "expected variable name")
        initialiser = self.parse_expr() if self.match(TokenType.EQUAL) else None
        self.expect(TokenType.SEMICOLON)
        return ast.VarDecl(start, self.prev.end, name, initialiser)

    def parse_class_decl(self):
        start = self.expect(TokenType.CLASS).start
        name = self.expect(TokenType.IDENT, "expected class name")

        superclass = None
        if self.match(TokenType.LESS):
            superclass_name = self.expect(TokenType.IDENT, "expected superclass name")
            superclass = ast.VariableExpr(superclass_name.start, superclass_name.end, superclass_name)

        self.expect(TokenType.LEFT_BRACE)
        methods = []
        while not self.check(TokenType.RIGHT_BRACE, TokenType.EOF):
            methods.append(self.parse_method())
        self.expect(TokenType.RIGHT_BRACE)

        return ast.ClassDecl(start, self.prev.end, name, superclass, methods)

    def parse_method(self):
        start = self.token.start
        is_static = self.match(TokenType.STATIC)
        is_getter = self.match(TokenType.GET)
        is_setter = not is_getter and self.match(TokenType.SET)
        name = self.expect(TokenType.IDENT, "expected method name")
        function = self.parse_function(name.start)
        return ast.MethodDecl(start, function.end, name, function, is_static, is_getter, is_setter)

    def parse_function(self, start):
        self.expect(TokenType.LEFT_PAREN)
        params = []
        if not self.check(TokenType.RIGHT_PAREN):
            params.append(self.expect(TokenType.IDENT, "expected parameter name"))
            while self.match(TokenType.COMMA):
                params.append(self.expect(TokenType.IDENT, "expected parameter name"))
        self.expect(TokenType.RIGHT_PAREN)

        self.expect(TokenType.LEFT_BRACE)
        body = self.parse_decls_until(TokenType.RIGHT_BRACE)
        self.expect(TokenType.RIGHT_BRACE)
        return ast.Function(start, self.prev.end, params, body)

    # statements

    def parse_stmt(self):
        start = self.token.start

        if self.match(TokenType.PRINT):
            expr = self.parse_expr()
            self.expect(TokenType.SEMICOLON)
            return ast.PrintStmt(start, self.prev.end, expr)

        elif self.check(TokenType.LEFT_BRACE):
            return self.parse_block()

        elif self.match(TokenType.IF):
            self.expect(TokenType.LEFT_PAREN)
            condition = self.parse_expr()
            self.expect(TokenType.RIGHT_PAREN)
            then_branch = self.parse_stmt()
            else_branch = self.parse_stmt() if self.match(TokenType.ELSE) else None
            return ast.IfStmt(start, self.prev.end, condition, then_branch, else_branch)

        elif self.match(TokenType.WHILE):
            self.expect(TokenType.LEFT_PAREN)
            condition = self.parse_expr()
            self.expect(TokenType.RIGHT_PAREN)
            body = self.parse_stmt()
            return ast.WhileStmt(start, body.end, condition, body)

        elif self.match(TokenType.FOR):
            return self.parse_for(start)

        elif self.match(TokenType.BREAK):
            self.expect(TokenType.SEMICOLON)
            return ast.BreakStmt(start, self.prev.end)

        elif self.match(TokenType.CONTINUE):
            self.expect(TokenType.SEMICOLON)
            return ast.ContinueStmt(start, self.prev.end)

        elif self.match(TokenType.RETURN):
            value = None if self.check(TokenType.SEMICOLON) else self.parse_expr()
            self.expect(TokenType.SEMICOLON)
            return ast.ReturnStmt(start, self.prev.end, value)

        expr = self.parse_expr()
        self.expect(TokenType.SEMICOLON)
        return ast.ExprStmt(start, self.prev.end, expr)

    def parse_block(self):
        start = self.expect(TokenType.LEFT_BRACE).start
        stmts = self.parse_decls_until(TokenType.RIGHT_BRACE)
        self.expect(TokenType.RIGHT_BRACE)
        return ast.BlockStmt(start, self.prev.end, stmts)

    def parse_for(self, start):
        self.expect(TokenType.LEFT_PAREN)

        if self.match(TokenType.SEMICOLON):
            initialiser = None
        elif self.check(TokenType.VAR):
            initialiser = self.parse_var_decl()
        else:
            init_start = self.token.start
            expr = self.parse_expr()
            self.expect(TokenType.SEMICOLON)
            initialiser = ast.ExprStmt(init_start, self.prev.end, expr)

        condition = None if self.check(TokenType.SEMICOLON) else self.parse_expr()
        self.expect(TokenType.SEMICOLON)
        update = None if self.check(TokenType.RIGHT_PAREN) else self.parse_expr()
        self.expect(TokenType.RIGHT_PAREN)

        body = self.parse_stmt()
        return ast.ForStmt(start, body.end, initialiser, condition, update, body)

    # expressions

    def parse_expr(self):
        expr = self.parse_assignment()
        while self.match(TokenType.COMMA):
            op = self.prev
            right = self.parse_assignment()
            expr = ast.BinaryExpr(expr.start, right.end, expr, op, right)
        return expr

    def parse_assignment(self):
        expr = self.parse_ternary()
        if not self.match(TokenType.EQUAL):
            return expr

        value = self.parse_assignment()
        if isinstance(expr, ast.VariableExpr):
            return ast.AssignmentExpr(expr.start, value.end, expr.name, value)
        elif isinstance(expr, ast.GetExpr):
            return ast.SetExpr(expr.start, value.end, expr.object, expr.name, value)
        elif isinstance(expr, ast.IndexExpr):
            return ast.IndexSetExpr(expr.start, value.end, expr.object, expr.index, value)

        self.error("invalid assignment target", expr)
        return expr

    def parse_ternary(self):
        condition = self.parse_or()
        if not self.match(TokenType.QUESTION):
            return condition

        then_expr = self.parse_assignment()
        self.expect(TokenType.COLON)
        else_expr = self.parse_ternary()
        return ast.TernaryExpr(condition.start, else_expr.end, condition, then_expr, else_expr)

    def _parse_binary(self, parse_operand, *kinds):
        """Parses a left-associative chain of operands separated by operators of the given kinds."""
        expr = parse_operand()
        while self.match(*kinds):
            op = self.prev
            right = parse_operand()
            expr = ast.BinaryExpr(expr.start, right.end, expr, op, right)
        return expr

    def parse_or(self):
        return self._parse_binary(self.parse_and, TokenType.OR)

    def parse_and(self):
        return self._parse_binary(self.parse_equality, TokenType.AND)

    def parse_equality(self):
        return self._parse_binary(self.parse_relational, TokenType.EQUAL_EQUAL, TokenType.BANG_EQUAL)

    def parse_relational(self):
        return self._parse_binary(self.parse_additive, TokenType.LESS, TokenType.LESS_EQUAL, TokenType.GREATER,
                                  TokenType.GREATER_EQUAL)

    def parse_additive(self):
        return self._parse_binary(self.parse_multiplicative, TokenType.PLUS, TokenType.MINUS)

    def parse_multiplicative(self):
        return self._parse_binary(self.parse_unary, TokenType.ASTERISK, TokenType.SLASH, TokenType.PERCENT)

    def parse_unary(self):
        if self.match(TokenType.BANG, TokenType.MINUS):
            op = self.prev
            right = self.parse_unary()
            return ast.UnaryExpr(op.start, right.end, op, right)
        return self.parse_call()

    def parse_call(self):
        expr = self.parse_primary()
        while True:
            if self.match(TokenType.LEFT_PAREN):
                args = self.parse_arguments(TokenType.RIGHT_PAREN)
                expr = ast.CallExpr(expr.start, self.prev.end, expr, args)
            elif self.match(TokenType.DOT):
                name = self.expect(TokenType.IDENT, "expected property name")
                expr = ast.GetExpr(expr.start, name.end, expr, name)
            elif self.match(TokenType.LEFT_BRACKET):
                index = self.parse_expr()
                self.expect(TokenType.RIGHT_BRACKET)
                expr = ast.IndexExpr(expr.start, self.prev.end, expr, index)
            else:
                return expr

    def parse_arguments(self, closing):
        """Parses a possibly empty, comma-separated list of expressions, and the closing token."""
        args = []
        if not self.check(closing):
            args.append(self.parse_assignment())
            while self.match(TokenType.COMMA):
                args.append(self.parse_assignment())
        self.expect(closing)
        return args

    def parse_primary(self):
        token = self.token

        if self.match(*Parser.LITERALS):
            return ast.LiteralExpr(token.start, token.end, token)
        elif self.match(TokenType.IDENT):
            return ast.VariableExpr(token.start, token.end, token)
        elif self.match(TokenType.THIS):
            return ast.ThisExpr(token.start, token.end, token)
        elif self.match(TokenType.SUPER):
            self.expect(TokenType.DOT)
            method = self.expect(TokenType.IDENT, "expected superclass method name")
            return ast.SuperExpr(token.start, method.end, token, method)
        elif self.match(TokenType.FUN):
            function = self.parse_function(token.start)
            return ast.FunctionExpr(function.start, function.end, function)
        elif self.match(TokenType.LEFT_PAREN):
            expr = self.parse_expr()
            self.expect(TokenType.RIGHT_PAREN)
            return ast.GroupExpr(token.start, self.prev.end, expr)
        elif self.match(TokenType.LEFT_BRACKET):
            elements = self.parse_arguments(TokenType.RIGHT_BRACKET)
            return ast.ListExpr(token.start, self.prev.end, elements)
        elif self.check(*self.operand_parsers):
            op = self.advance()
            self.error(f"binary operator '{op.lexeme}' must have left and right operands", op)
            right = self.operand_parsers[op.kind]()
            return ast.BinaryExpr(op.start, right.end, None, op, right)

        self.error("expected expression", token)
        raise _Unwind()


def parse(source, filename=""):
    """Parses all of source. Returns (program, errors), where program is always a Program (with IllegalStmts in place
    of anything that could not be parsed) and errors is a list of LoxErrors sorted by position.
    """
    errors = []
    program = Parser(source, filename, errors.append).parse_program()
    return program, sorted(errors, key=lambda error: error.start.key())
