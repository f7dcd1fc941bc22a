"""Static analysis of parsed Lox programs.

The resolver walks a Program once, keeping a stack of lexical scopes (the global scope at the bottom, then one per
block, function body, class body and `for` loop). It works out how many scopes separate each local variable reference
from its declaration, so that the interpreter can go straight to the right environment, and reports every semantic
error it finds along the way:

- declaring a name twice in the same scope
- declaring a local that is never used
- reading a name before it is declared or before it is given a value
- `break`, `continue`, `return`, `this` and `super` where they make no sense
- malformed classes: self-inheritance, bad accessors, duplicate members

Globals are looked up by name at run time, so they are only checked on a best-effort basis. In particular, a function
may refer to a global which the program declares after the function: the name is a forward-declared global, and
whether it has a value by the time the function runs is left to the interpreter.
"""

import enum

from pylox.core import ast
from pylox.core.builtins import BUILTIN_NAMES
from pylox.core.token import CONSTRUCTOR_IDENT, CURRENT_INSTANCE_IDENT, PLACEHOLDER_IDENT, SUPERCLASS_IDENT
from pylox.lang.error import LoxError


class FunctionType(enum.Enum):
    NONE = "none"
    FUNCTION = "function"
    METHOD = "method"
    INITIALISER = "initialiser"


class ClassType(enum.Enum):
    NONE = "none"
    CLASS = "class"
    SUBCLASS = "subclass"


class Variable:
    """What the resolver knows about a declared name."""

    def __init__(self, token, defined=False, used=False):
        self.token = token
        self.defined = defined
        self.used = used
        self.initialising = False  # true while its own initialiser is being resolved


class Scope:

    def __init__(self):
        self.vars = {}
        self.undeclared = []  # tokens that were read before any enclosing scope declared them


class Resolver:
    """Resolves a single Program. In REPL mode, top-level names may have been declared by earlier inputs, so checks that
    depend on knowing every global are skipped for them.
    """
    MAX_PARAMS = 255
    MAX_ARGS = 255

    def __init__(self, repl_mode=False, on_error=None):
        self.repl_mode = repl_mode
        self.on_error = on_error if on_error is not None else self._raise

        self.scopes = []
        self.bindings = {}
        self.global_decls = set()  # every name declared at the top level of the program

        self.function_type = FunctionType.NONE
        self.class_type = ClassType.NONE
        self.loop_depth = 0
        self.fun_scope_level = -1  # index of the scope the current function was declared in

        self.resolvers = {
            ast.VarDecl: self.resolve_var_decl,
            ast.FunDecl: self.resolve_fun_decl,
            ast.ClassDecl: self.resolve_class_decl,
            ast.ExprStmt: lambda stmt: self.resolve(stmt.expr),
            ast.PrintStmt: lambda stmt: self.resolve(stmt.expr),
            ast.BlockStmt: self.resolve_block_stmt,
            ast.IfStmt: self.resolve_if_stmt,
            ast.WhileStmt: self.resolve_while_stmt,
            ast.ForStmt: self.resolve_for_stmt,
            ast.BreakStmt: self.resolve_loop_jump,
            ast.ContinueStmt: self.resolve_loop_jump,
            ast.ReturnStmt: self.resolve_return_stmt,
            ast.IllegalStmt: lambda stmt: None,
            ast.LiteralExpr: lambda expr: None,
            ast.VariableExpr: lambda expr: self.resolve_ident(expr.name, expr),
            ast.AssignmentExpr: self.resolve_assignment_expr,
            ast.UnaryExpr: lambda expr: self.resolve(expr.right),
            ast.BinaryExpr: self.resolve_binary_expr,
            ast.TernaryExpr: self.resolve_ternary_expr,
            ast.CallExpr: self.resolve_call_expr,
            ast.GetExpr: self.resolve_get_expr,
            ast.SetExpr: self.resolve_set_expr,
            ast.ThisExpr: self.resolve_this_expr,
            ast.SuperExpr: self.resolve_super_expr,
            ast.FunctionExpr: lambda expr: self.resolve_function(expr.function, FunctionType.FUNCTION),
            ast.GroupExpr: lambda expr: self.resolve(expr.expr),
            ast.ListExpr: self.resolve_list_expr,
            ast.IndexExpr: self.resolve_index_expr,
            ast.IndexSetExpr: self.resolve_index_expr,
        }

    @staticmethod
    def _raise(error):
        raise error

    def error(self, msg, node):
        self.on_error(LoxError.at(msg, node))

    def resolve_program(self, program):
        """Resolves program. Returns a dict mapping each local reference node to its binding distance."""
        self.global_decls = {stmt.name.lexeme for stmt in program.stmts
                             if isinstance(stmt, (ast.VarDecl, ast.FunDecl, ast.ClassDecl))}

        self.begin_scope()
        self.resolve_stmts(program.stmts)
        self.end_scope()
        return self.bindings

    def resolve(self, node):
        self.resolvers[type(node)](node)

    def resolve_stmts(self, stmts):
        for stmt in stmts:
            self.resolve(stmt)

    # scopes

    @property
    def at_top_level(self):
        """Whether the innermost scope is the global scope."""
        return len(self.scopes) == 1

    def begin_scope(self):
        self.scopes.append(Scope())

    def end_scope(self):
        scope = self.scopes.pop()
        is_global = not self.scopes

        if not is_global:
            for name, var in scope.vars.items():
                if not var.used:
                    self.error(f"{name} has been declared but is never used", var.token)

        for token in scope.undeclared:
            name = token.lexeme
            if is_global and self.repl_mode:
                continue
            elif name in scope.vars:
                self.error(f"{name} has been used before its declaration", token)
            elif not is_global:
                self.scopes[-1].undeclared.append(token)
            elif name not in BUILTIN_NAMES:
                self.error(f"{name} has not been declared", token)

    def add_implicit(self, token, name):
        """Adds a name the program never declares itself, such as `this`."""
        self.scopes[-1].vars[name] = Variable(token, defined=True, used=True)

    def declare(self, token):
        name = token.lexeme
        if name == PLACEHOLDER_IDENT:
            return None

        scope = self.scopes[-1]
        if name in scope.vars and not (self.at_top_level and self.repl_mode):
            self.error(f"{name} has already been declared", token)

        read_too_early = any(undeclared.lexeme == name for undeclared in scope.undeclared)
        var = Variable(token, used=read_too_early)
        scope.vars[name] = var
        return var

    def declare_and_define(self, token):
        var = self.declare(token)
        if var is not None:
            var.defined = True
        return var

    def resolve_ident(self, token, node, read=True):
        """Binds the reference node to the innermost declaration of token, if it is a local."""
        name = token.lexeme
        if name == PLACEHOLDER_IDENT:
            if read:
                self.error("'_' cannot be used as a value", token)
            return

        for level in range(len(self.scopes) - 1, -1, -1):
            var = self.scopes[level].vars.get(name)
            if var is None:
                continue

            var.used = True
            relaxed = level == 0 and self.repl_mode
            if not read:
                var.defined = True
            elif relaxed:
                pass  # may have been given a value by an earlier input
            elif var.initialising and level == len(self.scopes) - 1:
                self.error(f"{name} read in its own initialiser", token)
            elif not var.defined and not self.may_run_later(level):
                self.error(f"{name} has not been defined", token)

            if level > 0:
                self.bindings[node] = len(self.scopes) - 1 - level
            return

        if self.function_type is FunctionType.NONE or name not in self.global_decls:
            self.scopes[-1].undeclared.append(token)

    def may_run_later(self, level):
        """Whether code at the current point could run after the rest of the scope at level has run."""
        return self.function_type is not FunctionType.NONE and level <= self.fun_scope_level

    # declarations

    def resolve_var_decl(self, stmt):
        var = self.declare(stmt.name)
        if stmt.initialiser is None:
            return

        if var is not None:
            var.initialising = True
        self.resolve(stmt.initialiser)
        if var is not None:
            var.initialising = False
            var.defined = True

    def resolve_fun_decl(self, stmt):
        self.declare_and_define(stmt.name)
        self.resolve_function(stmt.function, FunctionType.FUNCTION)

    def resolve_function(self, function, function_type):
        enclosing = self.function_type, self.loop_depth, self.fun_scope_level
        self.function_type = function_type
        self.loop_depth = 0  # break and continue cannot leave a function
        self.fun_scope_level = len(self.scopes) - 1

        if len(function.params) > Resolver.MAX_PARAMS:
            self.error(f"cannot define more than {Resolver.MAX_PARAMS} function parameters",
                       function.params[Resolver.MAX_PARAMS])

        self.begin_scope()
        for param in function.params:
            self.declare_and_define(param)
        self.resolve_stmts(function.body)
        self.end_scope()

        self.function_type, self.loop_depth, self.fun_scope_level = enclosing

    def resolve_class_decl(self, stmt):
        self.declare_and_define(stmt.name)

        if stmt.superclass is not None:
            if stmt.superclass.name.lexeme == stmt.name.lexeme:
                self.error("class cannot inherit from itself", stmt.superclass)
            self.resolve(stmt.superclass)

        enclosing = self.class_type
        self.class_type = ClassType.SUBCLASS if stmt.superclass is not None else ClassType.CLASS

        if stmt.superclass is not None:
            self.begin_scope()
            self.add_implicit(stmt.superclass.name, SUPERCLASS_IDENT)
        self.begin_scope()
        self.add_implicit(stmt.name, CURRENT_INSTANCE_IDENT)

        self.check_members(stmt.methods)
        for method in stmt.methods:
            function_type = FunctionType.INITIALISER if method.is_constructor else FunctionType.METHOD
            self.resolve_function(method.function, function_type)

        self.end_scope()
        if stmt.superclass is not None:
            self.end_scope()
        self.class_type = enclosing

    def check_members(self, methods):
        """Checks accessor signatures, and that no member is declared twice or is only writable."""
        members = {}  # (is_static, name): set of kinds declared so far
        for method in methods:
            name = method.name.lexeme
            params = method.function.params

            if name == PLACEHOLDER_IDENT:
                self.error(f"'{PLACEHOLDER_IDENT}' is not a valid property name", method.name)
            if name == CONSTRUCTOR_IDENT and method.is_static:
                self.error(f"{CONSTRUCTOR_IDENT}() cannot be static", method.name)

            if method.is_getter and params:
                self.error("property getter cannot have parameters", params[0])
            elif method.is_setter and not params:
                self.error("property setter must have a parameter", method.name)
            elif method.is_setter and len(params) > 1:
                self.error("property setter can only have one parameter", params[1])

            kind = "getter" if method.is_getter else "setter" if method.is_setter else "method"
            kinds = members.setdefault((method.is_static, name), set())
            if kind in kinds or (kinds and (kind == "method" or "method" in kinds)):
                self.error(f"{name} has already been declared", method.name)
            kinds.add(kind)

        for method in methods:
            kinds = members[(method.is_static, method.name.lexeme)]
            if method.is_setter and "getter" not in kinds:
                self.error("write-only properties are not allowed", method.name)

    # statements

    def resolve_block_stmt(self, stmt):
        self.begin_scope()
        self.resolve_stmts(stmt.stmts)
        self.end_scope()

    def resolve_if_stmt(self, stmt):
        self.resolve(stmt.condition)
        self.resolve(stmt.then_branch)
        if stmt.else_branch is not None:
            self.resolve(stmt.else_branch)

    def resolve_loop_body(self, body):
        self.loop_depth += 1
        self.resolve(body)
        self.loop_depth -= 1

    def resolve_while_stmt(self, stmt):
        self.resolve(stmt.condition)
        self.resolve_loop_body(stmt.body)

    def resolve_for_stmt(self, stmt):
        self.begin_scope()
        for part in (stmt.initialiser, stmt.condition, stmt.update):
            if part is not None:
                self.resolve(part)
        self.resolve_loop_body(stmt.body)
        self.end_scope()

    def resolve_loop_jump(self, stmt):
        if self.loop_depth == 0:
            keyword = "break" if isinstance(stmt, ast.BreakStmt) else "continue"
            self.error(f"'{keyword}' can only be used inside a loop", stmt)

    def resolve_return_stmt(self, stmt):
        if self.function_type is FunctionType.NONE:
            self.error("'return' can only be used inside a function definition", stmt)
        elif self.function_type is FunctionType.INITIALISER and stmt.value is not None:
            self.error(f"{CONSTRUCTOR_IDENT}() cannot return a value", stmt.value)

        if stmt.value is not None:
            self.resolve(stmt.value)

    # expressions

    def resolve_assignment_expr(self, expr):
        self.resolve(expr.value)
        self.resolve_ident(expr.name, expr, read=False)

    def resolve_binary_expr(self, expr):
        if expr.left is not None:
            self.resolve(expr.left)
        self.resolve(expr.right)

    def resolve_ternary_expr(self, expr):
        self.resolve(expr.condition)
        self.resolve(expr.then_expr)
        self.resolve(expr.else_expr)

    def resolve_call_expr(self, expr):
        self.resolve(expr.callee)
        if len(expr.args) > Resolver.MAX_ARGS:
            self.error(f"cannot pass more than {Resolver.MAX_ARGS} arguments to function", expr.args[Resolver.MAX_ARGS])
        for arg in expr.args:
            self.resolve(arg)

    def check_property_name(self, name):
        if name.lexeme == PLACEHOLDER_IDENT:
            self.error(f"'{PLACEHOLDER_IDENT}' is not a valid property name", name)

    def resolve_get_expr(self, expr):
        self.resolve(expr.object)
        self.check_property_name(expr.name)

    def resolve_set_expr(self, expr):
        self.resolve(expr.object)
        self.check_property_name(expr.name)
        self.resolve(expr.value)

    def resolve_list_expr(self, expr):
        for element in expr.elements:
            self.resolve(element)

    def resolve_index_expr(self, expr):
        self.resolve(expr.object)
        self.resolve(expr.index)
        if isinstance(expr, ast.IndexSetExpr):
            self.resolve(expr.value)

    def resolve_this_expr(self, expr):
        if self.class_type is ClassType.NONE:
            self.error(f"'{CURRENT_INSTANCE_IDENT}' can only be used inside a method definition", expr)
            return
        self.resolve_ident(expr.keyword, expr)

    def resolve_super_expr(self, expr):
        if self.class_type is ClassType.NONE:
            self.error(f"'{SUPERCLASS_IDENT}' can only be used inside a method definition", expr)
            return
        elif self.class_type is ClassType.CLASS:
            self.error(f"'{SUPERCLASS_IDENT}' can only be used inside a subclass", expr)
            return
        self.resolve_ident(expr.keyword, expr)


def resolve(program, repl_mode=False):
    """Resolves program. Returns (bindings, errors), where bindings maps reference nodes to binding distances and
    errors is a list of LoxErrors sorted by position.
    """
    errors = []
    bindings = Resolver(repl_mode, errors.append).resolve_program(program)
    return bindings, sorted(errors, key=lambda error: error.start.key())
