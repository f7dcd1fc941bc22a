"""Tree-walking interpreter for resolved Lox programs.

Executing a statement returns one of the following, which the enclosing statements must pass on or consume:

- COMPLETED: the statement finished normally
- BREAK, CONTINUE: consumed by the innermost loop
- Return(value): consumed by the innermost function call

Runtime errors are raised as LoxRuntimeErrors, which carry a snapshot of the call stack taken where they were raised.
"""

import sys
import time
import weakref
from collections import namedtuple

from pylox.core import ast
from pylox.core.builtins import define_builtins
from pylox.core.environment import Environment, UNDEFINED
from pylox.core.objects import (LoxBool, LoxCallable, LoxClass, LoxFunction, LoxList, LoxNumber, LoxString, NIL, TRUE,
                                FALSE, join_names)
from pylox.core.token import TokenType, CURRENT_INSTANCE_IDENT, PLACEHOLDER_IDENT, SUPERCLASS_IDENT
from pylox.lang.error import LoxRuntimeError

StackFrame = namedtuple("StackFrame", ["function", "position"])  # function is "" at the top level


class Completion:
    """Result of executing a statement."""
    is_return = False

    def __init__(self, name):
        self.name = name

    def __repr__(self):
        return self.name


COMPLETED = Completion("COMPLETED")
BREAK = Completion("BREAK")
CONTINUE = Completion("CONTINUE")


class Return(Completion):
    is_return = True

    def __init__(self, value):
        super().__init__("RETURN")
        self.value = value

    def __repr__(self):
        return f"Return({self.value!r})"


class Interpreter:
    """Runs programs against one global environment, which persists between calls to interpret. In REPL mode, the values
    of top-level expression statements are printed.
    """

    def __init__(self, stdout=None, clock=time.time, repl=False):
        self.stdout = stdout if stdout is not None else sys.stdout
        self.clock = clock
        self.repl = repl

        self.globals = Environment()
        define_builtins(self.globals)
        # reference node: distance to its declaring scope, over every program run whose nodes are still reachable
        self.bindings = weakref.WeakKeyDictionary()

        self.frames = []     # one StackFrame per active call, made at the call site
        self.function = ""   # name of the function currently running

        self.executors = {
            ast.VarDecl: self.exec_var_decl,
            ast.FunDecl: self.exec_fun_decl,
            ast.ClassDecl: self.exec_class_decl,
            ast.ExprStmt: self.exec_expr_stmt,
            ast.PrintStmt: self.exec_print_stmt,
            ast.BlockStmt: self.exec_block_stmt,
            ast.IfStmt: self.exec_if_stmt,
            ast.WhileStmt: self.exec_while_stmt,
            ast.ForStmt: self.exec_for_stmt,
            ast.BreakStmt: lambda stmt, env: BREAK,
            ast.ContinueStmt: lambda stmt, env: CONTINUE,
            ast.ReturnStmt: self.exec_return_stmt,
            ast.IllegalStmt: self.exec_illegal_stmt,
        }
        self.evaluators = {
            ast.LiteralExpr: self.eval_literal_expr,
            ast.VariableExpr: self.eval_variable_expr,
            ast.AssignmentExpr: self.eval_assignment_expr,
            ast.UnaryExpr: self.eval_unary_expr,
            ast.BinaryExpr: self.eval_binary_expr,
            ast.TernaryExpr: self.eval_ternary_expr,
            ast.CallExpr: self.eval_call_expr,
            ast.GetExpr: self.eval_get_expr,
            ast.SetExpr: self.eval_set_expr,
            ast.ThisExpr: self.eval_this_expr,
            ast.SuperExpr: self.eval_super_expr,
            ast.FunctionExpr: lambda expr, env: LoxFunction(None, expr.function, env),
            ast.GroupExpr: lambda expr, env: self.evaluate(expr.expr, env),
            ast.ListExpr: self.eval_list_expr,
            ast.IndexExpr: self.eval_index_expr,
            ast.IndexSetExpr: self.eval_index_set_expr,
        }

    def interpret(self, program, bindings):
        """Runs program, which must have been resolved into bindings. Raises a LoxRuntimeError on the first error."""
        self.bindings.update(bindings)

        # top-level names exist from the start, so functions can refer to globals declared after them
        for stmt in program.stmts:
            if isinstance(stmt, (ast.VarDecl, ast.FunDecl, ast.ClassDecl)) and stmt.name.lexeme != PLACEHOLDER_IDENT:
                self.globals.declare(stmt.name.lexeme)

        try:
            for stmt in program.stmts:
                self.execute(stmt, self.globals)
        except LoxRuntimeError as error:
            if not error.trace:
                error.trace = self.snapshot(error)
            raise
        finally:
            self.frames.clear()
            self.function = ""

    def snapshot(self, error):
        """Returns the call stack at error, most recent call first."""
        return [StackFrame(self.function, error.start)] + self.frames[::-1]

    # statements

    def execute(self, stmt, env):
        return self.executors[type(stmt)](stmt, env)

    def execute_stmts(self, stmts, env):
        for stmt in stmts:
            result = self.execute(stmt, env)
            if result is not COMPLETED:
                return result
        return COMPLETED

    def exec_var_decl(self, stmt, env):
        value = self.evaluate(stmt.initialiser, env) if stmt.initialiser is not None else UNDEFINED
        if stmt.name.lexeme != PLACEHOLDER_IDENT:
            env.define(stmt.name.lexeme, value)
        return COMPLETED

    def exec_fun_decl(self, stmt, env):
        if stmt.name.lexeme != PLACEHOLDER_IDENT:
            env.define(stmt.name.lexeme, LoxFunction(stmt.name.lexeme, stmt.function, env))
        return COMPLETED

    def exec_class_decl(self, stmt, env):
        superclass = None
        method_env = env
        if stmt.superclass is not None:
            superclass = self.evaluate(stmt.superclass, env)
            if not isinstance(superclass, LoxClass):
                raise LoxRuntimeError.at("superclass must be a class", stmt.superclass)
            method_env = env.child()
            method_env.define(SUPERCLASS_IDENT, superclass)

        name = stmt.name.lexeme
        klass = LoxClass(name, superclass)
        for method in stmt.methods:
            function = LoxFunction(method.name.lexeme, method.function, method_env, method.is_constructor, owner=name)
            klass.add(method, function)

        if name != PLACEHOLDER_IDENT:
            env.define(name, klass)
        return COMPLETED

    def exec_expr_stmt(self, stmt, env):
        value = self.evaluate(stmt.expr, env)
        is_assignment = isinstance(stmt.expr, (ast.AssignmentExpr, ast.SetExpr, ast.IndexSetExpr))
        if self.repl and env is self.globals and value is not NIL and not is_assignment:
            print(value, file=self.stdout)
        return COMPLETED

    def exec_print_stmt(self, stmt, env):
        print(self.evaluate(stmt.expr, env), file=self.stdout)
        return COMPLETED

    def exec_block_stmt(self, stmt, env):
        return self.execute_stmts(stmt.stmts, env.child())

    def exec_if_stmt(self, stmt, env):
        if self.evaluate(stmt.condition, env).truthy():
            return self.execute(stmt.then_branch, env)
        elif stmt.else_branch is not None:
            return self.execute(stmt.else_branch, env)
        return COMPLETED

    def exec_while_stmt(self, stmt, env):
        while self.evaluate(stmt.condition, env).truthy():
            result = self.execute(stmt.body, env)
            if result is BREAK:
                break
            elif result.is_return:
                return result
        return COMPLETED

    def exec_for_stmt(self, stmt, env):
        scope = env.child()
        if stmt.initialiser is not None:
            self.execute(stmt.initialiser, scope)

        while stmt.condition is None or self.evaluate(stmt.condition, scope).truthy():
            result = self.execute(stmt.body, scope)
            if result is BREAK:
                break
            elif result.is_return:
                return result

            # each iteration gets its own copy of the loop variables, so closures made in the body keep their values
            scope = scope.copy()
            if stmt.update is not None:
                self.evaluate(stmt.update, scope)
        return COMPLETED

    def exec_return_stmt(self, stmt, env):
        return Return(self.evaluate(stmt.value, env) if stmt.value is not None else NIL)

    def exec_illegal_stmt(self, stmt, env):
        raise LoxRuntimeError.at("cannot run a program that failed to parse", stmt)

    # expressions

    def evaluate(self, expr, env):
        return self.evaluators[type(expr)](expr, env)

    def lookup(self, name, expr, env):
        distance = self.bindings.get(expr)
        if distance is None:
            return self.globals.get(name, expr)
        return env.get_at(distance, name, expr)

    def eval_literal_expr(self, expr, env):
        token = expr.value
        if token.kind is TokenType.NUMBER:
            return LoxNumber(float(token.lexeme))
        elif token.kind is TokenType.STRING:
            return LoxString(token.lexeme[1:-1])
        elif token.kind is TokenType.TRUE:
            return TRUE
        elif token.kind is TokenType.FALSE:
            return FALSE
        return NIL

    def eval_variable_expr(self, expr, env):
        return self.lookup(expr.name.lexeme, expr, env)

    def eval_assignment_expr(self, expr, env):
        value = self.evaluate(expr.value, env)
        name = expr.name.lexeme
        if name == PLACEHOLDER_IDENT:
            return value

        distance = self.bindings.get(expr)
        if distance is None:
            self.globals.assign(name, value, expr)
        else:
            env.assign_at(distance, name, value, expr)
        return value

    def eval_unary_expr(self, expr, env):
        right = self.evaluate(expr.right, env)
        if expr.op.kind is TokenType.BANG:
            return LoxBool.of(not right.truthy())
        return right.unary_op(expr.op, expr)

    def eval_binary_expr(self, expr, env):
        kind = expr.op.kind
        left = self.evaluate(expr.left, env)

        if kind is TokenType.AND:
            return self.evaluate(expr.right, env) if left.truthy() else left
        elif kind is TokenType.OR:
            return left if left.truthy() else self.evaluate(expr.right, env)
        elif kind is TokenType.COMMA:
            return self.evaluate(expr.right, env)

        right = self.evaluate(expr.right, env)
        if kind is TokenType.EQUAL_EQUAL:
            return LoxBool.of(left.equals(right))
        elif kind is TokenType.BANG_EQUAL:
            return LoxBool.of(not left.equals(right))
        return left.binary_op(expr.op, right, expr)

    def eval_ternary_expr(self, expr, env):
        if self.evaluate(expr.condition, env).truthy():
            return self.evaluate(expr.then_expr, env)
        return self.evaluate(expr.else_expr, env)

    def eval_call_expr(self, expr, env):
        callee = self.evaluate(expr.callee, env)
        args = [self.evaluate(arg, env) for arg in expr.args]
        if not isinstance(callee, LoxCallable):
            raise LoxRuntimeError.at(f"'{callee.type_name}' object is not callable", expr.callee)
        return self.call(callee, args, expr)

    def eval_get_expr(self, expr, env):
        obj = self.evaluate(expr.object, env)
        return obj.get_property(expr.name.lexeme, self, expr)

    def eval_set_expr(self, expr, env):
        obj = self.evaluate(expr.object, env)
        value = self.evaluate(expr.value, env)
        obj.set_property(expr.name.lexeme, value, self, expr)
        return value

    def eval_list_expr(self, expr, env):
        return LoxList([self.evaluate(element, env) for element in expr.elements])

    def eval_index_expr(self, expr, env):
        obj = self.evaluate(expr.object, env)
        index = self.evaluate(expr.index, env)
        return obj.get_index(index, expr)

    def eval_index_set_expr(self, expr, env):
        obj = self.evaluate(expr.object, env)
        index = self.evaluate(expr.index, env)
        value = self.evaluate(expr.value, env)
        obj.set_index(index, value, expr)
        return value

    def eval_this_expr(self, expr, env):
        return self.lookup(CURRENT_INSTANCE_IDENT, expr, env)

    def eval_super_expr(self, expr, env):
        distance = self.bindings[expr]
        superclass = env.get_at(distance, SUPERCLASS_IDENT, expr)
        this = env.get_at(distance - 1, CURRENT_INSTANCE_IDENT, expr)  # `this` is bound just inside `super`

        static = isinstance(this, LoxClass)
        name = expr.method.lexeme
        method = superclass.find("method", name, static=static)
        if method is not None:
            return method.bind(this)

        getter = superclass.find("getter", name, static=static)
        if getter is not None:
            return self.call(getter.bind(this), [], expr)
        kind = "static method or getter" if static else "method or getter"
        raise LoxRuntimeError.at(f"'{superclass.name}' class has no {kind} '{name}'", expr)

    # calls

    def call(self, callee, args, node):
        """Calls callee after checking its arity. Calls to Lox functions and classes are recorded in the call stack."""
        self.check_arity(callee, args, node)
        if not isinstance(callee, (LoxFunction, LoxClass)):
            return callee.call(self, args, node)

        self.frames.append(StackFrame(self.function, node.start))
        caller, self.function = self.function, callee.name
        try:
            return callee.call(self, args, node)
        except RecursionError:
            raise LoxRuntimeError.at("maximum recursion depth exceeded", node)
        except LoxRuntimeError as error:
            if not error.trace:
                error.trace = self.snapshot(error)
            raise
        finally:
            self.frames.pop()
            self.function = caller

    @staticmethod
    def check_arity(callee, args, node):
        params = callee.params
        if len(args) < len(params):
            missing = params[len(args):]
            plural = "s" if len(missing) != 1 else ""
            raise LoxRuntimeError.at(f"{callee.name}() missing {len(missing)} argument{plural}: "
                                     f"{join_names(missing)}", node)
        elif len(args) > len(params):
            plural = "s" if len(params) != 1 else ""
            verb = "were" if len(args) != 1 else "was"
            raise LoxRuntimeError.at(f"{callee.name}() accepts {len(params)} argument{plural} but {len(args)} {verb} "
                                     f"given", node)


def interpret(program, bindings, interpreter=None):
    """Runs a resolved program. Returns the LoxRuntimeError that stopped it, or None if it ran to completion."""
    if interpreter is None:
        interpreter = Interpreter()
    try:
        interpreter.interpret(program, bindings)
    except LoxRuntimeError as error:
        return error
    return None
