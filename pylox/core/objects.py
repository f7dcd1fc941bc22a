"""Runtime values of Lox programs.

Every value is a LoxObject. Numbers, strings, booleans and nil implement the operators that make sense for them;
anything else is a runtime error that names the offending types, e.g. `'-' operator cannot be used with type 'string'`.
Functions, classes and instances are described by their display strings:

```
[function fib]            [bound method Point.norm]  [built-in function clock]
[class Point]             [Point object]
```
"""

import math
from abc import ABC, abstractmethod
from decimal import Decimal

from pylox.core.token import TokenType, CONSTRUCTOR_IDENT, CURRENT_INSTANCE_IDENT, PLACEHOLDER_IDENT
from pylox.lang.error import LoxRuntimeError


def format_number(value):
    """Formats value the shortest way that reads back the same, without an exponent or a trailing ".0"."""
    if math.isnan(value):
        return "nan"
    if math.isinf(value):
        return "inf" if value > 0 else "-inf"
    if value.is_integer():
        return str(int(value))
    return format(Decimal(repr(value)), "f")


def join_names(names):
    """Returns names as an English list: "a", "a and b", "a, b, and c"."""
    if len(names) <= 2:
        return " and ".join(names)
    return ", ".join(names[:-1]) + ", and " + names[-1]


class LoxObject(ABC):
    """Superclass of every Lox value."""

    @property
    @abstractmethod
    def type_name(self):
        """Name of this value's type, as returned by the type() built-in."""

    @abstractmethod
    def __str__(self):
        """How print displays this value."""

    def truthy(self):
        return True

    def equals(self, other):
        return self is other

    def unary_op(self, op, node):
        raise LoxRuntimeError.at(f"'{op.lexeme}' operator cannot be used with type '{self.type_name}'", node)

    def binary_op(self, op, right, node):
        raise LoxRuntimeError.at(f"'{op.lexeme}' operator cannot be used with types '{self.type_name}' and "
                                 f"'{right.type_name}'", node)

    def get_property(self, name, interpreter, node):
        raise LoxRuntimeError.at(f"property access is not valid for '{self.type_name}' object", node)

    def set_property(self, name, value, interpreter, node):
        raise LoxRuntimeError.at(f"property assignment is not valid for '{self.type_name}' object", node)

    def get_index(self, index, node):
        raise LoxRuntimeError.at(f"'{self.type_name}' object is not indexable", node)

    def set_index(self, index, value, node):
        raise LoxRuntimeError.at(f"'{self.type_name}' object is not indexable", node)

    def __repr__(self):
        return f"{type(self).__name__}({self})"


class LoxNil(LoxObject):
    type_name = "nil"

    def truthy(self):
        return False

    def equals(self, other):
        return isinstance(other, LoxNil)

    def __str__(self):
        return "nil"


class LoxBool(LoxObject):
    type_name = "bool"

    def __init__(self, value):
        self.value = value

    @staticmethod
    def of(value):
        return TRUE if value else FALSE

    def truthy(self):
        return self.value

    def equals(self, other):
        return isinstance(other, LoxBool) and self.value == other.value

    def __str__(self):
        return "true" if self.value else "false"


NIL = LoxNil()
TRUE = LoxBool(True)
FALSE = LoxBool(False)


def repeat(sequence, number, node):
    """Implements `number * sequence` and `sequence * number` for strings and lists."""
    if not number.value.is_integer():
        raise LoxRuntimeError.at(f"cannot multiply '{sequence.type_name}' by non-integer '{number.type_name}'", node)
    if number.value < 0:
        raise LoxRuntimeError.at(f"cannot multiply '{sequence.type_name}' by negative '{number.type_name}'", node)
    return type(sequence)(sequence.value * int(number.value))


class LoxNumber(LoxObject):
    type_name = "number"

    def __init__(self, value):
        self.value = float(value)

    def equals(self, other):
        return isinstance(other, LoxNumber) and self.value == other.value

    def unary_op(self, op, node):
        if op.kind is TokenType.MINUS:
            return LoxNumber(-self.value)
        return super().unary_op(op, node)

    def binary_op(self, op, right, node):
        if isinstance(right, (LoxString, LoxList)) and op.kind is TokenType.ASTERISK:
            return repeat(right, self, node)
        if not isinstance(right, LoxNumber):
            return super().binary_op(op, right, node)

        a, b = self.value, right.value
        if op.kind is TokenType.PLUS:
            return LoxNumber(a + b)
        elif op.kind is TokenType.MINUS:
            return LoxNumber(a - b)
        elif op.kind is TokenType.ASTERISK:
            return LoxNumber(a * b)
        elif op.kind is TokenType.SLASH:
            if b == 0:
                raise LoxRuntimeError.at("cannot divide by 0", node)
            return LoxNumber(a / b)
        elif op.kind is TokenType.PERCENT:
            if b == 0:
                raise LoxRuntimeError.at("cannot modulo by 0", node)
            return LoxNumber(math.fmod(a, b))  # result takes the sign of the dividend
        return compare(self, op, right, node)

    def __str__(self):
        return format_number(self.value)


class LoxString(LoxObject):
    type_name = "string"

    def __init__(self, value):
        self.value = value

    def equals(self, other):
        return isinstance(other, LoxString) and self.value == other.value

    def binary_op(self, op, right, node):
        if isinstance(right, LoxNumber) and op.kind is TokenType.ASTERISK:
            return repeat(self, right, node)
        if not isinstance(right, LoxString):
            return super().binary_op(op, right, node)

        if op.kind is TokenType.PLUS:
            return LoxString(self.value + right.value)
        return compare(self, op, right, node)

    def __str__(self):
        return self.value

    def __repr__(self):
        return f"LoxString({self.value!r})"


def compare(left, op, right, node):
    """Relational operators, shared by numbers and strings (which compare lexicographically)."""
    a, b = left.value, right.value
    if op.kind is TokenType.LESS:
        return LoxBool.of(a < b)
    elif op.kind is TokenType.LESS_EQUAL:
        return LoxBool.of(a <= b)
    elif op.kind is TokenType.GREATER:
        return LoxBool.of(a > b)
    elif op.kind is TokenType.GREATER_EQUAL:
        return LoxBool.of(a >= b)
    return LoxObject.binary_op(left, op, right, node)


class LoxList(LoxObject):
    """A mutable list. Besides indexing, lists have a length property and push and pop methods."""
    type_name = "list"

    def __init__(self, value):
        self.value = value

    def equals(self, other):
        if not isinstance(other, LoxList) or len(self.value) != len(other.value):
            return False
        return all(a.equals(b) for a, b in zip(self.value, other.value))

    def binary_op(self, op, right, node):
        if isinstance(right, LoxNumber) and op.kind is TokenType.ASTERISK:
            return repeat(self, right, node)
        if isinstance(right, LoxList) and op.kind is TokenType.PLUS:
            return LoxList(self.value + right.value)
        return super().binary_op(op, right, node)

    def check_index(self, index, node):
        """Returns index as a Python int if it is a valid index into this list."""
        if not isinstance(index, LoxNumber) or not index.value.is_integer():
            shown = f'"{index}"' if isinstance(index, LoxString) else str(index)
            raise LoxRuntimeError.at(f"index ({shown}) must be a non-negative integer", node)
        if index.value < 0:
            raise LoxRuntimeError.at(f"index ({index}) must not be negative", node)

        i = int(index.value)
        if i >= len(self.value):
            raise LoxRuntimeError.at(f"index {i} out of bounds for list of length {len(self.value)}", node)
        return i

    def get_index(self, index, node):
        return self.value[self.check_index(index, node)]

    def set_index(self, index, value, node):
        self.value[self.check_index(index, node)] = value

    def get_property(self, name, interpreter, node):
        if name == "length":
            return LoxNumber(len(self.value))
        elif name == "push":
            return LoxNativeFunction("push", ["value"], self.push)
        elif name == "pop":
            return LoxNativeFunction("pop", [], self.pop)
        raise LoxRuntimeError.at(f"'{self.type_name}' object has no property '{name}'", node)

    def push(self, interpreter, args, node):
        self.value.append(args[0])
        return NIL

    def pop(self, interpreter, args, node):
        if not self.value:
            raise LoxRuntimeError.at("pop from empty list", node)
        return self.value.pop()

    def __str__(self):
        return "[" + ", ".join(str(element) for element in self.value) + "]"


class LoxCallable(LoxObject):
    """A value that can be called. params are the names of its parameters, used for arity checks."""
    type_name = "function"

    @property
    @abstractmethod
    def name(self):
        pass

    @property
    @abstractmethod
    def params(self):
        pass

    @abstractmethod
    def call(self, interpreter, args, node):
        """Calls this with args, which the interpreter has already checked against params."""


class LoxNativeFunction(LoxCallable):
    """A built-in function. fn is called with (interpreter, args, node)."""

    def __init__(self, name, params, fn):
        self._name = name
        self._params = params
        self.fn = fn

    @property
    def name(self):
        return self._name

    @property
    def params(self):
        return self._params

    def call(self, interpreter, args, node):
        return self.fn(interpreter, args, node)

    def __str__(self):
        return f"[built-in function {self.name}]"


class LoxFunction(LoxCallable):
    """A closure: a function declaration together with the environment it was declared in. owner is the name of the
    class a method was declared in, and is None for plain functions.
    """

    def __init__(self, name, declaration, closure, is_constructor=False, owner=None, bound=False):
        self._name = name
        self.declaration = declaration
        self.closure = closure
        self.is_constructor = is_constructor
        self.owner = owner
        self.bound = bound

    @property
    def name(self):
        return self._name if self._name is not None else "<anonymous>"

    @property
    def params(self):
        return [param.lexeme for param in self.declaration.params]

    def bind(self, this):
        """Returns this method with `this` bound to an instance (or to a class, for static methods)."""
        env = self.closure.child()
        env.define(CURRENT_INSTANCE_IDENT, this)
        return LoxFunction(self._name, self.declaration, env, self.is_constructor, self.owner, bound=True)

    def call(self, interpreter, args, node):
        env = self.closure.child()
        for param, arg in zip(self.declaration.params, args):
            if param.lexeme != PLACEHOLDER_IDENT:
                env.define(param.lexeme, arg)

        result = interpreter.execute_stmts(self.declaration.body, env)
        if self.is_constructor:
            return self.closure.values[CURRENT_INSTANCE_IDENT]
        if result.is_return:
            return result.value
        return NIL

    def __str__(self):
        if self._name is None:
            return "[anonymous function]"
        if self.bound and self.owner is not None:
            return f"[bound method {self.owner}.{self.name}]"
        return f"[function {self.name}]"


class PropertyOwner(LoxObject):
    """A value with properties: instances, and classes (whose properties are their static members). Reading a property
    calls its getter if there is one, then falls back to a field, then to a method. Writing calls the setter if there is
    one, and otherwise stores a field unless the property has a getter only.
    """

    def __init__(self):
        self.fields = {}

    @abstractmethod
    def lookup(self, kind, name):
        """Returns the "method", "getter" or "setter" called name, or None."""

    def get_property(self, name, interpreter, node):
        getter = self.lookup("getter", name)
        if getter is not None:
            return interpreter.call(getter.bind(self), [], node)
        if name in self.fields:
            return self.fields[name]

        method = self.lookup("method", name)
        if method is not None:
            return method.bind(self)
        raise LoxRuntimeError.at(f"'{self.type_name}' object has no property '{name}'", node)

    def set_property(self, name, value, interpreter, node):
        setter = self.lookup("setter", name)
        if setter is not None:
            interpreter.call(setter.bind(self), [value], node)
        elif self.lookup("getter", name) is not None:
            raise LoxRuntimeError.at(f"property '{name}' of '{self.type_name}' object is read-only", node)
        else:
            self.fields[name] = value


class LoxClass(PropertyOwner, LoxCallable):
    """A class. Calling it creates an instance and runs its constructor."""
    KINDS = ("method", "getter", "setter")

    def __init__(self, name, superclass=None):
        super().__init__()
        self._name = name
        self.superclass = superclass
        self.members = {kind: {} for kind in LoxClass.KINDS}
        self.statics = {kind: {} for kind in LoxClass.KINDS}

    @property
    def name(self):
        return self._name

    @property
    def type_name(self):
        return f"{self.name} class"

    def add(self, method, function):
        """Adds function to the table matching the modifiers of its MethodDecl."""
        kind = "getter" if method.is_getter else "setter" if method.is_setter else "method"
        table = self.statics if method.is_static else self.members
        table[kind][method.name.lexeme] = function

    def find(self, kind, name, static=False):
        """Looks for a member up the superclass chain."""
        klass = self
        while klass is not None:
            table = klass.statics if static else klass.members
            if name in table[kind]:
                return table[kind][name]
            klass = klass.superclass
        return None

    def lookup(self, kind, name):
        return self.find(kind, name, static=True)

    @property
    def params(self):
        init = self.find("method", CONSTRUCTOR_IDENT)
        return init.params if init is not None else []

    def call(self, interpreter, args, node):
        instance = LoxInstance(self)
        init = self.find("method", CONSTRUCTOR_IDENT)
        if init is not None:
            init.bind(instance).call(interpreter, args, node)
        return instance

    def __str__(self):
        return f"[class {self.name}]"


class LoxInstance(PropertyOwner):

    def __init__(self, klass):
        super().__init__()
        self.klass = klass

    @property
    def type_name(self):
        return self.klass.name

    def lookup(self, kind, name):
        return self.klass.find(kind, name)

    def __str__(self):
        return f"[{self.klass.name} object]"
