"""Built-in functions, defined in the global scope of every interpreter."""

from pylox.core.objects import LoxNativeFunction, LoxNumber, LoxString
from pylox.lang.error import LoxRuntimeError


def clock(interpreter, args, node):
    """Returns the number of seconds since the epoch."""
    return LoxNumber(interpreter.clock())


def type_(interpreter, args, node):
    """Returns the name of the type of its argument."""
    return LoxString(args[0].type_name)


def error(interpreter, args, node):
    """Raises a runtime error with its argument as the message."""
    raise LoxRuntimeError.at(str(args[0]), node)


BUILTINS = [
    LoxNativeFunction("clock", [], clock),
    LoxNativeFunction("type", ["value"], type_),
    LoxNativeFunction("error", ["msg"], error),
]

BUILTIN_NAMES = frozenset(builtin.name for builtin in BUILTINS)


def define_builtins(env):
    for builtin in BUILTINS:
        env.define(builtin.name, builtin)
