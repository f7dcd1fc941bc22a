"""Runtime scopes. An Environment maps names to values and points at the Environment enclosing it, so that closures can
keep whole chains of scopes alive after the code that created them has finished running.
"""

from pylox.lang.error import LoxRuntimeError


class _Undefined:
    """Value of a variable which has been declared but not assigned to yet."""

    def __repr__(self):
        return "UNDEFINED"


UNDEFINED = _Undefined()


class Environment:
    """A single scope, plus a reference to its parent scope (None for the global scope)."""

    def __init__(self, parent=None):
        self.parent = parent
        self.values = {}

    def child(self):
        return Environment(self)

    def copy(self):
        """Returns a sibling of this scope holding the same bindings."""
        env = Environment(self.parent)
        env.values = dict(self.values)
        return env

    def declare(self, name):
        """Declares name without giving it a value. Does nothing if name is already present."""
        self.values.setdefault(name, UNDEFINED)

    def define(self, name, value):
        self.values[name] = value

    def __contains__(self, name):
        return name in self.values

    def ancestor(self, distance):
        env = self
        for __ in range(distance):
            env = env.parent
        return env

    def get(self, name, node):
        """Looks up name in this scope only. node is the reference being evaluated, used in error messages."""
        if name not in self.values:
            raise LoxRuntimeError.at(f"{name} has not been declared", node)

        value = self.values[name]
        if value is UNDEFINED:
            raise LoxRuntimeError.at(f"{name} has not been defined", node)
        return value

    def get_at(self, distance, name, node):
        return self.ancestor(distance).get(name, node)

    def assign(self, name, value, node):
        """Assigns to name in this scope only. The name must have been declared."""
        if name not in self.values:
            raise LoxRuntimeError.at(f"{name} has not been declared", node)
        self.values[name] = value

    def assign_at(self, distance, name, value, node):
        self.ancestor(distance).assign(name, value, node)

    def __repr__(self):
        return f"Environment({', '.join(self.values)})"
