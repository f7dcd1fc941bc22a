"""Error handling for the Lox interpreter. Only LoxErrors should be encountered during running: if another type of error
is raised and makes it all the way to ErrorHandler, it is assumed to be an internal issue.

Every diagnostic is displayed the same way:

```
file.lox:3:7: error: '-' operator cannot be used with type 'string'
print -"abc";
      ~~~~~~
```

where the file name is omitted for sources that have none (`-c` strings, REPL lines). Runtime errors are followed by a
stack trace, most recent call first.
"""

import sys

from termcolor import colored


def paint(text, color=None, attrs=None, enabled=True):
    """colored, but only when enabled."""
    if not enabled:
        return text
    return colored(text, color, attrs=attrs)


class LoxError(Exception):
    """A syntax or semantic error, located by the range [start, end) of source that caused it."""
    ERROR = "red"

    def __init__(self, msg, start=None, end=None):
        super().__init__(msg)
        self.msg = msg
        self.start = start
        self.end = end if end is not None else start

    @classmethod
    def at(cls, msg, node):
        """Makes an error spanning node, which can be a Token or any AST node."""
        return cls(msg, node.start, node.end)

    def describe(self, color=False):
        """Returns the full diagnostic: location, message and the highlighted source."""
        if self.start is None:
            return paint("error: ", LoxError.ERROR, ["bold"], color) + self.msg

        header = paint(f"{self.start}: ", attrs=["bold"], enabled=color)
        header += paint("error: ", LoxError.ERROR, ["bold"], color) + paint(self.msg, attrs=["bold"], enabled=color)
        return header + "\n" + self.diagnose(color)

    def diagnose(self, color=False):
        """Returns the offending source lines, each followed by a ~~~ underline of the erroneous part."""
        file = self.start.file
        if file is None:
            return ""

        lines = []
        last = max(self.end.line, self.start.line)
        for line_num in range(self.start.line, last + 1):
            line = file.line(line_num)
            start = self.start.column if line_num == self.start.line else 0
            end = self.end.column if line_num == last and self.end.line == last else len(line)
            if line_num != self.start.line and line_num == last and end == 0:
                break  # range ends just after a newline

            lines.append(paint(line, attrs=["dark"], enabled=color))
            lines.append(" " * start + paint("~" * max(end - start, 1), LoxError.ERROR, ["bold"], color))

        return "\n".join(lines)

    def __str__(self):
        return self.describe()


class LoxRuntimeError(LoxError):
    """An error raised while a program is running. Carries a snapshot of the call stack as a list of StackFrames,
    most recent call first.
    """

    def __init__(self, msg, start=None, end=None, trace=None):
        super().__init__(msg, start, end)
        self.trace = trace if trace is not None else []

    def describe(self, color=False):
        description = super().describe(color)
        if not self.trace:
            return description

        locations = [str(frame.position) for frame in self.trace]
        functions = [f"in {frame.function}" if frame.function else "" for frame in self.trace]
        location_width = max(len(location) for location in locations)
        function_width = max(len(function) for function in functions)

        lines = [paint("Stack Trace (most recent call first):", attrs=["bold"], enabled=color)]
        for frame, location, function in zip(self.trace, locations, functions):
            source = frame.position.file.line(frame.position.line).strip() if frame.position.file else ""
            line = f"  {location:<{location_width}}  {function:<{function_width}}  {source}"
            lines.append(line.rstrip())

        return description + "\n" + "\n".join(lines)


class LoxErrors(Exception):
    """A batch of syntax or semantic errors, always kept sorted by position."""

    def __init__(self, errors):
        self.errors = sorted(errors, key=lambda error: error.start.key() if error.start else (0, 0))
        super().__init__(self.describe())

    def describe(self, color=False):
        return "\n".join(error.describe(color) for error in self.errors)

    def __iter__(self):
        return iter(self.errors)

    def __len__(self):
        return len(self.errors)

    def __str__(self):
        return self.describe()


class ErrorHandler:
    """Context manager that will silently suppress Python errors and report Lox errors instead. In fatal mode, the first
    reported error exits the process with status 1.
    """

    def __init__(self, fatal=True, stream=None, color=None):
        self.fatal = fatal
        self.stream = stream if stream is not None else sys.stderr
        self.color = color if color is not None else self.stream.isatty()

    def throw(self, error):
        """Prints error, which must be a LoxError or LoxErrors, and exits if fatal."""
        print(error.describe(self.color), file=self.stream)

        if self.fatal:
            sys.exit(1)

    def internal(self, msg):
        """Reports an error that is not the Lox program's fault."""
        print(paint("[internal] ", LoxError.ERROR, ["bold"], self.color) + LoxError(msg).describe(self.color),
              file=self.stream)

        if self.fatal:
            sys.exit(1)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        do_exit = False
        if exc_type is KeyboardInterrupt:
            print(file=self.stream)
            self.throw(LoxError("keyboard interrupt"))
        elif exc_type is SystemExit:
            do_exit = True
        elif exc_type is RecursionError:
            self.throw(LoxRuntimeError("maximum recursion depth exceeded"))
        elif exc_type is not None and issubclass(exc_type, (LoxError, LoxErrors)):
            self.throw(exc_val)
        elif exc_type is not None:
            self.internal(f"unknown error: '{exc_type.__name__}: {exc_val}'")
            do_exit = True

        return not do_exit
